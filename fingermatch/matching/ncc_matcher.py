"""
Normalized cross-correlation baseline matcher.

A pixel-only matcher: probe and candidates are normalized onto the same
canvas and compared by their zero-mean correlation, without ridge
enhancement or alignment. It serves as a reference point for the
hybrid matcher.
"""

from typing import Any, Dict, Optional, Tuple

import numpy as np

from fingermatch.matching.interface import BaseMatcher
from fingermatch.preprocessing.normalization import ImageNormalizer
from fingermatch.utils.config import Config


def compute_ncc(sample_a: np.ndarray, sample_b: np.ndarray) -> float:
    """
    Compute the raw normalized cross-correlation.

    NCC = (1 / MN) * Σ [(I1 - μ1) * (I2 - μ2)] / (σ1 * σ2)

    Args:
        sample_a: First image
        sample_b: Second image of the same shape

    Returns:
        NCC value in [-1, 1]; 0 if either image has zero variance
    """
    if sample_a.shape != sample_b.shape:
        raise ValueError(
            f"Image shapes must match: {sample_a.shape} vs {sample_b.shape}"
        )

    a = sample_a.flatten().astype(np.float64)
    b = sample_b.flatten().astype(np.float64)

    std_a = np.std(a)
    std_b = np.std(b)

    # Zero variance
    if std_a < 1e-10 or std_b < 1e-10:
        return 0.0

    ncc = np.mean((a - np.mean(a)) * (b - np.mean(b))) / (std_a * std_b)
    return float(np.clip(ncc, -1.0, 1.0))


class NCCMatcher(BaseMatcher):
    """
    Normalized Cross-Correlation based fingerprint matcher.

    Score = max(0, NCC) * 100 on the normalized canvases.
    """

    def __init__(
        self,
        normalizer: Optional[ImageNormalizer] = None,
        match_threshold: float = 58.0,
        uncertain_threshold: float = 45.0,
        num_workers: Optional[int] = None
    ):
        super().__init__(match_threshold, uncertain_threshold, num_workers)
        self.normalizer = normalizer or ImageNormalizer()

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "NCCMatcher":
        config = config or Config()
        return cls(
            normalizer=ImageNormalizer.from_config(config.normalization),
            match_threshold=config.scoring.match_threshold,
            uncertain_threshold=config.scoring.uncertain_threshold,
            num_workers=config.scoring.num_workers,
        )

    @property
    def name(self) -> str:
        return "NCC"

    @property
    def description(self) -> str:
        return "Zero-mean normalized cross-correlation of normalized images"

    def get_current_parameters(self) -> Dict[str, Any]:
        params = super().get_current_parameters()
        params["canvas_size"] = self.normalizer.canvas_size
        return params

    def prepare_probe(self, probe: np.ndarray) -> np.ndarray:
        return self.normalizer.normalize(probe, is_contact_sample=False)

    def score_candidate(
        self,
        probe_state: np.ndarray,
        candidate: np.ndarray
    ) -> Tuple[float, Dict[str, float]]:
        normalized = self.normalizer.normalize(candidate, is_contact_sample=True)
        similarity = max(0.0, compute_ncc(probe_state, normalized))
        return 100.0 * similarity, {"pixel": similarity}
