"""
Matcher interface definitions.

This module defines the result types and the base interface for all
fingerprint matchers. The base class owns the one-probe-versus-many
candidate loop, decision banding, cancellation and timing; concrete
matchers only prepare the probe and score a single candidate.
"""

import logging
import os
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

import cv2
import numpy as np

from fingermatch import runtime
from fingermatch.runtime import OperationCancelledError, check_cancelled
from fingermatch.utils.logger import ProgressTracker

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    """Three-way match decision."""
    MATCH = "MATCH"
    UNCERTAIN = "UNCERTAIN"
    NO_MATCH = "NO_MATCH"


@dataclass(frozen=True)
class MatchCandidateResult:
    """
    Result of comparing the probe with one candidate.

    Attributes:
        candidate_id: Identifier of the candidate
        score: Fused similarity score in [0, 100]
        decision: Decision band of the score
        feature_scores: Per-feature similarities in [0, 1]
        elapsed_ms: Time spent on this candidate
    """
    candidate_id: str
    score: float
    decision: Decision
    feature_scores: Dict[str, float] = field(default_factory=dict)
    elapsed_ms: float = 0.0

    @property
    def confidence(self) -> float:
        """Score rescaled to [0, 1]."""
        return min(1.0, max(0.0, self.score / 100.0))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "candidate_id": self.candidate_id,
            "score": self.score,
            "decision": self.decision.value,
            "confidence": self.confidence,
            "feature_scores": dict(self.feature_scores),
            "elapsed_ms": self.elapsed_ms,
        }


@dataclass(frozen=True)
class MatchResult:
    """
    Result of matching a probe against a candidate set.

    Attributes:
        threshold_used: Threshold supplied by the caller (informational)
        candidates: Per-candidate results, highest score first
        elapsed_ms: Total wall-clock time of the match call
    """
    threshold_used: float
    candidates: List[MatchCandidateResult] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def best(self) -> Optional[MatchCandidateResult]:
        """Highest scoring candidate, or None for an empty set."""
        return self.candidates[0] if self.candidates else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "threshold_used": self.threshold_used,
            "candidates": [c.to_dict() for c in self.candidates],
            "elapsed_ms": self.elapsed_ms,
        }


def _no_match_result(
    candidates: Mapping[str, np.ndarray],
    threshold_used: float
) -> MatchResult:
    """Result with every candidate at score 0 and NO_MATCH."""
    return MatchResult(
        threshold_used=threshold_used,
        candidates=[
            MatchCandidateResult(
                candidate_id=candidate_id,
                score=0.0,
                decision=Decision.NO_MATCH
            )
            for candidate_id in candidates
        ],
        elapsed_ms=0.0
    )

class BaseMatcher(ABC):
    """
    Abstract base class for fingerprint matchers.

    Subclasses implement :meth:`prepare_probe`, computed once per match
    call and shared read-only, and :meth:`score_candidate`, run for each
    candidate on a worker thread.
    """

    def __init__(
        self,
        match_threshold: float = 58.0,
        uncertain_threshold: float = 45.0,
        num_workers: Optional[int] = None
    ):
        """
        Initialize matcher.

        Args:
            match_threshold: Lowest score classified MATCH
            uncertain_threshold: Lowest score classified UNCERTAIN
            num_workers: Worker threads (None = one per CPU, 1 = sequential)
        """
        if uncertain_threshold > match_threshold:
            raise ValueError(
                f"uncertain_threshold ({uncertain_threshold}) exceeds "
                f"match_threshold ({match_threshold})"
            )
        self.match_threshold = match_threshold
        self.uncertain_threshold = uncertain_threshold
        self.num_workers = num_workers

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Return the display name of the matcher.

        Returns:
            Human-readable name
        """
        pass

    @property
    def description(self) -> str:
        """
        Return a description of the matcher.

        Returns:
            Description string
        """
        return ""

    @abstractmethod
    def prepare_probe(self, probe: np.ndarray) -> Any:
        """
        Compute the probe state shared by all candidate comparisons.

        Args:
            probe: Probe image

        Returns:
            Matcher-specific probe state
        """
        pass

    @abstractmethod
    def score_candidate(
        self,
        probe_state: Any,
        candidate: np.ndarray
    ) -> Tuple[float, Dict[str, float]]:
        """
        Score one candidate against the prepared probe.

        Args:
            probe_state: Result of prepare_probe
            candidate: Candidate image

        Returns:
            Tuple of (score in [0, 100], per-feature similarities)
        """
        pass

    def decide(self, score: float) -> Decision:
        """
        Map a score onto its decision band.

        Args:
            score: Fused score in [0, 100]

        Returns:
            MATCH at or above match_threshold, UNCERTAIN at or above
            uncertain_threshold, NO_MATCH otherwise
        """
        if score >= self.match_threshold:
            return Decision.MATCH
        if score >= self.uncertain_threshold:
            return Decision.UNCERTAIN
        return Decision.NO_MATCH

    def explain(self) -> Dict[str, Any]:
        """
        Return explanation of the matcher's algorithm.

        Returns:
            Dictionary containing algorithm explanation and metadata
        """
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.get_current_parameters(),
        }

    def get_current_parameters(self) -> Dict[str, Any]:
        """
        Get current parameter values.

        Returns:
            Dictionary of parameter names to current values
        """
        return {
            "match_threshold": self.match_threshold,
            "uncertain_threshold": self.uncertain_threshold,
            "num_workers": self.num_workers,
        }

    def _compare(
        self,
        probe_state: Any,
        candidate_id: str,
        candidate: np.ndarray,
        cancel_event: Optional[threading.Event]
    ) -> MatchCandidateResult:
        """
        Compare one candidate and build its result.

        Args:
            probe_state: Prepared probe
            candidate_id: Candidate identifier
            candidate: Candidate image
            cancel_event: Optional cancellation event

        Returns:
            MatchCandidateResult
        """
        check_cancelled(cancel_event, f"candidate {candidate_id}")
        start = time.perf_counter()

        try:
            score, feature_scores = self.score_candidate(probe_state, candidate)
        except (cv2.error, ValueError) as exc:
            logger.warning(f"Matching failed for candidate {candidate_id}: {exc}")
            score, feature_scores = 0.0, {}

        score = float(np.clip(score, 0.0, 100.0))
        return MatchCandidateResult(
            candidate_id=candidate_id,
            score=score,
            decision=self.decide(score),
            feature_scores=feature_scores,
            elapsed_ms=(time.perf_counter() - start) * 1000.0,
        )

    def match(
        self,
        probe: np.ndarray,
        candidates: Mapping[str, np.ndarray],
        threshold: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> MatchResult:
        """
        Match a probe against every candidate.

        Args:
            probe: Probe image (gray, BGR or BGRA)
            candidates: Mapping of candidate id to image
            threshold: Caller threshold, echoed in the result; decisions
                always use the matcher's own thresholds
            cancel_event: Optional event; once set, remaining candidates
                are skipped and OperationCancelledError is raised. A run
                whose last candidate has finished is returned in full.

        Returns:
            MatchResult with candidates sorted by descending score

        Raises:
            OperationCancelledError: If cancel_event is set during the run
        """
        threshold_used = self.match_threshold if threshold is None else float(threshold)

        if not runtime.is_vision_available():
            return _no_match_result(candidates, threshold_used)

        start = time.perf_counter()
        check_cancelled(cancel_event, "probe preparation")
        try:
            probe_state = self.prepare_probe(probe)
        except (cv2.error, ValueError) as exc:
            logger.warning(f"Probe preparation failed, no candidate can match: {exc}")
            return _no_match_result(candidates, threshold_used)

        items = list(candidates.items())
        tracker = ProgressTracker(len(items), logger) if items else None
        results: List[MatchCandidateResult] = []

        num_workers = self.num_workers or os.cpu_count() or 1

        if num_workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=num_workers) as executor:
                futures = {
                    executor.submit(
                        self._compare, probe_state, candidate_id, image, cancel_event
                    ): candidate_id
                    for candidate_id, image in items
                }

                try:
                    for future in as_completed(futures):
                        results.append(future.result())
                        tracker.update()
                        if len(results) < len(items):
                            check_cancelled(cancel_event, "next candidate")
                except OperationCancelledError:
                    for pending in futures:
                        pending.cancel()
                    raise
        else:
            for candidate_id, image in items:
                results.append(self._compare(probe_state, candidate_id, image, cancel_event))
                tracker.update()
                if len(results) < len(items):
                    check_cancelled(cancel_event, "next candidate")

        if tracker is not None:
            tracker.finish()

        results.sort(key=lambda r: r.score, reverse=True)

        return MatchResult(
            threshold_used=threshold_used,
            candidates=results,
            elapsed_ms=(time.perf_counter() - start) * 1000.0
        )
