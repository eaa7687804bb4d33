"""
Per-feature similarity measures for the hybrid matcher.

Every measure returns a value in [0, 1]. Numerically degenerate inputs
(no reliable blocks, zero-norm vectors, flat maps) yield the neutral
value 0.5 rather than an error.
"""

import numpy as np

from fingermatch.enhancement.orientation_field import OrientationField


NEUTRAL_SIMILARITY = 0.5


def orientation_similarity(
    field_a: OrientationField,
    field_b: OrientationField,
    min_coherence: float = 0.2
) -> float:
    """
    Coherence-weighted agreement of two orientation fields.

    Only blocks where both coherences exceed min_coherence take part.
    Each contributes its wrapped angular difference in [0, π/2] with
    weight sqrt(c_a * c_b).

    Args:
        field_a: First orientation field
        field_b: Second orientation field
        min_coherence: Coherence a block must exceed in both fields

    Returns:
        1 - mean_difference / (π/2); 0.5 if no block qualifies
    """
    rows = min(field_a.shape[0], field_b.shape[0])
    cols = min(field_a.shape[1], field_b.shape[1])

    angles_a = field_a.angles[:rows, :cols]
    angles_b = field_b.angles[:rows, :cols]
    coherence_a = field_a.coherence[:rows, :cols]
    coherence_b = field_b.coherence[:rows, :cols]

    valid = (coherence_a > min_coherence) & (coherence_b > min_coherence)
    if not np.any(valid):
        return NEUTRAL_SIMILARITY

    diff = np.mod(np.abs(angles_a[valid] - angles_b[valid]), np.pi)
    wrapped = np.minimum(diff, np.pi - diff)
    weights = np.sqrt(coherence_a[valid] * coherence_b[valid])

    weight_sum = float(np.sum(weights))
    if weight_sum < 1e-6:
        return NEUTRAL_SIMILARITY

    mean_diff = float(np.sum(wrapped * weights)) / weight_sum
    return float(np.clip(1.0 - mean_diff / (np.pi / 2.0), 0.0, 1.0))


def vector_similarity(vector_a: np.ndarray, vector_b: np.ndarray) -> float:
    """
    Cosine similarity of two feature vectors, floored at 0.

    Vectors of different length are compared over their common prefix.

    Args:
        vector_a: First feature vector
        vector_b: Second feature vector

    Returns:
        Similarity in [0, 1]; 0.5 for empty or zero-norm vectors
    """
    n = min(len(vector_a), len(vector_b))
    if n == 0:
        return NEUTRAL_SIMILARITY

    a = np.asarray(vector_a[:n], dtype=np.float64)
    b = np.asarray(vector_b[:n], dtype=np.float64)

    norm_a = float(np.dot(a, a))
    norm_b = float(np.dot(b, b))
    if norm_a < 1e-8 or norm_b < 1e-8:
        return NEUTRAL_SIMILARITY

    cosine = float(np.dot(a, b)) / (np.sqrt(norm_a) * np.sqrt(norm_b))
    return float(np.clip(cosine, 0.0, 1.0))


def frequency_similarity(map_a: np.ndarray, map_b: np.ndarray) -> float:
    """
    Correlation of two ridge frequency maps.

    Blocks where either map is unset (0) are ignored. Each map is scaled
    by its own mean so that a global scale difference does not count;
    the Pearson correlation r of the scaled maps is mapped to (r + 1) / 2.

    Args:
        map_a: First frequency map
        map_b: Second frequency map

    Returns:
        Similarity in [0, 1]; 0.5 with fewer than two shared blocks or
        a degenerate variance
    """
    rows = min(map_a.shape[0], map_b.shape[0])
    cols = min(map_a.shape[1], map_b.shape[1])
    a = map_a[:rows, :cols].astype(np.float64)
    b = map_b[:rows, :cols].astype(np.float64)

    valid = (a > 0) & (b > 0)
    if np.count_nonzero(valid) < 2:
        return NEUTRAL_SIMILARITY

    a = a[valid] / np.mean(a[valid]) - 1.0
    b = b[valid] / np.mean(b[valid]) - 1.0

    denominator = np.sqrt(np.sum(a * a) * np.sum(b * b))
    if denominator < 1e-8:
        return NEUTRAL_SIMILARITY

    r = float(np.sum(a * b) / denominator)
    if np.isnan(r):
        return NEUTRAL_SIMILARITY

    return float(np.clip((r + 1.0) / 2.0, 0.0, 1.0))


def pixel_similarity(image_a: np.ndarray, image_b: np.ndarray) -> float:
    """
    Zero-mean normalized cross-correlation, floored at 0.

    Args:
        image_a: First image
        image_b: Second image of the same shape

    Returns:
        Similarity in [0, 1]
    """
    if image_a.shape != image_b.shape:
        raise ValueError(
            f"Image shapes must match: {image_a.shape} vs {image_b.shape}"
        )

    a = image_a.astype(np.float64).ravel()
    b = image_b.astype(np.float64).ravel()
    if a.size == 0:
        return 0.0

    a = a - np.mean(a)
    b = b - np.mean(b)

    denominator = np.sqrt(np.sum(a * a) * np.sum(b * b)) + 1e-8
    ncc = float(np.sum(a * b) / denominator)
    return max(0.0, min(1.0, ncc))
