"""
Graph-cut region refinement and capture-time finger segmentation.

The coarse skin mask is refined with GrabCut, intersected with the
coarse mask, filtered by connected-component shape and reduced to a
region of interest. Every degenerate case has an explicit fallback so
that callers always receive a usable mask and ROI.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from fingermatch import runtime
from fingermatch.preprocessing.normalization import to_bgr
from fingermatch.preprocessing.skin_segmentation import SkinSegmenter
from fingermatch.utils.config import SegmentationConfig

logger = logging.getLogger(__name__)


# =============================================================================
# REFINEMENT ALGORITHM
# =============================================================================
#
# 1. Downscale when the longer side exceeds max_side (GrabCut is O(N) per
#    iteration with a large constant).
# 2. Seed rectangle = bounding box of the coarse mask, padded on every
#    side; fallback = centred rectangle covering most of the frame.
#    Rectangles that are too small are rejected.
# 3. GrabCut (rectangle init). Definite and probable foreground form the
#    mask. Failure -> coarse mask -> full-frame mask.
# 4. Upscale, AND with the coarse mask (suppresses leakage), close.
# 5. Keep finger-shaped components (area band, height/width > 0.8),
#    otherwise the largest component. Median blur.
# 6. ROI = padded bounding box of the mask, full frame if empty.
# =============================================================================


@dataclass(frozen=True)
class ROI:
    """
    Axis-aligned region of interest in source pixel coordinates.

    Invariant: 0 <= left < right <= width and 0 <= top < bottom <= height.
    """
    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def area(self) -> int:
        return self.width * self.height

    @classmethod
    def full_frame(cls, width: int, height: int) -> "ROI":
        return cls(0, 0, max(1, width), max(1, height))

    @classmethod
    def clamped(
        cls,
        left: int,
        top: int,
        right: int,
        bottom: int,
        width: int,
        height: int
    ) -> "ROI":
        """
        Clamp a rectangle to the frame.

        Zero-area results are rejected and replaced by the full frame.
        """
        left = min(max(int(left), 0), width)
        top = min(max(int(top), 0), height)
        right = min(max(int(right), 0), width)
        bottom = min(max(int(bottom), 0), height)

        if left >= right or top >= bottom:
            return cls.full_frame(width, height)
        return cls(left, top, right, bottom)

    def crop(self, image: np.ndarray) -> np.ndarray:
        """Return a copy of the ROI region of an image."""
        return image[self.top:self.bottom, self.left:self.right].copy()

    def to_dict(self) -> dict:
        return {
            'left': self.left,
            'top': self.top,
            'right': self.right,
            'bottom': self.bottom,
        }


@dataclass(frozen=True, eq=False)
class RefinementResult:
    """
    Output of the region refiner.

    Attributes:
        mask: Refined binary mask (255 = finger), same size as the source
        roi: Region of interest enclosing the mask
    """
    mask: np.ndarray
    roi: ROI


@dataclass(frozen=True, eq=False)
class SegmentationResult:
    """
    Capture-time segmentation output for the UI overlay.

    Attributes:
        mask: Binary finger mask
        segmented: Source image with background set to zero
        roi_image: Crop of the segmented image to the ROI
        roi: Region of interest
    """
    mask: np.ndarray
    segmented: np.ndarray
    roi_image: np.ndarray
    roi: ROI


def full_mask(height: int, width: int) -> np.ndarray:
    """Return an all-foreground mask."""
    return np.full((height, width), 255, dtype=np.uint8)


def validate_rect(
    rect: Tuple[int, int, int, int],
    width: int,
    height: int,
    min_side: int = 50,
    min_area_ratio: float = 0.05
) -> Optional[Tuple[int, int, int, int]]:
    """
    Clamp a GrabCut seed rectangle and reject undersized ones.

    Args:
        rect: (x, y, w, h)
        width: Frame width
        height: Frame height
        min_side: Minimum rectangle side in pixels
        min_area_ratio: Minimum fraction of the frame area

    Returns:
        Clamped (x, y, w, h) or None if rejected
    """
    x, y, w, h = rect
    x1 = max(x, 0)
    y1 = max(y, 0)
    if x1 >= width or y1 >= height:
        return None

    x2 = min(x + w, width)
    y2 = min(y + h, height)
    w = x2 - x1
    h = y2 - y1

    if w < min_side or h < min_side:
        return None
    if w * h < width * height * min_area_ratio:
        return None

    return x1, y1, w, h


def mask_bounding_rect(mask: np.ndarray) -> Optional[Tuple[int, int, int, int]]:
    """Bounding (x, y, w, h) of the nonzero pixels, None if empty."""
    points = cv2.findNonZero(mask)
    if points is None:
        return None
    return cv2.boundingRect(points)


def roi_from_mask(mask: np.ndarray, padding: float = 0.05) -> ROI:
    """
    Compute the padded bounding box of a mask.

    Args:
        mask: Binary mask
        padding: Padding as a fraction of the box size, per side

    Returns:
        ROI clamped to the frame; full frame for an empty mask
    """
    height, width = mask.shape[:2]
    rect = mask_bounding_rect(mask)
    if rect is None:
        return ROI.full_frame(width, height)

    x, y, w, h = rect
    pad_x = int(w * padding)
    pad_y = int(h * padding)
    return ROI.clamped(x - pad_x, y - pad_y, x + w + pad_x, y + h + pad_y, width, height)


class RegionRefiner:
    """
    GrabCut-based refinement of a coarse finger mask.
    """

    def __init__(
        self,
        max_side: int = 900,
        rect_padding: float = 0.20,
        fallback_coverage: float = 0.96,
        min_rect_side: int = 50,
        min_rect_area_ratio: float = 0.05,
        grabcut_iterations: int = 7,
        min_component_area: float = 0.01,
        max_component_area: float = 0.90,
        min_aspect_ratio: float = 0.8,
        median_kernel: int = 5,
        roi_padding: float = 0.05
    ):
        """
        Initialize the refiner.

        Args:
            max_side: Longer side above which the image is downscaled
            rect_padding: Seed rectangle padding (fraction per side)
            fallback_coverage: Coverage of the centred fallback rectangle
            min_rect_side: Minimum seed rectangle side
            min_rect_area_ratio: Minimum seed rectangle area fraction
            grabcut_iterations: GrabCut iterations
            min_component_area: Minimum component area fraction
            max_component_area: Maximum component area fraction
            min_aspect_ratio: Minimum component height/width ratio
            median_kernel: Final median blur kernel
            roi_padding: ROI padding (fraction per side)
        """
        self.max_side = max_side
        self.rect_padding = rect_padding
        self.fallback_coverage = fallback_coverage
        self.min_rect_side = min_rect_side
        self.min_rect_area_ratio = min_rect_area_ratio
        self.grabcut_iterations = grabcut_iterations
        self.min_component_area = min_component_area
        self.max_component_area = max_component_area
        self.min_aspect_ratio = min_aspect_ratio
        self.median_kernel = median_kernel
        self.roi_padding = roi_padding

    @classmethod
    def from_config(cls, config: Optional[SegmentationConfig] = None) -> "RegionRefiner":
        config = config or SegmentationConfig()
        return cls(
            max_side=config.max_side,
            rect_padding=config.rect_padding,
            fallback_coverage=config.fallback_coverage,
            min_rect_side=config.min_rect_side,
            min_rect_area_ratio=config.min_rect_area_ratio,
            grabcut_iterations=config.grabcut_iterations,
            min_component_area=config.min_component_area,
            max_component_area=config.max_component_area,
            min_aspect_ratio=config.min_aspect_ratio,
            median_kernel=config.median_kernel,
            roi_padding=config.roi_padding,
        )

    def seed_rect(
        self,
        coarse_mask: Optional[np.ndarray],
        width: int,
        height: int
    ) -> Optional[Tuple[int, int, int, int]]:
        """
        Compute the GrabCut seed rectangle.

        Args:
            coarse_mask: Coarse mask at the working resolution
            width: Working width
            height: Working height

        Returns:
            (x, y, w, h) or None if no acceptable rectangle exists
        """
        margin = (1.0 - self.fallback_coverage) / 2.0
        fallback = (
            int(width * margin),
            int(height * margin),
            int(width * self.fallback_coverage),
            int(height * self.fallback_coverage),
        )

        rect = mask_bounding_rect(coarse_mask) if coarse_mask is not None else None
        if rect is None:
            return validate_rect(
                fallback, width, height, self.min_rect_side, self.min_rect_area_ratio
            )

        x, y, w, h = rect
        pad_x = int(w * self.rect_padding)
        pad_y = int(h * self.rect_padding)
        expanded = (x - pad_x, y - pad_y, w + 2 * pad_x, h + 2 * pad_y)

        validated = validate_rect(
            expanded, width, height, self.min_rect_side, self.min_rect_area_ratio
        )
        if validated is None:
            validated = validate_rect(
                fallback, width, height, self.min_rect_side, self.min_rect_area_ratio
            )
        return validated

    def graph_cut(self, bgr: np.ndarray, coarse_mask: np.ndarray) -> np.ndarray:
        """
        Run GrabCut seeded by the coarse mask.

        Args:
            bgr: BGR uint8 image
            coarse_mask: Coarse mask at source resolution

        Returns:
            Foreground mask at source resolution. Falls back to the coarse
            mask (or a full-frame mask when that is empty) on failure.
        """
        h, w = bgr.shape[:2]
        fallback = coarse_mask if cv2.countNonZero(coarse_mask) > 0 else full_mask(h, w)

        scale = 1.0
        small, small_mask = bgr, coarse_mask
        if max(h, w) > self.max_side:
            scale = self.max_side / max(h, w)
            size = (max(1, int(w * scale)), max(1, int(h * scale)))
            small = cv2.resize(bgr, size, interpolation=cv2.INTER_AREA)
            small_mask = cv2.resize(coarse_mask, size, interpolation=cv2.INTER_NEAREST)

        hs, ws = small.shape[:2]
        rect = self.seed_rect(small_mask, ws, hs)
        if rect is None:
            logger.debug("No valid GrabCut seed rectangle, using coarse mask")
            return fallback

        gc_mask = np.zeros((hs, ws), dtype=np.uint8)
        bgd_model = np.zeros((1, 65), dtype=np.float64)
        fgd_model = np.zeros((1, 65), dtype=np.float64)
        try:
            cv2.grabCut(
                small, gc_mask, rect, bgd_model, fgd_model,
                self.grabcut_iterations, cv2.GC_INIT_WITH_RECT
            )
        except cv2.error as exc:
            logger.warning(f"GrabCut failed, using coarse mask: {exc}")
            return fallback

        foreground = (gc_mask == cv2.GC_FGD) | (gc_mask == cv2.GC_PR_FGD)
        result = np.where(foreground, 255, 0).astype(np.uint8)
        kernel = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (9, 9))
        result = cv2.morphologyEx(result, cv2.MORPH_CLOSE, kernel, iterations=2)

        if scale != 1.0:
            result = cv2.resize(result, (w, h), interpolation=cv2.INTER_NEAREST)
        return result

    def filter_components(self, mask: np.ndarray) -> np.ndarray:
        """
        Keep finger-shaped connected components.

        Args:
            mask: Binary mask

        Returns:
            Filtered, median-blurred mask
        """
        num_labels, labels, stats, _ = cv2.connectedComponentsWithStats(mask, connectivity=8)
        if num_labels <= 1:
            return cv2.medianBlur(mask, self.median_kernel)

        frame_area = mask.shape[0] * mask.shape[1]
        areas = stats[1:, cv2.CC_STAT_AREA].astype(np.float64)
        widths = stats[1:, cv2.CC_STAT_WIDTH].astype(np.float64)
        heights = stats[1:, cv2.CC_STAT_HEIGHT].astype(np.float64)
        aspect = heights / (widths + 1e-6)

        keep = (
            (areas >= frame_area * self.min_component_area)
            & (areas <= frame_area * self.max_component_area)
            & (aspect > self.min_aspect_ratio)
        )
        keep_labels = np.nonzero(keep)[0] + 1
        if keep_labels.size == 0:
            keep_labels = np.array([int(np.argmax(areas)) + 1])

        filtered = np.where(np.isin(labels, keep_labels), 255, 0).astype(np.uint8)
        return cv2.medianBlur(filtered, self.median_kernel)

    def refine(
        self,
        bgr: np.ndarray,
        coarse_mask: np.ndarray,
        cancel_event: Optional[threading.Event] = None
    ) -> RefinementResult:
        """
        Refine a coarse mask and compute the ROI.

        Args:
            bgr: BGR (or grayscale/BGRA) uint8 image
            coarse_mask: Coarse mask with the same height and width
            cancel_event: Optional cancellation event, checked between stages

        Returns:
            RefinementResult with the refined mask and ROI

        Raises:
            ValueError: If the mask does not match the image size
        """
        bgr = to_bgr(bgr)
        h, w = bgr.shape[:2]
        if coarse_mask.shape[:2] != (h, w):
            raise ValueError(
                f"Mask shape {coarse_mask.shape[:2]} does not match image shape {(h, w)}"
            )
        coarse = np.where(coarse_mask > 0, 255, 0).astype(np.uint8)

        runtime.check_cancelled(cancel_event, "graph cut")
        gc_mask = self.graph_cut(bgr, coarse)

        runtime.check_cancelled(cancel_event, "component filtering")
        combined = cv2.bitwise_and(coarse, gc_mask)
        kernel = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (5, 5))
        combined = cv2.morphologyEx(combined, cv2.MORPH_CLOSE, kernel)

        final = self.filter_components(combined)
        return RefinementResult(mask=final, roi=roi_from_mask(final, self.roi_padding))


class FingerSegmenter:
    """
    Capture-time segmentation: skin mask, graph-cut refinement, ROI crop.
    """

    def __init__(
        self,
        skin_segmenter: Optional[SkinSegmenter] = None,
        refiner: Optional[RegionRefiner] = None
    ):
        self.skin_segmenter = skin_segmenter or SkinSegmenter()
        self.refiner = refiner or RegionRefiner()

    @classmethod
    def from_config(cls, config: Optional[SegmentationConfig] = None) -> "FingerSegmenter":
        return cls(
            skin_segmenter=SkinSegmenter.from_config(config),
            refiner=RegionRefiner.from_config(config),
        )

    def segment(
        self,
        image: np.ndarray,
        cancel_event: Optional[threading.Event] = None
    ) -> Optional[SegmentationResult]:
        """
        Segment the finger in a captured frame.

        Args:
            image: Grayscale, BGR or BGRA uint8 image
            cancel_event: Optional cancellation event, checked between stages

        Returns:
            SegmentationResult, or None if the vision runtime is unavailable
            or the image is empty

        Raises:
            OperationCancelledError: If cancellation was requested
        """
        if not runtime.is_vision_available() or image is None or image.size == 0:
            return None

        runtime.check_cancelled(cancel_event, "skin segmentation")
        bgr = to_bgr(image)
        coarse = self.skin_segmenter.segment(bgr)

        refined = self.refiner.refine(bgr, coarse, cancel_event)

        segmented = cv2.bitwise_and(bgr, bgr, mask=refined.mask)
        logger.debug(
            f"Segmented {bgr.shape[1]}x{bgr.shape[0]} frame, ROI {refined.roi.to_dict()}"
        )
        return SegmentationResult(
            mask=refined.mask,
            segmented=segmented,
            roi_image=refined.roi.crop(segmented),
            roi=refined.roi,
        )
