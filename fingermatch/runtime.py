"""
Vision runtime availability and cooperative cancellation.

Every public operation of the engine degrades to a safe default when the
OpenCV runtime cannot execute, instead of raising to the caller.
"""

import logging
import threading
from functools import lru_cache
from typing import Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class OperationCancelledError(RuntimeError):
    """Raised when a long-running call observes its cancel event."""


@lru_cache(maxsize=None)
def is_vision_available() -> bool:
    """
    Check once whether the OpenCV runtime can execute image operations.

    Returns:
        True if a trivial filter call succeeds
    """
    try:
        cv2.GaussianBlur(np.zeros((8, 8), dtype=np.uint8), (3, 3), 0)
    except cv2.error as exc:
        logger.warning(f"OpenCV runtime unavailable, using safe defaults: {exc}")
        return False
    return True


def check_cancelled(cancel_event: Optional[threading.Event], stage: str) -> None:
    """
    Raise if cancellation was requested.

    Args:
        cancel_event: Optional event set by the caller to cancel
        stage: Name of the stage about to start (for the error message)

    Raises:
        OperationCancelledError: If the event is set
    """
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError(f"Cancelled before {stage}")
