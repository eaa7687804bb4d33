"""
I/O utilities for the fingermatch engine.

Provides functions for loading probe and candidate images from disk and
writing pipeline outputs. The matching core itself only sees in-memory
arrays.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

import cv2
import numpy as np


# Supported image extensions
SUPPORTED_EXTENSIONS = {'.tif', '.tiff', '.png', '.jpg', '.jpeg', '.bmp'}


def load_image(
    path: Union[str, Path],
    grayscale: bool = False
) -> np.ndarray:
    """
    Load an image from disk.

    Args:
        path: Path to the image file
        grayscale: Whether to load as grayscale (BGR otherwise)

    Returns:
        Image as uint8 numpy array

    Raises:
        FileNotFoundError: If image file does not exist
        ValueError: If image cannot be decoded
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    flag = cv2.IMREAD_GRAYSCALE if grayscale else cv2.IMREAD_COLOR
    image = cv2.imread(str(path), flag)

    if image is None:
        raise ValueError(f"Failed to load image: {path}")

    return image


def save_image(image: np.ndarray, path: Union[str, Path]) -> Path:
    """
    Save an image to disk, creating parent directories.

    Float images in [0, 1] are scaled to [0, 255].

    Args:
        image: Image as numpy array
        path: Output path

    Returns:
        The output path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if image.dtype in [np.float32, np.float64]:
        image = (image * 255).clip(0, 255).astype(np.uint8)

    if not cv2.imwrite(str(path), image):
        raise ValueError(f"Failed to write image: {path}")
    return path


def discover_images(
    directory: Union[str, Path],
    recursive: bool = False
) -> List[Path]:
    """
    Discover all supported images in a directory.

    Args:
        directory: Directory to search
        recursive: Whether to search subdirectories

    Returns:
        Sorted list of image paths
    """
    directory = Path(directory)

    if not directory.is_dir():
        raise FileNotFoundError(f"Directory not found: {directory}")

    pattern = '**/*' if recursive else '*'
    return sorted(
        p for p in directory.glob(pattern)
        if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS
    )


def _unique_candidate_id(file: Path, taken: Dict[str, np.ndarray]) -> str:
    options = [
        file.stem,
        f"{file.parent.name}/{file.stem}",
        f"{file.parent.name}/{file.name}",
    ]
    for option in options:
        if option not in taken:
            return option

    counter = 2
    while f"{options[-1]}#{counter}" in taken:
        counter += 1
    return f"{options[-1]}#{counter}"


def load_candidates(paths: Iterable[Union[str, Path]]) -> Dict[str, np.ndarray]:
    """
    Load a named candidate set.

    Directories are expanded to the images they contain. Candidate ids are
    file stems; a repeated stem gets its parent directory name prefixed,
    then the file extension, then a numeric suffix until the id is unique.

    Args:
        paths: Image files and/or directories

    Returns:
        Mapping of candidate id to BGR image
    """
    files: List[Path] = []
    for entry in paths:
        entry = Path(entry)
        if entry.is_dir():
            files.extend(discover_images(entry))
        else:
            files.append(entry)

    candidates: Dict[str, np.ndarray] = {}
    for file in files:
        candidates[_unique_candidate_id(file, candidates)] = load_image(file)

    return candidates


def save_json(data: Any, path: Union[str, Path]) -> Path:
    """
    Save data as JSON.

    Args:
        data: JSON-serializable data
        path: Output path

    Returns:
        The output path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        json.dump(data, f, indent=2, default=str)
    return path
