"""Image processing utilities for justdothething.

Pixel statistics used as content-classification cues, a content hash
for the classification cache, and file loading for the CLI.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

import cv2
import numpy as np
from PIL import Image

from justdothething.domain.models import PixelStats

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma weights, in BGR order
_LUMA_BGR = np.array([0.114, 0.587, 0.299], dtype=np.float64)


def pil_to_numpy(image: Image.Image) -> np.ndarray:
    """Convert a PIL Image (RGB) to a numpy array (BGR)."""
    rgb_array = np.array(image.convert("RGB"))
    return cv2.cvtColor(rgb_array, cv2.COLOR_RGB2BGR)


def load_image(path: Path | str) -> np.ndarray:
    """Read an image file into a BGR array.

    Raises:
        ValueError: If the file cannot be decoded as an image.
    """
    try:
        with Image.open(path) as img:
            return pil_to_numpy(img)
    except (OSError, Image.DecompressionBombError) as e:
        raise ValueError(f"Cannot read image {path}: {e}") from e


def to_bgr(image: np.ndarray) -> np.ndarray:
    """Normalize grayscale / BGRA arrays to 3-channel BGR."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image


def image_hash(image: np.ndarray) -> str:
    """Stable content hash of an image (shape + pixel bytes)."""
    h = hashlib.blake2b(digest_size=16)
    h.update(str(image.shape).encode("ascii"))
    h.update(np.ascontiguousarray(image).tobytes())
    return h.hexdigest()


def brightness(image: np.ndarray) -> float:
    """Mean luminance normalized to 0-1."""
    bgr = to_bgr(image).astype(np.float64)
    return float(np.clip((bgr @ _LUMA_BGR).mean() / 255.0, 0.0, 1.0))


def color_variance(image: np.ndarray) -> float:
    """Standard deviation of all channel values normalized to 0-1."""
    return float(np.clip(np.std(image.astype(np.float64)) / 255.0, 0.0, 1.0))


def code_layout(
    image: np.ndarray,
    threshold: float = 0.12,
    max_row_spread: float = 0.7,
) -> tuple[bool, float]:
    """Detect the line-structured layout typical of code and text editors.

    Looks at how much the row means and the column means of the
    grayscale image vary: text lines produce row-to-row variation, a
    gutter or indentation produces column-to-column variation.

    Returns:
        (is_code_layout, confidence) with confidence in 0-1.
    """
    gray = cv2.cvtColor(to_bgr(image), cv2.COLOR_BGR2GRAY).astype(np.float64) / 255.0
    if gray.size == 0:
        return False, 0.0
    row_spread = float(np.std(gray.mean(axis=1)))
    col_spread = float(np.std(gray.mean(axis=0)))

    detected = threshold < row_spread < max_row_spread and col_spread > threshold
    if not detected:
        return False, 0.0
    confidence = min(max(row_spread, 0.1), 0.5) * 0.5 + min(max(col_spread, 0.1), 0.7) * 0.5
    return True, float(min(confidence, 1.0))


def pixel_stats(
    image: np.ndarray,
    threshold: float = 0.12,
    max_row_spread: float = 0.7,
) -> PixelStats:
    """Compute every pixel-level cue the content classifier uses."""
    layout, layout_conf = code_layout(image, threshold, max_row_spread)
    stats = PixelStats(
        brightness=brightness(image),
        color_variance=color_variance(image),
        code_layout=layout,
        code_layout_confidence=layout_conf,
    )
    logger.debug(
        "Pixel stats: brightness=%.3f variance=%.3f code_layout=%s (%.2f)",
        stats.brightness, stats.color_variance, stats.code_layout,
        stats.code_layout_confidence,
    )
    return stats
