from __future__ import annotations
"""
Image intake for the detection pipelines:
- grayscale normalisation of numpy images (gray, RGB, RGBA)
- raw pixel buffers with explicit width/height/channels
- encoded JPEG/PNG buffers via cv2.imdecode

Malformed input raises InputValidationError; public entry points turn it
into an InputError result.
"""

from typing import Any, Optional

import cv2
import numpy as np

from common.types import InputErrorKind


class InputValidationError(ValueError):
    """Malformed call input. Carries the InputErrorKind reported to callers."""

    def __init__(self, kind: InputErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind


_CHANNEL_CODES = {3: cv2.COLOR_RGB2GRAY, 4: cv2.COLOR_RGBA2GRAY}


def to_gray_u8(img: Any) -> np.ndarray:
    """
    Grayscale uint8 view of an (H,W), (H,W,1), (H,W,3 RGB) or (H,W,4 RGBA) array.
    """
    if img is None:
        raise InputValidationError(InputErrorKind.NULL_BUFFER, "image is None")
    if not isinstance(img, np.ndarray):
        raise InputValidationError(InputErrorKind.INVALID_DIMENSIONS, "image must be a numpy ndarray")
    if img.size == 0:
        raise InputValidationError(InputErrorKind.EMPTY_BUFFER, "image is empty")
    if img.ndim == 3 and img.shape[2] == 1:
        img = img[:, :, 0]
    if img.ndim == 2:
        g = img
    elif img.ndim == 3 and img.shape[2] in _CHANNEL_CODES:
        src = img if img.dtype == np.uint8 else np.clip(img, 0, 255).astype(np.uint8)
        g = cv2.cvtColor(np.ascontiguousarray(src), _CHANNEL_CODES[img.shape[2]])
    elif img.ndim == 3:
        raise InputValidationError(InputErrorKind.INVALID_CHANNELS, f"unsupported channel count {img.shape[2]}")
    else:
        raise InputValidationError(InputErrorKind.INVALID_DIMENSIONS, f"unsupported image shape {img.shape}")
    if g.dtype != np.uint8:
        g = np.clip(g, 0, 255).astype(np.uint8)
    return np.ascontiguousarray(g)


def gray_from_raw(
    data: Optional[Any],
    width: int,
    height: int,
    channels: int,
    row_stride: Optional[int] = None,
) -> np.ndarray:
    """
    Interpret a raw interleaved uint8 buffer (bytes-like or ndarray) as an image
    and convert it to grayscale.

    `row_stride` is the number of bytes between row starts for padded camera
    planes; None or width*channels means tightly packed. Padding bytes are
    dropped. The last row need not carry its padding.
    """
    if data is None:
        raise InputValidationError(InputErrorKind.NULL_BUFFER, "pixel buffer is None")
    if width <= 0 or height <= 0:
        raise InputValidationError(InputErrorKind.INVALID_DIMENSIONS, f"invalid size {width}x{height}")
    if channels not in (1, 3, 4):
        raise InputValidationError(InputErrorKind.INVALID_CHANNELS, f"unsupported channel count {channels}")
    row_bytes = int(width) * int(channels)
    stride = row_bytes if row_stride is None else int(row_stride)
    if stride < row_bytes:
        raise InputValidationError(
            InputErrorKind.INVALID_DIMENSIONS,
            f"row stride {stride} is shorter than a {width}x{channels} row",
        )
    buf = np.frombuffer(data, dtype=np.uint8) if not isinstance(data, np.ndarray) else data.reshape(-1)
    need = stride * (int(height) - 1) + row_bytes
    if buf.size == 0:
        raise InputValidationError(InputErrorKind.EMPTY_BUFFER, "pixel buffer is empty")
    if buf.size < need:
        raise InputValidationError(
            InputErrorKind.INVALID_DIMENSIONS,
            f"buffer holds {buf.size} bytes, {need} required for {width}x{height}x{channels} (stride {stride})",
        )
    buf = buf.astype(np.uint8, copy=False)
    if stride == row_bytes:
        img = buf[: row_bytes * int(height)]
    else:
        # pad the short last row so the buffer reshapes to (height, stride)
        padded = np.concatenate([buf[:need], np.zeros(stride - row_bytes, dtype=np.uint8)])
        img = np.ascontiguousarray(padded.reshape(int(height), stride)[:, :row_bytes])
    shape = (height, width) if channels == 1 else (height, width, channels)
    return to_gray_u8(img.reshape(shape))


def decode_gray(
    data: Optional[bytes],
    failure_kind: InputErrorKind = InputErrorKind.DECODE_FAILED,
) -> np.ndarray:
    """Decode JPEG/PNG bytes straight to grayscale."""
    if data is None:
        raise InputValidationError(InputErrorKind.NULL_BUFFER, "encoded buffer is None")
    if len(data) == 0:
        raise InputValidationError(InputErrorKind.EMPTY_BUFFER, "encoded buffer is empty")
    arr = np.frombuffer(data, dtype=np.uint8)
    gray = cv2.imdecode(arr, cv2.IMREAD_GRAYSCALE)
    if gray is None or gray.size == 0:
        raise InputValidationError(failure_kind, "failed to decode image bytes")
    return gray
