"""
Image processing utility functions.
"""
import cv2
import numpy as np


def bytes_to_numpy_array(image_bytes: bytes, flags: int = cv2.IMREAD_COLOR) -> np.ndarray:
    """Convert image bytes to a numpy array.

    Args:
        image_bytes: Raw image bytes
        flags: OpenCV imread flags (default: COLOR)

    Returns:
        numpy.ndarray: Image as a numpy array

    Raises:
        ValueError: If the image cannot be decoded
    """
    np_array = np.frombuffer(image_bytes, np.uint8)

    img = cv2.imdecode(np_array, flags)

    if img is None:
        raise ValueError("Failed to decode image bytes")

    return img


def resize_long_edge(image: np.ndarray, long_edge: int) -> np.ndarray:
    """Scale an image so its longer side equals ``long_edge`` pixels.

    Aspect ratio is preserved. Images already at the target size are
    returned unchanged.
    """
    height, width = image.shape[:2]
    current = max(height, width)
    if current == long_edge or current == 0:
        return image

    scale = long_edge / current
    new_size = (max(1, round(width * scale)), max(1, round(height * scale)))
    interpolation = cv2.INTER_AREA if scale < 1 else cv2.INTER_LINEAR
    return cv2.resize(image, new_size, interpolation=interpolation)
