"""
Image preprocessing functions for Order Form OCR.

Contains grayscale conversion, binarization and rescaling used ahead of
grid line detection.
"""

import cv2
import numpy as np


class ImagePreprocessor:
    """Turns a photographed form into a black-on-white binary image."""

    def __init__(
        self,
        interpolation: int = cv2.INTER_LINEAR
    ):
        self.interpolation = interpolation

    def to_gray(self, image: np.ndarray) -> np.ndarray:
        if image is None:
            return None

        if len(image.shape) == 3:
            return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        return image.copy()

    def binarize(self, image: np.ndarray) -> np.ndarray:
        """
        Otsu threshold to a 0/255 image.

        Args:
            image: BGR or grayscale image

        Returns:
            Binary image with ink as 0 and paper as 255
        """
        gray = self.to_gray(image)
        if gray is None:
            return None

        _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        return binary

    def rescale(self, image: np.ndarray, scale: float) -> np.ndarray:
        """Resize by a factor; smaller scale is faster but less accurate."""
        if scale <= 0:
            raise ValueError(f"Scale must be positive, got {scale}")
        if scale == 1.0:
            return image
        return cv2.resize(image, None, fx=scale, fy=scale, interpolation=self.interpolation)
