import cv2
import numpy as np

class ImagePreprocessing:
    @staticmethod
    def threshold(image: np.ndarray, threshold: int = 0) -> np.ndarray:
        """
        Zeroes every intensity pixel at or below the threshold, keeps the rest unchanged.
        image: numpy array of shape (H, W), dtype=np.uint8
        Returns: numpy array of shape (H, W), dtype=np.uint8
        """
        if not isinstance(image, np.ndarray):
            raise TypeError("Input image must be a numpy array.")
        if image.size == 0:
            raise ValueError("Input image cannot be empty.")
        if image.ndim != 2:
            raise ValueError(f"Image must be 2D (single channel). Got {image.ndim} dimensions.")
        if image.dtype != np.uint8:
            raise TypeError(f"Image dtype must be np.uint8 for thresholding. Got {image.dtype}.")
        if not 0 <= threshold <= 255:
            raise ValueError(f"threshold must be within 0..255. Got {threshold}.")

        _, result = cv2.threshold(image, threshold, 255, cv2.THRESH_TOZERO)
        return result

    @staticmethod
    def preprocess(image: np.ndarray, threshold: int = 0) -> np.ndarray:
        """
        Intensity preprocessing applied to every training and inference frame.
        Output has the same size and dtype as the input.
        """
        return ImagePreprocessing.threshold(image, threshold)
