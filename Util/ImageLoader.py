import os
from typing import Optional
import numpy as np
import cv2

class ImageLoader:
    @staticmethod
    def frame_path(path: str, prefix: str, index: int, suffix: str) -> str:
        return os.path.join(path, f"{prefix}{index}{suffix}")

    @staticmethod
    def load_frame(path: str) -> Optional[np.ndarray]:
        """
        Read a frame without any conversion so its native pixel type survives
        (8-bit intensity stays uint8, 16-bit depth stays uint16).
        Returns None when the file is missing or cannot be decoded.
        """
        if not os.path.isfile(path):
            return None
        return cv2.imread(path, cv2.IMREAD_UNCHANGED)

    @staticmethod
    def load_frame_pair(path: str, prefix: str, index: int, webcam: bool = False) -> tuple:
        """
        Load the (intensity, depth) pair for one frame index.
        Intensity is '{prefix}{index}cam.png' for a webcam source and '{prefix}{index}ir.png' otherwise,
        depth is always '{prefix}{index}depth.png'.
        Returns (intensity, depth, intensity_path, depth_path); a frame that failed to load is None.
        """
        intensity_suffix = "cam.png" if webcam else "ir.png"
        intensity_path = ImageLoader.frame_path(path, prefix, index, intensity_suffix)
        depth_path = ImageLoader.frame_path(path, prefix, index, "depth.png")
        intensity = ImageLoader.load_frame(intensity_path)
        depth = ImageLoader.load_frame(depth_path)
        return intensity, depth, intensity_path, depth_path
