"""
Depth Forest Inference Engine

Runs a trained depth forest over a single intensity frame and returns a
per-pixel prediction map.
"""

import os
import time
import numpy as np
import cv2
from typing import Dict, List, Optional

from Util.config import Config
from Util.ImageLoader import ImageLoader
from .collection import DataPointCollection
from .errors import FormatError
from .model import DepthForestModel


class DepthForestInference:
    """
    Inference engine for trained depth forests.
    """

    def __init__(self, model_path: str, config_path: Optional[str] = None):
        """
        Initialize the inference engine.

        Args:
            model_path: Path to trained model file
            config_path: Optional path to configuration file
        """
        self.model_path = model_path
        self.config = Config.load(config_path) if config_path else {}

        self.model = DepthForestModel(self.config)
        self.model.load_model(model_path)

        inference_config = Config.section(self.config, 'inference')
        self.include_zero = inference_config.get('include_zero', False)
        self.pre_process = inference_config.get('pre_process', True)
        self.threshold = inference_config.get('threshold', Config.section(self.config, 'data').get('threshold', 0))

        print(f"[DepthForestInference] Initialized")
        print(f"  Model: {model_path}")
        print(f"  Include zero pixels: {self.include_zero}")
        print(f"  Threshold: {self.threshold if self.pre_process else 'off'}")

    def predict_image(self, image: np.ndarray) -> np.ndarray:
        """
        Predict a depth bin (or depth value) for every sampled pixel of a frame.

        Args:
            image: Single channel uint8 intensity frame of shape (H, W)

        Returns:
            Prediction map of shape (H, W); pixels that were not sampled are 0
        """
        print(f"[DepthForestInference] Predicting image of shape: {image.shape}")
        start_time = time.time()

        height, width = image.shape[:2]
        data = DataPointCollection.load_mat(image, (width, height), inc_zero=self.include_zero,
                                            pre_process=self.pre_process, pp_value=self.threshold)

        dtype = np.uint8 if self.model.classification else np.float32
        prediction_map = np.zeros((height, width), dtype=dtype)
        if data.count() == 0:
            print("Warning: No samples found in frame")
            return prediction_map

        indices = data.sample_indices()
        predictions = self.model.predict(data, indices)
        _, rows, cols = data.locate(data.get_addresses(indices))
        prediction_map[rows, cols] = predictions

        inference_time = time.time() - start_time
        print(f"[DepthForestInference] Inference completed in {inference_time:.2f} seconds")

        return prediction_map

    def predict_from_paths(self, image_paths: List[str]) -> List[np.ndarray]:
        """
        Predict from intensity frame file paths.
        """
        print(f"[DepthForestInference] Loading and predicting {len(image_paths)} images")

        predictions = []
        for img_path in image_paths:
            image = ImageLoader.load_frame(img_path)
            if image is None:
                raise ValueError(f"Could not load image: {img_path}")
            if image.ndim != 2 or image.dtype != np.uint8:
                raise FormatError(f"Encountered image with unexpected content type:\n\t{img_path}")
            predictions.append(self.predict_image(image))

        return predictions

    def save_predictions(self, prediction_maps: List[np.ndarray],
                         output_dir: str,
                         image_names: Optional[List[str]] = None) -> None:
        """
        Save prediction maps as 8-bit (labels) or 16-bit (depth) PNG files.
        """
        os.makedirs(output_dir, exist_ok=True)

        if image_names is None:
            image_names = [f"prediction_{i:04d}" for i in range(len(prediction_maps))]

        print(f"[DepthForestInference] Saving {len(prediction_maps)} predictions to: {output_dir}")

        for pred_map, name in zip(prediction_maps, image_names):
            base_name = os.path.splitext(name)[0]
            out_path = os.path.join(output_dir, f"{base_name}_pred.png")
            if pred_map.dtype == np.uint8:
                cv2.imwrite(out_path, pred_map)
            else:
                cv2.imwrite(out_path, np.clip(pred_map, 0, 65535).astype(np.uint16))

        print(f"[DepthForestInference] Predictions saved successfully")

    def get_model_info(self) -> Dict:
        model_info = self.model.get_model_info()

        inference_info = {
            'include_zero': self.include_zero,
            'pre_process': self.pre_process,
            'threshold': self.threshold,
            'model_path': self.model_path
        }

        return {**model_info, **inference_info}
