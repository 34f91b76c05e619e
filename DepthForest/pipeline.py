"""
Depth Forest Pipeline

This module provides the main pipeline class that combines sample collection,
training and inference for depth forests on paired intensity/depth frames.
"""

import os
from typing import Dict, List, Optional
import numpy as np

from .Core.collection import ALL_CLASSES, DataPointCollection
from .Core.errors import ConfigurationError
from .Core.feature_response import FeatureKind
from .Core.trainer import DepthForestTrainer
from .Core.inference import DepthForestInference
from Util.config import Config


def build_collection(data_config: Dict) -> DataPointCollection:
    """
    Build a training collection from the 'data' section of a config.
    """
    if 'path' not in data_config:
        raise ConfigurationError("Config section 'data' needs a 'path' entry")

    return DataPointCollection.load_images(
        path=data_config['path'],
        prefix=data_config.get('prefix', ''),
        first=data_config.get('first', 0),
        number=data_config.get('number', 1),
        image_size=(data_config.get('width', 640), data_config.get('height', 480)),
        patch_size=data_config.get('patch_size', 5),
        classification=data_config.get('classification', True),
        class_number=data_config.get('class_number', ALL_CLASSES),
        train_on_zero=data_config.get('train_on_zero', False),
        closeup=data_config.get('closeup', True),
        depth_raw=data_config.get('depth_raw', False),
        feature_kind=FeatureKind(data_config.get('feature_kind', FeatureKind.PIXEL_DIFFERENCE.value)),
        bins=data_config.get('bins', 6),
        max_range=data_config.get('max_range', 1500),
        threshold=data_config.get('threshold', 0),
        webcam=data_config.get('webcam', False),
    )


class DepthForestPipeline:
    """
    Main pipeline class for depth forests.
    Provides a unified interface for sample collection, training, evaluation and inference.
    """
    def __init__(self, config_path: str = "DepthForest/config_depthforest.yaml"):
        self.config_path = config_path
        self.config = Config.load(config_path)
        self.collection = None  # Will be set by prepare_data
        self.trainer = DepthForestTrainer(config_path)
        self.inference_engine = None
        print(f"[DepthForestPipeline] Initialized with config: {config_path}")

    def prepare_data(self, data_config: Optional[Dict] = None) -> DataPointCollection:
        """
        Build the training collection from the config's 'data' section (or an override dict).
        """
        print(f"[DepthForestPipeline] Preparing data...")
        self.collection = build_collection(data_config or Config.section(self.config, 'data'))
        print(f"[DepthForestPipeline] Data preparation completed: {self.collection}")
        return self.collection

    def initialize_model(self):
        print(f"[DepthForestPipeline] Initializing model...")
        classification = Config.section(self.config, 'data').get('classification', True)
        return self.trainer.initialize_model(classification=classification)

    def train(self):
        print(f"[DepthForestPipeline] Starting training...")
        if self.collection is None:
            raise ValueError("Must call prepare_data() first")

        train_metrics = self.trainer.train(self.collection)
        self.trainer.save_model()
        print(f"[DepthForestPipeline] Training completed")
        return train_metrics

    def evaluate(self, collection: Optional[DataPointCollection] = None):
        print(f"[DepthForestPipeline] Evaluating model...")
        if collection is None:
            collection = self.collection
        if collection is None:
            raise ValueError("Must call prepare_data() first")
        return self.trainer.evaluate(collection)

    def load_weights(self, path: str):
        print(f"[DepthForestPipeline] Loading model from: {path}")
        self.trainer.load_model(path)

    def initialize_inference(self, model_path: Optional[str] = None):
        model_path = model_path or self.trainer.model_save_path
        if not model_path or not os.path.exists(model_path):
            raise FileNotFoundError(f"Model file not found: {model_path}")
        self.inference_engine = DepthForestInference(model_path, self.config_path)
        print(f"[DepthForestPipeline] Inference engine initialized")

    def predict(self, image_paths: List[str], output_dir: Optional[str] = None) -> List[np.ndarray]:
        if self.inference_engine is None:
            self.initialize_inference()
        print(f"[DepthForestPipeline] Running inference on {len(image_paths)} images...")
        predictions = self.inference_engine.predict_from_paths(image_paths)
        if output_dir:
            image_names = [os.path.basename(path) for path in image_paths]
            self.inference_engine.save_predictions(predictions, output_dir, image_names)
        return predictions

    def predict_frame(self, image_path: str) -> np.ndarray:
        return self.predict([image_path])[0]

    def get_model_info(self) -> Dict:
        if self.trainer.model is not None:
            return self.trainer.model.get_model_info()
        elif self.inference_engine is not None:
            return self.inference_engine.get_model_info()
        else:
            return {"status": "not_initialized"}

    def get_collection_statistics(self) -> Dict:
        if self.collection is None:
            return {}

        stats = {
            'n_images': len(self.collection.images),
            'n_samples': self.collection.count(),
            'skipped_frames': list(self.collection.skipped_frames),
            'low_memory': self.collection.low_memory,
            'dimension': self.collection.dimensions(),
        }
        if self.collection.has_labels():
            classes, counts = np.unique(self.collection.labels, return_counts=True)
            stats['class_counts'] = dict(zip(classes.tolist(), counts.tolist()))
        if self.collection.has_targets() and len(self.collection.targets) > 0:
            stats['target_mean'] = float(np.mean(self.collection.targets))
            stats['target_std'] = float(np.std(self.collection.targets))
        return stats


# Factory function for easy instantiation
def create_depth_forest_pipeline(config_path: str = "DepthForest/config_depthforest.yaml") -> DepthForestPipeline:
    return DepthForestPipeline(config_path)
