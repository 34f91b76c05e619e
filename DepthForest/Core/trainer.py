"""
Depth Forest Trainer

Draws a reproducible bank of random feature responses for a collection
and fits a DepthForestModel on it.
"""

import os
import time
import numpy as np
from typing import Dict, List, Optional

from Util.config import Config
from .collection import DataPointCollection
from .feature_response import FeatureKind, FeatureResponse, create_feature_response
from .model import DepthForestModel
from .random_source import Random


class DepthForestTrainer:
    """
    Trainer class for depth forests.
    """

    def __init__(self, config_path: str):
        """
        Initialize the trainer.

        Args:
            config_path: Path to configuration file
        """
        self.config_path = config_path
        self.config = Config.load(config_path)

        training_config = Config.section(self.config, 'training')
        self.n_features = training_config.get('n_features', 100)
        self.max_samples = training_config.get('max_samples', None)
        self.seed = training_config.get('seed', 0)

        self.model_save_path = self.config.get('model_save_path', 'DepthForest/SavedModels/depthforest.pkl')

        self.model = None
        self.random = Random(self.seed)
        self.training_time = 0
        self.train_indices = None

        print(f"[DepthForestTrainer] Initialized")
        print(f"  Config: {os.path.basename(config_path)}")
        print(f"  Features per forest: {self.n_features}")
        print(f"  Model save path: {self.model_save_path}")

    def initialize_model(self, classification: bool = True) -> DepthForestModel:
        """Initialize the forest model"""
        self.model = DepthForestModel(self.config, classification=classification)
        print(f"[DepthForestTrainer] Model initialized successfully")
        return self.model

    def draw_responses(self, kind: FeatureKind, dimensions: int) -> List[FeatureResponse]:
        """Draw n_features responses of one family from the trainer's seeded random source."""
        return [create_feature_response(kind, self.random, dimensions) for _ in range(self.n_features)]

    def select_samples(self, data: DataPointCollection) -> np.ndarray:
        """All sample indices, or a seeded random subset of max_samples of them."""
        total = data.count()
        if self.max_samples is None or total <= self.max_samples:
            return data.sample_indices()
        return self.random.choice(total, self.max_samples)

    def train(self, data: DataPointCollection) -> Dict[str, float]:
        """
        Train a forest on a collection.

        Args:
            data: Collection from DataPointCollection.load_images

        Returns:
            Training metrics
        """
        if data.count() == 0:
            raise ValueError("Collection has no samples to train on")
        if self.model is None:
            self.initialize_model(classification=data.has_labels())

        print(f"[DepthForestTrainer] Starting training...")
        start_time = time.time()

        kind = data.feature_kind or FeatureKind.PIXEL_DIFFERENCE
        responses = self.draw_responses(kind, data.dimensions())
        self.train_indices = self.select_samples(data)

        print(f"[DepthForestTrainer] Training samples: {len(self.train_indices)} of {data.count()}")
        if data.has_labels():
            classes, counts = np.unique(data.labels[self.train_indices], return_counts=True)
            print(f"[DepthForestTrainer] Class counts: {dict(zip(classes.tolist(), counts.tolist()))}")

        self.model.fit(data, responses, self.train_indices)

        self.training_time = time.time() - start_time
        print(f"[DepthForestTrainer] Training completed in {self.training_time:.2f} seconds")

        train_metrics = self.model.evaluate(data, self.train_indices)
        print(f"[DepthForestTrainer] Training metrics: {train_metrics}")

        return train_metrics

    def evaluate(self, data: DataPointCollection) -> Dict[str, float]:
        """
        Evaluate the model on a held-out collection.
        """
        if self.model is None or not self.model.is_trained:
            raise ValueError("Model not trained. Call train() first.")

        print(f"[DepthForestTrainer] Evaluating model...")
        test_metrics = self.model.evaluate(data)
        print(f"[DepthForestTrainer] Test metrics: {test_metrics}")

        return test_metrics

    def save_model(self, save_path: Optional[str] = None):
        if self.model is None:
            raise ValueError("No model to save. Train the model first.")

        save_path = save_path or self.model_save_path
        self.model.save_model(save_path)
        print(f"[DepthForestTrainer] Model saved to: {save_path}")

    def load_model(self, load_path: Optional[str] = None):
        load_path = load_path or self.model_save_path

        if not os.path.exists(load_path):
            raise FileNotFoundError(f"Model file not found: {load_path}")

        if self.model is None:
            self.initialize_model()

        self.model.load_model(load_path)
        print(f"[DepthForestTrainer] Model loaded from: {load_path}")

    def get_training_summary(self) -> Dict:
        return {
            'model_type': type(self.model.model).__name__ if self.model is not None else None,
            'training_time': self.training_time,
            'feature_count': self.n_features,
            'train_samples': 0 if self.train_indices is None else len(self.train_indices),
            'seed': self.seed,
            'config_path': self.config_path
        }
