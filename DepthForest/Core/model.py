"""
Depth Forest Model

Wraps scikit-learn's random forests around a bank of randomized feature
responses: the responses turn collection samples into a feature matrix,
the forest grows trees over it.
"""

import os
import numpy as np
import joblib
from sklearn.ensemble import RandomForestClassifier, RandomForestRegressor
from sklearn.metrics import accuracy_score, f1_score, mean_absolute_error, r2_score
from typing import Dict, List, Optional, Union

from .collection import DataPointCollection
from .feature_response import FeatureResponse


def feature_matrix(data: DataPointCollection, responses: List[FeatureResponse],
                   indices: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Evaluate every feature response at the given samples.

    Returns:
        Array of shape (len(indices), len(responses)); column j holds responses[j]
    """
    if indices is None:
        indices = data.sample_indices()
    X = np.empty((len(indices), len(responses)), dtype=np.float32)
    for j, response in enumerate(responses):
        X[:, j] = response.get_responses(data, indices)
    return X


class DepthForestModel:
    """
    Decision forest over randomized depth/intensity feature responses.

    Classification forests predict depth bin labels, regression forests predict depth values.
    """

    def __init__(self, config: Optional[Dict] = None, classification: bool = True):
        """
        Initialize the forest.

        Args:
            config: Configuration dictionary or None to use defaults
            classification: Build a classifier (True) or a regressor (False)
        """
        self.config = config or {}
        self.classification = classification
        self.model = None
        self.responses: List[FeatureResponse] = []
        self.is_trained = False

        self._initialize_model()

    def _initialize_model(self) -> None:
        """Initialize the forest with configuration"""
        model_config = self.config.get('model', {})

        rf_params = {
            'n_estimators': model_config.get('n_estimators', 10),
            'max_depth': model_config.get('max_depth', 20),
            'min_samples_split': model_config.get('min_samples_split', 2),
            'min_samples_leaf': model_config.get('min_samples_leaf', 1),
            'max_features': model_config.get('max_features', 'sqrt'),
            'bootstrap': model_config.get('bootstrap', True),
            'n_jobs': model_config.get('n_jobs', -1),
            'random_state': model_config.get('random_state', 42),
            'verbose': model_config.get('verbose', 0)
        }

        if self.classification:
            self.model = RandomForestClassifier(**rf_params)
        else:
            self.model = RandomForestRegressor(**rf_params)

        print(f"[DepthForestModel] Initialized {type(self.model).__name__}:")
        print(f"  n_estimators: {rf_params['n_estimators']}")
        print(f"  max_depth: {rf_params['max_depth']}")

    def fit(self, data: DataPointCollection, responses: List[FeatureResponse],
            indices: Optional[np.ndarray] = None) -> None:
        """
        Train the forest on the samples of a collection.

        Args:
            data: Training collection, labelled for classification or with targets for regression
            responses: Feature response bank, kept with the model for prediction
            indices: Optional subset of sample indices
        """
        if indices is None:
            indices = data.sample_indices()
        y = self._outputs(data, indices)
        X = feature_matrix(data, responses, indices)

        print(f"[DepthForestModel] Training on {X.shape[0]} samples with {X.shape[1]} features")
        self.model.fit(X, y)
        self.responses = list(responses)
        self.is_trained = True
        print(f"[DepthForestModel] Training completed")

    def predict(self, data: DataPointCollection, indices: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Predict labels (or depths) for samples of a collection.

        Returns:
            One prediction per sample index
        """
        if not self.is_trained:
            raise ValueError("Model must be trained before prediction")
        if indices is None:
            indices = data.sample_indices()
        if len(indices) == 0:
            return np.empty(0, dtype=np.float64)
        return self.model.predict(feature_matrix(data, self.responses, indices))

    def evaluate(self, data: DataPointCollection, indices: Optional[np.ndarray] = None) -> Dict[str, float]:
        """
        Evaluate the model against the labels or targets stored in a collection.

        Returns:
            Dictionary with evaluation metrics
        """
        if not self.is_trained:
            raise ValueError("Model must be trained before evaluation")
        if indices is None:
            indices = data.sample_indices()

        y_true = self._outputs(data, indices)
        y_pred = self.predict(data, indices)

        if self.classification:
            metrics = {
                'accuracy': float(accuracy_score(y_true, y_pred)),
                'f1_macro': float(f1_score(y_true, y_pred, average='macro', zero_division=0)),
            }
        else:
            metrics = {
                'mae': float(mean_absolute_error(y_true, y_pred)),
                'r2': float(r2_score(y_true, y_pred)) if len(y_true) > 1 else 0.0,
            }

        print("\n[DepthForestModel] Evaluation Results:")
        for metric, value in metrics.items():
            print(f"  {metric}: {value:.4f}")

        return metrics

    def _outputs(self, data: DataPointCollection, indices: np.ndarray) -> np.ndarray:
        if self.classification:
            if not data.has_labels():
                raise ValueError("Classification needs a collection with labels")
            return data.labels[indices]
        if not data.has_targets():
            raise ValueError("Regression needs a collection with targets")
        return data.targets[indices]

    def save_model(self, path: str) -> None:
        """
        Save the trained forest together with its feature response bank.

        Args:
            path: Path to save the model
        """
        if not self.is_trained:
            raise ValueError("Model must be trained before saving")

        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        model_data = {
            'model': self.model,
            'responses': self.responses,
            'classification': self.classification,
            'config': self.config,
            'is_trained': self.is_trained
        }

        joblib.dump(model_data, path)
        print(f"[DepthForestModel] Model saved to: {path}")

    def load_model(self, path: str) -> None:
        """
        Load a trained forest from file.

        Args:
            path: Path to the saved model
        """
        if not os.path.exists(path):
            raise FileNotFoundError(f"Model file not found: {path}")

        model_data = joblib.load(path)

        self.model = model_data['model']
        self.responses = model_data['responses']
        self.classification = model_data.get('classification', True)
        self.config = model_data.get('config', {})
        self.is_trained = model_data.get('is_trained', True)

        print(f"[DepthForestModel] Model loaded from: {path}")

    def get_model_info(self) -> Dict[str, Union[str, int, bool]]:
        if not self.is_trained:
            return {'status': 'not_trained'}

        info = {
            'model_type': type(self.model).__name__,
            'n_estimators': self.model.n_estimators,
            'max_depth': self.model.max_depth,
            'n_features': self.model.n_features_in_,
            'feature_types': sorted({type(r).__name__ for r in self.responses}),
            'is_trained': self.is_trained
        }
        if self.classification:
            info['n_classes'] = int(self.model.n_classes_)

        return info
