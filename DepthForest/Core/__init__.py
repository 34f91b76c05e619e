"""
DepthForest Core - sample collection and feature responses for depth forests

Core Components:
- binning: depth frame -> depth bin label frame
- random_source: seedable uniform random numbers
- feature_response: randomized split features (random hyperplane sum, pixel subtraction)
- collection: DataPointCollection, the training sample set over an image corpus
- model: scikit-learn forest over a feature response bank
- trainer: training pipeline for depth forests
- inference: per-pixel prediction for a single frame
"""

from .errors import ConfigurationError, DepthForestError, FormatError
from .binning import create_label_matrix, generate_depth_bin_map, tallest_bin
from .random_source import Random
from .feature_response import (
    FeatureKind,
    PixelSubtractionResponse,
    RandomHyperplaneFeatureResponse,
    create_feature_response,
    randn,
)
from .collection import ALL_CLASSES, DataPointCollection
from .model import DepthForestModel, feature_matrix
from .trainer import DepthForestTrainer
from .inference import DepthForestInference

__all__ = [
    'ConfigurationError',
    'DepthForestError',
    'FormatError',
    'create_label_matrix',
    'generate_depth_bin_map',
    'tallest_bin',
    'Random',
    'FeatureKind',
    'PixelSubtractionResponse',
    'RandomHyperplaneFeatureResponse',
    'create_feature_response',
    'randn',
    'ALL_CLASSES',
    'DataPointCollection',
    'DepthForestModel',
    'feature_matrix',
    'DepthForestTrainer',
    'DepthForestInference'
]
