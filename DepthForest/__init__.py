"""
DepthForest - Decision forests over paired intensity/depth frames

This package prepares training samples for depth forests: it bins depth
frames into class labels, filters pixels into a sample collection and
evaluates the randomized feature responses trees split on.

Usage Examples:

1. Building a collection and training:
    from DepthForest import DepthForestPipeline

    pipeline = DepthForestPipeline("DepthForest/config_depthforest.yaml")
    pipeline.prepare_data()
    pipeline.initialize_model()
    pipeline.train()

2. Predicting a depth bin map for one frame:
    labels = pipeline.predict_frame("data/test/frame_7ir.png")

3. Using the core directly:
    from DepthForest import DataPointCollection, PixelSubtractionResponse, Random

    data = DataPointCollection.load_images("data/train/", prefix="frame_", number=10)
    feature = PixelSubtractionResponse.create_random(Random(1), data.dimensions())
    feature.get_response(data, 0)
"""

from .pipeline import DepthForestPipeline, build_collection, create_depth_forest_pipeline

from .Core.collection import ALL_CLASSES, DataPointCollection
from .Core.errors import ConfigurationError, DepthForestError, FormatError
from .Core.feature_response import FeatureKind, PixelSubtractionResponse, RandomHyperplaneFeatureResponse
from .Core.random_source import Random
from .Core.model import DepthForestModel
from .Core.trainer import DepthForestTrainer
from .Core.inference import DepthForestInference

__version__ = "1.0.0"

__all__ = [
    'DepthForestPipeline',
    'build_collection',
    'create_depth_forest_pipeline',
    'ALL_CLASSES',
    'DataPointCollection',
    'ConfigurationError',
    'DepthForestError',
    'FormatError',
    'FeatureKind',
    'PixelSubtractionResponse',
    'RandomHyperplaneFeatureResponse',
    'Random',
    'DepthForestModel',
    'DepthForestTrainer',
    'DepthForestInference'
]
