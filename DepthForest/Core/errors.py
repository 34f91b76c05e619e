"""
Exceptions raised while building sample collections.
"""


class DepthForestError(Exception):
    """Base class for DepthForest errors"""


class ConfigurationError(DepthForestError, ValueError):
    """Invalid build parameters: missing source directory, even patch size, bad bin table settings."""


class FormatError(DepthForestError, ValueError):
    """A frame has an unexpected pixel type, channel layout or size."""
