"""
Depth Binning

Maps 16-bit depth frames to 8-bit class label frames through a lookup table
indexed by depth value. Label 0 is reserved for invalid depth.
"""

import numpy as np

from .errors import ConfigurationError, FormatError

INVALID_LABEL = 0
# Label the inverted bin table gives to the farthest depths.
BACKGROUND_LABEL = 1
RAW_MAX_DEPTH = 65000


def resolve_max_depth(depth_raw: bool, max_range: int) -> int:
    """Raw sensor units span up to 65000, millimeter frames use the configured range."""
    return RAW_MAX_DEPTH if depth_raw else int(max_range)


def generate_depth_bin_map(invert: bool, bins: int, max_depth: int) -> np.ndarray:
    """
    Build the depth -> label lookup table.

    Depths 1..max_depth are split into `bins` equal-width bins labelled 1..bins
    from near to far. With `invert` the labels run far to near, so the farthest
    bin is labelled 1. Depth 0 maps to the invalid label.

    Returns:
        uint8 array of length max_depth + 1
    """
    if not 1 <= bins <= 255:
        raise ConfigurationError(f"Bin count must be within 1..255, got {bins}")
    if max_depth < bins:
        raise ConfigurationError(f"Maximum depth ({max_depth}) must be at least the bin count ({bins})")

    depths = np.arange(1, max_depth + 1, dtype=np.int64)
    labels = (depths - 1) * bins // max_depth + 1
    if invert:
        labels = bins + 1 - labels

    table = np.zeros(max_depth + 1, dtype=np.uint8)
    table[1:] = labels
    return table


def label_table(pix_to_label) -> np.ndarray:
    """
    Copy a depth -> label lookup table as uint8.

    Raises ConfigurationError for anything that is not a 1D table of labels in
    0..255, so out-of-range labels never wrap onto the invalid label.
    """
    values = np.asarray(pix_to_label)
    if values.ndim != 1:
        raise ConfigurationError(f"Depth bin table must be 1D, got shape {values.shape}")
    if values.size and (values.min() < 0 or values.max() > 255):
        raise ConfigurationError(
            f"Depth bin labels must be within 0..255, got {values.min()}..{values.max()}")
    return np.array(values, dtype=np.uint8)


def create_label_matrix(depth_image: np.ndarray, pix_to_label: np.ndarray) -> np.ndarray:
    """
    Classify every pixel of a depth frame into its depth bin.

    label[p] = pix_to_label[depth[p]] when depth[p] < len(pix_to_label), else 0.
    """
    if depth_image.ndim != 2:
        raise FormatError(f"Depth frame must be single channel, got shape {depth_image.shape}")
    table = pix_to_label
    if not (isinstance(table, np.ndarray) and table.dtype == np.uint8):
        table = label_table(table)
    depth =depth_image.astype(np.int64, copy=False)
    in_range = depth < len(table)
    labels = np.zeros(depth.shape, dtype=np.uint8)
    labels[in_range] = table[depth[in_range]]
    return labels


def tallest_bin(label_image: np.ndarray) -> int:
    """Most populous label in a label frame; ties go to the smaller label."""
    counts = np.bincount(label_image.ravel(), minlength=1)
    return int(np.argmax(counts))
