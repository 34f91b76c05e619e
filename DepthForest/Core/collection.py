"""
Sample Collection

DataPointCollection owns the preprocessed intensity corpus and the training
samples drawn from it. Samples are addressed by flattened pixel address

    address = image_ordinal * step + row * width + col,   step = width * height

Either explicitly (an index array of addresses, produced when pixels are
filtered) or implicitly in "low memory" mode, where sample i is simply the
i-th pixel of the corpus in raster order.

Collections are built once through load_images (training batches) or
load_mat (a single frame for inference) and are read-only afterwards.
"""

import os
import numpy as np
from typing import List, Optional, Tuple

from Data.Preprocessing import ImagePreprocessing
from Util.ImageLoader import ImageLoader
from .binning import (
    BACKGROUND_LABEL,
    create_label_matrix,
    generate_depth_bin_map,
    label_table,
    resolve_max_depth,
    tallest_bin,
)
from .errors import ConfigurationError, FormatError
from .feature_response import FeatureKind

ALL_CLASSES = -1


def _frozen(array: Optional[np.ndarray]) -> Optional[np.ndarray]:
    """Read-only private copy; the caller's array stays writable."""
    if array is None:
        return None
    array = np.array(array)
    array.setflags(write=False)
    return array


def _concat(chunks: List[np.ndarray], dtype) -> np.ndarray:
    if not chunks:
        return np.empty(0, dtype=dtype)
    return np.concatenate(chunks).astype(dtype, copy=False)


class DataPointCollection:
    """
    Immutable training sample set over an image corpus.

    Attributes:
        images: uint8 array of shape (N, height, width), the preprocessed corpus
        image_size: (width, height) of every frame
        step: pixels per frame
        dimension: feature geometry size handed to the feature responses
        feature_kind: feature family the dimension was derived for (None for inference collections)
        low_memory: samples are addressed implicitly in raster order
        data: explicit flattened addresses, or None in low memory mode
        labels: per-sample depth bin labels (classification) or None
        targets: per-sample depth values (regression) or None
        pixel_labels: the depth bin table used for labelling, if any
        skipped_frames: requested frame indices that could not be loaded
    """

    def __init__(self, images: np.ndarray, image_size: Tuple[int, int], dimension: int,
                 feature_kind: Optional[FeatureKind] = None, low_memory: bool = False,
                 data: Optional[np.ndarray] = None, labels: Optional[np.ndarray] = None,
                 targets: Optional[np.ndarray] = None, pixel_labels: Optional[np.ndarray] = None,
                 train_on_zero: bool = False, depth_raw: bool = False,
                 skipped_frames: Optional[List[int]] = None):
        width, height = image_size
        self.image_size = (int(width), int(height))
        self.step = self.image_size[0] * self.image_size[1]
        self.images = _frozen(images)
        self.dimension = dimension
        self.feature_kind = feature_kind
        self.low_memory = low_memory
        self.data = _frozen(data)
        self.labels = _frozen(labels)
        self.targets = _frozen(targets)
        self.pixel_labels = _frozen(pixel_labels)
        self.train_on_zero = train_on_zero
        self.depth_raw = depth_raw
        self.skipped_frames = list(skipped_frames or [])

        for name, values in (("labels", self.labels), ("targets", self.targets)):
            if self.data is not None and values is not None and len(values) != len(self.data):
                raise ValueError(f"Index array ({len(self.data)}) and {name} ({len(values)}) differ in length")

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    @classmethod
    def load_images(cls, path: str, prefix: str = "", first: int = 0, number: int = 1,
                    image_size: Tuple[int, int] = (640, 480), patch_size: int = 5,
                    classification: bool = True, class_number: int = ALL_CLASSES,
                    train_on_zero: bool = False, closeup: bool = True, depth_raw: bool = False,
                    feature_kind: FeatureKind = FeatureKind.PIXEL_DIFFERENCE,
                    bins: int = 6, max_range: int = 1500, threshold: int = 0,
                    webcam: bool = False,
                    pixel_labels: Optional[np.ndarray] = None) -> "DataPointCollection":
        """
        Load frames `first .. first + number - 1` and build a training collection.

        Args:
            path: Directory holding the frames
            prefix: File name prefix, frames are '{prefix}{index}ir.png' (or 'cam.png') and '{prefix}{index}depth.png'
            first: First frame index
            number: Number of frames requested
            image_size: (width, height) every frame must have
            patch_size: Odd side length of the feature patch
            classification: Build labels (True) or regression targets (False)
            class_number: Depth bin kept for regression, ALL_CLASSES keeps every bin
            train_on_zero: Keep pixels whose preprocessed intensity is zero
            closeup: Disables the background-dominated frame filter
            depth_raw: Depth frames are raw sensor units rather than millimeters
            feature_kind: Feature family the collection will be queried with
            bins: Number of depth bins
            max_range: Maximum depth in millimeters when depth_raw is False
            threshold: Intensity preprocessing threshold
            webcam: Intensity frames come from a webcam ('cam.png') instead of IR ('ir.png')
            pixel_labels: Precomputed depth bin table, generated from bins/max_range when None

        Returns:
            DataPointCollection; callers should check count() and skipped_frames,
            unreadable frames are skipped rather than reported as errors.
        """
        if not os.path.isdir(path):
            raise ConfigurationError(f"Failed to find directory:\t{path}")
        if patch_size % 2 == 0:
            raise ConfigurationError(f"Patch size must be odd, got {patch_size}")

        feature_kind = FeatureKind(feature_kind)
        width, height = image_size
        dimension = feature_kind.dimension_for_patch(patch_size)
        low_memory = train_on_zero and (classification or class_number == ALL_CLASSES)

        if pixel_labels is None:
            pixel_labels = generate_depth_bin_map(True, bins, resolve_max_depth(depth_raw, max_range))
        pixel_labels = label_table(pixel_labels)

        print(f"[DataPointCollection] Loading {number} frames from {path} "
              f"({'classification' if classification else 'regression'}, low_memory={low_memory})")

        images = []
        address_chunks, label_chunks, target_chunks = [], [], []
        skipped = []

        for index in range(first, first + number):
            intensity, depth, intensity_path, depth_path = ImageLoader.load_frame_pair(path, prefix, index, webcam)

            if intensity is None or depth is None:
                failed = intensity_path if intensity is None else depth_path
                print(f"Warning: Failed to open image:\n\t{failed}")
                skipped.append(index)
                continue

            cls._check_frame_pair(intensity, depth, intensity_path, depth_path, (width, height))

            depth_labels = create_label_matrix(depth, pixel_labels)
            if not closeup and tallest_bin(depth_labels) == BACKGROUND_LABEL:
                print(f"[DataPointCollection] Frame {index} dominated by background bin, skipping")
                skipped.append(index)
                continue

            preprocessed = ImagePreprocessing.preprocess(intensity, threshold)
            ordinal = len(images)
            images.append(preprocessed)

            if classification:
                addresses, labels = cls._classification_samples(
                    preprocessed, depth_labels, train_on_zero, low_memory)
                label_chunks.append(labels)
            else:
                addresses, targets = cls._regression_samples(
                    preprocessed, depth, depth_labels, class_number, train_on_zero, low_memory)
                target_chunks.append(targets)

            if addresses is not None:
                address_chunks.append(addresses + ordinal * width * height)

        corpus = np.stack(images) if images else np.zeros((0, height, width), dtype=np.uint8)
        result = cls(
            images=corpus,
            image_size=(width, height),
            dimension=dimension,
            feature_kind=feature_kind,
            low_memory=low_memory,
            data=None if low_memory else _concat(address_chunks, np.int64),
            labels=_concat(label_chunks, np.uint8) if classification else None,
            targets=None if classification else _concat(target_chunks, np.float32),
            pixel_labels=pixel_labels,
            train_on_zero=train_on_zero,
            depth_raw=depth_raw,
            skipped_frames=skipped,
        )

        print(f"[DataPointCollection] Loaded {len(images)}/{number} frames, {result.count()} samples")
        return result

    @classmethod
    def load_mat(cls, mat_in: np.ndarray, image_size: Tuple[int, int], inc_zero: bool = False,
                 pre_process: bool = False, pp_value: int = 0) -> "DataPointCollection":
        """
        Wrap a single intensity frame as a collection for evaluating a trained forest.

        With inc_zero every pixel is a sample (low memory mode), otherwise only
        pixels with nonzero intensity are.
        """
        if mat_in.ndim != 2 or mat_in.dtype != np.uint8:
            raise FormatError(f"Incorrect image type, expecting single channel uint8, got {mat_in.dtype} {mat_in.shape}")
        width, height = image_size
        if mat_in.shape != (height, width):
            raise FormatError(f"Frame of shape {mat_in.shape} does not match image size {image_size}")

        frame = ImagePreprocessing.threshold(mat_in, pp_value) if pre_process else mat_in

        data = None
        if not inc_zero:
            data = np.flatnonzero(frame).astype(np.int64)

        return cls(
            images=frame[np.newaxis, ...],
            image_size=(width, height),
            dimension=1,
            low_memory=inc_zero,
            data=data,
        )

    @staticmethod
    def _check_frame_pair(intensity: np.ndarray, depth: np.ndarray, intensity_path: str,
                          depth_path: str, image_size: Tuple[int, int]) -> None:
        if intensity.ndim != 2 or intensity.dtype != np.uint8:
            raise FormatError(f"Encountered image with unexpected content type:\n\t{intensity_path}")
        if depth.ndim != 2 or depth.dtype != np.uint16:
            raise FormatError(f"Encountered image with unexpected content type:\n\t{depth_path}")
        if intensity.shape != depth.shape:
            raise FormatError(f"Depth and IR images not the same size:\n\t{intensity_path}\n\t{depth_path}")
        width, height = image_size
        if intensity.shape != (height, width):
            raise FormatError(f"Frame size {intensity.shape[1]}x{intensity.shape[0]} differs from "
                              f"configured {width}x{height}:\n\t{intensity_path}")

    @staticmethod
    def _classification_samples(intensity: np.ndarray, depth_labels: np.ndarray,
                                train_on_zero: bool, low_memory: bool):
        if train_on_zero:
            keep = np.ones(intensity.shape, dtype=bool)
        else:
            keep = intensity != 0
        labels = depth_labels[keep]
        # Addresses only exist when pixels were filtered out
        addresses = None if low_memory else np.flatnonzero(keep).astype(np.int64)
        return addresses, labels

    @staticmethod
    def _regression_samples(intensity: np.ndarray, depth: np.ndarray, depth_labels: np.ndarray,
                            class_number: int, train_on_zero: bool, low_memory: bool):
        if class_number == ALL_CLASSES:
            keep = np.ones(depth.shape, dtype=bool)
        else:
            keep = depth_labels == class_number
        if not train_on_zero:
            keep &= intensity != 0
        targets = depth[keep]
        addresses = None if low_memory else np.flatnonzero(keep).astype(np.int64)
        return addresses, targets

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def count(self) -> int:
        """Number of samples in the collection."""
        if self.data is not None:
            return len(self.data)
        if self.labels is not None:
            return len(self.labels)
        if self.targets is not None:
            return len(self.targets)
        return len(self.images) * self.step

    def __len__(self):
        return self.count()

    def dimensions(self) -> int:
        return self.dimension

    def has_labels(self) -> bool:
        return self.labels is not None

    def has_targets(self) -> bool:
        return self.targets is not None

    def count_classes(self) -> int:
        if self.labels is None or len(self.labels) == 0:
            return 0
        return int(self.labels.max()) + 1

    def get_integer_label(self, index: int) -> int:
        if self.labels is None:
            raise ValueError("Collection has no labels")
        return int(self.labels[index])

    def get_target(self, index: int) -> float:
        if self.targets is None:
            raise ValueError("Collection has no targets")
        return float(self.targets[index])

    def sample_indices(self) -> np.ndarray:
        return np.arange(self.count(), dtype=np.int64)

    def get_address(self, index: int) -> int:
        """Flattened pixel address of sample `index`."""
        if self.data is not None:
            return int(self.data[index])
        return int(index)

    def get_addresses(self, indices: np.ndarray) -> np.ndarray:
        indices = np.asarray(indices, dtype=np.int64)
        if self.data is not None:
            return self.data[indices]
        return indices

    def locate(self, addresses):
        """Split flattened addresses into (image, row, col)."""
        width = self.image_size[0]
        image, remainder = np.divmod(np.asarray(addresses, dtype=np.int64), self.step)
        row, col = np.divmod(remainder, width)
        return image, row, col

    def intensity_at(self, addresses, dx: int = 0, dy: int = 0):
        """
        Intensity at (col + dx, row + dy) for each address. Offset coordinates
        falling outside the frame are clamped to its border.
        """
        width, height = self.image_size
        image, row, col = self.locate(addresses)
        row = np.clip(row + dy, 0, height - 1)
        col = np.clip(col + dx, 0, width - 1)
        return self.images[image, row, col]

    def __repr__(self):
        kind = self.feature_kind.value if self.feature_kind is not None else None
        return (f"DataPointCollection(images={len(self.images)}, samples={self.count()}, "
                f"dimension={self.dimension}, feature_kind={kind}, low_memory={self.low_memory})")
