import os

import cv2
import numpy as np
import pytest

from DepthForest.Core.binning import create_label_matrix
from DepthForest.Core.collection import ALL_CLASSES, DataPointCollection
from DepthForest.Core.errors import ConfigurationError, FormatError
from DepthForest.Core.feature_response import FeatureKind

from conftest import write_pair


INTENSITY = np.array([
    [0, 5, 0, 7],
    [1, 0, 0, 0],
    [0, 0, 9, 2],
    [3, 0, 0, 4],
], dtype=np.uint8)

DEPTH = np.array([
    [10, 10, 20, 20],
    [10, 10, 20, 20],
    [30, 30, 0, 999],
    [30, 30, 10, 20],
], dtype=np.uint16)


def load(frame_dir, bin_table, **kwargs):
    params = dict(prefix="f", first=0, number=1, image_size=(4, 4), patch_size=5, pixel_labels=bin_table)
    params.update(kwargs)
    return DataPointCollection.load_images(frame_dir, **params)


def test_even_patch_size_is_configuration_error(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)

    with pytest.raises(ConfigurationError):
        load(frame_dir, bin_table, patch_size=4)

    assert load(frame_dir, bin_table, patch_size=5).count() > 0


def test_missing_directory_is_configuration_error(tmp_path, bin_table):
    with pytest.raises(ConfigurationError):
        load(str(tmp_path / "does_not_exist"), bin_table)


def test_dimension_follows_feature_kind(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)

    pixel = load(frame_dir, bin_table, feature_kind=FeatureKind.PIXEL_DIFFERENCE)
    hyperplane = load(frame_dir, bin_table, feature_kind=FeatureKind.RANDOM_HYPERPLANE)

    assert pixel.dimensions() == 25
    assert hyperplane.dimensions() == 5
    assert hyperplane.feature_kind is FeatureKind.RANDOM_HYPERPLANE


def test_classification_filters_zero_intensity(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)

    data = load(frame_dir, bin_table, classification=True, train_on_zero=False)

    keep = INTENSITY != 0
    assert not data.low_memory
    assert data.has_labels() and not data.has_targets()
    assert len(data.data) == len(data.labels) == data.count() == int(keep.sum())
    np.testing.assert_array_equal(data.data, np.flatnonzero(keep))
    np.testing.assert_array_equal(data.labels, create_label_matrix(DEPTH, bin_table)[keep])
    assert all(data.intensity_at(address) != 0 for address in data.data)


def test_classification_all_zero_intensity_is_empty(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, np.zeros((4, 4), dtype=np.uint8), DEPTH)

    data = load(frame_dir, bin_table, classification=True, train_on_zero=False)

    assert data.count() == 0
    assert len(data.labels) == 0
    assert len(data.images) == 1


def test_addresses_are_offset_by_image_ordinal(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)
    write_pair(frame_dir, "f", 1, INTENSITY, DEPTH)

    data = load(frame_dir, bin_table, number=2, train_on_zero=False)

    single = np.flatnonzero(INTENSITY)
    np.testing.assert_array_equal(data.data, np.concatenate([single, single + 16]))
    image, row, col = data.locate(data.data[len(single)])
    assert (int(image), int(row), int(col)) == (1, 0, 1)


def test_classification_train_on_zero_is_low_memory(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)
    write_pair(frame_dir, "f", 1, INTENSITY, DEPTH)

    data = load(frame_dir, bin_table, number=2, classification=True, train_on_zero=True)

    assert data.low_memory
    assert data.data is None
    assert data.targets is None
    assert data.count() == len(data.labels) == 2 * 16
    np.testing.assert_array_equal(data.labels[:16], create_label_matrix(DEPTH, bin_table).ravel())
    assert data.get_address(20) == 20


def test_regression_with_class_selector_keeps_index(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)

    data = load(frame_dir, bin_table, classification=False, class_number=2, train_on_zero=True)

    keep = create_label_matrix(DEPTH, bin_table) == 2
    assert not data.low_memory
    assert data.has_targets() and not data.has_labels()
    assert len(data.data) == len(data.targets) == int(keep.sum())
    np.testing.assert_array_equal(data.data, np.flatnonzero(keep))
    assert set(data.targets.tolist()) == {20.0}


def test_regression_selector_respects_zero_intensity(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)

    data = load(frame_dir, bin_table, classification=False, class_number=2, train_on_zero=False)

    keep = (create_label_matrix(DEPTH, bin_table) == 2) & (INTENSITY != 0)
    np.testing.assert_array_equal(data.data, np.flatnonzero(keep))
    np.testing.assert_array_equal(data.targets, DEPTH[keep].astype(np.float32))


def test_regression_all_classes_on_zero_is_low_memory(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)

    data = load(frame_dir, bin_table, classification=False, class_number=ALL_CLASSES, train_on_zero=True)

    assert data.low_memory
    assert data.data is None and data.labels is None
    np.testing.assert_array_equal(data.targets, DEPTH.ravel().astype(np.float32))
    assert data.get_target(3) == 20.0


def test_regression_all_classes_filtered(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)

    data = load(frame_dir, bin_table, classification=False, class_number=ALL_CLASSES, train_on_zero=False)

    assert not data.low_memory
    assert len(data.data) == len(data.targets) == int((INTENSITY != 0).sum())


def test_unreadable_frame_is_skipped(frame_dir, bin_table, capsys):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)
    write_pair(frame_dir, "f", 2, INTENSITY, DEPTH)
    # frame 1 has an intensity file but no depth file
    cv2.imwrite(os.path.join(frame_dir, "f1ir.png"), INTENSITY)

    data = load(frame_dir, bin_table, number=3, train_on_zero=False)

    assert data.skipped_frames == [1]
    assert len(data.images) == 2
    single = np.flatnonzero(INTENSITY)
    np.testing.assert_array_equal(data.data, np.concatenate([single, single + 16]))
    assert "Warning: Failed to open image" in capsys.readouterr().out


def test_corrupt_frame_is_skipped(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)
    with open(os.path.join(frame_dir, "f0ir.png"), "wb") as f:
        f.write(b"not a png")

    data = load(frame_dir, bin_table)

    assert data.skipped_frames == [0]
    assert data.count() == 0
    assert len(data.images) == 0


def test_webcam_frames_use_cam_suffix(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH, webcam=True)

    assert load(frame_dir, bin_table, webcam=True).count() == int((INTENSITY != 0).sum())
    assert load(frame_dir, bin_table, webcam=False).skipped_frames == [0]


def test_color_intensity_is_format_error(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, cv2.cvtColor(INTENSITY, cv2.COLOR_GRAY2BGR), DEPTH)

    with pytest.raises(FormatError):
        load(frame_dir, bin_table)


def test_eight_bit_depth_is_format_error(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH.astype(np.uint8))

    with pytest.raises(FormatError):
        load(frame_dir, bin_table)


def test_mismatched_pair_is_format_error(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, np.zeros((5, 4), dtype=np.uint16))

    with pytest.raises(FormatError):
        load(frame_dir, bin_table)


def test_frame_size_must_match_configuration(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)

    with pytest.raises(FormatError):
        load(frame_dir, bin_table, image_size=(8, 2))


def test_format_error_aborts_after_good_frames(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)
    write_pair(frame_dir, "f", 1, INTENSITY, DEPTH.astype(np.uint8))

    with pytest.raises(FormatError):
        load(frame_dir, bin_table, number=2)


def test_closeup_filter_drops_background_frames(frame_dir, bin_table):
    background = np.full((4, 4), 10, dtype=np.uint16)  # bin 1 everywhere
    foreground = np.full((4, 4), 20, dtype=np.uint16)
    write_pair(frame_dir, "f", 0, INTENSITY, background)
    write_pair(frame_dir, "f", 1, INTENSITY, foreground)

    filtered = load(frame_dir, bin_table, number=2, closeup=False)
    unfiltered = load(frame_dir, bin_table, number=2, closeup=True)

    assert filtered.skipped_frames == [0]
    assert len(filtered.images) == 1
    np.testing.assert_array_equal(filtered.data, np.flatnonzero(INTENSITY))
    assert set(filtered.labels.tolist()) == {2}
    assert unfiltered.skipped_frames == []
    assert len(unfiltered.images) == 2


def test_threshold_preprocessing_filters_dim_pixels(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)

    data = load(frame_dir, bin_table, threshold=4)

    np.testing.assert_array_equal(data.data, np.flatnonzero(INTENSITY > 4))
    assert data.images[0, 3, 0] == 0


def test_generated_bin_table_marks_zero_depth_invalid(frame_dir):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)

    data = DataPointCollection.load_images(frame_dir, prefix="f", number=1, image_size=(4, 4),
                                           patch_size=3, bins=3, max_range=30, train_on_zero=True)

    assert len(data.pixel_labels) == 31
    assert data.labels[10] == 0  # depth 0
    assert data.labels[11] == 0  # depth 999 beyond the table
    assert data.count_classes() == 4


def test_collection_is_read_only(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)
    data = load(frame_dir, bin_table)

    with pytest.raises(ValueError):
        data.labels[0] = 3
    with pytest.raises(ValueError):
        data.images[0, 0, 0] = 1


def test_intensity_at_clamps_to_frame(frame_dir, bin_table):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)
    data = load(frame_dir, bin_table, train_on_zero=True)

    assert data.intensity_at(0, -3, -3) == INTENSITY[0, 0]
    assert data.intensity_at(15, 2, 2) == INTENSITY[3, 3]
    assert data.intensity_at(5, 1, 1) == INTENSITY[2, 2]


def test_load_mat_keeps_nonzero_pixels():
    frame = INTENSITY.copy()

    data = DataPointCollection.load_mat(frame, (4, 4), inc_zero=False)

    assert data.dimensions() == 1
    assert not data.low_memory
    assert data.count() == int(np.count_nonzero(frame))
    np.testing.assert_array_equal(data.data, np.flatnonzero(frame))
    assert all(data.intensity_at(address) != 0 for address in data.data)


def test_load_mat_include_zero_is_low_memory():
    data = DataPointCollection.load_mat(INTENSITY, (4, 4), inc_zero=True)

    assert data.low_memory
    assert data.data is None
    assert data.count() == 16


def test_load_mat_preprocessing():
    frame = np.array([[0, 3], [6, 9]], dtype=np.uint8)

    data = DataPointCollection.load_mat(frame, (2, 2), pre_process=True, pp_value=5)

    np.testing.assert_array_equal(data.data, [2, 3])


def test_load_mat_rejects_wrong_type():
    with pytest.raises(FormatError):
        DataPointCollection.load_mat(DEPTH, (4, 4))
    with pytest.raises(FormatError):
        DataPointCollection.load_mat(INTENSITY, (2, 8))


def test_constructor_leaves_caller_arrays_writable():
    images = np.zeros((1, 2, 2), dtype=np.uint8)
    data = np.array([0, 3], dtype=np.int64)
    labels = np.array([1, 2], dtype=np.uint8)

    collection = DataPointCollection(images, (2, 2), 1, data=data, labels=labels)

    images[0, 0, 0] = 7
    data[0] = 1
    labels[0] = 5
    assert collection.images[0, 0, 0] == 0
    assert collection.get_address(0) == 0
    assert collection.get_integer_label(0) == 1
    with pytest.raises(ValueError):
        collection.data[0] = 2


def test_load_mat_leaves_frame_writable():
    frame = INTENSITY.copy()

    DataPointCollection.load_mat(frame, (4, 4), inc_zero=True)

    assert frame.flags.writeable


def test_bin_table_with_wrapping_labels_is_configuration_error(frame_dir):
    write_pair(frame_dir, "f", 0, INTENSITY, DEPTH)
    table = np.ones(1000, dtype=np.int64)
    table[20] = 256

    with pytest.raises(ConfigurationError):
        load(frame_dir, table)


def test_index_and_label_lengths_must_agree():
    images = np.zeros((1, 2, 2), dtype=np.uint8)
    with pytest.raises(ValueError):
        DataPointCollection(images, (2, 2), 1, data=np.array([0, 1]), labels=np.array([1], dtype=np.uint8))
