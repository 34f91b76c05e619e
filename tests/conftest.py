import os

import cv2
import numpy as np
import pytest
import yaml


def write_pair(directory, prefix, index, intensity, depth, webcam=False):
    """Write one intensity/depth frame pair the way the loader expects to find it."""
    suffix = "cam.png" if webcam else "ir.png"
    assert cv2.imwrite(os.path.join(directory, f"{prefix}{index}{suffix}"), intensity)
    assert cv2.imwrite(os.path.join(directory, f"{prefix}{index}depth.png"), depth)


@pytest.fixture
def frame_dir(tmp_path):
    directory = tmp_path / "frames"
    directory.mkdir()
    return str(directory)


@pytest.fixture
def bin_table():
    """Depth 10 -> bin 1, depth 20 -> bin 2, depth 30 -> bin 3, everything else invalid."""
    table = np.zeros(1000, dtype=np.uint8)
    table[10] = 1
    table[20] = 2
    table[30] = 3
    return table


@pytest.fixture
def synthetic_corpus(frame_dir):
    """
    Two 8x8 frames: left half at depth 10, right half at depth 20 and darker,
    textured nonzero intensity except for a zero border row.
    """
    rng = np.random.default_rng(5)
    for index in range(2):
        intensity = rng.integers(1, 256, size=(8, 8)).astype(np.uint8)
        depth = np.full((8, 8), 10, dtype=np.uint16)
        depth[:, 4:] = 20
        intensity[:, 4:] = np.clip(intensity[:, 4:].astype(int) // 4, 1, 255).astype(np.uint8)
        intensity[0, :] = 0
        write_pair(frame_dir, "f", index, intensity, depth)
    return frame_dir


@pytest.fixture
def config_path(tmp_path, synthetic_corpus):
    config = {
        'data': {
            'path': synthetic_corpus,
            'prefix': 'f',
            'first': 0,
            'number': 2,
            'width': 8,
            'height': 8,
            'patch_size': 3,
            'feature_kind': 'pixel_difference',
            'classification': True,
            'class_number': -1,
            'train_on_zero': False,
            'closeup': True,
            'depth_raw': False,
            'bins': 2,
            'max_range': 30,
            'threshold': 0,
        },
        'model': {
            'n_estimators': 3,
            'max_depth': 5,
            'n_jobs': 1,
            'random_state': 0,
        },
        'training': {
            'n_features': 6,
            'max_samples': None,
            'seed': 11,
        },
        'inference': {
            'include_zero': False,
            'pre_process': True,
            'threshold': 0,
        },
        'model_save_path': str(tmp_path / "models" / "forest.pkl"),
    }
    path = tmp_path / "config.yaml"
    with open(path, "w") as f:
        yaml.safe_dump(config, f)
    return str(path)
