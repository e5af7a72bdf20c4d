import logging
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from weight_lifting_ml.config import Config, DataConfig, OutputConfig
from weight_lifting_ml.utils.logging_utils import LOGGER_FILES, LOGGER_PREFIX


CLASSES = ['A', 'B', 'C', 'D', 'E']
IDENTIFIERS = ['X', 'user_name', 'raw_timestamp_part_1', 'raw_timestamp_part_2', 'cvtd_timestamp']
INFORMATIVE = ['roll_belt', 'pitch_belt', 'yaw_belt', 'total_accel_belt', 'gyros_belt_z']


def make_sensor_table(n_rows: int, seed: int = 0, labelled: bool = True) -> pd.DataFrame:
    """
    Small table shaped like the weight lifting data: identifier columns,
    a near-zero-variance flag, mostly-missing and mostly-empty summary
    columns, a constant column, informative sensor readings and the label.
    """
    rng = np.random.default_rng(seed)
    classes = np.array([CLASSES[i % len(CLASSES)] for i in range(n_rows)])
    centers = np.array([CLASSES.index(c) for c in classes], dtype=float)
    sparse = np.arange(n_rows) % 50 == 0

    table = pd.DataFrame({
        'X': np.arange(1, n_rows + 1),
        'user_name': rng.choice(['adelmo', 'carlitos', 'charles', 'eurico', 'jeremy', 'pedro'], n_rows),
        'raw_timestamp_part_1': 1322489000 + np.arange(n_rows) * 7,
        'raw_timestamp_part_2': rng.integers(0, 999999, n_rows),
        'cvtd_timestamp': [f"05/12/2011 11:{i % 20:02d}" for i in range(n_rows)],
        'new_window': np.where(sparse, 'yes', 'no'),
        'num_window': rng.integers(1, 864, n_rows),
        'roll_belt': centers * 3 + rng.normal(0, 1, n_rows),
        'pitch_belt': -centers * 2 + rng.normal(0, 1, n_rows),
        'yaw_belt': rng.normal(0, 5, n_rows),
        'total_accel_belt': centers + rng.normal(0, 0.5, n_rows),
        'gyros_belt_z': rng.normal(0, 0.3, n_rows),
        'kurtosis_roll_belt': np.where(sparse, '1.5', ''),
        'max_roll_belt': np.where(sparse, 2.0, np.nan),
        'amplitude_yaw_arm': np.where(np.arange(n_rows) % 10 == 0, np.nan, centers * 0.5),
        'constant_col': 0.0,
    })

    if labelled:
        table['classe'] = classes
    else:
        table['problem_id'] = np.arange(1, n_rows + 1)

    return table


@pytest.fixture
def raw_training():
    return make_sensor_table(300, seed=0)


@pytest.fixture
def raw_testing():
    return make_sensor_table(20, seed=1, labelled=False)


@pytest.fixture
def config(tmp_path, raw_training):
    """Configuration writing into tmp_path, with small model grids."""
    cfg = Config(
        data=DataConfig(
            dataset_dir=tmp_path / 'dataset',
            download_if_missing=False,
            expected_columns=raw_training.shape[1],
        ),
        output=OutputConfig.under(tmp_path / 'output'),
    )

    models = cfg.model.models
    models['tree'].param_grid = [0.0, 0.01]
    models['tree'].cv_folds = 3
    models['forest'].param_grid = [2, 3, 50]
    models['forest'].fixed_params = {'n_estimators': 10}
    models['forest'].n_jobs = None
    models['boosting'].param_grid = [5, 10]
    models['boosting'].fixed_params = {'max_depth': 2}

    return cfg


def write_csv(table: pd.DataFrame, path: Path):
    """Write a table the way the published files look: blank first header, NA markers."""
    path.parent.mkdir(parents=True, exist_ok=True)
    table.rename(columns={'X': ''}).to_csv(path, index=False, na_rep='NA')


@pytest.fixture
def dataset_files(config, raw_training, raw_testing):
    write_csv(raw_training, config.data.training_path)
    write_csv(raw_testing, config.data.testing_path)
    return config.data.training_path, config.data.testing_path


@pytest.fixture(autouse=True)
def _reset_loggers():
    """Drop handlers bound to per-test capture streams and log files."""
    yield
    for name in LOGGER_FILES:
        logger = logging.getLogger(f'{LOGGER_PREFIX}.{name}')
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers = []
