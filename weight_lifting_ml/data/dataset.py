"""
Dataset loading and partitioning for the Weight Lifting ML Pipeline.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from ..config import CONFIG
from ..utils import get_logger


def load_table(path: Path, config=None) -> pd.DataFrame:
    """
    Read one CSV file of the dataset.

    Only the configured markers ('NA', '#DIV/0!') become missing values;
    empty strings are preserved so that the column filter can measure them.
    A blank first header cell (the row number column) is named 'X'.
    """
    config = config or CONFIG
    logger = get_logger('data')

    table = pd.read_csv(
        path,
        na_values=config.data.na_values,
        keep_default_na=False,
        low_memory=False
    )

    first = table.columns[0]
    if first == '' or str(first).startswith('Unnamed: 0'):
        table = table.rename(columns={first: 'X'})

    logger.info(f"Loaded {Path(path).name}: {table.shape[0]} rows x {table.shape[1]} columns")
    return table


def load_tables(config=None) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Load the labelled training table and the final test table.

    Returns:
        Tuple of (training, testing)
    """
    config = config or CONFIG
    training = load_table(config.data.training_path, config)
    testing = load_table(config.data.testing_path, config)
    return training, testing


@dataclass
class Partition:
    """Disjoint row labels of the training and holdout sets."""
    train_index: pd.Index
    holdout_index: pd.Index

    def train(self, table: pd.DataFrame) -> pd.DataFrame:
        return table.loc[self.train_index]

    def holdout(self, table: pd.DataFrame) -> pd.DataFrame:
        return table.loc[self.holdout_index]

    @property
    def sizes(self) -> Tuple[int, int]:
        return len(self.train_index), len(self.holdout_index)


def partition_rows(
    table: pd.DataFrame,
    label_column: str,
    train_fraction: float = 0.8,
    seed: int = 51
) -> Partition:
    """
    Split rows into training and holdout sets, stratified on the label.

    The result depends only on the table and the seed. Both sets keep the
    original row order.

    Raises:
        ValueError: If the label is missing or train_fraction is out of range
    """
    if label_column not in table.columns:
        raise ValueError(f"Label column not found: {label_column}")
    if not 0 < train_fraction < 1:
        raise ValueError(f"train_fraction must be between 0 and 1, got {train_fraction}")

    train_index, holdout_index = train_test_split(
        table.index.to_numpy(),
        train_size=train_fraction,
        random_state=seed,
        shuffle=True,
        stratify=table[label_column].to_numpy()
    )

    return Partition(
        train_index=pd.Index(np.sort(train_index)),
        holdout_index=pd.Index(np.sort(holdout_index))
    )


def feature_matrix(table: pd.DataFrame, feature_columns: List[str]) -> pd.DataFrame:
    """Select feature columns as floats. Unparseable values become NaN."""
    missing = [c for c in feature_columns if c not in table.columns]
    if missing:
        raise ValueError(f"Table lacks feature columns: {', '.join(missing[:5])}")
    return table[feature_columns].apply(pd.to_numeric, errors='coerce').astype(float)


def class_distribution(labels: pd.Series) -> dict:
    """Counts per class, sorted by class name."""
    return {str(k): int(v) for k, v in labels.value_counts().sort_index().items()}
