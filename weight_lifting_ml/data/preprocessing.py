"""
Column filtering for the Weight Lifting ML Pipeline.

Handles:
- Missing-value and empty-string ratios per column
- Near-zero-variance detection
- Identifier/timestamp column removal

The retained column set is learned on the training table only and then
applied unchanged to the holdout and final test tables, so all three share
one feature schema.
"""

from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from ..config import CONFIG
from ..utils import get_logger


# Reasons recorded for dropped columns, in the order the filters run
REASON_MISSING = 'missing'
REASON_EMPTY = 'empty_string'
REASON_NZV = 'near_zero_variance'
REASON_IDENTIFIER = 'identifier'


def is_textual(series: pd.Series) -> bool:
    return series.dtype == object or pd.api.types.is_string_dtype(series.dtype)


def missing_ratio(table: pd.DataFrame) -> pd.Series:
    """Proportion of missing values per column."""
    if len(table) == 0:
        return pd.Series(0.0, index=table.columns)
    return table.isna().mean()


def empty_string_ratio(table: pd.DataFrame) -> pd.Series:
    """Proportion of empty strings per column (0 for non-textual columns)."""
    ratios = {}
    for column in table.columns:
        series = table[column]
        if len(series) == 0 or not is_textual(series):
            ratios[column] = 0.0
        else:
            ratios[column] = float(series.eq('').mean())
    return pd.Series(ratios, index=table.columns, dtype=float)


def near_zero_variance(
    table: pd.DataFrame,
    freq_cut: float = 95 / 5,
    unique_cut: float = 10.0
) -> pd.DataFrame:
    """
    Near-zero-variance diagnostics per column.

    A column is flagged when it has fewer than two distinct non-missing
    values, or when the most common value outnumbers the second most common
    by more than freq_cut while distinct values make up at most unique_cut
    percent of the rows.

    Returns:
        DataFrame indexed by column with freq_ratio, percent_unique,
        zero_var and nzv
    """
    rows = {}
    n_rows = len(table)

    for column in table.columns:
        series = table[column]
        counts = series.dropna().value_counts()

        if len(counts) < 2:
            freq_ratio = 0.0
        else:
            freq_ratio = counts.iloc[0] / counts.iloc[1]

        percent_unique = 100.0 * len(counts) / n_rows if n_rows else 0.0
        zero_var = len(counts) < 2
        nzv = zero_var or (freq_ratio > freq_cut and percent_unique <= unique_cut)

        rows[column] = {
            'freq_ratio': float(freq_ratio),
            'percent_unique': float(percent_unique),
            'zero_var': bool(zero_var),
            'nzv': bool(nzv),
        }

    return pd.DataFrame.from_dict(
        rows, orient='index',
        columns=['freq_ratio', 'percent_unique', 'zero_var', 'nzv']
    )


class ColumnFilter:
    """
    Learns which columns carry information and selects them from any table.

    Usage:
        column_filter = ColumnFilter(config)
        train = column_filter.fit_transform(train)
        holdout = column_filter.transform(holdout)
    """

    def __init__(self, config=None):
        self.config = config or CONFIG
        self.filter_config = self.config.filter
        self.label_column = self.config.data.label_column
        self.logger = get_logger('data')

        self.retained_columns: Optional[List[str]] = None
        self.dropped: Dict[str, str] = {}
        self.missing_ratios: Optional[pd.Series] = None
        self.empty_ratios: Optional[pd.Series] = None
        self.nzv_table: Optional[pd.DataFrame] = None

    @property
    def is_fitted(self) -> bool:
        return self.retained_columns is not None

    @property
    def feature_columns(self) -> List[str]:
        self._check_fitted()
        return [c for c in self.retained_columns if c != self.label_column]

    def fit(self, table: pd.DataFrame) -> 'ColumnFilter':
        """
        Decide the retained columns from the training table.

        Raises:
            ValueError: If the table has no rows
        """
        if len(table) == 0:
            raise ValueError("Cannot fit column filter on an empty table")

        cfg = self.filter_config
        candidates = [c for c in table.columns if c != self.label_column]
        dropped = {}

        # Threshold filters
        self.missing_ratios = missing_ratio(table[candidates])
        self.empty_ratios = empty_string_ratio(table[candidates])

        for column in candidates:
            if self.missing_ratios[column] > cfg.max_missing_ratio:
                dropped[column] = REASON_MISSING
            elif self.empty_ratios[column] > cfg.max_empty_ratio:
                dropped[column] = REASON_EMPTY

        remaining = [c for c in candidates if c not in dropped]

        # Near-zero variance on what survived the thresholds
        self.nzv_table = near_zero_variance(
            table[remaining],
            freq_cut=cfg.nzv_freq_cut,
            unique_cut=cfg.nzv_unique_cut
        )
        for column in remaining:
            if self.nzv_table.at[column, 'nzv']:
                dropped[column] = REASON_NZV

        # Identifier and timestamp columns
        identifiers = set(cfg.identifier_columns)
        for column in remaining:
            if column not in dropped and column in identifiers:
                dropped[column] = REASON_IDENTIFIER

        self.dropped = dropped
        self.retained_columns = [c for c in table.columns if c not in dropped]

        summary = self.summary()
        self.logger.info(
            f"Column filter: {len(table.columns)} -> {len(self.retained_columns)} columns "
            f"(missing: {summary[REASON_MISSING]}, empty: {summary[REASON_EMPTY]}, "
            f"nzv: {summary[REASON_NZV]}, identifiers: {summary[REASON_IDENTIFIER]})"
        )
        return self

    def transform(self, table: pd.DataFrame) -> pd.DataFrame:
        """
        Select the retained columns. The label column is kept only when the
        table has one (the final test table does not).

        Raises:
            ValueError: If the table lacks a retained feature column
        """
        self._check_fitted()

        missing = [c for c in self.feature_columns if c not in table.columns]
        if missing:
            raise ValueError(
                f"Table is missing {len(missing)} retained column(s): {', '.join(missing[:5])}"
            )

        columns = [c for c in self.retained_columns
                   if c != self.label_column or c in table.columns]
        return table[columns].copy()

    def fit_transform(self, table: pd.DataFrame) -> pd.DataFrame:
        return self.fit(table).transform(table)

    def summary(self) -> Dict[str, int]:
        """Number of dropped columns per reason."""
        counts = {REASON_MISSING: 0, REASON_EMPTY: 0, REASON_NZV: 0, REASON_IDENTIFIER: 0}
        for reason in self.dropped.values():
            counts[reason] += 1
        return counts

    def _check_fitted(self):
        if not self.is_fitted:
            raise RuntimeError("ColumnFilter is not fitted yet; call fit() first")


def filter_tables(train: pd.DataFrame, *others: pd.DataFrame, config=None):
    """
    Fit a column filter on the training table and apply it to all tables.

    Returns:
        Tuple of (fitted filter, filtered train, *filtered others)
    """
    column_filter = ColumnFilter(config)
    filtered_train = column_filter.fit_transform(train)
    filtered_others = [column_filter.transform(t) for t in others]
    return (column_filter, filtered_train, *filtered_others)


def correlation_matrix(table: pd.DataFrame, method: str = 'pearson') -> pd.DataFrame:
    """Correlation between numeric feature columns."""
    numeric = table.select_dtypes(include=[np.number])
    return numeric.corr(method=method)
