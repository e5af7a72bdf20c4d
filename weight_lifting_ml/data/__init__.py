"""
Data module for the Weight Lifting ML Pipeline.
"""

from .download import (
    download_file,
    fetch_dataset,
)

from .dataset import (
    Partition,
    load_table,
    load_tables,
    partition_rows,
    feature_matrix,
    class_distribution,
)

from .preprocessing import (
    ColumnFilter,
    filter_tables,
    missing_ratio,
    empty_string_ratio,
    near_zero_variance,
    correlation_matrix,
)

from .validate_data import (
    DataValidator,
    validate_tables,
    ValidationResult,
    TableValidation,
)

__all__ = [
    # Download
    'download_file',
    'fetch_dataset',

    # Loading and partitioning
    'Partition',
    'load_table',
    'load_tables',
    'partition_rows',
    'feature_matrix',
    'class_distribution',

    # Column filtering
    'ColumnFilter',
    'filter_tables',
    'missing_ratio',
    'empty_string_ratio',
    'near_zero_variance',
    'correlation_matrix',

    # Validation
    'DataValidator',
    'validate_tables',
    'ValidationResult',
    'TableValidation',
]
