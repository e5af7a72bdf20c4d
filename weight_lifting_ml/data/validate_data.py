"""
Data Validation for the Weight Lifting ML Pipeline.

Validates:
- Both tables are non-empty and have the expected number of columns
- The label column exists, has no missing values and only known classes
- The final test table carries the case identifier column
- Training and testing tables share one feature schema

Any error stops the pipeline; warnings are reported only.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

from ..config import CONFIG
from ..utils import get_logger


@dataclass
class ValidationResult:
    """Result of a validation check."""
    passed: bool
    message: str
    severity: str = 'error'  # 'error', 'warning', 'info'
    details: Optional[Dict] = None


@dataclass
class TableValidation:
    """Validation results for one table."""
    name: str
    results: List[ValidationResult] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(r.severity == 'error' and not r.passed for r in self.results)

    @property
    def has_warnings(self) -> bool:
        return any(r.severity == 'warning' and not r.passed for r in self.results)

    def add(self, passed: bool, message: str, severity: str = 'error', details: Dict = None):
        self.results.append(ValidationResult(passed, message, severity, details))


class DataValidator:
    """
    Validates the structure of the training and final test tables.
    """

    def __init__(self, training: pd.DataFrame, testing: pd.DataFrame, config=None):
        self.config = config or CONFIG
        self.training = training
        self.testing = testing
        self.logger = get_logger('validation')

        self.tables = [
            TableValidation(name='training'),
            TableValidation(name='testing'),
        ]

    def validate_all(self) -> bool:
        """
        Run all validation checks.

        Returns:
            True if no check failed with severity 'error'
        """
        train_check, test_check = self.tables

        self._check_shape(train_check, self.training)
        self._check_shape(test_check, self.testing)
        self._check_label(train_check)
        self._check_identifier(test_check)
        self._check_schema(test_check)

        self._log_summary()

        return not any(t.has_errors for t in self.tables)

    def _check_shape(self, check: TableValidation, table: pd.DataFrame):
        """Check row and column counts."""
        if len(table) == 0:
            check.add(False, "Table has no rows")

        expected = self.config.data.expected_columns
        n_columns = table.shape[1]
        check.add(
            n_columns == expected,
            f"{n_columns} columns (expected {expected})",
            severity='info' if n_columns == expected else 'error',
            details={'rows': len(table), 'columns': n_columns}
        )

    def _check_label(self, check: TableValidation):
        """Check the label column of the training table."""
        label = self.config.data.label_column
        classes = self.config.data.classes

        if label not in self.training.columns:
            check.add(False, f"Label column '{label}' not found")
            return

        labels = self.training[label]

        n_missing = int(labels.isna().sum() + labels.eq('').sum())
        if n_missing > 0:
            check.add(False, f"{n_missing} rows have no label")

        observed = set(labels.dropna().astype(str)) - {''}
        unknown = sorted(observed - set(classes))
        if unknown:
            check.add(False, f"Unknown classes in '{label}': {', '.join(unknown)}")

        absent = [c for c in classes if c not in observed]
        if absent:
            check.add(False, f"Classes without rows: {', '.join(absent)}", severity='warning')

        counts = labels.value_counts()
        too_small = [str(c) for c, n in counts.items() if n < 2]
        if too_small:
            check.add(False, f"Classes with fewer than 2 rows cannot be stratified: "
                             f"{', '.join(too_small)}")

        check.add(True, f"Class distribution: {counts.sort_index().to_dict()}", severity='info')

    def _check_identifier(self, check: TableValidation):
        """Check that the final test cases can be identified."""
        id_column = self.config.data.id_column
        if id_column not in self.testing.columns:
            check.add(False, f"Identifier column '{id_column}' not found")
        elif self.testing[id_column].duplicated().any():
            check.add(False, f"Duplicate values in '{id_column}'", severity='warning')

    def _check_schema(self, check: TableValidation):
        """Check that both tables have the same feature columns."""
        label = self.config.data.label_column
        id_column = self.config.data.id_column

        train_features = set(self.training.columns) - {label}
        test_features = set(self.testing.columns) - {id_column}

        only_train = sorted(train_features - test_features)
        only_test = sorted(test_features - train_features)

        if only_train or only_test:
            check.add(
                False,
                f"Feature schema mismatch ({len(only_train)} only in training, "
                f"{len(only_test)} only in testing)",
                details={'only_training': only_train, 'only_testing': only_test}
            )
        else:
            check.add(True, f"Feature schema matches ({len(train_features)} columns)",
                      severity='info')

    def _log_summary(self):
        """Log validation summary."""
        for table in self.tables:
            for result in table.results:
                if result.passed:
                    self.logger.debug(f"{table.name}: {result.message}")
                elif result.severity == 'error':
                    self.logger.error(f"{table.name}: {result.message}")
                else:
                    self.logger.warning(f"{table.name}: {result.message}")

        n_errors = sum(
            1 for t in self.tables for r in t.results
            if not r.passed and r.severity == 'error'
        )
        if n_errors:
            self.logger.error(f"VALIDATION FAILED: {n_errors} error(s)")
        else:
            self.logger.info("VALIDATION COMPLETE: tables are usable")

    def get_errors(self) -> List[str]:
        """All failed error-level messages."""
        return [
            f"{t.name}: {r.message}"
            for t in self.tables for r in t.results
            if not r.passed and r.severity == 'error'
        ]


def validate_tables(
    training: pd.DataFrame,
    testing: pd.DataFrame,
    config=None,
    stop_on_error: bool = True
) -> bool:
    """
    Validate both tables and optionally stop if errors are found.

    Returns:
        True if validation passed

    Raises:
        ValueError: On failure when stop_on_error is set
    """
    validator = DataValidator(training, testing, config)
    passed = validator.validate_all()

    if not passed and stop_on_error:
        raise ValueError("Data validation failed: " + "; ".join(validator.get_errors()))

    return passed
