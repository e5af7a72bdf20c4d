"""
Weight Lifting ML Pipeline

Classifies how well a barbell lift was executed (classe A-E) from body-worn
accelerometer, gyroscope and magnetometer readings.

Features:
- Dataset download and schema validation
- Column filtering (missing values, empty strings, near-zero variance, identifiers)
- Stratified train/holdout partition
- Decision tree, random forest and gradient boosting with cross-validated tuning
- Holdout evaluation, plots, test case predictions and Markdown report

Usage:
    weight-lifting-ml               # Full report
    weight-lifting-ml --validate    # Validate data only
"""

__version__ = "1.0.0"

from .config import CONFIG, get_config, set_models, set_retrain
from .data import ColumnFilter, partition_rows
from .training import ModelTrainer, TrainedModel, train_models
from .evaluation import ModelEvaluator, evaluate_models

__all__ = [
    'CONFIG',
    'get_config',
    'set_models',
    'set_retrain',
    'ColumnFilter',
    'partition_rows',
    'ModelTrainer',
    'TrainedModel',
    'train_models',
    'ModelEvaluator',
    'evaluate_models',
]
