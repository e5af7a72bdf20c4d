"""
Evaluation module for the Weight Lifting ML Pipeline.
"""

from .evaluate import (
    ModelEvaluator,
    PlotGenerator,
    evaluate_models,
    per_class_statistics,
    predict_cases,
    select_best,
)

from .report import write_report

__all__ = [
    'ModelEvaluator',
    'PlotGenerator',
    'evaluate_models',
    'per_class_statistics',
    'predict_cases',
    'select_best',
    'write_report',
]
