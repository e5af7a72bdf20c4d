"""
Training module for the Weight Lifting ML Pipeline.
"""

from .trainer import (
    ModelTrainer,
    TrainedModel,
    train_models,
)

__all__ = [
    'ModelTrainer',
    'TrainedModel',
    'train_models',
]
