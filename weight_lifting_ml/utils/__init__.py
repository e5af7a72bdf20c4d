"""
Utility modules for the Weight Lifting ML Pipeline.
"""

from .logging_utils import (
    setup_logging,
    get_logger,
    ProgressLogger,
    TrainingLogger,
)

__all__ = [
    'setup_logging',
    'get_logger',
    'ProgressLogger',
    'TrainingLogger',
]
