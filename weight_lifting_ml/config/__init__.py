"""
Configuration module for the Weight Lifting ML Pipeline.
"""

from .settings import (
    CONFIG,
    LOGS_DIR,
    MODELS,
    Config,
    DataConfig,
    FilterConfig,
    SplitConfig,
    ModelConfig,
    ModelSpec,
    EvaluationConfig,
    OutputConfig,
    get_config,
    set_retrain,
    set_models,
)

__all__ = [
    'CONFIG',
    'LOGS_DIR',
    'MODELS',
    'Config',
    'DataConfig',
    'FilterConfig',
    'SplitConfig',
    'ModelConfig',
    'ModelSpec',
    'EvaluationConfig',
    'OutputConfig',
    'get_config',
    'set_retrain',
    'set_models',
]
