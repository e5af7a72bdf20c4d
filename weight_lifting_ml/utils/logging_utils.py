"""
Logging utilities for the Weight Lifting ML Pipeline.

Provides structured logging with separate handlers for:
- Console output (minimal, essential information only)
- File output (detailed logging for debugging)
- Cross-validation results (CSV)
"""

import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Any, Dict, List, Optional

LOGGER_PREFIX = 'weight_lifting_ml'

LOGGER_FILES = {
    'main': 'main.log',
    'data': 'data.log',
    'train': 'training.log',
    'eval': 'evaluation.log',
    'validation': 'validation.log'
}

CONSOLE_LOGGERS = ['main', 'train', 'eval']


class ColorFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    # Color codes
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record):
        # Color a copy so file handlers sharing the record stay plain
        record = logging.makeLogRecord(record.__dict__)
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        return super().format(record)


class MinimalConsoleFormatter(logging.Formatter):
    """Minimal formatter for essential console output."""

    def format(self, record):
        if record.levelno == logging.INFO:
            return record.getMessage()
        elif record.levelno == logging.WARNING:
            return f"[WARNING] {record.getMessage()}"
        elif record.levelno >= logging.ERROR:
            return f"[ERROR] {record.getMessage()}"
        return record.getMessage()


def setup_logging(
    log_dir: Optional[Path] = None,
    log_level: str = 'INFO',
    verbose_console: bool = False
) -> Dict[str, logging.Logger]:
    """
    Setup logging system with multiple loggers.

    Args:
        log_dir: Directory for log files
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        verbose_console: If True, show detailed output in console

    Returns:
        Dictionary of loggers for different purposes
    """
    from ..config import LOGS_DIR

    log_dir = Path(log_dir or LOGS_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    loggers = {}
    for logger_name, log_filename in LOGGER_FILES.items():
        logger = logging.getLogger(f'{LOGGER_PREFIX}.{logger_name}')
        logger.setLevel(getattr(logging, log_level.upper()))
        logger.propagate = False
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers = []

        # File handler - detailed output
        file_handler = logging.FileHandler(
            log_dir / f"{timestamp}_{log_filename}",
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logger.addHandler(file_handler)

        # Console handler - minimal output for main, train, eval
        if logger_name in CONSOLE_LOGGERS:
            console_handler = logging.StreamHandler(sys.stdout)
            if verbose_console:
                console_handler.setLevel(logging.DEBUG)
                console_handler.setFormatter(ColorFormatter(
                    '%(levelname)s | %(message)s'
                ))
            else:
                console_handler.setLevel(logging.INFO)
                console_handler.setFormatter(MinimalConsoleFormatter())
            logger.addHandler(console_handler)

        loggers[logger_name] = logger

    return loggers


def get_logger(name: str = 'main') -> logging.Logger:
    """
    Get a logger by name.

    Args:
        name: Logger name (main, data, train, eval, validation)

    Returns:
        Logger instance
    """
    logger = logging.getLogger(f'{LOGGER_PREFIX}.{name}')
    if not logger.handlers:
        # Logger not set up yet, create a basic one
        logger.setLevel(logging.INFO)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(MinimalConsoleFormatter())
        logger.addHandler(handler)
    return logger


class ProgressLogger:
    """Simple progress logger for sequential pipeline work."""

    def __init__(self, total: int, desc: str = "Progress", logger_name: str = 'train'):
        self.total = total
        self.current = 0
        self.desc = desc
        self.logger = get_logger(logger_name)

    def update(self, label: str = None, metrics: Dict[str, float] = None):
        """Advance by one step with an optional label and metrics."""
        self.current += 1
        prefix = f"{self.desc} [{self.current}/{self.total}]"
        if label:
            prefix = f"{prefix} {label}"
        if metrics:
            metrics_str = " | ".join([f"{k}: {v:.4f}" for k, v in metrics.items()])
            self.logger.info(f"{prefix} | {metrics_str}")
        else:
            self.logger.info(prefix)

    def finish(self, final_metrics: Dict[str, float] = None):
        """Mark progress as complete."""
        if final_metrics:
            metrics_str = " | ".join([f"{k}: {v:.4f}" for k, v in final_metrics.items()])
            self.logger.info(f"{self.desc} Complete | {metrics_str}")
        else:
            self.logger.info(f"{self.desc} Complete")


class TrainingLogger:
    """Logger for cross-validation results of every tuned model."""

    HEADER = "Model,Parameter,Value,Mean Accuracy,Std Accuracy,Rank\n"

    def __init__(self, log_file: Path = None):
        self.logger = get_logger('train')
        self.log_file = log_file
        self.history: Dict[str, List[Dict[str, Any]]] = {}

        # Write CSV header if log file specified
        if log_file:
            log_file = Path(log_file)
            log_file.parent.mkdir(parents=True, exist_ok=True)
            with open(log_file, 'w') as f:
                f.write(self.HEADER)

    def log_search(self, model_name: str, param_name: str, candidates: List[Dict[str, Any]]):
        """
        Log the candidates of one grid search.

        Args:
            model_name: Name of the tuned model
            param_name: Name of the tuned hyperparameter
            candidates: Dicts with 'value', 'mean', 'std' and 'rank'
        """
        self.history[model_name] = candidates

        self.logger.info(f"  CV results for {model_name} ({param_name}):")
        for candidate in candidates:
            marker = "  <- best" if candidate['rank'] == 1 else ""
            self.logger.info(
                f"    {param_name}={candidate['value']!s:<8} | "
                f"Acc: {candidate['mean']:.4f} (+/- {candidate['std']:.4f}){marker}"
            )

        if self.log_file:
            with open(self.log_file, 'a') as f:
                for candidate in candidates:
                    f.write(
                        f"{model_name},"
                        f"{param_name},"
                        f"{candidate['value']},"
                        f"{candidate['mean']:.6f},"
                        f"{candidate['std']:.6f},"
                        f"{candidate['rank']}\n"
                    )

    def log_cached(self, model_name: str, path: Path):
        """Log when a model is loaded from cache instead of trained."""
        self.logger.info(f"  Loaded cached {model_name} from: {path}")

    def log_saved(self, model_name: str, path: Path):
        """Log when a fitted model is written to the cache."""
        self.logger.info(f"  Saved {model_name} to: {path}")

    def get_history(self) -> Dict[str, List[Dict[str, Any]]]:
        """Get cross-validation history."""
        return self.history
