"""
Centralized Configuration Module for the Weight Lifting ML Pipeline.

All URLs, paths, filtering thresholds, split settings and model grids are
defined here. Only model selection and cache behaviour can be overridden via
command line.
"""

from pathlib import Path
from typing import Dict, List, Any, Optional, Tuple
from dataclasses import dataclass, field, asdict
import copy
import json


# =============================================================================
# BASE PATHS
# =============================================================================

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent.absolute()

# Local copies of the downloaded CSV files
DATASET_DIR = PROJECT_ROOT / "dataset"

# Output directories
OUTPUT_DIR = PROJECT_ROOT / "output"
LOGS_DIR = OUTPUT_DIR / "logs"
RESULTS_DIR = OUTPUT_DIR / "results"
PLOTS_DIR = OUTPUT_DIR / "plots"
MODELS_DIR = OUTPUT_DIR / "models"

BASE_URL = "https://d396qusza40orc.cloudfront.net/predmachlearn"


# =============================================================================
# DATA CONFIGURATION
# =============================================================================

@dataclass
class DataConfig:
    """Dataset location and loading configuration."""

    dataset_dir: Path = DATASET_DIR

    training_url: str = f"{BASE_URL}/pml-training.csv"
    testing_url: str = f"{BASE_URL}/pml-testing.csv"
    training_file: str = 'pml-training.csv'
    testing_file: str = 'pml-testing.csv'

    # Download only when the local copy is missing
    download_if_missing: bool = True
    download_timeout: float = 60.0

    # Strings read as missing values. Empty strings are kept so that their
    # proportion can be measured separately.
    na_values: List[str] = field(default_factory=lambda: ['NA', '#DIV/0!'])

    # Schema
    label_column: str = 'classe'
    id_column: str = 'problem_id'
    classes: List[str] = field(default_factory=lambda: ['A', 'B', 'C', 'D', 'E'])
    expected_columns: int = 160

    @property
    def training_path(self) -> Path:
        return Path(self.dataset_dir) / self.training_file

    @property
    def testing_path(self) -> Path:
        return Path(self.dataset_dir) / self.testing_file


# =============================================================================
# COLUMN FILTER CONFIGURATION
# =============================================================================

@dataclass
class FilterConfig:
    """Thresholds for dropping low-information columns."""

    max_missing_ratio: float = 0.95
    max_empty_ratio: float = 0.95

    # Near-zero-variance: ratio of most common to second most common value
    # above freq_cut AND percentage of distinct values at most unique_cut
    nzv_freq_cut: float = 95 / 5
    nzv_unique_cut: float = 10.0

    # Identifier and timestamp columns, dropped by name
    identifier_columns: List[str] = field(default_factory=lambda: [
        'X',
        'user_name',
        'raw_timestamp_part_1',
        'raw_timestamp_part_2',
        'cvtd_timestamp',
    ])


# =============================================================================
# SPLIT CONFIGURATION
# =============================================================================

@dataclass
class SplitConfig:
    """Train/holdout partition configuration."""

    train_fraction: float = 0.8
    random_seed: int = 51


# =============================================================================
# MODEL CONFIGURATION
# =============================================================================

@dataclass
class ModelSpec:
    """One classifier with the single hyperparameter tuned by cross-validation."""
    name: str
    key: str
    estimator: str
    param_name: str
    param_grid: List[Any]
    cv_folds: int
    fixed_params: Dict[str, Any] = field(default_factory=dict)
    cache: bool = False
    n_jobs: Optional[int] = None

    @property
    def filename(self) -> str:
        return f"{self.name}.joblib"


MODELS: Dict[str, ModelSpec] = {
    'tree': ModelSpec(
        name='decision_tree',
        key='tree',
        estimator='decision_tree',
        param_name='ccp_alpha',  # cost-complexity pruning parameter
        param_grid=[0.0, 0.0005, 0.001, 0.005, 0.01, 0.02],
        cv_folds=5,
    ),
    'forest': ModelSpec(
        name='random_forest',
        key='forest',
        estimator='random_forest',
        param_name='max_features',  # features considered per split
        param_grid=[2, 7, 14, 27],
        cv_folds=3,
        fixed_params={'n_estimators': 100},
        cache=True,
        n_jobs=-1,
    ),
    'boosting': ModelSpec(
        name='gradient_boosting',
        key='boosting',
        estimator='gradient_boosting',
        param_name='n_estimators',  # number of boosting stages
        param_grid=[50, 100, 150],
        cv_folds=4,
        fixed_params={'max_depth': 3, 'learning_rate': 0.1},
        cache=True,
    ),
}


@dataclass
class ModelConfig:
    """Which classifiers to train and how."""

    models: Dict[str, ModelSpec] = field(default_factory=lambda: copy.deepcopy(MODELS))
    selected: List[str] = field(default_factory=lambda: ['tree', 'forest', 'boosting'])

    # Ignore cached models and fit again
    retrain: bool = False

    scoring: str = 'accuracy'

    def selected_specs(self) -> List[ModelSpec]:
        return [self.models[key] for key in self.selected]


# =============================================================================
# EVALUATION CONFIGURATION
# =============================================================================

@dataclass
class EvaluationConfig:
    """Evaluation and plotting configuration."""

    confidence_level: float = 0.95

    generate_plots: bool = True

    # Columns shown in the missing-value barplot (all when None)
    missing_plot_max_columns: Optional[int] = None
    correlation_method: str = 'pearson'


# =============================================================================
# OUTPUT CONFIGURATION
# =============================================================================

@dataclass
class OutputConfig:
    """Output paths and logging configuration."""

    # Directories
    output_dir: Path = OUTPUT_DIR
    logs_dir: Path = LOGS_DIR
    results_dir: Path = RESULTS_DIR
    plots_dir: Path = PLOTS_DIR
    models_dir: Path = MODELS_DIR

    # File names
    missing_plot_filename: str = 'missing_values.png'
    correlation_plot_filename: str = 'correlation.png'
    metrics_filename: str = 'evaluation_metrics.json'
    text_report_filename: str = 'evaluation_report.txt'
    predictions_filename: str = 'predictions.csv'
    report_filename: str = 'report.md'
    cv_log_filename: str = 'cv_results.csv'

    # Logging
    log_level: str = 'INFO'
    verbose_console: bool = False  # Only show essential info in terminal

    def ensure_directories(self):
        """Create output directories if they don't exist."""
        for dir_path in [self.output_dir, self.logs_dir, self.results_dir,
                         self.plots_dir, self.models_dir]:
            Path(dir_path).mkdir(parents=True, exist_ok=True)

    @classmethod
    def under(cls, root: Path, **kwargs) -> 'OutputConfig':
        """Build an output layout rooted at another directory."""
        root = Path(root)
        return cls(
            output_dir=root,
            logs_dir=root / "logs",
            results_dir=root / "results",
            plots_dir=root / "plots",
            models_dir=root / "models",
            **kwargs
        )


# =============================================================================
# MASTER CONFIGURATION CLASS
# =============================================================================

@dataclass
class Config:
    """Master configuration container."""

    data: DataConfig = field(default_factory=DataConfig)
    filter: FilterConfig = field(default_factory=FilterConfig)
    split: SplitConfig = field(default_factory=SplitConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def validate(self) -> Tuple[List[str], List[str]]:
        """Validate configuration settings."""
        errors = []
        warnings = []

        if not 0 < self.split.train_fraction < 1:
            errors.append("train_fraction must be between 0 and 1")

        for name in ('max_missing_ratio', 'max_empty_ratio'):
            value = getattr(self.filter, name)
            if not 0 <= value <= 1:
                errors.append(f"{name} must be between 0 and 1")

        for key in self.model.selected:
            if key not in self.model.models:
                errors.append(f"Unknown model '{key}'")
                continue
            spec = self.model.models[key]
            if spec.cv_folds < 2:
                errors.append(f"Model '{key}' needs at least 2 CV folds")
            if not spec.param_grid:
                errors.append(f"Model '{key}' has an empty parameter grid")

        if not self.model.selected:
            errors.append("No models selected")

        if not self.data.download_if_missing:
            for path in (self.data.training_path, self.data.testing_path):
                if not path.exists():
                    errors.append(f"Dataset file does not exist: {path}")

        # Warnings
        if self.filter.max_missing_ratio < 0.5:
            warnings.append("Low missing-value threshold may drop informative columns")

        if self.split.train_fraction < 0.6:
            warnings.append("Small training fraction may reduce model quality")

        return errors, warnings

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization."""

        def convert(obj):
            if isinstance(obj, Path):
                return str(obj)
            if isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            if isinstance(obj, list):
                return [convert(v) for v in obj]
            return obj

        result = {}
        for field_name in ['data', 'filter', 'split', 'model', 'evaluation', 'output']:
            result[field_name] = convert(asdict(getattr(self, field_name)))

        return result

    def save(self, filepath: Path):
        """Save configuration to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2, default=str)

    def print_summary(self):
        """Print a summary of the current configuration."""
        print("\n" + "="*70)
        print("CONFIGURATION SUMMARY")
        print("="*70)

        print(f"\nTraining data: {self.data.training_url}")
        print(f"Testing data:  {self.data.testing_url}")
        print(f"Local copy:    {self.data.dataset_dir}")
        print(f"Label:         {self.data.label_column} ({', '.join(self.data.classes)})")

        print("\nColumn Filter:")
        print(f"  Max missing ratio: {self.filter.max_missing_ratio}")
        print(f"  Max empty ratio:   {self.filter.max_empty_ratio}")
        print(f"  NZV freq cut:      {self.filter.nzv_freq_cut:.1f}")
        print(f"  NZV unique cut:    {self.filter.nzv_unique_cut:.1f}%")
        print(f"  Identifiers:       {', '.join(self.filter.identifier_columns)}")

        print(f"\nSplit: {self.split.train_fraction:.0%} train, seed {self.split.random_seed}")

        print("\nModels:")
        for spec in self.model.selected_specs():
            cached = " (cached)" if spec.cache else ""
            print(f"  {spec.name:18s}: {spec.param_name} in {spec.param_grid}, "
                  f"{spec.cv_folds}-fold CV{cached}")
        print(f"  Retrain: {self.model.retrain}")

        print("="*70)


# =============================================================================
# DEFAULT CONFIGURATION INSTANCE
# =============================================================================

# Create default configuration
CONFIG = Config()


def get_config() -> Config:
    """Get the default configuration instance."""
    return CONFIG


def set_retrain(retrain: bool):
    """Force retraining of cached models (CLI override)."""
    CONFIG.model.retrain = retrain


def set_models(keys: List[str]):
    """Restrict the models to train (CLI override)."""
    unknown = [key for key in keys if key not in CONFIG.model.models]
    if unknown:
        raise ValueError(f"Unknown model(s): {', '.join(unknown)}")
    CONFIG.model.selected = list(keys)
