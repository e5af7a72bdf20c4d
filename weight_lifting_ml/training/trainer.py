"""
Training Module for the Weight Lifting ML Pipeline.

Features:
- Decision tree, random forest and gradient boosting classifiers
- One hyperparameter per model selected by stratified k-fold grid search
- Median imputation of leftover missing values
- Fitted models cached on disk so repeated runs skip retraining
- Cross-validation results logged to CSV
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import hashlib
import time

import joblib
import numpy as np
import pandas as pd
from sklearn.ensemble import GradientBoostingClassifier, RandomForestClassifier
from sklearn.impute import SimpleImputer
from sklearn.model_selection import GridSearchCV, StratifiedKFold
from sklearn.pipeline import Pipeline
from sklearn.tree import DecisionTreeClassifier

from ..config import CONFIG, ModelSpec
from ..data.dataset import feature_matrix
from ..utils import get_logger, ProgressLogger, TrainingLogger


ESTIMATORS = {
    'decision_tree': DecisionTreeClassifier,
    'random_forest': RandomForestClassifier,
    'gradient_boosting': GradientBoostingClassifier,
}


@dataclass
class TrainedModel:
    """A fitted classifier together with its cross-validation outcome."""
    name: str
    estimator: Pipeline
    feature_columns: List[str]
    param_name: str
    best_params: Dict[str, Any]
    cv_score: float
    cv_results: pd.DataFrame
    fit_seconds: float = 0.0
    from_cache: bool = False
    classes: List[str] = field(default_factory=list)
    fingerprint: Dict[str, Any] = field(default_factory=dict)

    @property
    def best_value(self) -> Any:
        return self.best_params.get(self.param_name)

    def predict(self, table: pd.DataFrame) -> np.ndarray:
        """Predict class labels for every row of a filtered table."""
        return self.estimator.predict(feature_matrix(table, self.feature_columns))

    def to_artifact(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'estimator': self.estimator,
            'feature_columns': self.feature_columns,
            'param_name': self.param_name,
            'best_params': self.best_params,
            'cv_score': self.cv_score,
            'cv_results': self.cv_results,
            'fit_seconds': self.fit_seconds,
            'classes': self.classes,
            'fingerprint': self.fingerprint,
        }

    @classmethod
    def from_artifact(cls, artifact: Dict[str, Any]) -> 'TrainedModel':
        return cls(from_cache=True, **artifact)


class ModelTrainer:
    """
    Trains one classifier with grid-searched hyperparameter.
    """

    def __init__(
        self,
        spec: ModelSpec,
        config=None,
        training_logger: Optional[TrainingLogger] = None
    ):
        """
        Initialize trainer.

        Args:
            spec: Model specification (estimator, grid, folds, caching)
            config: Configuration object
            training_logger: Shared logger for CV results
        """
        if spec.estimator not in ESTIMATORS:
            raise ValueError(f"Unknown estimator: {spec.estimator}")

        self.spec = spec
        self.config = config or CONFIG
        self.logger = get_logger('train')
        self.training_logger = training_logger or TrainingLogger()
        self.seed = self.config.split.random_seed

    @property
    def cache_path(self) -> Path:
        return Path(self.config.output.models_dir) / self.spec.filename

    def build_estimator(self) -> Pipeline:
        """Imputation followed by the configured classifier."""
        params = dict(self.spec.fixed_params)
        params['random_state'] = self.seed
        if self.spec.n_jobs is not None:
            params['n_jobs'] = self.spec.n_jobs

        classifier = ESTIMATORS[self.spec.estimator](**params)

        return Pipeline([
            ('impute', SimpleImputer(strategy='median')),
            ('model', classifier),
        ])

    def param_grid(self, n_features: int) -> List[Any]:
        """Grid values, with feature subset sizes capped at the feature count."""
        grid = list(self.spec.param_grid)
        if self.spec.param_name == 'max_features':
            ints = sorted({v for v in grid if isinstance(v, (int, np.integer)) and v <= n_features})
            others = [v for v in grid if not isinstance(v, (int, np.integer))]
            grid = ints + others or [n_features]
        return grid

    def fit(self, train_table: pd.DataFrame, feature_columns: List[str]) -> TrainedModel:
        """
        Fit the model, or load it from cache when allowed.

        Args:
            train_table: Filtered training table (features + label)
            feature_columns: Columns used as predictors

        Returns:
            TrainedModel
        """
        fingerprint = self.fingerprint(train_table)

        if self.spec.cache and not self.config.model.retrain:
            cached = self.load_cached(feature_columns, fingerprint)
            if cached is not None:
                return cached

        label = self.config.data.label_column
        X = feature_matrix(train_table, feature_columns)
        y = train_table[label].astype(str).to_numpy()

        if len(X) == 0:
            raise ValueError("Training table is empty")

        grid = self.param_grid(X.shape[1])
        cv = StratifiedKFold(n_splits=self.spec.cv_folds, shuffle=True, random_state=self.seed)

        search = GridSearchCV(
            self.build_estimator(),
            param_grid={f'model__{self.spec.param_name}': grid},
            scoring=self.config.model.scoring,
            cv=cv,
            refit=True
        )

        self.logger.info(
            f"  Fitting {self.spec.name}: {self.spec.param_name} in {grid}, "
            f"{self.spec.cv_folds}-fold CV on {X.shape[0]} rows x {X.shape[1]} features"
        )

        start_time = time.time()
        search.fit(X, y)
        fit_seconds = time.time() - start_time

        cv_results = self._cv_table(search)
        self.training_logger.log_search(
            self.spec.name,
            self.spec.param_name,
            cv_results.to_dict('records')
        )

        best_params = {
            key.replace('model__', ''): value
            for key, value in search.best_params_.items()
        }

        model = TrainedModel(
            name=self.spec.name,
            estimator=search.best_estimator_,
            feature_columns=list(feature_columns),
            param_name=self.spec.param_name,
            best_params=best_params,
            cv_score=float(search.best_score_),
            cv_results=cv_results,
            fit_seconds=fit_seconds,
            classes=[str(c) for c in search.classes_],
            fingerprint=fingerprint
        )

        self.logger.info(
            f"  {self.spec.name}: best {self.spec.param_name}={model.best_value} | "
            f"CV accuracy: {model.cv_score:.4f} | {fit_seconds:.1f}s"
        )

        if self.spec.cache:
            self.save(model)

        return model

    def _cv_table(self, search: GridSearchCV) -> pd.DataFrame:
        results = search.cv_results_
        key = f'param_model__{self.spec.param_name}'
        return pd.DataFrame({
            'value': list(results[key]),
            'mean': results['mean_test_score'],
            'std': results['std_test_score'],
            'rank': results['rank_test_score'],
        })

    def save(self, model: TrainedModel) -> Path:
        """Write the fitted model to the cache."""
        path = self.cache_path
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(model.to_artifact(), path)
        self.training_logger.log_saved(model.name, path)
        return path

    def fingerprint(self, train_table: pd.DataFrame) -> Dict[str, Any]:
        """Search settings and training rows a cached model must match."""
        label = self.config.data.label_column
        row_hashes = pd.util.hash_pandas_object(train_table[label], index=True)

        return {
            'estimator': self.spec.estimator,
            'param_name': self.spec.param_name,
            'param_grid': list(self.spec.param_grid),
            'cv_folds': self.spec.cv_folds,
            'fixed_params': dict(self.spec.fixed_params),
            'scoring': self.config.model.scoring,
            'random_seed': self.config.split.random_seed,
            'train_fraction': self.config.split.train_fraction,
            'training_rows': hashlib.sha256(row_hashes.to_numpy().tobytes()).hexdigest(),
        }

    def load_cached(
        self,
        feature_columns: List[str],
        fingerprint: Optional[Dict[str, Any]] = None
    ) -> Optional[TrainedModel]:
        """
        Load the cached model if it exists and was fitted on the same
        features, rows and search settings.
        """
        path = self.cache_path
        if not path.exists():
            return None

        model = TrainedModel.from_artifact(joblib.load(path))

        if list(model.feature_columns) != list(feature_columns):
            self.logger.warning(
                f"Cached {model.name} was fitted on different features; retraining"
            )
            return None

        if fingerprint is not None and model.fingerprint != fingerprint:
            changed = sorted(
                key for key in set(fingerprint) | set(model.fingerprint)
                if model.fingerprint.get(key) != fingerprint.get(key)
            )
            self.logger.warning(
                f"Cached {model.name} was fitted with different {', '.join(changed)}; retraining"
            )
            return None

        self.training_logger.log_cached(model.name, path)
        return model


def train_models(
    train_table: pd.DataFrame,
    feature_columns: List[str],
    config=None
) -> Dict[str, TrainedModel]:
    """
    Train every selected model in configuration order.

    Args:
        train_table: Filtered training table
        feature_columns: Columns used as predictors
        config: Configuration object

    Returns:
        Dict of model name -> TrainedModel
    """
    config = config or CONFIG
    logger = get_logger('train')

    specs = config.model.selected_specs()
    training_logger = TrainingLogger(
        log_file=Path(config.output.logs_dir) / config.output.cv_log_filename
    )
    progress = ProgressLogger(total=len(specs), desc="Model")

    logger.info("="*70)
    logger.info("TRAINING STARTED")
    logger.info("="*70)

    start_time = time.time()
    models = {}

    for spec in specs:
        progress.update(label=spec.name)
        trainer = ModelTrainer(spec, config, training_logger=training_logger)
        model = trainer.fit(train_table, feature_columns)
        models[model.name] = model

    progress.finish({name: m.cv_score for name, m in models.items()})

    logger.info(f"Total time: {(time.time() - start_time) / 60:.1f} minutes")
    logger.info("="*70)

    return models
