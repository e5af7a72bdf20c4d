"""
Evaluation Module for the Weight Lifting ML Pipeline.

Generates:
- Confusion matrix per model on the holdout set
- Accuracy with exact binomial confidence interval, kappa, out-of-sample error
- Per-class sensitivity, specificity, predictive values, balanced accuracy
- Exploratory plots (missing values, feature correlation)
- Predictions for the final test cases
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from scipy.stats import binomtest
from sklearn.metrics import accuracy_score, cohen_kappa_score, confusion_matrix

from ..config import CONFIG
from ..data.preprocessing import correlation_matrix, missing_ratio
from ..training import TrainedModel
from ..utils import get_logger


def _ratio(numerator: float, denominator: float) -> float:
    return float(numerator / denominator) if denominator > 0 else float('nan')


def per_class_statistics(cm: np.ndarray, class_names: List[str]) -> pd.DataFrame:
    """
    One-vs-rest statistics for every class of a confusion matrix.

    Rows of the matrix are true classes, columns are predicted classes.
    """
    total = cm.sum()
    rows = {}

    for i, name in enumerate(class_names):
        tp = cm[i, i]
        fn = cm[i, :].sum() - tp
        fp = cm[:, i].sum() - tp
        tn = total - tp - fn - fp

        sensitivity = _ratio(tp, tp + fn)
        specificity = _ratio(tn, tn + fp)

        rows[name] = {
            'sensitivity': sensitivity,
            'specificity': specificity,
            'pos_pred_value': _ratio(tp, tp + fp),
            'neg_pred_value': _ratio(tn, tn + fn),
            'prevalence': _ratio(tp + fn, total),
            'detection_rate': _ratio(tp, total),
            'balanced_accuracy': (sensitivity + specificity) / 2,
            'support': int(tp + fn),
        }

    return pd.DataFrame.from_dict(rows, orient='index')


class ModelEvaluator:
    """
    Holdout evaluator for fitted classifiers.
    """

    def __init__(self, config=None):
        """
        Initialize evaluator.

        Args:
            config: Configuration object
        """
        self.config = config or CONFIG
        self.label_column = self.config.data.label_column
        self.logger = get_logger('eval')

    def class_names(self, *label_sets) -> List[str]:
        """Configured classes followed by any unexpected labels."""
        names = list(self.config.data.classes)
        extra = set()
        for labels in label_sets:
            extra.update(str(v) for v in labels)
        return names + sorted(extra - set(names))

    def evaluate(self, model: TrainedModel, holdout: pd.DataFrame) -> Dict[str, Any]:
        """
        Evaluate one model on the holdout table.

        Args:
            model: Fitted model
            holdout: Filtered holdout table including the label

        Returns:
            Dictionary with predictions and metrics
        """
        if len(holdout) == 0:
            raise ValueError("Holdout table is empty")

        y_true = holdout[self.label_column].astype(str).to_numpy()
        y_pred = np.asarray(model.predict(holdout)).astype(str)

        return self.compute_metrics(y_true, y_pred, model_name=model.name, model=model)

    def compute_metrics(
        self,
        y_true: np.ndarray,
        y_pred: np.ndarray,
        model_name: str = 'model',
        model: Optional[TrainedModel] = None
    ) -> Dict[str, Any]:
        """Calculate classification metrics from true and predicted labels."""
        class_names = self.class_names(y_true, y_pred)
        n_samples = len(y_true)

        cm = confusion_matrix(y_true, y_pred, labels=class_names)
        n_correct = int(np.trace(cm))
        accuracy = accuracy_score(y_true, y_pred)

        # Exact (Clopper-Pearson) interval
        ci = binomtest(n_correct, n_samples).proportion_ci(
            confidence_level=self.config.evaluation.confidence_level,
            method='exact'
        )

        # No-information rate: always predicting the largest class
        no_information_rate = cm.sum(axis=1).max() / n_samples
        p_value = binomtest(
            n_correct, n_samples, p=no_information_rate, alternative='greater'
        ).pvalue

        kappa = cohen_kappa_score(y_true, y_pred, labels=class_names)

        results = {
            'model': model_name,
            'predictions': {
                'y_true': y_true,
                'y_pred': y_pred,
            },
            'class_names': class_names,
            'confusion_matrix': cm,
            'accuracy': float(accuracy),
            'accuracy_ci': (float(ci.low), float(ci.high)),
            'no_information_rate': float(no_information_rate),
            'p_value_acc_gt_nir': float(p_value),
            'kappa': float(kappa),
            'out_of_sample_error': float(1 - accuracy),
            'per_class': per_class_statistics(cm, class_names),
            'n_samples': n_samples,
        }

        if model is not None:
            results['cv_score'] = model.cv_score
            results['best_params'] = model.best_params
            results['from_cache'] = model.from_cache

        return results

    def print_results(self, results: Dict[str, Any]):
        """Print evaluation results of one model to console."""
        print("\n" + "-"*70)
        print(f"{results['model'].upper()}")
        print("-"*70)

        cm = pd.DataFrame(
            results['confusion_matrix'],
            index=pd.Index(results['class_names'], name='True'),
            columns=pd.Index(results['class_names'], name='Predicted')
        )
        print("\n  Confusion Matrix:")
        for line in cm.to_string().splitlines():
            print(f"    {line}")

        low, high = results['accuracy_ci']
        print(f"\n  Accuracy:            {results['accuracy']:.4f}")
        print(f"  95% CI:              ({low:.4f}, {high:.4f})")
        print(f"  No Information Rate: {results['no_information_rate']:.4f}")
        print(f"  P-Value [Acc > NIR]: {results['p_value_acc_gt_nir']:.3g}")
        print(f"  Kappa:               {results['kappa']:.4f}")
        print(f"  Out-of-sample error: {results['out_of_sample_error']:.4f}")

        print("\n  Statistics by Class:")
        per_class = results['per_class'][
            ['sensitivity', 'specificity', 'pos_pred_value', 'neg_pred_value', 'balanced_accuracy']
        ]
        for line in per_class.round(4).to_string().splitlines():
            print(f"    {line}")

    def save_results(self, all_results: Dict[str, Dict[str, Any]], output_dir: Path,
                     best_model: Optional[str] = None):
        """Save evaluation results of all models to files."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        metrics = {
            name: {
                'accuracy': r['accuracy'],
                'accuracy_ci': list(r['accuracy_ci']),
                'no_information_rate': r['no_information_rate'],
                'p_value_acc_gt_nir': r['p_value_acc_gt_nir'],
                'kappa': r['kappa'],
                'out_of_sample_error': r['out_of_sample_error'],
                'cv_score': r.get('cv_score'),
                'best_params': r.get('best_params'),
                'class_names': r['class_names'],
                'confusion_matrix': r['confusion_matrix'],
                'per_class': r['per_class'].to_dict(orient='index'),
                'n_samples': r['n_samples'],
            }
            for name, r in all_results.items()
        }
        metrics = {'models': metrics, 'best_model': best_model}

        metrics = convert_numpy(metrics)

        metrics_path = output_dir / self.config.output.metrics_filename
        with open(metrics_path, 'w') as f:
            json.dump(metrics, f, indent=2)

        # Save detailed text report
        with open(output_dir / self.config.output.text_report_filename, 'w') as f:
            f.write("="*70 + "\n")
            f.write("EVALUATION REPORT\n")
            f.write("="*70 + "\n\n")

            for name, r in all_results.items():
                f.write(f"{name.upper()}\n")
                f.write("-"*40 + "\n")
                f.write(f"Accuracy: {r['accuracy']:.4f}\n")
                f.write(f"Out-of-sample error: {r['out_of_sample_error']:.4f}\n")
                f.write(f"Kappa: {r['kappa']:.4f}\n")
                cm = pd.DataFrame(r['confusion_matrix'],
                                  index=r['class_names'], columns=r['class_names'])
                f.write(cm.to_string() + "\n\n")

            if best_model:
                f.write(f"Best model: {best_model}\n")

        self.logger.info(f"Results saved to {output_dir}")


def convert_numpy(obj):
    """Convert numpy types (and NaN) to JSON-friendly Python types."""
    if isinstance(obj, np.ndarray):
        return convert_numpy(obj.tolist())
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, (np.floating, float)):
        value = float(obj)
        return None if np.isnan(value) else value
    elif isinstance(obj, dict):
        return {str(k): convert_numpy(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_numpy(v) for v in obj]
    return obj


def select_best(all_results: Dict[str, Dict[str, Any]]) -> str:
    """Name of the model with the highest holdout accuracy (first wins ties)."""
    if not all_results:
        raise ValueError("No evaluation results to choose from")
    return max(all_results, key=lambda name: all_results[name]['accuracy'])


def predict_cases(model: TrainedModel, cases: pd.DataFrame, case_ids: pd.Series,
                  id_column: str = 'problem_id') -> pd.DataFrame:
    """
    Predict the class of every final test case.

    Args:
        model: Fitted model
        cases: Filtered final test table
        case_ids: Identifier of each case, aligned with the table rows
        id_column: Name of the identifier column in the output

    Returns:
        DataFrame with the identifier and predicted class
    """
    if len(case_ids) != len(cases):
        raise ValueError("case_ids must have one entry per case")

    return pd.DataFrame({
        id_column: np.asarray(case_ids),
        'prediction': np.asarray(model.predict(cases)).astype(str),
    })


class PlotGenerator:
    """
    Generate exploratory and evaluation plots.
    """

    def __init__(self, config=None):
        self.config = config or CONFIG
        self.figsize = (10, 8)
        self.dpi = 150

    def plot_missing_values(
        self,
        table: pd.DataFrame,
        output_path: Path,
        threshold: Optional[float] = None
    ):
        """Bar plot of the missing-value proportion of every column."""
        ratios = missing_ratio(table)
        max_columns = self.config.evaluation.missing_plot_max_columns
        if max_columns:
            ratios = ratios.sort_values(ascending=False).head(max_columns)

        threshold = self.config.filter.max_missing_ratio if threshold is None else threshold

        fig, ax = plt.subplots(figsize=(max(10, len(ratios) * 0.12), 6))

        colors = ['tab:red' if r > threshold else 'tab:blue' for r in ratios.values]
        ax.bar(np.arange(len(ratios)), ratios.values, color=colors, width=0.8)
        ax.axhline(y=threshold, color='black', linestyle='--', linewidth=1,
                   label=f'Threshold ({threshold:.2f})')

        ax.set_xticks(np.arange(len(ratios)))
        ax.set_xticklabels(ratios.index, rotation=90, fontsize=5)
        ax.set_ylim(0, 1.05)
        ax.set_ylabel('Proportion missing')
        ax.set_title('Missing Values per Column')
        ax.legend()
        ax.grid(True, axis='y', alpha=0.3)

        fig.tight_layout()
        plt.savefig(output_path, dpi=self.dpi, bbox_inches='tight')
        plt.close(fig)

    def plot_correlation(self, table: pd.DataFrame, output_path: Path):
        """Heatmap of the correlation between numeric features."""
        corr = correlation_matrix(
            table.drop(columns=[self.config.data.label_column], errors='ignore'),
            method=self.config.evaluation.correlation_method
        )
        if corr.empty:
            raise ValueError("No numeric columns to correlate")

        size = max(8, len(corr) * 0.25)
        fig, ax = plt.subplots(figsize=(size, size))

        mask = np.triu(np.ones_like(corr, dtype=bool), k=1)
        sns.heatmap(corr, mask=mask, cmap='RdBu_r', vmin=-1, vmax=1, center=0,
                    square=True, linewidths=0.1, ax=ax,
                    cbar_kws={'label': 'Correlation', 'shrink': 0.6})
        ax.tick_params(labelsize=6)
        ax.set_title('Feature Correlation')

        fig.tight_layout()
        plt.savefig(output_path, dpi=self.dpi, bbox_inches='tight')
        plt.close(fig)

    def plot_confusion_matrix(
        self,
        cm: np.ndarray,
        class_names: List[str],
        title: str,
        output_path: Path
    ):
        """Plot and save confusion matrix."""
        fig, ax = plt.subplots(figsize=self.figsize)

        im = ax.imshow(cm, interpolation='nearest', cmap=plt.cm.Blues)
        ax.figure.colorbar(im, ax=ax)

        ax.set(
            xticks=np.arange(len(class_names)),
            yticks=np.arange(len(class_names)),
            xticklabels=class_names,
            yticklabels=class_names,
            title=title,
            ylabel='True Label',
            xlabel='Predicted Label'
        )

        # Add text annotations
        thresh = cm.max() / 2.
        for i in range(len(class_names)):
            for j in range(len(class_names)):
                ax.text(j, i, format(cm[i, j], 'd'),
                        ha="center", va="center",
                        color="white" if cm[i, j] > thresh else "black")

        fig.tight_layout()
        plt.savefig(output_path, dpi=self.dpi, bbox_inches='tight')
        plt.close(fig)

    def plot_exploratory(self, raw_train: pd.DataFrame, filtered_train: pd.DataFrame,
                         output_dir: Path) -> Dict[str, Path]:
        """Missing-value plot of the raw table and correlation plot of the filtered one."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        paths = {
            'missing_values': output_dir / self.config.output.missing_plot_filename,
            'correlation': output_dir / self.config.output.correlation_plot_filename,
        }
        self.plot_missing_values(raw_train, paths['missing_values'])
        self.plot_correlation(filtered_train, paths['correlation'])
        return paths

    def plot_confusion_matrices(self, all_results: Dict[str, Dict[str, Any]],
                                output_dir: Path) -> Dict[str, Path]:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        paths = {}
        for name, results in all_results.items():
            path = output_dir / f'{name}_confusion_matrix.png'
            title = f"{name.replace('_', ' ').title()} (accuracy {results['accuracy']:.3f})"
            self.plot_confusion_matrix(
                results['confusion_matrix'], results['class_names'], title, path
            )
            paths[name] = path
        return paths


def evaluate_models(
    models: Dict[str, TrainedModel],
    holdout: pd.DataFrame,
    config=None,
    output_dir: Path = None,
    plots_dir: Path = None,
    generate_plots: bool = True
) -> Dict[str, Dict[str, Any]]:
    """
    Evaluate all fitted models on the holdout table.

    Args:
        models: Fitted models by name
        holdout: Filtered holdout table
        config: Configuration object
        output_dir: Directory for metrics files
        plots_dir: Directory for confusion matrix plots
        generate_plots: Whether to draw confusion matrices

    Returns:
        Evaluation results by model name
    """
    config = config or CONFIG
    output_dir = output_dir or config.output.results_dir
    plots_dir = plots_dir or config.output.plots_dir

    evaluator = ModelEvaluator(config)

    print("\n" + "="*70)
    print("EVALUATION RESULTS (holdout)")
    print("="*70)

    all_results = {}
    for name, model in models.items():
        results = evaluator.evaluate(model, holdout)
        evaluator.print_results(results)
        all_results[name] = results

    best = select_best(all_results)
    print("\n" + "="*70)
    print(f"Best model: {best} (accuracy {all_results[best]['accuracy']:.4f})")
    print("="*70)

    evaluator.save_results(all_results, output_dir, best_model=best)

    if generate_plots:
        PlotGenerator(config).plot_confusion_matrices(all_results, plots_dir)

    return all_results
