"""
Markdown report for one pipeline run.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from ..config import CONFIG
from ..data.preprocessing import ColumnFilter
from ..training import TrainedModel
from ..utils import get_logger


def _table(frame: pd.DataFrame, floatfmt: str = '.4f') -> List[str]:
    """Render a DataFrame as a Markdown table."""
    columns = [str(frame.index.name or '')] + [str(c) for c in frame.columns]
    lines = [
        '| ' + ' | '.join(columns) + ' |',
        '|' + '|'.join(['---'] * len(columns)) + '|',
    ]
    for index, row in frame.iterrows():
        cells = [str(index)]
        for value in row:
            if isinstance(value, float):
                cells.append(format(value, floatfmt))
            else:
                cells.append(str(value))
        lines.append('| ' + ' | '.join(cells) + ' |')
    return lines


def write_report(
    output_path: Path,
    raw_shape: tuple,
    column_filter: ColumnFilter,
    partition_sizes: tuple,
    models: Dict[str, TrainedModel],
    results: Dict[str, Dict[str, Any]],
    best_model: str,
    predictions: Optional[pd.DataFrame] = None,
    plots: Optional[Dict[str, Path]] = None,
    config=None
) -> Path:
    """
    Write the run report as Markdown.

    Returns:
        Path of the written report
    """
    config = config or CONFIG
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        '# Weight Lifting Exercise Quality Prediction',
        '',
        f"Generated {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        '',
        '## Data',
        '',
        f"- Training table: {raw_shape[0]} rows x {raw_shape[1]} columns",
        f"- Label: `{config.data.label_column}` ({', '.join(config.data.classes)})",
        f"- Partition: {partition_sizes[0]} training / {partition_sizes[1]} holdout rows "
        f"(stratified, seed {config.split.random_seed})",
        '',
        '## Column filter',
        '',
    ]

    summary = column_filter.summary()
    lines += [
        f"- Retained features: {len(column_filter.feature_columns)}",
        f"- Dropped for missing values (> {config.filter.max_missing_ratio}): {summary['missing']}",
        f"- Dropped for empty strings (> {config.filter.max_empty_ratio}): {summary['empty_string']}",
        f"- Dropped for near-zero variance: {summary['near_zero_variance']}",
        f"- Dropped identifiers/timestamps: {summary['identifier']}",
        '',
        '## Models',
        '',
    ]

    model_rows = pd.DataFrame({
        'Tuned parameter': [m.param_name for m in models.values()],
        'Selected value': [str(m.best_value) for m in models.values()],
        'CV accuracy': [m.cv_score for m in models.values()],
        'Holdout accuracy': [results[name]['accuracy'] for name in models],
        'Out-of-sample error': [results[name]['out_of_sample_error'] for name in models],
        'Cached': ['yes' if m.from_cache else 'no' for m in models.values()],
    }, index=pd.Index(list(models), name='Model'))
    lines += _table(model_rows)

    best = results[best_model]
    low, high = best['accuracy_ci']
    lines += [
        '',
        f"## Best model: {best_model}",
        '',
        f"Holdout accuracy {best['accuracy']:.4f} "
        f"(95% CI {low:.4f} to {high:.4f}), kappa {best['kappa']:.4f}.",
        '',
        '### Confusion matrix',
        '',
    ]
    cm = pd.DataFrame(best['confusion_matrix'],
                      index=pd.Index(best['class_names'], name='True \\ Predicted'),
                      columns=best['class_names'])
    lines += _table(cm)

    lines += ['', '### Statistics by class', '']
    per_class = best['per_class'][['sensitivity', 'specificity', 'pos_pred_value',
                                   'neg_pred_value', 'balanced_accuracy']]
    per_class = per_class.rename_axis('Class')
    lines += _table(per_class)

    if predictions is not None:
        lines += ['', '## Test case predictions', '']
        lines += _table(predictions.set_index(predictions.columns[0]))

    if plots:
        lines += ['', '## Plots', '']
        for name, path in plots.items():
            lines.append(f"- {name.replace('_', ' ')}: `{path}`")

    lines.append('')
    output_path.write_text('\n'.join(lines), encoding='utf-8')

    get_logger('eval').info(f"Report written to {output_path}")
    return output_path
