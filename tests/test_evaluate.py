import json

import numpy as np
import pandas as pd
import pytest

from weight_lifting_ml.data import filter_tables, partition_rows
from weight_lifting_ml.evaluation import (
    ModelEvaluator,
    PlotGenerator,
    evaluate_models,
    per_class_statistics,
    predict_cases,
    select_best,
    write_report,
)
from weight_lifting_ml.training import ModelTrainer


@pytest.fixture
def prepared(config, raw_training, raw_testing):
    partition = partition_rows(raw_training, 'classe', 0.8, 51)
    column_filter, train, holdout, cases = filter_tables(
        partition.train(raw_training), partition.holdout(raw_training), raw_testing,
        config=config
    )
    model = ModelTrainer(config.model.models['tree'], config).fit(
        train, column_filter.feature_columns
    )
    return {
        'partition': partition,
        'filter': column_filter,
        'train_raw': partition.train(raw_training),
        'train': train,
        'holdout': holdout,
        'cases': cases,
        'model': model,
    }


def test_per_class_statistics_from_known_matrix():
    cm = np.array([
        [8, 2],
        [1, 9],
    ])

    stats = per_class_statistics(cm, ['A', 'B'])

    assert stats.at['A', 'sensitivity'] == pytest.approx(0.8)
    assert stats.at['A', 'specificity'] == pytest.approx(0.9)
    assert stats.at['A', 'pos_pred_value'] == pytest.approx(8 / 9)
    assert stats.at['A', 'neg_pred_value'] == pytest.approx(9 / 11)
    assert stats.at['A', 'prevalence'] == pytest.approx(0.5)
    assert stats.at['B', 'sensitivity'] == pytest.approx(0.9)
    assert stats.at['B', 'balanced_accuracy'] == pytest.approx(0.85)
    assert stats.at['B', 'support'] == 10


def test_undefined_statistics_are_nan():
    cm = np.array([
        [5, 0],
        [0, 0],
    ])

    stats = per_class_statistics(cm, ['A', 'B'])

    assert np.isnan(stats.at['B', 'sensitivity'])
    assert stats.at['B', 'specificity'] == 1.0


def test_compute_metrics_matrix_sums_match_counts(config):
    y_true = np.array(list('AAAABBBCCDE'))
    y_pred = np.array(list('AAABBBCCCDA'))

    results = ModelEvaluator(config).compute_metrics(y_true, y_pred)
    cm = results['confusion_matrix']

    assert results['class_names'] == ['A', 'B', 'C', 'D', 'E']
    assert list(cm.sum(axis=1)) == [4, 3, 2, 1, 1]
    assert list(cm.sum(axis=0)) == [4, 3, 3, 1, 0]
    assert results['accuracy'] == pytest.approx(8 / 11)
    assert results['out_of_sample_error'] == pytest.approx(3 / 11)
    assert results['no_information_rate'] == pytest.approx(4 / 11)

    low, high = results['accuracy_ci']
    assert 0.0 <= low <= results['accuracy'] <= high <= 1.0


def test_unexpected_labels_get_their_own_row(config):
    results = ModelEvaluator(config).compute_metrics(np.array(['A', 'Z']), np.array(['A', 'A']))

    assert results['class_names'] == ['A', 'B', 'C', 'D', 'E', 'Z']
    assert results['confusion_matrix'].sum() == 2


def test_undefined_kappa_stays_missing(config, tmp_path):
    evaluator = ModelEvaluator(config)
    # one class in both truth and prediction leaves kappa undefined
    results = evaluator.compute_metrics(np.array(['A'] * 4), np.array(['A'] * 4))

    assert np.isnan(results['kappa'])

    evaluator.save_results({'decision_tree': results}, tmp_path)
    metrics = json.loads((tmp_path / config.output.metrics_filename).read_text())
    assert metrics['models']['decision_tree']['kappa'] is None


def test_evaluate_fitted_model_on_holdout(config, prepared):
    results = ModelEvaluator(config).evaluate(prepared['model'], prepared['holdout'])

    assert 0.0 <= results['accuracy'] <= 1.0
    assert results['n_samples'] == len(prepared['holdout'])
    assert results['confusion_matrix'].sum() == len(prepared['holdout'])
    counts = prepared['holdout']['classe'].value_counts()
    for i, name in enumerate(results['class_names']):
        assert results['confusion_matrix'][i].sum() == counts.get(name, 0)
    assert results['best_params'] == prepared['model'].best_params


def test_evaluate_rejects_empty_holdout(config, prepared):
    with pytest.raises(ValueError):
        ModelEvaluator(config).evaluate(prepared['model'], prepared['holdout'].iloc[0:0])


def test_select_best_picks_highest_accuracy():
    results = {'a': {'accuracy': 0.7}, 'b': {'accuracy': 0.9}, 'c': {'accuracy': 0.9}}

    assert select_best(results) == 'b'

    with pytest.raises(ValueError):
        select_best({})


def test_predict_cases_pairs_ids_and_labels(prepared, raw_testing):
    predictions = predict_cases(prepared['model'], prepared['cases'], raw_testing['problem_id'])

    assert list(predictions.columns) == ['problem_id', 'prediction']
    assert list(predictions['problem_id']) == list(range(1, 21))
    assert set(predictions['prediction']) <= set('ABCDE')

    with pytest.raises(ValueError):
        predict_cases(prepared['model'], prepared['cases'], raw_testing['problem_id'][:5])


def test_evaluate_models_saves_metrics_and_plots(config, prepared):
    results = evaluate_models(
        {'decision_tree': prepared['model']}, prepared['holdout'], config
    )

    metrics_path = config.output.results_dir / config.output.metrics_filename
    metrics = json.loads(metrics_path.read_text())

    assert metrics['best_model'] == 'decision_tree'
    saved = metrics['models']['decision_tree']
    assert saved['accuracy'] == pytest.approx(results['decision_tree']['accuracy'])
    assert len(saved['confusion_matrix']) == 5
    assert (config.output.results_dir / config.output.text_report_filename).exists()
    assert (config.output.plots_dir / 'decision_tree_confusion_matrix.png').exists()


def test_exploratory_plots_are_written(config, prepared, tmp_path):
    paths = PlotGenerator(config).plot_exploratory(
        prepared['train_raw'], prepared['train'], tmp_path / 'plots'
    )

    assert paths['missing_values'].name == 'missing_values.png'
    for path in paths.values():
        assert path.exists()
        assert path.stat().st_size > 0


def test_correlation_plot_needs_numeric_columns(config, tmp_path):
    with pytest.raises(ValueError):
        PlotGenerator(config).plot_correlation(
            pd.DataFrame({'classe': ['A', 'B']}), tmp_path / 'corr.png'
        )


def test_write_report_lists_models_and_predictions(config, prepared, raw_testing, tmp_path):
    model = prepared['model']
    results = {model.name: ModelEvaluator(config).evaluate(model, prepared['holdout'])}
    predictions = predict_cases(model, prepared['cases'], raw_testing['problem_id'])

    path = write_report(
        tmp_path / 'report.md',
        raw_shape=(300, 17),
        column_filter=prepared['filter'],
        partition_sizes=prepared['partition'].sizes,
        models={model.name: model},
        results=results,
        best_model=model.name,
        predictions=predictions,
        config=config
    )

    text = path.read_text()
    assert text.startswith('# Weight Lifting Exercise Quality Prediction')
    assert '## Best model: decision_tree' in text
    assert '240 training / 60 holdout rows' in text
    assert 'Retained features: 7' in text
    assert '| problem_id |' in text


def test_write_report_leaves_results_untouched(config, prepared, tmp_path):
    model = prepared['model']
    results = {model.name: ModelEvaluator(config).evaluate(model, prepared['holdout'])}
    per_class = results[model.name]['per_class']
    index_name = per_class.index.name

    write_report(
        tmp_path / 'report.md',
        raw_shape=(300, 17),
        column_filter=prepared['filter'],
        partition_sizes=prepared['partition'].sizes,
        models={model.name: model},
        results=results,
        best_model=model.name,
        config=config
    )

    assert per_class.index.name == index_name
    assert '| Class |' in (tmp_path / 'report.md').read_text()
