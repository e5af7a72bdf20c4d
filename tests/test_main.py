import pandas as pd
import pytest

from weight_lifting_ml import main as main_module
from weight_lifting_ml.config import CONFIG


@pytest.fixture
def use_config(monkeypatch, config):
    """Point the global configuration at the test configuration."""
    for section in ['data', 'filter', 'split', 'model', 'evaluation', 'output']:
        monkeypatch.setattr(CONFIG, section, getattr(config, section))
    return config


def test_summary_exits_cleanly(use_config, capsys):
    assert main_module.main(['--summary']) == 0
    assert 'CONFIGURATION SUMMARY' in capsys.readouterr().out


def test_validate_only(use_config, dataset_files):
    assert main_module.main(['--validate']) == 0


def test_missing_files_fail_configuration_check(use_config):
    assert main_module.main(['--validate']) == 1


def test_full_pipeline_writes_all_outputs(use_config, dataset_files):
    config = use_config

    assert main_module.main(['--models', 'tree', 'forest']) == 0

    results_dir = config.output.results_dir
    predictions = pd.read_csv(results_dir / config.output.predictions_filename)
    assert list(predictions.columns) == ['problem_id', 'prediction']
    assert len(predictions) == 20

    report = (results_dir / config.output.report_filename).read_text()
    assert 'decision_tree' in report
    assert 'random_forest' in report
    assert 'gradient_boosting' not in report

    plots_dir = config.output.plots_dir
    assert (plots_dir / config.output.missing_plot_filename).exists()
    assert (plots_dir / config.output.correlation_plot_filename).exists()
    assert (plots_dir / 'random_forest_confusion_matrix.png').exists()

    # only the forest is cached
    assert (config.output.models_dir / 'random_forest.joblib').exists()
    assert not (config.output.models_dir / 'decision_tree.joblib').exists()


def test_second_run_reuses_cached_model(use_config, dataset_files, capsys):
    assert main_module.main(['--models', 'forest', '--no-plots']) == 0
    capsys.readouterr()

    assert main_module.main(['--models', 'forest', '--no-plots']) == 0

    assert 'Loaded cached random_forest' in capsys.readouterr().out


def test_invalid_data_returns_error(use_config, dataset_files):
    training_path, _ = dataset_files
    table = pd.read_csv(training_path)
    table.drop(columns=['classe']).to_csv(training_path, index=False)

    assert main_module.main([]) == 1
