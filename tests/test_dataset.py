import numpy as np
import pandas as pd
import pytest

from weight_lifting_ml.data import (
    class_distribution,
    feature_matrix,
    load_table,
    load_tables,
    partition_rows,
)


def test_load_table_names_blank_header_and_keeps_empty_strings(config, dataset_files):
    training_path, _ = dataset_files

    table = load_table(training_path, config)

    assert table.columns[0] == 'X'
    assert table.shape == (300, 17)
    assert table['max_roll_belt'].isna().sum() == 294
    assert (table['kurtosis_roll_belt'] == '').sum() == 294
    assert table['roll_belt'].dtype == float


def test_load_table_reads_div0_as_missing(config, tmp_path):
    path = tmp_path / 'small.csv'
    path.write_text('"","a","b","classe"\n"1","#DIV/0!","","A"\n"2","1.5","x","B"\n')

    table = load_table(path, config)

    assert list(table.columns) == ['X', 'a', 'b', 'classe']
    assert np.isnan(table.loc[0, 'a'])
    assert table.loc[1, 'a'] == 1.5
    assert table.loc[0, 'b'] == ''


def test_load_tables_returns_both_files(config, dataset_files):
    training, testing = load_tables(config)

    assert 'classe' in training.columns
    assert 'problem_id' in testing.columns
    assert len(testing) == 20


def test_partition_is_disjoint_and_complete(raw_training):
    partition = partition_rows(raw_training, 'classe', train_fraction=0.8, seed=51)

    train = set(partition.train_index)
    holdout = set(partition.holdout_index)

    assert not train & holdout
    assert train | holdout == set(raw_training.index)
    assert partition.sizes == (240, 60)


def test_partition_is_deterministic_for_seed(raw_training):
    first = partition_rows(raw_training, 'classe', 0.8, 51)
    second = partition_rows(raw_training, 'classe', 0.8, 51)
    other = partition_rows(raw_training, 'classe', 0.8, 52)

    assert first.train_index.equals(second.train_index)
    assert first.holdout_index.equals(second.holdout_index)
    assert not first.train_index.equals(other.train_index)


def test_partition_preserves_label_proportions(raw_training):
    partition = partition_rows(raw_training, 'classe', 0.8, 51)

    train_counts = partition.train(raw_training)['classe'].value_counts()
    holdout_counts = partition.holdout(raw_training)['classe'].value_counts()

    # 60 rows per class in the full table
    assert (train_counts == 48).all()
    assert (holdout_counts == 12).all()


def test_partition_keeps_row_order(raw_training):
    partition = partition_rows(raw_training, 'classe', 0.8, 51)

    assert partition.train_index.is_monotonic_increasing
    assert partition.holdout_index.is_monotonic_increasing


def test_partition_rejects_bad_arguments(raw_training):
    with pytest.raises(ValueError):
        partition_rows(raw_training, 'classe', train_fraction=1.0)
    with pytest.raises(ValueError):
        partition_rows(raw_training, 'missing_label')


def test_feature_matrix_coerces_to_float():
    table = pd.DataFrame({'a': ['1.5', '', 'x'], 'b': [1, 2, 3], 'c': ['A', 'B', 'C']})

    matrix = feature_matrix(table, ['a', 'b'])

    assert list(matrix.columns) == ['a', 'b']
    assert matrix['a'].iloc[0] == 1.5
    assert matrix['a'].isna().sum() == 2
    assert (matrix.dtypes == float).all()


def test_feature_matrix_requires_columns():
    with pytest.raises(ValueError):
        feature_matrix(pd.DataFrame({'a': [1]}), ['a', 'b'])


def test_class_distribution_sorted(raw_training):
    assert class_distribution(raw_training['classe']) == {c: 60 for c in 'ABCDE'}
