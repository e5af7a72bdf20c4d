#!/usr/bin/env python3
"""
Main Entry Point for the Weight Lifting ML Pipeline.

Usage:
    weight-lifting-ml                       # Full report
    weight-lifting-ml --validate            # Download and validate data only
    weight-lifting-ml --retrain             # Ignore cached models
    weight-lifting-ml --models tree forest  # Train a subset of models

All other parameters are in config/settings.py
"""

import argparse
import sys
import traceback


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Weight Lifting ML Pipeline - exercise quality classification',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    weight-lifting-ml                     Run the full report
    weight-lifting-ml --validate          Validate dataset only
    weight-lifting-ml --retrain           Refit cached models
    weight-lifting-ml --models forest     Only the random forest
        """
    )

    parser.add_argument(
        '--validate',
        action='store_true',
        help='Only download and validate the dataset (no training)'
    )

    parser.add_argument(
        '--retrain',
        action='store_true',
        help='Ignore cached models and fit them again'
    )

    parser.add_argument(
        '--models',
        nargs='+',
        choices=['tree', 'forest', 'boosting'],
        default=None,
        help='Models to train (default: all)'
    )

    parser.add_argument(
        '--no-plots',
        action='store_true',
        help='Skip plot generation'
    )

    parser.add_argument(
        '--summary',
        action='store_true',
        help='Print configuration summary and exit'
    )

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Import after parsing to avoid slow imports for --help
    from .config import CONFIG, set_models, set_retrain
    from .utils import setup_logging, get_logger

    CONFIG.output.ensure_directories()
    setup_logging(
        log_dir=CONFIG.output.logs_dir,
        log_level=CONFIG.output.log_level,
        verbose_console=CONFIG.output.verbose_console
    )
    logger = get_logger('main')

    print("\n" + "="*70)
    print("WEIGHT LIFTING ML PIPELINE")
    print("Exercise Quality Classification (classe A-E)")
    print("="*70)

    if args.retrain:
        set_retrain(True)
        logger.info("Cached models will be refitted")

    if args.models:
        set_models(args.models)
        logger.info(f"Models: {', '.join(args.models)}")

    if args.no_plots:
        CONFIG.evaluation.generate_plots = False

    if args.summary:
        CONFIG.print_summary()
        return 0

    errors, warnings = CONFIG.validate()
    if errors:
        logger.error("Configuration validation failed!")
        for error in errors:
            logger.error(f"  - {error}")
        return 1

    for warning in warnings:
        logger.warning(f"  - {warning}")

    if args.validate:
        return run_validation(CONFIG)

    return run_pipeline(CONFIG)


def _banner(title: str):
    print("\n" + "="*70)
    print(title)
    print("="*70)


def load_validated_tables(config):
    """Download (if needed), load and validate both tables."""
    from .data import fetch_dataset, load_tables, validate_tables

    fetch_dataset(config)
    training, testing = load_tables(config)
    validate_tables(training, testing, config, stop_on_error=True)
    return training, testing


def run_validation(config) -> int:
    """Run data validation only."""
    from .utils import get_logger

    logger = get_logger('main')
    _banner("DATA VALIDATION")

    try:
        load_validated_tables(config)
    except Exception as e:
        logger.error(f"Validation error: {e}")
        return 1

    logger.info("Dataset is valid")
    return 0


def run_pipeline(config) -> int:
    """Run the full report pipeline."""
    from .data import class_distribution, filter_tables, partition_rows
    from .training import train_models
    from .evaluation import PlotGenerator, evaluate_models, predict_cases, select_best, write_report
    from .utils import get_logger

    logger = get_logger('main')
    label = config.data.label_column

    # Step 1: Load and validate data
    _banner("STEP 1: DATA LOADING AND VALIDATION")

    try:
        training, testing = load_validated_tables(config)
    except Exception as e:
        logger.error(f"Data loading failed: {e}")
        traceback.print_exc()
        return 1

    # Step 2: Partition and filter columns
    _banner("STEP 2: PARTITION AND COLUMN FILTER")

    try:
        partition = partition_rows(
            training, label,
            train_fraction=config.split.train_fraction,
            seed=config.split.random_seed
        )
        train_raw = partition.train(training)
        column_filter, train, holdout, cases = filter_tables(
            train_raw, partition.holdout(training), testing, config=config
        )
    except Exception as e:
        logger.error(f"Preprocessing failed: {e}")
        traceback.print_exc()
        return 1

    n_train, n_holdout = partition.sizes
    logger.info(f"Train rows: {n_train} | Holdout rows: {n_holdout}")
    logger.info(f"Features: {len(column_filter.feature_columns)}")
    logger.info(f"Class distribution (train): {class_distribution(train[label])}")

    plots = {}
    if config.evaluation.generate_plots:
        try:
            plots.update(PlotGenerator(config).plot_exploratory(
                train_raw, train, config.output.plots_dir
            ))
            logger.info(f"Exploratory plots saved to {config.output.plots_dir}")
        except Exception as e:
            logger.warning(f"Failed to create exploratory plots: {e}")

    # Step 3: Train models
    _banner("STEP 3: TRAINING")

    try:
        models = train_models(train, column_filter.feature_columns, config)
    except Exception as e:
        logger.error(f"Training failed: {e}")
        traceback.print_exc()
        return 1

    # Step 4: Evaluate on holdout
    _banner("STEP 4: EVALUATION")

    try:
        results = evaluate_models(
            models, holdout, config,
            output_dir=config.output.results_dir,
            plots_dir=config.output.plots_dir,
            generate_plots=config.evaluation.generate_plots
        )
    except Exception as e:
        logger.error(f"Evaluation failed: {e}")
        traceback.print_exc()
        return 1

    best = select_best(results)

    # Step 5: Predict final test cases and write report
    _banner("STEP 5: PREDICTION AND REPORT")

    try:
        predictions = predict_cases(
            models[best], cases, testing[config.data.id_column],
            id_column=config.data.id_column
        )
        predictions_path = config.output.results_dir / config.output.predictions_filename
        predictions.to_csv(predictions_path, index=False)
        logger.info(f"Predictions ({best}): {' '.join(predictions['prediction'])}")
        logger.info(f"Predictions saved to: {predictions_path}")

        if config.evaluation.generate_plots:
            for name in results:
                plots[f'{name}_confusion_matrix'] = (
                    config.output.plots_dir / f'{name}_confusion_matrix.png'
                )

        report_path = write_report(
            config.output.results_dir / config.output.report_filename,
            raw_shape=training.shape,
            column_filter=column_filter,
            partition_sizes=partition.sizes,
            models=models,
            results=results,
            best_model=best,
            predictions=predictions,
            plots=plots,
            config=config
        )
        config.save(config.output.results_dir / 'config.json')
    except Exception as e:
        logger.error(f"Prediction/report failed: {e}")
        traceback.print_exc()
        return 1

    _banner("PIPELINE COMPLETE")
    print(f"Models saved to:  {config.output.models_dir}")
    print(f"Plots saved to:   {config.output.plots_dir}")
    print(f"Report saved to:  {report_path}")
    print(f"Logs saved to:    {config.output.logs_dir}")
    print("="*70)

    return 0


if __name__ == "__main__":
    sys.exit(main())
