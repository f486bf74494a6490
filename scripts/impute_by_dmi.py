# scripts/impute_by_dmi.py
"""
Script for performing DMI (decision tree based missing value imputation) on data files.

This script imputes missing values in CSV files by splitting the records into
segments with one decision tree per incomplete attribute, then imputing
categorical values with the segment mode and numeric values with EM.

Example usage:
    # Basic usage
    python impute_by_dmi.py input.csv

    # With custom settings
    python impute_by_dmi.py input.csv --min-records-for-emi 10 --emi-iterations 100

    # Exclude specific columns and set output directory
    python impute_by_dmi.py input.csv --exclude-columns id name --output-dir /path/to/output

    # With a plot of the imputed cells and debug logging
    python impute_by_dmi.py input.csv --plot --log-level DEBUG
"""

import argparse
import sys
from pathlib import Path
from typing import Optional, Union

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from dmi.core.exceptions.data.imputation import ConfigurationError
from dmi.data.imputation.dmi_imputer import DMIService, DMIConfig
from dmi.utils.constants import (
    DEFAULT_CONFIDENCE_FACTOR,
    DEFAULT_EMI_LOG_LIKELIHOOD_THRESHOLD,
    DEFAULT_EMI_NUM_ITERATIONS,
    DEFAULT_MIN_CATEGORIES_FOR_DISCRETIZATION,
    DEFAULT_MIN_RECORDS_FOR_EMI,
    DEFAULT_MIN_RECORDS_IN_LEAF,
    DEFAULT_RANDOM_STATE,
    StatsKeys,
)
from dmi.utils.logging import get_logger, setup_logging

logger = get_logger("dmi_imputation")


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Namespace containing the parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Perform DMI imputation on CSV files",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "input_file",
        type=str,
        help="Input CSV file containing data with missing values",
    )
    parser.add_argument(
        "--exclude-columns",
        type=str,
        nargs="+",
        help="Columns to exclude from imputation",
        default=[],
    )
    parser.add_argument(
        "-D",
        "--min-categories",
        type=int,
        default=DEFAULT_MIN_CATEGORIES_FOR_DISCRETIZATION,
        help="Minimum number of categories when discretizing a numeric attribute",
    )
    parser.add_argument(
        "-N",
        "--min-records-in-leaf",
        type=int,
        default=DEFAULT_MIN_RECORDS_IN_LEAF,
        help="Minimum records in a tree leaf (negative: numeric attributes + 2)",
    )
    parser.add_argument(
        "-F",
        "--confidence-factor",
        type=float,
        default=DEFAULT_CONFIDENCE_FACTOR,
        help="Pruning confidence factor for the decision trees",
    )
    parser.add_argument(
        "-E",
        "--min-records-for-emi",
        type=int,
        default=DEFAULT_MIN_RECORDS_FOR_EMI,
        help="Minimum records in a leaf for EM to run (negative: numeric attributes + 2)",
    )
    parser.add_argument(
        "-I",
        "--emi-iterations",
        type=int,
        default=DEFAULT_EMI_NUM_ITERATIONS,
        help="Maximum EM iterations (negative: unbounded)",
    )
    parser.add_argument(
        "-L",
        "--emi-threshold",
        type=float,
        default=DEFAULT_EMI_LOG_LIKELIHOOD_THRESHOLD,
        help="Log-likelihood threshold for terminating EM",
    )
    parser.add_argument(
        "--random-state",
        type=int,
        default=DEFAULT_RANDOM_STATE,
        help="Random seed for reproducibility",
    )
    parser.add_argument(
        "--preprocess-numeric",
        action="store_true",
        help="Convert text columns such as \"1,234\" to numbers before imputation",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log per-attribute progress during imputation",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set the logging level",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Also write the log to this file",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        help="Output directory for imputed data and statistics (optional)",
    )
    parser.add_argument(
        "--skip-existing",
        action="store_true",
        help="Skip imputation if output files already exist",
    )
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Plot the imputed data into the output directory",
    )

    return parser.parse_args(argv)


def setup_output_directory(base_dir: Path, input_file: Path) -> Path:
    """Set up the output directory for imputation results.

    Args:
        base_dir: Base directory for output
        input_file: Input file being processed

    Returns:
        Path to the output directory
    """
    output_dir = base_dir / f"{input_file.stem}_imputed"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def save_imputation_results(
    output_dir: Path,
    original_data: pd.DataFrame,
    imputed_data: pd.DataFrame,
    stats: dict,
) -> None:
    """Save imputation results, statistics and a text report.

    Args:
        output_dir: Directory to save results
        original_data: Original DataFrame before imputation
        imputed_data: DataFrame after imputation
        stats: Dictionary containing imputation statistics
    """
    imputed_data.to_csv(output_dir / "imputed_data.csv", index=False)

    flat_stats = {
        key: value for key, value in stats.items() if not isinstance(value, dict)
    }
    pd.DataFrame([flat_stats]).to_csv(
        output_dir / "imputation_statistics.csv", index=False
    )

    missing_by_column = stats.get(StatsKeys.MISSING_BY_COLUMN.value, {})
    percentages = stats.get(StatsKeys.MISSING_PERCENTAGE.value, {})
    rules_by_column = stats.get(StatsKeys.RULES_BY_COLUMN.value, {})

    with open(output_dir / "imputation_report.txt", "w") as f:
        f.write("DMI Imputation Report\n")
        f.write("=" * 50 + "\n\n")

        f.write("Dataset Information:\n")
        f.write(f"Total rows: {len(original_data)}\n")
        f.write(f"Total columns: {len(original_data.columns)}\n")
        f.write(f"Complete records: {stats.get(StatsKeys.COMPLETE_RECORDS.value, 0)}\n\n")

        f.write("Missing Values Summary:\n")
        f.write(f"Total missing values: {stats.get(StatsKeys.TOTAL_MISSING.value, 0)}\n")
        f.write(
            f"Values left missing: {int(imputed_data.isna().sum().sum())}\n\n"
        )

        f.write("Missing Values by Column:\n")
        for col, count in missing_by_column.items():
            if count > 0:
                f.write(f"{col}: {count} ({percentages[col]:.2f}%)\n")

        f.write("\nSegments by Column:\n")
        for col, rules in rules_by_column.items():
            f.write(f"{col}:\n")
            for rule in rules:
                f.write(f"    {rule}\n")


def plot_imputed_data(
    imputed_data: pd.DataFrame,
    missing_mask: pd.DataFrame,
    save_path: Union[str, Path],
) -> None:
    """Plot the numeric part of the imputed data, marking imputed cells in red.

    Args:
        imputed_data: DataFrame after imputation
        missing_mask: Boolean mask of missing values (True where data was missing)
        save_path: Path to save the plot
    """
    numeric_cols = imputed_data.select_dtypes(include=["number"]).columns.tolist()

    if not numeric_cols:
        logger.warning("No numeric columns found for plotting")
        return

    numeric_df = imputed_data[numeric_cols]
    span = (numeric_df.max(axis=0) - numeric_df.min(axis=0)).replace(0, 1)
    scaled_df = (numeric_df - numeric_df.min(axis=0)) / span

    plt.figure(figsize=(12, 8))
    cax = plt.imshow(scaled_df.to_numpy(), aspect="auto", cmap="viridis")
    plt.colorbar(cax, label="Normalized Value")

    rows, cols = np.nonzero(missing_mask[numeric_cols].to_numpy())
    plt.scatter(cols, rows, marker="s", facecolors="none", edgecolors="red", s=20)

    plt.xlabel("Features")
    plt.ylabel("Samples")
    plt.title("DMI Imputed Data (red squares = imputed values)")
    plt.xticks(range(len(numeric_cols)), numeric_cols, rotation=90)
    plt.tight_layout()

    plt.savefig(save_path)
    plt.close()
    logger.info(f"Plot saved to {save_path}")


def run_imputation(args: argparse.Namespace) -> int:
    """Run the DMI imputation process.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    try:
        setup_logging(args.log_level, args.log_file)

        input_file = Path(args.input_file)
        if not input_file.exists():
            logger.error(f"Input file does not exist: {input_file}")
            return 1

        output_base = Path(args.output_dir) if args.output_dir else input_file.parent
        output_dir = setup_output_directory(output_base, input_file)

        if args.skip_existing and (output_dir / "imputed_data.csv").exists():
            logger.info(f"Output already exists in {output_dir}, skipping...")
            return 0

        logger.info(f"Loading data from {input_file}")
        data = pd.read_csv(input_file)

        config = DMIConfig(
            min_categories_for_discretization=args.min_categories,
            min_records_in_leaf=args.min_records_in_leaf,
            confidence_factor=args.confidence_factor,
            min_records_for_emi=args.min_records_for_emi,
            emi_num_iterations=args.emi_iterations,
            emi_log_likelihood_threshold=args.emi_threshold,
            random_state=args.random_state,
            exclude_columns=args.exclude_columns,
            preprocess_numeric=args.preprocess_numeric,
            verbose=args.verbose,
        )
        service = DMIService(config)

        logger.info(f"Total rows: {len(data)}")
        logger.info(f"Total columns: {len(data.columns)}")
        logger.info(f"Total missing values: {data.isna().sum().sum()}")
        if args.exclude_columns:
            logger.info(f"Excluded columns: {', '.join(args.exclude_columns)}")

        original_missing_mask = data.isna()

        logger.info("Performing DMI imputation...")
        imputed_df = service.impute(data)
        stats = service.get_imputation_statistics()

        save_imputation_results(output_dir, data, imputed_df, stats)
        logger.info(f"Results saved to: {output_dir}")

        if args.plot:
            plot_imputed_data(
                imputed_df,
                original_missing_mask,
                output_dir / "imputed_data_visualization.png",
            )

        logger.info(
            f"Total missing values imputed: {stats[StatsKeys.TOTAL_MISSING.value]}"
        )
        return 0

    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2
    except KeyboardInterrupt:
        logger.info("Imputation interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Error during imputation: {str(e)}", exc_info=True)
        return 1


def main() -> None:
    """Main entry point for the script."""
    args = parse_args()
    sys.exit(run_imputation(args))


if __name__ == "__main__":
    main()
