#!/usr/bin/env python3
"""
Main control script for the femto-universe-debug-phi QA task

This script:
1. Loads the task configuration (defaults, TOML file, --set overrides)
2. Reads collisions and particles from AO2D files, data frame by data frame
3. Fills event, Phi and Phi-child QA histograms
4. Writes the histograms to an AnalysisResults-style ROOT file
5. Optionally writes a histogram summary table and QA plots

Usage:
    # Run with defaults
    femtophi-debug-phi --input AO2D.root

    # Override parameters by external or dotted name
    femtophi-debug-phi --input AO2D.root --set ConfPDGCodePartOne=333 \
        --set child.temp_fit_var_bins="[100, -0.1, 0.1]"

    # Show the configurable parameters
    femtophi-debug-phi --list-config
"""

import argparse
import sys
from pathlib import Path

from femtophi.modules.ao2d_reader import AO2DReader
from femtophi.modules.column_config import ColumnConfig
from femtophi.modules.exceptions import FemtoPhiError
from femtophi.modules.task_config import TaskConfig, parse_override
from femtophi.modules.workflow import (
    define_data_processing,
    results_summary,
    run_workflow,
    write_results,
)
from femtophi.utils.logging_config import setup_logging, suppress_warnings


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="QA histograms for Phi candidates in femto derived data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Process one file with the default configuration
  femtophi-debug-phi --input AO2D.root

  # Use a configuration file and look up children by row position
  femtophi-debug-phi --input AO2D.root --config my_task.toml --set task.child_lookup=positional

  # Write a summary table and plots next to the results
  femtophi-debug-phi --input AO2D.root --summary summary.csv --plots-dir plots
        """
    )

    parser.add_argument(
        "--input", "-i",
        nargs="+",
        help="AO2D file(s) with the femto collision and particle tables"
    )

    parser.add_argument(
        "--config", "-c",
        default=None,
        help="TOML file with [phi], [child] and [task] tables (default: built-in values)"
    )

    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override one parameter by dotted or external name (repeatable)"
    )

    parser.add_argument(
        "--columns",
        default=None,
        help="TOML file mapping table columns to branch names (default: packaged columns.toml)"
    )

    parser.add_argument(
        "--output", "-o",
        default="AnalysisResults.root",
        help="Output ROOT file (default: AnalysisResults.root)"
    )

    parser.add_argument(
        "--summary",
        default=None,
        help="Write a CSV summary of all histograms"
    )

    parser.add_argument(
        "--plots-dir",
        default=None,
        help="Write one PDF per histogram registry into this directory"
    )

    parser.add_argument(
        "--dump-config",
        default=None,
        help="Write the effective configuration as TOML"
    )

    parser.add_argument(
        "--list-config",
        action="store_true",
        help="Print the configurable parameters and exit"
    )

    parser.add_argument(
        "--max-frames",
        type=int,
        default=None,
        help="Process at most this many data frames"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args(argv)
    if not args.list_config and not args.input:
        parser.error("--input is required unless --list-config is given")
    return args


def main(argv=None):
    """Main analysis function"""
    args = parse_args(argv)
    logger = setup_logging(args.verbose)
    suppress_warnings()

    try:
        overrides = [parse_override(text) for text in args.overrides]
        config = TaskConfig.from_toml(args.config, overrides=overrides)

        if args.list_config:
            for row in config.describe():
                print(f"{row['name']:28s} {row['path']:30s} {row['value']!s:24s} {row['help']}")
            return 0

        if args.dump_config:
            config.dump(args.dump_config)

        logger.info("=" * 70)
        logger.info("femto-universe-debug-phi")
        logger.info("=" * 70)
        logger.info(f"  Input: {args.input}")
        logger.info(f"  Config: {args.config or 'built-in defaults'}")
        logger.info(f"  Child lookup: {config.get('ConfChildLookup')}")
        logger.info(f"  Apply cut bits: {config.get('ConfApplyCutBits')}, apply PID: {config.get('ConfApplyPID')}")
        logger.info(f"  Output: {args.output}")
        logger.info("=" * 70)

        column_config = ColumnConfig(args.columns)
        reader = AO2DReader(args.input, column_config, max_frames=args.max_frames)

        workflow = define_data_processing(config)
        n_collisions = run_workflow(workflow, reader)
        logger.info(f"Processed {n_collisions} collisions")

        write_results(workflow, args.output)

        if args.summary:
            summary_path = Path(args.summary)
            summary_path.parent.mkdir(parents=True, exist_ok=True)
            results_summary(workflow).to_csv(summary_path, index=False)
            logger.info(f"Wrote histogram summary to {summary_path}")

        if args.plots_dir:
            from femtophi.modules.qa_plotter import QAPlotter

            plotter = QAPlotter(args.plots_dir)
            for task in workflow:
                for registry in task.output_registries():
                    plotter.plot_registry(registry, f"{task.name}_{registry.name}.pdf")

    except FemtoPhiError as e:
        logger.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
