"""Command-line interface for icugenotypes."""

import argparse
import datetime
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .analysis import run_study
from .config import load_config
from .converter import write_tables_tsv, write_tables_xlsx
from .exceptions import AnalysisError
from .loader import load_controls, load_expression, load_patients
from .version import __version__

logger = logging.getLogger("icugenotypes")


def create_parser() -> argparse.ArgumentParser:
    """Create and return the argument parser for the icugenotypes CLI."""
    parser = argparse.ArgumentParser(
        description="icugenotypes: genotype frequencies and outcome association in ICU cohorts."
    )

    general_group = parser.add_argument_group("General Options")
    general_group.add_argument(
        "--version",
        action="version",
        version=f"icugenotypes {__version__}",
        help="Show the current version and exit",
    )
    general_group.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARN", "ERROR"],
        default="INFO",
        help="Set the logging level",
    )
    general_group.add_argument(
        "--log-file", help="Path to a file to write logs to (in addition to stderr)."
    )
    general_group.add_argument(
        "-c",
        "--config",
        help="Path to a JSON configuration file. Defaults to the bundled config.json.",
    )

    io_group = parser.add_argument_group("Input/Output")
    io_group.add_argument("--patients", required=True, help="Patient table (CSV, TSV or XLSX).")
    io_group.add_argument("--controls", required=True, help="Control table (CSV, TSV or XLSX).")
    io_group.add_argument("--expression", help="Optional qPCR Ct table (CSV, TSV or XLSX).")
    io_group.add_argument(
        "-o", "--output-dir", default="icugenotypes_output", help="Directory for all outputs."
    )
    io_group.add_argument("--no-plots", action="store_true", help="Do not render figures.")
    io_group.add_argument(
        "--xlsx", action="store_true", help="Also write all tables to tables.xlsx."
    )

    stats_group = parser.add_argument_group("Statistics (override the configuration)")
    stats_group.add_argument(
        "--yates",
        action="store_true",
        default=None,
        help="Apply Yates' continuity correction to 2x2 chi-squared tests.",
    )
    stats_group.add_argument(
        "--equal-var",
        action="store_true",
        default=None,
        help="Use the pooled-variance t-test instead of Welch's.",
    )
    stats_group.add_argument(
        "--correction-method",
        choices=["bonferroni", "fdr"],
        help="Multiple-testing correction across loci.",
    )
    stats_group.add_argument(
        "--confidence-level", type=float, help="Two-sided confidence level for intervals."
    )
    stats_group.add_argument(
        "--logistic-ci",
        choices=["wald", "profile"],
        help="Confidence interval method for univariate logistic odds ratios.",
    )
    return parser


def _apply_overrides(cfg: Dict[str, Any], args: argparse.Namespace) -> None:
    stats = cfg.setdefault("statistics", {})
    overrides = {
        "yates_correction": args.yates,
        "equal_var": args.equal_var,
        "correction_method": args.correction_method,
        "confidence_level": args.confidence_level,
        "logistic_ci_method": args.logistic_ci,
    }
    for key, value in overrides.items():
        if value is not None:
            logger.debug(f"Overriding statistics.{key} = {value!r}")
            stats[key] = value


def main(argv: Optional[List[str]] = None) -> int:
    """Run main entry point for the icugenotypes CLI.

    Steps:
        1. Parse arguments.
        2. Configure logging and load config.
        3. Load and validate the input tables.
        4. Run the study.
        5. Write TSV tables, figures, the HTML report and optionally XLSX.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    start_time: datetime.datetime = datetime.datetime.now()

    parser = create_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    log_level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARN": logging.WARNING,
        "ERROR": logging.ERROR,
    }
    logger.setLevel(log_level_map[args.log_level])

    fh = None
    if args.log_file:
        log_file_path = Path(args.log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        fh = logging.FileHandler(args.log_file)
        fh.setLevel(log_level_map[args.log_level])
        fh.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        logger.addHandler(fh)
        logger.debug(f"Logging to file enabled: {args.log_file}")

    logger.info(f"Run started at {start_time.isoformat()}")
    logger.debug(f"CLI arguments: {args}")

    try:
        cfg: Dict[str, Any] = load_config(args.config)
        _apply_overrides(cfg, args)

        patients = load_patients(args.patients, cfg)
        controls = load_controls(args.controls, cfg)
        expression = load_expression(args.expression, cfg) if args.expression else None

        results = run_study(patients, controls, cfg, expression=expression)

        output_dir = Path(args.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        write_tables_tsv(results, str(output_dir / "tables"))

        figures = {}
        if not args.no_plots:
            from .plots import write_plots

            figures = write_plots(results, output_dir / "figures")

        from .report import render_report

        render_report(results, str(output_dir), cfg, figures=figures)

        if args.xlsx:
            write_tables_xlsx(results, str(output_dir / "tables.xlsx"))
    except (AnalysisError, FileNotFoundError, ValueError) as e:
        logger.error(f"Analysis failed: {e}")
        return 1
    finally:
        if fh is not None:
            logger.removeHandler(fh)
            fh.close()

    elapsed = datetime.datetime.now() - start_time
    logger.info(f"Run finished in {elapsed.total_seconds():.1f}s; outputs in {args.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
