# File: icugenotypes/plots.py
# Location: icugenotypes/icugenotypes/plots.py
"""
Figures for the study report.

- Age density by outcome (Gaussian KDE per group).
- Conditional outcome proportion per collapsed genotype group, annotated with
  the chi-squared p-value.
- Ct ratio box plot by collapsed genotype group.

matplotlib is imported lazily with the Agg backend so rendering works on
machines without a display.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd
from scipy.stats import gaussian_kde

from icugenotypes.expression import CT_RATIO

if TYPE_CHECKING:
    from icugenotypes.analysis import StudyResults
    from icugenotypes.expression import ExpressionResult

logger = logging.getLogger("icugenotypes")


def _pyplot():
    import matplotlib

    matplotlib.use("Agg")  # headless; must precede the pyplot import
    import matplotlib.pyplot as plt

    return plt


def format_p_value(p: float) -> str:
    """Short p-value label for figures: ``p = 0.034`` or ``p < 0.001``."""
    if p is None or (isinstance(p, float) and math.isnan(p)):
        return "p = n/a"
    if p < 0.001:
        return "p < 0.001"
    return f"p = {p:.3f}"


def plot_age_density(
    age_data: pd.DataFrame, levels: list[str], output_path: str | Path, outcome: str = "outcome"
) -> Path | None:
    """
    Kernel density of age for each outcome group.

    Parameters
    ----------
    age_data : pd.DataFrame
        Columns ``age`` and ``outcome``.
    levels : list[str]
        Outcome levels, one curve each.
    output_path : str | Path
        PNG destination.

    Returns
    -------
    Path or None
        None when no group has two distinct values to estimate a density from.
    """
    plt = _pyplot()
    if age_data.empty:
        logger.info("No age data available; age density plot skipped")
        return None

    ages = age_data["age"].astype(float)
    grid = np.linspace(ages.min() - 5, ages.max() + 5, 200)
    fig, ax = plt.subplots(figsize=(6, 4))
    drawn = 0
    for level in levels:
        values = ages[age_data["outcome"] == level].to_numpy()
        if values.size < 2 or np.ptp(values) == 0:
            logger.debug(f"Age density: group '{level}' too small or constant, not drawn")
            continue
        density = gaussian_kde(values)(grid)
        ax.plot(grid, density, label=f"{outcome} = {level} (n={values.size})")
        ax.fill_between(grid, density, alpha=0.2)
        drawn += 1

    if not drawn:
        plt.close(fig)
        logger.info("Age density plot skipped: no group supports a density estimate")
        return None

    ax.set_xlabel("Age (years)")
    ax.set_ylabel("Density")
    ax.set_title("Age distribution by outcome")
    ax.legend(fontsize=8)
    fig.tight_layout()

    path = Path(output_path)
    plt.savefig(str(path), dpi=150, bbox_inches="tight")
    plt.close(fig)
    logger.info(f"Age density plot written to {path}")
    return path


def plot_conditional_proportions(
    proportions: pd.DataFrame,
    locus: str,
    p_value: float,
    output_path: str | Path,
    event_label: str = "event",
) -> Path | None:
    """
    Bar chart of P(event | collapsed genotype group) with a p-value bracket.

    ``proportions`` has columns group, n, events, proportion (see
    ``LocusResults.conditional_proportions``).
    """
    plt = _pyplot()
    if proportions is None or proportions.empty:
        logger.info(f"No proportions for {locus}; conditional proportion plot skipped")
        return None

    heights = proportions["proportion"].fillna(0.0).to_numpy() * 100.0
    x = np.arange(len(proportions))
    fig, ax = plt.subplots(figsize=(4, 4))
    bars = ax.bar(x, heights, color=["#4c72b0", "#dd8452"][: len(x)], width=0.6)
    for bar, (_, row) in zip(bars, proportions.iterrows()):
        ax.annotate(
            f"{int(row['events'])}/{int(row['n'])}",
            (bar.get_x() + bar.get_width() / 2, bar.get_height()),
            ha="center",
            va="bottom",
            fontsize=8,
        )

    top = max(heights.max(), 1.0)
    bracket = top * 1.12
    ax.plot(
        [x[0], x[0], x[-1], x[-1]],
        [bracket * 0.97, bracket, bracket, bracket * 0.97],
        "k-",
        lw=0.8,
    )
    ax.text(
        (x[0] + x[-1]) / 2,
        bracket * 1.01,
        format_p_value(p_value),
        ha="center",
        va="bottom",
        fontsize=9,
    )

    ax.set_xticks(x)
    ax.set_xticklabels([str(g) for g in proportions["group"]])
    ax.set_ylim(0, bracket * 1.15)
    ax.set_ylabel(f"{event_label} (%)")
    ax.set_title(locus)
    fig.tight_layout()

    path = Path(output_path)
    plt.savefig(str(path), dpi=150, bbox_inches="tight")
    plt.close(fig)
    logger.info(f"Conditional proportion plot for {locus} written to {path}")
    return path


def plot_expression_boxplot(result: ExpressionResult, output_path: str | Path) -> Path | None:
    """Box plot of Ct ratios per collapsed genotype group, overlaid with the points."""
    plt = _pyplot()
    if result.data.empty:
        logger.info("No expression data available; box plot skipped")
        return None

    order = [str(g) for g in result.summary["group"] if g != "total"]
    samples = [result.data.loc[result.data["group"] == g, CT_RATIO].to_numpy() for g in order]

    fig, ax = plt.subplots(figsize=(4, 4))
    ax.boxplot(samples, showfliers=False)
    rng = np.random.default_rng(0)
    for i, values in enumerate(samples, start=1):
        ax.scatter(i + rng.uniform(-0.08, 0.08, values.size), values, s=10, alpha=0.7, color="k")

    if result.ttest is not None:
        ax.set_title(
            f"{result.locus}: {result.ttest.method} t-test, "
            f"{format_p_value(result.ttest.p_value)}"
        )
    ax.set_xticks(range(1, len(order) + 1))
    ax.set_xticklabels(order)
    ax.set_ylabel("Ct ratio (target / reference)")
    fig.tight_layout()

    path = Path(output_path)
    plt.savefig(str(path), dpi=150, bbox_inches="tight")
    plt.close(fig)
    logger.info(f"Expression box plot written to {path}")
    return path


def write_plots(results: StudyResults, output_dir: str | Path) -> dict[str, Path]:
    """Write every figure of ``results`` into ``output_dir``; returns name -> file path."""
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written: dict[str, Path] = {}

    path = plot_age_density(
        results.age_data, results.outcome_levels, out_dir / "age_density.png", results.outcome
    )
    if path is not None:
        written["age_density"] = path

    event = results.outcome_levels[1]
    for name, locus in results.loci.items():
        path = plot_conditional_proportions(
            locus.conditional_proportions,
            name,
            locus.collapsed_p_value,
            out_dir / f"{name}_conditional.png",
            event_label=f"{results.outcome} = {event}",
        )
        if path is not None:
            written[f"{name}_conditional"] = path

    if results.expression is not None:
        path = plot_expression_boxplot(results.expression, out_dir / "expression_boxplot.png")
        if path is not None:
            written["expression_boxplot"] = path

    return written
