# File: icugenotypes/clinical/descriptive.py
# Location: icugenotypes/icugenotypes/clinical/descriptive.py

"""
Descriptive statistics for the baseline characteristics table.

Provides functions to compute:
- Continuous summaries (n, mean, SD, median, IQR, range) per group.
- Categorical counts and within-group percentages per group.
- The combined baseline table of patients split by outcome.

All functions return DataFrames suitable for rendering.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

logger = logging.getLogger("icugenotypes")

ALL_GROUPS = "total"


def _group_frames(
    df: pd.DataFrame, group_col: Optional[str], group_order: Optional[Sequence[Any]]
) -> List[tuple]:
    if group_col is None:
        return [(ALL_GROUPS, df)]
    if group_order is not None:
        order = list(group_order)
    else:
        order = sorted(df[group_col].dropna().unique())
    frames = [(level, df[df[group_col] == level]) for level in order]
    frames.append((ALL_GROUPS, df))
    return frames


def describe_continuous(
    df: pd.DataFrame,
    column: str,
    group_col: Optional[str] = None,
    group_order: Optional[Sequence[Any]] = None,
) -> pd.DataFrame:
    """
    Summarize a continuous column per group.

    Parameters
    ----------
    df : pd.DataFrame
        Input table.
    column : str
        Numeric column to summarize.
    group_col : str, optional
        Grouping column. A "total" row is always appended.
    group_order : sequence, optional
        Row order of the groups.

    Returns
    -------
    pd.DataFrame
        Columns: group, n, n_missing, mean, sd, median, q1, q3, min, max.
    """
    rows = []
    for level, sub in _group_frames(df, group_col, group_order):
        values = pd.to_numeric(sub[column], errors="coerce")
        present = values.dropna()
        rows.append(
            {
                "group": level,
                "n": int(present.size),
                "n_missing": int(values.isna().sum()),
                "mean": present.mean(),
                "sd": present.std(ddof=1),
                "median": present.median(),
                "q1": present.quantile(0.25),
                "q3": present.quantile(0.75),
                "min": present.min(),
                "max": present.max(),
            }
        )
    return pd.DataFrame(rows)


def describe_categorical(
    df: pd.DataFrame,
    column: str,
    group_col: Optional[str] = None,
    group_order: Optional[Sequence[Any]] = None,
    levels: Optional[Sequence[Any]] = None,
) -> pd.DataFrame:
    """
    Count levels of a categorical column per group.

    Percentages are within group among non-missing values. A "missing" row is
    added when any value is missing.

    Returns
    -------
    pd.DataFrame
        One row per level with ``<group> n`` and ``<group> %`` columns.
    """
    values = df[column]
    if levels is not None:
        level_order = list(levels)
    else:
        level_order = sorted(values.dropna().astype(str).unique())
    has_missing = bool(values.isna().any())

    level_rows = level_order + (["missing"] if has_missing else [])
    out = pd.DataFrame({"variable": column, "level": level_rows})
    for group, sub in _group_frames(df, group_col, group_order):
        sub_values = sub[column]
        counts = sub_values.dropna().astype(str).value_counts().reindex(level_order, fill_value=0)
        denominator = int(counts.sum())
        pct = (counts / denominator * 100.0) if denominator else counts * float("nan")
        n_col = counts.astype(int).tolist()
        pct_col = pct.round(1).tolist()
        if has_missing:
            n_col.append(int(sub_values.isna().sum()))
            pct_col.append(float("nan"))
        out[f"{group} n"] = n_col
        out[f"{group} %"] = pct_col
    return out


def baseline_table(patients: pd.DataFrame, cfg: Dict[str, Any]) -> Dict[str, pd.DataFrame]:
    """
    Baseline characteristics of patients by outcome.

    Returns
    -------
    dict
        ``{"continuous": DataFrame, "categorical": DataFrame}``; the continuous
        table has one block per continuous covariate with a ``variable`` column.
    """
    cols = cfg["patient_columns"]
    outcome = cols["outcome"]
    outcome_levels = list(cfg["outcome_levels"])

    continuous = []
    for column in cols.get("continuous_covariates", []):
        block = describe_continuous(patients, column, outcome, outcome_levels)
        block.insert(0, "variable", column)
        continuous.append(block)

    categorical = [
        describe_categorical(patients, column, outcome, outcome_levels)
        for column in cols.get("binary_covariates", [])
    ]

    logger.debug(
        f"Baseline table: {len(continuous)} continuous and "
        f"{len(categorical)} categorical covariates"
    )
    return {
        "continuous": pd.concat(continuous, ignore_index=True) if continuous else pd.DataFrame(),
        "categorical": pd.concat(categorical, ignore_index=True) if categorical else pd.DataFrame(),
    }
