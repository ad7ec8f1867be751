# File: icugenotypes/association/contingency.py
# Location: icugenotypes/icugenotypes/association/contingency.py
"""
Contingency table construction and independence tests.

Provides:
- build_contingency_table(): counts of (row level, column level) pairs with a
  fixed, declared row/column order.
- as_table(): validate any array-like or DataFrame as a table of counts.
- chi_square_test(): Pearson chi-squared test via scipy.stats.chi2_contingency,
  with Yates' correction passed through explicitly (default off).
- fisher_exact_test(): two-sided Fisher's exact test for sparse 2x2 tables.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import numpy as np
import pandas as pd
from scipy.stats import chi2_contingency, fisher_exact

from icugenotypes.association.base import ChiSquareResult, FisherResult
from icugenotypes.exceptions import DataValidationError, DegenerateDataError

logger = logging.getLogger("icugenotypes")


def as_table(table: Any) -> pd.DataFrame:
    """
    Validate ``table`` as a 2-D table of non-negative integer counts.

    Parameters
    ----------
    table : array-like or pd.DataFrame
        Nested lists, ndarray or DataFrame. DataFrame labels are preserved;
        other inputs get positional labels.

    Returns
    -------
    pd.DataFrame
        Integer-valued copy of the table.

    Raises
    ------
    DataValidationError
        If the table is not 2-D, has fewer than 2 rows or columns, contains
        negative or non-integer counts, or contains NaN.
    """
    df = table.copy() if isinstance(table, pd.DataFrame) else pd.DataFrame(np.asarray(table))
    values = df.to_numpy(dtype=float)

    if values.ndim != 2 or values.shape[0] < 2 or values.shape[1] < 2:
        raise DataValidationError(
            f"Contingency table must be at least 2x2, got shape {values.shape}"
        )
    if np.isnan(values).any():
        raise DataValidationError("Contingency table contains missing cells")
    if (values < 0).any():
        raise DataValidationError(f"Contingency table has negative cell counts: {values.tolist()}")
    if not np.all(np.equal(np.mod(values, 1), 0)):
        raise DataValidationError(f"Contingency table has non-integer counts: {values.tolist()}")

    return df.astype(int)


def build_contingency_table(
    rows: Sequence[Any] | pd.Series,
    cols: Sequence[Any] | pd.Series,
    row_levels: Sequence[Any],
    col_levels: Sequence[Any],
) -> pd.DataFrame:
    """
    Cross-tabulate two aligned categorical variables with declared level order.

    Pairs where either value is missing are excluded, so the table total equals
    the number of complete observations. A value outside the declared levels
    raises DataValidationError rather than being dropped.
    """
    row_s = pd.Series(rows).reset_index(drop=True).astype(object)
    col_s = pd.Series(cols).reset_index(drop=True).astype(object)
    if len(row_s) != len(col_s):
        raise DataValidationError(
            f"Cannot cross-tabulate columns of different lengths ({len(row_s)} vs {len(col_s)})"
        )

    complete = row_s.notna() & col_s.notna()
    n_dropped = int((~complete).sum())
    if n_dropped:
        logger.debug(f"Excluding {n_dropped} incomplete observation(s) from contingency table")
    row_s = row_s[complete]
    col_s = col_s[complete]

    for values, levels, what in ((row_s, row_levels, "row"), (col_s, col_levels, "column")):
        unexpected = sorted(set(values) - set(levels), key=str)
        if unexpected:
            raise DataValidationError(
                f"Unexpected {what} level(s) {unexpected}; declared {list(levels)}"
            )

    table = (
        pd.crosstab(row_s.values, col_s.values)
        .reindex(index=list(row_levels), columns=list(col_levels), fill_value=0)
        .astype(int)
    )
    table.index.name = row_s.name
    table.columns.name = col_s.name
    return table


def chi_square_test(
    table: Any,
    correction: bool = False,
    min_expected_count: float = 5.0,
) -> ChiSquareResult:
    """
    Pearson chi-squared test of independence.

    Parameters
    ----------
    table : array-like or pd.DataFrame
        r x c table of counts (r, c >= 2).
    correction : bool
        Apply Yates' continuity correction. Only has an effect on 2x2 tables
        (dof == 1). Default: False.
    min_expected_count : float
        Threshold for the small expected count warning.

    Returns
    -------
    ChiSquareResult
        Statistic, p-value against chi2 with (r-1)(c-1) dof, expected counts
        and signed residuals (observed - expected).

    Raises
    ------
    DataValidationError
        If the table is malformed (see ``as_table``).
    DegenerateDataError
        If a row or column total is zero (expected counts undefined).
    """
    df = as_table(table)
    observed = df.to_numpy(dtype=float)

    zero_rows = list(df.index[observed.sum(axis=1) == 0])
    zero_cols = list(df.columns[observed.sum(axis=0) == 0])
    if zero_rows or zero_cols:
        raise DegenerateDataError(
            f"Chi-squared test undefined: empty row(s) {zero_rows} / column(s) {zero_cols}"
        )

    statistic, p_value, dof, expected = chi2_contingency(observed, correction=correction)
    expected_df = pd.DataFrame(expected, index=df.index, columns=df.columns)
    min_expected = float(expected.min())

    if min_expected < min_expected_count:
        logger.warning(
            f"Chi-squared test: minimum expected count {min_expected:.2f} is below "
            f"{min_expected_count:g}; Yates' correction is "
            f"{'on' if correction else 'off'} (caller-controlled). "
            "Consider Fisher's exact test for 2x2 tables."
        )

    return ChiSquareResult(
        statistic=float(statistic),
        p_value=float(p_value),
        dof=int(dof),
        expected=expected_df,
        residuals=df.astype(float) - expected_df,
        min_expected=min_expected,
        correction=bool(correction and dof == 1),
        n=int(observed.sum()),
    )


def fisher_exact_test(table: Any) -> FisherResult:
    """
    Two-sided Fisher's exact test on a 2x2 table.

    Raises
    ------
    DataValidationError
        If the table is not 2x2 or is otherwise malformed.
    """
    df = as_table(table)
    if df.shape != (2, 2):
        raise DataValidationError(f"Fisher's exact test requires a 2x2 table, got {df.shape}")
    cells = df.to_numpy().tolist()
    odds_ratio, p_value = fisher_exact(cells)
    return FisherResult(odds_ratio=float(odds_ratio), p_value=float(p_value), table=cells)
