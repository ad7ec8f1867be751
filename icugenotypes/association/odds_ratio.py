# File: icugenotypes/association/odds_ratio.py
# Location: icugenotypes/icugenotypes/association/odds_ratio.py
"""
Odds ratio with a Wald confidence interval for 2x2 tables.

For the oriented table [[a, b], [c, d]] (rows: exposed, reference; columns:
event, no event):

    OR          = (a * d) / (b * c)
    SE(log OR)  = sqrt(1/a + 1/b + 1/c + 1/d)
    CI          = exp(log OR -/+ z * SE)

computed with statsmodels Table2x2 (``method="normal"`` is the Wald interval
on the log scale). Orientation is selected by label so that a swapped table
cannot silently flip the direction of effect. Zero cells are reported as an
undefined/infinite odds ratio: no continuity correction is applied.
"""

from __future__ import annotations

import logging
import math
from typing import Any

import pandas as pd
from statsmodels.stats.contingency_tables import Table2x2

from icugenotypes.association.base import OddsRatioResult
from icugenotypes.association.contingency import as_table
from icugenotypes.exceptions import DataValidationError

logger = logging.getLogger("icugenotypes")


def _other(labels: list[Any], chosen: Any, what: str) -> Any:
    if chosen not in labels:
        raise DataValidationError(f"{what} label {chosen!r} not in table labels {labels}")
    return next(label for label in labels if label != chosen)


def orient_table(table: Any, exposed_row: Any = None, event_column: Any = None) -> pd.DataFrame:
    """
    Reorder a 2x2 table so that cell ``a`` is (exposed_row, event_column).

    None keeps the existing first row / first column.
    """
    df = as_table(table)
    if df.shape != (2, 2):
        raise DataValidationError(f"Odds ratio requires a 2x2 table, got shape {df.shape}")

    rows = list(df.index)
    cols = list(df.columns)
    if exposed_row is not None:
        rows = [exposed_row, _other(rows, exposed_row, "Exposed row")]
    if event_column is not None:
        cols = [event_column, _other(cols, event_column, "Event column")]
    return df.loc[rows, cols]


def odds_ratio(
    table: Any,
    confidence_level: float = 0.95,
    exposed_row: Any = None,
    event_column: Any = None,
) -> OddsRatioResult:
    """
    Compute the sample odds ratio and its Wald confidence interval.

    Parameters
    ----------
    table : array-like or pd.DataFrame
        2x2 table of counts.
    confidence_level : float
        Two-sided confidence level. Default: 0.95 (z ~ 1.96).
    exposed_row : label, optional
        Row label of the exposure group (numerator odds). Default: first row.
    event_column : label, optional
        Column label of the event/outcome of interest. Default: first column.

    Returns
    -------
    OddsRatioResult
        ``defined=False`` with an ``inf``/``0.0``/``nan`` odds ratio and
        ``(nan, nan)`` interval when any cell is zero.

    Raises
    ------
    DataValidationError
        If the table is not a valid 2x2 table of counts or a label is unknown.
    """
    if not 0.0 < confidence_level < 1.0:
        raise ValueError(f"confidence_level must be in (0, 1), got {confidence_level}")

    oriented = orient_table(table, exposed_row, event_column)
    cells = oriented.to_numpy(dtype=float)
    a, b = cells[0]
    c, d = cells[1]
    labels = {
        "exposed": oriented.index[0],
        "reference": oriented.index[1],
        "event": oriented.columns[0],
    }
    int_cells = oriented.to_numpy().astype(int).tolist()

    if 0 in (a, b, c, d):
        numerator = a * d
        denominator = b * c
        if denominator == 0 and numerator > 0:
            or_value = math.inf
        elif numerator == 0 and denominator > 0:
            or_value = 0.0
        else:
            or_value = math.nan
        logger.warning(
            f"Odds ratio undefined for table {int_cells} (zero cell); reporting OR={or_value} "
            "without continuity correction"
        )
        return OddsRatioResult(
            odds_ratio=or_value,
            ci_lower=math.nan,
            ci_upper=math.nan,
            se_log_or=math.nan,
            confidence_level=confidence_level,
            table=int_cells,
            defined=False,
            **labels,
        )

    ct = Table2x2(cells, shift_zeros=False)
    ci_lower, ci_upper = ct.oddsratio_confint(alpha=1.0 - confidence_level, method="normal")

    return OddsRatioResult(
        odds_ratio=float(ct.oddsratio),
        ci_lower=float(ci_lower),
        ci_upper=float(ci_upper),
        se_log_or=float(ct.log_oddsratio_se),
        confidence_level=confidence_level,
        table=int_cells,
        defined=True,
        **labels,
    )
