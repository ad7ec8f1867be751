# File: icugenotypes/clinical/ttest.py
# Location: icugenotypes/icugenotypes/clinical/ttest.py
"""
Two-sample comparisons of a continuous variable and their prechecks.

Provides:
- two_sample_ttest(): Welch (default) or pooled-variance t-test
- shapiro_wilk(): normality precheck
- variance_ratio_test(): F-test for equality of two variances

The prechecks are independent diagnostics. The t-test never picks its
variant from them; ``equal_var`` is always the caller's choice and failed
prechecks are reported, not raised.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any

import numpy as np
from scipy import stats

from icugenotypes.exceptions import DegenerateDataError

logger = logging.getLogger("icugenotypes")


@dataclass
class TTestResult:
    """Two-sample t-test with per-group summaries."""

    label1: str
    label2: str
    n1: int
    n2: int
    mean1: float
    mean2: float
    sd1: float
    sd2: float
    statistic: float
    dof: float
    p_value: float
    equal_var: bool

    @property
    def method(self) -> str:
        return "pooled" if self.equal_var else "welch"

    def as_row(self) -> dict[str, Any]:
        row = asdict(self)
        row["method"] = self.method
        return row


@dataclass
class NormalityResult:
    """Shapiro-Wilk test. ``passed`` is p >= alpha."""

    label: str
    n: int
    statistic: float
    p_value: float
    alpha: float

    @property
    def passed(self) -> bool:
        return self.p_value >= self.alpha

    def as_row(self) -> dict[str, Any]:
        row = asdict(self)
        row["passed"] = self.passed
        return row


@dataclass
class VarianceRatioResult:
    """F-test of var1 / var2 with a two-sided p-value. ``passed`` is p >= alpha."""

    label1: str
    label2: str
    ratio: float
    dof1: int
    dof2: int
    p_value: float
    alpha: float

    @property
    def passed(self) -> bool:
        return self.p_value >= self.alpha

    def as_row(self) -> dict[str, Any]:
        row = asdict(self)
        row["passed"] = self.passed
        return row


def _clean(values: Sequence[float] | np.ndarray, label: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    arr = arr[~np.isnan(arr)]
    if arr.size < 2:
        raise DegenerateDataError(
            f"Group '{label}' needs at least two non-missing observations, got {arr.size}"
        )
    return arr


def two_sample_ttest(
    x: Sequence[float] | np.ndarray,
    y: Sequence[float] | np.ndarray,
    equal_var: bool = False,
    labels: tuple[str, str] = ("group1", "group2"),
) -> TTestResult:
    """
    Compare the means of two independent samples.

    Parameters
    ----------
    x, y : array-like
        Observations; NaN values are dropped.
    equal_var : bool
        False (default) runs Welch's test with Welch-Satterthwaite degrees of
        freedom; True runs the pooled-variance test with n1 + n2 - 2 dof.
    labels : tuple[str, str]
        Group labels for reporting.

    Raises
    ------
    DegenerateDataError
        If a group has fewer than two observations or both groups have zero
        variance.
    """
    a = _clean(x, labels[0])
    b = _clean(y, labels[1])
    n1, n2 = a.size, b.size
    v1, v2 = a.var(ddof=1), b.var(ddof=1)
    if v1 == 0 and v2 == 0:
        raise DegenerateDataError(
            f"t-test undefined: groups '{labels[0]}' and '{labels[1]}' both have zero variance"
        )

    statistic, p_value = stats.ttest_ind(a, b, equal_var=equal_var)

    if equal_var:
        dof = float(n1 + n2 - 2)
    else:
        se1, se2 = v1 / n1, v2 / n2
        dof = float((se1 + se2) ** 2 / (se1**2 / (n1 - 1) + se2**2 / (n2 - 1)))

    return TTestResult(
        label1=labels[0],
        label2=labels[1],
        n1=int(n1),
        n2=int(n2),
        mean1=float(a.mean()),
        mean2=float(b.mean()),
        sd1=float(math.sqrt(v1)),
        sd2=float(math.sqrt(v2)),
        statistic=float(statistic),
        dof=dof,
        p_value=float(p_value),
        equal_var=equal_var,
    )


def shapiro_wilk(
    x: Sequence[float] | np.ndarray, label: str = "sample", alpha: float = 0.05
) -> NormalityResult:
    """
    Shapiro-Wilk normality test.

    Raises
    ------
    DegenerateDataError
        If fewer than three non-missing observations are supplied or all
        values are identical.
    """
    arr = np.asarray(x, dtype=float)
    arr = arr[~np.isnan(arr)]
    if arr.size < 3:
        raise DegenerateDataError(
            f"Shapiro-Wilk test needs at least three observations in '{label}', got {arr.size}"
        )
    if np.ptp(arr) == 0:
        raise DegenerateDataError(f"Shapiro-Wilk test undefined: '{label}' is constant")

    statistic, p_value = stats.shapiro(arr)
    result = NormalityResult(
        label=label,
        n=int(arr.size),
        statistic=float(statistic),
        p_value=float(p_value),
        alpha=alpha,
    )
    if not result.passed:
        logger.warning(
            f"Normality precheck: '{label}' departs from normality "
            f"(W={result.statistic:.4f}, p={result.p_value:.4g})"
        )
    return result


def variance_ratio_test(
    x: Sequence[float] | np.ndarray,
    y: Sequence[float] | np.ndarray,
    labels: tuple[str, str] = ("group1", "group2"),
    alpha: float = 0.05,
) -> VarianceRatioResult:
    """
    F-test for equal variances: F = var(x) / var(y) on (n1-1, n2-1) dof.

    The two-sided p-value is ``2 * min(F.cdf, F.sf)``, capped at 1.

    Raises
    ------
    DegenerateDataError
        If a group has fewer than two observations or var(y) is zero.
    """
    a = _clean(x, labels[0])
    b = _clean(y, labels[1])
    v1, v2 = a.var(ddof=1), b.var(ddof=1)
    if v2 == 0:
        raise DegenerateDataError(f"F-test undefined: group '{labels[1]}' has zero variance")

    ratio = float(v1 / v2)
    dof1, dof2 = a.size - 1, b.size - 1
    cdf, sf = stats.f.cdf(ratio, dof1, dof2), stats.f.sf(ratio, dof1, dof2)
    p_value = float(min(1.0, 2.0 * min(cdf, sf)))

    result = VarianceRatioResult(
        label1=labels[0],
        label2=labels[1],
        ratio=ratio,
        dof1=int(dof1),
        dof2=int(dof2),
        p_value=p_value,
        alpha=alpha,
    )
    if not result.passed:
        logger.warning(
            f"Variance precheck: '{labels[0]}' and '{labels[1]}' variances differ "
            f"(F={ratio:.3f}, p={p_value:.4g})"
        )
    return result
