# File: icugenotypes/clinical/logistic.py
# Location: icugenotypes/icugenotypes/clinical/logistic.py
"""
Univariate logistic regression of a binary outcome on one clinical covariate.

Each model is ``logit P(event) = b0 + b1 * x`` fitted by maximum likelihood
with statsmodels Logit. The reported effect is OR = exp(b1) with either a Wald
interval or a profile-likelihood interval.

Separation detection
--------------------
statsmodels may emit a PerfectSeparationWarning and still return a result
object, so a fit is treated as failed when:
  - ``result.mle_retvals.get("converged", True)`` is False, or
  - ``result.bse.max() > 100.0`` (standard error inflation).
A failed fit is reported as ``converged=False`` with NaN estimates.

Warning codes
-------------
Structured codes added to ``LogisticResult.warnings``:

``NON_CONVERGENCE``
    Logit fit raised, did not converge or showed separation.
``PROFILE_CI_UNBOUNDED``
    A profile-likelihood bound could not be bracketed.
``MISSING_COVARIATE``
    Rows were dropped because the covariate was missing.
"""

from __future__ import annotations

import logging
import math
import warnings
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy.optimize import brentq
from scipy.stats import chi2 as chi2_dist

from icugenotypes.exceptions import DataValidationError, DegenerateDataError

logger = logging.getLogger("icugenotypes")

_SEPARATION_BSE_THRESHOLD = 100.0
_PROFILE_MAX_EXPANSIONS = 12


@dataclass
class LogisticResult:
    """
    Univariate logistic regression result for one covariate.

    ``term`` is the covariate name for numeric covariates, or
    ``"<covariate>[<level>]"`` for the indicator of a binary categorical
    covariate against ``reference``.
    """

    covariate: str
    term: str
    reference: str | None
    coef: float
    se: float
    p_value: float
    odds_ratio: float
    ci_lower: float
    ci_upper: float
    ci_method: str
    n: int
    n_events: int
    n_missing: int
    converged: bool
    warnings: list[str] = field(default_factory=list)

    def as_row(self) -> dict[str, Any]:
        row = asdict(self)
        row["warnings"] = ";".join(self.warnings)
        return row


def encode_covariate(
    values: pd.Series, reference: str | None = None
) -> tuple[pd.Series, str, str | None]:
    """
    Encode a covariate as a float column.

    Numeric columns are returned unchanged. Non-numeric columns must have
    exactly two observed levels and become a 0/1 indicator of the
    non-reference level; ``reference`` defaults to the first sorted level.

    Returns
    -------
    (encoded, term, reference)
    """
    name = str(values.name)
    if pd.api.types.is_numeric_dtype(values) and not isinstance(values.dtype, pd.CategoricalDtype):
        return values.astype(float), name, None

    observed = values.dropna().astype(str)
    levels = sorted(observed.unique())
    if len(levels) < 2:
        raise DegenerateDataError(
            f"Covariate '{name}' has fewer than two observed levels: {levels}"
        )
    if len(levels) > 2:
        raise DataValidationError(
            f"Covariate '{name}' has {len(levels)} levels {levels}; univariate models "
            "support numeric or binary covariates only",
            field=name,
        )

    ref = levels[0] if reference is None else str(reference)
    if ref not in levels:
        raise DataValidationError(
            f"Reference level {ref!r} for covariate '{name}' not observed (levels {levels})",
            field=name,
        )
    level = next(lvl for lvl in levels if lvl != ref)

    encoded = values.astype(object).map(
        lambda v: np.nan if pd.isna(v) else float(str(v) == level)
    )
    return encoded.astype(float), f"{name}[{level}]", ref


def _profile_llf(y: np.ndarray, x: np.ndarray, beta: float) -> float:
    """Log-likelihood maximized over the intercept with the slope fixed at ``beta``."""
    model = sm.GLM(
        y, np.ones((len(y), 1)), family=sm.families.Binomial(), offset=beta * x
    )
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        return float(model.fit().llf)


def profile_likelihood_ci(
    y: np.ndarray,
    x: np.ndarray,
    beta_hat: float,
    se: float,
    llf_max: float,
    confidence_level: float = 0.95,
) -> tuple[float, float]:
    """
    Profile-likelihood interval for the slope of a univariate logistic model.

    The bounds solve ``2 * (llf_max - llf_profile(beta)) = chi2_1(level)``,
    bracketed by stepping outward from ``beta_hat`` in multiples of ``se`` and
    refined with ``scipy.optimize.brentq``. A bound that cannot be bracketed
    is returned as NaN.
    """
    cutoff = llf_max - chi2_dist.ppf(confidence_level, df=1) / 2.0

    def excess(beta: float) -> float:
        return _profile_llf(y, x, beta) - cutoff

    step = se if np.isfinite(se) and se > 0 else 1.0
    bounds = []
    for direction in (-1.0, 1.0):
        inner = beta_hat
        distance = 2.0 * step
        found = False
        for _ in range(_PROFILE_MAX_EXPANSIONS):
            outer = beta_hat + direction * distance
            if excess(outer) < 0:
                found = True
                break
            inner = outer
            distance *= 2.0
        if not found:
            bounds.append(math.nan)
            continue
        lo, hi = sorted((inner, outer))
        bounds.append(float(brentq(excess, lo, hi, xtol=1e-8)))
    return bounds[0], bounds[1]


def univariate_logistic(
    data: pd.DataFrame,
    outcome: str,
    covariate: str,
    event_level: Any,
    reference: str | None = None,
    ci_method: str = "wald",
    confidence_level: float = 0.95,
) -> LogisticResult:
    """
    Fit ``outcome ~ covariate`` by maximum likelihood and report the OR.

    Parameters
    ----------
    data : pd.DataFrame
        Patient table.
    outcome : str
        Binary outcome column (never missing).
    covariate : str
        Covariate column; rows where it is missing are dropped.
    event_level : label
        Outcome level modelled as the event (y = 1).
    reference : str, optional
        Reference level for a binary categorical covariate.
    ci_method : str
        "wald" (default) or "profile".
    confidence_level : float
        Two-sided confidence level. Default: 0.95.

    Returns
    -------
    LogisticResult
        ``converged=False`` with NaN estimates when the fit fails or shows
        separation.

    Raises
    ------
    DataValidationError
        If the outcome is missing or a covariate has more than two levels.
    DegenerateDataError
        If the outcome or covariate does not vary among complete rows.
    """
    if ci_method not in ("wald", "profile"):
        raise ValueError(f"ci_method must be 'wald' or 'profile', got {ci_method!r}")
    if data[outcome].isna().any():
        raise DataValidationError(f"Outcome column '{outcome}' has missing values", field=outcome)

    encoded, term, ref = encode_covariate(data[covariate], reference)
    complete = encoded.notna()
    n_missing = int((~complete).sum())
    x = encoded[complete].to_numpy(dtype=float)
    y = (data.loc[complete, outcome].astype(object) == event_level).to_numpy(dtype=float)

    n = int(len(y))
    n_events = int(y.sum())
    if n_events in (0, n):
        raise DegenerateDataError(
            f"Outcome '{outcome}' does not vary among {n} complete rows for '{covariate}'"
        )
    if np.ptp(x) == 0:
        raise DegenerateDataError(f"Covariate '{covariate}' is constant among complete rows")

    warning_codes: list[str] = []
    if n_missing:
        warning_codes.append("MISSING_COVARIATE")
        logger.debug(f"Covariate '{covariate}': dropped {n_missing} row(s) with missing values")

    design = sm.add_constant(x.reshape(-1, 1), has_constant="add")
    try:
        with warnings.catch_warnings(record=True):
            warnings.simplefilter("always")
            fit_result = sm.Logit(y, design).fit(disp=False, maxiter=100)
        converged = bool(fit_result.mle_retvals.get("converged", True))
        converged = converged and float(np.max(fit_result.bse)) <= _SEPARATION_BSE_THRESHOLD
    except Exception as exc:
        logger.debug(f"Covariate '{covariate}': Logit.fit() raised {type(exc).__name__}: {exc}")
        converged = False
        fit_result = None

    if not converged:
        warning_codes.append("NON_CONVERGENCE")
        logger.warning(
            f"Covariate '{covariate}': logistic fit did not converge or shows separation; "
            "reporting NA"
        )
        return LogisticResult(
            covariate=covariate,
            term=term,
            reference=ref,
            coef=math.nan,
            se=math.nan,
            p_value=math.nan,
            odds_ratio=math.nan,
            ci_lower=math.nan,
            ci_upper=math.nan,
            ci_method=ci_method,
            n=n,
            n_events=n_events,
            n_missing=n_missing,
            converged=False,
            warnings=warning_codes,
        )

    beta = float(fit_result.params[1])
    se = float(fit_result.bse[1])
    p_value = float(fit_result.pvalues[1])

    if ci_method == "profile":
        lower, upper = profile_likelihood_ci(
            y, x, beta, se, float(fit_result.llf), confidence_level
        )
        if math.isnan(lower) or math.isnan(upper):
            warning_codes.append("PROFILE_CI_UNBOUNDED")
    else:
        # conf_int() returns ndarray shape (n_params, 2) for ndarray input
        ci = fit_result.conf_int(alpha=1.0 - confidence_level)
        lower, upper = float(ci[1, 0]), float(ci[1, 1])

    return LogisticResult(
        covariate=covariate,
        term=term,
        reference=ref,
        coef=beta,
        se=se,
        p_value=p_value,
        odds_ratio=math.exp(beta),
        ci_lower=math.exp(lower),
        ci_upper=math.exp(upper),
        ci_method=ci_method,
        n=n,
        n_events=n_events,
        n_missing=n_missing,
        converged=True,
        warnings=warning_codes,
    )


def logistic_screen(
    data: pd.DataFrame,
    outcome: str,
    covariates: Sequence[str],
    event_level: Any,
    references: dict[str, str] | None = None,
    ci_method: str = "wald",
    confidence_level: float = 0.95,
) -> pd.DataFrame:
    """
    Run ``univariate_logistic`` for each covariate.

    Covariates whose model is undefined (DegenerateDataError) are reported as
    a row of NaN estimates with the reason in ``warnings``.
    """
    references = references or {}
    rows = []
    for covariate in covariates:
        try:
            result = univariate_logistic(
                data,
                outcome,
                covariate,
                event_level,
                reference=references.get(covariate),
                ci_method=ci_method,
                confidence_level=confidence_level,
            )
            rows.append(result.as_row())
        except DegenerateDataError as e:
            logger.warning(f"Skipping covariate '{covariate}': {e}")
            rows.append(
                {
                    "covariate": covariate,
                    "term": covariate,
                    "ci_method": ci_method,
                    "converged": False,
                    "warnings": f"DEGENERATE: {e}",
                }
            )
    columns = list(LogisticResult.__dataclass_fields__)
    return pd.DataFrame(rows).reindex(columns=columns)
