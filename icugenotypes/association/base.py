# File: icugenotypes/association/base.py
# Location: icugenotypes/icugenotypes/association/base.py
"""
Core dataclasses for the association testing framework.

Defines AssociationConfig (statistical options shared by all tests) and the
result dataclasses returned by the contingency-table tests: ChiSquareResult,
FisherResult, OddsRatioResult and HWEResult.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

logger = logging.getLogger("icugenotypes")


@dataclass
class AssociationConfig:
    """
    Configuration for the association and clinical tests.

    Fields
    ------
    confidence_level : float
        Two-sided confidence level for odds ratio intervals. Default: 0.95.
    yates_correction : bool
        Apply Yates' continuity correction to 2x2 chi-squared tests. Default:
        False. Never switched on automatically; a warning is logged when the
        minimum expected count falls below ``min_expected_count``.
    equal_var : bool
        Use the pooled-variance t-test instead of Welch's. Default: False.
    correction_method : str
        Multiple-testing correction across loci. "bonferroni" (default) or
        "fdr" (Benjamini-Hochberg).
    min_expected_count : float
        Expected-cell threshold for the small-count warning. Default: 5.
    logistic_ci_method : str
        "wald" (default) or "profile" for univariate logistic OR intervals.
    """

    confidence_level: float = 0.95
    yates_correction: bool = False
    equal_var: bool = False
    correction_method: str = "bonferroni"
    min_expected_count: float = 5.0
    logistic_ci_method: str = "wald"

    @property
    def alpha(self) -> float:
        return 1.0 - self.confidence_level

    @classmethod
    def from_dict(cls, cfg: dict[str, Any]) -> AssociationConfig:
        """Build from the ``statistics`` section of a loaded configuration."""
        stats = cfg.get("statistics", cfg)
        known = {f for f in cls.__dataclass_fields__}
        unknown = sorted(set(stats) - known)
        if unknown:
            logger.warning(f"Ignoring unknown statistics option(s): {unknown}")
        config = cls(**{k: v for k, v in stats.items() if k in known})
        if not 0.0 < config.confidence_level < 1.0:
            raise ValueError(f"confidence_level must be in (0, 1), got {config.confidence_level}")
        if config.correction_method not in ("bonferroni", "fdr"):
            raise ValueError(
                f"correction_method must be 'bonferroni' or 'fdr', got {config.correction_method!r}"
            )
        if config.logistic_ci_method not in ("wald", "profile"):
            raise ValueError(
                f"logistic_ci_method must be 'wald' or 'profile', got {config.logistic_ci_method!r}"
            )
        return config


@dataclass
class ChiSquareResult:
    """
    Pearson chi-squared test of independence on an r x c table.

    ``residuals`` holds signed observed - expected counts, the quantity the
    genotype grouping decisions were read from.
    """

    statistic: float
    p_value: float
    dof: int
    expected: pd.DataFrame
    residuals: pd.DataFrame
    min_expected: float
    correction: bool
    n: int

    def as_row(self) -> dict[str, Any]:
        return {
            "chi2": self.statistic,
            "dof": self.dof,
            "p_value": self.p_value,
            "min_expected": self.min_expected,
            "yates": self.correction,
            "n": self.n,
        }


@dataclass
class FisherResult:
    """Two-sided Fisher's exact test on a 2x2 table (conditional MLE odds ratio)."""

    odds_ratio: float
    p_value: float
    table: list[list[int]]


@dataclass
class OddsRatioResult:
    """
    Sample odds ratio with a Wald confidence interval.

    ``defined`` is False whenever a zero cell makes the ratio or its standard
    error undefined; ``odds_ratio`` is then ``inf``, ``0.0`` or ``nan`` and
    the interval is ``(nan, nan)``. Nothing is clamped or corrected.
    """

    odds_ratio: float
    ci_lower: float
    ci_upper: float
    se_log_or: float
    confidence_level: float
    exposed: Any
    reference: Any
    event: Any
    table: list[list[int]]
    defined: bool = True


@dataclass
class HWEResult:
    """Hardy-Weinberg equilibrium chi-squared goodness-of-fit test (1 dof)."""

    observed: np.ndarray
    expected: np.ndarray
    statistic: float
    p_value: float
    common_allele_freq: float
    n: int

    @property
    def rare_allele_freq(self) -> float:
        return 1.0 - self.common_allele_freq

    def as_row(self) -> dict[str, Any]:
        return {
            "n": self.n,
            "obs_common_hom": int(self.observed[0]),
            "obs_het": int(self.observed[1]),
            "obs_rare_hom": int(self.observed[2]),
            "exp_common_hom": float(self.expected[0]),
            "exp_het": float(self.expected[1]),
            "exp_rare_hom": float(self.expected[2]),
            "common_allele_freq": self.common_allele_freq,
            "rare_allele_freq": self.rare_allele_freq,
            "chi2": self.statistic,
            "p_value": self.p_value,
        }
