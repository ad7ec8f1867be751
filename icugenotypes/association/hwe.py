# File: icugenotypes/association/hwe.py
# Location: icugenotypes/icugenotypes/association/hwe.py
"""
Hardy-Weinberg equilibrium goodness-of-fit test.

Given genotype counts (homozygous-common, heterozygous, homozygous-rare), the
common allele frequency is estimated as p = (2*n_AA + n_Aa) / (2N) and the
expected counts under random mating are p^2 N, 2p(1-p) N and (1-p)^2 N. The
Pearson statistic is referred to chi2 with 1 degree of freedom (3 classes
minus 1, minus 1 estimated allele frequency). No continuity correction.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
from scipy.stats import chi2 as chi2_dist

from icugenotypes.association.base import HWEResult
from icugenotypes.exceptions import DataValidationError, DegenerateDataError

logger = logging.getLogger("icugenotypes")


def hardy_weinberg_test(n_common_hom: int, n_het: int, n_rare_hom: int) -> HWEResult:
    """
    Test genotype counts for departure from Hardy-Weinberg proportions.

    Raises
    ------
    DataValidationError
        If any count is negative.
    DegenerateDataError
        If there are no individuals or the locus is monomorphic (an expected
        count is zero, so the statistic is undefined).
    """
    observed = np.array([n_common_hom, n_het, n_rare_hom], dtype=float)
    if (observed < 0).any():
        raise DataValidationError(f"Genotype counts must be non-negative, got {observed.tolist()}")

    n = observed.sum()
    if n == 0:
        raise DegenerateDataError("Hardy-Weinberg test undefined for zero individuals")

    p = (2.0 * observed[0] + observed[1]) / (2.0 * n)
    q = 1.0 - p
    expected = np.array([p * p * n, 2.0 * p * q * n, q * q * n])
    if (expected == 0).any():
        raise DegenerateDataError(
            f"Hardy-Weinberg test undefined for a monomorphic locus (counts {observed.tolist()})"
        )

    statistic = float(((observed - expected) ** 2 / expected).sum())
    p_value = float(chi2_dist.sf(statistic, df=1))
    logger.debug(
        f"HWE: observed={observed.tolist()} expected={expected.round(2).tolist()} "
        f"p={p_value:.4g}"
    )

    return HWEResult(
        observed=observed.astype(int),
        expected=expected,
        statistic=statistic,
        p_value=p_value,
        common_allele_freq=float(p),
        n=int(n),
    )


def hardy_weinberg_from_counts(counts: Sequence[int]) -> HWEResult:
    """Convenience wrapper taking an ordered (common_hom, het, rare_hom) sequence."""
    values = list(counts)
    if len(values) != 3:
        raise DataValidationError(f"Expected three genotype counts, got {len(values)}")
    return hardy_weinberg_test(*values)
