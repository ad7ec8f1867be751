# File: icugenotypes/association/correction.py
# Location: icugenotypes/icugenotypes/association/correction.py
"""
Multiple testing correction across loci.

Thin wrapper around statsmodels ``multipletests`` for Bonferroni and
Benjamini-Hochberg adjustment. NaN p-values (tests that could not be run)
are passed through unchanged and excluded from the number of tests.
"""

from __future__ import annotations

import logging

import numpy as np
import statsmodels.stats.multitest as smm

logger = logging.getLogger("icugenotypes")


def apply_correction(
    pvals: list[float] | np.ndarray,
    method: str = "bonferroni",
) -> np.ndarray:
    """
    Apply multiple testing correction to a sequence of p-values.

    Parameters
    ----------
    pvals : list of float or np.ndarray
        Raw p-values to correct. Must be in [0, 1] or NaN.
    method : str
        "bonferroni" (default) or "fdr" (Benjamini-Hochberg).

    Returns
    -------
    np.ndarray
        Corrected p-values in the same order as input; NaN where the input
        was NaN.

    Raises
    ------
    ValueError
        On an unknown method.
    """
    if method == "bonferroni":
        smm_method = "bonferroni"
    elif method == "fdr":
        smm_method = "fdr_bh"
    else:
        raise ValueError(f"Unknown correction method {method!r}; use 'bonferroni' or 'fdr'")

    pvals_array = np.asarray(pvals, dtype=float)
    corrected = np.full_like(pvals_array, np.nan)

    valid = ~np.isnan(pvals_array)
    if not valid.any():
        return corrected

    corrected[valid] = smm.multipletests(pvals_array[valid], method=smm_method)[1]
    logger.debug(f"Applied {method} correction to {int(valid.sum())} p-value(s)")
    return corrected
