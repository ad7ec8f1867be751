# File: icugenotypes/association/__init__.py
# Location: icugenotypes/icugenotypes/association/__init__.py
"""
icugenotypes.association: contingency-table association tests.

Public API
----------
AssociationConfig       : Statistical options shared across tests
build_contingency_table : Cross-tabulation with declared level order
chi_square_test         : Pearson chi-squared test (Yates' correction opt-in)
fisher_exact_test       : Two-sided Fisher's exact test for 2x2 tables
odds_ratio              : Wald odds ratio with explicit orientation
hardy_weinberg_test     : HWE chi-squared goodness-of-fit (1 dof)
apply_correction        : Bonferroni / Benjamini-Hochberg correction
"""

from icugenotypes.association.base import (
    AssociationConfig,
    ChiSquareResult,
    FisherResult,
    HWEResult,
    OddsRatioResult,
)
from icugenotypes.association.contingency import (
    build_contingency_table,
    chi_square_test,
    fisher_exact_test,
)
from icugenotypes.association.correction import apply_correction
from icugenotypes.association.hwe import hardy_weinberg_test
from icugenotypes.association.odds_ratio import odds_ratio

__all__ = [
    "AssociationConfig",
    "ChiSquareResult",
    "FisherResult",
    "HWEResult",
    "OddsRatioResult",
    "apply_correction",
    "build_contingency_table",
    "chi_square_test",
    "fisher_exact_test",
    "hardy_weinberg_test",
    "odds_ratio",
]
