# File: icugenotypes/clinical/__init__.py
# Location: icugenotypes/icugenotypes/clinical/__init__.py
"""
icugenotypes.clinical: outcome models and group comparisons for clinical covariates.

Public API
----------
univariate_logistic : Logistic regression of the outcome on one covariate
logistic_screen     : univariate_logistic over a list of covariates
two_sample_ttest    : Welch (default) or pooled-variance t-test
shapiro_wilk        : Normality precheck
variance_ratio_test : F-test variance-homogeneity precheck
baseline_table      : Descriptive statistics of patients by outcome
"""

from icugenotypes.clinical.descriptive import (
    baseline_table,
    describe_categorical,
    describe_continuous,
)
from icugenotypes.clinical.logistic import LogisticResult, logistic_screen, univariate_logistic
from icugenotypes.clinical.ttest import (
    NormalityResult,
    TTestResult,
    VarianceRatioResult,
    shapiro_wilk,
    two_sample_ttest,
    variance_ratio_test,
)

__all__ = [
    "LogisticResult",
    "NormalityResult",
    "TTestResult",
    "VarianceRatioResult",
    "baseline_table",
    "describe_categorical",
    "describe_continuous",
    "logistic_screen",
    "shapiro_wilk",
    "two_sample_ttest",
    "univariate_logistic",
    "variance_ratio_test",
]
