# File: icugenotypes/expression.py
# Location: icugenotypes/icugenotypes/expression.py
"""
Gene expression (qPCR Ct ratio) comparison across collapsed genotype groups.

The Ct ratio is the target gene cycle threshold divided by the housekeeping
gene cycle threshold. Measurements are joined by identifier to the genotype
of the configured locus (patients and controls are both searched), collapsed
with that locus' GroupingMap, and the two groups are compared with the same
prechecks and t-test used for clinical variables.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from icugenotypes.clinical.descriptive import describe_continuous
from icugenotypes.clinical.ttest import (
    NormalityResult,
    TTestResult,
    VarianceRatioResult,
    shapiro_wilk,
    two_sample_ttest,
    variance_ratio_test,
)
from icugenotypes.config import get_locus
from icugenotypes.exceptions import DataValidationError, DegenerateDataError
from icugenotypes.grouping import grouping_from_locus

logger = logging.getLogger("icugenotypes")

CT_RATIO = "ct_ratio"


@dataclass
class ExpressionResult:
    """Ct ratios by collapsed genotype group with prechecks and t-test."""

    locus: str
    data: pd.DataFrame
    summary: pd.DataFrame
    normality: list[NormalityResult] = field(default_factory=list)
    variance: VarianceRatioResult | None = None
    ttest: TTestResult | None = None


def compute_ct_ratio(df: pd.DataFrame, target: str, reference: str) -> pd.Series:
    """
    Target Ct divided by reference Ct.

    Raises
    ------
    DegenerateDataError
        If any reference Ct is zero or negative.
    """
    ref = df[reference].astype(float)
    if (ref <= 0).any():
        raise DegenerateDataError(
            f"Ct ratio undefined: {int((ref <= 0).sum())} non-positive reference Ct value(s)"
        )
    return (df[target].astype(float) / ref).rename(CT_RATIO)


def _genotype_lookup(
    patients: pd.DataFrame, controls: pd.DataFrame | None, cfg: dict[str, Any], column: str
) -> pd.Series:
    frames = [
        patients[[cfg["patient_columns"]["id"], column]].set_axis(["id", "genotype"], axis=1)
    ]
    if controls is not None:
        frames.append(
            controls[[cfg["control_columns"]["id"], column]].set_axis(["id", "genotype"], axis=1)
        )
    combined = pd.concat(frames, ignore_index=True)
    combined["id"] = combined["id"].astype(str)
    combined["genotype"] = combined["genotype"].astype(object)
    duplicated = combined["id"].duplicated(keep="first")
    if duplicated.any():
        logger.warning(
            f"{int(duplicated.sum())} identifier(s) present in both patients and controls; "
            "using the patient genotype"
        )
    return combined[~duplicated].set_index("id")["genotype"]


def compare_expression(
    expression: pd.DataFrame,
    patients: pd.DataFrame,
    cfg: dict[str, Any],
    controls: pd.DataFrame | None = None,
    equal_var: bool = False,
    alpha: float = 0.05,
) -> ExpressionResult:
    """
    Compare Ct ratios between the two collapsed genotype groups.

    Parameters
    ----------
    expression : pd.DataFrame
        Output of ``load_expression()``.
    patients, controls : pd.DataFrame
        Genotyped tables searched for the measurement identifiers.
    cfg : dict
        Configuration; ``cfg["expression"]["locus"]`` selects the locus.
    equal_var : bool
        t-test variant, passed through unchanged.
    alpha : float
        Significance level of the normality and variance prechecks.

    Raises
    ------
    DataValidationError
        If no measurement identifier matches a genotyped individual.
    DegenerateDataError
        If a collapsed group has fewer than two measurements.
    """
    expr_cfg = cfg["expression"]
    locus = get_locus(cfg, expr_cfg["locus"])
    grouping = grouping_from_locus(locus)

    data = pd.DataFrame(
        {
            "id": expression[expr_cfg["id"]].astype(str).to_numpy(),
            CT_RATIO: compute_ct_ratio(
                expression, expr_cfg["target_ct"], expr_cfg["reference_ct"]
            ).to_numpy(),
        }
    )
    lookup = _genotype_lookup(patients, controls, cfg, locus["column"])
    data["genotype"] = data["id"].map(lookup)

    unmatched = data["genotype"].isna()
    if unmatched.all():
        raise DataValidationError(
            "No expression identifier matches a genotyped individual", field=expr_cfg["id"]
        )
    if unmatched.any():
        logger.warning(
            f"Dropping {int(unmatched.sum())} expression measurement(s) without a genotype: "
            f"{sorted(data.loc[unmatched, 'id'])[:5]}"
        )
        data = data[~unmatched].reset_index(drop=True)

    data["group"] = grouping.collapse(data["genotype"]).to_numpy()
    order = list(grouping.collapsed_levels)
    summary = describe_continuous(data, CT_RATIO, "group", order)

    samples = [data.loc[data["group"] == level, CT_RATIO].to_numpy() for level in order]
    for level, values in zip(order, samples):
        if len(values) < 2:
            raise DegenerateDataError(
                f"Expression group '{level}' has {len(values)} measurement(s); need at least two"
            )

    normality = []
    for level, values in zip(order, samples):
        try:
            normality.append(shapiro_wilk(values, label=level, alpha=alpha))
        except DegenerateDataError as e:
            logger.warning(f"Normality precheck skipped for '{level}': {e}")

    labels = (order[0], order[1])
    ttest = two_sample_ttest(samples[0], samples[1], equal_var=equal_var, labels=labels)
    try:
        variance = variance_ratio_test(samples[0], samples[1], labels=labels, alpha=alpha)
    except DegenerateDataError as e:
        logger.warning(f"Variance precheck skipped: {e}")
        variance = None

    logger.info(
        f"Expression ({locus['name']}): {labels[0]} n={ttest.n1} vs {labels[1]} n={ttest.n2}, "
        f"{ttest.method} t={ttest.statistic:.3f}, p={ttest.p_value:.4g}"
    )
    return ExpressionResult(
        locus=locus["name"],
        data=data,
        summary=summary,
        normality=normality,
        variance=variance,
        ttest=ttest,
    )
