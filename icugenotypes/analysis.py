# File: icugenotypes/analysis.py
# Location: icugenotypes/icugenotypes/analysis.py
"""
Study pipeline: every table and figure input of the report from the loaded data.

``run_study()`` runs, in order:

1. Baseline characteristics of patients by outcome.
2. Age comparison between outcome groups (normality and variance prechecks,
   Welch and pooled t-tests; the configured variant is flagged).
3. Univariate logistic screen of each clinical covariate.
4. Per locus:
   - Hardy-Weinberg equilibrium in controls and patients;
   - patients vs controls: genotype (3x2) and allele (2x2) chi-squared tests
     and the rare-allele odds ratio;
   - patients by outcome: 3x2 chi-squared with signed residuals, then the
     configured 2-level collapse with chi-squared, Fisher's exact test and
     the odds ratio of the rare-homozygote-containing group.
   Locus-level p-values are adjusted across loci.
5. Optional Ct ratio comparison by collapsed genotype.

Degenerate statistics (empty rows, monomorphic loci) are recorded as NaN rows
with a ``note`` rather than aborting the whole study.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import numpy as np
import pandas as pd

from icugenotypes.association.base import AssociationConfig, ChiSquareResult
from icugenotypes.association.contingency import (
    build_contingency_table,
    chi_square_test,
    fisher_exact_test,
)
from icugenotypes.association.correction import apply_correction
from icugenotypes.association.hwe import hardy_weinberg_from_counts
from icugenotypes.association.odds_ratio import odds_ratio
from icugenotypes.clinical.descriptive import baseline_table, describe_continuous
from icugenotypes.clinical.logistic import logistic_screen
from icugenotypes.clinical.ttest import shapiro_wilk, two_sample_ttest, variance_ratio_test
from icugenotypes.config import locus_names
from icugenotypes.exceptions import DegenerateDataError
from icugenotypes.expression import ExpressionResult, compare_expression
from icugenotypes.frequency import (
    NORMALIZE_WITHIN_GENOTYPE,
    NORMALIZE_WITHIN_GROUP,
    FrequencyResult,
    compute_frequencies,
)
from icugenotypes.grouping import load_grouping_maps, signed_residuals

logger = logging.getLogger("icugenotypes")

PATIENTS = "patients"
CONTROLS = "controls"

T = TypeVar("T")


@dataclass
class LocusResults:
    """All per-locus outputs."""

    name: str
    variant: str
    frequencies: dict[str, FrequencyResult] = field(default_factory=dict)
    genotype_by_outcome: pd.DataFrame | None = None
    residuals_by_outcome: pd.DataFrame | None = None
    collapsed_by_outcome: pd.DataFrame | None = None
    conditional_proportions: pd.DataFrame | None = None
    collapsed_p_value: float = math.nan


@dataclass
class StudyResults:
    """Tables (DataFrames) and per-locus results produced by ``run_study()``."""

    config: AssociationConfig
    outcome: str
    outcome_levels: list[str]
    baseline_continuous: pd.DataFrame
    baseline_categorical: pd.DataFrame
    age_data: pd.DataFrame
    age_summary: pd.DataFrame
    age_prechecks: pd.DataFrame
    age_ttests: pd.DataFrame
    logistic: pd.DataFrame
    hwe: pd.DataFrame
    case_control: pd.DataFrame
    outcome_association: pd.DataFrame
    loci: dict[str, LocusResults] = field(default_factory=dict)
    expression: ExpressionResult | None = None
    expression_note: str = ""

    def tables(self) -> dict[str, pd.DataFrame]:
        """Every output table keyed by a short file-safe name."""
        out = {
            "baseline_continuous": self.baseline_continuous,
            "baseline_categorical": self.baseline_categorical,
            "age_summary": self.age_summary,
            "age_prechecks": self.age_prechecks,
            "age_ttests": self.age_ttests,
            "logistic": self.logistic,
            "hwe": self.hwe,
            "case_control": self.case_control,
            "outcome_association": self.outcome_association,
        }
        for name, locus in self.loci.items():
            for key, freq in locus.frequencies.items():
                out[f"{name}_freq_{key}"] = freq.to_frame()
            if locus.residuals_by_outcome is not None:
                out[f"{name}_residuals"] = locus.residuals_by_outcome.reset_index()
            if locus.conditional_proportions is not None:
                out[f"{name}_conditional"] = locus.conditional_proportions
        if self.expression is not None:
            out["expression_summary"] = self.expression.summary
            out["expression_tests"] = expression_tests_frame(self.expression)
        return out


def _guarded(what: str, fn: Callable[[], T]) -> tuple[T | None, str]:
    """Run ``fn``; a DegenerateDataError becomes (None, note) with a warning."""
    try:
        return fn(), ""
    except DegenerateDataError as e:
        logger.warning(f"{what}: {e}")
        return None, str(e)


def _chi_columns(prefix: str, result: ChiSquareResult | None) -> dict[str, Any]:
    if result is None:
        return {f"{prefix}_chi2": math.nan, f"{prefix}_dof": math.nan, f"{prefix}_p": math.nan}
    row = result.as_row()
    row["p"] = row.pop("p_value")
    return {f"{prefix}_{key}": value for key, value in row.items()}


def expression_tests_frame(result: ExpressionResult) -> pd.DataFrame:
    rows = [{"test": "shapiro_wilk", **n.as_row()} for n in result.normality]
    if result.variance is not None:
        rows.append({"test": "f_test", **result.variance.as_row()})
    if result.ttest is not None:
        rows.append({"test": f"t_test_{result.ttest.method}", **result.ttest.as_row()})
    return pd.DataFrame(rows)


def _age_analysis(
    patients: pd.DataFrame, age: str, outcome: str, levels: list[str], config: AssociationConfig
) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    age_data = patients[[age, outcome]].dropna()
    age_data = age_data.rename(columns={age: "age", outcome: "outcome"})
    age_data["outcome"] = age_data["outcome"].astype(object)
    summary = describe_continuous(age_data, "age", "outcome", levels)

    samples = [age_data.loc[age_data["outcome"] == level, "age"].to_numpy() for level in levels]
    labels = (str(levels[0]), str(levels[1]))

    prechecks = []
    for level, values in zip(labels, samples):
        result, note = _guarded(
            f"Shapiro-Wilk ({age}, {level})",
            lambda v=values, lv=level: shapiro_wilk(v, lv, alpha=config.alpha),
        )
        row = {"test": "shapiro_wilk", "group": level, "note": note}
        if result is not None:
            row.update(statistic=result.statistic, p_value=result.p_value, passed=result.passed)
        prechecks.append(row)

    variance, note = _guarded(
        f"F-test ({age})",
        lambda: variance_ratio_test(samples[0], samples[1], labels=labels, alpha=config.alpha),
    )
    row = {"test": "f_test", "group": f"{labels[0]}/{labels[1]}", "note": note}
    if variance is not None:
        row.update(statistic=variance.ratio, p_value=variance.p_value, passed=variance.passed)
    prechecks.append(row)

    ttests = []
    for equal_var in (False, True):
        result, note = _guarded(
            f"t-test ({age})",
            lambda ev=equal_var: two_sample_ttest(
                samples[0], samples[1], equal_var=ev, labels=labels
            ),
        )
        row = {
            "method": "pooled" if equal_var else "welch",
            "configured": equal_var == config.equal_var,
            "note": note,
        }
        if result is not None:
            row.update(result.as_row())
        ttests.append(row)

    return age_data, summary, pd.DataFrame(prechecks), pd.DataFrame(ttests)


def _hwe_rows(
    locus: dict[str, Any], populations: dict[str, pd.DataFrame]
) -> list[dict[str, Any]]:
    rows = []
    for population, df in populations.items():
        counts = df[locus["column"]].astype(object).value_counts()
        counts = counts.reindex(locus["levels"], fill_value=0)
        result, note = _guarded(
            f"HWE ({locus['name']}, {population})",
            lambda c=counts: hardy_weinberg_from_counts([int(v) for v in c]),
        )
        row = {"locus": locus["name"], "population": population, "note": note}
        if result is not None:
            row.update(result.as_row())
        rows.append(row)
    return rows


def _case_control_row(
    locus: dict[str, Any], patients: pd.DataFrame, controls: pd.DataFrame, config: AssociationConfig
) -> tuple[dict[str, Any], FrequencyResult]:
    genotypes = pd.concat(
        [patients[locus["column"]].astype(object), controls[locus["column"]].astype(object)],
        ignore_index=True,
    )
    population = pd.Series([PATIENTS] * len(patients) + [CONTROLS] * len(controls))
    freq = compute_frequencies(
        genotypes,
        locus["levels"],
        population,
        group_order=[PATIENTS, CONTROLS],
        normalize=NORMALIZE_WITHIN_GROUP,
        alleles=tuple(locus["alleles"]) if locus.get("alleles") else None,
    )

    row: dict[str, Any] = {"locus": locus["name"]}
    notes = []
    geno_chi, note = _guarded(
        f"Genotype chi-squared ({locus['name']}, patients vs controls)",
        lambda: chi_square_test(freq.genotype_abs, min_expected_count=config.min_expected_count),
    )
    notes.append(note)
    row.update(_chi_columns("genotype", geno_chi))

    allele_chi, note = _guarded(
        f"Allele chi-squared ({locus['name']}, patients vs controls)",
        lambda: chi_square_test(
            freq.allele_abs,
            correction=config.yates_correction,
            min_expected_count=config.min_expected_count,
        ),
    )
    notes.append(note)
    row.update(_chi_columns("allele", allele_chi))

    rare_allele = freq.alleles[1]
    or_result = odds_ratio(
        freq.allele_abs,
        confidence_level=config.confidence_level,
        exposed_row=rare_allele,
        event_column=PATIENTS,
    )
    row.update(
        rare_allele=rare_allele,
        rare_allele_or=or_result.odds_ratio,
        or_ci_lower=or_result.ci_lower,
        or_ci_upper=or_result.ci_upper,
        or_defined=or_result.defined,
        note="; ".join(n for n in notes if n),
    )
    return row, freq


def _outcome_rows(
    locus: dict[str, Any],
    grouping,
    patients: pd.DataFrame,
    outcome: str,
    levels: list[str],
    config: AssociationConfig,
    result: LocusResults,
) -> dict[str, Any]:
    column = locus["column"]
    event_level = levels[1]
    alleles = tuple(locus["alleles"]) if locus.get("alleles") else None

    by_outcome, outcome_note = _guarded(
        f"Genotype frequencies by outcome ({locus['name']})",
        lambda: compute_frequencies(
            patients[column].astype(object),
            locus["levels"],
            patients[outcome].astype(object),
            group_order=levels,
            normalize=NORMALIZE_WITHIN_GROUP,
            alleles=alleles,
        ),
    )
    if by_outcome is not None:
        result.frequencies["by_outcome"] = by_outcome
    genotype_shares, note = _guarded(
        f"Genotype shares ({locus['name']})",
        lambda: compute_frequencies(
            patients[column].astype(object),
            locus["levels"],
            patients[outcome].astype(object),
            group_order=levels,
            normalize=NORMALIZE_WITHIN_GENOTYPE,
            alleles=alleles,
        ),
    )
    if genotype_shares is not None:
        result.frequencies["by_outcome_within_genotype"] = genotype_shares

    row: dict[str, Any] = {"locus": locus["name"]}
    notes = [outcome_note, note]

    full_chi = None
    if by_outcome is not None:
        full_chi, note = _guarded(
            f"Genotype-by-outcome chi-squared ({locus['name']})",
            lambda: chi_square_test(
                by_outcome.genotype_abs, min_expected_count=config.min_expected_count
            ),
        )
        notes.append(note)
        result.genotype_by_outcome = by_outcome.genotype_abs
        result.residuals_by_outcome = signed_residuals(by_outcome.genotype_abs)
    row.update(_chi_columns("genotype", full_chi))

    collapsed = grouping.collapse(patients[column])
    table = build_contingency_table(
        collapsed.astype(object),
        patients[outcome].astype(object),
        grouping.collapsed_levels,
        levels,
    )
    table.index.name = f"{locus['name']} group"
    table.columns.name = outcome
    result.collapsed_by_outcome = table

    group_totals = table.sum(axis=1)
    result.conditional_proportions = pd.DataFrame(
        {
            "group": list(table.index),
            "n": group_totals.to_numpy(),
            "events": table[event_level].to_numpy(),
            "proportion": np.where(
                group_totals.to_numpy() > 0,
                table[event_level].to_numpy() / np.maximum(group_totals.to_numpy(), 1),
                np.nan,
            ),
        }
    )

    collapsed_chi, note = _guarded(
        f"Collapsed chi-squared ({locus['name']})",
        lambda: chi_square_test(
            table, correction=config.yates_correction, min_expected_count=config.min_expected_count
        ),
    )
    notes.append(note)
    fisher = fisher_exact_test(table)
    or_result = odds_ratio(
        table,
        confidence_level=config.confidence_level,
        exposed_row=grouping.rare_group,
        event_column=event_level,
    )
    result.collapsed_p_value = collapsed_chi.p_value if collapsed_chi else math.nan

    row.update(
        exposed_group=grouping.rare_group,
        reference_group=grouping.common_group,
        collapsed_chi2=collapsed_chi.statistic if collapsed_chi else math.nan,
        collapsed_p=result.collapsed_p_value,
        min_expected=collapsed_chi.min_expected if collapsed_chi else math.nan,
        yates=config.yates_correction,
        fisher_p=fisher.p_value,
        odds_ratio=or_result.odds_ratio,
        or_ci_lower=or_result.ci_lower,
        or_ci_upper=or_result.ci_upper,
        or_defined=or_result.defined,
        note="; ".join(n for n in notes if n),
    )
    return row


def run_study(
    patients: pd.DataFrame,
    controls: pd.DataFrame,
    cfg: dict[str, Any],
    expression: pd.DataFrame | None = None,
) -> StudyResults:
    """
    Run the complete analysis.

    Parameters
    ----------
    patients, controls : pd.DataFrame
        Validated tables from ``load_patients()`` / ``load_controls()``.
    cfg : dict
        Configuration from ``load_config()``.
    expression : pd.DataFrame, optional
        Validated table from ``load_expression()``.

    Returns
    -------
    StudyResults
    """
    config = AssociationConfig.from_dict(cfg)
    cols = cfg["patient_columns"]
    outcome = cols["outcome"]
    levels = list(cfg["outcome_levels"])
    groupings = load_grouping_maps(cfg)

    logger.info(
        f"Running study on {len(patients)} patients and {len(controls)} controls, "
        f"loci: {', '.join(locus_names(cfg))}"
    )

    baseline = baseline_table(patients, cfg)

    age_col = cols.get("age")
    if age_col:
        age_data, age_summary, age_prechecks, age_ttests = _age_analysis(
            patients, age_col, outcome, levels, config
        )
    else:
        age_data = age_summary = age_prechecks = age_ttests = pd.DataFrame()

    covariates = list(
        dict.fromkeys(cols.get("continuous_covariates", []) + cols.get("binary_covariates", []))
    )
    logistic = logistic_screen(
        patients,
        outcome,
        covariates,
        event_level=levels[1],
        references=cfg.get("covariate_reference_levels"),
        ci_method=config.logistic_ci_method,
        confidence_level=config.confidence_level,
    )

    hwe_rows: list[dict[str, Any]] = []
    case_control_rows: list[dict[str, Any]] = []
    outcome_rows: list[dict[str, Any]] = []
    loci: dict[str, LocusResults] = {}

    for locus in cfg["loci"]:
        logger.info(f"Analysing locus {locus['name']}")
        locus_result = LocusResults(name=locus["name"], variant=locus.get("variant", ""))

        hwe_rows.extend(_hwe_rows(locus, {CONTROLS: controls, PATIENTS: patients}))

        cc_row, cc_freq = _case_control_row(locus, patients, controls, config)
        locus_result.frequencies["patients_vs_controls"] = cc_freq
        case_control_rows.append(cc_row)

        outcome_rows.append(
            _outcome_rows(
                locus, groupings[locus["name"]], patients, outcome, levels, config, locus_result
            )
        )
        loci[locus["name"]] = locus_result

    case_control = pd.DataFrame(case_control_rows)
    case_control["genotype_p_adj"] = apply_correction(
        case_control["genotype_p"].to_numpy(), config.correction_method
    )
    outcome_association = pd.DataFrame(outcome_rows)
    outcome_association["collapsed_p_adj"] = apply_correction(
        outcome_association["collapsed_p"].to_numpy(), config.correction_method
    )

    expression_result = None
    expression_note = ""
    if expression is not None:
        expression_result, expression_note = _guarded(
            "Expression comparison",
            lambda: compare_expression(
                expression,
                patients,
                cfg,
                controls=controls,
                equal_var=config.equal_var,
                alpha=config.alpha,
            ),
        )

    logger.info("Study analysis complete")
    return StudyResults(
        config=config,
        outcome=outcome,
        outcome_levels=levels,
        baseline_continuous=baseline["continuous"],
        baseline_categorical=baseline["categorical"],
        age_data=age_data,
        age_summary=age_summary,
        age_prechecks=age_prechecks,
        age_ttests=age_ttests,
        logistic=logistic,
        hwe=pd.DataFrame(hwe_rows),
        case_control=case_control,
        outcome_association=outcome_association,
        loci=loci,
        expression=expression_result,
        expression_note=expression_note,
    )
