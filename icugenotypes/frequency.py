# File: icugenotypes/frequency.py
# Location: icugenotypes/icugenotypes/frequency.py
"""
Genotype and allele frequency calculator.

Given a column of bi-allelic genotype calls and an optional grouping column,
``compute_frequencies()`` produces genotype and allele counts and proportions
per group.

Genotype levels must be passed as an explicit ordered triple
(homozygous-common, heterozygous, homozygous-rare). The allele-counting
identity depends on that order:

    rare allele   = 2 * n(homozygous-rare)   + n(heterozygous)
    common allele = 2 * n(homozygous-common) + n(heterozygous)

so levels are never inferred from sorted label text ("AA", "GA", "GG" sorts
homozygous-rare first when G is the common allele).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np
import pandas as pd

from icugenotypes.exceptions import DataValidationError, DegenerateDataError

logger = logging.getLogger("icugenotypes")

NORMALIZE_WITHIN_GROUP = "group"
NORMALIZE_WITHIN_GENOTYPE = "genotype"
_NORMALIZE_CHOICES = (NORMALIZE_WITHIN_GROUP, NORMALIZE_WITHIN_GENOTYPE)

SINGLE_GROUP = "all"


class GenotypeLevels(NamedTuple):
    """Ordered genotype levels of a bi-allelic locus."""

    common_hom: str
    het: str
    rare_hom: str

    @classmethod
    def from_sequence(cls, levels: Sequence[str]) -> GenotypeLevels:
        """Validate and wrap a 3-sequence of distinct level labels."""
        levels = list(levels)
        if len(levels) != 3 or len(set(levels)) != 3:
            raise DataValidationError(
                f"Genotype levels must be exactly three distinct labels "
                f"(homozygous-common, heterozygous, homozygous-rare), got {levels}"
            )
        return cls(*levels)


def default_allele_labels(levels: GenotypeLevels) -> tuple[str, str]:
    """
    Derive (common, rare) allele labels from two-letter homozygous codes.

    "II"/"DD" gives ("I", "D"). Anything that is not a doubled letter falls
    back to ("common", "rare").
    """
    common, rare = levels.common_hom, levels.rare_hom
    if len(common) == 2 and len(rare) == 2 and common[0] == common[1] and rare[0] == rare[1]:
        return common[0], rare[0]
    return "common", "rare"


@dataclass(frozen=True)
class FrequencyResult:
    """
    Genotype and allele frequencies for one (variable, grouping) pair.

    Fields
    ------
    levels : GenotypeLevels
        Ordered genotype levels (row order of the genotype tables).
    alleles : tuple[str, str]
        (common, rare) allele labels.
    normalize : str
        "group" (each column sums to 1) or "genotype" (each row sums to 1).
    genotype_abs : pd.DataFrame
        3 x G integer counts, rows in ``levels`` order.
    genotype_rel : pd.DataFrame
        ``genotype_abs`` normalized along ``normalize``.
    allele_abs : pd.DataFrame
        2 x G integer counts, rows (rare, common).
    allele_rel : pd.DataFrame
        ``allele_abs`` normalized along ``normalize``.
    """

    levels: GenotypeLevels
    alleles: tuple[str, str]
    normalize: str
    genotype_abs: pd.DataFrame
    genotype_rel: pd.DataFrame
    allele_abs: pd.DataFrame
    allele_rel: pd.DataFrame

    @property
    def groups(self) -> list[str]:
        return list(self.genotype_abs.columns)

    def to_frame(self, decimals: int = 4) -> pd.DataFrame:
        """
        Flatten counts and proportions into one display table.

        Rows are the three genotype levels followed by the two alleles; for
        every group there is an ``"<group> n"`` and ``"<group> freq"`` column.
        """
        abs_all = pd.concat([self.genotype_abs, self.allele_abs])
        rel_all = pd.concat([self.genotype_rel, self.allele_rel]).round(decimals)
        out = pd.DataFrame(index=abs_all.index)
        out.insert(0, "type", ["genotype"] * 3 + ["allele"] * 2)
        for group in self.groups:
            out[f"{group} n"] = abs_all[group].astype(int)
            out[f"{group} freq"] = rel_all[group]
        out.index.name = "level"
        return out.reset_index()


def _normalize(counts: pd.DataFrame, normalize: str, what: str) -> pd.DataFrame:
    """Divide by column sums ("group") or row sums ("genotype")."""
    if normalize == NORMALIZE_WITHIN_GROUP:
        divisors = counts.sum(axis=0)
        if (divisors == 0).any():
            empty = list(divisors.index[divisors == 0])
            raise DegenerateDataError(
                f"Cannot normalize {what} counts within group: "
                f"group(s) {empty} have no observations"
            )
        return counts.div(divisors, axis=1).astype(float)

    divisors = counts.sum(axis=1)
    if (divisors == 0).any():
        empty = list(divisors.index[divisors == 0])
        raise DegenerateDataError(
            f"Cannot normalize {what} counts within {what}: level(s) {empty} have no observations"
        )
    return counts.div(divisors, axis=0).astype(float)


def _resolve_group_order(groups: pd.Series, group_order: Sequence[str] | None) -> list:
    if group_order is not None:
        order = list(group_order)
    elif isinstance(groups.dtype, pd.CategoricalDtype):
        order = list(groups.cat.categories)
    else:
        order = sorted(groups.unique(), key=str)

    unknown = sorted(set(groups) - set(order), key=str)
    if unknown:
        raise DataValidationError(f"Group label(s) {unknown} not in group order {order}")
    return order


def compute_frequencies(
    genotypes: Sequence[str] | pd.Series,
    levels: Sequence[str],
    groups: Sequence[str] | pd.Series | None = None,
    group_order: Sequence[str] | None = None,
    normalize: str = NORMALIZE_WITHIN_GROUP,
    alleles: tuple[str, str] | None = None,
) -> FrequencyResult:
    """
    Compute genotype and allele counts and proportions.

    Parameters
    ----------
    genotypes : sequence of str or pd.Series
        One genotype call per individual. Missing values are not allowed.
    levels : sequence of str
        Explicit ordered triple (homozygous-common, heterozygous,
        homozygous-rare).
    groups : sequence or pd.Series, optional
        Group label per individual, same length as ``genotypes``. None
        treats all individuals as a single group named "all".
    group_order : sequence of str, optional
        Column order of the result. Defaults to the categories of a
        categorical ``groups`` or the sorted unique labels.
    normalize : str
        "group" divides each column by its sum; "genotype" divides each row
        by its sum. Forced to "group" when no grouping is supplied.
    alleles : tuple[str, str], optional
        (common, rare) allele labels for the allele table rows.

    Returns
    -------
    FrequencyResult

    Raises
    ------
    DataValidationError
        On a malformed level triple, unexpected or missing genotype values,
        or mismatched lengths.
    DegenerateDataError
        If a row/column sum used as a divisor is zero.
    """
    geno_levels = GenotypeLevels.from_sequence(levels)
    if normalize not in _NORMALIZE_CHOICES:
        raise ValueError(f"normalize must be one of {_NORMALIZE_CHOICES}, got {normalize!r}")

    geno = pd.Series(genotypes).reset_index(drop=True)
    if geno.isna().any():
        raise DataValidationError(
            f"Genotype column has {int(geno.isna().sum())} missing value(s)"
        )
    geno = geno.astype(str)
    unexpected = sorted(set(geno) - set(geno_levels))
    if unexpected:
        raise DataValidationError(
            f"Unexpected genotype level(s) {unexpected}; declared levels are {list(geno_levels)}"
        )

    if groups is None:
        if normalize != NORMALIZE_WITHIN_GROUP:
            logger.debug("No grouping supplied; normalizing within the single implicit group")
        normalize = NORMALIZE_WITHIN_GROUP
        grp = pd.Series([SINGLE_GROUP] * len(geno))
        order = [SINGLE_GROUP]
    else:
        grp = pd.Series(groups).reset_index(drop=True)
        if len(grp) != len(geno):
            raise DataValidationError(
                f"Grouping column length {len(grp)} does not match "
                f"genotype column length {len(geno)}"
            )
        if grp.isna().any():
            raise DataValidationError(
                f"Grouping column has {int(grp.isna().sum())} missing value(s)"
            )
        order = _resolve_group_order(grp, group_order)
        grp = grp.astype(object)

    genotype_abs = (
        pd.crosstab(geno.values, grp.values)
        .reindex(index=list(geno_levels), columns=order, fill_value=0)
        .astype(int)
    )
    genotype_abs.index.name = "genotype"
    genotype_abs.columns.name = "group"

    if alleles is None:
        alleles = default_allele_labels(geno_levels)
    common_label, rare_label = alleles
    hom_common = genotype_abs.loc[geno_levels.common_hom].to_numpy()
    het = genotype_abs.loc[geno_levels.het].to_numpy()
    hom_rare = genotype_abs.loc[geno_levels.rare_hom].to_numpy()
    allele_abs = pd.DataFrame(
        np.vstack([2 * hom_rare + het, 2 * hom_common + het]),
        index=pd.Index([rare_label, common_label], name="allele"),
        columns=genotype_abs.columns,
    ).astype(int)

    genotype_rel = _normalize(genotype_abs, normalize, "genotype")
    allele_rel = _normalize(allele_abs, normalize, "allele")

    logger.debug(
        f"Frequencies over {len(geno)} individuals, groups={order}, normalize={normalize}"
    )
    return FrequencyResult(
        levels=geno_levels,
        alleles=(common_label, rare_label),
        normalize=normalize,
        genotype_abs=genotype_abs,
        genotype_rel=genotype_rel,
        allele_abs=allele_abs,
        allele_rel=allele_rel,
    )
