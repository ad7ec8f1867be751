"""Unit tests for the fixed genotype collapse maps."""

from __future__ import annotations

import pandas as pd
import pytest

from icugenotypes.exceptions import DataValidationError
from icugenotypes.grouping import (
    GroupingMap,
    grouping_from_locus,
    load_grouping_maps,
    signed_residuals,
)


def _ace_map() -> GroupingMap:
    return GroupingMap(
        locus="ACE",
        levels=("II", "ID", "DD"),
        mapping={"II": "II+ID", "ID": "II+ID", "DD": "DD"},
        collapsed_levels=("II+ID", "DD"),
    )


@pytest.mark.unit
class TestGroupingMap:
    def test_collapse_preserves_order_and_index(self):
        genotypes = pd.Series(["DD", "II", "ID", "DD"], index=[10, 11, 12, 13])
        collapsed = _ace_map().collapse(genotypes)

        assert collapsed.tolist() == ["DD", "II+ID", "II+ID", "DD"]
        assert list(collapsed.index) == [10, 11, 12, 13]
        assert list(collapsed.cat.categories) == ["II+ID", "DD"]
        assert collapsed.name == "ACE_collapsed"

    def test_collapse_keeps_missing(self):
        collapsed = _ace_map().collapse(pd.Series(["II", None]))
        assert collapsed.isna().tolist() == [False, True]

    def test_collapse_rejects_unknown_level(self):
        with pytest.raises(DataValidationError, match="XX"):
            _ace_map().collapse(pd.Series(["II", "XX"]))

    def test_rare_and_common_groups(self):
        grouping = _ace_map()
        assert grouping.rare_group == "DD"
        assert grouping.common_group == "II+ID"

    def test_rare_group_with_heterozygote_pooled_into_rare(self):
        grouping = GroupingMap(
            locus="ACE2",
            levels=("GG", "GA", "AA"),
            mapping={"GG": "GG", "GA": "GA+AA", "AA": "GA+AA"},
            collapsed_levels=("GG", "GA+AA"),
        )
        assert grouping.rare_group == "GA+AA"
        assert grouping.common_group == "GG"

    def test_incomplete_mapping_rejected(self):
        with pytest.raises(DataValidationError):
            GroupingMap(
                locus="X",
                levels=("AA", "AB", "BB"),
                mapping={"AA": "A", "AB": "A"},
                collapsed_levels=("A", "B"),
            )

    def test_mapping_onto_single_level_rejected(self):
        with pytest.raises(DataValidationError):
            GroupingMap(
                locus="X",
                levels=("AA", "AB", "BB"),
                mapping={"AA": "A", "AB": "A", "BB": "A"},
                collapsed_levels=("A", "B"),
            )


@pytest.mark.unit
class TestConfiguredMaps:
    def test_every_configured_locus_has_a_map(self, cfg):
        maps = load_grouping_maps(cfg)
        assert set(maps) == {"ACE", "ACE2", "TMPRSS2"}
        assert maps["TMPRSS2"].rare_group == "AA"

    def test_locus_without_grouping(self):
        with pytest.raises(DataValidationError, match="no grouping"):
            grouping_from_locus({"name": "X", "levels": ["AA", "AB", "BB"]})


@pytest.mark.unit
class TestSignedResiduals:
    def test_observed_minus_expected(self):
        table = pd.DataFrame([[10, 0], [0, 10]], index=["a", "b"], columns=["x", "y"])
        residuals = signed_residuals(table)
        assert residuals.to_numpy().tolist() == [[5.0, -5.0], [-5.0, 5.0]]

    def test_residuals_sum_to_zero_along_margins(self):
        table = pd.DataFrame([[12, 5], [7, 9], [3, 8]])
        residuals = signed_residuals(table)
        assert residuals.sum(axis=0).abs().max() < 1e-9
        assert residuals.sum(axis=1).abs().max() < 1e-9
