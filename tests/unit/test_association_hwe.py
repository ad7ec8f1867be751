"""Unit tests for the Hardy-Weinberg equilibrium test."""

from __future__ import annotations

import pytest
from scipy.stats import chisquare

from icugenotypes.association.hwe import hardy_weinberg_from_counts, hardy_weinberg_test
from icugenotypes.exceptions import DataValidationError, DegenerateDataError


@pytest.mark.unit
class TestHardyWeinberg:
    def test_equilibrium_counts_give_zero_statistic(self):
        # p = 0.6: 36 / 48 / 16 of 100
        result = hardy_weinberg_test(36, 48, 16)
        assert result.statistic == pytest.approx(0.0, abs=1e-12)
        assert result.p_value == pytest.approx(1.0)
        assert result.common_allele_freq == pytest.approx(0.6)
        assert result.rare_allele_freq == pytest.approx(0.4)

    def test_no_heterozygotes_is_highly_significant(self):
        result = hardy_weinberg_test(100, 0, 100)
        assert result.statistic == pytest.approx(200.0)
        assert result.p_value < 0.001

    def test_matches_goodness_of_fit_with_one_dof(self):
        observed = [50, 30, 20]
        result = hardy_weinberg_test(*observed)
        reference = chisquare(observed, result.expected, ddof=1)
        assert result.statistic == pytest.approx(reference.statistic)
        assert result.p_value == pytest.approx(reference.pvalue)

    def test_expected_counts_sum_to_n(self):
        result = hardy_weinberg_test(40, 45, 15)
        assert result.expected.sum() == pytest.approx(100.0)
        assert result.n == 100

    def test_monomorphic_locus_is_degenerate(self):
        with pytest.raises(DegenerateDataError, match="monomorphic"):
            hardy_weinberg_test(25, 0, 0)

    def test_empty_is_degenerate(self):
        with pytest.raises(DegenerateDataError):
            hardy_weinberg_test(0, 0, 0)

    def test_negative_count_rejected(self):
        with pytest.raises(DataValidationError):
            hardy_weinberg_test(5, -1, 3)

    def test_from_counts_requires_three(self):
        with pytest.raises(DataValidationError):
            hardy_weinberg_from_counts([1, 2])

    def test_as_row(self):
        row = hardy_weinberg_from_counts([40, 45, 15]).as_row()
        assert row["obs_het"] == 45
        assert row["exp_common_hom"] == pytest.approx(0.625**2 * 100)
        assert row["rare_allele_freq"] == pytest.approx(0.375)
