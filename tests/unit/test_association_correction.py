"""
Unit tests for multiple testing correction across loci.

apply_correction() must match direct statsmodels multipletests() calls and
pass NaN p-values (tests that could not be run) through unchanged.
"""

from __future__ import annotations

import numpy as np
import pytest
import statsmodels.stats.multitest as smm

from icugenotypes.association.correction import apply_correction


@pytest.mark.unit
class TestApplyCorrection:
    def test_bonferroni_matches_statsmodels(self):
        pvals = [0.01, 0.04, 0.30]
        expected = smm.multipletests(pvals, method="bonferroni")[1]
        np.testing.assert_array_equal(apply_correction(pvals), expected)

    def test_bonferroni_multiplies_by_number_of_tests(self):
        np.testing.assert_allclose(apply_correction([0.01, 0.02, 0.5]), [0.03, 0.06, 1.0])

    def test_fdr_matches_statsmodels_bh(self):
        pvals = [0.001, 0.02, 0.03, 0.2]
        expected = smm.multipletests(pvals, method="fdr_bh")[1]
        np.testing.assert_array_equal(apply_correction(pvals, method="fdr"), expected)

    def test_nan_passed_through_and_not_counted(self):
        corrected = apply_correction([0.01, np.nan, 0.02])
        assert np.isnan(corrected[1])
        np.testing.assert_allclose(corrected[[0, 2]], [0.02, 0.04])

    def test_all_nan(self):
        assert np.isnan(apply_correction([np.nan, np.nan])).all()

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown correction method"):
            apply_correction([0.1], method="holm")
