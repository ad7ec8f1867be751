"""
Unit tests for univariate logistic regression of the outcome on a covariate.

Estimates are compared with a direct statsmodels Logit fit; separation and
degenerate covariates are checked for the documented reporting behaviour.
"""

from __future__ import annotations

import math

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm

from icugenotypes.clinical.logistic import (
    encode_covariate,
    logistic_screen,
    univariate_logistic,
)
from icugenotypes.exceptions import DataValidationError, DegenerateDataError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _cohort() -> pd.DataFrame:
    rng = np.random.default_rng(2024)
    n = 120
    age = rng.normal(62, 12, size=n).round(1)
    smoker = rng.choice(["YES", "NO"], size=n)
    logit = -6.0 + 0.09 * age + 0.6 * (smoker == "YES")
    death = np.where(rng.uniform(size=n) < 1 / (1 + np.exp(-logit)), "YES", "NO")
    return pd.DataFrame({"death": death, "age": age, "smoking": smoker})


# ---------------------------------------------------------------------------
# encode_covariate
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestEncodeCovariate:
    def test_numeric_passes_through(self):
        encoded, term, ref = encode_covariate(pd.Series([1.0, 2.5], name="age"))
        assert encoded.tolist() == [1.0, 2.5]
        assert term == "age"
        assert ref is None

    def test_binary_indicator_against_reference(self):
        values = pd.Series(["NO", "YES", None, "YES"], name="copd")
        encoded, term, ref = encode_covariate(values, reference="NO")
        assert encoded.tolist()[:2] == [0.0, 1.0]
        assert math.isnan(encoded.tolist()[2])
        assert term == "copd[YES]"
        assert ref == "NO"

    def test_default_reference_is_first_sorted(self):
        _, term, ref = encode_covariate(pd.Series(["M", "F", "M"], name="sex"))
        assert ref == "F"
        assert term == "sex[M]"

    def test_single_level_is_degenerate(self):
        with pytest.raises(DegenerateDataError):
            encode_covariate(pd.Series(["NO", "NO"], name="copd"))

    def test_multi_level_rejected(self):
        with pytest.raises(DataValidationError, match="3 levels"):
            encode_covariate(pd.Series(["a", "b", "c"], name="stage"))

    def test_unobserved_reference(self):
        with pytest.raises(DataValidationError, match="not observed"):
            encode_covariate(pd.Series(["YES", "NO"], name="copd"), reference="MAYBE")


# ---------------------------------------------------------------------------
# univariate_logistic
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestUnivariateLogistic:
    def test_matches_statsmodels_logit(self):
        data = _cohort()
        result = univariate_logistic(data, "death", "age", event_level="YES")

        y = (data["death"] == "YES").astype(float).to_numpy()
        fit = sm.Logit(y, sm.add_constant(data["age"].to_numpy())).fit(disp=False)
        ci = fit.conf_int(alpha=0.05)

        assert result.converged is True
        assert result.coef == pytest.approx(fit.params[1], rel=1e-6)
        assert result.odds_ratio == pytest.approx(math.exp(fit.params[1]), rel=1e-6)
        assert result.ci_lower == pytest.approx(math.exp(ci[1, 0]), rel=1e-6)
        assert result.ci_upper == pytest.approx(math.exp(ci[1, 1]), rel=1e-6)
        assert result.p_value == pytest.approx(fit.pvalues[1], rel=1e-6)
        assert result.n == 120
        assert result.ci_method == "wald"

    def test_binary_covariate_with_reference(self):
        data = _cohort()
        result = univariate_logistic(data, "death", "smoking", event_level="YES", reference="NO")
        assert result.term == "smoking[YES]"
        assert result.reference == "NO"
        assert result.ci_lower < result.odds_ratio < result.ci_upper

    def test_profile_interval_contains_estimate(self):
        data = _cohort()
        wald = univariate_logistic(data, "death", "age", event_level="YES")
        profile = univariate_logistic(data, "death", "age", event_level="YES", ci_method="profile")

        assert profile.ci_method == "profile"
        assert profile.odds_ratio == pytest.approx(wald.odds_ratio)
        assert profile.ci_lower < profile.odds_ratio < profile.ci_upper
        # large sample: profile and Wald bounds are close
        assert profile.ci_lower == pytest.approx(wald.ci_lower, rel=0.05)
        assert profile.ci_upper == pytest.approx(wald.ci_upper, rel=0.05)

    def test_missing_covariate_rows_dropped(self):
        data = _cohort()
        data.loc[:4, "age"] = np.nan
        result = univariate_logistic(data, "death", "age", event_level="YES")
        assert result.n == 115
        assert result.n_missing == 5
        assert "MISSING_COVARIATE" in result.warnings

    def test_separation_reported_not_raised(self):
        data = pd.DataFrame(
            {
                "death": ["NO"] * 6 + ["YES"] * 6,
                "age": [40.0, 42.0, 44.0, 46.0, 48.0, 50.0, 60.0, 62.0, 64.0, 66.0, 68.0, 70.0],
            }
        )
        result = univariate_logistic(data, "death", "age", event_level="YES")
        assert result.converged is False
        assert math.isnan(result.odds_ratio)
        assert "NON_CONVERGENCE" in result.warnings

    def test_constant_outcome_is_degenerate(self):
        data = pd.DataFrame({"death": ["NO"] * 5, "age": [1.0, 2.0, 3.0, 4.0, 5.0]})
        with pytest.raises(DegenerateDataError):
            univariate_logistic(data, "death", "age", event_level="YES")

    def test_invalid_ci_method(self):
        with pytest.raises(ValueError):
            univariate_logistic(_cohort(), "death", "age", event_level="YES", ci_method="score")


@pytest.mark.unit
class TestLogisticScreen:
    def test_one_row_per_covariate(self, patients, cfg):
        covariates = ["age"] + cfg["patient_columns"]["binary_covariates"]
        table = logistic_screen(
            patients,
            "death",
            covariates,
            event_level="YES",
            references=cfg["covariate_reference_levels"],
        )
        assert table["covariate"].tolist() == covariates
        assert table.loc[table["covariate"] == "sex", "term"].item() == "sex[M]"
        assert table.loc[table["covariate"] == "hypertension", "n_missing"].item() == 1

    def test_degenerate_covariate_becomes_row(self):
        data = _cohort()
        data["ventilated"] = "YES"
        table = logistic_screen(data, "death", ["age", "ventilated"], event_level="YES")
        row = table[table["covariate"] == "ventilated"].iloc[0]
        assert not row["converged"]
        assert row["warnings"].startswith("DEGENERATE")
        assert math.isnan(row["odds_ratio"])
