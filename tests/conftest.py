"""Shared pytest fixtures for all test modules."""

from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
import pytest

from icugenotypes.config import load_config
from icugenotypes.loader import load_controls, load_expression, load_patients


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single module")
    config.addinivalue_line("markers", "integration: end-to-end tests across modules")


# Genotype cycles per outcome group; every level occurs in both groups.
_ACE = {"NO": ["II", "ID", "ID", "DD"], "YES": ["ID", "DD", "DD", "II"]}
_ACE2 = {"NO": ["GG", "GA", "AA", "GG", "GA"], "YES": ["GA", "GG", "AA", "AA", "GG"]}
_TMPRSS2 = {"NO": ["GG", "GA", "GG", "AA"], "YES": ["GA", "AA", "AA", "GG"]}


def make_patient_rows(n_per_group: int = 20) -> List[Dict[str, str]]:
    """Deterministic raw patient records, as they would appear in a CSV file."""
    rows = []
    for offset, death in ((0, "NO"), (n_per_group, "YES")):
        for i in range(n_per_group):
            survivor = death == "NO"
            age = 45 + 1.5 * i + (i % 3) if survivor else 55 + 1.7 * i + (i % 4)
            rows.append(
                {
                    "patient_id": f"P{offset + i + 1:03d}",
                    "death": death,
                    "age": f"{age:.1f}",
                    "sex": "M" if i % 2 == 0 else "F",
                    "hypertension": (
                        "NA" if survivor and i == 7 else
                        "YES" if (i % 3 == 0 if survivor else i % 2 == 0) else "NO"
                    ),
                    "diabetes": "YES" if (i % 4 == 0 if survivor else i % 3 == 0) else "NO",
                    "obesity": "YES" if (i % 5 == 0 if survivor else i % 4 == 0) else "NO",
                    "smoking": "YES" if (i % 2 == 1 if survivor else i % 3 == 1) else "NO",
                    "copd": "YES" if (i % 6 == 0 if survivor else i % 5 == 0) else "NO",
                    "ACE": _ACE[death][i % 4],
                    "ACE2": _ACE2[death][i % 5],
                    "TMPRSS2": _TMPRSS2[death][i % 4],
                }
            )
    return rows


def make_control_rows(n: int = 30) -> List[Dict[str, str]]:
    return [
        {
            "control_id": f"C{j + 1:03d}",
            "ACE": ["II", "ID", "DD", "ID", "II"][j % 5],
            "ACE2": ["GG", "GA", "GG", "AA", "GA", "GG"][j % 6],
            "TMPRSS2": ["GG", "GA", "AA", "GA", "GG"][j % 5],
        }
        for j in range(n)
    ]


def make_expression_rows(n: int = 12) -> List[Dict[str, str]]:
    """Ct measurements for the first ``n`` patients (all survivors)."""
    rows = []
    for i in range(n):
        genotype = _TMPRSS2["NO"][i % 4]
        target = 26.0 + 0.3 * i + (1.5 if genotype == "AA" else 0.0)
        reference = 18.0 + 0.1 * (i % 3)
        rows.append(
            {
                "sample_id": f"P{i + 1:03d}",
                "ct_target": f"{target:.2f}",
                "ct_reference": f"{reference:.2f}",
            }
        )
    return rows


@pytest.fixture
def cfg() -> Dict[str, Any]:
    """Fresh copy of the packaged configuration."""
    return load_config()


@pytest.fixture
def patient_records() -> pd.DataFrame:
    """Raw (string) patient table; tests may corrupt it before writing."""
    return pd.DataFrame(make_patient_rows())


@pytest.fixture
def control_records() -> pd.DataFrame:
    return pd.DataFrame(make_control_rows())


@pytest.fixture
def patients_csv(tmp_path: Path, patient_records: pd.DataFrame) -> Path:
    path = tmp_path / "patients.csv"
    patient_records.to_csv(path, index=False)
    return path


@pytest.fixture
def controls_csv(tmp_path: Path, control_records: pd.DataFrame) -> Path:
    path = tmp_path / "controls.csv"
    control_records.to_csv(path, index=False)
    return path


@pytest.fixture
def expression_csv(tmp_path: Path) -> Path:
    path = tmp_path / "expression.csv"
    pd.DataFrame(make_expression_rows()).to_csv(path, index=False)
    return path


@pytest.fixture
def patients(patients_csv: Path, cfg: Dict[str, Any]) -> pd.DataFrame:
    return load_patients(str(patients_csv), cfg)


@pytest.fixture
def controls(controls_csv: Path, cfg: Dict[str, Any]) -> pd.DataFrame:
    return load_controls(str(controls_csv), cfg)


@pytest.fixture
def expression(expression_csv: Path, cfg: Dict[str, Any]) -> pd.DataFrame:
    return load_expression(str(expression_csv), cfg)
