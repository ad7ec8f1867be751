"""
Tests for loading and validating the patient, control and expression tables.
"""

import pandas as pd
import pytest

from icugenotypes.exceptions import DataValidationError, InputFormatError
from icugenotypes.loader import load_controls, load_expression, load_patients, read_table


@pytest.mark.unit
class TestReadTable:
    def test_csv_strips_and_marks_missing(self, tmp_path):
        path = tmp_path / "t.csv"
        path.write_text("id, value \n a , 1\nb,NA\nc,.\n")
        df = read_table(str(path))

        assert list(df.columns) == ["id", "value"]
        assert df["id"].tolist() == ["a", "b", "c"]
        assert df["value"].isna().tolist() == [False, True, True]

    def test_tsv_by_extension(self, tmp_path):
        path = tmp_path / "t.tsv"
        path.write_text("id\tvalue\nx\t2\n")
        assert read_table(str(path))["value"].tolist() == ["2"]

    def test_sniffed_semicolon_delimiter(self, tmp_path):
        path = tmp_path / "t.txt"
        path.write_text("id;value\nx;2\ny;3\n")
        df = read_table(str(path))
        assert list(df.columns) == ["id", "value"]

    def test_custom_missing_tokens(self, tmp_path):
        path = tmp_path / "t.csv"
        path.write_text("id,value\na,unknown\nb,NA\n")
        df = read_table(str(path), missing_values=["unknown"])
        assert df["value"].isna().tolist() == [True, False]

    def test_xlsx(self, tmp_path):
        path = tmp_path / "t.xlsx"
        pd.DataFrame({"id": ["a", "b"], "value": ["1", "NA"]}).to_excel(path, index=False)
        df = read_table(str(path))
        assert df["value"].isna().tolist() == [False, True]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_table(str(tmp_path / "nope.csv"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(InputFormatError, match="empty"):
            read_table(str(path))

    def test_header_only(self, tmp_path):
        path = tmp_path / "header.csv"
        path.write_text("id,value\n")
        with pytest.raises(InputFormatError, match="no data rows"):
            read_table(str(path))


@pytest.mark.unit
class TestLoadPatients:
    def test_types(self, patients, cfg):
        assert len(patients) == 40
        assert isinstance(patients["death"].dtype, pd.CategoricalDtype)
        assert list(patients["death"].cat.categories) == ["NO", "YES"]
        assert list(patients["ACE"].cat.categories) == ["II", "ID", "DD"]
        assert list(patients["TMPRSS2"].cat.categories) == ["GG", "GA", "AA"]
        assert patients["age"].dtype == float

    def test_missing_covariate_allowed(self, patients):
        assert patients["hypertension"].isna().sum() == 1

    def test_missing_outcome_is_fatal(self, tmp_path, patient_records, cfg):
        patient_records.loc[3, "death"] = ""
        path = tmp_path / "p.csv"
        patient_records.to_csv(path, index=False)

        with pytest.raises(DataValidationError, match="missing values on line"):
            load_patients(str(path), cfg)

    def test_unexpected_genotype_reports_line(self, tmp_path, patient_records, cfg):
        patient_records.loc[4, "ACE"] = "DI"
        path = tmp_path / "p.csv"
        patient_records.to_csv(path, index=False)

        with pytest.raises(DataValidationError) as exc_info:
            load_patients(str(path), cfg)
        assert "DI" in str(exc_info.value)
        assert "line(s) 6" in str(exc_info.value)
        assert exc_info.value.field == "ACE"

    def test_missing_column(self, tmp_path, patient_records, cfg):
        path = tmp_path / "p.csv"
        patient_records.drop(columns=["ACE2"]).to_csv(path, index=False)

        with pytest.raises(InputFormatError, match="ACE2"):
            load_patients(str(path), cfg)

    def test_non_numeric_age(self, tmp_path, patient_records, cfg):
        patient_records.loc[0, "age"] = "sixty"
        path = tmp_path / "p.csv"
        patient_records.to_csv(path, index=False)

        with pytest.raises(DataValidationError, match="non-numeric"):
            load_patients(str(path), cfg)

    def test_malformed_locus_levels(self, patients_csv, cfg):
        cfg["loci"][0]["levels"] = ["II", "DD"]
        with pytest.raises(DataValidationError, match="three distinct levels"):
            load_patients(str(patients_csv), cfg)


@pytest.mark.unit
class TestLoadControls:
    def test_loads_genotypes(self, controls):
        assert len(controls) == 30
        assert list(controls["ACE"].cat.categories) == ["II", "ID", "DD"]

    def test_missing_genotype_is_fatal(self, tmp_path, control_records, cfg):
        control_records.loc[0, "TMPRSS2"] = "NA"
        path = tmp_path / "c.csv"
        control_records.to_csv(path, index=False)

        with pytest.raises(DataValidationError, match="TMPRSS2"):
            load_controls(str(path), cfg)


@pytest.mark.unit
class TestLoadExpression:
    def test_loads_ct_values(self, expression):
        assert len(expression) == 12
        assert expression["ct_target"].dtype == float

    def test_drops_rows_with_missing_ct(self, tmp_path, cfg):
        path = tmp_path / "e.csv"
        path.write_text("sample_id,ct_target,ct_reference\nP001,25.1,18.0\nP002,NA,18.2\n")
        df = load_expression(str(path), cfg)
        assert df["sample_id"].tolist() == ["P001"]

    def test_non_positive_ct_is_fatal(self, tmp_path, cfg):
        path = tmp_path / "e.csv"
        path.write_text("sample_id,ct_target,ct_reference\nP001,25.1,0\n")
        with pytest.raises(DataValidationError, match="positive"):
            load_expression(str(path), cfg)
