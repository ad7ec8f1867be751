"""End-to-end tests of the icugenotypes command-line interface."""

import json

import pandas as pd
import pytest

from icugenotypes.cli import create_parser, main


@pytest.mark.integration
class TestCli:
    def test_full_run(self, patients_csv, controls_csv, expression_csv, tmp_path):
        out_dir = tmp_path / "out"
        log_file = tmp_path / "logs" / "run.log"
        code = main(
            [
                "--patients",
                str(patients_csv),
                "--controls",
                str(controls_csv),
                "--expression",
                str(expression_csv),
                "--output-dir",
                str(out_dir),
                "--log-file",
                str(log_file),
                "--xlsx",
            ]
        )

        assert code == 0
        assert (out_dir / "report.html").exists()
        assert (out_dir / "tables.xlsx").exists()
        assert (out_dir / "figures" / "age_density.png").exists()
        assert (out_dir / "tables" / "expression_summary.tsv").exists()
        outcome = pd.read_csv(out_dir / "tables" / "outcome_association.tsv", sep="\t")
        assert outcome["locus"].tolist() == ["ACE", "ACE2", "TMPRSS2"]
        assert "Run started" in log_file.read_text()

    def test_no_plots_and_overrides(self, patients_csv, controls_csv, tmp_path):
        out_dir = tmp_path / "out"
        code = main(
            [
                "--patients",
                str(patients_csv),
                "--controls",
                str(controls_csv),
                "--output-dir",
                str(out_dir),
                "--no-plots",
                "--yates",
                "--correction-method",
                "fdr",
            ]
        )

        assert code == 0
        assert not (out_dir / "figures").exists()
        outcome = pd.read_csv(out_dir / "tables" / "outcome_association.tsv", sep="\t")
        assert outcome["yates"].all()

    def test_invalid_data_returns_1(self, tmp_path, patient_records, controls_csv):
        patient_records.loc[0, "ACE"] = "XX"
        bad = tmp_path / "bad.csv"
        patient_records.to_csv(bad, index=False)

        code = main(
            ["--patients", str(bad), "--controls", str(controls_csv), "-o", str(tmp_path / "o")]
        )
        assert code == 1

    def test_single_outcome_level_still_reports(self, patient_records, controls_csv, tmp_path):
        patient_records["death"] = "NO"
        survivors = tmp_path / "survivors.csv"
        patient_records.to_csv(survivors, index=False)
        out_dir = tmp_path / "out"

        code = main(
            ["--patients", str(survivors), "--controls", str(controls_csv), "-o", str(out_dir)]
        )

        assert code == 0
        assert (out_dir / "report.html").exists()
        assert (out_dir / "tables" / "outcome_association.tsv").exists()

    def test_missing_input_returns_1(self, tmp_path, controls_csv):
        code = main(
            [
                "--patients",
                str(tmp_path / "missing.csv"),
                "--controls",
                str(controls_csv),
                "-o",
                str(tmp_path),
            ]
        )
        assert code == 1

    def test_custom_config(self, patients_csv, controls_csv, cfg, tmp_path):
        cfg["loci"] = [locus for locus in cfg["loci"] if locus["name"] == "ACE"]
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps(cfg))
        out_dir = tmp_path / "out"

        code = main(
            [
                "--patients",
                str(patients_csv),
                "--controls",
                str(controls_csv),
                "--config",
                str(config_path),
                "--output-dir",
                str(out_dir),
                "--no-plots",
            ]
        )

        assert code == 0
        hwe = pd.read_csv(out_dir / "tables" / "hwe.tsv", sep="\t")
        assert set(hwe["locus"]) == {"ACE"}


@pytest.mark.integration
def test_parser_requires_inputs():
    with pytest.raises(SystemExit):
        create_parser().parse_args([])
