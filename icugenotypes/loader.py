# File: icugenotypes/loader.py
# Location: icugenotypes/icugenotypes/loader.py
"""
Dataset loading and validation for the patient, control and expression tables.

Provides ``load_patients()``, ``load_controls()`` and ``load_expression()``,
which read a delimited or Excel table, check it against the configured
columns and locus levels, and return a typed DataFrame:

- outcome and locus columns become ordered ``pd.Categorical`` with the
  declared categories (so downstream crosstabs keep a fixed row order);
- continuous covariates become float64;
- binary covariates stay as strings with ``NA`` for missing values.

Missing values are permitted only in clinical covariates. A missing or
unexpected outcome/genotype value aborts loading with a DataValidationError
naming the offending rows.
"""

from __future__ import annotations

import csv
import logging
import os
from typing import Any

import numpy as np
import pandas as pd

from icugenotypes.exceptions import DataValidationError, InputFormatError

logger = logging.getLogger("icugenotypes")

_DEFAULT_MISSING = ["", "NA", "N/A", "na", ".", "-"]


def read_table(filepath: str, missing_values: list[str] | None = None) -> pd.DataFrame:
    """
    Read a tabular file into a DataFrame of strings.

    Parameters
    ----------
    filepath : str
        Path to a ``.xlsx``, ``.csv``, ``.tsv``/``.tab`` or other delimited
        text file. Delimiter is chosen from the extension with csv.Sniffer
        fallback.
    missing_values : list[str] | None
        Tokens converted to NA. None uses the package defaults.

    Returns
    -------
    pd.DataFrame
        One row per record; every value is a stripped string or NA.

    Raises
    ------
    FileNotFoundError
        If ``filepath`` does not exist.
    InputFormatError
        If the file is empty or cannot be parsed.
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Input table '{filepath}' not found.")
    if os.path.getsize(filepath) == 0:
        raise InputFormatError(filepath, "file is empty")

    na_tokens = list(missing_values) if missing_values is not None else _DEFAULT_MISSING
    ext = os.path.splitext(filepath)[1].lower()

    try:
        if ext in (".xlsx", ".xlsm"):
            df = pd.read_excel(filepath, dtype=str, engine="openpyxl")
        else:
            if ext in (".tsv", ".tab"):
                sep = "\t"
            elif ext == ".csv":
                sep = ","
            else:
                try:
                    with open(filepath, encoding="utf-8") as fh:
                        sample_text = fh.read(2048)
                    sep = csv.Sniffer().sniff(sample_text, delimiters=",\t;").delimiter
                except csv.Error:
                    sep = "\t"
            df = pd.read_csv(filepath, sep=sep, dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as e:
        raise InputFormatError(filepath, f"could not be parsed ({e})") from e

    if df.empty:
        raise InputFormatError(filepath, "no data rows")

    df.columns = [str(c).strip() for c in df.columns]
    df = df.apply(lambda col: col.str.strip() if pd.api.types.is_string_dtype(col) else col)
    df = df.replace({token: np.nan for token in na_tokens})

    logger.debug(f"Read {len(df)} rows x {len(df.columns)} columns from {filepath}")
    return df


def _require_columns(df: pd.DataFrame, columns: list[str], filepath: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise InputFormatError(
            filepath, f"missing required column(s) {missing}; found {list(df.columns)}"
        )


def _row_preview(index: pd.Index, limit: int = 10) -> str:
    rows = [str(i + 2) for i in list(index)[:limit]]  # +2: header line, 1-based
    suffix = f" ... and {len(index) - limit} more" if len(index) > limit else ""
    return ", ".join(rows) + suffix


def _as_categorical(
    df: pd.DataFrame, column: str, levels: list[str], filepath: str
) -> pd.Categorical:
    """Validate a never-missing categorical column against its declared levels."""
    values = df[column]
    missing = values.isna()
    if missing.any():
        raise DataValidationError(
            f"{filepath}: column '{column}' has missing values on line(s) "
            f"{_row_preview(values.index[missing])}",
            field=column,
        )

    unexpected = sorted(set(values) - set(levels))
    if unexpected:
        bad_rows = values.index[~values.isin(levels)]
        raise DataValidationError(
            f"{filepath}: column '{column}' has unexpected level(s) {unexpected} "
            f"on line(s) {_row_preview(bad_rows)}; expected one of {levels}",
            field=column,
        )

    return pd.Categorical(values, categories=levels, ordered=True)


def _as_numeric(df: pd.DataFrame, column: str, filepath: str) -> pd.Series:
    """Convert a column to float, aborting on non-numeric non-missing values."""
    converted = pd.to_numeric(df[column], errors="coerce")
    bad = converted.isna() & df[column].notna()
    if bad.any():
        examples = sorted(set(df.loc[bad, column]))[:5]
        raise DataValidationError(
            f"{filepath}: column '{column}' has non-numeric value(s) {examples} "
            f"on line(s) {_row_preview(df.index[bad])}",
            field=column,
        )
    return converted.astype(float)


def _apply_loci(df: pd.DataFrame, cfg: dict[str, Any], filepath: str) -> None:
    for locus in cfg["loci"]:
        levels = list(locus["levels"])
        if len(levels) != 3 or len(set(levels)) != 3:
            raise DataValidationError(
                f"Locus '{locus['name']}' must declare exactly three distinct levels, "
                f"got {levels}",
                field=locus["column"],
            )
        df[locus["column"]] = _as_categorical(df, locus["column"], levels, filepath)


def load_patients(filepath: str, cfg: dict[str, Any]) -> pd.DataFrame:
    """
    Load and validate the ICU patient table.

    Parameters
    ----------
    filepath : str
        Path to the patient table.
    cfg : dict
        Configuration from ``load_config()``.

    Returns
    -------
    pd.DataFrame
        Validated patient table indexed 0..n-1.

    Raises
    ------
    InputFormatError
        If required columns are absent.
    DataValidationError
        If outcome or genotype values are missing or unexpected, or a
        continuous covariate is non-numeric.
    """
    cols = cfg["patient_columns"]
    locus_columns = [locus["column"] for locus in cfg["loci"]]
    binary = list(cols.get("binary_covariates", []))
    continuous = list(cols.get("continuous_covariates", []))
    required = [cols["id"], cols["outcome"], *locus_columns, *binary, *continuous]
    if cols.get("age"):
        required.append(cols["age"])

    df = read_table(filepath, cfg.get("missing_values"))
    _require_columns(df, list(dict.fromkeys(required)), filepath)

    ids = df[cols["id"]]
    if ids.isna().any():
        raise DataValidationError(f"{filepath}: patient id column has missing values", cols["id"])
    duplicated = ids[ids.duplicated()]
    if not duplicated.empty:
        logger.warning(f"{filepath}: duplicated patient id(s) {sorted(set(duplicated))[:5]}")

    df[cols["outcome"]] = _as_categorical(
        df, cols["outcome"], list(cfg["outcome_levels"]), filepath
    )
    _apply_loci(df, cfg, filepath)

    numeric_columns = list(dict.fromkeys(continuous + ([cols["age"]] if cols.get("age") else [])))
    for column in numeric_columns:
        df[column] = _as_numeric(df, column, filepath)

    for column in binary:
        n_missing = int(df[column].isna().sum())
        if n_missing:
            logger.info(f"Covariate '{column}': {n_missing} missing value(s)")

    logger.info(f"Loaded {len(df)} patients from {filepath}")
    return df


def load_controls(filepath: str, cfg: dict[str, Any]) -> pd.DataFrame:
    """
    Load and validate the control table (identifier plus genotype columns).

    Raises
    ------
    InputFormatError
        If required columns are absent.
    DataValidationError
        If genotype values are missing or unexpected.
    """
    id_col = cfg["control_columns"]["id"]
    locus_columns = [locus["column"] for locus in cfg["loci"]]

    df = read_table(filepath, cfg.get("missing_values"))
    _require_columns(df, [id_col, *locus_columns], filepath)
    _apply_loci(df, cfg, filepath)

    logger.info(f"Loaded {len(df)} controls from {filepath}")
    return df


def load_expression(filepath: str, cfg: dict[str, Any]) -> pd.DataFrame:
    """
    Load the paired qPCR cycle threshold table.

    Rows with a missing Ct value are dropped with a warning. Ct values must
    be numeric and strictly positive.
    """
    expr = cfg["expression"]
    columns = [expr["id"], expr["target_ct"], expr["reference_ct"]]

    df = read_table(filepath, cfg.get("missing_values"))
    _require_columns(df, columns, filepath)
    df = df[columns].copy()

    for column in (expr["target_ct"], expr["reference_ct"]):
        df[column] = _as_numeric(df, column, filepath)

    incomplete = df[[expr["target_ct"], expr["reference_ct"]]].isna().any(axis=1)
    if incomplete.any():
        logger.warning(
            f"{filepath}: dropping {int(incomplete.sum())} row(s) with missing Ct values"
        )
        df = df[~incomplete]

    non_positive = (df[[expr["target_ct"], expr["reference_ct"]]] <= 0).any(axis=1)
    if non_positive.any():
        raise DataValidationError(
            f"{filepath}: Ct values must be positive (line(s) "
            f"{_row_preview(df.index[non_positive])})",
            field=expr["reference_ct"],
        )

    logger.info(f"Loaded {len(df)} expression measurements from {filepath}")
    return df.reset_index(drop=True)
