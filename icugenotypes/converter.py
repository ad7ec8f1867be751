# File: icugenotypes/converter.py
# Location: icugenotypes/icugenotypes/converter.py

"""
Table export module.

Writes the tables of a StudyResults as one TSV file per table, and as a
single XLSX workbook with one sheet per table.
"""

import logging
import os
import re
from typing import TYPE_CHECKING, Dict, List

import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils import get_column_letter

if TYPE_CHECKING:
    from icugenotypes.analysis import StudyResults

logger = logging.getLogger("icugenotypes")

# Excel limits sheet titles to 31 characters and forbids []:*?/\
_SHEET_NAME_MAX = 31
_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")


def sheet_name(name: str, taken: List[str]) -> str:
    """Return a valid, unique Excel sheet title for ``name``."""
    base = _INVALID_SHEET_CHARS.sub("_", name)[:_SHEET_NAME_MAX]
    candidate = base
    suffix = 1
    while candidate.lower() in (t.lower() for t in taken):
        tag = f"_{suffix}"
        candidate = base[: _SHEET_NAME_MAX - len(tag)] + tag
        suffix += 1
    return candidate


def write_tables_tsv(results: "StudyResults", output_dir: str) -> Dict[str, str]:
    """
    Write every table to ``<output_dir>/<name>.tsv``.

    Returns
    -------
    dict
        Table name to written file path.
    """
    os.makedirs(output_dir, exist_ok=True)
    written = {}
    for name, df in results.tables().items():
        path = os.path.join(output_dir, f"{name}.tsv")
        df.to_csv(path, sep="\t", index=False, na_rep="NA")
        written[name] = path
    logger.info(f"Wrote {len(written)} TSV tables to {output_dir}")
    return written


def write_tables_xlsx(results: "StudyResults", xlsx_file: str) -> str:
    """
    Write every table to one sheet of an XLSX workbook, then format it.

    Parameters
    ----------
    results : StudyResults
        Output of ``run_study()``.
    xlsx_file : str
        Destination path.

    Returns
    -------
    str
        The path to the generated XLSX file.
    """
    taken: List[str] = []
    with pd.ExcelWriter(xlsx_file, engine="openpyxl") as writer:
        for name, df in results.tables().items():
            title = sheet_name(name, taken)
            taken.append(title)
            if df.empty:
                logger.debug(f"Table '{name}' is empty; writing header-only sheet")
            df.to_excel(writer, sheet_name=title, index=False)

    finalize_excel_file(xlsx_file)
    logger.info(f"Wrote {len(taken)} sheets to {xlsx_file}")
    return xlsx_file


def finalize_excel_file(xlsx_file: str) -> None:
    """
    Apply final formatting to all sheets in xlsx_file.

    - Freeze the top row
    - Enable auto-filter on the header
    - Widen columns to fit their header
    """
    wb = load_workbook(xlsx_file)
    for ws in wb.worksheets:
        ws.freeze_panes = "A2"
        if ws.max_column < 1 or ws.max_row < 1:
            continue
        max_col_letter = get_column_letter(ws.max_column)
        ws.auto_filter.ref = f"A1:{max_col_letter}1"

        header_row = next(ws.iter_rows(min_row=1, max_row=1, values_only=True), ())
        for idx, col_name in enumerate(header_row, 1):  # 1-indexed for openpyxl
            width = max(10, len(str(col_name or "")) + 2)
            ws.column_dimensions[get_column_letter(idx)].width = width
    wb.save(xlsx_file)
