"""Statement file loading helpers."""

from __future__ import annotations

import os

import pandas as pd

TEXT_EXTENSIONS = {".csv", ".txt", ".tsv"}
EXCEL_EXTENSIONS = {".xlsx", ".xls"}
TEXT_ENCODINGS = ("utf-8-sig", "cp1252")


def load_statement_text(file_path: str) -> str:
    """Return statement text for delimited/plain files or a flattened Excel sheet."""
    absolute_path = file_path if os.path.isabs(file_path) else os.path.abspath(file_path)
    ext = os.path.splitext(absolute_path)[1].lower()
    if ext in TEXT_EXTENSIONS:
        with open(absolute_path, "rb") as handle:
            raw = handle.read()
        for encoding in TEXT_ENCODINGS:
            try:
                return raw.decode(encoding)
            except UnicodeDecodeError:
                continue
        return raw.decode("latin-1")
    if ext in EXCEL_EXTENSIONS:
        frame = pd.read_excel(absolute_path, sheet_name=0, header=None, dtype=str)
        return frame.fillna("").to_csv(index=False, header=False, sep=";")
    if ext == ".pdf":
        raise ValueError("PDF statements must be converted to text before analysis.")
    raise ValueError("Statement input must be .csv, .txt, .tsv, .xlsx or .xls.")
