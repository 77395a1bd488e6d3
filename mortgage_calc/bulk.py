"""Bulk calculation of monthly payments from a spreadsheet.

A bulk file is either an Excel workbook (``.xlsx``, read with ``openpyxl``;
only the first worksheet is used) or a CSV file. Legacy ``.xls`` workbooks
are rejected with a message asking for one of those formats. The first row holds the
column headers ``Amount``, ``Rate``, ``Years`` and optionally ``Type``
(matched case-insensitively); every following row is one loan. ``Type``
defaults to ``repayment``.

Each row is validated and calculated on its own: a row that cannot be parsed
or is out of range is reported with an error and does not stop the remaining
rows from being calculated. Only a file that cannot be read at all, or that
lacks one of the required columns, fails the whole batch.
"""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from decimal import Decimal
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Optional, Sequence, Union

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .data_models import BulkRow, RepaymentType
from .engine import MAX_AMOUNT, CalculationError, compute_monthly_payment
from .utils import to_decimal, to_whole_number
from .validation import build_loan_input

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("amount", "rate", "years")
OPTIONAL_COLUMNS = ("type",)
WORKBOOK_SUFFIXES = (".xlsx", ".xlsm")
CSV_SUFFIXES = (".csv",)
LEGACY_WORKBOOK_SUFFIXES = (".xls",)

Source = Union[str, Path, BinaryIO]


class BulkInputError(CalculationError):
    """The uploaded file cannot be read as a bulk calculation input."""


def _read_bytes(source: Source) -> bytes:
    if hasattr(source, "read"):
        data = source.read()
        return data.encode("utf-8") if isinstance(data, str) else data
    try:
        return Path(source).read_bytes()
    except OSError as exc:
        raise BulkInputError(f"Cannot read {source}: {exc}") from exc


def _workbook_rows(data: bytes) -> List[Sequence[object]]:
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise BulkInputError(f"Not a valid Excel workbook: {exc}") from exc
    try:
        if not workbook.worksheets:
            return []
        return [tuple(row) for row in workbook.worksheets[0].iter_rows(values_only=True)]
    finally:
        workbook.close()


def _csv_rows(data: bytes) -> List[Sequence[object]]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise BulkInputError("CSV files must be UTF-8 encoded") from exc
    return [tuple(row) for row in csv.reader(io.StringIO(text))]


def _is_blank(row: Sequence[object]) -> bool:
    return all(cell is None or str(cell).strip() == "" for cell in row)


def _records(rows: List[Sequence[object]]) -> List[Dict[str, object]]:
    """Map data rows to dicts keyed by lower-case column name."""
    rows = [row for row in rows if not _is_blank(row)]
    if not rows:
        raise BulkInputError("The file has no header row")
    header = [str(cell).strip().lower() if cell is not None else "" for cell in rows[0]]
    missing = [name for name in REQUIRED_COLUMNS if name not in header]
    if missing:
        raise BulkInputError(
            "Missing required columns: " + ", ".join(name.capitalize() for name in missing)
        )
    positions = {name: header.index(name) for name in REQUIRED_COLUMNS + OPTIONAL_COLUMNS if name in header}
    records: List[Dict[str, object]] = []
    for row in rows[1:]:
        records.append(
            {name: row[index] if index < len(row) else None for name, index in positions.items()}
        )
    return records


def read_loan_records(source: Source, filename: Optional[str] = None) -> List[Dict[str, object]]:
    """Read the loan rows of a workbook or CSV file.

    Parameters
    ----------
    source:
        A path or a binary file object (such as an uploaded file's stream).
    filename:
        The name used to pick the format when ``source`` is a file object.

    Raises
    ------
    BulkInputError
        If the format is unsupported, the file is unreadable or a required
        column is missing.
    """
    name = filename or (str(source) if isinstance(source, (str, Path)) else "")
    suffix = Path(name).suffix.lower()
    if suffix in WORKBOOK_SUFFIXES:
        reader = _workbook_rows
    elif suffix in CSV_SUFFIXES:
        reader = _csv_rows
    elif suffix in LEGACY_WORKBOOK_SUFFIXES:
        raise BulkInputError("Legacy .xls workbooks are not supported; save the file as .xlsx or .csv")
    else:
        raise BulkInputError(f"Unsupported file type: {name or 'unknown'}; use .xlsx or .csv")
    return _records(reader(_read_bytes(source)))


def _displayable_amount(value: object) -> Optional[Decimal]:
    amount = to_decimal(value)
    if amount is None or abs(amount) > MAX_AMOUNT:
        return None
    return amount


def _type_label(value: object) -> str:
    label = str(value).strip().lower() if value is not None else ""
    return label or RepaymentType.REPAYMENT.value


def calculate_record(row_number: int, record: Dict[str, object]) -> BulkRow:
    """Calculate the monthly payment of one record, capturing any failure."""
    repayment_type = _type_label(record.get("type"))
    row = BulkRow(
        row_number=row_number,
        amount=_displayable_amount(record.get("amount")),
        rate=to_decimal(record.get("rate")),
        years=to_whole_number(record.get("years")),
        repayment_type=repayment_type,
    )
    try:
        loan = build_loan_input(record.get("amount"), record.get("rate"), record.get("years"), repayment_type)
        row.monthly_payment = compute_monthly_payment(loan)
    except CalculationError as exc:
        logger.warning("Bulk row %d failed: %s", row_number, exc)
        row.error = str(exc)
    return row


def calculate_bulk(records: Iterable[Dict[str, object]]) -> List[BulkRow]:
    """Calculate every record, numbering rows from 1."""
    return [calculate_record(number, record) for number, record in enumerate(records, start=1)]


def process_file(source: Source, filename: Optional[str] = None) -> List[BulkRow]:
    """Read a bulk file and calculate each of its rows."""
    results = calculate_bulk(read_loan_records(source, filename))
    failed = sum(1 for row in results if not row.ok)
    logger.info("Bulk calculation: %d rows, %d failed", len(results), failed)
    return results
