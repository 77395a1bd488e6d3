"""Command‑line interface for the mortgage calculator.

This module uses the ``click`` library to implement a multi‑command interface.
Users can compute the monthly payment of a mortgage, view the first-year
breakdown or calculate the payments of every loan in a spreadsheet. Results
can be printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from .bulk import BulkInputError, process_file
from .data_models import BulkRow, LoanInput, MonthRow, RepaymentType
from .engine import InvalidInput, InvalidTerm, calculate, summarize
from .formatter import ERROR_MARKER, print_bulk_results, print_schedule, print_summary
from .utils import round2
from .validation import build_loan_input

TYPE_CHOICES = [member.value for member in RepaymentType]


def build_loan_from_options(amount: str, rate: str, years: str, loan_type: str) -> LoanInput:
    """Validate command-line values, reporting every bad option at once."""
    try:
        return build_loan_input(amount, rate, years, loan_type)
    except InvalidInput as exc:
        raise click.BadParameter(" ".join(exc.errors.values())) from exc


def _serialize_schedule(schedule: List[MonthRow]) -> List[Dict[str, Any]]:
    return [
        {
            "month": row.month,
            "principal": float(row.principal),
            "interest": float(row.interest),
            "balance": float(row.balance),
        }
        for row in schedule
    ]


def _serialize_bulk(rows: List[BulkRow]) -> List[Dict[str, Any]]:
    return [
        {
            "row": row.row_number,
            "amount": float(row.amount) if row.amount is not None else None,
            "rate": float(row.rate) if row.rate is not None else None,
            "years": row.years,
            "type": row.repayment_type,
            "monthly_payment": float(round2(row.monthly_payment)) if row.ok else None,
            "error": row.error,
        }
        for row in rows
    ]


def export_to_json(path: Path, data: Dict[str, Any]) -> None:
    """Export results to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_schedule_to_csv(path: Path, schedule: List[MonthRow]) -> None:
    """Export the first-year breakdown to a CSV file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["Month", "Principal", "Interest", "Balance"])
        for row in schedule:
            writer.writerow([row.month, row.principal, row.interest, row.balance])


def export_bulk_to_csv(path: Path, rows: List[BulkRow]) -> None:
    """Export bulk results to a CSV file, writing ``Error`` for failed rows."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["Row", "Amount", "Rate", "Years", "Type", "Monthly_Payment", "Error"])
        for row in rows:
            writer.writerow(
                [
                    row.row_number,
                    row.amount if row.amount is not None else "",
                    row.rate if row.rate is not None else "",
                    row.years if row.years is not None else "",
                    row.repayment_type,
                    round2(row.monthly_payment) if row.ok else ERROR_MARKER,
                    row.error or "",
                ]
            )


def loan_options(command):
    """Attach the options shared by the single-loan commands."""
    options = [
        click.option("--amount", "-a", "amount", required=True, help="Loan amount, e.g. 250000 or 250k"),
        click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)"),
        click.option("--years", "-y", "years", required=True, help="Loan term in years (1-60)"),
        click.option(
            "--type",
            "loan_type",
            type=click.Choice(TYPE_CHOICES, case_sensitive=False),
            default=RepaymentType.REPAYMENT.value,
            help="Repayment type",
        ),
    ]
    for option in reversed(options):
        command = option(command)
    return command


def _calculate(amount: str, rate: str, years: str, loan_type: str):
    loan = build_loan_from_options(amount, rate, years, loan_type)
    try:
        return calculate(loan)
    except InvalidTerm as exc:
        raise click.BadParameter(str(exc)) from exc


@click.group()
def cli() -> None:
    """A command‑line mortgage payment calculator."""
    pass


@cli.command()
@loan_options
def payment(amount: str, rate: str, years: str, loan_type: str) -> None:
    """Compute the monthly payment and whole-term totals."""
    result = _calculate(amount, rate, years, loan_type)
    print_summary(summarize(result))


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(amount: str, rate: str, years: str, loan_type: str, output: Optional[str]) -> None:
    """Compute and print the first-year breakdown."""
    result = _calculate(amount, rate, years, loan_type)
    summary = summarize(result)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, {"summary": summary, "schedule": _serialize_schedule(result.schedule)})
        elif path.suffix.lower() == ".csv":
            export_schedule_to_csv(path, result.schedule)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
    else:
        print_summary(summary)
        print_schedule(result.schedule)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def bulk(file: Path, output: Optional[str]) -> None:
    """Compute the monthly payment of every loan in an .xlsx or .csv FILE.

    The first row must hold the headers Amount, Rate, Years and optionally
    Type. Rows that cannot be calculated are reported as errors without
    stopping the others.
    """
    try:
        rows = process_file(file)
    except BulkInputError as exc:
        raise click.ClickException(str(exc)) from exc
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, {"rows": _serialize_bulk(rows)})
        elif path.suffix.lower() == ".csv":
            export_bulk_to_csv(path, rows)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Results exported to {path}")
    else:
        print_bulk_results(rows)
    failed = sum(1 for row in rows if not row.ok)
    if failed:
        click.echo(f"{failed} of {len(rows)} rows could not be calculated.", err=True)


if __name__ == "__main__":
    cli()
