"""Output helpers for the mortgage calculator.

This module renders currency amounts the way the calculator displays them
(pounds sterling, two decimal places, thousands separators) and prints
summaries, first-year breakdowns and bulk results as simple text tables using
``click.echo``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, Union

import click

from .data_models import BulkRow, MonthRow
from .utils import round2

CURRENCY_SYMBOL = "£"
ERROR_MARKER = "Error"
MISSING_MARKER = "-"


def money(value: Union[Decimal, float, int]) -> str:
    """Format an amount as pounds sterling, e.g. ``£1,169.18``."""
    amount = round2(Decimal(str(value)))
    sign = "-" if amount < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(amount):,.2f}"


def print_summary(summary: Dict[str, object]) -> None:
    """Print the monthly payment and whole-term totals."""
    interest_only = summary["repayment_type"] == "interest-only"
    click.echo("Summary")
    click.echo("-" * 56)
    click.echo(f"Loan amount        : {money(summary['amount'])}")
    click.echo(f"Interest rate      : {summary['rate']:.2f}%")
    click.echo(f"Term               : {summary['years']} years ({summary['term_months']} months)")
    click.echo(f"Repayment type     : {summary['repayment_type']}")
    click.echo(f"Monthly payment    : {money(summary['monthly_payment'])}")
    click.echo(f"Total interest     : {money(summary['total_interest'])}")
    click.echo(f"Total payable      : {money(summary['total_payable'])}")
    if interest_only:
        # The payments never touch the principal.
        click.echo(f"Due at end of term : {money(summary['amount'])}")
    click.echo("-" * 56)


def print_schedule(schedule: Iterable[MonthRow]) -> None:
    """Print the first-year breakdown as a tab separated table."""
    click.echo("\t".join(["Month", "Principal", "Interest", "Balance"]))
    for row in schedule:
        click.echo(
            "\t".join([str(row.month), money(row.principal), money(row.interest), money(row.balance)])
        )


def print_bulk_results(rows: Iterable[BulkRow]) -> None:
    """Print bulk results; rows that failed show ``Error`` as their payment."""
    click.echo("\t".join(["Row", "Amount", "Rate", "Years", "Type", "Monthly"]))
    for row in rows:
        click.echo(
            "\t".join(
                [
                    str(row.row_number),
                    money(row.amount) if row.amount is not None else MISSING_MARKER,
                    f"{row.rate:.2f}" if row.rate is not None else MISSING_MARKER,
                    str(row.years) if row.years is not None else MISSING_MARKER,
                    row.repayment_type,
                    money(row.monthly_payment) if row.ok else ERROR_MARKER,
                ]
            )
        )
