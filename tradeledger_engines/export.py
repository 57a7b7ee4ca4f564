"""
Ledger export -- flatten a Ledger into delimited text.

Layout::

    {account name} - Customer Ledger
    Generated: October 18, 2026

    Serial,Date,Description,Invoice#,Debit,Credit,Balance,Remark
    1,01/01/24,Invoice Created,SO-1001,1000.00,,1000.00,Open
    ...

    Total Debit,,,,1000.00
    Total Credit,,,,,300.00
    Balance Due,,,,,,700.00

Rendered (filtered) entries become rows; the trailing totals always come from
the unfiltered ledger.  Zero debit or credit cells are left empty.
"""

from __future__ import annotations

import csv
import io
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from tradeledger_engines.ledger import Ledger

EXPORT_COLUMNS = ("Serial", "Date", "Description", "Invoice#", "Debit", "Credit", "Balance", "Remark")

_CENTS = Decimal("0.01")


def _amount(value: Decimal) -> str:
    return str(value.quantize(_CENTS, rounding=ROUND_HALF_UP))


def _optional_amount(value: Decimal) -> str:
    return _amount(value) if value else ""


def _generated_label(generated_at: datetime) -> str:
    return f"Generated: {generated_at:%B} {generated_at.day}, {generated_at.year}"


def export_ledger(
    ledger: Ledger,
    account_name: str,
    generated_at: datetime,
    ledger_title: str = "Customer Ledger",
) -> str:
    """Render the ledger as CSV text (UTF-8 safe, ``\\n`` line endings)."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    writer.writerow([f"{account_name} - {ledger_title}"])
    writer.writerow([_generated_label(generated_at)])
    writer.writerow([])
    writer.writerow(EXPORT_COLUMNS)

    for entry in ledger.entries:
        writer.writerow([
            entry.serial,
            entry.date.strftime("%m/%d/%y"),
            entry.description,
            entry.reference,
            _optional_amount(entry.debit),
            _optional_amount(entry.credit),
            _amount(entry.running_balance),
            entry.remark or "",
        ])

    writer.writerow([])
    totals = ledger.totals
    writer.writerow(["Total Debit", "", "", "", _amount(totals.total_debit)])
    writer.writerow(["Total Credit", "", "", "", "", _amount(totals.total_credit)])
    writer.writerow(["Balance Due", "", "", "", "", "", _amount(totals.balance)])
    return buffer.getvalue()


def export_filename(account_name: str, generated_at: datetime) -> str:
    """Download name for an exported ledger."""
    safe = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in account_name.strip())
    return f"{safe or 'account'}_Ledger_{generated_at:%Y%m%d}.csv"
