"""
Ledger builder -- chronological account statement with a running balance.

Responsibility:
    Merge an account's invoices (debits) and payments (credits) into one
    stream ordered by date, number the entries, accumulate the running
    balance, compute totals, and apply the display filters.

Architecture position:
    Engines -- pure calculation, zero I/O.

Invariants enforced:
    - Ordering: stable sort by date over "invoices in fetch order, then
      payments in fetch order", so same-date ties keep fetch order and an
      invoice precedes a payment dated identically.
    - running_balance of entry n = sum(debit - credit) over entries 1..n in
      stream order.  With date as the only ordering key, same-date entries
      processed in fetch order still give a consistent final balance.
    - Serial numbers are assigned over the full stream and survive
      filtering.
    - Totals are always computed over the unfiltered stream; filters only
      select which entries are rendered.

Failure modes:
    - ValueError if date_from is after date_to.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from tradeledger_engines.tracer import traced_engine
from tradeledger_kernel.logging_config import get_logger

logger = get_logger("engines.ledger")

INVOICE_DESCRIPTION = "Invoice Created"
REMARK_OPEN = "Open"
REMARK_CLOSED = "Closed"
GENERAL_REFERENCE = "General"


class StatusFilter(str, Enum):
    """Display lens over ledger entries."""

    ALL = "all"
    OPEN = "open"  # hides closed invoices, keeps payments
    CLOSED = "closed"  # closed invoices only


class EntryType(str, Enum):
    INVOICE = "invoice"
    PAYMENT = "payment"


@dataclass(frozen=True)
class LedgerInvoice:
    """Debit source: one non-cancelled invoice."""

    invoice_id: UUID
    number: str
    date: datetime
    amount: Decimal
    currency: str
    status: str


@dataclass(frozen=True)
class LedgerPayment:
    """Credit source: one non-void payment and the invoices it paid."""

    payment_id: UUID
    date: datetime
    amount: Decimal
    currency: str
    payment_method: str
    reference_number: str | None = None
    invoice_numbers: tuple[str, ...] = ()


@dataclass(frozen=True)
class LedgerEntry:
    serial: int
    date: datetime
    entry_type: EntryType
    source_id: UUID
    description: str
    reference: str
    debit: Decimal
    credit: Decimal
    running_balance: Decimal
    remark: str
    currency: str


@dataclass(frozen=True)
class LedgerTotals:
    """Ground-truth totals over the unfiltered stream."""

    total_debit: Decimal
    total_credit: Decimal
    balance: Decimal
    open_invoice_count: int


@dataclass(frozen=True)
class Ledger:
    entries: tuple[LedgerEntry, ...]
    totals: LedgerTotals
    all_entries: tuple[LedgerEntry, ...] = field(default=(), repr=False)
    currencies: frozenset[str] = frozenset()

    @property
    def final_running_balance(self) -> Decimal:
        """Running balance after the last entry of the unfiltered stream."""
        if not self.all_entries:
            return Decimal("0")
        return self.all_entries[-1].running_balance


def _entry_day(entry: LedgerEntry) -> date:
    return entry.date.date()


class LedgerBuilder:
    """
    Builds a Ledger from invoice and payment facts.

    Contract:
        ``closed_statuses`` decides the Open/Closed remark (and so the status
        filter); ``settled_statuses`` decides which invoices leave the open
        invoice count.  The two differ by default: a ``completed`` order
        still reads "Open" but is no longer counted.
        ``payment_description`` labels credit entries ("Payment Received"
        for customers, "Payment Sent" for suppliers).
    """

    def __init__(
        self,
        closed_statuses: Sequence[str] = ("delivered",),
        payment_description: str = "Payment Received",
        settled_statuses: Sequence[str] = ("delivered", "completed"),
    ):
        self._closed = frozenset(s.lower() for s in closed_statuses)
        self._settled = frozenset(s.lower() for s in settled_statuses)
        self._payment_description = payment_description

    def is_closed(self, status: str) -> bool:
        return status.lower() in self._closed

    def is_settled(self, status: str) -> bool:
        return status.lower() in self._settled

    @staticmethod
    def payment_reference(payment: LedgerPayment) -> str:
        if payment.invoice_numbers:
            return "/".join(payment.invoice_numbers)
        return payment.reference_number or GENERAL_REFERENCE

    def _stream(
        self,
        invoices: Sequence[LedgerInvoice],
        payments: Sequence[LedgerPayment],
    ) -> list[LedgerEntry]:
        events: list[LedgerInvoice | LedgerPayment] = [*invoices, *payments]
        events.sort(key=lambda e: e.date)  # list.sort is stable

        entries: list[LedgerEntry] = []
        running = Decimal("0")
        for serial, event in enumerate(events, start=1):
            if isinstance(event, LedgerInvoice):
                running += event.amount
                entries.append(
                    LedgerEntry(
                        serial=serial,
                        date=event.date,
                        entry_type=EntryType.INVOICE,
                        source_id=event.invoice_id,
                        description=INVOICE_DESCRIPTION,
                        reference=event.number,
                        debit=event.amount,
                        credit=Decimal("0"),
                        running_balance=running,
                        remark=REMARK_CLOSED if self.is_closed(event.status) else REMARK_OPEN,
                        currency=event.currency,
                    )
                )
            else:
                running -= event.amount
                entries.append(
                    LedgerEntry(
                        serial=serial,
                        date=event.date,
                        entry_type=EntryType.PAYMENT,
                        source_id=event.payment_id,
                        description=self._payment_description,
                        reference=self.payment_reference(event),
                        debit=Decimal("0"),
                        credit=event.amount,
                        running_balance=running,
                        remark=event.payment_method,
                        currency=event.currency,
                    )
                )
        return entries

    @staticmethod
    def apply_filters(
        entries: Sequence[LedgerEntry],
        date_from: date | None = None,
        date_to: date | None = None,
        status_filter: StatusFilter = StatusFilter.ALL,
    ) -> list[LedgerEntry]:
        """Select rendered entries.  date_to includes the whole day."""
        selected = list(entries)
        if date_from is not None:
            selected = [e for e in selected if _entry_day(e) >= date_from]
        if date_to is not None:
            selected = [e for e in selected if _entry_day(e) <= date_to]

        match StatusFilter(status_filter):
            case StatusFilter.OPEN:
                selected = [
                    e for e in selected
                    if e.entry_type is not EntryType.INVOICE or e.remark != REMARK_CLOSED
                ]
            case StatusFilter.CLOSED:
                selected = [
                    e for e in selected
                    if e.entry_type is EntryType.INVOICE and e.remark == REMARK_CLOSED
                ]
            case StatusFilter.ALL:
                pass
        return selected

    def totals(
        self,
        invoices: Sequence[LedgerInvoice],
        payments: Sequence[LedgerPayment],
    ) -> LedgerTotals:
        total_debit = sum((inv.amount for inv in invoices), Decimal("0"))
        total_credit = sum((p.amount for p in payments), Decimal("0"))
        return LedgerTotals(
            total_debit=total_debit,
            total_credit=total_credit,
            balance=total_debit - total_credit,
            open_invoice_count=sum(1 for inv in invoices if not self.is_settled(inv.status)),
        )

    @traced_engine(
        "ledger", "1.0",
        fingerprint_fields=("date_from", "date_to", "status_filter"),
    )
    def build(
        self,
        *,
        invoices: Sequence[LedgerInvoice],
        payments: Sequence[LedgerPayment],
        date_from: date | None = None,
        date_to: date | None = None,
        status_filter: StatusFilter = StatusFilter.ALL,
    ) -> Ledger:
        if date_from is not None and date_to is not None and date_from > date_to:
            raise ValueError(f"date_from {date_from} is after date_to {date_to}")

        full = self._stream(invoices, payments)
        rendered = self.apply_filters(full, date_from, date_to, status_filter)
        currencies = frozenset(e.currency for e in full)
        if len(currencies) > 1:
            logger.warning(
                "ledger_mixed_currencies",
                extra={"currencies": sorted(currencies)},
            )

        return Ledger(
            entries=tuple(rendered),
            totals=self.totals(invoices, payments),
            all_entries=tuple(full),
            currencies=currencies,
        )
