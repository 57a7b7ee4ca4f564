"""
Ledger Projector (``tradeledger_modules.ledger.projector``).

Responsibility
--------------
Builds an account's running-balance statement from its invoices and
payments, renders it to CSV, and summarises every account of a kind.

Architecture position
---------------------
**Modules layer** -- read-only glue between the selectors and the
``LedgerBuilder`` / ``export_ledger`` engines.  Ledger entries are derived
on every call and never persisted.

Invariants enforced
-------------------
* Cancelled invoices and void payments never appear.
* Totals come from the unfiltered stream; filters only pick rendered rows.
* Summaries are ordered by balance due, largest first.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tradeledger_config.schema import SettlementConfig
from tradeledger_engines.balance import BalanceCalculator, InvoiceFact
from tradeledger_engines.export import export_filename, export_ledger
from tradeledger_engines.ledger import (
    Ledger,
    LedgerBuilder,
    LedgerInvoice,
    LedgerPayment,
    StatusFilter,
)
from tradeledger_kernel.domain.clock import Clock, SystemClock
from tradeledger_kernel.logging_config import get_logger
from tradeledger_kernel.models.party import Party, PartyType
from tradeledger_modules.invoices.models import InvoiceKind
from tradeledger_modules.invoices.selectors import InvoiceSelector
from tradeledger_modules.ledger.models import AccountSummary, LedgerExport
from tradeledger_modules.payments.models import PaymentDirection
from tradeledger_modules.payments.selectors import PaymentSelector

logger = get_logger("modules.ledger.projector")


class LedgerProjector:
    """
    Account statements and overviews for customers and suppliers.

    Contract
    --------
    * ``build_ledger`` returns a ``Ledger`` whose ``entries`` honour the
      filters and whose ``totals`` ignore them.
    * ``export_ledger`` renders the same ledger as CSV text.
    """

    def __init__(
        self,
        session: Session,
        config: SettlementConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config or SettlementConfig.with_defaults()
        self._clock = clock or SystemClock()
        self._invoices = InvoiceSelector(session)
        self._payments = PaymentSelector(session)
        self._calculator = BalanceCalculator()

    def _builder(self, kind: InvoiceKind) -> LedgerBuilder:
        return LedgerBuilder(
            closed_statuses=self._config.statuses.closed,
            payment_description=PaymentDirection.for_kind(kind).ledger_description,
            settled_statuses=self._config.statuses.settled,
        )

    def _account_name(self, account_id: UUID) -> str:
        party = self._session.get(Party, account_id)
        return party.name if party is not None else str(account_id)

    def build_ledger(
        self,
        account_id: UUID,
        kind: InvoiceKind | str,
        date_from: date | None = None,
        date_to: date | None = None,
        status_filter: StatusFilter | str = StatusFilter.ALL,
    ) -> Ledger:
        """
        Chronological statement of one account.

        Raises:
            ValueError: ``date_from`` after ``date_to`` or an unknown filter.
        """
        kind = InvoiceKind(kind)
        status_filter = StatusFilter(status_filter)

        invoices = self._invoices.list_for_account(
            account_id, kind, self._config.statuses.ledger_excluded
        )
        payments = self._payments.payments_for_account(account_id, kind)
        numbers = self._payments.invoice_numbers_by_payment([p.id for p in payments], kind)

        ledger = self._builder(kind).build(
            invoices=[
                LedgerInvoice(
                    invoice_id=i.id,
                    number=i.number,
                    date=i.created_at,
                    amount=i.total_value,
                    currency=i.currency,
                    status=i.status,
                )
                for i in invoices
            ],
            payments=[
                LedgerPayment(
                    payment_id=p.id,
                    date=p.payment_date,
                    amount=p.amount,
                    currency=p.currency,
                    payment_method=p.payment_method,
                    reference_number=p.reference_number,
                    invoice_numbers=numbers.get(p.id, ()),
                )
                for p in payments
            ],
            date_from=date_from,
            date_to=date_to,
            status_filter=status_filter,
        )
        logger.info(
            "ledger_built",
            extra={
                "account_id": str(account_id),
                "kind": kind.value,
                "entry_count": len(ledger.all_entries),
                "rendered_count": len(ledger.entries),
                "balance": str(ledger.totals.balance),
            },
        )
        return ledger

    def export_ledger(
        self,
        account_id: UUID,
        kind: InvoiceKind | str,
        date_from: date | None = None,
        date_to: date | None = None,
        status_filter: StatusFilter | str = StatusFilter.ALL,
        generated_at: datetime | None = None,
    ) -> LedgerExport:
        """Build the ledger and render it as CSV, named after the account."""
        kind = InvoiceKind(kind)
        ledger = self.build_ledger(account_id, kind, date_from, date_to, status_filter)
        generated_at = generated_at or self._clock.now()
        account_name = self._account_name(account_id)
        content = export_ledger(ledger, account_name, generated_at, ledger_title=kind.ledger_title)
        filename = export_filename(account_name, generated_at)
        logger.info(
            "ledger_exported",
            extra={"account_id": str(account_id), "export_filename": filename, "rows": len(ledger.entries)},
        )
        return LedgerExport(filename=filename, content=content, ledger=ledger)

    def account_summaries(self, kind: InvoiceKind | str) -> list[AccountSummary]:
        """One row per account of ``kind``, largest balance due first."""
        kind = InvoiceKind(kind)
        party_type = PartyType.CUSTOMER if kind is InvoiceKind.CUSTOMER else PartyType.SUPPLIER
        parties = self._session.scalars(
            select(Party).where(Party.party_type == party_type.value).order_by(Party.name)
        ).all()

        invoices = self._invoices.list_for_kind(kind, self._config.statuses.ledger_excluded)
        allocations = self._payments.allocation_facts([i.id for i in invoices], kind)
        lines = self._calculator.compute(
            invoices=[InvoiceFact(i.id, i.total_value, i.currency) for i in invoices],
            allocations=allocations,
            convert=kind is InvoiceKind.SUPPLIER or self._config.convert_customer_allocations,
        )

        totals: dict[UUID, list] = {p.id: [Decimal("0"), Decimal("0"), 0] for p in parties}
        for invoice, line in zip(invoices, lines):
            row = totals.setdefault(invoice.account_id, [Decimal("0"), Decimal("0"), 0])
            row[0] += line.total_value
            row[1] += line.total_paid
            if line.is_outstanding:
                row[2] += 1

        names = {p.id: p.name for p in parties}
        summaries = [
            AccountSummary(
                account_id=account_id,
                account_name=names.get(account_id, str(account_id)),
                total_invoiced=invoiced,
                total_paid=paid,
                balance_due=invoiced - paid,
                open_invoices=open_count,
            )
            for account_id, (invoiced, paid, open_count) in totals.items()
        ]
        summaries.sort(key=lambda s: s.balance_due, reverse=True)
        return summaries
