"""
Module: tradeledger_kernel.models.party
Responsibility: ORM persistence for the counterparties the ledger settles
    with -- customers (who receive orders) and suppliers (factories that
    receive purchase orders).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - party_code is unique.
    - party_type is fixed at creation; it decides whether the party's
      invoices are customer orders or supplier purchase orders.
"""

from enum import Enum

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tradeledger_kernel.db.base import TrackedBase


class PartyType(str, Enum):
    """Which side of the trade the party sits on."""

    CUSTOMER = "customer"
    SUPPLIER = "supplier"


class Party(TrackedBase):
    """
    Customer or supplier account.

    Guarantees:
        - party_code is globally unique (uq_party_code).
        - name is the display name used in ledger export headers.
    """

    __tablename__ = "parties"

    __table_args__ = (
        UniqueConstraint("party_code", name="uq_party_code"),
        Index("idx_party_type", "party_type"),
    )

    party_code: Mapped[str] = mapped_column(String(50), nullable=False)

    party_type: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    @property
    def kind(self) -> PartyType:
        return PartyType(self.party_type)

    def __repr__(self) -> str:
        return f"<Party {self.party_code} ({self.party_type}): {self.name}>"
