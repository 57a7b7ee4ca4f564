"""
Module: tradeledger_kernel.models.activity_log
Responsibility: Append-only audit trail of user-visible actions on invoices
    (payment allocated, payment received, payment cancelled).
Architecture position: Kernel > Models.  Rows are written only by the outbox
    dispatcher's activity handler, never directly by the payment writer.

Invariants enforced:
    - collection names the invoice table the document_id belongs to:
      "purchase_order" for supplier invoices, "orders" (or "order" for
      cancellations) for customer invoices.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from tradeledger_kernel.db.base import TrackedBase, UUIDString


class ActivityLog(TrackedBase):
    """One activity entry: who did what to which document."""

    __tablename__ = "activity_logs"

    __table_args__ = (
        Index("idx_activity_document", "collection", "document_id"),
        Index("idx_activity_action", "action"),
    )

    action: Mapped[str] = mapped_column(String(50), nullable=False)

    collection: Mapped[str] = mapped_column(String(50), nullable=False)

    document_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    performed_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    changes: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # "metadata" is reserved on declarative classes
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )

    def __repr__(self) -> str:
        return f"<ActivityLog {self.action} {self.collection}/{self.document_id}>"
