"""
Settlement configuration schema.

Typed, frozen view of the YAML settings.  The loader parses YAML into these
dataclasses; services receive a ``SettlementConfig`` through their
constructor and never read files or environment variables themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tradeledger_kernel.db.types import validate_currency
from tradeledger_kernel.logging_config import get_logger

logger = get_logger("config.schema")

# ---------------------------------------------------------------------------
# Invoice status policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatusPolicy:
    """
    Which invoice statuses each reader skips, and which count as done.

    ``closed`` drives the ledger remark; ``settled`` drives the open invoice
    count.
    """

    customer_excluded: tuple[str, ...] = ("cancelled", "draft")
    supplier_excluded: tuple[str, ...] = ("cancelled",)
    ledger_excluded: tuple[str, ...] = ("cancelled",)
    closed: tuple[str, ...] = ("delivered",)
    settled: tuple[str, ...] = ("delivered", "completed")

    def __post_init__(self):
        for name in (
            "customer_excluded", "supplier_excluded", "ledger_excluded", "closed", "settled"
        ):
            values = getattr(self, name)
            if isinstance(values, str):
                raise ValueError(f"statuses.{name} must be a list, got a string")
            object.__setattr__(self, name, tuple(v.strip().lower() for v in values))
        overlap = (set(self.closed) | set(self.settled)) & set(self.ledger_excluded)
        if overlap:
            raise ValueError(f"statuses cannot be both closed and excluded: {sorted(overlap)}")


# ---------------------------------------------------------------------------
# Outbox delivery
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OutboxPolicy:
    """Retry schedule and time budget for side-effect delivery."""

    max_attempts: int = 5
    retry_backoff_seconds: int = 30
    notification_timeout_seconds: float = 10.0
    batch_size: int = 100
    dispatch_inline: bool = True

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("outbox.max_attempts must be at least 1")
        if self.retry_backoff_seconds < 0:
            raise ValueError("outbox.retry_backoff_seconds cannot be negative")
        if self.notification_timeout_seconds <= 0:
            raise ValueError("outbox.notification_timeout_seconds must be positive")
        if self.batch_size < 1:
            raise ValueError("outbox.batch_size must be at least 1")


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabasePolicy:
    """Connection URL, statement budget and write retry limits."""

    url: str = "sqlite://"
    statement_timeout_ms: int = 5000
    write_retry_attempts: int = 3
    tracking_refresh_attempts: int = 3

    def __post_init__(self):
        if not self.url:
            raise ValueError("database.url cannot be empty")
        if self.statement_timeout_ms <= 0:
            raise ValueError("database.statement_timeout_ms must be positive")
        if self.write_retry_attempts < 1:
            raise ValueError("database.write_retry_attempts must be at least 1")
        if self.tracking_refresh_attempts < 1:
            raise ValueError("database.tracking_refresh_attempts must be at least 1")


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SettlementConfig:
    """
    Root configuration for payment allocation and ledger projection.

    Field defaults mirror ``defaults.yaml``; override at instantiation in
    tests:

        config = SettlementConfig(convert_customer_allocations=True)
    """

    # Server-side balance re-validation in the payment writer
    enforce_balance_check: bool = True

    # Customer-side currency conversion (off: allocations pass through)
    convert_customer_allocations: bool = False

    # (payment currency, invoice currency) pairs flagged as unusual
    unusual_currency_pairs: tuple[tuple[str, str], ...] = (("USD", "CNY"),)

    statuses: StatusPolicy = field(default_factory=StatusPolicy)
    outbox: OutboxPolicy = field(default_factory=OutboxPolicy)
    database: DatabasePolicy = field(default_factory=DatabasePolicy)

    def __post_init__(self):
        pairs = []
        for pair in self.unusual_currency_pairs:
            if len(pair) != 2:
                raise ValueError(f"unusual_currency_pairs entries need two codes, got {pair!r}")
            pairs.append((validate_currency(pair[0]), validate_currency(pair[1])))
        object.__setattr__(self, "unusual_currency_pairs", tuple(pairs))
        logger.debug(
            "settlement_config_initialized",
            extra={
                "enforce_balance_check": self.enforce_balance_check,
                "convert_customer_allocations": self.convert_customer_allocations,
                "unusual_pairs": len(pairs),
            },
        )

    @classmethod
    def with_defaults(cls) -> SettlementConfig:
        return cls()

    def is_unusual_pair(self, payment_currency: str, invoice_currency: str) -> bool:
        return (payment_currency, invoice_currency) in self.unusual_currency_pairs
