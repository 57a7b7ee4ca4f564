"""
Module ORM Registry (``tradeledger_modules._orm_registry``).

Responsibility
--------------
Ensure every SQLAlchemy ORM model is imported so that ``Base.metadata``
contains its table before tables are created.  ``create_all_tables()`` is
the one way scripts and ``tests/conftest.py`` obtain the full schema.

Architecture position
---------------------
**Modules layer** -- utility.  MUST NOT be imported eagerly by
``tradeledger_kernel`` (the kernel engine imports it lazily).
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``tradeledger_modules.*.orm`` module.

    Kernel tables (parties, outbox, activity log) are registered first so
    module tables can reference ``parties.id``.  Idempotent.
    """
    import tradeledger_kernel.models  # noqa: F401
    # fmt: off
    import tradeledger_modules.invoices.orm  # noqa: F401
    import tradeledger_modules.payments.orm  # noqa: F401
    # fmt: on


def create_all_tables() -> None:
    """Create kernel and module tables.

    Preconditions:
        Engine must be initialized via ``init_engine_from_url()``.
    """
    from tradeledger_kernel.db.engine import create_tables

    create_tables()
