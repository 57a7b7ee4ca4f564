"""
tradeledger_services -- Package init and public API.

Responsibility:
    Stateful services that deliver the side effects queued by the payment
    writer: the outbox dispatcher and the counterpart notifier port.

Architecture position:
    Services -- may import tradeledger_kernel and tradeledger_config.
    tradeledger_kernel and tradeledger_engines must never import this
    package.
"""

from tradeledger_services.notification import LoggingNotifier, Notifier
from tradeledger_services.outbox_dispatcher import DispatchReport, OutboxDispatcher

__all__ = [
    "DispatchReport",
    "LoggingNotifier",
    "Notifier",
    "OutboxDispatcher",
]
