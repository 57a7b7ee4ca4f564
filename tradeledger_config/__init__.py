"""
tradeledger_config -- single public entrypoint for settlement configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration at
    runtime.  No other component reads configuration files or environment
    variables.

Resolution order:
    1. An explicit ``config_path`` argument.
    2. The ``TRADELEDGER_CONFIG`` environment variable.
    3. The packaged ``defaults.yaml``.

Audit relevance:
    Every call emits a ``TRADELEDGER_CONFIG_TRACE`` log entry with the source
    path and the checksum of the parsed settings.
"""

from __future__ import annotations

import os
from pathlib import Path

from tradeledger_config.loader import compute_checksum, load_yaml_file, parse_config
from tradeledger_config.schema import (
    DatabasePolicy,
    OutboxPolicy,
    SettlementConfig,
    StatusPolicy,
)
from tradeledger_kernel.logging_config import get_logger

_logger = get_logger("config")

CONFIG_ENV_VAR = "TRADELEDGER_CONFIG"

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> SettlementConfig:
    """The ONLY public configuration entrypoint."""
    if config_path is None:
        config_path = os.environ.get(CONFIG_ENV_VAR) or _DEFAULT_CONFIG_PATH
    path = Path(config_path)

    data = load_yaml_file(path)
    config = parse_config(data)

    _logger.info(
        "TRADELEDGER_CONFIG_TRACE",
        extra={
            "config_path": str(path),
            "checksum": compute_checksum(data),
            "enforce_balance_check": config.enforce_balance_check,
            "convert_customer_allocations": config.convert_customer_allocations,
        },
    )
    return config


__all__ = [
    "CONFIG_ENV_VAR",
    "DatabasePolicy",
    "OutboxPolicy",
    "SettlementConfig",
    "StatusPolicy",
    "get_active_config",
]
