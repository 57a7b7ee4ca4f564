"""
Configuration loader (``tradeledger_config.loader``).

Responsibility
--------------
Reads a YAML settings file and parses it into the frozen dataclasses of
``tradeledger_config.schema``.  Runtime callers go through
``tradeledger_config.get_active_config()``.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError`` naming the section.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from tradeledger_config.schema import (
    DatabasePolicy,
    OutboxPolicy,
    SettlementConfig,
    StatusPolicy,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _section(cls: type, data: dict[str, Any] | None, name: str) -> Any:
    data = data or {}
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown keys in {name}: {sorted(unknown)}")
    kwargs = {k: tuple(v) if isinstance(v, list) else v for k, v in data.items()}
    return cls(**kwargs)


def parse_config(data: dict[str, Any]) -> SettlementConfig:
    """Parse a ``SettlementConfig`` from a dict (as produced by YAML)."""
    data = dict(data)
    statuses = _section(StatusPolicy, data.pop("statuses", None), "statuses")
    outbox = _section(OutboxPolicy, data.pop("outbox", None), "outbox")
    database = _section(DatabasePolicy, data.pop("database", None), "database")

    pairs = data.pop("unusual_currency_pairs", None)
    root = _section(SettlementConfig, data, "settings")
    kwargs: dict[str, Any] = {
        "enforce_balance_check": root.enforce_balance_check,
        "convert_customer_allocations": root.convert_customer_allocations,
        "statuses": statuses,
        "outbox": outbox,
        "database": database,
    }
    if pairs is not None:
        kwargs["unusual_currency_pairs"] = tuple(tuple(p) for p in pairs)
    return SettlementConfig(**kwargs)


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed YAML, for the config trace."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
