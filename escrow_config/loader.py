"""
Settings Loader (``escrow_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen
``escrow_config.schema`` dataclasses.  Runtime callers go through
``escrow_config.get_active_settings()`` instead of calling this directly.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* The custody principal can be neither the admin nor a genesis holder.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  settings for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``admin`` or ``ledger.database_url``  -> ``KeyError``.
* Non-positive genesis amount or unknown log level  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from escrow_config.schema import EscrowSettings, LedgerSettings
from escrow_kernel.domain.amounts import is_whole_number
from escrow_kernel.domain.identity import CONTRACT_PRINCIPAL

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_ledger(data: dict[str, Any]) -> LedgerSettings:
    return LedgerSettings(
        database_url=data["database_url"],
        echo=bool(data.get("echo", False)),
    )


def parse_genesis_balances(data: dict[str, Any] | None) -> tuple[tuple[str, int], ...]:
    """Parse ``principal: amount`` pairs, sorted by principal."""
    balances: list[tuple[str, int]] = []
    for principal, amount in sorted((data or {}).items()):
        principal = str(principal)
        if principal == CONTRACT_PRINCIPAL:
            raise ValueError(
                f"Genesis balance for reserved principal {principal!r} is not allowed"
            )
        if not is_whole_number(amount) or amount <= 0:
            raise ValueError(
                f"Genesis balance for {principal!r} must be a positive integer, "
                f"got {amount!r}"
            )
        balances.append((principal, amount))
    return tuple(balances)


def parse_settings(data: dict[str, Any]) -> EscrowSettings:
    """
    Parse a raw settings dict into ``EscrowSettings``.

    Raises:
        KeyError: if ``admin`` or ``ledger.database_url`` is missing.
        ValueError: if any value is out of range.
    """
    admin = str(data["admin"])
    if not admin:
        raise ValueError("admin principal must not be empty")
    if admin == CONTRACT_PRINCIPAL:
        raise ValueError(f"admin cannot be the reserved principal {admin!r}")

    log_level = str(data.get("log_level", "INFO")).upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log_level {log_level!r}")

    return EscrowSettings(
        admin=admin,
        ledger=parse_ledger(data["ledger"]),
        genesis_balances=parse_genesis_balances(data.get("genesis_balances")),
        log_level=log_level,
        checksum=compute_checksum(data),
    )


def log_level_value(settings: EscrowSettings) -> int:
    """Numeric ``logging`` level for the configured level name."""
    return logging.getLevelName(settings.log_level)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
