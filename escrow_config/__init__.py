"""
escrow_config -- single public entrypoint for escrow ledger settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``, and the ``bootstrap()`` routine that turns
    settings into a live ledger.  No kernel component reads settings files
    or environment variables directly.

Architecture position:
    Configuration -- sits above ``escrow_kernel``.  The kernel MUST NEVER
    import from ``escrow_config``; settings reach the kernel as plain
    constructor arguments (database URL, AdminAuthority, balances).

Invariants enforced:
    - Single entrypoint: all runtime settings flow through
      ``get_active_settings()``.
    - Genesis balances are applied at most once per ledger, however many
      times ``bootstrap()`` runs against it.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``KeyError`` / ``ValueError`` -- schema validation failures.

Audit relevance:
    Every successful ``get_active_settings()`` call emits an
    ``escrow_config_loaded`` log entry carrying the settings checksum and
    admin principal.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from sqlalchemy.orm import Session

from escrow_config.loader import (
    compute_checksum,
    load_yaml_file,
    log_level_value,
    parse_settings,
)
from escrow_config.schema import EscrowSettings, LedgerSettings
from escrow_kernel.db.engine import create_tables, init_engine_from_url, session_scope
from escrow_kernel.domain.clock import Clock
from escrow_kernel.domain.identity import AdminAuthority
from escrow_kernel.logging_config import configure_logging
from escrow_kernel.services.escrow_orchestrator import EscrowOrchestrator

_logger = logging.getLogger("escrow_kernel.config")

_DEFAULT_SETTINGS_FILE = Path(__file__).parent / "defaults.yaml"

CONFIG_ENV_VAR = "ESCROW_CONFIG"
DATABASE_URL_ENV_VAR = "DATABASE_URL"

GENESIS_SOURCE = "genesis"

__all__ = [
    "EscrowSettings",
    "LedgerSettings",
    "bootstrap",
    "compute_checksum",
    "get_active_settings",
    "make_orchestrator",
]


def get_active_settings(path: Path | str | None = None) -> EscrowSettings:
    """The ONLY public settings entrypoint.

    Resolution order for the file: ``path``, then the ``ESCROW_CONFIG``
    environment variable, then the packaged ``defaults.yaml``.  A
    ``DATABASE_URL`` environment variable overrides ``ledger.database_url``.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value is out of range.
    """
    resolved = Path(path or os.environ.get(CONFIG_ENV_VAR) or _DEFAULT_SETTINGS_FILE)
    data = load_yaml_file(resolved)

    database_url = os.environ.get(DATABASE_URL_ENV_VAR)
    if database_url:
        data = {**data, "ledger": {**(data.get("ledger") or {}), "database_url": database_url}}

    settings = parse_settings(data)

    _logger.info(
        "escrow_config_loaded",
        extra={
            "config_path": str(resolved),
            "checksum": settings.checksum,
            "admin": settings.admin,
            "genesis_principal_count": len(settings.genesis_balances),
        },
    )
    return settings


def make_orchestrator(
    settings: EscrowSettings,
    session: Session,
    clock: Clock | None = None,
    auto_commit: bool = True,
) -> EscrowOrchestrator:
    """Build an orchestrator bound to the configured admin."""
    return EscrowOrchestrator(
        session,
        admin=AdminAuthority(settings.admin),
        clock=clock,
        auto_commit=auto_commit,
    )


def _genesis_applied(orchestrator: EscrowOrchestrator, principal: str) -> bool:
    trail = orchestrator.get_trail("balance", principal)
    return any(e.payload.get("source") == GENESIS_SOURCE for e in trail.entries)


def bootstrap(settings: EscrowSettings, clock: Clock | None = None) -> AdminAuthority:
    """
    Bring a ledger up from settings.

    Configures logging, initialises the engine, creates missing tables and
    credits each genesis balance that has not been credited before.  All
    genesis credits commit together or not at all.

    Returns:
        The AdminAuthority to inject into orchestrators.
    """
    configure_logging(level=log_level_value(settings))
    init_engine_from_url(settings.ledger.database_url, echo=settings.ledger.echo)
    create_tables()

    with session_scope() as session:
        orchestrator = make_orchestrator(settings, session, clock, auto_commit=False)
        for principal, amount in settings.genesis_balances:
            if _genesis_applied(orchestrator, principal):
                continue
            orchestrator.allocate_balance(principal, amount, source=GENESIS_SOURCE)

    _logger.info(
        "escrow_ledger_bootstrapped",
        extra={"checksum": settings.checksum, "genesis_total": settings.genesis_total},
    )
    return AdminAuthority(settings.admin)
