"""
Escrow ledger settings schema.

The human-authored YAML settings are parsed by the loader into these
frozen dataclasses.  Nothing downstream reads YAML or environment
variables; they receive an ``EscrowSettings`` instance.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LedgerSettings:
    """Where the ledger lives."""

    database_url: str
    echo: bool = False


@dataclass(frozen=True)
class EscrowSettings:
    """Complete runtime settings for one escrow ledger."""

    admin: str
    ledger: LedgerSettings
    # (principal, amount) pairs credited once, on first bootstrap
    genesis_balances: tuple[tuple[str, int], ...] = ()
    log_level: str = "INFO"
    checksum: str = ""

    @property
    def genesis_total(self) -> int:
        return sum(amount for _, amount in self.genesis_balances)
