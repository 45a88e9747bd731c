"""Selectors for the escrow kernel (read side)."""

from escrow_kernel.selectors.escrow_selector import EscrowSelector, PrincipalBalance

__all__ = [
    "EscrowSelector",
    "PrincipalBalance",
]
