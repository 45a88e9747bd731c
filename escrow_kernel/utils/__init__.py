"""Utility modules for the escrow kernel."""
