"""
SkyFuel Battery Ledger

Battery inventory with an append-only lifecycle ledger, fleet statistics,
QR identity labels and JSON/CSV data exchange.
"""

__version__ = "1.1.0"
