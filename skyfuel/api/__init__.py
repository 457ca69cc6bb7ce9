"""
SkyFuel Battery Ledger - API Routers
Version: 1.0.0
"""
