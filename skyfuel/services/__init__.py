"""
SkyFuel Battery Ledger - Services
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-17): Alerts, label sheet and fleet report
v1.0.0 (2026-10-07): Initial services module
"""

from . import change_feed
from . import history_ledger
from . import battery_store
from . import statistics
from . import alerts
from . import identity_codec
from . import label_sheet
from . import fleet_report
from . import data_exchange
