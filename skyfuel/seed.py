"""
SkyFuel Battery Ledger - Demo Seed Data
Version: 1.0.0

Changelog:
v1.0.0 (2026-10-17): Initial demo fleet - 6 batteries across 4 chemistries
                      with a short ledger each
"""

import logging
from datetime import date

log = logging.getLogger(__name__)


# =============================================================================
# BATTERIES (6 records)
# =============================================================================

SEED_BATTERIES = [
    {"brand": "DJI", "model": "Mavic 3", "serial_number": "SN001",
     "battery_type": "LIPO", "cells": 4, "capacity": 5000,
     "purchase_date": date(2024, 3, 12), "notes": "Main flight pack"},
    {"brand": "DJI", "model": "Mavic 3", "serial_number": "SN002",
     "battery_type": "LIPO", "cells": 4, "capacity": 5000,
     "purchase_date": date(2024, 3, 12)},
    {"brand": "Tattu", "model": "R-Line 1300", "serial_number": "TT-6S-0042",
     "battery_type": "LIPO", "cells": 6, "capacity": 1300,
     "purchase_date": date(2023, 7, 1), "notes": "Racing quad"},
    {"brand": "Samsung", "model": "INR18650-35E", "serial_number": "SAM-35E-A",
     "battery_type": "LI_ION", "cells": 3, "capacity": 3500,
     "purchase_date": date(2022, 11, 20)},
    {"brand": "Eneloop", "model": "Pro AA", "serial_number": "ENL-PRO-08",
     "battery_type": "NIMH", "cells": 8, "capacity": 2500,
     "purchase_date": date(2021, 5, 4), "notes": "Transmitter pack"},
    {"brand": "A123", "model": "LiFePO4 2S", "serial_number": "A123-RX-1",
     "battery_type": "LIFE", "cells": 2, "capacity": 1100,
     "purchase_date": date(2025, 1, 15)},
]

# Ledger activity per serial: (operation, args)
SEED_ACTIVITY = {
    "SN001": [
        ("update_status", ("DISCHARGED", "after flight")),
        ("record_voltage", (15.2, "cell check")),
        ("complete_cycle", ("",)),
    ],
    "TT-6S-0042": [
        ("complete_cycle", ("",)),
        ("complete_cycle", ("",)),
        ("update_status", ("STORAGE", "winter storage")),
        ("record_voltage", (22.8, "storage voltage")),
    ],
    "SAM-35E-A": [
        ("record_maintenance", ("Balanced cells, replaced heat shrink",)),
    ],
    "ENL-PRO-08": [
        ("update_status", ("OUT_OF_SERVICE", "swollen cell")),
        ("add_note", ("Kept for recycling drop-off",)),
    ],
}


async def seed_if_empty(store) -> int:
    """Populate an empty store with the demo fleet. Returns batteries created."""
    if await store.snapshot():
        log.info("Store not empty, skipping seed data")
        return 0

    log.info("Seeding batteries (%d records)...", len(SEED_BATTERIES))
    for record in SEED_BATTERIES:
        battery_id = await store.create(**record)
        for operation, args in SEED_ACTIVITY.get(record["serial_number"], []):
            await getattr(store, operation)(battery_id, *args)

    return len(SEED_BATTERIES)
