"""
SkyFuel Battery Ledger - System Configuration
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-14): Alert thresholds, per-type cycle limits and label sheet geometry
v1.0.0 (2026-10-06): Initial configuration module
"""

from pydantic_settings import BaseSettings
from typing import Dict
from pathlib import Path
import os


class Settings(BaseSettings):
    """System-wide configuration"""

    # Application
    APP_NAME: str = "SkyFuel Battery Ledger"
    APP_VERSION: str = "1.1.0"
    DEBUG: bool = False

    # API Server
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # SQLite Configuration
    SQLITE_DB_PATH: str = str(Path(__file__).parent / "data" / "skyfuel.db")
    SQLITE_BUSY_TIMEOUT: float = 5.0  # seconds to wait on the writer lock

    # File Paths
    LOGS_DIR: str = str(Path(__file__).parent / "logs")

    # Demo data
    SEED_DEMO_DATA: bool = False

    # Statistics
    DEFAULT_MAX_CYCLES: int = 200

    # Data Exchange
    EXPORT_FILE_PREFIX: str = "skyfuel_backup"

    # Alerts
    DISCHARGE_DAYS_WARNING: int = 7
    DISCHARGE_DAYS_HIGH: int = 14
    HEALTH_WARNING_THRESHOLD: int = 20
    MAINTENANCE_INTERVAL_DAYS: int = 90
    MAINTENANCE_INTERVAL_CYCLES: int = 50
    RECOMMENDED_MAX_CYCLES: Dict[str, int] = {
        "LIPO": 300,
        "LI_ION": 500,
        "NIMH": 800,
        "LIFE": 1500,
        "OTHER": 400,
    }

    # Label Sheet (points, 72 per inch)
    LABEL_COLUMNS: int = 3
    LABEL_QR_SIZE: float = 96.0
    LABEL_CELL_WIDTH: float = 170.0
    LABEL_CELL_HEIGHT: float = 140.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Singleton instance
settings = Settings()


def init_directories():
    """Create necessary directories if they don't exist"""
    for directory in [settings.LOGS_DIR, os.path.dirname(os.path.abspath(settings.SQLITE_DB_PATH))]:
        os.makedirs(directory, exist_ok=True)


if __name__ == "__main__":
    print(f"{settings.APP_NAME} Configuration v{settings.APP_VERSION}")
    print(f"SQLite: {settings.SQLITE_DB_PATH}")
    print(f"Logs: {settings.LOGS_DIR}")
    print(f"Default max cycles: {settings.DEFAULT_MAX_CYCLES}")
    print("\nRecommended max cycles:")
    for battery_type, cycles in settings.RECOMMENDED_MAX_CYCLES.items():
        print(f"  {battery_type:7s} {cycles}")
