"""
SkyFuel Battery Ledger - Data Exchange (Export / Import)
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-16): Import runs in a single transaction with one bulk change
                      notification; replace never exposes an empty fleet
v1.0.0 (2026-10-10): JSON/CSV export, serial-number reconciled import

Import is all-or-nothing: the whole file is parsed and validated before the
first write, and every write happens inside one store batch.
"""

import csv
import io
import json
import logging
from datetime import datetime
from typing import List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..config import settings
from ..errors import DataImportError, ValidationError
from ..models.exchange import (
    BATTERY_COLUMNS, BatteryRecord, ExportFormat, ExportResult, HistoryRecord, ImportResult,
)
from .battery_store import BatteryStore

logger = logging.getLogger(__name__)


def export_file_name(fmt: ExportFormat, now: Optional[datetime] = None) -> str:
    """skyfuel_backup_YYYYMMDD_HHMMSS.<ext>"""
    now = now or datetime.now()
    return f"{settings.EXPORT_FILE_PREFIX}_{now:%Y%m%d_%H%M%S}.{fmt.extension}"


def _coerce_format(fmt: Union[ExportFormat, str]) -> ExportFormat:
    try:
        return ExportFormat(fmt.lower() if isinstance(fmt, str) else fmt)
    except ValueError:
        raise ValidationError(f"Unsupported format: {fmt}")


def _describe(e: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
    )


class DataExchange:
    """Whole-fleet export and reconciled import"""

    def __init__(self, store: BatteryStore):
        self.store = store

    # ================================================================
    # EXPORT
    # ================================================================

    async def export(self, fmt: Union[ExportFormat, str] = ExportFormat.JSON,
                     include_history: bool = False,
                     now: Optional[datetime] = None) -> ExportResult:
        fmt = _coerce_format(fmt)
        batteries = await self.store.snapshot()

        if fmt == ExportFormat.CSV:
            content = self._to_csv([BatteryRecord.from_battery(b) for b in batteries])
        else:
            records = []
            for battery in batteries:
                history = await self.store.history(battery.id) if include_history else None
                records.append(BatteryRecord.from_battery(battery, history))
            content = json.dumps(
                [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in records],
                indent=2, ensure_ascii=False,
            )

        file_name = export_file_name(fmt, now)
        logger.info(f"Exported {len(batteries)} batteries as {fmt.value} -> {file_name}")
        return ExportResult(content=content, file_name=file_name, battery_count=len(batteries))

    @staticmethod
    def _to_csv(records: List[BatteryRecord]) -> str:
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=BATTERY_COLUMNS)
        writer.writeheader()
        for record in records:
            writer.writerow(record.flat())
        return output.getvalue()

    # ================================================================
    # IMPORT
    # ================================================================

    def parse(self, content: Union[str, bytes], fmt: Union[ExportFormat, str]) -> List[BatteryRecord]:
        """
        Parse and validate a whole file. Raises DataImportError on the first
        malformed or invalid record; nothing is written.
        """
        fmt = _coerce_format(fmt)
        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise DataImportError(f"File is not valid UTF-8: {e}")
        content = content.lstrip("\ufeff")

        raw_records = self._read_json(content) if fmt == ExportFormat.JSON else self._read_csv(content)

        records = []
        for index, raw in enumerate(raw_records, start=1):
            try:
                record = BatteryRecord.model_validate(raw)
            except PydanticValidationError as e:
                raise DataImportError(f"Record {index}: {_describe(e)}")
            try:
                record.to_fields()
                for entry in record.history or []:
                    entry.to_entry()
            except ValidationError as e:
                raise DataImportError(f"Record {index}: {e.message}")
            records.append(record)
        return records

    @staticmethod
    def _read_json(content: str) -> list:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise DataImportError(f"Invalid JSON: {e}")

        # Envelope form: {"exportDate": ..., "batteries": [...], "history": [...]}
        if isinstance(data, dict):
            if not isinstance(data.get("batteries"), list):
                raise DataImportError("JSON object has no 'batteries' array")
            for index, raw in enumerate(data.get("history") or [], start=1):
                try:
                    HistoryRecord.model_validate(raw).to_entry()
                except PydanticValidationError as e:
                    raise DataImportError(f"History entry {index}: {_describe(e)}")
                except ValidationError as e:
                    raise DataImportError(f"History entry {index}: {e.message}")
            data = data["batteries"]

        if not isinstance(data, list):
            raise DataImportError("JSON content must be an array of batteries")
        for index, raw in enumerate(data, start=1):
            if not isinstance(raw, dict):
                raise DataImportError(f"Record {index}: expected an object")
        return data

    @staticmethod
    def _read_csv(content: str) -> list:
        reader = csv.DictReader(io.StringIO(content))
        if not reader.fieldnames:
            raise DataImportError("CSV file is empty")
        missing = [c for c in BATTERY_COLUMNS if c not in reader.fieldnames and c != "id"]
        if missing:
            raise DataImportError(f"CSV header is missing columns: {', '.join(missing)}")

        rows = []
        for row_num, row in enumerate(reader, start=2):  # row 1 = header
            if None in row:
                raise DataImportError(f"CSV row {row_num}: too many values")
            if not any((value or "").strip() for value in row.values()):
                continue
            # Blank optional cells fall back to model defaults
            rows.append({key: value for key, value in row.items()
                         if value not in (None, "") or key == "notes"})
        return rows

    async def import_data(self, content: Union[str, bytes],
                          fmt: Union[ExportFormat, str] = ExportFormat.JSON,
                          replace_existing: bool = False) -> ImportResult:
        """
        Merge a file into the store.

        Records whose serial number already exists (in the store, or earlier
        in the same file) are skipped. New records go through the store's
        create path with their status and cycle count preserved.
        """
        records = self.parse(content, fmt)
        imported = 0
        skipped = 0

        async with self.store.batch() as batch:
            batch.mark_bulk()
            if replace_existing:
                removed = await batch.delete_all()
                logger.info(f"Import replace: {removed} batteries removed")

            for record in records:
                # Same-transaction inserts are visible, so in-file duplicates are caught here
                if await batch.get_by_serial(record.serial_number) is not None:
                    logger.debug(f"Import: serial {record.serial_number} exists, skipped")
                    skipped += 1
                    continue
                await batch.create(record.to_fields(), status=record.status,
                                   cycle_count=record.cycle_count)
                imported += 1

        result = ImportResult(imported_count=imported, skipped_count=skipped,
                              total_in_file=len(records))
        logger.info(
            f"Import complete: {imported} imported, {skipped} skipped, "
            f"{len(records)} in file (replace={replace_existing})"
        )
        return result
