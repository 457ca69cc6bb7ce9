"""
SkyFuel Battery Ledger - Data Exchange API Endpoints
Version: 1.0.0

Changelog:
v1.0.0 (2026-10-12): Backup download and file import
"""

from fastapi import APIRouter, Depends, Request, Response
import logging

from ..models.exchange import ExportFormat
from ..services.data_exchange import DataExchange
from .deps import get_exchange

router = APIRouter(prefix="/exchange", tags=["exchange"])
logger = logging.getLogger(__name__)

_MEDIA_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv",
}


@router.get("/export")
async def export_batteries(format: ExportFormat = ExportFormat.JSON,
                           include_history: bool = False,
                           exchange: DataExchange = Depends(get_exchange)):
    """Download a backup file of the whole fleet"""
    result = await exchange.export(format, include_history)
    return Response(
        content=result.content,
        media_type=_MEDIA_TYPES[format],
        headers={
            "Content-Disposition": f'attachment; filename="{result.file_name}"',
            "X-Battery-Count": str(result.battery_count),
        },
    )


@router.post("/import")
async def import_batteries(request: Request,
                           format: ExportFormat = ExportFormat.JSON,
                           replace_existing: bool = False,
                           exchange: DataExchange = Depends(get_exchange)):
    """
    Import a backup file sent as the raw request body.
    All-or-nothing: any invalid record rejects the whole file.
    """
    content = await request.body()
    result = await exchange.import_data(content, format, replace_existing)
    return result.model_dump()
