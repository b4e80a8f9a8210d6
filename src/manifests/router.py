import io

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from src.database import get_db
from src.exceptions import BookingEngineError, to_http_exception
from src.manifests.schemas import SailingManifest
from src.manifests.manifest_service import ManifestService
from src.schedules.time_policy import TimePolicy, get_time_policy

router = APIRouter()

@router.get("/{sailing_id}", response_model=SailingManifest)
def get_manifest(
    sailing_id: int,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Named passengers of a sailing plus unnamed walk-in seats"""

    try:
        return ManifestService(db, time_policy).build(sailing_id)
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.get("/{sailing_id}/export")
def export_manifest(
    sailing_id: int,
    format: str = Query("csv", pattern="^(csv|pdf)$"),
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Download the manifest as CSV or PDF"""

    manifest_service = ManifestService(db, time_policy)

    try:
        manifest = manifest_service.build(sailing_id)
    except BookingEngineError as e:
        raise to_http_exception(e)

    if format == "csv":
        return StreamingResponse(
            io.BytesIO(manifest_service.export_csv(manifest)),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={manifest.serial_number}.csv"}
        )
    else:  # pdf
        return StreamingResponse(
            io.BytesIO(manifest_service.export_pdf(manifest)),
            media_type="application/pdf",
            headers={"Content-Disposition": f"attachment; filename={manifest.serial_number}.pdf"}
        )
