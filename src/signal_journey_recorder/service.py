"""FastAPI service exposing stored journeys to visualization clients."""

from __future__ import annotations

from importlib import metadata
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from sjr.errors import StorageError
from sjr.models import DEFAULT_THRESHOLDS, Journey, QualityThresholds
from sjr.storage import JourneyStore, MemoryJourneyStore
from sjr.transfer import build_export_payload, export_filename

try:
    __version__ = metadata.version("signal-journey-recorder")
except metadata.PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0"


def _summary(journey: Journey, thresholds: QualityThresholds) -> Dict[str, Any]:
    return {
        "id": journey.id,
        "name": journey.name,
        "startTime": journey.start_time,
        "endTime": journey.end_time,
        "stats": journey.stats(thresholds).as_dict(),
    }


def create_app(store: JourneyStore | None = None, thresholds: QualityThresholds = DEFAULT_THRESHOLDS) -> FastAPI:
    app = FastAPI(title="Signal Journey Recorder API", version=__version__)
    journeys = store or MemoryJourneyStore()

    async def _load(journey_id: str) -> Journey:
        try:
            journey = await journeys.get(journey_id)
        except StorageError as exc:
            raise HTTPException(status_code=503, detail=str(exc))
        if journey is None:
            raise HTTPException(status_code=404, detail=f"Journey '{journey_id}' not found")
        return journey

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/version")
    def version() -> Dict[str, str]:
        return {"version": __version__}

    @app.get("/journeys")
    async def list_journeys() -> Dict[str, Any]:
        try:
            items = await journeys.get_all()
        except StorageError as exc:
            raise HTTPException(status_code=503, detail=str(exc))
        return {"journeys": [_summary(j, thresholds) for j in items]}

    @app.get("/journeys/{journey_id}")
    async def get_journey(journey_id: str) -> Dict[str, Any]:
        journey = await _load(journey_id)
        samples = [
            {**s.to_record(), "quality": s.quality(thresholds).value, "color": s.color(thresholds)}
            for s in journey.samples
        ]
        return {
            "journey": {**_summary(journey, thresholds), "samples": samples},
        }

    @app.get("/journeys/{journey_id}/export")
    async def export_journey(journey_id: str) -> JSONResponse:
        journey = await _load(journey_id)
        filename = export_filename(journey)
        return JSONResponse(
            content=build_export_payload(journey),
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.delete("/journeys/{journey_id}")
    async def delete_journey(journey_id: str) -> Dict[str, str]:
        try:
            await journeys.delete(journey_id)
        except StorageError as exc:
            raise HTTPException(status_code=503, detail=str(exc))
        return {"deleted": journey_id}

    return app
