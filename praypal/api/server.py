"""
FastAPI server for PrayPal. Run with run_api_server(app) in a background thread.
Exposes the next prayer display state, location, and the notification actions.
Docs when enabled: http://<host>:<port>/docs
"""
import logging
import threading
from datetime import datetime
from typing import Any, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from praypal.prayer.errors import ParseError, PastTimeError

logger = logging.getLogger(__name__)


class NextPrayerResponse(BaseModel):
    """Current next prayer display state."""

    name: str
    time: str
    at: Optional[datetime] = None


class LocationBody(BaseModel):
    province: str
    city: str


class LocationResponse(BaseModel):
    available: bool
    province: Optional[str] = None
    city: Optional[str] = None


class PermissionResponse(BaseModel):
    granted: bool


class ScheduleBody(BaseModel):
    """Target HH:mm; the displayed prayer time when omitted."""

    time: Optional[str] = None


class TriggerResponse(BaseModel):
    hour: int
    minute: int


class ScheduleResponse(BaseModel):
    scheduled: int
    failed: int
    triggers: List[TriggerResponse]


class PendingNotificationResponse(BaseModel):
    identifier: str
    hour: int
    minute: int
    repeats: bool
    title: str
    subtitle: str


class CancelResponse(BaseModel):
    cancelled: int


def _location_response(location) -> LocationResponse:
    if location is None:
        return LocationResponse(available=False)
    return LocationResponse(available=True, province=location.province, city=location.city)


def create_app(praypal_app: Any) -> FastAPI:
    """Create FastAPI app with routes that use the given PrayPalApp instance."""
    app = FastAPI(title="PrayPal API", description="Next prayer time and prayer reminders")
    service = praypal_app.service

    @app.get("/api/prayer/next", response_model=NextPrayerResponse)
    def get_next_prayer() -> NextPrayerResponse:
        """Return the latest computed next prayer."""
        state = service.state
        return NextPrayerResponse(name=state.name, time=state.time, at=state.at)

    @app.post("/api/prayer/refresh", response_model=NextPrayerResponse)
    def refresh_next_prayer() -> NextPrayerResponse:
        """Recompute now and return the result."""
        state = service.refresh()
        return NextPrayerResponse(name=state.name, time=state.time, at=state.at)

    @app.get("/api/location", response_model=LocationResponse)
    def get_location() -> LocationResponse:
        return _location_response(service.location_provider.get_location())

    @app.put("/api/location", response_model=LocationResponse)
    def set_location(body: LocationBody) -> LocationResponse:
        location = service.location_provider.set_location(body.province, body.city)
        service.refresh()
        return _location_response(location)

    @app.delete("/api/location", response_model=LocationResponse)
    def clear_location() -> LocationResponse:
        service.location_provider.clear()
        return _location_response(None)

    @app.post("/api/notifications/permission", response_model=PermissionResponse)
    def request_permission() -> PermissionResponse:
        return PermissionResponse(granted=service.request_permission())

    @app.post("/api/notifications/schedule", response_model=ScheduleResponse)
    def schedule_notification(body: ScheduleBody) -> ScheduleResponse:
        """Schedule the repeating reminders for the given or displayed time."""
        try:
            result = service.schedule_notification(body.time)
        except ParseError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except PastTimeError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return ScheduleResponse(
            scheduled=len(result.scheduled),
            failed=result.failed,
            triggers=[TriggerResponse(hour=t.hour, minute=t.minute) for t in result.triggers],
        )

    @app.get("/api/notifications", response_model=List[PendingNotificationResponse])
    def list_notifications() -> List[PendingNotificationResponse]:
        return [
            PendingNotificationResponse(
                identifier=r.identifier,
                hour=r.trigger.hour,
                minute=r.trigger.minute,
                repeats=r.repeats,
                title=r.content.title,
                subtitle=r.content.subtitle,
            )
            for r in service.notification_center.pending()
        ]

    @app.delete("/api/notifications", response_model=CancelResponse)
    def cancel_notifications() -> CancelResponse:
        return CancelResponse(cancelled=service.cancel_notifications())

    return app


def run_api_server(praypal_app: Any) -> None:
    """
    Start the API server in a daemon thread if api.enabled is true.
    Reads api.host (default 127.0.0.1) and api.port (default 8765) from config.
    """
    api_config = praypal_app.config.data.get("api") or {}
    if not api_config.get("enabled", False):
        logger.info(
            "API server not started: set api.enabled to true in your config file to enable."
        )
        return
    host = api_config.get("host", "127.0.0.1")
    port = int(api_config.get("port", 8765))
    fastapi_app = create_app(praypal_app)

    def run_uvicorn():
        try:
            import uvicorn
            logger.info(f"API server listening at http://{host}:{port} (docs at /docs)")
            uvicorn.run(fastapi_app, host=host, port=port)
        except Exception as e:
            logger.exception(f"API server thread failed: {e}")

    thread = threading.Thread(target=run_uvicorn, daemon=True)
    thread.start()
    logger.info("API server thread started.")
