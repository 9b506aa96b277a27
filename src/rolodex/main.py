from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .domain.models import CalendarEvent
from .engine.grid import month_bounds, shift_month
from .scheduler import (
    add_housekeeping_jobs,
    build_calendar_service,
    build_scheduler,
    restore_pending_reminders,
)
from .service import CalendarService
from .settings import AppSettings, load_settings
from .storage import StoreError, initialize_database


class EventPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    details: str | None = None
    start_at: datetime
    end_at: datetime | None = None
    is_all_day: bool = False
    location: str | None = None
    reminder_offset_minutes: int | None = Field(default=None, ge=0)
    participant_ids: list[str] = Field(default_factory=list)
    group_id: str | None = None


def _get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def _get_service(request: Request) -> CalendarService:
    return request.app.state.service


def _parse_day(raw_value: str | None, *, field_name: str) -> date | None:
    if raw_value is None:
        return None
    try:
        return date.fromisoformat(raw_value)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid {field_name}: {raw_value}") from exc


def _build_event(payload: EventPayload, *, event_id: str | None = None) -> CalendarEvent:
    data: dict[str, Any] = payload.model_dump()
    data["participant_ids"] = frozenset(payload.participant_ids)
    if event_id is not None:
        data["id"] = event_id
    try:
        return CalendarEvent.model_validate(data)
    except ValidationError as exc:
        messages = [str(error["msg"]) for error in exc.errors()]
        raise HTTPException(status_code=422, detail=messages) from exc


def _event_json(event: CalendarEvent) -> dict[str, Any]:
    payload = event.model_dump(mode="json")
    payload["participant_ids"] = sorted(event.participant_ids)
    return payload


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = getattr(application.state, "settings", None) or load_settings()
    initialize_database(settings.db_path)
    scheduler = build_scheduler(settings)
    service = build_calendar_service(settings, scheduler)
    restore_pending_reminders(service)
    add_housekeeping_jobs(scheduler, service)
    scheduler.start()

    application.state.settings = settings
    application.state.scheduler = scheduler
    application.state.service = service
    application.state.started_at_utc = datetime.now(timezone.utc)

    try:
        yield
    finally:
        if scheduler.running:
            scheduler.shutdown(wait=False)


def create_app(settings: AppSettings | None = None) -> FastAPI:
    application = FastAPI(title="Rolodex", version="0.1.0", lifespan=lifespan)
    application.state.settings = settings
    _register_routes(application)
    return application


def _register_routes(application: FastAPI) -> None:
    @application.get("/health", response_class=JSONResponse)
    async def health(request: Request) -> JSONResponse:
        settings = _get_settings(request)
        return JSONResponse(
            {
                "status": "ok",
                "service": "rolodex",
                "environment": settings.env.rolodex_env,
                "timezone": settings.env.rolodex_timezone,
                "scheduler_running": request.app.state.scheduler.running,
                "pending_reminders": len(_get_service(request).reminders.list_pending()),
                "timestamp_utc": datetime.now(timezone.utc).isoformat(),
            }
        )

    @application.get("/api/calendar/month", response_class=JSONResponse)
    async def calendar_month(
        request: Request,
        anchor: str | None = None,
        selected: str | None = None,
    ) -> JSONResponse:
        service = _get_service(request)
        reference = service.now()
        month_anchor = (_parse_day(anchor, field_name="anchor") or reference.date()).replace(day=1)
        days = service.month_view(
            month_anchor,
            reference=reference,
            selected=_parse_day(selected, field_name="selected"),
        )
        first_day, last_day = month_bounds([day.cell for day in days])
        return JSONResponse(
            {
                "anchor": month_anchor.isoformat(),
                "previous_anchor": shift_month(month_anchor, -1).isoformat(),
                "next_anchor": shift_month(month_anchor, 1).isoformat(),
                "first_day": first_day.isoformat(),
                "last_day": last_day.isoformat(),
                "days": [day.model_dump(mode="json") for day in days],
            }
        )

    @application.get("/api/calendar/week", response_class=JSONResponse)
    async def calendar_week(
        request: Request,
        anchor: str | None = None,
        selected: str | None = None,
    ) -> JSONResponse:
        service = _get_service(request)
        reference = service.now()
        week_anchor = _parse_day(anchor, field_name="anchor") or reference.date()
        days = service.week_view(
            week_anchor,
            reference=reference,
            selected=_parse_day(selected, field_name="selected"),
        )
        first_day, last_day = month_bounds([day.cell for day in days])
        return JSONResponse(
            {
                "anchor": week_anchor.isoformat(),
                "previous_anchor": (first_day - timedelta(days=7)).isoformat(),
                "next_anchor": (last_day + timedelta(days=1)).isoformat(),
                "days": [day.model_dump(mode="json") for day in days],
            }
        )

    @application.get("/api/calendar/days/{day}", response_class=JSONResponse)
    async def calendar_day(request: Request, day: str, q: str | None = None) -> JSONResponse:
        target_day = _parse_day(day, field_name="day")
        view = _get_service(request).day_view(target_day, search_text=q)
        return JSONResponse(view.model_dump(mode="json"))

    @application.get("/api/calendar/upcoming", response_class=JSONResponse)
    async def calendar_upcoming(request: Request) -> JSONResponse:
        digest = _get_service(request).upcoming_digest()
        return JSONResponse(digest.model_dump(mode="json"))

    @application.get("/api/events", response_class=JSONResponse)
    async def list_events(request: Request, q: str | None = None) -> JSONResponse:
        service = _get_service(request)
        events = service.search_events(q) if q else list(service.load_aggregator().events)
        return JSONResponse({"count": len(events), "events": [_event_json(event) for event in events]})

    @application.post("/api/events", response_class=JSONResponse, status_code=201)
    async def create_event(request: Request, payload: EventPayload) -> JSONResponse:
        event = _build_event(payload)
        try:
            stored = _get_service(request).create_event(event)
        except StoreError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return JSONResponse(_event_json(stored), status_code=201)

    @application.put("/api/events/{event_id}", response_class=JSONResponse)
    async def update_event(request: Request, event_id: str, payload: EventPayload) -> JSONResponse:
        service = _get_service(request)
        try:
            if service.get_event(event_id) is None:
                raise HTTPException(status_code=404, detail="Event not found")
            stored = service.update_event(_build_event(payload, event_id=event_id))
        except StoreError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return JSONResponse(_event_json(stored))

    @application.delete("/api/events/{event_id}", status_code=204)
    async def delete_event(request: Request, event_id: str) -> Response:
        try:
            _get_service(request).delete_event(event_id)
        except StoreError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return Response(status_code=204)

    @application.delete("/api/contacts/{contact_id}/events", response_class=JSONResponse)
    async def delete_contact_events(request: Request, contact_id: str) -> JSONResponse:
        try:
            deleted = _get_service(request).delete_events_for_contact(contact_id)
        except StoreError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return JSONResponse({"deleted": deleted})

    @application.post("/api/events/{event_id}/export", response_class=JSONResponse)
    async def export_event(request: Request, event_id: str) -> JSONResponse:
        service = _get_service(request)
        try:
            event = service.get_event(event_id)
        except StoreError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        if event is None:
            raise HTTPException(status_code=404, detail="Event not found")
        return JSONResponse({"exported": service.export_event(event)})

    @application.get("/api/reminders", response_class=JSONResponse)
    async def pending_reminders(request: Request) -> JSONResponse:
        pending = _get_service(request).reminders.list_pending()
        return JSONResponse({"count": len(pending), "reminders": [item.model_dump(mode="json") for item in pending]})


app = create_app()
