"""
API routes.

Endpoints:
- GET  `/api/notices`, POST `/api/notices`: notice feed (proximity-filtered) and creation.
- POST `/api/notices/{id}/comments|likes|rsvp`: comment, toggle like, toggle RSVP.
- GET  `/api/rooms`, POST `/api/rooms`, POST `/api/rooms/{id}/join`: chat rooms.
- GET/POST `/api/rooms/{id}/messages`: room history and sending.
- GET/PUT/PATCH `/api/users/{id}`: user profiles.
- POST `/api/images`: raw image upload, returns a durable URL.
- POST `/api/weather-alerts`: publish active weather alerts for a coordinate as notices.
- GET  `/api/stream/notices|rooms|rooms/{id}/messages`: live feeds as server-sent events.
"""

from __future__ import annotations

import json
import queue
from functools import lru_cache
from typing import Any, Callable, Iterator

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field, ValidationError
from starlette.concurrency import run_in_threadpool

from noticeboard.config.settings import get_settings
from noticeboard.context import build_context
from noticeboard.core.cache import FileCache
from noticeboard.core.env import resolve_project_path
from noticeboard.core.errors import NotFound, StoreUnavailable, ValidationFailure
from noticeboard.core.geo import GeoPoint
from noticeboard.domain.models import (
    ChatMessage,
    ChatMessageCreate,
    ChatRoom,
    ChatRoomCreate,
    Comment,
    CommentCreate,
    MessageType,
    Notice,
    NoticeCreate,
    User,
    UserUpdate,
    WireModel,
)
from noticeboard.ingestion.weather_client import WeatherClient
from noticeboard.services.community import CommunityService
from noticeboard.services.weather_alerts import WeatherAlertPublisher
from noticeboard.sync.live_query import Subscription

router = APIRouter()


@lru_cache
def _service() -> CommunityService:
    return CommunityService(build_context(get_settings()))


@lru_cache
def _weather_client() -> WeatherClient:
    settings = get_settings()
    cache = FileCache(
        resolve_project_path(settings.cache.dir),
        enabled=settings.cache.enabled,
        default_ttl_seconds=settings.cache.default_ttl_seconds,
    )
    return WeatherClient(settings, cache)


class UserRef(WireModel):
    user_id: str = Field(..., min_length=1)


class MessageBody(WireModel):
    sender_id: str = Field(..., min_length=1)
    sender_name: str
    sender_photo: str | None = None
    text: str | None = None
    image_url: str | None = None
    type: MessageType = "text"


def _origin(lat: float | None, lon: float | None) -> GeoPoint | None:
    if lat is None or lon is None:
        return None
    return GeoPoint(lat=lat, lon=lon)


def _write_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ValidationFailure):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=503, detail=f"Backend unavailable: {exc}")


# --- notices ---


@router.get("/api/notices", response_model=list[Notice], response_model_exclude_none=True)
def get_notices(
    lat: float | None = None,
    lon: float | None = None,
    radius_km: float | None = Query(None, gt=0),
) -> list[Notice]:
    """Notices newest first; filtered to `radius_km` around (lat, lon) when both are given."""
    return _service().get_notices(_origin(lat, lon), radius_km)


@router.post("/api/notices", response_model=Notice, response_model_exclude_none=True, status_code=201)
def post_notice(payload: NoticeCreate) -> Notice:
    try:
        return _service().create_notice(payload)
    except StoreUnavailable as e:
        raise _write_error(e) from e


@router.post(
    "/api/notices/{notice_id}/comments", response_model=Comment, response_model_exclude_none=True, status_code=201
)
def post_comment(notice_id: str, payload: CommentCreate) -> Comment:
    try:
        return _service().add_comment(notice_id, payload)
    except (NotFound, StoreUnavailable) as e:
        raise _write_error(e) from e


@router.post("/api/notices/{notice_id}/likes")
def post_like(notice_id: str, payload: UserRef) -> dict:
    try:
        return {"likes": _service().toggle_like(notice_id, payload.user_id)}
    except (ValidationFailure, StoreUnavailable) as e:
        raise _write_error(e) from e


@router.post("/api/notices/{notice_id}/rsvp")
def post_rsvp(notice_id: str, payload: UserRef) -> dict:
    try:
        return {"rsvpList": _service().toggle_rsvp(notice_id, payload.user_id)}
    except (ValidationFailure, StoreUnavailable) as e:
        raise _write_error(e) from e


# --- chat ---


@router.get("/api/rooms", response_model=list[ChatRoom], response_model_exclude_none=True)
def get_rooms(
    lat: float | None = None,
    lon: float | None = None,
    radius_km: float | None = Query(None, gt=0),
    member: str | None = None,
) -> list[ChatRoom]:
    """Rooms most recently active first; `member` lists only rooms that user belongs to."""
    service = _service()
    if member:
        return service.get_chat_rooms_for_member(member)
    return service.get_chat_rooms(_origin(lat, lon), radius_km)


@router.post("/api/rooms", response_model=ChatRoom, response_model_exclude_none=True, status_code=201)
def post_room(payload: ChatRoomCreate) -> ChatRoom:
    try:
        return _service().create_chat_room(payload)
    except StoreUnavailable as e:
        raise _write_error(e) from e


@router.post("/api/rooms/{room_id}/join")
def post_join(room_id: str, payload: UserRef) -> dict:
    try:
        return {"members": _service().join_chat_room(room_id, payload.user_id)}
    except (ValidationFailure, StoreUnavailable) as e:
        raise _write_error(e) from e


@router.get("/api/rooms/{room_id}/messages", response_model=list[ChatMessage], response_model_exclude_none=True)
def get_messages(room_id: str) -> list[ChatMessage]:
    return _service().get_messages(room_id)


@router.post(
    "/api/rooms/{room_id}/messages", response_model=ChatMessage, response_model_exclude_none=True, status_code=201
)
def post_message(room_id: str, payload: MessageBody) -> ChatMessage:
    data = ChatMessageCreate(room_id=room_id, **payload.model_dump())
    try:
        return _service().send_message(data)
    except StoreUnavailable as e:
        raise _write_error(e) from e


# --- users ---


@router.get("/api/users/{user_id}", response_model=User, response_model_exclude_none=True)
def get_user(user_id: str) -> User:
    user = _service().get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail=f"users/{user_id} not found")
    return user


@router.put("/api/users/{user_id}", response_model=User, response_model_exclude_none=True)
def put_user(user_id: str, payload: dict[str, Any]) -> User:
    try:
        return _service().create_user({**payload, "id": user_id})
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except StoreUnavailable as e:
        raise _write_error(e) from e


@router.patch("/api/users/{user_id}", status_code=204)
def patch_user(user_id: str, payload: UserUpdate) -> None:
    try:
        _service().update_user(user_id, payload)
    except StoreUnavailable as e:
        raise _write_error(e) from e


# --- images ---


@router.post("/api/images", status_code=201)
async def post_image(request: Request, folder: str = "images") -> dict:
    """Upload the raw request body; the `Content-Type` header selects the file extension."""
    content = await request.body()
    if not content:
        raise HTTPException(status_code=400, detail="Empty image body")
    content_type = request.headers.get("content-type", "image/jpeg").split(";")[0].strip()
    try:
        url = await run_in_threadpool(
            _service().upload_image, content, folder=folder, content_type=content_type
        )
    except StoreUnavailable as e:
        raise _write_error(e) from e
    return {"url": url}


# --- weather ---


@router.post("/api/weather-alerts")
def post_weather_alerts(lat: float, lon: float) -> dict:
    """Publish one alert notice per active weather alert at (lat, lon)."""
    publisher = WeatherAlertPublisher(_service(), _weather_client(), get_settings())
    try:
        published = publisher.publish(latitude=lat, longitude=lon)
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except StoreUnavailable as e:
        raise _write_error(e) from e
    return {
        "published": [
            {
                "notice": p.notice.to_wire(),
                "notification": {"title": p.notification.title, "body": p.notification.body, "data": p.notification.data},
            }
            for p in published
        ]
    }


# --- live feeds ---


def _sse_feed(
    subscribe: Callable[[Callable[[list[Any]], Any]], Subscription[Any]],
    *,
    limit: int | None,
    keepalive_seconds: float,
) -> Iterator[str]:
    updates: queue.Queue[list[BaseModel]] = queue.Queue()
    handle = subscribe(updates.put)
    sent = 0
    try:
        while not limit or sent < limit:
            try:
                items = updates.get(timeout=keepalive_seconds)
            except queue.Empty:
                yield ": keep-alive\n\n"
                continue
            data = json.dumps([i.model_dump(mode="json", by_alias=True, exclude_none=True) for i in items], ensure_ascii=False)
            yield f"event: snapshot\ndata: {data}\n\n"
            sent += 1
    finally:
        handle.unsubscribe()


def _stream(subscribe: Callable[[Callable[[list[Any]], Any]], Subscription[Any]], limit: int | None) -> StreamingResponse:
    keepalive = float(get_settings().api.stream_keepalive_seconds)
    return StreamingResponse(
        _sse_feed(subscribe, limit=limit, keepalive_seconds=keepalive),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.get("/api/stream/notices")
def stream_notices(
    lat: float | None = None,
    lon: float | None = None,
    radius_km: float | None = Query(None, gt=0),
    limit: int | None = Query(None, ge=1, description="Close the stream after N snapshots"),
) -> StreamingResponse:
    service = _service()
    origin = _origin(lat, lon)
    return _stream(lambda cb: service.subscribe_to_notices(cb, origin, radius_km), limit)


@router.get("/api/stream/rooms")
def stream_rooms(
    lat: float | None = None,
    lon: float | None = None,
    radius_km: float | None = Query(None, gt=0),
    limit: int | None = Query(None, ge=1, description="Close the stream after N snapshots"),
) -> StreamingResponse:
    service = _service()
    origin = _origin(lat, lon)
    return _stream(lambda cb: service.subscribe_to_chat_rooms(cb, origin, radius_km), limit)


@router.get("/api/stream/rooms/{room_id}/messages")
def stream_messages(
    room_id: str,
    limit: int | None = Query(None, ge=1, description="Close the stream after N snapshots"),
) -> StreamingResponse:
    service = _service()
    return _stream(lambda cb: service.subscribe_to_messages(room_id, cb), limit)
