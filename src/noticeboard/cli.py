"""
Noticeboard CLI entrypoint.

This CLI is intended for operators and local debugging without the mobile app.
It delegates all data access to `noticeboard.services.community.CommunityService`.

With the default `memory` backend every run starts empty. `--import-json` loads a database
export into a private in-memory backend (whatever backend is configured) so it can be
inspected offline; writes made in that run are discarded. Otherwise point
`FIREBASE_DATABASE_URL` at a live database and set `NOTICEBOARD_BACKEND=firebase`.
"""

from __future__ import annotations

import argparse
import json
import threading
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from noticeboard.config.settings import get_settings
from noticeboard.context import build_context
from noticeboard.core.cache import FileCache
from noticeboard.core.env import resolve_project_path
from noticeboard.core.geo import GeoPoint
from noticeboard.core.logging import configure_logging
from noticeboard.domain.models import ChatRoom, Location, Notice
from noticeboard.ingestion.weather_client import WeatherClient
from noticeboard.services.community import CommunityService
from noticeboard.services.notifications import chat_notification
from noticeboard.services.weather_alerts import WeatherAlertPublisher
from noticeboard.store.memory import InMemoryBackend


def _build_service(args: argparse.Namespace) -> CommunityService:
    settings = get_settings()
    if not args.import_json:
        return CommunityService(build_context(settings))
    # Exports load into a private memory backend, never into the configured one.
    payload = json.loads(Path(args.import_json).read_text(encoding="utf-8"))
    backend = InMemoryBackend()
    backend.set("", payload)
    return CommunityService(build_context(settings, backend=backend))


def _origin(args: argparse.Namespace) -> GeoPoint | None:
    if args.lat is None or args.lon is None:
        return None
    return GeoPoint(lat=float(args.lat), lon=float(args.lon))


def _dump(items: list[BaseModel]) -> str:
    return json.dumps([i.model_dump(mode="json", by_alias=True, exclude_none=True) for i in items], ensure_ascii=False, indent=2)


def _notice_line(n: Notice) -> str:
    where = n.location.address if n.location and n.location.address else "-"
    return f"[{n.priority:>9}] {n.type:<5} {n.title}  ({where}; likes={len(n.likes)} rsvp={len(n.rsvp_list)} id={n.id})"


def _room_line(r: ChatRoom) -> str:
    last = r.last_message.text if r.last_message and r.last_message.text else ""
    return f"{r.name} [{r.type}] members={len(r.members)} active={r.activity_time or '-'} id={r.id}  {last}"


def _cmd_notices(args: argparse.Namespace) -> int:
    service = _build_service(args)
    notices = service.get_notices(_origin(args), args.radius)
    if args.json:
        print(_dump(notices))
        return 0
    for n in notices:
        print(_notice_line(n))
    return 0


def _cmd_rooms(args: argparse.Namespace) -> int:
    service = _build_service(args)
    if args.member:
        rooms = service.get_chat_rooms_for_member(args.member)
    else:
        rooms = service.get_chat_rooms(_origin(args), args.radius)
    if args.json:
        print(_dump(rooms))
        return 0
    for r in rooms:
        print(_room_line(r))
    return 0


def _cmd_messages(args: argparse.Namespace) -> int:
    service = _build_service(args)
    messages = service.get_messages(args.room_id)
    if args.json:
        print(_dump(messages))
        return 0
    for m in messages:
        print(f"{m.timestamp or '-'} {m.sender_name}: {m.text or '[image]'}")
    return 0


def _watch(args: argparse.Namespace, subscribe: Any, render: Any) -> int:
    service = _build_service(args)
    done = threading.Event()
    seen = {"n": 0}

    def on_update(items: list[Any]) -> None:
        seen["n"] += 1
        print(f"--- update {seen['n']} ({len(items)} items)")
        for item in items:
            print(render(item))
        if args.max_updates and seen["n"] >= args.max_updates:
            done.set()

    with subscribe(service, on_update):
        try:
            done.wait()
        except KeyboardInterrupt:
            pass
    return 0


def _cmd_watch_notices(args: argparse.Namespace) -> int:
    return _watch(
        args,
        lambda service, cb: service.subscribe_to_notices(cb, _origin(args), args.radius),
        _notice_line,
    )


def _cmd_watch_rooms(args: argparse.Namespace) -> int:
    return _watch(
        args,
        lambda service, cb: service.subscribe_to_chat_rooms(cb, _origin(args), args.radius),
        _room_line,
    )


def _cmd_post_notice(args: argparse.Namespace) -> int:
    service = _build_service(args)
    location = None
    if args.lat is not None and args.lon is not None:
        location = Location(latitude=args.lat, longitude=args.lon, address=args.address or "")
    notice = service.create_notice(
        {
            "authorId": args.author_id,
            "authorName": args.author_name,
            "type": args.type,
            "title": args.title,
            "description": args.description,
            "priority": args.priority,
            "location": location,
        }
    )
    print(json.dumps(notice.to_wire(), ensure_ascii=False, indent=2))
    return 0


def _cmd_like(args: argparse.Namespace) -> int:
    likes = _build_service(args).toggle_like(args.notice_id, args.user_id)
    print(json.dumps({"likes": likes}))
    return 0


def _cmd_rsvp(args: argparse.Namespace) -> int:
    rsvps = _build_service(args).toggle_rsvp(args.notice_id, args.user_id)
    print(json.dumps({"rsvpList": rsvps}))
    return 0


def _cmd_join(args: argparse.Namespace) -> int:
    members = _build_service(args).join_chat_room(args.room_id, args.user_id)
    print(json.dumps({"members": members}))
    return 0


def _cmd_send(args: argparse.Namespace) -> int:
    service = _build_service(args)
    message = service.send_message(
        {"roomId": args.room_id, "senderId": args.sender_id, "senderName": args.sender_name, "text": args.text}
    )
    room_name = next((r.name for r in service.get_chat_rooms() if r.id == args.room_id), args.room_id)
    preview = chat_notification(message, room_name)
    print(json.dumps(message.to_wire(), ensure_ascii=False, indent=2))
    print(f"notification: {preview.title} | {preview.body}")
    return 0


def _cmd_comment(args: argparse.Namespace) -> int:
    comment = _build_service(args).add_comment(
        args.notice_id, {"authorId": args.author_id, "authorName": args.author_name, "text": args.text}
    )
    print(json.dumps(comment.to_wire(), ensure_ascii=False, indent=2))
    return 0


def _cmd_weather_alerts(args: argparse.Namespace) -> int:
    settings = get_settings()
    cache = FileCache(
        resolve_project_path(settings.cache.dir),
        enabled=settings.cache.enabled,
        default_ttl_seconds=settings.cache.default_ttl_seconds,
    )
    client = WeatherClient(settings, cache)
    if args.current:
        print(json.dumps(client.get_current(lat=args.lat, lon=args.lon), ensure_ascii=False, indent=2))
    publisher = WeatherAlertPublisher(_build_service(args), client, settings)
    for item in publisher.publish(latitude=args.lat, longitude=args.lon):
        print(f"{item.notification.title}: {item.notice.title} (priority={item.notice.priority} id={item.notice.id})")
    return 0


def _add_origin_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--lat", type=float, default=None, help="Origin latitude (omit for no proximity filter)")
    p.add_argument("--lon", type=float, default=None, help="Origin longitude")
    p.add_argument("--radius", type=float, default=None, help="Radius in km (default from config)")


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the noticeboard CLI."""
    parser = argparse.ArgumentParser(prog="noticeboard")
    parser.add_argument(
        "--import-json",
        default=None,
        help="Run the command against a database export (JSON) loaded into a private in-memory backend.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("notices", help="List notices, newest first.")
    _add_origin_args(p)
    p.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    p.set_defaults(func=_cmd_notices)

    p = sub.add_parser("rooms", help="List chat rooms, most recently active first.")
    _add_origin_args(p)
    p.add_argument("--member", default=None, help="Only rooms this user belongs to")
    p.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    p.set_defaults(func=_cmd_rooms)

    p = sub.add_parser("messages", help="List messages of a room.")
    p.add_argument("room_id")
    p.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    p.set_defaults(func=_cmd_messages)

    for name, func, help_text in [
        ("watch-notices", _cmd_watch_notices, "Print the notice feed on every change."),
        ("watch-rooms", _cmd_watch_rooms, "Print the chat-room feed on every change."),
    ]:
        p = sub.add_parser(name, help=help_text)
        _add_origin_args(p)
        p.add_argument("--max-updates", type=int, default=0, help="Stop after N updates (0 = until Ctrl-C)")
        p.set_defaults(func=func)

    p = sub.add_parser("post-notice", help="Create a notice.")
    p.add_argument("--author-id", required=True)
    p.add_argument("--author-name", required=True)
    p.add_argument("--type", choices=["event", "alert", "news"], default="news")
    p.add_argument("--priority", choices=["low", "medium", "high", "emergency"], default="low")
    p.add_argument("--title", required=True)
    p.add_argument("--description", default="")
    p.add_argument("--lat", type=float, default=None)
    p.add_argument("--lon", type=float, default=None)
    p.add_argument("--address", default=None)
    p.set_defaults(func=_cmd_post_notice)

    for name, func in [("like", _cmd_like), ("rsvp", _cmd_rsvp)]:
        p = sub.add_parser(name, help=f"Toggle {name} for a user on a notice.")
        p.add_argument("notice_id")
        p.add_argument("user_id")
        p.set_defaults(func=func)

    p = sub.add_parser("join", help="Add a user to a chat room.")
    p.add_argument("room_id")
    p.add_argument("user_id")
    p.set_defaults(func=_cmd_join)

    p = sub.add_parser("send", help="Send a text message to a room.")
    p.add_argument("room_id")
    p.add_argument("--sender-id", required=True)
    p.add_argument("--sender-name", required=True)
    p.add_argument("--text", required=True)
    p.set_defaults(func=_cmd_send)

    p = sub.add_parser("comment", help="Comment on a notice.")
    p.add_argument("notice_id")
    p.add_argument("--author-id", required=True)
    p.add_argument("--author-name", required=True)
    p.add_argument("--text", required=True)
    p.set_defaults(func=_cmd_comment)

    p = sub.add_parser("weather-alerts", help="Publish active weather alerts for a location as notices.")
    p.add_argument("--lat", required=True, type=float)
    p.add_argument("--lon", required=True, type=float)
    p.add_argument("--current", action="store_true", help="Also print current conditions")
    p.set_defaults(func=_cmd_weather_alerts)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m noticeboard.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
