# src/noticeboard/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance and configures CORS for local app and
web clients. Routes live in `noticeboard.api.routes`; behaviour lives in
`noticeboard.services`.

CORS env knobs:
- `NOTICEBOARD_CORS_ORIGINS`: comma-separated allowed origins
- `NOTICEBOARD_CORS_ALLOW_LOCAL=0`: drop the default localhost allowance
- `NOTICEBOARD_CORS_ALLOW_ORIGIN_REGEX`: explicit origin regex
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from noticeboard.core.env import env_flag, env_list
from noticeboard.core.logging import configure_logging

from .routes import router

_LOCAL_ORIGINS = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def create_app() -> FastAPI:
    configure_logging()
    api = FastAPI(title="Noticeboard API", version="0.1.0")

    origins = env_list("NOTICEBOARD_CORS_ORIGINS")
    origin_regex = os.getenv("NOTICEBOARD_CORS_ALLOW_ORIGIN_REGEX", "").strip()
    if not origin_regex and not origins and env_flag("NOTICEBOARD_CORS_ALLOW_LOCAL", default=True):
        origin_regex = _LOCAL_ORIGINS
    if origins or origin_regex:
        api.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_origin_regex=origin_regex or None,
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    api.include_router(router)
    return api


app = create_app()
