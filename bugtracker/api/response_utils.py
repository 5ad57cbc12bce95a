"""Shared helpers for building API response envelopes."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from fastapi import Request

from bugtracker.schemas.response import ResponseMeta


def get_request_id(request: Request) -> str:
    return request.headers.get("X-Request-ID") or str(uuid4())


def build_meta(request: Request) -> ResponseMeta:
    return ResponseMeta(requestId=get_request_id(request), timestamp=datetime.now(timezone.utc))
