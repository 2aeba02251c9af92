from __future__ import annotations

import logging
from typing import Any

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from documents.store import StoreUnavailable


logger = logging.getLogger(__name__)


def _field_messages(raw: Any) -> dict[str, list[str]]:
    """Serializer errors as {field: [message, ...]}; nested errors are flattened per top-level field."""
    if isinstance(raw, list):
        return {"non_field_errors": [str(m) for m in raw]}
    out: dict[str, list[str]] = {}
    for name, msgs in (raw or {}).items():
        stack = [msgs]
        flat: list[str] = []
        while stack:
            item = stack.pop(0)
            if isinstance(item, dict):
                stack.extend(item.values())
            elif isinstance(item, (list, tuple)):
                stack.extend(item)
            else:
                flat.append(str(item))
        out[str(name)] = flat
    return out


def _validation_body(exc: ValidationError) -> dict[str, Any]:
    fields = _field_messages(exc.detail)
    body: dict[str, Any] = {"detail": "Invalid request", "code": "validation_error", "fields": fields}
    focus = next((name for name in fields if name != "non_field_errors"), None)
    if focus:
        body["focus_field"] = focus
    return body


def drf_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """Global DRF exception handler.

    Every error leaves as {"detail": str, "code": str, "fields"?: {...}, "focus_field"?: str}:

    - ValidationError => 400 validation_error with fields and the first invalid field
    - other APIException => its status and code (not_authenticated, access_denied, ...)
    - StoreUnavailable => 503 store_unavailable
    - anything else => left to Django (500)
    """
    if isinstance(exc, StoreUnavailable):
        logger.error("document store unavailable: %s", exc)
        return Response(
            {"detail": "Document store unavailable", "code": "store_unavailable"},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    resp = exception_handler(exc, context)
    if resp is None:
        return None

    if isinstance(exc, ValidationError):
        resp.data = _validation_body(exc)
        return resp

    detail = getattr(exc, "detail", None)
    if isinstance(detail, (list, dict)) or not detail:
        detail = "Request failed" if int(resp.status_code) < 500 else "Server error"

    code = "not_found" if isinstance(exc, Http404) else "error"
    if isinstance(exc, APIException):
        codes = exc.get_codes()
        code = codes if isinstance(codes, str) else getattr(exc, "default_code", "error")

    if int(resp.status_code) >= 500:
        logger.error("request failed with %s: %s", resp.status_code, detail)
    resp.data = {"detail": str(detail), "code": code}
    return resp
