from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Optional

from django.http import HttpRequest

REQUEST_ID_HEADER = "X-Request-Id"

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
current_request_var: ContextVar[Optional[HttpRequest]] = ContextVar("current_request", default=None)


def get_current_request() -> Optional[HttpRequest]:
    return current_request_var.get()


def get_request_id() -> str:
    return request_id_var.get()


class RequestIdMiddleware:
    """Propagate or assign a correlation id for every request."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        incoming = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
        request_id = incoming[:64] if incoming else str(uuid.uuid4())
        request.request_id = request_id

        id_token = request_id_var.set(request_id)
        request_token = current_request_var.set(request)
        try:
            response = self.get_response(request)
        finally:
            current_request_var.reset(request_token)
            request_id_var.reset(id_token)

        response[REQUEST_ID_HEADER] = request_id
        return response


class MethodOverrideMiddleware:
    """Let HTML forms reach PUT/PATCH/DELETE handlers through a ``_method`` field."""

    ALLOWED_METHODS = {"PUT", "PATCH", "DELETE"}

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if request.method == "POST":
            override = (request.POST.get("_method") or "").strip().upper()
            if override in self.ALLOWED_METHODS:
                request.method_override = override
                request.method = override
        return self.get_response(request)
