"""Page payloads consumed by the Inertia frontend."""
from __future__ import annotations

from typing import Any, Mapping, Optional

from django.contrib import messages
from django.core.serializers.json import DjangoJSONEncoder
from django.http import HttpRequest, JsonResponse


FORM_ERRORS_SESSION_KEY = "backoffice_form_errors"
OLD_INPUT_SESSION_KEY = "backoffice_old_input"
SENSITIVE_INPUT_KEYS = frozenset({"password", "password_confirmation", "csrfmiddlewaretoken"})

FLASH_LEVELS = {
    messages.SUCCESS: "success",
    messages.ERROR: "error",
    messages.WARNING: "warning",
    messages.INFO: "info",
}


def stash_form_errors(
    request: HttpRequest,
    errors: Mapping[str, list[str]],
    old_input: Optional[Mapping[str, Any]] = None,
) -> None:
    request.session[FORM_ERRORS_SESSION_KEY] = {key: list(value) for key, value in errors.items()}
    if old_input is not None:
        request.session[OLD_INPUT_SESSION_KEY] = {
            key: value for key, value in old_input.items() if key not in SENSITIVE_INPUT_KEYS
        }


def _pop_session(request: HttpRequest, key: str) -> dict[str, Any]:
    session = getattr(request, "session", None)
    if session is None:
        return {}
    return session.pop(key, None) or {}


def _flash_payload(request: HttpRequest) -> dict[str, Optional[str]]:
    flash: dict[str, Optional[str]] = {level: None for level in FLASH_LEVELS.values()}
    for message in messages.get_messages(request):
        level = FLASH_LEVELS.get(message.level)
        if level:
            flash[level] = str(message)
    return flash


def _user_payload(request: HttpRequest) -> Optional[dict[str, Any]]:
    user = getattr(request, "user", None)
    if not user or not user.is_authenticated:
        return None
    return {
        "id": user.pk,
        "name": user.get_full_name(),
        "email": user.email,
    }


def shared_props(request: HttpRequest, *, can: Optional[Mapping[str, bool]] = None) -> dict[str, Any]:
    return {
        "auth": {
            "user": _user_payload(request),
            "can": dict(can or {}),
        },
        "flash": _flash_payload(request),
        "errors": _pop_session(request, FORM_ERRORS_SESSION_KEY),
        "old": _pop_session(request, OLD_INPUT_SESSION_KEY),
        "requestId": getattr(request, "request_id", None),
    }


def render_page(
    request: HttpRequest,
    component: str,
    props: Optional[Mapping[str, Any]] = None,
    *,
    can: Optional[Mapping[str, bool]] = None,
    status: int = 200,
) -> JsonResponse:
    page_props = shared_props(request, can=can)
    props = dict(props or {})
    extra_errors = props.pop("errors", None)
    if extra_errors:
        page_props["errors"] = {**page_props["errors"], **extra_errors}
    page_props.update(props)
    payload = {
        "component": component,
        "props": page_props,
        "url": request.get_full_path(),
    }
    response = JsonResponse(payload, status=status, encoder=DjangoJSONEncoder)
    response["X-Inertia"] = "true"
    response["Vary"] = "X-Inertia"
    return response
