"""
Writes audit rows for model changes.

The acting user, URL, IP and user agent are read from the request the
middleware keeps for the current context; changes made outside a request
(management commands, shells) are recorded without them.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from django.conf import settings
from django.db import models
from django.http import HttpRequest

from backoffice.middleware import get_current_request

from ..models import Audit


logger = logging.getLogger(__name__)

USER_AGENT_MAX_LENGTH = 1023


def audit_settings() -> dict[str, Any]:
    return getattr(settings, "AUDIT", {})


def auditing_enabled() -> bool:
    return bool(audit_settings().get("ENABLED", True))


def excluded_fields() -> frozenset[str]:
    return frozenset(audit_settings().get("EXCLUDED_FIELDS", ()))


def auditable_type(instance: models.Model) -> str:
    opts = instance._meta
    return f"{opts.app_label}.{opts.model_name}"


def snapshot(instance: models.Model) -> dict[str, Any]:
    """Concrete field values of ``instance`` keyed by attribute name, minus the excluded ones."""

    excluded = excluded_fields()
    values: dict[str, Any] = {}
    for model_field in instance._meta.concrete_fields:
        if model_field.primary_key or model_field.name in excluded or model_field.attname in excluded:
            continue
        values[model_field.attname] = model_field.value_from_object(instance)
    return values


def diff(old: Mapping[str, Any], new: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Return the old and new values of the keys whose value changed."""

    changed = [key for key in new if old.get(key) != new[key]]
    return {key: old.get(key) for key in changed}, {key: new[key] for key in changed}


def client_ip(request: HttpRequest) -> Optional[str]:
    return request.META.get("REMOTE_ADDR") or None


def request_url(request: HttpRequest) -> str:
    # Requests built outside the handler (test client logins) carry no host.
    if "HTTP_HOST" in request.META or "SERVER_NAME" in request.META:
        return request.build_absolute_uri()
    return request.get_full_path()


def request_context(request: Optional[HttpRequest] = None) -> dict[str, Any]:
    request = request or get_current_request()
    if request is None:
        return {}
    user = getattr(request, "user", None)
    return {
        "user_id": user.pk if user is not None and user.is_authenticated else None,
        "url": request_url(request),
        "ip_address": client_ip(request),
        "user_agent": (request.headers.get("User-Agent") or "")[:USER_AGENT_MAX_LENGTH],
    }


def record(
    event: str,
    instance: models.Model,
    *,
    old_values: Optional[Mapping[str, Any]] = None,
    new_values: Optional[Mapping[str, Any]] = None,
    tags: str = "",
    request: Optional[HttpRequest] = None,
    user_id: Optional[int] = None,
) -> Optional[Audit]:
    if not auditing_enabled():
        return None
    context = request_context(request)
    if user_id is not None:
        context["user_id"] = user_id
    audit = Audit.objects.create(
        event=event,
        auditable_type=auditable_type(instance),
        auditable_id=instance.pk,
        old_values=dict(old_values or {}),
        new_values=dict(new_values or {}),
        tags=tags,
        **context,
    )
    logger.debug("Auditoría %s registrada para %s #%s", event, audit.auditable_type, instance.pk)
    return audit
