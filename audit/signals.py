from __future__ import annotations

import logging
from typing import Any

from django.apps import apps
from django.contrib.auth.signals import user_logged_in, user_logged_out
from django.db.models.signals import post_delete, post_save, pre_save

from users.signals import role_permissions_synced

from .models import Audit
from .services.recorder import diff, record, snapshot


logger = logging.getLogger(__name__)

PREVIOUS_STATE_ATTR = "_audit_previous_state"


def audited_models() -> list:
    return [*apps.get_app_config("catalogs").get_models(), apps.get_model("users", "Role")]


def capture_previous_state(sender, instance, raw: bool = False, **kwargs) -> None:
    previous = None
    if not raw and instance.pk is not None:
        stored = sender._base_manager.filter(pk=instance.pk).first()
        if stored is not None:
            previous = snapshot(stored)
    setattr(instance, PREVIOUS_STATE_ATTR, previous)


def record_save(sender, instance, created: bool, raw: bool = False, **kwargs) -> None:
    if raw:
        return
    previous = getattr(instance, PREVIOUS_STATE_ATTR, None)
    if created or previous is None:
        record(Audit.Event.CREATED, instance, new_values=snapshot(instance))
        return

    old_values, new_values = diff(previous, snapshot(instance))
    if not new_values:
        return

    event = Audit.Event.UPDATED
    if "deleted_at" in new_values:
        if old_values["deleted_at"] is None:
            event = Audit.Event.DELETED
        elif new_values["deleted_at"] is None:
            event = Audit.Event.RESTORED
    record(event, instance, old_values=old_values, new_values=new_values)


def record_delete(sender, instance, **kwargs) -> None:
    record(Audit.Event.DELETED, instance, old_values=snapshot(instance))


def record_permissions_sync(sender, instance, before: list[int], after: list[int], **kwargs) -> None:
    if list(before) == list(after):
        return
    record(
        Audit.Event.PERMISSIONS_SYNC,
        instance,
        old_values={"permissions": list(before)},
        new_values={"permissions": list(after)},
        tags="permissions",
    )


def _session_values(request) -> dict[str, Any]:
    return {
        "ip": request.META.get("REMOTE_ADDR") if request is not None else None,
        "user_agent": (request.headers.get("User-Agent") or "")[:500] if request is not None else "",
    }


def record_login(sender, request, user, **kwargs) -> None:
    record(
        Audit.Event.LOGIN,
        user,
        new_values=_session_values(request),
        tags="auth",
        request=request,
        user_id=user.pk,
    )


def record_logout(sender, request, user, **kwargs) -> None:
    if user is None:
        return
    record(
        Audit.Event.LOGOUT,
        user,
        new_values=_session_values(request),
        tags="auth",
        request=request,
        user_id=user.pk,
    )


def connect_audit_signals() -> None:
    for model in audited_models():
        label = model._meta.label_lower
        pre_save.connect(capture_previous_state, sender=model, dispatch_uid=f"audit_pre_save_{label}")
        post_save.connect(record_save, sender=model, dispatch_uid=f"audit_post_save_{label}")
        post_delete.connect(record_delete, sender=model, dispatch_uid=f"audit_post_delete_{label}")

    role_permissions_synced.connect(
        record_permissions_sync,
        sender=apps.get_model("users", "Role"),
        dispatch_uid="audit_role_permissions_synced",
    )
    user_logged_in.connect(record_login, dispatch_uid="audit_user_logged_in")
    user_logged_out.connect(record_logout, dispatch_uid="audit_user_logged_out")
    logger.debug("Señales de auditoría conectadas")
