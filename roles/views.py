from __future__ import annotations

import logging
from typing import Any

from django.contrib import messages
from django.http import HttpResponse
from django.shortcuts import redirect

from core.forms import BulkActionForm
from core.pages import stash_form_errors
from core.views import (
    ResourceBulkView,
    ResourceDetailView,
    ResourceSetActiveView,
    _form_errors,
    request_payload,
)
from users.models import Role

from .forms import RoleDeleteForm
from .services.role_bulk_actions import partition_roles


logger = logging.getLogger(__name__)

NOTHING_CHANGED_MESSAGE = "No se realizó ningún cambio. Todos los roles ya estaban en el estado solicitado."


class RoleDetailView(ResourceDetailView):
    """Roles are removed for good once every deletion rule passes."""

    def delete(self, request, pk: int, *args, **kwargs):
        role = self.get_object(pk)
        self.authorize("delete", role)
        form = RoleDeleteForm(request_payload(request), role=role)
        if not form.is_valid():
            errors = _form_errors(form)
            stash_form_errors(request, errors)
            message = (errors.get("role") or errors.get("force") or ["Datos inválidos."])[0]
            messages.add_message(request, form.flash_level, message)
            return redirect(self.route("index"))

        self.get_service().delete(role)
        return self.ok(self.resource.destroy_message(role))


class RoleSetActiveView(ResourceSetActiveView):
    def get_form(self, obj: Role):
        return self.resource.set_active_form_class(request_payload(self.request), role=obj)


class RoleBulkView(ResourceBulkView):
    def perform_bulk(self, action: str, data: dict[str, Any]) -> HttpResponse:
        roles = list(Role.objects.filter(pk__in=data["ids"]).order_by("pk"))
        partition = partition_roles(action, roles, force=data.get("force"), active=data.get("active"))
        service = self.get_service()

        if action == BulkActionForm.ACTION_DELETE:
            done = service.delete_many(partition.applicable)
            self.log_partition(action, done, partition.skipped)
            if partition.skipped_count:
                return self.flash(
                    messages.WARNING,
                    f"Se eliminaron {done} rol(es). Se omitieron {partition.skipped_count} rol(es) "
                    "por validaciones de eliminación.",
                )
            return self.flash(messages.SUCCESS, f"Se eliminaron {done} rol(es) correctamente.")

        active = bool(data["active"])
        done = service.set_active_many(partition.applicable, active)
        self.log_partition(action, done, partition.skipped)
        verb = "activaron" if active else "desactivaron"
        if partition.skipped_count:
            return self.flash(
                messages.WARNING,
                f"Se {verb} {done} rol(es). Se omitieron {partition.skipped_count} rol(es) por validaciones.",
            )
        if done == 0:
            return self.flash(messages.INFO, NOTHING_CHANGED_MESSAGE)
        return self.flash(messages.SUCCESS, f"Se {verb} {done} rol(es) correctamente.")

    def flash(self, level: int, message: str) -> HttpResponse:
        messages.add_message(self.request, level, message)
        return redirect(self.route("index"))

    def log_partition(self, action: str, done: int, skipped: dict[int, str]) -> None:
        logger.info("Acción masiva %s sobre roles: %s aplicados, %s omitidos", action, done, len(skipped))
        for role_id, reason in skipped.items():
            logger.debug("Rol #%s omitido: %s", role_id, reason)
