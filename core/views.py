from __future__ import annotations

import json
import logging
from typing import Any, Optional

from django import forms
from django.contrib import messages
from django.core.serializers.json import DjangoJSONEncoder
from django.http import HttpRequest, HttpResponse, HttpResponseRedirect, JsonResponse, QueryDict
from django.shortcuts import get_object_or_404, redirect
from django.urls import reverse
from django.views import View

from backoffice.mixins import PolicyRequiredMixin

from .exceptions import DomainActionError
from .forms import BulkActionForm, SelectedIdsForm, flatten_payload
from .listing import ListQuery
from .pages import render_page, stash_form_errors
from .resources import Resource
from .services.resources import ResourceService


logger = logging.getLogger(__name__)

BULK_VERBS = {
    BulkActionForm.ACTION_DELETE: "eliminados",
    BulkActionForm.ACTION_RESTORE: "restaurados",
}


def _json_error(message: str, *, status: int = 400, errors: Optional[dict[str, Any]] = None) -> JsonResponse:
    payload: dict[str, Any] = {"error": message}
    if errors:
        payload["errors"] = errors
    return JsonResponse(payload, status=status)


def _form_errors(form: forms.Form) -> dict[str, list[str]]:
    error_dict: dict[str, list[str]] = {}
    for field, messages_list in form.errors.items():
        error_dict[field] = [str(message) for message in messages_list]
    return error_dict


def _first_error(errors: dict[str, list[str]]) -> Optional[str]:
    for messages_list in errors.values():
        if messages_list:
            return messages_list[0]
    return None


def request_payload(request: HttpRequest):
    """Return the submitted data for any HTTP method (form-encoded or JSON)."""

    if request.method == "GET":
        return request.GET
    content_type = (request.content_type or "").lower()
    if content_type == "application/json":
        try:
            payload = json.loads(request.body or b"{}")
        except json.JSONDecodeError:
            return {}
        return payload if isinstance(payload, dict) else {}
    if request.method == "POST" or getattr(request, "method_override", None):
        return request.POST
    return QueryDict(request.body or b"", encoding=request.encoding)


class ResourceViewMixin(PolicyRequiredMixin):
    resource: Optional[type[Resource]] = None

    def dispatch(self, request, *args, **kwargs):
        self.policy_model = self.resource.model
        self.policy_class = self.resource.policy_class
        return super().dispatch(request, *args, **kwargs)

    def get_service(self) -> ResourceService:
        return self.resource.service_class(actor=self.request.user)

    def get_object(self, pk: int):
        return get_object_or_404(self.get_service().base_queryset(), pk=pk)

    def component(self, page: str) -> str:
        return f"{self.resource.component}/{page}"

    def route(self, name: str, *args) -> str:
        return reverse(f"{self.resource.url_namespace}:{name}", args=args)

    def abilities(self) -> dict[str, bool]:
        return self.get_policy().abilities(self.request.user)

    def ok(self, message: str, route_name: str = "index", *args) -> HttpResponseRedirect:
        messages.success(self.request, message)
        return redirect(self.route(route_name, *args))

    def fail(self, message: str, route_name: str = "index", *args) -> HttpResponseRedirect:
        messages.error(self.request, message)
        return redirect(self.route(route_name, *args))

    def back_with_errors(
        self,
        errors: dict[str, list[str]],
        route_name: str,
        *args,
        old_input: Optional[dict[str, Any]] = None,
    ) -> HttpResponseRedirect:
        stash_form_errors(self.request, errors, old_input)
        return redirect(self.route(route_name, *args))

    def render(self, page: str, props: dict[str, Any]) -> JsonResponse:
        return render_page(self.request, self.component(page), props, can=self.abilities())

    def list_query(self) -> tuple[ListQuery, dict[str, list[str]]]:
        form = self.resource.index_form_class(self.request.GET)
        if form.is_valid():
            return form.to_list_query(), {}
        return form.default_list_query(), form.error_payload()


class ResourceCollectionView(ResourceViewMixin, View):
    """``GET`` lists the resource, ``POST`` stores a new row."""

    http_method_names = ["get", "post"]

    def get(self, request, *args, **kwargs):
        self.authorize("view_any")
        query, errors = self.list_query()
        service = self.get_service()
        result = service.list(query)
        props = {
            "rows": result.rows,
            "meta": result.meta,
            "query": query.as_dict(),
            "hasEditRoute": self.resource.has_edit_route,
            "errors": errors,
        }
        props.update(service.get_index_extras())
        return self.render("Index", props)

    def post(self, request, *args, **kwargs):
        self.authorize("create")
        data = request_payload(request)
        form = self.resource.store_form_class(data)
        if not form.is_valid():
            return self.back_with_errors(_form_errors(form), "create", old_input=flatten_payload(data))

        try:
            self.get_service().create(form.get_model_data())
        except DomainActionError as exc:
            if exc.field:
                stash_form_errors(request, {exc.field: [exc.message]}, flatten_payload(data))
            return self.fail(exc.message, "create")
        except Exception:
            logger.exception("Error al crear %s", self.resource.model._meta.label)
            return self.fail(self.resource.create_failed_message, "create")
        return self.ok(self.resource.created_message)


class ResourceCreateView(ResourceViewMixin, View):
    http_method_names = ["get"]

    def get(self, request, *args, **kwargs):
        self.authorize("create")
        service = self.get_service()
        return self.render(
            "Form",
            {
                "mode": "create",
                "item": service.to_item(self.resource.model()),
                "options": service.form_options(),
            },
        )


class ResourceDetailView(ResourceViewMixin, View):
    """``GET`` shows a row, ``PUT``/``PATCH`` update it and ``DELETE`` removes it."""

    http_method_names = ["get", "put", "patch", "delete"]

    def get(self, request, pk: int, *args, **kwargs):
        obj = self.get_object(pk)
        self.authorize("view", obj)
        return self.render("Show", {"item": self.get_service().to_item(obj)})

    def put(self, request, pk: int, *args, **kwargs):
        obj = self.get_object(pk)
        self.authorize("update", obj)
        data = request_payload(request)
        form = self.resource.get_update_form_class()(data, instance=obj)
        if not form.is_valid():
            return self.back_with_errors(_form_errors(form), "edit", obj.pk, old_input=flatten_payload(data))

        try:
            self.get_service().update(obj, form.get_model_data(), version=form.get_version())
        except DomainActionError as exc:
            if exc.field:
                stash_form_errors(request, {exc.field: [exc.message]}, flatten_payload(data))
            return self.fail(exc.message, "edit", obj.pk)
        except Exception:
            logger.exception("Error al actualizar %s #%s", self.resource.model._meta.label, obj.pk)
            return self.fail(self.resource.update_failed_message, "edit", obj.pk)
        return self.ok(self.resource.updated_message)

    def patch(self, request, pk: int, *args, **kwargs):
        return self.put(request, pk, *args, **kwargs)

    def delete(self, request, pk: int, *args, **kwargs):
        obj = self.get_object(pk)
        self.authorize("delete", obj)
        error_key = self.resource.delete_error_key()
        blocking = self.resource.check_delete(request, obj)
        if blocking:
            stash_form_errors(request, {error_key: [blocking]})
            return self.fail(blocking)
        try:
            self.get_service().delete(obj)
        except DomainActionError as exc:
            stash_form_errors(request, {error_key: [exc.message]})
            return self.fail(exc.message)
        return self.ok(self.resource.destroy_message(obj))


class ResourceEditView(ResourceViewMixin, View):
    http_method_names = ["get"]

    def get(self, request, pk: int, *args, **kwargs):
        obj = self.get_object(pk)
        self.authorize("update", obj)
        service = self.get_service()
        return self.render(
            "Form",
            {
                "mode": "edit",
                "item": service.to_item(obj),
                "options": service.form_options(),
            },
        )


class ResourceSetActiveView(ResourceViewMixin, View):
    http_method_names = ["patch", "post"]

    def get_form(self, obj):
        return self.resource.set_active_form_class(request_payload(self.request))

    def patch(self, request, pk: int, *args, **kwargs):
        obj = self.get_object(pk)
        self.authorize("set_active", obj)
        form = self.get_form(obj)
        if not form.is_valid():
            errors = _form_errors(form)
            stash_form_errors(request, errors)
            return self.fail(_first_error(errors) or "Datos inválidos.")
        active = form.cleaned_data["active"]
        try:
            self.get_service().set_active(obj, active)
        except DomainActionError as exc:
            return self.fail(exc.message)
        return self.ok(self.resource.set_active_message(obj, active))

    def post(self, request, pk: int, *args, **kwargs):
        return self.patch(request, pk, *args, **kwargs)


class ResourceBulkView(ResourceViewMixin, View):
    http_method_names = ["post"]

    def post(self, request, *args, **kwargs):
        form = self.resource.bulk_form_class(
            request_payload(request),
            allowed_actions=self.resource.bulk_actions,
        )
        if not form.is_valid():
            errors = _form_errors(form)
            stash_form_errors(request, errors)
            return self.fail(_first_error(errors) or "Datos inválidos.")

        action = form.cleaned_data["action"]
        self.authorize_bulk(action)
        try:
            return self.perform_bulk(action, form.cleaned_data)
        except Exception:
            logger.exception("Error en acción masiva %s sobre %s", action, self.resource.model._meta.label)
            return self.fail(self.resource.bulk_failed_message)

    def perform_bulk(self, action: str, data: dict[str, Any]) -> HttpResponse:
        service = self.get_service()
        ids = data["ids"]
        if action == BulkActionForm.ACTION_DELETE:
            count = service.bulk_delete_by_ids(ids)
            verb = BULK_VERBS[action]
        elif action == BulkActionForm.ACTION_RESTORE:
            count = service.bulk_restore_by_ids(ids)
            verb = BULK_VERBS[action]
        else:
            active = bool(data["active"])
            count = service.bulk_set_active_by_ids(ids, active)
            verb = "activados" if active else "desactivados"
        logger.info(
            "Acción masiva %s sobre %s: %s registro(s)",
            action,
            self.resource.model._meta.label,
            count,
        )
        return self.ok(f"{count} registro(s) {verb} exitosamente")


class ResourceExportView(ResourceViewMixin, View):
    http_method_names = ["get"]

    def get(self, request, *args, **kwargs):
        self.authorize("export")
        query, errors = self.list_query()
        if errors:
            stash_form_errors(request, errors)
            return redirect(self.route("index"))
        try:
            return self.get_service().export(query, request.GET.get("format"))
        except Exception:
            logger.exception("Error al exportar %s", self.resource.model._meta.label)
            return self.fail(self.resource.export_failed_message)


class ResourceSelectedView(ResourceViewMixin, View):
    http_method_names = ["get"]

    def get(self, request, *args, **kwargs):
        self.authorize("view_selected")
        form = SelectedIdsForm(request.GET)
        if not form.is_valid():
            return _json_error("Datos inválidos.", status=422, errors=_form_errors(form))
        ids = form.cleaned_data["ids"]
        result = self.get_service().list_by_ids_desc(ids, per_page=form.cleaned_data.get("per_page"))
        return JsonResponse({"rows": result.rows, "total": result.total}, encoder=DjangoJSONEncoder)
