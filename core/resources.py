from __future__ import annotations

from typing import Optional

from django import forms
from django.db import models
from django.http import HttpRequest
from django.utils.text import camel_case_to_spaces

from .forms import BulkActionForm, SetActiveForm
from .listing import IndexQueryForm
from .policies import ResourcePolicy
from .services.resources import ResourceService


class Resource:
    """
    Declarative description of an administrable resource.

    The generic views in :mod:`core.views` read everything they need from a
    subclass: the model, its service, its forms, the frontend component and
    the URL namespace used for redirects.
    """

    model: type[models.Model]
    service_class: type[ResourceService] = ResourceService
    policy_class: type[ResourcePolicy] = ResourcePolicy
    index_form_class: type[IndexQueryForm] = IndexQueryForm
    store_form_class: Optional[type[forms.ModelForm]] = None
    update_form_class: Optional[type[forms.ModelForm]] = None
    set_active_form_class: type[forms.Form] = SetActiveForm
    bulk_form_class: type[BulkActionForm] = BulkActionForm
    bulk_actions: tuple[str, ...] = (
        BulkActionForm.ACTION_DELETE,
        BulkActionForm.ACTION_RESTORE,
        BulkActionForm.ACTION_SET_ACTIVE,
    )
    component: str = ""
    url_namespace: str = ""
    has_edit_route = True

    created_message = "Registro creado exitosamente."
    updated_message = "Registro actualizado exitosamente."
    create_failed_message = "Error al crear el registro. Por favor, intente nuevamente."
    update_failed_message = "Error al actualizar el registro. Por favor, intente nuevamente."
    deleted_message = "Registro eliminado correctamente."
    export_failed_message = "Error durante la exportación. Inténtelo nuevamente."
    bulk_failed_message = "Error durante la operación masiva. Inténtelo nuevamente."

    @classmethod
    def get_update_form_class(cls) -> type[forms.ModelForm]:
        return cls.update_form_class or cls.store_form_class

    @classmethod
    def set_active_message(cls, obj: models.Model, active: bool) -> str:
        state = "activado" if active else "desactivado"
        return f"El registro ha sido {state} correctamente."

    @classmethod
    def destroy_message(cls, obj: models.Model) -> str:
        return cls.deleted_message

    @classmethod
    def delete_error_key(cls) -> str:
        """Form error key for delete blockers, e.g. ``concessionaire_type``."""

        return camel_case_to_spaces(cls.model.__name__).replace(" ", "_")

    @classmethod
    def check_delete(cls, request: HttpRequest, obj: models.Model) -> Optional[str]:
        """Return a blocking message when ``obj`` must not be deleted."""

        return None
