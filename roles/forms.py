from __future__ import annotations

from typing import Any

from django import forms
from django.contrib import messages
from django.contrib.auth.models import Permission

from core.forms import BulkActionForm, NormalizedFormMixin, ResourceModelForm, StrictBooleanField
from core.listing import DateRangeField, FilterCharField, FilterIntegerField, IndexQueryForm
from users.models import Role

from .services.role_bulk_actions import deactivate_blocker, delete_blocker


class PermissionNamesField(forms.Field):
    """List of ``app_label.codename`` (or bare codename) strings."""

    def to_python(self, value):
        if value in self.empty_values:
            return []
        if not isinstance(value, (list, tuple)):
            value = [value]
        return [str(item).strip() for item in value if str(item).strip()]


class RoleIndexForm(IndexQueryForm):
    allowed_sorts = ("id", "name", "guard_name", "created_at", "permissions_count", "users_count", "is_active")
    default_per_page = 10
    max_per_page = 100
    filter_fields = {
        "guard_name": FilterCharField(required=False, max_length=30),
        "created_between": DateRangeField(),
        "permissions": PermissionNamesField(required=False),
        "permissions_count_min": FilterIntegerField(required=False, min_value=0),
        "permissions_count_max": FilterIntegerField(required=False, min_value=0),
        "users_count_min": FilterIntegerField(required=False, min_value=0),
        "users_count_max": FilterIntegerField(required=False, min_value=0),
        "is_active": forms.NullBooleanField(required=False),
    }


class RoleForm(ResourceModelForm):
    permissions_ids = forms.ModelMultipleChoiceField(
        queryset=Permission.objects.all(),
        required=False,
        error_messages={"invalid_choice": "Uno o más permisos seleccionados no son válidos."},
    )
    is_active = StrictBooleanField(label="Activo", required=False)

    class Meta:
        model = Role
        fields = ("name", "guard_name", "is_active")
        error_messages = {
            "name": {
                "required": "El nombre del rol es obligatorio.",
                "max_length": "El nombre del rol no puede exceder 100 caracteres.",
                "unique": "Ya existe un rol con este nombre.",
            },
            "guard_name": {"invalid_choice": "El guard seleccionado no es válido."},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["guard_name"].required = False

    def apply_aliases(self, data: dict[str, Any]) -> dict[str, Any]:
        data = super().apply_aliases(data)
        permissions = data.get("permissions_ids")
        if permissions is not None and not isinstance(permissions, (list, tuple)):
            data["permissions_ids"] = [permissions]
        return data

    def clean_guard_name(self):
        return self.cleaned_data.get("guard_name") or Role.Guard.WEB

    def clean_is_active(self):
        value = self.cleaned_data.get("is_active")
        if value is None:
            return self.instance.is_active if self.instance.pk else True
        return value

    def get_model_data(self) -> dict[str, Any]:
        data = super().get_model_data()
        if "permissions_ids" in self.data:
            data["permissions_ids"] = list(self.cleaned_data.get("permissions_ids") or [])
        return data


class RoleGuardForm(NormalizedFormMixin, forms.Form):
    """
    Runs a role business rule after field validation.

    The blocking reason is reported on the ``role`` key and remembered with
    its flash level in ``blocker``.
    """

    role = forms.IntegerField(required=False, widget=forms.HiddenInput)

    def __init__(self, data=None, *args, role: Role, **kwargs):
        self.role_instance = role
        self.blocker = None
        super().__init__(data, *args, **kwargs)

    def find_blocker(self, cleaned_data: dict[str, Any]):
        raise NotImplementedError

    def clean(self):
        cleaned_data = super().clean()
        if self.errors:
            return cleaned_data
        self.blocker = self.find_blocker(cleaned_data)
        if self.blocker is not None:
            self.add_error("role", self.blocker.message)
        return cleaned_data

    @property
    def flash_level(self) -> int:
        return self.blocker.level if self.blocker else messages.ERROR


class RoleDeleteForm(RoleGuardForm):
    boolean_fields = ("force",)

    force = forms.NullBooleanField(required=False)

    def find_blocker(self, cleaned_data: dict[str, Any]):
        return delete_blocker(self.role_instance, force=bool(cleaned_data.get("force")))


class RoleSetActiveForm(RoleGuardForm):
    boolean_fields = ("active",)

    active = StrictBooleanField()

    def find_blocker(self, cleaned_data: dict[str, Any]):
        return deactivate_blocker(self.role_instance, active=bool(cleaned_data.get("active")))


class RoleBulkActionForm(BulkActionForm):
    def clean(self):
        cleaned_data = super().clean()
        ids = cleaned_data.get("ids") or []
        if ids:
            found = set(Role.objects.filter(pk__in=ids).values_list("pk", flat=True))
            if found != set(ids):
                self.add_error("ids", "Uno o más roles seleccionados no existen.")
        return cleaned_data
