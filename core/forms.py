from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from django import forms
from django.core.validators import MinLengthValidator, RegexValidator

from .listing import IntegerListField


TRUE_INPUTS = frozenset({"true", "1", "yes", "on"})
FALSE_INPUTS = frozenset({"false", "0", "no", "off"})

CODE_PATTERN = r"^[A-Z0-9_\-\.]+$"
CODE_PATTERN_MESSAGE = "Solo se permiten letras mayúsculas, números, guiones, guiones bajos y puntos."


def coerce_boolean(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return bool(value) if value in (0, 1) else value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_INPUTS:
            return True
        if lowered in FALSE_INPUTS:
            return False
    return value


def flatten_payload(data: Mapping[str, Any]) -> dict[str, Any]:
    """Convert a QueryDict (or plain mapping) into a dict; ``key[]`` entries become lists."""

    flat: dict[str, Any] = {}
    if hasattr(data, "lists"):
        for key, values in data.lists():
            if key.endswith("[]"):
                flat[key[:-2]] = list(values)
            elif len(values) > 1:
                flat[key] = list(values)
            else:
                flat[key] = values[0] if values else None
        return flat
    for key, value in data.items():
        flat[key[:-2] if key.endswith("[]") else key] = value
    return flat


def normalize_payload(
    data: Mapping[str, Any],
    *,
    boolean_fields: Iterable[str] = (),
    upper_fields: Iterable[str] = (),
    lower_fields: Iterable[str] = (),
) -> dict[str, Any]:
    """Trim strings, turn blanks into ``None`` and coerce the declared boolean and case fields."""

    normalized: dict[str, Any] = {}
    for key, value in flatten_payload(data).items():
        if isinstance(value, str):
            value = value.strip()
            if value == "":
                value = None
        normalized[key] = value

    for name in boolean_fields:
        if name in normalized:
            normalized[name] = coerce_boolean(normalized[name])
    for name in upper_fields:
        if isinstance(normalized.get(name), str):
            normalized[name] = normalized[name].upper()
    for name in lower_fields:
        if isinstance(normalized.get(name), str):
            normalized[name] = normalized[name].lower()
    return normalized


class StrictBooleanField(forms.NullBooleanField):
    """Boolean that must be present; ``False`` is a valid answer."""

    widget = forms.NullBooleanSelect

    def validate(self, value):
        if value is None and self.required:
            raise forms.ValidationError(self.error_messages["required"], code="required")


class NormalizedFormMixin:
    """Apply :func:`normalize_payload` to the bound data before validation."""

    boolean_fields: tuple[str, ...] = ()
    upper_fields: tuple[str, ...] = ()
    lower_fields: tuple[str, ...] = ()

    def __init__(self, data=None, *args, **kwargs):
        if data is not None:
            data = normalize_payload(
                data,
                boolean_fields=self.boolean_fields,
                upper_fields=self.upper_fields,
                lower_fields=self.lower_fields,
            )
            data = self.apply_aliases(data)
        super().__init__(data, *args, **kwargs)

    def apply_aliases(self, data: dict[str, Any]) -> dict[str, Any]:
        return data


class ResourceModelForm(NormalizedFormMixin, forms.ModelForm):
    """
    Base store/update form for resources.

    ``_version`` carries the ``updated_at`` value the client loaded; the
    service rejects the update when it no longer matches.
    """

    boolean_fields = ("is_active",)

    _version = forms.CharField(required=False)
    is_active = StrictBooleanField(label="Activo")

    def apply_aliases(self, data: dict[str, Any]) -> dict[str, Any]:
        # Foreign keys may arrive as ``<field>_id``.
        for name, form_field in self.base_fields.items():
            alias = f"{name}_id"
            if isinstance(form_field, forms.ModelChoiceField) and alias in data and name not in data:
                data[name] = data.pop(alias)
        return data

    def get_version(self) -> Optional[str]:
        return self.cleaned_data.get("_version") or None

    def get_model_data(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in self.cleaned_data.items()
            if name in self._meta.fields and name != "_version"
        }


class CodedResourceForm(ResourceModelForm):
    """Resource form whose ``code`` is unique among live rows, ignoring case and padding."""

    upper_fields = ("code",)

    code_pattern: Optional[str] = CODE_PATTERN
    code_pattern_message = CODE_PATTERN_MESSAGE
    code_min_length: Optional[int] = 2
    duplicate_code_message = "El código ya está registrado."

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        code_field = self.fields.get("code")
        if code_field is None:
            return
        if self.code_min_length:
            code_field.min_length = self.code_min_length
            code_field.validators.append(MinLengthValidator(self.code_min_length))
        if self.code_pattern:
            code_field.validators.append(
                RegexValidator(self.code_pattern, message=self.code_pattern_message)
            )

    def clean_code(self):
        code = (self.cleaned_data.get("code") or "").strip().upper()
        queryset = self._meta.model.objects.filter(code__iexact=code)
        if self.instance.pk:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise forms.ValidationError(self.duplicate_code_message, code="unique")
        return code


class SetActiveForm(NormalizedFormMixin, forms.Form):
    boolean_fields = ("active",)

    active = StrictBooleanField()


class BulkActionForm(NormalizedFormMixin, forms.Form):
    ACTION_DELETE = "delete"
    ACTION_RESTORE = "restore"
    ACTION_SET_ACTIVE = "setActive"

    ACTION_CHOICES = (
        (ACTION_DELETE, "Eliminar"),
        (ACTION_RESTORE, "Restaurar"),
        (ACTION_SET_ACTIVE, "Cambiar estado"),
    )

    boolean_fields = ("active", "force")

    action = forms.ChoiceField(choices=ACTION_CHOICES)
    ids = IntegerListField(min_value=1)
    active = forms.NullBooleanField(required=False)
    force = forms.NullBooleanField(required=False)

    def __init__(self, data=None, *args, allowed_actions: Optional[Iterable[str]] = None, **kwargs):
        super().__init__(data, *args, **kwargs)
        if allowed_actions is not None:
            allowed = set(allowed_actions)
            self.fields["action"].choices = [
                choice for choice in self.ACTION_CHOICES if choice[0] in allowed
            ]

    def clean(self):
        cleaned_data = super().clean()
        if cleaned_data.get("action") == self.ACTION_SET_ACTIVE and cleaned_data.get("active") is None:
            self.add_error("active", "Indica el estado que deseas aplicar.")
        if "ids" in cleaned_data and not cleaned_data["ids"]:
            self.add_error("ids", "Se requieren IDs o UUIDs para la operación")
        return cleaned_data


class SelectedIdsForm(NormalizedFormMixin, forms.Form):
    ids = IntegerListField(min_value=1, required=True)
    per_page = forms.IntegerField(required=False, min_value=1, max_value=100)

    def __init__(self, data=None, *args, **kwargs):
        if data is not None and "perPage" in data and "per_page" not in data:
            data = flatten_payload(data)
            data["per_page"] = data.pop("perPage")
        super().__init__(data, *args, **kwargs)
