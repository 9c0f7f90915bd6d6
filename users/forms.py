from __future__ import annotations

from typing import Any

from django import forms
from django.contrib.auth import password_validation
from django.contrib.auth.forms import ReadOnlyPasswordHashField

from core.forms import ResourceModelForm, StrictBooleanField
from core.listing import DateRangeField, FilterCharField, FilterIntegerField, IndexQueryForm

from .models import Role, User


DUPLICATE_EMAIL_MESSAGE = "Ya existe un usuario con este correo."


class UserCreationForm(forms.ModelForm):
    password1 = forms.CharField(label="Clave", widget=forms.PasswordInput, strip=False)
    password2 = forms.CharField(label="Confirmar clave", widget=forms.PasswordInput, strip=False)

    class Meta:
        model = User
        fields = ("email", "name", "roles", "is_active", "is_staff")

    def clean_email(self):
        email = (self.cleaned_data.get("email") or "").strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            raise forms.ValidationError(DUPLICATE_EMAIL_MESSAGE)
        return email

    def clean_password2(self):
        password1 = self.cleaned_data.get("password1")
        password2 = self.cleaned_data.get("password2")
        if password1 and password2 and password1 != password2:
            raise forms.ValidationError("Las claves no coinciden.")
        return password2

    def save(self, commit: bool = True):
        user = super().save(commit=False)
        user.set_password(self.cleaned_data["password1"])
        if commit:
            user.save()
            self.save_m2m()
        return user


class UserChangeForm(forms.ModelForm):
    password = ReadOnlyPasswordHashField(label="Clave")

    class Meta:
        model = User
        fields = (
            "email",
            "password",
            "name",
            "roles",
            "is_active",
            "is_staff",
            "is_superuser",
            "groups",
            "user_permissions",
        )

    def clean_email(self):
        email = (self.cleaned_data.get("email") or "").strip().lower()
        duplicates = User.objects.filter(email__iexact=email).exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise forms.ValidationError(DUPLICATE_EMAIL_MESSAGE)
        return email

    def clean_password(self):
        return self.initial.get("password")


class UserIndexForm(IndexQueryForm):
    allowed_sorts = ("id", "name", "email", "is_active", "created_at", "roles_count")
    default_per_page = 10
    filter_fields = {
        "name": FilterCharField(required=False, max_length=255),
        "email": FilterCharField(required=False, max_length=255),
        "role_id": FilterIntegerField(required=False, min_value=1),
        "is_active": forms.NullBooleanField(required=False),
        "created_between": DateRangeField(),
    }


class UserForm(ResourceModelForm):
    """
    Store/update form for the users module.

    ``password`` is hashed by the service; on update an empty password keeps
    the current one. ``roles_ids`` replaces the user's roles when present.
    """

    lower_fields = ("email",)
    password_required = False

    password = forms.CharField(required=False, strip=False)
    password_confirmation = forms.CharField(required=False, strip=False)
    roles_ids = forms.ModelMultipleChoiceField(
        queryset=Role.objects.all(),
        required=False,
        error_messages={
            "invalid_choice": "Uno o más roles seleccionados no son válidos.",
            "invalid_pk_value": "Uno o más roles seleccionados no son válidos.",
        },
    )
    is_active = StrictBooleanField(label="Activo", required=False)

    class Meta:
        model = User
        fields = ("name", "email", "is_active")
        error_messages = {
            "name": {
                "required": "El nombre es obligatorio.",
                "max_length": "El nombre no puede exceder 150 caracteres.",
            },
            "email": {
                "required": "El email es obligatorio.",
                "invalid": "Ingrese un email válido.",
                "unique": DUPLICATE_EMAIL_MESSAGE,
            },
        }

    def apply_aliases(self, data: dict[str, Any]) -> dict[str, Any]:
        data = super().apply_aliases(data)
        roles = data.get("roles_ids")
        if roles is not None and not isinstance(roles, (list, tuple)):
            data["roles_ids"] = [roles]
        return data

    def clean_email(self):
        email = (self.cleaned_data.get("email") or "").strip().lower()
        duplicates = User.objects.filter(email__iexact=email)
        if self.instance.pk:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise forms.ValidationError(DUPLICATE_EMAIL_MESSAGE, code="unique")
        return email

    def clean_is_active(self):
        value = self.cleaned_data.get("is_active")
        if value is None:
            return self.instance.is_active if self.instance.pk else True
        return value

    def clean(self):
        cleaned_data = super().clean()
        password = cleaned_data.get("password")
        if not password:
            if self.password_required:
                self.add_error("password", "La contraseña es obligatoria.")
            return cleaned_data
        if password != cleaned_data.get("password_confirmation"):
            self.add_error("password", "La confirmación de contraseña no coincide.")
            return cleaned_data
        candidate = User(name=cleaned_data.get("name") or "", email=cleaned_data.get("email") or "")
        try:
            password_validation.validate_password(password, user=candidate)
        except forms.ValidationError as exc:
            self.add_error("password", exc)
        return cleaned_data

    def get_model_data(self) -> dict[str, Any]:
        data = super().get_model_data()
        if self.cleaned_data.get("password"):
            data["password"] = self.cleaned_data["password"]
        if "roles_ids" in self.data:
            data["roles_ids"] = list(self.cleaned_data.get("roles_ids") or [])
        return data


class UserStoreForm(UserForm):
    password_required = True
