from __future__ import annotations

from django.contrib.auth.models import AbstractBaseUser, Permission, PermissionsMixin
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import TimeStampedModel

from .managers import UserManager


class Role(TimeStampedModel):
    class Guard(models.TextChoices):
        WEB = "web", "Web"

    name = models.CharField(
        "Nombre",
        max_length=100,
        unique=True,
        error_messages={"unique": "Ya existe un rol con este nombre."},
    )
    guard_name = models.CharField(
        "Guard",
        max_length=30,
        choices=Guard.choices,
        default=Guard.WEB,
    )
    is_active = models.BooleanField("Activo", default=True)
    permissions = models.ManyToManyField(
        Permission,
        through="RolePermission",
        related_name="roles",
        blank=True,
        verbose_name=_("Permisos"),
    )

    class Meta:
        verbose_name = "Rol"
        verbose_name_plural = "Roles"
        ordering = ["name"]
        default_permissions = ("add", "change", "delete", "view", "export", "set_active")

    def __str__(self) -> str:
        return self.name


class RolePermission(models.Model):
    role = models.ForeignKey(
        Role,
        on_delete=models.CASCADE,
        related_name="role_permissions",
    )
    permission = models.ForeignKey(
        Permission,
        on_delete=models.CASCADE,
        related_name="role_permissions",
    )

    class Meta:
        verbose_name = "Permiso por rol"
        verbose_name_plural = "Permisos por rol"
        unique_together = ("role", "permission")
        ordering = ["role__name", "permission__codename"]

    def __str__(self) -> str:
        return f"{self.role.name} - {self.permission.codename}"


class User(AbstractBaseUser, PermissionsMixin):
    name = models.CharField("Nombre", max_length=150)
    email = models.EmailField("Correo electrónico", unique=True)
    roles = models.ManyToManyField(Role, blank=True, related_name="users")

    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = "email"
    EMAIL_FIELD = "email"
    REQUIRED_FIELDS = ["name"]

    class Meta:
        verbose_name = "Usuario"
        verbose_name_plural = "Usuarios"
        ordering = ["name"]
        default_permissions = ("add", "change", "delete", "view", "export", "set_active")

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"

    def get_full_name(self) -> str:
        return self.name.strip()

    def get_short_name(self) -> str:
        return self.name.split(" ")[0] if self.name else ""
