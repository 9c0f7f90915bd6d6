from __future__ import annotations

from django.db import models
from django.db.models import Q
from django.db.models.functions import Upper
from django.utils import timezone


RESOURCE_PERMISSIONS = ("add", "change", "delete", "view", "export", "set_active", "restore")


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class SoftDeleteQuerySet(models.QuerySet):
    def alive(self) -> "SoftDeleteQuerySet":
        return self.filter(deleted_at__isnull=True)

    def dead(self) -> "SoftDeleteQuerySet":
        return self.filter(deleted_at__isnull=False)

    def active(self) -> "SoftDeleteQuerySet":
        return self.filter(is_active=True)


class SoftDeleteManager(models.Manager.from_queryset(SoftDeleteQuerySet)):
    """Default manager that hides soft-deleted rows."""

    def get_queryset(self):  # type: ignore[override]
        return super().get_queryset().alive()


class SoftDeleteModel(TimeStampedModel):
    is_active = models.BooleanField("Activo", default=True)
    deleted_at = models.DateTimeField(null=True, blank=True, editable=False, db_index=True)

    objects = SoftDeleteManager()
    all_objects = models.Manager.from_queryset(SoftDeleteQuerySet)()

    class Meta:
        abstract = True
        default_permissions = RESOURCE_PERMISSIONS
        base_manager_name = "all_objects"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = timezone.now()
        self.save(update_fields=["deleted_at", "updated_at"])

    def restore(self) -> None:
        self.deleted_at = None
        self.save(update_fields=["deleted_at", "updated_at"])


class CodedModel(SoftDeleteModel):
    """Soft-deletable row identified by a code unique among live rows, ignoring case."""

    CODE_MAX_LENGTH = 30

    code = models.CharField("Código", max_length=30)

    class Meta(SoftDeleteModel.Meta):
        abstract = True
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(
                Upper("code"),
                condition=Q(deleted_at__isnull=True),
                name="%(app_label)s_%(class)s_code_live_uniq",
                violation_error_message="El código ya está registrado.",
            ),
        ]

    def __str__(self) -> str:
        return self.code


class CatalogModel(CodedModel):
    name = models.CharField("Nombre", max_length=160)

    class Meta(CodedModel.Meta):
        abstract = True
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.code} - {self.name}"
