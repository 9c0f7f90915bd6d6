from __future__ import annotations

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class Audit(models.Model):
    """One recorded change (or authentication event) on an audited model."""

    class Event(models.TextChoices):
        CREATED = "created", "Creado"
        UPDATED = "updated", "Actualizado"
        DELETED = "deleted", "Eliminado"
        RESTORED = "restored", "Restaurado"
        PERMISSIONS_SYNC = "permissions_sync", "Permisos sincronizados"
        LOGIN = "login", "Inicio de sesión"
        LOGOUT = "logout", "Cierre de sesión"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audits",
        verbose_name="Usuario",
    )
    event = models.CharField("Evento", max_length=40, choices=Event.choices)
    auditable_type = models.CharField("Entidad", max_length=100)
    auditable_id = models.BigIntegerField("ID de la entidad", null=True, blank=True)
    old_values = models.JSONField("Valores anteriores", default=dict, blank=True, encoder=DjangoJSONEncoder)
    new_values = models.JSONField("Valores nuevos", default=dict, blank=True, encoder=DjangoJSONEncoder)
    url = models.TextField("URL", blank=True, default="")
    ip_address = models.GenericIPAddressField("Dirección IP", null=True, blank=True)
    user_agent = models.CharField("Agente de usuario", max_length=1023, blank=True, default="")
    tags = models.CharField("Etiquetas", max_length=255, blank=True, default="")
    created_at = models.DateTimeField("Fecha", auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = "Registro de auditoría"
        verbose_name_plural = "Registros de auditoría"
        ordering = ["-created_at", "-id"]
        default_permissions = ("view", "export")
        indexes = [
            models.Index(fields=["auditable_type", "auditable_id"], name="audit_auditable_idx"),
            models.Index(fields=["event"], name="audit_event_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.event} {self.auditable_type}#{self.auditable_id}"
