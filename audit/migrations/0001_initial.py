import django.core.serializers.json
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Audit",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "event",
                    models.CharField(
                        choices=[
                            ("created", "Creado"),
                            ("updated", "Actualizado"),
                            ("deleted", "Eliminado"),
                            ("restored", "Restaurado"),
                            ("permissions_sync", "Permisos sincronizados"),
                            ("login", "Inicio de sesión"),
                            ("logout", "Cierre de sesión"),
                        ],
                        max_length=40,
                        verbose_name="Evento",
                    ),
                ),
                ("auditable_type", models.CharField(max_length=100, verbose_name="Entidad")),
                ("auditable_id", models.BigIntegerField(blank=True, null=True, verbose_name="ID de la entidad")),
                (
                    "old_values",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                        verbose_name="Valores anteriores",
                    ),
                ),
                (
                    "new_values",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                        verbose_name="Valores nuevos",
                    ),
                ),
                ("url", models.TextField(blank=True, default="", verbose_name="URL")),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True, verbose_name="Dirección IP")),
                (
                    "user_agent",
                    models.CharField(blank=True, default="", max_length=1023, verbose_name="Agente de usuario"),
                ),
                ("tags", models.CharField(blank=True, default="", max_length=255, verbose_name="Etiquetas")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="Fecha")),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="audits",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Usuario",
                    ),
                ),
            ],
            options={
                "verbose_name": "Registro de auditoría",
                "verbose_name_plural": "Registros de auditoría",
                "ordering": ["-created_at", "-id"],
                "default_permissions": ("view", "export"),
                "indexes": [
                    models.Index(fields=["auditable_type", "auditable_id"], name="audit_auditable_idx"),
                    models.Index(fields=["event"], name="audit_event_idx"),
                ],
            },
        ),
    ]
