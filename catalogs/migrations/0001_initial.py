import decimal

import django.core.validators
import django.db.models.deletion
import django.db.models.functions.text
from django.db import migrations, models


RESOURCE_PERMISSIONS = ("add", "change", "delete", "view", "export", "set_active", "restore")


def base_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        ("is_active", models.BooleanField(default=True, verbose_name="Activo")),
        ("deleted_at", models.DateTimeField(blank=True, db_index=True, editable=False, null=True)),
    ]


def catalog_fields(code_length=30, name_length=160, extra=()):
    return [
        *base_fields(),
        ("code", models.CharField(max_length=code_length, verbose_name="Código")),
        ("name", models.CharField(max_length=name_length, verbose_name="Nombre")),
        *extra,
    ]


def code_constraint(model_name):
    return models.UniqueConstraint(
        django.db.models.functions.text.Upper("code"),
        condition=models.Q(("deleted_at__isnull", True)),
        name=f"catalogs_{model_name}_code_live_uniq",
        violation_error_message="El código ya está registrado.",
    )


def catalog_options(model_name, verbose_name, verbose_name_plural, ordering=("name",)):
    return {
        "verbose_name": verbose_name,
        "verbose_name_plural": verbose_name_plural,
        "ordering": list(ordering),
        "abstract": False,
        "default_permissions": RESOURCE_PERMISSIONS,
        "base_manager_name": "all_objects",
        "constraints": [code_constraint(model_name)],
    }


def catalog_model(name, verbose_name, verbose_name_plural, **field_kwargs):
    return migrations.CreateModel(
        name=name,
        fields=catalog_fields(**field_kwargs),
        options=catalog_options(name.lower(), verbose_name, verbose_name_plural),
    )


def description_field():
    return ("description", models.TextField(blank=True, null=True, verbose_name="Descripción"))


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        catalog_model(
            "Bank",
            "Banco",
            "Bancos",
            code_length=20,
            extra=[("swift_bic", models.CharField(blank=True, max_length=11, null=True, verbose_name="SWIFT/BIC"))],
        ),
        catalog_model(
            "ConcessionaireType",
            "Tipo de concesionario",
            "Tipos de concesionario",
            code_length=20,
            name_length=120,
        ),
        catalog_model("ContractModality", "Modalidad de contrato", "Modalidades de contrato"),
        catalog_model("ContractStatus", "Estado de contrato", "Estados de contrato"),
        catalog_model("ContractType", "Tipo de contrato", "Tipos de contrato"),
        catalog_model(
            "DocumentType",
            "Tipo de documento",
            "Tipos de documento",
            code_length=10,
            name_length=120,
            extra=[("mask", models.CharField(blank=True, max_length=30, null=True, verbose_name="Máscara"))],
        ),
        catalog_model("ExpenseType", "Tipo de gasto", "Tipos de gasto", extra=[description_field()]),
        catalog_model(
            "LocalLocation",
            "Ubicación de local",
            "Ubicaciones de local",
            code_length=10,
            name_length=100,
        ),
        catalog_model("LocalStatus", "Estado de local", "Estados de local"),
        catalog_model("LocalType", "Tipo de local", "Tipos de local"),
        catalog_model(
            "Market",
            "Mercado",
            "Mercados",
            extra=[("address", models.CharField(blank=True, max_length=255, null=True, verbose_name="Dirección"))],
        ),
        catalog_model("PaymentStatus", "Estado de pago", "Estados de pago"),
        catalog_model("PaymentType", "Tipo de pago", "Tipos de pago"),
        migrations.CreateModel(
            name="PhoneAreaCode",
            fields=[
                *base_fields(),
                ("code", models.CharField(max_length=4, verbose_name="Código")),
            ],
            options=catalog_options("phoneareacode", "Código de área", "Códigos de área", ordering=("code",)),
        ),
        catalog_model("TradeCategory", "Giro comercial", "Giros comerciales", extra=[description_field()]),
        migrations.CreateModel(
            name="Local",
            fields=catalog_fields(
                extra=[
                    (
                        "area_m2",
                        models.DecimalField(
                            decimal_places=2,
                            max_digits=8,
                            validators=[django.core.validators.MinValueValidator(decimal.Decimal("0"))],
                            verbose_name="Área (m²)",
                        ),
                    ),
                    (
                        "local_location",
                        models.ForeignKey(
                            on_delete=django.db.models.deletion.PROTECT,
                            related_name="locals",
                            to="catalogs.locallocation",
                            verbose_name="Ubicación",
                        ),
                    ),
                    (
                        "local_status",
                        models.ForeignKey(
                            on_delete=django.db.models.deletion.PROTECT,
                            related_name="locals",
                            to="catalogs.localstatus",
                            verbose_name="Estado",
                        ),
                    ),
                    (
                        "local_type",
                        models.ForeignKey(
                            on_delete=django.db.models.deletion.PROTECT,
                            related_name="locals",
                            to="catalogs.localtype",
                            verbose_name="Tipo",
                        ),
                    ),
                    (
                        "market",
                        models.ForeignKey(
                            on_delete=django.db.models.deletion.PROTECT,
                            related_name="locals",
                            to="catalogs.market",
                            verbose_name="Mercado",
                        ),
                    ),
                ]
            ),
            options=catalog_options("local", "Local", "Locales", ordering=("code",)),
        ),
        migrations.CreateModel(
            name="Concessionaire",
            fields=[
                *base_fields(),
                ("full_name", models.CharField(max_length=160, verbose_name="Nombre completo")),
                ("document_number", models.CharField(max_length=30, verbose_name="Número de documento")),
                ("fiscal_address", models.CharField(max_length=255, verbose_name="Domicilio fiscal")),
                ("email", models.EmailField(max_length=160, verbose_name="Correo electrónico")),
                (
                    "phone_number",
                    models.CharField(
                        blank=True,
                        max_length=7,
                        null=True,
                        validators=[
                            django.core.validators.RegexValidator(
                                "^[0-9]{7}$",
                                message="El teléfono debe tener 7 dígitos.",
                            )
                        ],
                        verbose_name="Teléfono",
                    ),
                ),
                (
                    "concessionaire_type",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="concessionaires",
                        to="catalogs.concessionairetype",
                        verbose_name="Tipo de concesionario",
                    ),
                ),
                (
                    "document_type",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="concessionaires",
                        to="catalogs.documenttype",
                        verbose_name="Tipo de documento",
                    ),
                ),
                (
                    "phone_area_code",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="concessionaires",
                        to="catalogs.phoneareacode",
                        verbose_name="Código de área",
                    ),
                ),
            ],
            options={
                "verbose_name": "Concesionario",
                "verbose_name_plural": "Concesionarios",
                "ordering": ["full_name"],
                "abstract": False,
                "default_permissions": RESOURCE_PERMISSIONS,
                "base_manager_name": "all_objects",
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("deleted_at__isnull", True)),
                        fields=("document_number",),
                        name="catalogs_concessionaire_document_live_uniq",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("deleted_at__isnull", True)),
                        fields=("email",),
                        name="catalogs_concessionaire_email_live_uniq",
                    ),
                ],
            },
        ),
    ]
