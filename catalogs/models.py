from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator, RegexValidator
from django.db import models
from django.db.models import Q

from core.models import CatalogModel, CodedModel, SoftDeleteModel


class Bank(CatalogModel):
    code = models.CharField("Código", max_length=20)
    swift_bic = models.CharField("SWIFT/BIC", max_length=11, null=True, blank=True)

    class Meta(CatalogModel.Meta):
        verbose_name = "Banco"
        verbose_name_plural = "Bancos"


class ConcessionaireType(CatalogModel):
    code = models.CharField("Código", max_length=20)
    name = models.CharField("Nombre", max_length=120)

    class Meta(CatalogModel.Meta):
        verbose_name = "Tipo de concesionario"
        verbose_name_plural = "Tipos de concesionario"


class ContractModality(CatalogModel):
    class Meta(CatalogModel.Meta):
        verbose_name = "Modalidad de contrato"
        verbose_name_plural = "Modalidades de contrato"


class ContractStatus(CatalogModel):
    class Meta(CatalogModel.Meta):
        verbose_name = "Estado de contrato"
        verbose_name_plural = "Estados de contrato"


class ContractType(CatalogModel):
    class Meta(CatalogModel.Meta):
        verbose_name = "Tipo de contrato"
        verbose_name_plural = "Tipos de contrato"


class DocumentType(CatalogModel):
    code = models.CharField("Código", max_length=10)
    name = models.CharField("Nombre", max_length=120)
    mask = models.CharField("Máscara", max_length=30, null=True, blank=True)

    class Meta(CatalogModel.Meta):
        verbose_name = "Tipo de documento"
        verbose_name_plural = "Tipos de documento"


class ExpenseType(CatalogModel):
    description = models.TextField("Descripción", null=True, blank=True)

    class Meta(CatalogModel.Meta):
        verbose_name = "Tipo de gasto"
        verbose_name_plural = "Tipos de gasto"


class LocalLocation(CatalogModel):
    code = models.CharField("Código", max_length=10)
    name = models.CharField("Nombre", max_length=100)

    class Meta(CatalogModel.Meta):
        verbose_name = "Ubicación de local"
        verbose_name_plural = "Ubicaciones de local"


class LocalStatus(CatalogModel):
    AVAILABLE_CODE = "DISP"
    AVAILABLE_NAME = "Disponible"

    class Meta(CatalogModel.Meta):
        verbose_name = "Estado de local"
        verbose_name_plural = "Estados de local"


class LocalType(CatalogModel):
    class Meta(CatalogModel.Meta):
        verbose_name = "Tipo de local"
        verbose_name_plural = "Tipos de local"


class Market(CatalogModel):
    address = models.CharField("Dirección", max_length=255, null=True, blank=True)

    class Meta(CatalogModel.Meta):
        verbose_name = "Mercado"
        verbose_name_plural = "Mercados"


class PaymentStatus(CatalogModel):
    class Meta(CatalogModel.Meta):
        verbose_name = "Estado de pago"
        verbose_name_plural = "Estados de pago"


class PaymentType(CatalogModel):
    class Meta(CatalogModel.Meta):
        verbose_name = "Tipo de pago"
        verbose_name_plural = "Tipos de pago"


class PhoneAreaCode(CodedModel):
    code = models.CharField("Código", max_length=4)

    class Meta(CodedModel.Meta):
        verbose_name = "Código de área"
        verbose_name_plural = "Códigos de área"


class TradeCategory(CatalogModel):
    description = models.TextField("Descripción", null=True, blank=True)

    class Meta(CatalogModel.Meta):
        verbose_name = "Giro comercial"
        verbose_name_plural = "Giros comerciales"


class Local(CatalogModel):
    market = models.ForeignKey(Market, on_delete=models.PROTECT, related_name="locals", verbose_name="Mercado")
    local_type = models.ForeignKey(LocalType, on_delete=models.PROTECT, related_name="locals", verbose_name="Tipo")
    local_status = models.ForeignKey(
        LocalStatus,
        on_delete=models.PROTECT,
        related_name="locals",
        verbose_name="Estado",
    )
    local_location = models.ForeignKey(
        LocalLocation,
        on_delete=models.PROTECT,
        related_name="locals",
        verbose_name="Ubicación",
    )
    area_m2 = models.DecimalField(
        "Área (m²)",
        max_digits=8,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )

    class Meta(CatalogModel.Meta):
        verbose_name = "Local"
        verbose_name_plural = "Locales"
        ordering = ["code"]


class Concessionaire(SoftDeleteModel):
    concessionaire_type = models.ForeignKey(
        ConcessionaireType,
        on_delete=models.PROTECT,
        related_name="concessionaires",
        verbose_name="Tipo de concesionario",
    )
    full_name = models.CharField("Nombre completo", max_length=160)
    document_type = models.ForeignKey(
        DocumentType,
        on_delete=models.PROTECT,
        related_name="concessionaires",
        verbose_name="Tipo de documento",
    )
    document_number = models.CharField("Número de documento", max_length=30)
    fiscal_address = models.CharField("Domicilio fiscal", max_length=255)
    email = models.EmailField("Correo electrónico", max_length=160)
    phone_area_code = models.ForeignKey(
        PhoneAreaCode,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="concessionaires",
        verbose_name="Código de área",
    )
    phone_number = models.CharField(
        "Teléfono",
        max_length=7,
        null=True,
        blank=True,
        validators=[RegexValidator(r"^[0-9]{7}$", message="El teléfono debe tener 7 dígitos.")],
    )

    class Meta(SoftDeleteModel.Meta):
        verbose_name = "Concesionario"
        verbose_name_plural = "Concesionarios"
        ordering = ["full_name"]
        constraints = [
            models.UniqueConstraint(
                fields=["document_number"],
                condition=Q(deleted_at__isnull=True),
                name="catalogs_concessionaire_document_live_uniq",
            ),
            models.UniqueConstraint(
                fields=["email"],
                condition=Q(deleted_at__isnull=True),
                name="catalogs_concessionaire_email_live_uniq",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} ({self.document_number})"
