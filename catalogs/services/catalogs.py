from __future__ import annotations

import logging
from typing import Any

from django.db import models

from catalogs.models import (
    Bank,
    Concessionaire,
    ConcessionaireType,
    ContractModality,
    ContractStatus,
    ContractType,
    DocumentType,
    ExpenseType,
    Local,
    LocalLocation,
    LocalStatus,
    LocalType,
    Market,
    PaymentStatus,
    PaymentType,
    PhoneAreaCode,
    TradeCategory,
)
from core.exceptions import DomainActionError
from core.services.resources import ResourceService


logger = logging.getLogger(__name__)


def _choice_payload(queryset: models.QuerySet, label_field: str = "name") -> list[dict[str, Any]]:
    return [
        {"value": obj.pk, "label": f"{obj.code} - {getattr(obj, label_field)}"}
        for obj in queryset.active().order_by(label_field)
    ]


def _filter_options(queryset: models.QuerySet) -> list[dict[str, Any]]:
    return [{"id": pk, "name": name} for pk, name in queryset.active().order_by("name").values_list("pk", "name")]


class CatalogService(ResourceService):
    """Service for code/name catalogs; search, sorts and export columns come from the base."""


class DependentCatalogService(CatalogService):
    """Catalog that cannot be deleted while live rows of ``dependent_model`` point at it."""

    dependent_model: type[models.Model]
    dependent_field: str
    DELETE_BLOCKED_MESSAGE = ""

    def has_dependencies(self, obj: models.Model) -> bool:
        return self.dependent_model.objects.filter(**{self.dependent_field: obj}).exists()

    def before_delete(self, obj: models.Model) -> None:
        if self.has_dependencies(obj):
            raise DomainActionError(self.DELETE_BLOCKED_MESSAGE)


class BankService(CatalogService):
    model = Bank
    searchable_fields = ("code", "name", "swift_bic")
    allowed_sorts = ("id", "code", "name", "swift_bic", "is_active", "created_at")
    export_columns = {
        "id": "ID",
        "code": "Código",
        "name": "Nombre",
        "swift_bic": "SWIFT/BIC",
        "is_active": "Activo",
        "created_at": "Creado",
    }


class ConcessionaireTypeService(DependentCatalogService):
    model = ConcessionaireType
    dependent_model = Concessionaire
    dependent_field = "concessionaire_type"
    DELETE_BLOCKED_MESSAGE = (
        "No se puede eliminar el tipo de concesionario porque existen concesionarios asociados. "
        "Desactive en su lugar."
    )


class ContractModalityService(CatalogService):
    model = ContractModality


class ContractStatusService(CatalogService):
    model = ContractStatus


class ContractTypeService(CatalogService):
    model = ContractType


class DocumentTypeService(CatalogService):
    model = DocumentType
    export_columns = {
        "id": "ID",
        "code": "Código",
        "name": "Nombre",
        "mask": "Máscara",
        "is_active": "Activo",
        "created_at": "Creado",
    }


class ExpenseTypeService(CatalogService):
    model = ExpenseType
    export_columns = {
        "id": "ID",
        "code": "Código",
        "name": "Nombre",
        "description": "Descripción",
        "is_active": "Activo",
        "created_at": "Creado",
    }


class LocalLocationService(CatalogService):
    model = LocalLocation


class LocalStatusService(DependentCatalogService):
    model = LocalStatus
    dependent_model = Local
    dependent_field = "local_status"
    DELETE_BLOCKED_MESSAGE = "No se puede eliminar el estado de local porque existen locales asociados."


class LocalTypeService(DependentCatalogService):
    model = LocalType
    dependent_model = Local
    dependent_field = "local_type"
    DELETE_BLOCKED_MESSAGE = "No se puede eliminar el tipo de local porque existen locales asociados."


class PaymentStatusService(CatalogService):
    model = PaymentStatus


class PaymentTypeService(CatalogService):
    model = PaymentType


class PhoneAreaCodeService(DependentCatalogService):
    model = PhoneAreaCode
    dependent_model = Concessionaire
    dependent_field = "phone_area_code"
    DELETE_BLOCKED_MESSAGE = (
        "No se puede eliminar el código de área porque existen concesionarios asociados. "
        "Desactive en su lugar."
    )
    searchable_fields = ("code",)
    allowed_sorts = ("id", "code", "is_active", "created_at")
    export_columns = {
        "id": "ID",
        "code": "Código",
        "is_active": "Activo",
        "created_at": "Creado",
    }


class TradeCategoryService(CatalogService):
    model = TradeCategory
    export_columns = ExpenseTypeService.export_columns


class MarketService(DependentCatalogService):
    model = Market
    dependent_model = Local
    dependent_field = "market"
    searchable_fields = ("code", "name", "address")
    export_columns = {
        "id": "ID",
        "code": "Código",
        "name": "Nombre",
        "address": "Dirección",
        "is_active": "Activo",
        "created_at": "Creado",
    }

    CODE_LOCKED_MESSAGE = "No se puede modificar el código porque el mercado tiene dependencias."
    DELETE_BLOCKED_MESSAGE = "No se puede eliminar el mercado porque existen locales asociados."

    def before_update(self, obj: Market, data: dict[str, Any]) -> dict[str, Any]:
        new_code = data.get("code")
        if new_code is not None and new_code.upper() != obj.code.upper() and self.has_dependencies(obj):
            raise DomainActionError(self.CODE_LOCKED_MESSAGE, field="code")
        return data


class LocalService(CatalogService):
    model = Local
    select_related = ("market", "local_type", "local_status", "local_location")
    allowed_sorts = ("id", "code", "name", "area_m2", "is_active", "created_at")
    export_columns = {
        "id": "ID",
        "code": "Código",
        "name": "Nombre",
        "market_name": "Mercado",
        "local_type_name": "Tipo",
        "local_status_name": "Estado",
        "local_location_name": "Ubicación",
        "area_m2": "Área (m²)",
        "is_active": "Activo",
        "created_at": "Creado",
    }

    MISSING_STATUS_MESSAGE = "No existe el estado de local disponible (DISP). Regístrelo antes de crear locales."

    def to_row(self, obj: Local) -> dict[str, Any]:
        row = super().to_row(obj)
        for relation in ("market", "local_type", "local_status", "local_location"):
            related = getattr(obj, relation) if getattr(obj, f"{relation}_id") else None
            row[f"{relation}_name"] = related.name if related else None
        return row

    def available_status(self) -> LocalStatus | None:
        status = LocalStatus.objects.filter(code__iexact=LocalStatus.AVAILABLE_CODE).first()
        if status is None:
            status = LocalStatus.objects.filter(name__iexact=LocalStatus.AVAILABLE_NAME).first()
        return status

    def before_create(self, data: dict[str, Any]) -> dict[str, Any]:
        if data.get("local_status") is None:
            status = self.available_status()
            if status is None:
                logger.warning("Intento de crear local sin estado %s registrado", LocalStatus.AVAILABLE_CODE)
                raise DomainActionError(self.MISSING_STATUS_MESSAGE, field="local_status")
            data["local_status"] = status
        return data

    def get_index_extras(self) -> dict[str, Any]:
        extras = super().get_index_extras()
        extras["filterOptions"] = {
            "markets": _filter_options(Market.objects.all()),
            "local_types": _filter_options(LocalType.objects.all()),
            "local_statuses": _filter_options(LocalStatus.objects.all()),
            "local_locations": _filter_options(LocalLocation.objects.all()),
        }
        return extras

    def form_options(self) -> dict[str, Any]:
        return {
            "markets": _choice_payload(Market.objects.all()),
            "local_types": _choice_payload(LocalType.objects.all()),
            "local_locations": _choice_payload(LocalLocation.objects.all()),
        }


class ConcessionaireService(ResourceService):
    model = Concessionaire
    select_related = ("concessionaire_type", "document_type", "phone_area_code")
    searchable_fields = ("full_name", "email", "document_number")
    allowed_sorts = ("id", "full_name", "email", "document_number", "is_active", "created_at")
    export_columns = {
        "id": "ID",
        "full_name": "Nombre completo",
        "concessionaire_type_name": "Tipo",
        "document_type_name": "Tipo de documento",
        "document_number": "Número de documento",
        "email": "Correo electrónico",
        "phone": "Teléfono",
        "fiscal_address": "Domicilio fiscal",
        "is_active": "Activo",
        "created_at": "Creado",
    }

    def to_row(self, obj: Concessionaire) -> dict[str, Any]:
        row = super().to_row(obj)
        row["concessionaire_type_name"] = obj.concessionaire_type.name if obj.concessionaire_type_id else None
        row["document_type_name"] = obj.document_type.name if obj.document_type_id else None
        area_code = obj.phone_area_code.code if obj.phone_area_code_id else None
        row["phone"] = " ".join(part for part in (area_code, obj.phone_number) if part) or None
        return row

    def form_options(self) -> dict[str, Any]:
        return {
            "concessionaire_types": _choice_payload(ConcessionaireType.objects.all()),
            "document_types": _choice_payload(DocumentType.objects.all()),
            "phone_area_codes": [
                {"value": area.pk, "label": area.code}
                for area in PhoneAreaCode.objects.filter(is_active=True).order_by("code")
            ],
        }
