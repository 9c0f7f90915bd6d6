from __future__ import annotations

from typing import Optional

from django.http import HttpRequest

from core.resources import Resource

from . import forms
from .models import (
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
from .services import catalogs as services


def _has_active_concessionaires(**lookup) -> bool:
    return Concessionaire.objects.filter(is_active=True, **lookup).exists()


class CatalogResource(Resource):
    index_form_class = forms.CatalogIndexForm


class BankResource(CatalogResource):
    model = Bank
    service_class = services.BankService
    index_form_class = forms.BankIndexForm
    store_form_class = forms.BankForm
    component = "Catalogs/Banks"
    url_namespace = "catalogs:banks"


class ConcessionaireTypeResource(CatalogResource):
    model = ConcessionaireType
    service_class = services.ConcessionaireTypeService
    store_form_class = forms.ConcessionaireTypeForm
    component = "Catalogs/ConcessionaireTypes"
    url_namespace = "catalogs:concessionaire-types"

    @classmethod
    def check_delete(cls, request: HttpRequest, obj: ConcessionaireType) -> Optional[str]:
        if _has_active_concessionaires(concessionaire_type=obj):
            return "No se puede eliminar: hay concesionarios activos asociados a este tipo de concesionario."
        return None


class ContractModalityResource(CatalogResource):
    model = ContractModality
    service_class = services.ContractModalityService
    store_form_class = forms.ContractModalityForm
    component = "Catalogs/ContractModalities"
    url_namespace = "catalogs:contract-modalities"


class ContractStatusResource(CatalogResource):
    model = ContractStatus
    service_class = services.ContractStatusService
    store_form_class = forms.ContractStatusForm
    component = "Catalogs/ContractStatuses"
    url_namespace = "catalogs:contract-statuses"


class ContractTypeResource(CatalogResource):
    model = ContractType
    service_class = services.ContractTypeService
    store_form_class = forms.ContractTypeForm
    component = "Catalogs/ContractTypes"
    url_namespace = "catalogs:contract-types"


class DocumentTypeResource(CatalogResource):
    model = DocumentType
    service_class = services.DocumentTypeService
    store_form_class = forms.DocumentTypeForm
    component = "Catalogs/DocumentTypes"
    url_namespace = "catalogs:document-types"

    @classmethod
    def check_delete(cls, request: HttpRequest, obj: DocumentType) -> Optional[str]:
        if _has_active_concessionaires(document_type=obj):
            return "No se puede eliminar: hay concesionarios activos asociados a este tipo de documento."
        return None


class ExpenseTypeResource(CatalogResource):
    model = ExpenseType
    service_class = services.ExpenseTypeService
    store_form_class = forms.ExpenseTypeForm
    component = "Catalogs/ExpenseTypes"
    url_namespace = "catalogs:expense-types"


class LocalLocationResource(CatalogResource):
    model = LocalLocation
    service_class = services.LocalLocationService
    store_form_class = forms.LocalLocationForm
    component = "Catalogs/LocalLocations"
    url_namespace = "catalogs:local-locations"


class LocalStatusResource(CatalogResource):
    model = LocalStatus
    service_class = services.LocalStatusService
    store_form_class = forms.LocalStatusForm
    component = "Catalogs/LocalStatuses"
    url_namespace = "catalogs:local-statuses"


class LocalTypeResource(CatalogResource):
    model = LocalType
    service_class = services.LocalTypeService
    store_form_class = forms.LocalTypeForm
    component = "Catalogs/LocalTypes"
    url_namespace = "catalogs:local-types"


class MarketResource(CatalogResource):
    model = Market
    service_class = services.MarketService
    index_form_class = forms.MarketIndexForm
    store_form_class = forms.MarketForm
    component = "Catalogs/Markets"
    url_namespace = "catalogs:markets"


class PaymentStatusResource(CatalogResource):
    model = PaymentStatus
    service_class = services.PaymentStatusService
    store_form_class = forms.PaymentStatusForm
    component = "Catalogs/PaymentStatuses"
    url_namespace = "catalogs:payment-statuses"


class PaymentTypeResource(CatalogResource):
    model = PaymentType
    service_class = services.PaymentTypeService
    store_form_class = forms.PaymentTypeForm
    component = "Catalogs/PaymentTypes"
    url_namespace = "catalogs:payment-types"


class PhoneAreaCodeResource(CatalogResource):
    model = PhoneAreaCode
    service_class = services.PhoneAreaCodeService
    index_form_class = forms.PhoneAreaCodeIndexForm
    store_form_class = forms.PhoneAreaCodeForm
    component = "Catalogs/PhoneAreaCodes"
    url_namespace = "catalogs:phone-area-codes"

    @classmethod
    def check_delete(cls, request: HttpRequest, obj: PhoneAreaCode) -> Optional[str]:
        if _has_active_concessionaires(phone_area_code=obj):
            return "No se puede eliminar: hay concesionarios activos asociados a este código de área telefónica."
        return None


class TradeCategoryResource(CatalogResource):
    model = TradeCategory
    service_class = services.TradeCategoryService
    store_form_class = forms.TradeCategoryForm
    component = "Catalogs/TradeCategories"
    url_namespace = "catalogs:trade-categories"


class LocalResource(CatalogResource):
    model = Local
    service_class = services.LocalService
    index_form_class = forms.LocalIndexForm
    store_form_class = forms.LocalForm
    component = "Catalogs/Locals"
    url_namespace = "catalogs:locals"


class ConcessionaireResource(Resource):
    model = Concessionaire
    service_class = services.ConcessionaireService
    index_form_class = forms.ConcessionaireIndexForm
    store_form_class = forms.ConcessionaireForm
    component = "Catalogs/Concessionaires"
    url_namespace = "catalogs:concessionaires"


RESOURCES = {
    "banks": BankResource,
    "concessionaire-types": ConcessionaireTypeResource,
    "concessionaires": ConcessionaireResource,
    "contract-modalities": ContractModalityResource,
    "contract-statuses": ContractStatusResource,
    "contract-types": ContractTypeResource,
    "document-types": DocumentTypeResource,
    "expense-types": ExpenseTypeResource,
    "local-locations": LocalLocationResource,
    "local-statuses": LocalStatusResource,
    "local-types": LocalTypeResource,
    "locals": LocalResource,
    "markets": MarketResource,
    "payment-statuses": PaymentStatusResource,
    "payment-types": PaymentTypeResource,
    "phone-area-codes": PhoneAreaCodeResource,
    "trade-categories": TradeCategoryResource,
}
