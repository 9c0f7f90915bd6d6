from __future__ import annotations

from django import forms
from django.core.validators import MinLengthValidator

from core.forms import CodedResourceForm, ResourceModelForm
from core.listing import DateRangeField, FilterCharField, FilterIntegerField, IndexQueryForm, NumberRangeField

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


CATALOG_FIELDS = ("code", "name", "is_active")


class CatalogForm(CodedResourceForm):
    name_min_length = 2

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        name_field = self.fields.get("name")
        if name_field is not None and self.name_min_length:
            name_field.validators.append(MinLengthValidator(self.name_min_length))


class BankForm(CatalogForm):
    upper_fields = ("code", "swift_bic")

    class Meta:
        model = Bank
        fields = ("code", "name", "swift_bic", "is_active")


class ConcessionaireTypeForm(CatalogForm):
    class Meta:
        model = ConcessionaireType
        fields = CATALOG_FIELDS


class ContractModalityForm(CatalogForm):
    class Meta:
        model = ContractModality
        fields = CATALOG_FIELDS


class ContractStatusForm(CatalogForm):
    class Meta:
        model = ContractStatus
        fields = CATALOG_FIELDS


class ContractTypeForm(CatalogForm):
    class Meta:
        model = ContractType
        fields = CATALOG_FIELDS


class DocumentTypeForm(CatalogForm):
    class Meta:
        model = DocumentType
        fields = ("code", "name", "mask", "is_active")


class ExpenseTypeForm(CatalogForm):
    class Meta:
        model = ExpenseType
        fields = ("code", "name", "description", "is_active")


class LocalLocationForm(CatalogForm):
    class Meta:
        model = LocalLocation
        fields = CATALOG_FIELDS


class LocalStatusForm(CatalogForm):
    class Meta:
        model = LocalStatus
        fields = CATALOG_FIELDS


class LocalTypeForm(CatalogForm):
    class Meta:
        model = LocalType
        fields = CATALOG_FIELDS


class MarketForm(CatalogForm):
    class Meta:
        model = Market
        fields = ("code", "name", "address", "is_active")


class PaymentStatusForm(CatalogForm):
    class Meta:
        model = PaymentStatus
        fields = CATALOG_FIELDS


class PaymentTypeForm(CatalogForm):
    class Meta:
        model = PaymentType
        fields = CATALOG_FIELDS


class PhoneAreaCodeForm(CodedResourceForm):
    code_pattern = r"^[0-9]+$"
    code_pattern_message = "El código de área solo admite dígitos."
    code_min_length = None

    class Meta:
        model = PhoneAreaCode
        fields = ("code", "is_active")


class TradeCategoryForm(CatalogForm):
    code_pattern = None
    code_min_length = None
    name_min_length = None

    class Meta:
        model = TradeCategory
        fields = ("code", "name", "description", "is_active")


class LocalForm(CatalogForm):
    code_pattern = r"^[A-Z]-[0-9]{2}$"
    code_pattern_message = "El código debe tener el formato A-01."
    code_min_length = 4
    name_min_length = None

    class Meta:
        model = Local
        fields = ("code", "name", "market", "local_type", "local_location", "area_m2", "is_active")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["code"].max_length = 4
        self.fields["code"].widget.attrs["maxlength"] = "4"

    def clean_code(self):
        code = super().clean_code()
        if len(code) != 4:
            raise forms.ValidationError("El código debe tener exactamente 4 caracteres.")
        return code


class ConcessionaireForm(ResourceModelForm):
    upper_fields = ("document_number",)
    lower_fields = ("email",)

    class Meta:
        model = Concessionaire
        fields = (
            "concessionaire_type",
            "full_name",
            "document_type",
            "document_number",
            "fiscal_address",
            "email",
            "phone_area_code",
            "phone_number",
            "is_active",
        )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["full_name"].validators.append(MinLengthValidator(2))
        self.fields["fiscal_address"].validators.append(MinLengthValidator(4))

    def _live_duplicates(self, **lookup):
        queryset = Concessionaire.objects.filter(**lookup)
        if self.instance.pk:
            queryset = queryset.exclude(pk=self.instance.pk)
        return queryset.exists()

    def clean_document_number(self):
        document_number = (self.cleaned_data.get("document_number") or "").strip().upper()
        if self._live_duplicates(document_number__iexact=document_number):
            raise forms.ValidationError("El número de documento ya está registrado.", code="unique")
        return document_number

    def clean_email(self):
        email = (self.cleaned_data.get("email") or "").strip().lower()
        if self._live_duplicates(email__iexact=email):
            raise forms.ValidationError("El correo electrónico ya está registrado.", code="unique")
        return email


class CatalogIndexForm(IndexQueryForm):
    allowed_sorts = ("id", "code", "name", "is_active", "created_at")
    filter_fields = {
        "is_active": forms.NullBooleanField(required=False),
        "created_between": DateRangeField(),
        "code_like": FilterCharField(required=False, max_length=50),
        "name_like": FilterCharField(required=False, max_length=120),
    }


class PhoneAreaCodeIndexForm(IndexQueryForm):
    allowed_sorts = ("id", "code", "is_active", "created_at")
    filter_fields = {
        "is_active": forms.NullBooleanField(required=False),
        "created_between": DateRangeField(),
        "code_like": FilterCharField(required=False, max_length=50),
    }


class BankIndexForm(CatalogIndexForm):
    filter_fields = {
        **CatalogIndexForm.filter_fields,
        "swift_bic_like": FilterCharField(required=False, max_length=11),
    }


class MarketIndexForm(CatalogIndexForm):
    filter_fields = {
        **CatalogIndexForm.filter_fields,
        "address_like": FilterCharField(required=False, max_length=255),
    }


class LocalIndexForm(CatalogIndexForm):
    filter_fields = {
        **CatalogIndexForm.filter_fields,
        "market_id": FilterIntegerField(required=False, min_value=1),
        "local_type_id": FilterIntegerField(required=False, min_value=1),
        "local_status_id": FilterIntegerField(required=False, min_value=1),
        "local_location_id": FilterIntegerField(required=False, min_value=1),
        "area_m2_between": NumberRangeField(min_value=0),
    }


class ConcessionaireIndexForm(IndexQueryForm):
    allowed_sorts = ("id", "full_name", "email", "document_number", "is_active", "created_at")
    filter_fields = {
        "is_active": forms.NullBooleanField(required=False),
        "created_between": DateRangeField(),
        "full_name_like": FilterCharField(required=False, max_length=160),
        "email_like": FilterCharField(required=False, max_length=160),
        "document_number_like": FilterCharField(required=False, max_length=30),
        "concessionaire_type_id": FilterIntegerField(required=False, min_value=1),
        "document_type_id": FilterIntegerField(required=False, min_value=1),
    }
