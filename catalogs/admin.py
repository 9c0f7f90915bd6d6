from __future__ import annotations

from django.contrib import admin

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


class CatalogAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "is_active", "updated_at")
    list_filter = ("is_active",)
    search_fields = ("code", "name")
    ordering = ("code",)
    readonly_fields = ("created_at", "updated_at", "deleted_at")

    def get_queryset(self, request):
        return self.model.all_objects.all()


for catalog in (
    Bank,
    ConcessionaireType,
    ContractModality,
    ContractStatus,
    ContractType,
    DocumentType,
    ExpenseType,
    LocalLocation,
    LocalStatus,
    LocalType,
    Market,
    PaymentStatus,
    PaymentType,
    TradeCategory,
):
    admin.site.register(catalog, CatalogAdmin)


@admin.register(PhoneAreaCode)
class PhoneAreaCodeAdmin(CatalogAdmin):
    list_display = ("code", "is_active", "updated_at")
    search_fields = ("code",)


@admin.register(Local)
class LocalAdmin(CatalogAdmin):
    list_display = ("code", "name", "market", "local_type", "local_status", "area_m2", "is_active")
    list_filter = ("is_active", "market", "local_type", "local_status")
    list_select_related = ("market", "local_type", "local_status")


@admin.register(Concessionaire)
class ConcessionaireAdmin(admin.ModelAdmin):
    list_display = ("full_name", "document_number", "email", "concessionaire_type", "is_active")
    list_filter = ("is_active", "concessionaire_type")
    search_fields = ("full_name", "document_number", "email")
    ordering = ("full_name",)
    readonly_fields = ("created_at", "updated_at", "deleted_at")
    list_select_related = ("concessionaire_type",)

    def get_queryset(self, request):
        return Concessionaire.all_objects.select_related("concessionaire_type")
