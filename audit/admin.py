from __future__ import annotations

from django.contrib import admin

from .models import Audit


@admin.register(Audit)
class AuditAdmin(admin.ModelAdmin):
    list_display = ("created_at", "event", "auditable_type", "auditable_id", "user", "ip_address")
    list_filter = ("event", "auditable_type")
    search_fields = ("user__name", "user__email", "ip_address", "url")
    date_hierarchy = "created_at"
    list_select_related = ("user",)
    readonly_fields = [field.name for field in Audit._meta.fields]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
