from __future__ import annotations

from datetime import timedelta
from typing import Any, Optional

from django.db.models import Q, QuerySet
from django.utils import timezone

from core.services.resources import FilterHandler, ResourceService

from ..models import Audit


def _like(column: str) -> FilterHandler:
    return lambda queryset, value: queryset.filter(**{f"{column}__icontains": value})


class AuditService(ResourceService):
    """Read-only listing and export of the audit log."""

    model = Audit
    soft_deletes = False
    searchable_fields = ()
    allowed_sorts = ("id", "created_at", "user_id", "event", "auditable_type", "auditable_id", "ip_address", "url")
    default_sort = ("created_at", "desc")
    select_related = ("user",)
    export_filename = "auditoria"
    export_columns = {
        "id": "ID",
        "created_at": "Fecha",
        "user_name": "Usuario",
        "event": "Evento",
        "auditable_type": "Entidad",
        "auditable_id": "ID entidad",
        "ip_address": "IP",
        "url": "URL",
    }

    def apply_search(self, queryset: QuerySet, term: Optional[str]) -> QuerySet:
        term = (term or "").strip()
        if not term:
            return queryset
        return queryset.filter(Q(user__name__icontains=term) | Q(ip_address__icontains=term))

    def filter_map(self) -> dict[str, FilterHandler]:
        return {
            "event": _like("event"),
            "ip_address": _like("ip_address"),
            "url": _like("url"),
            "tags": _like("tags"),
        }

    def to_row(self, audit: Audit) -> dict[str, Any]:
        return {
            "id": audit.pk,
            "created_at": audit.created_at,
            "user_id": audit.user_id,
            "user_name": audit.user.name if audit.user else None,
            "event": audit.event,
            "auditable_type": audit.auditable_type,
            "auditable_id": audit.auditable_id,
            "ip_address": audit.ip_address,
            "url": audit.url,
            "tags": audit.tags,
            "old_values": audit.old_values,
            "new_values": audit.new_values,
            "user_agent": audit.user_agent,
        }

    def get_stats(self) -> dict[str, int]:
        since = timezone.now() - timedelta(days=1)
        return {
            "total": Audit.objects.count(),
            "last24h": Audit.objects.filter(created_at__gte=since).count(),
        }
