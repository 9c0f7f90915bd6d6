from __future__ import annotations

from core.listing import DateRangeField, FilterCharField, FilterIntegerField, IndexQueryForm


class AuditIndexForm(IndexQueryForm):
    allowed_sorts = ("id", "created_at", "user_id", "event", "auditable_type", "auditable_id", "ip_address", "url")
    default_per_page = 25
    max_per_page = 100
    filter_fields = {
        "user_id": FilterIntegerField(required=False),
        "event": FilterCharField(required=False, max_length=255),
        "auditable_type": FilterCharField(required=False, max_length=255),
        "auditable_id": FilterIntegerField(required=False),
        "ip_address": FilterCharField(required=False, max_length=45),
        "url": FilterCharField(required=False, max_length=2048),
        "tags": FilterCharField(required=False, max_length=255),
        "created_between": DateRangeField(),
    }
