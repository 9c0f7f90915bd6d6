from __future__ import annotations

from core.views import ResourceCollectionView, ResourceDetailView


class AuditCollectionView(ResourceCollectionView):
    http_method_names = ["get"]


class AuditDetailView(ResourceDetailView):
    http_method_names = ["get"]
