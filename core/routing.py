from __future__ import annotations

from typing import Iterable, Optional

from django.urls import path

from . import views
from .resources import Resource


DEFAULT_VIEWS = {
    "collection": views.ResourceCollectionView,
    "create": views.ResourceCreateView,
    "detail": views.ResourceDetailView,
    "edit": views.ResourceEditView,
    "set_active": views.ResourceSetActiveView,
    "bulk": views.ResourceBulkView,
    "export": views.ResourceExportView,
    "selected": views.ResourceSelectedView,
}

ROUTES = (
    ("collection", "", "index"),
    ("create", "create/", "create"),
    ("bulk", "bulk/", "bulk"),
    ("export", "export/", "export"),
    ("selected", "selected/", "selected"),
    ("detail", "<int:pk>/", "show"),
    ("set_active", "<int:pk>/active/", "set-active"),
    ("edit", "<int:pk>/edit/", "edit"),
)


def resource_urlpatterns(
    resource: type[Resource],
    *,
    only: Optional[Iterable[str]] = None,
    **overrides,
) -> list:
    """
    Build the standard route set for ``resource``.

    ``only`` limits the routes to the given view keys and ``overrides``
    replaces view classes by key.
    """

    view_classes = {**DEFAULT_VIEWS, **overrides}
    keys = set(only) if only is not None else set(view_classes)
    if not resource.has_edit_route:
        keys.discard("edit")

    return [
        path(route, view_classes[key].as_view(resource=resource), name=name)
        for key, route, name in ROUTES
        if key in keys
    ]
