"""URL configuration for the backoffice project."""
from django.contrib import admin
from django.urls import include, path
from django.views.generic import RedirectView

admin.site.site_header = "Administración del back-office"
admin.site.site_title = "Administración del back-office"
admin.site.index_title = "Panel de administración"

urlpatterns = [
    path("admin/", admin.site.urls),
    path("", RedirectView.as_view(pattern_name="roles:index", permanent=False)),
    path("catalogs/", include("catalogs.urls", namespace="catalogs")),
    path("roles/", include("roles.urls", namespace="roles")),
    path("users/", include("users.urls", namespace="users")),
    path("audits/", include("audit.urls", namespace="audits")),
]
