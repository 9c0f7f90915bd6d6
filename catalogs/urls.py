from django.urls import include, path

from core.routing import resource_urlpatterns

from .resources import RESOURCES

app_name = "catalogs"

urlpatterns = [
    path(f"{slug}/", include((resource_urlpatterns(resource), slug.replace("-", "_")), namespace=slug))
    for slug, resource in RESOURCES.items()
]
