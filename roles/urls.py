from core.routing import resource_urlpatterns

from .resources import RoleResource
from .views import RoleBulkView, RoleDetailView, RoleSetActiveView

app_name = "roles"

urlpatterns = resource_urlpatterns(
    RoleResource,
    detail=RoleDetailView,
    set_active=RoleSetActiveView,
    bulk=RoleBulkView,
)
