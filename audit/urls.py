from core.routing import resource_urlpatterns

from .resources import AuditResource
from .views import AuditCollectionView, AuditDetailView

app_name = "audits"

urlpatterns = resource_urlpatterns(
    AuditResource,
    only=("collection", "detail", "export", "selected"),
    collection=AuditCollectionView,
    detail=AuditDetailView,
)
