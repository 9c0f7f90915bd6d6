from core.routing import resource_urlpatterns

from .resources import UserResource

app_name = "users"

urlpatterns = resource_urlpatterns(UserResource)
