from __future__ import annotations

from django.contrib.auth.backends import ModelBackend
from django.contrib.auth.models import Permission


class RoleAwareModelBackend(ModelBackend):
    """Authentication backend that also grants the permissions of the user's active roles."""

    cache_name = "_role_perm_cache"

    def get_role_permissions(self, user_obj, obj=None) -> set[str]:
        if (
            not getattr(user_obj, "is_active", False)
            or getattr(user_obj, "is_anonymous", False)
            or obj is not None
        ):
            return set()

        cached = getattr(user_obj, self.cache_name, None)
        if cached is not None:
            return cached

        qs = (
            Permission.objects.filter(
                role_permissions__role__users=user_obj,
                role_permissions__role__is_active=True,
            )
            .values_list("content_type__app_label", "codename")
            .order_by()
        )
        perms = {f"{app_label}.{codename}" for app_label, codename in qs}
        setattr(user_obj, self.cache_name, perms)
        return perms

    def get_all_permissions(self, user_obj, obj=None):
        perms = super().get_all_permissions(user_obj, obj=obj)
        return perms | self.get_role_permissions(user_obj, obj=obj)
