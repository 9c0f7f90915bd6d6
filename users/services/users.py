"""
User management on top of :class:`core.services.resources.ResourceService`.

Users are removed for good. Deleting or deactivating a user goes through the
rules configured in ``settings.USER_RULES``: nobody may remove or deactivate
their own account, deletion requires the user to be inactive first, and the
last holder of the admin role is kept.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from django.conf import settings
from django.db.models import Count, F, QuerySet

from core.exceptions import DomainActionError
from core.services.resources import FilterHandler, ResourceService, version_token
from users.models import Role, User


logger = logging.getLogger(__name__)

SELF_DELETE_MESSAGE = "No puedes eliminar tu propio usuario."
DELETE_REQUIRE_INACTIVE_MESSAGE = "Debe desactivar el usuario antes de eliminarlo."
DELETE_LAST_ADMIN_MESSAGE = "No se puede eliminar al último administrador del sistema."
SELF_DEACTIVATE_MESSAGE = "No puedes desactivar tu propio usuario."
DEACTIVATE_LAST_ADMIN_MESSAGE = "No se puede desactivar al último administrador."
SET_ACTIVE_FORBIDDEN_MESSAGE = "No tienes permiso para cambiar el estado activo del usuario."


def user_rules() -> dict[str, Any]:
    return getattr(settings, "USER_RULES", {})


def _rule(section: str, name: str, default: bool = False) -> bool:
    return bool(user_rules().get(section, {}).get(name, default))


def is_last_admin(user: User) -> bool:
    """True when ``user`` holds the admin role and nobody else does."""

    admin_role = user_rules().get("admin_role_name", "admin")
    if not user.roles.filter(name=admin_role).exists():
        return False
    return not User.objects.filter(roles__name=admin_role).exclude(pk=user.pk).exists()


class UserService(ResourceService):
    model = User
    soft_deletes = False
    searchable_fields = ("name", "email")
    allowed_sorts = ("id", "name", "email", "is_active", "created_at", "roles_count")
    export_filename = "users"
    export_columns = {
        "id": "#",
        "name": "Nombre",
        "email": "Email",
        "roles_count": "Roles",
        "is_active": "Estado",
        "created_at": "Creado",
    }

    def base_queryset(self) -> QuerySet:
        return User.objects.annotate(
            roles_count=Count("roles", distinct=True),
            created_at=F("date_joined"),
        ).prefetch_related("roles")

    def filter_map(self) -> dict[str, FilterHandler]:
        return {
            "name": lambda qs, value: qs.filter(name__icontains=value),
            "email": lambda qs, value: qs.filter(email__icontains=value),
            "role_id": self._filter_role,
            "created_between": self._filter_created,
        }

    def _filter_role(self, queryset: QuerySet, role_id: int) -> QuerySet:
        members = User.roles.through.objects.filter(role_id=role_id).values("user_id")
        return queryset.filter(pk__in=members)

    def _filter_created(self, queryset: QuerySet, bounds: dict[str, Any]) -> QuerySet:
        if bounds.get("from") is not None:
            queryset = queryset.filter(date_joined__date__gte=bounds["from"])
        if bounds.get("to") is not None:
            queryset = queryset.filter(date_joined__date__lte=bounds["to"])
        return queryset

    # Rows ---------------------------------------------------------------

    def to_row(self, user: User) -> dict[str, Any]:
        roles = sorted(user.roles.all(), key=lambda role: role.name)
        roles_count = getattr(user, "roles_count", None)
        return {
            "id": user.pk,
            "name": user.name,
            "email": user.email,
            "is_active": user.is_active,
            "roles": [role.name for role in roles],
            "roles_count": len(roles) if roles_count is None else roles_count,
            "created_at": user.date_joined,
            "_version": version_token(user.updated_at),
        }

    def to_item(self, user: User) -> dict[str, Any]:
        if not user.pk:
            return {"name": None, "email": None, "is_active": True, "roles_ids": []}
        item = self.to_row(user)
        roles = sorted(user.roles.all(), key=lambda role: role.name)
        item["roles"] = [{"id": role.pk, "name": role.name} for role in roles]
        item["roles_ids"] = [role.pk for role in roles]
        item["updated_at"] = user.updated_at
        return item

    def get_stats(self) -> dict[str, int]:
        total = User.objects.count()
        inactive = User.objects.filter(is_active=False).count()
        return {"total": total, "inactive": inactive, "active": max(0, total - inactive)}

    def role_options(self) -> list[dict[str, Any]]:
        return [{"id": pk, "name": name} for pk, name in Role.objects.order_by("name").values_list("pk", "name")]

    def get_index_extras(self) -> dict[str, Any]:
        return {"stats": self.get_stats(), "availableRoles": self.role_options()}

    def form_options(self) -> dict[str, Any]:
        return {"roleOptions": self.role_options()}

    # Rules --------------------------------------------------------------

    def _is_actor(self, user: User) -> bool:
        return self.actor is not None and getattr(self.actor, "pk", None) == user.pk

    def delete_blocker(self, user: User) -> Optional[str]:
        if self._is_actor(user):
            return SELF_DELETE_MESSAGE
        if _rule("deletion", "require_inactive") and user.is_active:
            return DELETE_REQUIRE_INACTIVE_MESSAGE
        if _rule("deletion", "block_if_last_admin") and is_last_admin(user):
            return DELETE_LAST_ADMIN_MESSAGE
        return None

    def deactivate_blocker(self, user: User) -> Optional[str]:
        if _rule("activation", "block_self_deactivate", default=True) and self._is_actor(user):
            return SELF_DEACTIVATE_MESSAGE
        if _rule("activation", "block_deactivate_if_last_admin") and is_last_admin(user):
            return DEACTIVATE_LAST_ADMIN_MESSAGE
        return None

    # Mutations ----------------------------------------------------------

    def assign(self, obj: User, data: dict[str, Any]) -> User:
        fields = {key: value for key, value in data.items() if key not in ("password", "roles_ids")}
        super().assign(obj, fields)
        if data.get("password"):
            obj.set_password(data["password"])
        return obj

    def before_update(self, obj: User, data: dict[str, Any]) -> dict[str, Any]:
        desired = data.get("is_active")
        if desired is not None and desired != obj.is_active:
            if self.actor is None or not self.actor.has_perm("users.set_active_user"):
                raise DomainActionError(SET_ACTIVE_FORBIDDEN_MESSAGE, field="is_active")
        return data

    def sync_roles(self, user: User, roles: Optional[Iterable[Role]]) -> None:
        roles = list(roles or [])
        user.roles.set(roles)
        logger.info("Roles del usuario %s sincronizados: %s", user.pk, [role.pk for role in roles])

    def after_create(self, obj: User, data: dict[str, Any]) -> None:
        if "roles_ids" in data:
            self.sync_roles(obj, data["roles_ids"])

    def after_update(self, obj: User, data: dict[str, Any]) -> None:
        if "roles_ids" in data:
            self.sync_roles(obj, data["roles_ids"])

    def before_delete(self, obj: User) -> None:
        blocker = self.delete_blocker(obj)
        if blocker:
            raise DomainActionError(blocker)

    def set_active(self, obj: User, active: bool) -> User:
        if not active and obj.is_active:
            blocker = self.deactivate_blocker(obj)
            if blocker:
                raise DomainActionError(blocker)
        return super().set_active(obj, active)
