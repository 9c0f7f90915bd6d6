from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from django.contrib.auth.models import Permission
from django.db import models
from django.db.models import Count, Prefetch, QuerySet

from core.services.resources import FilterHandler, ResourceService, version_token
from users.models import Role, RolePermission
from users.signals import role_permissions_synced


logger = logging.getLogger(__name__)

USERS_PREVIEW_LIMIT = 10


def permission_label(permission: Permission) -> str:
    return f"{permission.content_type.app_label}.{permission.codename}"


def _permission_condition(values: Iterable[str]) -> models.Q:
    condition = models.Q()
    for value in values:
        app_label, dot, codename = str(value).partition(".")
        if dot:
            condition |= models.Q(permission__content_type__app_label=app_label, permission__codename=codename)
        else:
            condition |= models.Q(permission__codename=value)
    return condition


class RoleService(ResourceService):
    model = Role
    soft_deletes = False
    searchable_fields = ("name", "guard_name")
    allowed_sorts = ("id", "name", "guard_name", "created_at", "permissions_count", "users_count", "is_active")
    export_filename = "roles"
    export_columns = {
        "id": "#",
        "name": "Nombre",
        "guard_name": "Guard",
        "permissions_details": "Permisos",
        "users_details": "Usuarios",
        "is_active": "Estado",
        "created_at": "Creado",
    }

    def base_queryset(self) -> QuerySet:
        return Role.objects.annotate(
            permissions_count=Count("role_permissions", distinct=True),
            users_count=Count("users", distinct=True),
        ).prefetch_related(
            Prefetch(
                "permissions",
                queryset=Permission.objects.select_related("content_type").order_by(
                    "content_type__app_label", "codename"
                ),
            )
        )

    def filter_map(self) -> dict[str, FilterHandler]:
        return {
            "permissions": self._filter_permissions,
            "permissions_count_min": lambda qs, value: qs.filter(permissions_count__gte=value),
            "permissions_count_max": lambda qs, value: qs.filter(permissions_count__lte=value),
            "users_count_min": lambda qs, value: qs.filter(users_count__gte=value),
            "users_count_max": lambda qs, value: qs.filter(users_count__lte=value),
        }

    def _filter_permissions(self, queryset: QuerySet, values: list[str]) -> QuerySet:
        condition = _permission_condition(values)
        if not condition:
            return queryset
        role_ids = RolePermission.objects.filter(condition).values("role_id")
        return queryset.filter(pk__in=role_ids)

    # Rows ---------------------------------------------------------------

    def user_names(self, role: Role) -> list[str]:
        return list(role.users.order_by("name").values_list("name", flat=True)[:USERS_PREVIEW_LIMIT])

    def to_row(self, role: Role) -> dict[str, Any]:
        permissions = [
            {
                "id": permission.pk,
                "name": permission_label(permission),
                "description": permission.name,
            }
            for permission in role.permissions.all()
        ]
        users_count = getattr(role, "users_count", None)
        if users_count is None:
            users_count = role.users.count()
        names = self.user_names(role)
        users_details = ", ".join(names)
        if users_count > len(names):
            users_details = f"{users_details} (+{users_count - len(names)} más)".strip()

        permissions_count = getattr(role, "permissions_count", None)
        return {
            "id": role.pk,
            "name": role.name,
            "guard_name": role.guard_name,
            "permissions": permissions,
            "permissions_ids": [permission["id"] for permission in permissions],
            "permissions_count": len(permissions) if permissions_count is None else permissions_count,
            "users_count": users_count,
            "users": names,
            "permissions_details": ", ".join(p["description"] or p["name"] for p in permissions),
            "users_details": users_details,
            "is_active": role.is_active,
            "created_at": role.created_at,
            "updated_at": role.updated_at,
            "_version": version_token(role.updated_at),
        }

    def get_stats(self) -> dict[str, int]:
        return {
            "total": Role.objects.count(),
            "active": Role.objects.filter(is_active=True).count(),
            "with_permissions": RolePermission.objects.values("role_id").distinct().count(),
        }

    def available_permissions(self) -> list[dict[str, Any]]:
        return [
            {"id": permission.pk, "name": permission_label(permission), "description": permission.name}
            for permission in Permission.objects.select_related("content_type").order_by(
                "content_type__app_label", "codename"
            )
        ]

    def get_index_extras(self) -> dict[str, Any]:
        return {
            "stats": self.get_stats(),
            "availablePermissions": self.available_permissions(),
        }

    def form_options(self) -> dict[str, Any]:
        return {
            "permissions": [
                {
                    "value": permission["id"],
                    "label": permission["description"],
                    "name": permission["name"],
                    "guard": Role.Guard.WEB,
                }
                for permission in self.available_permissions()
            ],
            "guards": [{"value": value, "label": label} for value, label in Role.Guard.choices],
        }

    # Mutations ----------------------------------------------------------

    def assign(self, obj: Role, data: dict[str, Any]) -> Role:
        fields = {key: value for key, value in data.items() if key != "permissions_ids"}
        return super().assign(obj, fields)

    def sync_permissions(self, role: Role, permissions: Optional[Iterable[Permission]]) -> None:
        before = sorted(role.role_permissions.values_list("permission_id", flat=True))
        role.permissions.set(list(permissions or []))
        after = sorted(role.role_permissions.values_list("permission_id", flat=True))
        role_permissions_synced.send(sender=Role, instance=role, before=before, after=after)
        logger.info("Permisos del rol %s sincronizados: %s -> %s", role.pk, before, after)

    def after_create(self, obj: Role, data: dict[str, Any]) -> None:
        self.sync_permissions(obj, data.get("permissions_ids"))

    def after_update(self, obj: Role, data: dict[str, Any]) -> None:
        if "permissions_ids" in data:
            self.sync_permissions(obj, data["permissions_ids"])

    def delete_many(self, roles: Iterable[Role]) -> int:
        count = 0
        for role in roles:
            self.delete(role)
            count += 1
        return count

    def set_active_many(self, roles: Iterable[Role], active: bool) -> int:
        count = 0
        for role in roles:
            self.set_active(role, active)
            count += 1
        return count
