"""
Business rules that decide which roles a delete or activation may touch.

Bulk actions partition the selected roles into the ones the action applies to
and the ones it skips (with a reason per role id). Single-role actions use the
same rules and stop at the first blocking reason.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from django.conf import settings
from django.contrib import messages
from django.contrib.auth.models import Permission
from django.db.models import Count, Q

from core.exceptions import BulkActionError
from users.models import Role


SKIP_PROTECTED = "Rol protegido"
SKIP_HAS_USERS = "Tiene usuarios asignados"
SKIP_REQUIRE_INACTIVE = "Debe desactivarse antes de eliminar"
SKIP_HAS_PERMISSIONS = "Tiene permisos; use force=true"
SKIP_LAST_ADMIN = "Último rol administrador no puede eliminarse"
SKIP_ALREADY_ACTIVE = "Ya está activo"
SKIP_ALREADY_INACTIVE = "Ya está inactivo"
SKIP_HAS_ACTIVE_USERS = "Tiene usuarios activos asignados"

DELETE_PROTECTED_MESSAGE = "No se puede eliminar un rol protegido del sistema."
DELETE_HAS_USERS_MESSAGE = "No se puede eliminar un rol que tiene usuarios asignados."
DELETE_REQUIRE_INACTIVE_MESSAGE = "Debe desactivar el rol antes de eliminarlo."
DELETE_HAS_PERMISSIONS_MESSAGE = "El rol tiene permisos asignados. Confirme eliminación forzada (force=true)."
DELETE_LAST_ADMIN_MESSAGE = "No se puede eliminar el último rol administrador del sistema."
DEACTIVATE_PROTECTED_MESSAGE = "No se puede desactivar un rol protegido del sistema."
DEACTIVATE_HAS_USERS_MESSAGE = "No se puede desactivar un rol que tiene usuarios asignados."


@dataclass(slots=True)
class BulkPartition:
    applicable: list[Role] = field(default_factory=list)
    skipped: dict[int, str] = field(default_factory=dict)

    @property
    def applicable_count(self) -> int:
        return len(self.applicable)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


@dataclass(slots=True, frozen=True)
class RoleBlocker:
    message: str
    level: int = messages.ERROR


def role_rules() -> dict[str, Any]:
    return getattr(settings, "ROLE_RULES", {})


def _deletion_rule(name: str) -> bool:
    return bool(role_rules().get("deletion", {}).get(name, False))


def _activation_rule(name: str) -> bool:
    return bool(role_rules().get("activation", {}).get(name, True))


def is_protected(role: Role) -> bool:
    return role.name in set(role_rules().get("protected", []))


def critical_permission_ids() -> list[int]:
    """Ids of the configured critical permissions that exist in the database."""

    condition = Q()
    for perm in role_rules().get("critical_permissions", []):
        app_label, _, codename = perm.partition(".")
        condition |= Q(content_type__app_label=app_label, codename=codename)
    if not condition:
        return []
    return sorted(Permission.objects.filter(condition).values_list("pk", flat=True))


def admin_role_ids(permission_ids: Optional[list[int]] = None) -> set[int]:
    """Roles that hold every critical permission."""

    permission_ids = critical_permission_ids() if permission_ids is None else permission_ids
    if not permission_ids:
        return set()
    queryset = Role.objects.annotate(
        critical_total=Count(
            "role_permissions__permission",
            filter=Q(role_permissions__permission_id__in=permission_ids),
            distinct=True,
        )
    ).filter(critical_total=len(permission_ids))
    return set(queryset.values_list("pk", flat=True))


def partition_roles_for_delete(roles: Iterable[Role], *, force: bool = False) -> BulkPartition:
    partition = BulkPartition()
    require_inactive = _deletion_rule("require_inactive")
    block_if_has_permissions = _deletion_rule("block_if_has_permissions")

    for role in roles:
        if is_protected(role):
            partition.skipped[role.pk] = SKIP_PROTECTED
        elif role.users.exists():
            partition.skipped[role.pk] = SKIP_HAS_USERS
        elif require_inactive and role.is_active:
            partition.skipped[role.pk] = SKIP_REQUIRE_INACTIVE
        elif block_if_has_permissions and not force and role.role_permissions.exists():
            partition.skipped[role.pk] = SKIP_HAS_PERMISSIONS
        else:
            partition.applicable.append(role)

    # At least one role holding every critical permission must survive.
    admins = admin_role_ids()
    if admins:
        doomed_admins = [role for role in partition.applicable if role.pk in admins]
        if doomed_admins and len(admins) == len(doomed_admins):
            kept = doomed_admins[0]
            partition.applicable = [role for role in partition.applicable if role.pk != kept.pk]
            partition.skipped[kept.pk] = SKIP_LAST_ADMIN
    return partition


def partition_roles_for_set_active(roles: Iterable[Role], *, active: bool) -> BulkPartition:
    partition = BulkPartition()
    block_if_has_users = _activation_rule("block_deactivate_if_has_users")

    for role in roles:
        if is_protected(role):
            partition.skipped[role.pk] = SKIP_PROTECTED
        elif role.is_active == active:
            partition.skipped[role.pk] = SKIP_ALREADY_ACTIVE if active else SKIP_ALREADY_INACTIVE
        elif not active and block_if_has_users and role.users.exists():
            partition.skipped[role.pk] = SKIP_HAS_ACTIVE_USERS
        else:
            partition.applicable.append(role)
    return partition


def partition_roles(action: str, roles: Iterable[Role], **options) -> BulkPartition:
    if action == "delete":
        return partition_roles_for_delete(roles, force=bool(options.get("force")))
    if action == "setActive":
        if options.get("active") is None:
            raise BulkActionError("Indica el estado que deseas aplicar.")
        return partition_roles_for_set_active(roles, active=bool(options["active"]))
    raise BulkActionError(f"Acción masiva no soportada para roles: {action}")


def delete_blocker(role: Role, *, force: bool = False) -> Optional[RoleBlocker]:
    """First reason that prevents deleting ``role``, if any."""

    if is_protected(role):
        return RoleBlocker(DELETE_PROTECTED_MESSAGE)
    if role.users.exists():
        return RoleBlocker(DELETE_HAS_USERS_MESSAGE)
    if _deletion_rule("require_inactive") and role.is_active:
        return RoleBlocker(DELETE_REQUIRE_INACTIVE_MESSAGE)
    if _deletion_rule("block_if_has_permissions") and not force and role.role_permissions.exists():
        return RoleBlocker(DELETE_HAS_PERMISSIONS_MESSAGE, level=messages.WARNING)

    permission_ids = critical_permission_ids()
    admins = admin_role_ids(permission_ids)
    if role.pk in admins and len(admins) == 1:
        return RoleBlocker(DELETE_LAST_ADMIN_MESSAGE)
    return None


def deactivate_blocker(role: Role, *, active: bool) -> Optional[RoleBlocker]:
    """First reason that prevents switching ``role`` to ``active``, if any."""

    if active:
        return None
    if _activation_rule("block_deactivate_protected") and is_protected(role):
        return RoleBlocker(DEACTIVATE_PROTECTED_MESSAGE)
    if _activation_rule("block_deactivate_if_has_users") and role.users.exists():
        return RoleBlocker(DEACTIVATE_HAS_USERS_MESSAGE)
    return None
