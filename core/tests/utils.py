from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission

from users.models import Role


def grant(role: Role, *perms: str) -> None:
    """Attach ``app_label.codename`` permissions to ``role``."""

    for perm in perms:
        app_label, codename = perm.split(".", 1)
        role.permissions.add(
            Permission.objects.get(content_type__app_label=app_label, codename=codename)
        )


def create_user_with_perms(email: str, *perms: str, role_name: str | None = None):
    user = get_user_model().objects.create_user(email=email, password="test123", name="Usuario Prueba")
    role = Role.objects.create(name=role_name or f"rol-{email}")
    grant(role, *perms)
    user.roles.add(role)
    return user


def resource_perms(app_label: str, model_name: str, *actions: str) -> list[str]:
    actions = actions or ("add", "change", "delete", "view", "export", "set_active", "restore")
    return [f"{app_label}.{action}_{model_name}" for action in actions]
