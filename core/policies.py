from __future__ import annotations

from typing import Optional

from django.db import models


class ResourcePolicy:
    """Map resource abilities onto Django permission codenames for one model."""

    ABILITY_ACTIONS = {
        "view_any": "view",
        "view": "view",
        "view_selected": "view",
        "create": "add",
        "update": "change",
        "set_active": "set_active",
        "delete": "delete",
        "restore": "restore",
        "export": "export",
    }
    BULK_ACTIONS = {
        "delete": "delete",
        "restore": "restore",
        "setActive": "set_active",
    }

    def __init__(self, model: type[models.Model]) -> None:
        self.model = model

    def permission_for(self, ability: str) -> str:
        try:
            action = self.ABILITY_ACTIONS[ability]
        except KeyError:
            raise ValueError(f"Habilidad desconocida: {ability}") from None
        return self._codename(action)

    def _codename(self, action: str) -> str:
        opts = self.model._meta
        return f"{opts.app_label}.{action}_{opts.model_name}"

    def allows(self, user, ability: str, obj: Optional[models.Model] = None) -> bool:
        if not user or not user.is_authenticated or not user.is_active:
            return False
        return user.has_perm(self.permission_for(ability))

    def allows_bulk(self, user, action: str) -> bool:
        codename_action = self.BULK_ACTIONS.get(action)
        if codename_action is None:
            return False
        if not user or not user.is_authenticated or not user.is_active:
            return False
        return user.has_perm(self._codename(codename_action))

    def abilities(self, user) -> dict[str, bool]:
        return {ability: self.allows(user, ability) for ability in self.ABILITY_ACTIONS}
