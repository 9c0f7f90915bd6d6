from __future__ import annotations

import logging

from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.exceptions import PermissionDenied
from django.urls import reverse_lazy

from core.policies import ResourcePolicy


logger = logging.getLogger(__name__)


class BackofficeLoginRequiredMixin(LoginRequiredMixin):
    """Send anonymous visitors to the login page."""

    login_url = reverse_lazy("admin:login")
    raise_exception = False


class PolicyRequiredMixin(BackofficeLoginRequiredMixin):
    """Authorize each action against the resource policy before touching data."""

    policy_class = ResourcePolicy
    policy_model = None

    def get_policy(self) -> ResourcePolicy:
        return self.policy_class(self.policy_model)

    def can(self, ability: str, obj=None) -> bool:
        return self.get_policy().allows(self.request.user, ability, obj)

    def authorize(self, ability: str, obj=None) -> None:
        if not self.can(ability, obj):
            logger.warning(
                "Acceso denegado a %s (%s) para el usuario %s",
                ability,
                self.policy_model._meta.label,
                getattr(self.request.user, "pk", None),
            )
            raise PermissionDenied("No tienes permisos para realizar esta acción.")

    def authorize_bulk(self, action: str) -> None:
        if not self.get_policy().allows_bulk(self.request.user, action):
            raise PermissionDenied("No tienes permisos para realizar esta acción.")
