from __future__ import annotations

from core.forms import BulkActionForm
from core.resources import Resource
from users.models import Role

from .forms import RoleBulkActionForm, RoleForm, RoleIndexForm, RoleSetActiveForm
from .services.roles import RoleService


class RoleResource(Resource):
    model = Role
    service_class = RoleService
    index_form_class = RoleIndexForm
    store_form_class = RoleForm
    set_active_form_class = RoleSetActiveForm
    bulk_form_class = RoleBulkActionForm
    bulk_actions = (BulkActionForm.ACTION_DELETE, BulkActionForm.ACTION_SET_ACTIVE)
    component = "Roles"
    url_namespace = "roles"

    created_message = "Rol creado exitosamente."
    updated_message = "Rol actualizado exitosamente."

    @classmethod
    def set_active_message(cls, obj: Role, active: bool) -> str:
        state = "activado" if active else "desactivado"
        return f"El rol '{obj.name}' ha sido {state} correctamente."

    @classmethod
    def destroy_message(cls, obj: Role) -> str:
        return f"El rol '{obj.name}' ha sido eliminado correctamente."
