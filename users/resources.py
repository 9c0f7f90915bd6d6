from __future__ import annotations

from core.forms import BulkActionForm
from core.resources import Resource

from .forms import UserForm, UserIndexForm, UserStoreForm
from .models import User
from .services.users import UserService


class UserResource(Resource):
    model = User
    service_class = UserService
    index_form_class = UserIndexForm
    store_form_class = UserStoreForm
    update_form_class = UserForm
    bulk_actions = (BulkActionForm.ACTION_DELETE, BulkActionForm.ACTION_SET_ACTIVE)
    component = "Users"
    url_namespace = "users"

    created_message = "Usuario creado exitosamente."
    updated_message = "Usuario actualizado exitosamente."

    @classmethod
    def set_active_message(cls, obj: User, active: bool) -> str:
        state = "activado" if active else "desactivado"
        return f"El usuario '{obj.name}' ha sido {state} correctamente."

    @classmethod
    def destroy_message(cls, obj: User) -> str:
        return f"El usuario '{obj.name}' ha sido eliminado correctamente."
