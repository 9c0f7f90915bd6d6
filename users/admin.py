from __future__ import annotations

from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin
from django.utils.translation import gettext_lazy as _

from .forms import UserChangeForm, UserCreationForm
from .models import Role, RolePermission, User


class RolePermissionInline(admin.TabularInline):
    model = RolePermission
    extra = 0
    raw_id_fields = ("permission",)


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("name", "guard_name", "is_active", "permisos_count")
    list_filter = ("is_active", "guard_name")
    search_fields = ("name",)
    inlines = [RolePermissionInline]

    @admin.display(description="Cantidad de permisos")
    def permisos_count(self, obj: Role) -> int:
        return obj.role_permissions.count()


@admin.action(description="Activar usuarios seleccionados")
def activar_usuarios(modeladmin, request, queryset):
    actualizados = queryset.update(is_active=True)
    messages.success(request, f"{actualizados} usuarios activados.")


@admin.action(description="Desactivar usuarios seleccionados")
def desactivar_usuarios(modeladmin, request, queryset):
    actualizados = queryset.update(is_active=False)
    messages.success(request, f"{actualizados} usuarios desactivados.")


@admin.register(User)
class BackofficeUserAdmin(UserAdmin):
    add_form = UserCreationForm
    form = UserChangeForm
    model = User

    list_display = ("email", "name", "listar_roles", "is_active", "is_staff")
    list_filter = ("is_active", "is_staff", "roles")
    search_fields = ("email", "name")
    ordering = ("name",)

    fieldsets = (
        (_("Credenciales"), {"fields": ("email", "password")}),
        (_("Informacion personal"), {"fields": ("name",)}),
        (
            _("Roles y permisos"),
            {"fields": ("roles", "groups", "user_permissions", "is_active", "is_staff", "is_superuser")},
        ),
        (_("Fechas"), {"fields": ("last_login", "date_joined")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "name", "roles", "is_active", "is_staff", "password1", "password2"),
            },
        ),
    )

    filter_horizontal = ("roles", "groups", "user_permissions")
    readonly_fields = ("last_login", "date_joined")
    actions = (activar_usuarios, desactivar_usuarios)

    @admin.display(description="Roles")
    def listar_roles(self, obj: User) -> str:
        return ", ".join(role.name for role in obj.roles.all())
