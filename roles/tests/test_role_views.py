from __future__ import annotations

import csv
import io
import json

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.contrib.messages import get_messages
from django.test import TestCase
from django.urls import reverse

from core.pages import FORM_ERRORS_SESSION_KEY
from core.tests.utils import create_user_with_perms, grant
from users.models import Role


ROLE_PERMS = (
    "users.add_role",
    "users.change_role",
    "users.delete_role",
    "users.view_role",
    "users.export_role",
    "users.set_active_role",
)


def _messages(response) -> list[tuple[str, str]]:
    return [(message.level_tag, str(message)) for message in get_messages(response.wsgi_request)]


class RoleViewTests(TestCase):
    def setUp(self) -> None:
        self.actor = create_user_with_perms("roles@example.com", *ROLE_PERMS, role_name="gestor")
        self.client.force_login(self.actor)
        self.index_url = reverse("roles:index")
        self.view_bank = Permission.objects.get(content_type__app_label="catalogs", codename="view_bank")
        self.add_bank = Permission.objects.get(content_type__app_label="catalogs", codename="add_bank")

    def _member(self, email: str, name: str, role: Role):
        user = get_user_model().objects.create_user(email=email, password="test123", name=name)
        user.roles.add(role)
        return user

    def test_index_rows_include_counts_and_details(self) -> None:
        role = Role.objects.create(name="cajero")
        grant(role, "catalogs.view_bank")
        self._member("b@example.com", "Beatriz", role)
        self._member("a@example.com", "Alberto", role)

        response = self.client.get(self.index_url, {"q": "caj"})

        props = response.json()["props"]
        self.assertEqual("Roles/Index", response.json()["component"])
        self.assertEqual(10, props["query"]["perPage"])
        row = props["rows"][0]
        self.assertEqual("cajero", row["name"])
        self.assertEqual(1, row["permissions_count"])
        self.assertEqual(2, row["users_count"])
        self.assertEqual(["Alberto", "Beatriz"], row["users"])
        self.assertEqual("Alberto, Beatriz", row["users_details"])
        self.assertEqual([self.view_bank.pk], row["permissions_ids"])
        self.assertEqual("catalogs.view_bank", row["permissions"][0]["name"])
        self.assertEqual({"total": 2, "active": 2, "with_permissions": 2}, props["stats"])
        self.assertTrue(props["availablePermissions"])

    def test_index_filters_by_permission_and_user_counts(self) -> None:
        with_bank = Role.objects.create(name="banca")
        grant(with_bank, "catalogs.view_bank")
        Role.objects.create(name="vacio")

        by_permission = self.client.get(self.index_url, {"filters[permissions][]": ["catalogs.view_bank"]})
        by_users = self.client.get(self.index_url, {"filters[users_count_min]": "1"})
        empty = self.client.get(self.index_url, {"filters[permissions_count_max]": "0"})

        self.assertEqual(["banca"], [row["name"] for row in by_permission.json()["props"]["rows"]])
        self.assertEqual(["gestor"], [row["name"] for row in by_users.json()["props"]["rows"]])
        self.assertEqual(["vacio"], [row["name"] for row in empty.json()["props"]["rows"]])

    def test_index_sorts_by_users_count(self) -> None:
        Role.objects.create(name="vacio")

        response = self.client.get(self.index_url, {"sort": "users_count", "dir": "asc"})

        self.assertEqual(["vacio", "gestor"], [row["name"] for row in response.json()["props"]["rows"]])

    def test_store_creates_role_with_permissions(self) -> None:
        response = self.client.post(
            self.index_url,
            {"name": "  supervisor ", "permissions_ids[]": [self.view_bank.pk, self.add_bank.pk]},
        )

        self.assertRedirects(response, self.index_url, fetch_redirect_response=False)
        role = Role.objects.get(name="supervisor")
        self.assertEqual("web", role.guard_name)
        self.assertTrue(role.is_active)
        self.assertEqual({self.view_bank.pk, self.add_bank.pk}, set(role.permissions.values_list("pk", flat=True)))

    def test_store_rejects_duplicate_name_and_unknown_permission(self) -> None:
        Role.objects.create(name="supervisor")

        self.client.post(self.index_url, {"name": "supervisor", "permissions_ids": [999999]})

        errors = self.client.session[FORM_ERRORS_SESSION_KEY]
        self.assertEqual(["Ya existe un rol con este nombre."], errors["name"])
        self.assertIn("permissions_ids", errors)

    def test_store_rejects_unknown_guard(self) -> None:
        self.client.post(self.index_url, {"name": "api-role", "guard_name": "api"})

        self.assertEqual(
            ["El guard seleccionado no es válido."],
            self.client.session[FORM_ERRORS_SESSION_KEY]["guard_name"],
        )

    def test_update_syncs_permissions_only_when_sent(self) -> None:
        role = Role.objects.create(name="supervisor")
        grant(role, "catalogs.view_bank")
        url = reverse("roles:show", args=[role.pk])

        self.client.put(url, json.dumps({"name": "supervisor-2"}), content_type="application/json")
        role.refresh_from_db()
        self.assertEqual("supervisor-2", role.name)
        self.assertEqual([self.view_bank.pk], list(role.permissions.values_list("pk", flat=True)))

        self.client.put(
            url,
            json.dumps({"name": "supervisor-2", "permissions_ids": [self.add_bank.pk]}),
            content_type="application/json",
        )
        self.assertEqual([self.add_bank.pk], list(role.permissions.values_list("pk", flat=True)))

    def test_update_keeps_active_flag_when_omitted(self) -> None:
        role = Role.objects.create(name="supervisor", is_active=False)

        self.client.put(
            reverse("roles:show", args=[role.pk]),
            json.dumps({"name": "supervisor"}),
            content_type="application/json",
        )

        role.refresh_from_db()
        self.assertFalse(role.is_active)

    def test_destroy_hard_deletes_role(self) -> None:
        role = Role.objects.create(name="temporal")

        response = self.client.delete(reverse("roles:show", args=[role.pk]))

        self.assertFalse(Role.objects.filter(pk=role.pk).exists())
        self.assertIn(("success", "El rol 'temporal' ha sido eliminado correctamente."), _messages(response))

    def test_destroy_protected_role_is_blocked(self) -> None:
        role = Role.objects.create(name="admin")

        response = self.client.post(reverse("roles:show", args=[role.pk]), {"_method": "DELETE"})

        self.assertTrue(Role.objects.filter(pk=role.pk).exists())
        self.assertIn(("error", "No se puede eliminar un rol protegido del sistema."), _messages(response))
        self.assertEqual(
            ["No se puede eliminar un rol protegido del sistema."],
            self.client.session[FORM_ERRORS_SESSION_KEY]["role"],
        )

    def test_destroy_role_with_users_is_blocked(self) -> None:
        role = Role.objects.create(name="cajero")
        self._member("c@example.com", "Carla", role)

        response = self.client.delete(reverse("roles:show", args=[role.pk]))

        self.assertIn(("error", "No se puede eliminar un rol que tiene usuarios asignados."), _messages(response))

    def test_set_active_messages(self) -> None:
        role = Role.objects.create(name="temporal")

        response = self.client.patch(
            reverse("roles:set-active", args=[role.pk]),
            json.dumps({"active": False}),
            content_type="application/json",
        )

        role.refresh_from_db()
        self.assertFalse(role.is_active)
        self.assertIn(("success", "El rol 'temporal' ha sido desactivado correctamente."), _messages(response))

    def test_set_active_blocks_deactivating_role_with_users(self) -> None:
        role = Role.objects.get(name="gestor")

        response = self.client.post(reverse("roles:set-active", args=[role.pk]), {"active": "0"})

        role.refresh_from_db()
        self.assertTrue(role.is_active)
        self.assertIn(
            ("error", "No se puede desactivar un rol que tiene usuarios asignados."),
            _messages(response),
        )

    def test_bulk_delete_reports_skipped_roles(self) -> None:
        removable = Role.objects.create(name="temporal")
        protected = Role.objects.create(name="admin")

        response = self.client.post(
            reverse("roles:bulk"),
            {"action": "delete", "ids[]": [removable.pk, protected.pk]},
        )

        self.assertFalse(Role.objects.filter(pk=removable.pk).exists())
        self.assertTrue(Role.objects.filter(pk=protected.pk).exists())
        self.assertIn(
            (
                "warning",
                "Se eliminaron 1 rol(es). Se omitieron 1 rol(es) por validaciones de eliminación.",
            ),
            _messages(response),
        )

    def test_bulk_delete_success_message(self) -> None:
        first = Role.objects.create(name="temporal-1")
        second = Role.objects.create(name="temporal-2")

        response = self.client.post(reverse("roles:bulk"), {"action": "delete", "ids": [first.pk, second.pk]})

        self.assertIn(("success", "Se eliminaron 2 rol(es) correctamente."), _messages(response))

    def test_bulk_set_active_without_changes_is_reported(self) -> None:
        role = Role.objects.create(name="temporal", is_active=False)

        response = self.client.post(
            reverse("roles:bulk"),
            json.dumps({"action": "setActive", "ids": [role.pk], "active": False}),
            content_type="application/json",
        )

        self.assertIn(
            ("warning", "Se desactivaron 0 rol(es). Se omitieron 1 rol(es) por validaciones."),
            _messages(response),
        )

    def test_bulk_set_active_success(self) -> None:
        first = Role.objects.create(name="temporal-1", is_active=False)
        second = Role.objects.create(name="temporal-2", is_active=False)

        response = self.client.post(
            reverse("roles:bulk"),
            {"action": "setActive", "ids": [first.pk, second.pk], "active": "true"},
        )

        self.assertEqual(2, Role.objects.filter(pk__in=[first.pk, second.pk], is_active=True).count())
        self.assertIn(("success", "Se activaron 2 rol(es) correctamente."), _messages(response))

    def test_bulk_rejects_unknown_roles_and_restore(self) -> None:
        role = Role.objects.create(name="temporal")

        self.client.post(reverse("roles:bulk"), {"action": "delete", "ids": [role.pk, 999999]})
        self.assertIn("ids", self.client.session[FORM_ERRORS_SESSION_KEY])

        self.client.post(reverse("roles:bulk"), {"action": "restore", "ids": [role.pk]})
        self.assertIn("action", self.client.session[FORM_ERRORS_SESSION_KEY])
        self.assertTrue(Role.objects.filter(pk=role.pk).exists())

    def test_export_uses_role_columns(self) -> None:
        role = Role.objects.create(name="cajero")
        grant(role, "catalogs.view_bank")

        response = self.client.get(reverse("roles:export"), {"format": "csv"})

        self.assertIn("roles_export_", response["Content-Disposition"])
        rows = list(csv.reader(io.StringIO(response.content.decode("utf-8"))))
        self.assertEqual(["#", "Nombre", "Guard", "Permisos", "Usuarios", "Estado", "Creado"], rows[0])
        exported = {row[1]: row for row in rows[1:]}
        self.assertEqual(self.view_bank.name, exported["cajero"][3])


class RoleAuthorizationTests(TestCase):
    def test_viewer_cannot_mutate_roles(self) -> None:
        viewer = create_user_with_perms("viewer@example.com", "users.view_role")
        self.client.force_login(viewer)
        role = Role.objects.create(name="temporal")

        self.assertEqual(200, self.client.get(reverse("roles:index")).status_code)
        self.assertEqual(403, self.client.delete(reverse("roles:show", args=[role.pk])).status_code)
        self.assertEqual(
            403,
            self.client.post(reverse("roles:bulk"), {"action": "setActive", "ids": [role.pk], "active": "0"}).status_code,
        )
        self.assertEqual(403, self.client.post(reverse("roles:index"), {"name": "nuevo"}).status_code)
