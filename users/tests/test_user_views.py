from __future__ import annotations

import csv
import io
import json

from django.contrib.auth import get_user_model
from django.contrib.messages import get_messages
from django.test import TestCase
from django.urls import reverse

from core.pages import FORM_ERRORS_SESSION_KEY, OLD_INPUT_SESSION_KEY
from core.tests.utils import create_user_with_perms, resource_perms
from users.models import Role
from users.services.users import (
    DEACTIVATE_LAST_ADMIN_MESSAGE,
    DELETE_LAST_ADMIN_MESSAGE,
    DELETE_REQUIRE_INACTIVE_MESSAGE,
    SELF_DEACTIVATE_MESSAGE,
    SELF_DELETE_MESSAGE,
    SET_ACTIVE_FORBIDDEN_MESSAGE,
)


USER_PERMS = resource_perms("users", "user", "add", "change", "delete", "view", "export", "set_active")
STRONG_PASSWORD = "Clave#Segura2025"


def _messages(response) -> list[str]:
    return [str(message) for message in get_messages(response.wsgi_request)]


class UserViewTests(TestCase):
    def setUp(self) -> None:
        self.actor = create_user_with_perms("gestor@example.com", *USER_PERMS, role_name="gestor")
        self.client.force_login(self.actor)
        self.index_url = reverse("users:index")
        self.cashier = Role.objects.create(name="cajero")

    def _create_user(self, email: str, name: str, *roles: Role, is_active: bool = True):
        user = get_user_model().objects.create_user(email=email, password="test123", name=name, is_active=is_active)
        user.roles.add(*roles)
        return user

    def _detail_url(self, user) -> str:
        return reverse("users:show", args=[user.pk])

    def test_index_lists_users_with_roles_and_stats(self) -> None:
        self._create_user("ana@example.com", "Ana", self.cashier)
        self._create_user("beto@example.com", "Beto", is_active=False)

        response = self.client.get(self.index_url, {"filters[role_id]": self.cashier.pk})

        payload = response.json()
        self.assertEqual("Users/Index", payload["component"])
        props = payload["props"]
        self.assertEqual(10, props["query"]["perPage"])
        self.assertEqual(1, props["meta"]["total"])
        row = props["rows"][0]
        self.assertEqual("ana@example.com", row["email"])
        self.assertEqual(["cajero"], row["roles"])
        self.assertEqual(1, row["roles_count"])
        self.assertIn("_version", row)
        self.assertEqual({"total": 3, "inactive": 1, "active": 2}, props["stats"])
        self.assertIn({"id": self.cashier.pk, "name": "cajero"}, props["availableRoles"])

    def test_index_sorts_by_role_count(self) -> None:
        other = Role.objects.create(name="supervisor")
        self._create_user("ana@example.com", "Ana", self.cashier, other)
        self._create_user("beto@example.com", "Beto")

        response = self.client.get(self.index_url, {"sort": "roles_count", "dir": "desc", "q": "example.com"})

        rows = response.json()["props"]["rows"]
        self.assertEqual(["Ana", 2], [rows[0]["name"], rows[0]["roles_count"]])
        self.assertEqual("Beto", rows[-1]["name"])

    def test_store_hashes_password_and_assigns_roles(self) -> None:
        response = self.client.post(
            self.index_url,
            {
                "name": "Nuevo Usuario",
                "email": " Nuevo@Example.com ",
                "password": STRONG_PASSWORD,
                "password_confirmation": STRONG_PASSWORD,
                "roles_ids[]": [self.cashier.pk],
            },
        )

        self.assertRedirects(response, self.index_url, fetch_redirect_response=False)
        self.assertIn("Usuario creado exitosamente.", _messages(response))
        user = get_user_model().objects.get(email="nuevo@example.com")
        self.assertTrue(user.is_active)
        self.assertTrue(user.check_password(STRONG_PASSWORD))
        self.assertEqual([self.cashier], list(user.roles.all()))

    def test_store_rejects_duplicate_email_ignoring_case(self) -> None:
        self._create_user("ana@example.com", "Ana")

        self.client.post(
            self.index_url,
            {
                "name": "Otra Ana",
                "email": "ANA@example.com",
                "password": STRONG_PASSWORD,
                "password_confirmation": STRONG_PASSWORD,
            },
        )

        self.assertEqual(
            ["Ya existe un usuario con este correo."],
            self.client.session[FORM_ERRORS_SESSION_KEY]["email"],
        )
        self.assertEqual(1, get_user_model().objects.filter(email__iexact="ana@example.com").count())

    def test_store_requires_a_strong_confirmed_password(self) -> None:
        self.client.post(
            self.index_url,
            {"name": "Débil", "email": "debil@example.com", "password": "clavesimple", "password_confirmation": "clavesimple"},
        )
        self.assertIn("password", self.client.session[FORM_ERRORS_SESSION_KEY])

        self.client.post(
            self.index_url,
            {
                "name": "Distinta",
                "email": "distinta@example.com",
                "password": STRONG_PASSWORD,
                "password_confirmation": "Otra#Clave2025",
            },
        )
        self.assertEqual(
            ["La confirmación de contraseña no coincide."],
            self.client.session[FORM_ERRORS_SESSION_KEY]["password"],
        )
        self.assertNotIn("password", self.client.session[OLD_INPUT_SESSION_KEY])
        self.assertNotIn("password_confirmation", self.client.session[OLD_INPUT_SESSION_KEY])
        self.assertEqual("distinta@example.com", self.client.session[OLD_INPUT_SESSION_KEY]["email"])
        self.assertFalse(get_user_model().objects.filter(email__in=["debil@example.com", "distinta@example.com"]).exists())

    def test_update_without_password_keeps_it_and_syncs_roles(self) -> None:
        user = self._create_user("ana@example.com", "Ana", self.cashier)
        supervisor = Role.objects.create(name="supervisor")

        response = self.client.put(
            self._detail_url(user),
            json.dumps(
                {
                    "name": "Ana María",
                    "email": "ana@example.com",
                    "password": "",
                    "roles_ids": [supervisor.pk],
                    "_version": user.updated_at.isoformat(),
                }
            ),
            content_type="application/json",
        )

        self.assertRedirects(response, self.index_url, fetch_redirect_response=False)
        user.refresh_from_db()
        self.assertEqual("Ana María", user.name)
        self.assertTrue(user.check_password("test123"))
        self.assertEqual([supervisor], list(user.roles.all()))

    def test_update_of_active_flag_needs_set_active_permission(self) -> None:
        editor = create_user_with_perms("editor@example.com", "users.change_user", "users.view_user")
        self.client.force_login(editor)
        user = self._create_user("ana@example.com", "Ana")

        response = self.client.put(
            self._detail_url(user),
            json.dumps({"name": "Ana", "email": "ana@example.com", "is_active": False}),
            content_type="application/json",
        )

        self.assertRedirects(response, reverse("users:edit", args=[user.pk]), fetch_redirect_response=False)
        self.assertEqual(
            [SET_ACTIVE_FORBIDDEN_MESSAGE],
            self.client.session[FORM_ERRORS_SESSION_KEY]["is_active"],
        )
        user.refresh_from_db()
        self.assertTrue(user.is_active)

    def test_set_active_deactivates_user(self) -> None:
        user = self._create_user("ana@example.com", "Ana")

        response = self.client.patch(
            reverse("users:set-active", args=[user.pk]),
            json.dumps({"active": False}),
            content_type="application/json",
        )

        user.refresh_from_db()
        self.assertFalse(user.is_active)
        self.assertIn("El usuario 'Ana' ha sido desactivado correctamente.", _messages(response))

    def test_self_deactivation_is_blocked(self) -> None:
        response = self.client.patch(
            reverse("users:set-active", args=[self.actor.pk]),
            json.dumps({"active": False}),
            content_type="application/json",
        )

        self.assertIn(SELF_DEACTIVATE_MESSAGE, _messages(response))
        self.actor.refresh_from_db()
        self.assertTrue(self.actor.is_active)

    def test_last_admin_cannot_be_deactivated(self) -> None:
        admin = self._create_user("admin@example.com", "Admin", Role.objects.create(name="admin"))

        response = self.client.patch(
            reverse("users:set-active", args=[admin.pk]),
            json.dumps({"active": False}),
            content_type="application/json",
        )

        self.assertIn(DEACTIVATE_LAST_ADMIN_MESSAGE, _messages(response))
        admin.refresh_from_db()
        self.assertTrue(admin.is_active)

    def test_delete_own_user_is_blocked(self) -> None:
        response = self.client.delete(self._detail_url(self.actor))

        self.assertIn(SELF_DELETE_MESSAGE, _messages(response))
        self.assertEqual([SELF_DELETE_MESSAGE], self.client.session[FORM_ERRORS_SESSION_KEY]["user"])
        self.assertTrue(get_user_model().objects.filter(pk=self.actor.pk).exists())

    def test_delete_requires_inactive_user(self) -> None:
        user = self._create_user("ana@example.com", "Ana")

        response = self.client.delete(self._detail_url(user))

        self.assertIn(DELETE_REQUIRE_INACTIVE_MESSAGE, _messages(response))
        self.assertTrue(get_user_model().objects.filter(pk=user.pk).exists())

    def test_delete_removes_inactive_user(self) -> None:
        user = self._create_user("ana@example.com", "Ana", self.cashier, is_active=False)

        response = self.client.delete(self._detail_url(user))

        self.assertIn("El usuario 'Ana' ha sido eliminado correctamente.", _messages(response))
        self.assertFalse(get_user_model().objects.filter(pk=user.pk).exists())
        self.assertTrue(Role.objects.filter(pk=self.cashier.pk).exists())

    def test_last_admin_cannot_be_deleted(self) -> None:
        admin = self._create_user("admin@example.com", "Admin", Role.objects.create(name="admin"), is_active=False)

        response = self.client.delete(self._detail_url(admin))

        self.assertIn(DELETE_LAST_ADMIN_MESSAGE, _messages(response))
        self.assertTrue(get_user_model().objects.filter(pk=admin.pk).exists())

    def test_bulk_delete_skips_blocked_users(self) -> None:
        inactive = self._create_user("ana@example.com", "Ana", is_active=False)
        active = self._create_user("beto@example.com", "Beto")

        response = self.client.post(
            reverse("users:bulk"),
            {"action": "delete", "ids[]": [inactive.pk, active.pk, self.actor.pk]},
        )

        self.assertIn("1 registro(s) eliminados exitosamente", _messages(response))
        self.assertEqual(
            {active.pk, self.actor.pk},
            set(get_user_model().objects.values_list("pk", flat=True)),
        )

    def test_bulk_deactivate_skips_own_user(self) -> None:
        user = self._create_user("ana@example.com", "Ana")

        response = self.client.post(
            reverse("users:bulk"),
            {"action": "setActive", "ids[]": [user.pk, self.actor.pk], "active": "false"},
        )

        self.assertIn("1 registro(s) desactivados exitosamente", _messages(response))
        self.actor.refresh_from_db()
        self.assertTrue(self.actor.is_active)

    def test_bulk_restore_is_not_offered(self) -> None:
        user = self._create_user("ana@example.com", "Ana")

        self.client.post(reverse("users:bulk"), {"action": "restore", "ids[]": [user.pk]})

        self.assertIn("action", self.client.session[FORM_ERRORS_SESSION_KEY])

    def test_export_csv_uses_user_columns(self) -> None:
        self._create_user("ana@example.com", "Ana", self.cashier)

        response = self.client.get(reverse("users:export"), {"format": "csv", "q": "ana"})

        self.assertIn("users_export_", response["Content-Disposition"])
        rows = list(csv.reader(io.StringIO(response.content.decode("utf-8"))))
        self.assertEqual(["#", "Nombre", "Email", "Roles", "Estado", "Creado"], rows[0])
        self.assertEqual(["Ana", "ana@example.com", "1", "Sí"], rows[1][1:5])

    def test_selected_returns_rows(self) -> None:
        first = self._create_user("ana@example.com", "Ana")
        second = self._create_user("beto@example.com", "Beto")

        response = self.client.get(reverse("users:selected"), {"ids[]": [first.pk, second.pk]})

        payload = response.json()
        self.assertEqual(2, payload["total"])
        self.assertEqual([second.pk, first.pk], [row["id"] for row in payload["rows"]])

    def test_edit_form_offers_roles(self) -> None:
        user = self._create_user("ana@example.com", "Ana", self.cashier)

        response = self.client.get(reverse("users:edit", args=[user.pk]))

        props = response.json()["props"]
        self.assertEqual([self.cashier.pk], props["item"]["roles_ids"])
        self.assertIn({"id": self.cashier.pk, "name": "cajero"}, props["options"]["roleOptions"])


class UserAuthorizationTests(TestCase):
    def test_user_without_permissions_is_denied(self) -> None:
        viewer = create_user_with_perms("lector@example.com", "users.view_user")
        target = get_user_model().objects.create_user(email="ana@example.com", password="test123", name="Ana")
        self.client.force_login(viewer)

        self.assertEqual(200, self.client.get(reverse("users:index")).status_code)
        self.assertEqual(403, self.client.delete(reverse("users:show", args=[target.pk])).status_code)
        self.assertEqual(403, self.client.get(reverse("users:export")).status_code)
        self.assertEqual(
            403,
            self.client.post(reverse("users:bulk"), {"action": "delete", "ids[]": [target.pk]}).status_code,
        )
