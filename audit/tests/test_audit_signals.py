from __future__ import annotations

import json

from django.contrib.auth.models import Permission
from django.test import TestCase, override_settings
from django.urls import reverse

from audit.models import Audit
from catalogs.models import Bank
from core.tests.utils import create_user_with_perms, resource_perms
from roles.services.roles import RoleService
from users.models import Role


class CatalogAuditTests(TestCase):
    def setUp(self) -> None:
        self.user = create_user_with_perms("auditor@example.com", *resource_perms("catalogs", "bank"))

    def _events(self, instance) -> list[Audit]:
        return list(
            Audit.objects.filter(
                auditable_type=f"{instance._meta.app_label}.{instance._meta.model_name}",
                auditable_id=instance.pk,
            ).order_by("pk")
        )

    def test_create_records_new_values_without_excluded_fields(self) -> None:
        bank = Bank.objects.create(code="BOD", name="Banco Occidental")

        audit = self._events(bank)[0]

        self.assertEqual(Audit.Event.CREATED, audit.event)
        self.assertEqual("catalogs.bank", audit.auditable_type)
        self.assertEqual("BOD", audit.new_values["code"])
        self.assertNotIn("created_at", audit.new_values)
        self.assertNotIn("updated_at", audit.new_values)
        self.assertEqual({}, audit.old_values)
        self.assertIsNone(audit.user_id)

    def test_update_through_request_records_changed_fields_and_actor(self) -> None:
        bank = Bank.objects.create(code="BOD", name="Banco Occidental")
        self.client.force_login(self.user)
        url = reverse("catalogs:banks:show", args=[bank.pk])

        self.client.put(
            url,
            json.dumps({"code": "BOD", "name": "Banco Nuevo", "is_active": True}),
            content_type="application/json",
            HTTP_USER_AGENT="pruebas/1.0",
        )

        audit = self._events(bank)[-1]
        self.assertEqual(Audit.Event.UPDATED, audit.event)
        self.assertEqual({"name": "Banco Occidental"}, audit.old_values)
        self.assertEqual({"name": "Banco Nuevo"}, audit.new_values)
        self.assertEqual(self.user.pk, audit.user_id)
        self.assertTrue(audit.url.endswith(url))
        self.assertEqual("127.0.0.1", audit.ip_address)
        self.assertEqual("pruebas/1.0", audit.user_agent)

    def test_save_without_changes_is_not_recorded(self) -> None:
        bank = Bank.objects.create(code="BOD", name="Banco Occidental")

        bank.save()

        self.assertEqual([Audit.Event.CREATED], [audit.event for audit in self._events(bank)])

    def test_soft_delete_and_restore_are_recorded(self) -> None:
        bank = Bank.objects.create(code="BOD", name="Banco Occidental")

        bank.soft_delete()
        bank.restore()

        deleted, restored = self._events(bank)[-2:]
        self.assertEqual(Audit.Event.DELETED, deleted.event)
        self.assertIsNone(deleted.old_values["deleted_at"])
        self.assertIsNotNone(deleted.new_values["deleted_at"])
        self.assertEqual(Audit.Event.RESTORED, restored.event)
        self.assertIsNone(restored.new_values["deleted_at"])

    @override_settings(AUDIT={"ENABLED": False, "EXCLUDED_FIELDS": []})
    def test_disabled_auditing_records_nothing(self) -> None:
        bank = Bank.objects.create(code="BOD", name="Banco Occidental")
        bank.soft_delete()

        self.assertEqual([], self._events(bank))


class RoleAuditTests(TestCase):
    def test_hard_delete_records_old_values(self) -> None:
        role = Role.objects.create(name="temporal")
        role_id = role.pk

        role.delete()

        audit = Audit.objects.filter(auditable_type="users.role", auditable_id=role_id).latest("pk")
        self.assertEqual(Audit.Event.DELETED, audit.event)
        self.assertEqual("temporal", audit.old_values["name"])
        self.assertEqual({}, audit.new_values)

    def test_permission_sync_is_recorded(self) -> None:
        permission = Permission.objects.get(content_type__app_label="catalogs", codename="view_bank")

        role = RoleService().create(
            {"name": "cajero", "guard_name": "web", "is_active": True, "permissions_ids": [permission]}
        )

        audit = Audit.objects.get(auditable_type="users.role", auditable_id=role.pk, event=Audit.Event.PERMISSIONS_SYNC)
        self.assertEqual({"permissions": []}, audit.old_values)
        self.assertEqual({"permissions": [permission.pk]}, audit.new_values)
        self.assertEqual("permissions", audit.tags)

    def test_unchanged_permissions_are_not_recorded(self) -> None:
        role = RoleService().create({"name": "vacio", "guard_name": "web", "is_active": True})

        self.assertFalse(
            Audit.objects.filter(auditable_id=role.pk, event=Audit.Event.PERMISSIONS_SYNC).exists()
        )


class SessionAuditTests(TestCase):
    def test_login_and_logout_are_recorded(self) -> None:
        user = create_user_with_perms("sesion@example.com")

        self.client.force_login(user)
        self.client.logout()

        events = list(
            Audit.objects.filter(auditable_type="users.user", auditable_id=user.pk)
            .order_by("pk")
            .values_list("event", "user_id", "tags")
        )
        self.assertEqual(
            [(Audit.Event.LOGIN, user.pk, "auth"), (Audit.Event.LOGOUT, user.pk, "auth")],
            events,
        )
        self.assertIn("ip", Audit.objects.filter(event=Audit.Event.LOGIN).latest("pk").new_values)
