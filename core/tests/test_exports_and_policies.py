from __future__ import annotations

import re
from datetime import date
from decimal import Decimal

from django.contrib.auth.models import AnonymousUser
from django.test import SimpleTestCase, TestCase

from catalogs.models import Bank
from core.policies import ResourcePolicy
from core.services.exports import (
    build_export_filename,
    build_export_response,
    normalize_export_value,
    resolve_export_format,
)
from core.tests.utils import create_user_with_perms


class ExportHelperTests(SimpleTestCase):
    def test_unknown_and_pdf_formats_fall_back_to_csv(self) -> None:
        self.assertEqual("csv", resolve_export_format("pdf"))
        self.assertEqual("csv", resolve_export_format(None))
        self.assertEqual("xlsx", resolve_export_format(" XLSX "))

    def test_filename_carries_base_and_timestamp(self) -> None:
        self.assertRegex(build_export_filename("banks", "json"), re.compile(r"^banks_export_\d{8}_\d{6}\.json$"))

    def test_values_are_flattened_for_spreadsheets(self) -> None:
        self.assertEqual("", normalize_export_value(None))
        self.assertEqual("Sí", normalize_export_value(True))
        self.assertEqual("No", normalize_export_value(False))
        self.assertEqual(12.5, normalize_export_value(Decimal("12.50")))
        self.assertEqual("2024-01-31", normalize_export_value(date(2024, 1, 31)))
        self.assertEqual("a, b", normalize_export_value(["a", "b"]))
        self.assertEqual('{"k": "v"}', normalize_export_value({"k": "v"}))

    def test_json_export_keeps_only_declared_columns(self) -> None:
        response = build_export_response(
            rows=[{"id": 1, "code": "BOD", "secret": "x"}],
            columns={"id": "ID", "code": "Código"},
            filename_base="banks",
            fmt="json",
        )

        self.assertEqual("application/json", response["Content-Type"])
        self.assertEqual(b'[{"id": 1, "code": "BOD"}]', response.content)


class ResourcePolicyTests(TestCase):
    def setUp(self) -> None:
        self.policy = ResourcePolicy(Bank)

    def test_abilities_map_to_codenames(self) -> None:
        self.assertEqual("catalogs.add_bank", self.policy.permission_for("create"))
        self.assertEqual("catalogs.view_bank", self.policy.permission_for("view_selected"))
        self.assertEqual("catalogs.set_active_bank", self.policy.permission_for("set_active"))
        with self.assertRaises(ValueError):
            self.policy.permission_for("fly")

    def test_anonymous_user_has_no_abilities(self) -> None:
        self.assertFalse(any(self.policy.abilities(AnonymousUser()).values()))

    def test_bulk_actions_use_their_own_codename(self) -> None:
        user = create_user_with_perms("bulk@example.com", "catalogs.restore_bank")

        self.assertTrue(self.policy.allows_bulk(user, "restore"))
        self.assertFalse(self.policy.allows_bulk(user, "delete"))
        self.assertFalse(self.policy.allows_bulk(user, "archive"))

    def test_inactive_user_is_denied(self) -> None:
        user = create_user_with_perms("inactivo@example.com", "catalogs.view_bank")
        user.is_active = False
        user.save(update_fields=["is_active"])

        self.assertFalse(self.policy.allows(user, "view_any"))
