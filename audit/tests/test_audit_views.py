from __future__ import annotations

import csv
import io
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import NoReverseMatch, reverse
from django.utils import timezone

from audit.models import Audit
from core.tests.utils import create_user_with_perms


class AuditViewTests(TestCase):
    def setUp(self) -> None:
        self.auditor = create_user_with_perms("auditor@example.com", "audit.view_audit", "audit.export_audit")
        self.client.force_login(self.auditor)
        Audit.objects.all().delete()

        self.ana = get_user_model().objects.create_user(email="ana@example.com", password="test123", name="Ana Torres")
        self.older = Audit.objects.create(
            user=self.ana,
            event=Audit.Event.CREATED,
            auditable_type="catalogs.bank",
            auditable_id=1,
            ip_address="10.0.0.5",
            url="http://testserver/catalogs/banks/",
            new_values={"code": "BOD"},
        )
        Audit.objects.filter(pk=self.older.pk).update(created_at=timezone.now() - timedelta(days=3))
        self.newer = Audit.objects.create(
            event=Audit.Event.PERMISSIONS_SYNC,
            auditable_type="users.role",
            auditable_id=7,
            ip_address="192.168.1.20",
            url="http://testserver/roles/7/",
            tags="permissions",
        )
        self.index_url = reverse("audits:index")

    def _ids(self, response) -> list[int]:
        return [row["id"] for row in response.json()["props"]["rows"]]

    def test_index_lists_newest_first_with_stats(self) -> None:
        response = self.client.get(self.index_url)

        payload = response.json()
        self.assertEqual("Auditoria/Index", payload["component"])
        props = payload["props"]
        self.assertEqual(25, props["query"]["perPage"])
        self.assertEqual([self.newer.pk, self.older.pk], self._ids(response))
        self.assertEqual({"total": 2, "last24h": 1}, props["stats"])
        self.assertFalse(props["hasEditRoute"])
        self.assertEqual("Ana Torres", props["rows"][1]["user_name"])

    def test_search_matches_user_name_or_ip(self) -> None:
        by_name = self.client.get(self.index_url, {"q": "torres"})
        by_ip = self.client.get(self.index_url, {"q": "192.168"})

        self.assertEqual([self.older.pk], self._ids(by_name))
        self.assertEqual([self.newer.pk], self._ids(by_ip))

    def test_filters(self) -> None:
        since = (timezone.localdate() - timedelta(days=1)).isoformat()

        self.assertEqual(
            [self.newer.pk],
            self._ids(self.client.get(self.index_url, {"filters[event]": "permissions"})),
        )
        self.assertEqual(
            [self.older.pk],
            self._ids(self.client.get(self.index_url, {"filters[auditable_type]": "catalogs.bank"})),
        )
        self.assertEqual(
            [self.older.pk],
            self._ids(self.client.get(self.index_url, {"filters[user_id]": str(self.ana.pk)})),
        )
        self.assertEqual(
            [self.newer.pk],
            self._ids(self.client.get(self.index_url, {"filters[created_between][from]": since})),
        )
        self.assertEqual(
            [self.newer.pk],
            self._ids(self.client.get(self.index_url, {"filters[url]": "/roles/"})),
        )

    def test_sort_by_auditable_id(self) -> None:
        response = self.client.get(self.index_url, {"sort": "auditable_id", "dir": "asc"})

        self.assertEqual([self.older.pk, self.newer.pk], self._ids(response))

    def test_show_returns_item(self) -> None:
        response = self.client.get(reverse("audits:show", args=[self.older.pk]))

        item = response.json()["props"]["item"]
        self.assertEqual({"code": "BOD"}, item["new_values"])
        self.assertEqual("catalogs.bank", item["auditable_type"])

    def test_log_is_read_only(self) -> None:
        self.assertEqual(405, self.client.post(self.index_url, {"event": "created"}).status_code)
        self.assertEqual(405, self.client.delete(reverse("audits:show", args=[self.older.pk])).status_code)
        for name in ("audits:create", "audits:bulk"):
            with self.assertRaises(NoReverseMatch):
                reverse(name)

    def test_export_csv(self) -> None:
        response = self.client.get(reverse("audits:export"), {"format": "csv"})

        self.assertIn("auditoria_export_", response["Content-Disposition"])
        rows = list(csv.reader(io.StringIO(response.content.decode("utf-8"))))
        self.assertEqual(["ID", "Fecha", "Usuario", "Evento", "Entidad", "ID entidad", "IP", "URL"], rows[0])
        self.assertEqual(3, len(rows))

    def test_selected_returns_rows(self) -> None:
        response = self.client.get(reverse("audits:selected"), {"ids[]": [self.older.pk, self.newer.pk]})

        payload = response.json()
        self.assertEqual(2, payload["total"])
        self.assertEqual([self.newer.pk, self.older.pk], [row["id"] for row in payload["rows"]])


class AuditAuthorizationTests(TestCase):
    def test_user_without_view_permission_is_forbidden(self) -> None:
        user = create_user_with_perms("nadie@example.com")
        self.client.force_login(user)

        self.assertEqual(403, self.client.get(reverse("audits:index")).status_code)
        self.assertEqual(403, self.client.get(reverse("audits:export")).status_code)

    def test_viewer_cannot_export(self) -> None:
        user = create_user_with_perms("lector@example.com", "audit.view_audit")
        self.client.force_login(user)

        self.assertEqual(200, self.client.get(reverse("audits:index")).status_code)
        self.assertEqual(403, self.client.get(reverse("audits:export")).status_code)
