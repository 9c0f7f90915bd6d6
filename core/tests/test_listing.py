from __future__ import annotations

from datetime import date
from decimal import Decimal

from django import forms
from django.http import QueryDict
from django.test import SimpleTestCase, override_settings

from core.listing import (
    DateRangeField,
    FilterCharField,
    IndexQueryForm,
    NumberRangeField,
    coerce_filter_booleans,
    extract_nested,
    normalize_ranges,
    should_swap_range,
)


class SampleIndexForm(IndexQueryForm):
    allowed_sorts = ("id", "name")
    filter_fields = {
        "is_active": forms.NullBooleanField(required=False),
        "created_between": DateRangeField(),
        "area_between": NumberRangeField(min_value=Decimal("0")),
        "name_like": FilterCharField(required=False, max_length=20),
    }


def _form(query: str) -> SampleIndexForm:
    return SampleIndexForm(QueryDict(query))


class ExtractNestedTests(SimpleTestCase):
    def test_rebuilds_nested_maps_and_lists(self) -> None:
        params = QueryDict(
            "filters[is_active]=1&filters[created_between][from]=2024-01-01"
            "&filters[tags][]=a&filters[tags][]=b&q=x"
        )

        self.assertEqual(
            {
                "is_active": "1",
                "created_between": {"from": "2024-01-01"},
                "tags": ["a", "b"],
            },
            extract_nested(params, "filters"),
        )

    def test_structured_payload_is_returned_as_is(self) -> None:
        payload = {"filters": {"is_active": True}}

        self.assertEqual({"is_active": True}, extract_nested(payload, "filters"))

    def test_missing_prefix_returns_none(self) -> None:
        self.assertIsNone(extract_nested(QueryDict("q=x"), "filters"))


class BooleanCoercionTests(SimpleTestCase):
    def test_coerces_recursively_ignoring_case(self) -> None:
        value = {"a": "TRUE", "b": {"c": "0"}, "d": ["1", "si"], "e": "False"}

        self.assertEqual(
            {"a": True, "b": {"c": False}, "d": [True, "si"], "e": False},
            coerce_filter_booleans(value),
        )


class RangeSwapTests(SimpleTestCase):
    def test_numeric_and_date_ranges_swap_when_reversed(self) -> None:
        self.assertTrue(should_swap_range("50", "10"))
        self.assertTrue(should_swap_range("2024-02-01", "2024-01-01"))
        self.assertFalse(should_swap_range("10", "50"))

    def test_mixed_bounds_are_never_swapped(self) -> None:
        filters = {"x_between": {"from": "10", "to": "2024-01-01"}}

        self.assertEqual(filters, normalize_ranges(filters))

    def test_nested_ranges_are_normalized(self) -> None:
        filters = {"outer": {"inner": {"from": 9, "to": 3}}}

        self.assertEqual({"outer": {"inner": {"from": 3, "to": 9}}}, normalize_ranges(filters))


class IndexQueryFormTests(SimpleTestCase):
    def test_defaults(self) -> None:
        query = _form("").to_list_query()

        self.assertIsNone(query.q)
        self.assertEqual(1, query.page)
        self.assertEqual(15, query.per_page)
        self.assertEqual("desc", query.dir)
        self.assertEqual({}, query.filters)

    @override_settings(LIST_QUERY={"MAX_PER_PAGE": 50, "DEFAULT_PER_PAGE": 15})
    def test_per_page_is_clamped_to_maximum(self) -> None:
        self.assertEqual(50, _form("per_page=500").to_list_query().per_page)

    def test_per_page_below_one_is_an_error(self) -> None:
        form = _form("per_page=0")

        self.assertFalse(form.is_valid())
        self.assertIn("per_page", form.error_payload())

    def test_direction_is_lower_cased_and_q_trimmed(self) -> None:
        query = _form("dir=ASC&q=%20%20banco%20&sort=name").to_list_query()

        self.assertEqual("asc", query.dir)
        self.assertEqual("banco", query.q)
        self.assertEqual("name", query.sort)

    def test_unknown_sort_is_rejected(self) -> None:
        form = _form("sort=password")

        self.assertFalse(form.is_valid())
        self.assertIn("sort", form.error_payload())

    def test_filters_are_coerced_swapped_and_unknown_keys_dropped(self) -> None:
        query = _form(
            "filters[is_active]=0"
            "&filters[created_between][from]=2024-02-01&filters[created_between][to]=2024-01-01"
            "&filters[area_between][from]=50&filters[area_between][to]=10"
            "&filters[secret]=1"
        ).to_list_query()

        self.assertIs(False, query.filters["is_active"])
        self.assertEqual({"from": date(2024, 1, 1), "to": date(2024, 2, 1)}, query.filters["created_between"])
        self.assertEqual({"from": Decimal("10"), "to": Decimal("50")}, query.filters["area_between"])
        self.assertNotIn("secret", query.filters)

    def test_invalid_filter_error_uses_dotted_key(self) -> None:
        form = _form("filters[created_between][from]=ayer")

        self.assertFalse(form.is_valid())
        self.assertIn("filters.created_between", form.error_payload())

    def test_filters_must_be_a_map(self) -> None:
        form = _form("filters=abc")

        self.assertFalse(form.is_valid())
        self.assertEqual(["El campo filters debe ser un objeto."], form.error_payload()["filters"])

    def test_boolean_coerced_text_filter_keeps_its_digit(self) -> None:
        query = _form("filters[name_like]=1").to_list_query()

        self.assertEqual("1", query.filters["name_like"])

    def test_as_dict_serializes_dates(self) -> None:
        query = _form("filters[created_between][from]=2024-01-01").to_list_query()

        self.assertEqual({"created_between": {"from": "2024-01-01"}}, query.as_dict()["filters"])
        self.assertEqual(15, query.as_dict()["perPage"])
