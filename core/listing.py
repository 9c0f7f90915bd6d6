"""
Normalization of list requests.

Every index endpoint accepts the same parameters (``q``, ``page``,
``per_page``, ``sort``, ``dir`` and a nested ``filters`` map) and turns them
into a :class:`ListQuery` that the resource services understand.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from django import forms
from django.conf import settings
from django.utils.dateparse import parse_date, parse_datetime


TRUE_STRINGS = frozenset({"true", "1"})
FALSE_STRINGS = frozenset({"false", "0"})
DIRECTION_CHOICES = (("asc", "asc"), ("desc", "desc"))
SCALAR_PARAMS = ("q", "page", "per_page", "sort", "dir")

_BRACKET_RE = re.compile(r"\[([^\]]*)\]")


@dataclass(slots=True, frozen=True)
class ListQuery:
    q: Optional[str] = None
    page: int = 1
    per_page: int = 15
    sort: Optional[str] = None
    dir: str = "desc"
    filters: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "q": self.q,
            "page": self.page,
            "perPage": self.per_page,
            "sort": self.sort,
            "dir": self.dir,
            "filters": _jsonable(self.filters),
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def extract_nested(params: Mapping[str, Any], prefix: str) -> Any:
    """
    Rebuild a nested structure from bracketed query parameters.

    ``filters[is_active]=1`` and ``filters[created_between][from]=2024-01-01``
    become ``{"is_active": "1", "created_between": {"from": "2024-01-01"}}``.
    A trailing ``[]`` collects every value of the key into a list. When the
    parameter arrives already structured (JSON payloads) it is returned as is.
    """

    direct = params.get(prefix) if hasattr(params, "get") else None
    if isinstance(direct, (dict, list)):
        return direct

    result: dict[str, Any] = {}
    found = False
    items = params.lists() if hasattr(params, "lists") else ((k, [v]) for k, v in params.items())
    for key, values in items:
        if not key.startswith(f"{prefix}["):
            continue
        path = _BRACKET_RE.findall(key[len(prefix):])
        if path and path[-1] == "":
            path, value = path[:-1], list(values)
        else:
            value = values[-1] if values else None
        if not path or "" in path:
            continue
        found = True
        node = result
        for segment in path[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[path[-1]] = value

    if found:
        return result
    if direct in (None, ""):
        return None
    return direct


def coerce_filter_booleans(value: Any) -> Any:
    """Turn ``"true"/"1"`` and ``"false"/"0"`` strings into booleans, recursively."""

    if isinstance(value, dict):
        return {key: coerce_filter_booleans(item) for key, item in value.items()}
    if isinstance(value, list):
        return [coerce_filter_booleans(item) for item in value]
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    return value


def _as_number(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    if isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return None
        try:
            number = Decimal(candidate)
        except InvalidOperation:
            return None
        return number if number.is_finite() else None
    return None


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        candidate = value.strip()
        try:
            parsed = parse_datetime(candidate)
            if parsed is not None:
                return parsed.replace(tzinfo=None)
            parsed_date = parse_date(candidate)
        except ValueError:
            return None
        if parsed_date is not None:
            return datetime(parsed_date.year, parsed_date.month, parsed_date.day)
    return None


def should_swap_range(start: Any, end: Any) -> bool:
    """Whether ``start > end`` for two comparable values (both numeric or both dates)."""

    start_number, end_number = _as_number(start), _as_number(end)
    if start_number is not None and end_number is not None:
        return start_number > end_number
    if start_number is not None or end_number is not None:
        return False
    start_moment, end_moment = _as_datetime(start), _as_datetime(end)
    if start_moment is not None and end_moment is not None:
        return start_moment > end_moment
    return False


def normalize_ranges(filters: dict[str, Any]) -> dict[str, Any]:
    """Swap the bounds of every nested ``{from, to}`` pair given in reverse order."""

    normalized: dict[str, Any] = {}
    for key, value in filters.items():
        if isinstance(value, dict):
            value = normalize_ranges(value)
            if "from" in value and "to" in value and should_swap_range(value["from"], value["to"]):
                value["from"], value["to"] = value["to"], value["from"]
        normalized[key] = value
    return normalized


class FilterIntegerField(forms.IntegerField):
    """Integer filter tolerant of the boolean coercion applied to ``"1"``/``"0"``."""

    def to_python(self, value):
        if isinstance(value, bool):
            value = int(value)
        return super().to_python(value)


class FilterDecimalField(forms.DecimalField):
    def to_python(self, value):
        if isinstance(value, bool):
            value = int(value)
        return super().to_python(value)


class FilterCharField(forms.CharField):
    def to_python(self, value):
        if isinstance(value, bool):
            value = "1" if value else "0"
        return super().to_python(value)


class IntegerListField(forms.Field):
    default_error_messages = {
        "invalid_list": "Debe ser una lista de enteros.",
    }

    def __init__(self, *, min_value: Optional[int] = None, **kwargs) -> None:
        kwargs.setdefault("required", False)
        super().__init__(**kwargs)
        self.min_value = min_value

    def to_python(self, value):
        if value in self.empty_values:
            return []
        if not isinstance(value, (list, tuple)):
            value = [value]
        item_field = FilterIntegerField(min_value=self.min_value)
        cleaned: list[int] = []
        for item in value:
            try:
                cleaned.append(item_field.clean(item))
            except forms.ValidationError:
                raise forms.ValidationError(self.error_messages["invalid_list"], code="invalid_list")
        return cleaned


class RangeField(forms.Field):
    """A ``{from, to}`` filter whose bounds are validated by ``bound_field``."""

    default_error_messages = {
        "invalid_range": "Debe ser un rango con claves from y to.",
    }

    def __init__(self, **kwargs) -> None:
        kwargs.setdefault("required", False)
        super().__init__(**kwargs)

    def build_bound_field(self) -> forms.Field:  # pragma: no cover - abstract
        raise NotImplementedError

    def to_python(self, value):
        if value in self.empty_values:
            return None
        if not isinstance(value, dict):
            raise forms.ValidationError(self.error_messages["invalid_range"], code="invalid_range")
        bound = self.build_bound_field()
        cleaned: dict[str, Any] = {}
        for key in ("from", "to"):
            raw = value.get(key)
            if raw in bound.empty_values:
                continue
            cleaned[key] = bound.clean(raw)
        return cleaned or None


class DateRangeField(RangeField):
    def build_bound_field(self) -> forms.Field:
        return forms.DateField(required=False)


class NumberRangeField(RangeField):
    def __init__(self, *, min_value: Optional[Decimal] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.min_value = min_value

    def build_bound_field(self) -> forms.Field:
        return FilterDecimalField(required=False, min_value=self.min_value)


class IndexQueryForm(forms.Form):
    """
    Validates and normalizes list requests.

    Subclasses declare ``allowed_sorts`` and ``filter_fields`` (filter key to
    form field) and may override ``default_per_page``, ``max_per_page`` and
    :meth:`sanitize`.
    """

    q = forms.CharField(required=False, max_length=255)
    page = FilterIntegerField(required=False, min_value=1)
    per_page = FilterIntegerField(required=False, min_value=1)
    sort = forms.ChoiceField(required=False)
    dir = forms.ChoiceField(required=False, choices=DIRECTION_CHOICES)

    allowed_sorts: tuple[str, ...] = ()
    filter_fields: dict[str, forms.Field] = {}
    default_per_page: Optional[int] = None
    max_per_page: Optional[int] = None

    def __init__(self, params: Optional[Mapping[str, Any]] = None, **kwargs) -> None:
        params = params if params is not None else {}
        data: dict[str, Any] = {}
        for name in SCALAR_PARAMS:
            value = params.get(name)
            if value is not None:
                data[name] = value
        if isinstance(data.get("dir"), str):
            data["dir"] = data["dir"].strip().lower()

        raw_filters = extract_nested(params, "filters")
        self.raw_filters = coerce_filter_booleans(raw_filters)
        self.filter_errors: dict[str, list[str]] = {}
        super().__init__(data=data, **kwargs)
        self.fields["sort"].choices = [("", "")] + [(name, name) for name in self.allowed_sorts]

    def get_default_per_page(self) -> int:
        if self.default_per_page is not None:
            return self.default_per_page
        return int(settings.LIST_QUERY.get("DEFAULT_PER_PAGE", 15))

    def get_max_per_page(self) -> int:
        if self.max_per_page is not None:
            return self.max_per_page
        return int(settings.LIST_QUERY.get("MAX_PER_PAGE", 100))

    def clean(self):
        cleaned_data = super().clean()
        cleaned_data["filters"] = self._clean_filters()
        return cleaned_data

    def _clean_filters(self) -> dict[str, Any]:
        raw = self.raw_filters
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            self.filter_errors["filters"] = ["El campo filters debe ser un objeto."]
            return {}

        cleaned: dict[str, Any] = {}
        for key, form_field in self.filter_fields.items():
            if key not in raw:
                continue
            try:
                value = form_field.clean(raw[key])
            except forms.ValidationError as exc:
                self.filter_errors[f"filters.{key}"] = [str(message) for message in exc.messages]
                continue
            if value in (None, "", [], {}):
                continue
            cleaned[key] = value
        return cleaned

    def is_valid(self) -> bool:
        valid = super().is_valid()
        return valid and not self.filter_errors

    def error_payload(self) -> dict[str, list[str]]:
        payload: dict[str, list[str]] = {}
        for name, messages_list in self.errors.items():
            payload[name] = [str(message) for message in messages_list]
        payload.update(self.filter_errors)
        return payload

    def normalized_data(self) -> dict[str, Any]:
        if not self.is_valid():
            raise ValueError("La consulta de listado no es válida.")
        data = dict(self.cleaned_data)
        per_page = data.get("per_page") or self.get_default_per_page()
        data["per_page"] = max(1, min(per_page, self.get_max_per_page()))
        filters = data.get("filters")
        if not isinstance(filters, dict):
            filters = {}
        data["filters"] = normalize_ranges(filters)
        return self.sanitize(data)

    def sanitize(self, data: dict[str, Any]) -> dict[str, Any]:
        return data

    def to_list_query(self) -> ListQuery:
        data = self.normalized_data()
        q = (data.get("q") or "").strip() or None
        return ListQuery(
            q=q,
            page=data.get("page") or 1,
            per_page=data["per_page"],
            sort=data.get("sort") or None,
            dir=data.get("dir") or "desc",
            filters=data["filters"],
        )

    def default_list_query(self) -> ListQuery:
        """Query used to render the list when the request parameters are invalid."""

        return ListQuery(per_page=min(self.get_default_per_page(), self.get_max_per_page()))
