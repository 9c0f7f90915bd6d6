from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence

from django.conf import settings
from django.core.exceptions import FieldDoesNotExist
from django.core.paginator import Paginator
from django.db import IntegrityError, models, transaction
from django.db.models import Count, Q, QuerySet
from django.http import HttpResponse
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from core.exceptions import ConcurrencyError, DomainActionError
from core.listing import ListQuery

from .exports import build_export_response


logger = logging.getLogger(__name__)

FilterHandler = Callable[[QuerySet, Any], QuerySet]


@dataclass(slots=True)
class ListResult:
    rows: list[dict[str, Any]]
    current_page: int
    per_page: int
    total: int
    last_page: int
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def meta(self) -> dict[str, int]:
        return {
            "currentPage": self.current_page,
            "perPage": self.per_page,
            "total": self.total,
            "lastPage": self.last_page,
        }


def version_token(moment: Optional[datetime]) -> Optional[str]:
    if moment is None:
        return None
    return moment.isoformat()


def version_matches(raw: str, current: datetime) -> bool:
    """Compare a submitted version with ``updated_at``; tokens without fractions match by second."""

    candidate = raw.strip()
    if candidate.isdigit():
        return int(candidate) == int(current.timestamp())
    try:
        parsed = parse_datetime(candidate)
    except ValueError:
        return False
    if parsed is None:
        return False
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    if parsed.microsecond:
        return parsed == current
    return int(parsed.timestamp()) == int(current.timestamp())


class ResourceService:
    """
    Generic list/export/mutation service for one model.

    Subclasses set ``model`` plus the search, sort and export declarations and
    override the ``before_*``/``after_*`` hooks for their business rules.
    """

    model: type[models.Model]
    searchable_fields: tuple[str, ...] = ("code", "name")
    allowed_sorts: tuple[str, ...] = ("id", "code", "name", "is_active", "created_at")
    default_sort: tuple[str, str] = ("id", "desc")
    export_columns: dict[str, str] = {
        "id": "ID",
        "code": "Código",
        "name": "Nombre",
        "is_active": "Activo",
        "created_at": "Creado",
    }
    export_filename: Optional[str] = None
    select_related: tuple[str, ...] = ()
    prefetch_related: tuple[str, ...] = ()
    active_field = "is_active"
    soft_deletes = True

    def __init__(self, *, actor=None) -> None:
        self.actor = actor

    # Query building -----------------------------------------------------

    def base_queryset(self) -> QuerySet:
        queryset = self.model._default_manager.all()
        if self.select_related:
            queryset = queryset.select_related(*self.select_related)
        if self.prefetch_related:
            queryset = queryset.prefetch_related(*self.prefetch_related)
        return queryset

    def trashed_queryset(self) -> QuerySet:
        return self.model.all_objects.dead()

    def filter_map(self) -> dict[str, FilterHandler]:
        return {}

    def apply_search(self, queryset: QuerySet, term: Optional[str]) -> QuerySet:
        if not term or not self.searchable_fields:
            return queryset
        condition = Q()
        for field_name in self.searchable_fields:
            condition |= Q(**{f"{field_name}__icontains": term})
        return queryset.filter(condition)

    def apply_filters(self, queryset: QuerySet, filters: dict[str, Any]) -> QuerySet:
        handlers = self.filter_map()
        for key, value in filters.items():
            if value is None:
                continue
            handler = handlers.get(key)
            if handler is not None:
                queryset = handler(queryset, value)
                continue
            queryset = self.apply_standard_filter(queryset, key, value)
        return queryset

    def _resolve_column(self, base: str) -> str:
        opts = self.model._meta
        for candidate in (base, f"{base}_at"):
            try:
                opts.get_field(candidate)
            except FieldDoesNotExist:
                continue
            return candidate
        return base

    def _bound_lookup(self, column: str, value: Any, operator: str) -> dict[str, Any]:
        try:
            model_field = self.model._meta.get_field(column)
        except FieldDoesNotExist:
            model_field = None
        if (
            isinstance(model_field, models.DateTimeField)
            and isinstance(value, date)
            and not isinstance(value, datetime)
        ):
            return {f"{column}__date__{operator}": value}
        return {f"{column}__{operator}": value}

    def apply_standard_filter(self, queryset: QuerySet, key: str, value: Any) -> QuerySet:
        if key.endswith("_like"):
            return queryset.filter(**{f"{key[:-5]}__icontains": str(value)})
        if key.endswith("_between") and isinstance(value, dict):
            column = self._resolve_column(key[:-8])
            if value.get("from") is not None:
                queryset = queryset.filter(**self._bound_lookup(column, value["from"], "gte"))
            if value.get("to") is not None:
                queryset = queryset.filter(**self._bound_lookup(column, value["to"], "lte"))
            return queryset
        if key.endswith("_in") and isinstance(value, (list, tuple)):
            return queryset.filter(**{f"{key[:-3]}__in": list(value)})
        if key.endswith("_is"):
            if value == "null":
                return queryset.filter(**{f"{key[:-3]}__isnull": True})
            if value == "notnull":
                return queryset.filter(**{f"{key[:-3]}__isnull": False})
            return queryset
        if key.endswith("_count"):
            relation = key[:-6]
            annotation = f"_{relation}_total"
            return queryset.annotate(**{annotation: Count(relation, distinct=True)}).filter(
                **{f"{annotation}__gte": int(value)}
            )
        return queryset.filter(**{key: value})

    def apply_sort(self, queryset: QuerySet, sort: Optional[str], direction: Optional[str]) -> QuerySet:
        if not sort or sort not in self.allowed_sorts:
            sort, direction = self.default_sort
        direction = direction if direction in ("asc", "desc") else "desc"
        prefix = "-" if direction == "desc" else ""
        if sort == "id":
            return queryset.order_by(f"{prefix}pk")
        return queryset.order_by(f"{prefix}{sort}", f"{prefix}pk")

    def build_queryset(self, query: ListQuery) -> QuerySet:
        queryset = self.base_queryset()
        queryset = self.apply_search(queryset, query.q)
        queryset = self.apply_filters(queryset, query.filters)
        return self.apply_sort(queryset, query.sort, query.dir)

    # Reading ------------------------------------------------------------

    def paginate(self, queryset: QuerySet, *, page: int, per_page: int) -> ListResult:
        paginator = Paginator(queryset, per_page)
        page_obj = paginator.get_page(page)
        return ListResult(
            rows=[self.to_row(obj) for obj in page_obj.object_list],
            current_page=page_obj.number,
            per_page=per_page,
            total=paginator.count,
            last_page=paginator.num_pages,
        )

    def list(self, query: ListQuery) -> ListResult:
        return self.paginate(self.build_queryset(query), page=query.page, per_page=query.per_page)

    def list_by_ids_desc(self, ids: Sequence[int], *, per_page: Optional[int] = None) -> ListResult:
        queryset = self.base_queryset().filter(pk__in=list(ids)).order_by("-pk")
        return self.paginate(queryset, page=1, per_page=per_page or max(len(ids), 1))

    def to_row(self, obj: models.Model) -> dict[str, Any]:
        row: dict[str, Any] = {"id": obj.pk}
        for model_field in obj._meta.concrete_fields:
            if model_field.primary_key or model_field.name == "deleted_at":
                continue
            if isinstance(model_field, models.ForeignKey):
                row[model_field.attname] = getattr(obj, model_field.attname)
                continue
            row[model_field.name] = getattr(obj, model_field.name)
        if hasattr(obj, "updated_at"):
            row["_version"] = version_token(obj.updated_at)
        return row

    def to_item(self, obj: models.Model) -> dict[str, Any]:
        return self.to_row(obj)

    def get_stats(self) -> dict[str, int]:
        queryset = self.model._default_manager.all()
        return {
            "total": queryset.count(),
            "active": queryset.filter(**{self.active_field: True}).count(),
        }

    def get_index_extras(self) -> dict[str, Any]:
        return {"stats": self.get_stats()}

    def form_options(self) -> dict[str, Any]:
        return {}

    # Export -------------------------------------------------------------

    def get_export_filename(self) -> str:
        return self.export_filename or self.model._meta.model_name

    def export_rows(self, query: ListQuery) -> Iterator[dict[str, Any]]:
        chunk_size = int(settings.LIST_QUERY.get("EXPORT_CHUNK_SIZE", 1000))
        queryset = self.build_queryset(query)
        paginator = Paginator(queryset, chunk_size)
        for page_number in paginator.page_range:
            for obj in paginator.page(page_number).object_list:
                yield self.to_export_row(obj)

    def to_export_row(self, obj: models.Model) -> dict[str, Any]:
        return self.to_row(obj)

    def export(self, query: ListQuery, fmt: Optional[str]) -> HttpResponse:
        response = build_export_response(
            rows=self.export_rows(query),
            columns=self.export_columns,
            filename_base=self.get_export_filename(),
            fmt=fmt,
        )
        logger.info(
            "Exportación de %s generada por %s",
            self.model._meta.model_name,
            getattr(self.actor, "pk", None),
        )
        return response

    # Hooks ----------------------------------------------------------------

    def before_create(self, data: dict[str, Any]) -> dict[str, Any]:
        return data

    def after_create(self, obj: models.Model, data: dict[str, Any]) -> None:
        return None

    def before_update(self, obj: models.Model, data: dict[str, Any]) -> dict[str, Any]:
        return data

    def after_update(self, obj: models.Model, data: dict[str, Any]) -> None:
        return None

    def before_delete(self, obj: models.Model) -> None:
        return None

    # Mutations ------------------------------------------------------------

    def assert_version(self, obj: models.Model, version: Optional[str]) -> None:
        if not version:
            return
        current = getattr(obj, "updated_at", None)
        if current is None:
            return
        if not version_matches(str(version), current):
            logger.info(
                "Conflicto de versión en %s #%s", obj._meta.model_name, obj.pk
            )
            raise ConcurrencyError()

    def assign(self, obj: models.Model, data: dict[str, Any]) -> models.Model:
        for name, value in data.items():
            setattr(obj, name, value)
        return obj

    def create(self, data: dict[str, Any]) -> models.Model:
        with transaction.atomic():
            data = self.before_create(dict(data))
            obj = self.assign(self.model(), data)
            obj.save()
            self.after_create(obj, data)
        logger.info("%s #%s creado", self.model._meta.model_name, obj.pk)
        return obj

    def update(self, obj: models.Model, data: dict[str, Any], *, version: Optional[str] = None) -> models.Model:
        with transaction.atomic():
            locked = self.model._default_manager.select_for_update().get(pk=obj.pk)
            self.assert_version(locked, version)
            data = self.before_update(locked, dict(data))
            self.assign(locked, data)
            locked.save()
            self.after_update(locked, data)
        logger.info("%s #%s actualizado", self.model._meta.model_name, locked.pk)
        return locked

    def set_active(self, obj: models.Model, active: bool) -> models.Model:
        if getattr(obj, self.active_field) == active:
            return obj
        setattr(obj, self.active_field, active)
        obj.save(update_fields=[self.active_field, "updated_at"])
        return obj

    def delete(self, obj: models.Model) -> None:
        with transaction.atomic():
            self.before_delete(obj)
            if self.soft_deletes:
                obj.soft_delete()
            else:
                obj.delete()
        logger.info("%s #%s eliminado", self.model._meta.model_name, obj.pk)

    def restore(self, obj: models.Model) -> None:
        obj.restore()

    # Bulk ---------------------------------------------------------------

    def _objects_for(self, ids: Iterable[int], *, trashed: bool = False) -> list[models.Model]:
        queryset = self.trashed_queryset() if trashed else self.model._default_manager.all()
        return list(queryset.filter(pk__in=list(ids)).order_by("pk"))

    def bulk_delete_by_ids(self, ids: Iterable[int]) -> int:
        count = 0
        for obj in self._objects_for(ids):
            try:
                self.delete(obj)
            except DomainActionError as exc:
                logger.warning(
                    "Se omitió %s #%s en eliminación masiva: %s",
                    self.model._meta.model_name,
                    obj.pk,
                    exc.message,
                )
                continue
            count += 1
        return count

    def bulk_restore_by_ids(self, ids: Iterable[int]) -> int:
        count = 0
        for obj in self._objects_for(ids, trashed=True):
            try:
                with transaction.atomic():
                    self.restore(obj)
            except IntegrityError:
                # A live row already holds the same unique value.
                logger.warning(
                    "Se omitió %s #%s en restauración masiva: existe un registro vigente con los mismos datos",
                    self.model._meta.model_name,
                    obj.pk,
                )
                continue
            count += 1
        return count

    def bulk_set_active_by_ids(self, ids: Iterable[int], active: bool) -> int:
        count = 0
        for obj in self._objects_for(ids):
            if getattr(obj, self.active_field) == active:
                continue
            try:
                self.set_active(obj, active)
            except DomainActionError as exc:
                logger.warning(
                    "Se omitió %s #%s en cambio de estado masivo: %s",
                    self.model._meta.model_name,
                    obj.pk,
                    exc.message,
                )
                continue
            count += 1
        return count
