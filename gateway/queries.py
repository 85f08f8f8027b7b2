"""
Query Objects
=============
Validated, immutable query values handed to the downstream data sources.

Each type is only built through its `create()` classmethod, which normalizes
raw tool arguments (strings from an LLM, numbers from JSON) and raises
ValidationError with a readable message when something is off. Handlers never
talk to a data source with unchecked input.
"""
import re
from dataclasses import dataclass
from typing import Any

from .errors import ValidationError

PRODUCT_SORT_FIELDS  = ("price", "createdAt", "name", "relevance")
CUSTOMER_SORT_FIELDS = ("name", "email", "phone", "createdAt", "updatedAt")
SORT_ORDERS          = ("asc", "desc")

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _to_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} debe ser un número")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} debe ser un número") from None
    if not number.is_integer():
        raise ValidationError(f"{name} debe ser un número entero")
    return int(number)


def _to_price(value: Any, name: str) -> float | None:
    if value is None or value == "":
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} debe ser un número no negativo") from None
    if price < 0 or price != price:
        raise ValidationError(f"{name} debe ser un número no negativo")
    return price


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    limit: int = 10

    @classmethod
    def create(cls, page: Any = 1, limit: Any = 10) -> "Pagination":
        page  = _to_int(1 if page is None else page, "page")
        limit = _to_int(10 if limit is None else limit, "limit")
        if page < 1:
            raise ValidationError("page debe ser mayor que 0")
        if limit < 1:
            raise ValidationError("limit debe ser mayor que 0")
        return cls(page=page, limit=limit)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class SearchProductsQuery:
    pagination: Pagination
    query: str | None = None
    categories: tuple[str, ...] | None = None
    min_price: float | None = None
    max_price: float | None = None
    sort_by: str = "createdAt"
    sort_order: str = "desc"

    @classmethod
    def create(cls, args: dict) -> "SearchProductsQuery":
        pagination = Pagination.create(args.get("page", 1), args.get("limit", 10))

        raw_q = args.get("q")
        query = str(raw_q).strip() if raw_q else None

        categories = None
        raw_categories = args.get("categories")
        if raw_categories:
            if not isinstance(raw_categories, str):
                raise ValidationError("categories debe ser un string separado por comas")
            categories = tuple(c.strip() for c in raw_categories.split(",") if c.strip())

        min_price = _to_price(args.get("minPrice"), "minPrice")
        max_price = _to_price(args.get("maxPrice"), "maxPrice")
        if min_price is not None and max_price is not None and max_price < min_price:
            raise ValidationError("maxPrice debe ser mayor o igual a minPrice")

        sort_by = args.get("sortBy") or "relevance"
        # Relevance only makes sense with a keyword.
        if not query and sort_by == "relevance":
            sort_by = "createdAt"
        if sort_by not in PRODUCT_SORT_FIELDS:
            raise ValidationError(f"sortBy debe ser uno de: {', '.join(PRODUCT_SORT_FIELDS)}")

        sort_order = args.get("sortOrder") or "desc"
        if sort_order not in SORT_ORDERS:
            raise ValidationError("sortOrder debe ser 'asc' o 'desc'")

        return cls(
            pagination=pagination,
            query=query,
            categories=categories,
            min_price=min_price,
            max_price=max_price,
            sort_by=sort_by,
            sort_order=sort_order,
        )


@dataclass(frozen=True)
class SearchCustomersQuery:
    pagination: Pagination
    q: str | None = None
    neighborhood_id: str | None = None
    sort_by: str = "createdAt"
    sort_order: str = "desc"

    @classmethod
    def create(cls, args: dict) -> "SearchCustomersQuery":
        pagination = Pagination.create(args.get("page", 1), args.get("limit", 10))
        q = args.get("q")
        neighborhood_id = args.get("neighborhoodId")

        if not q and not neighborhood_id:
            raise ValidationError(
                "Al menos un criterio de búsqueda (q o neighborhoodId) debe estar presente"
            )
        if q is not None:
            if not isinstance(q, str):
                raise ValidationError("El término de búsqueda (q) debe ser un string")
            if len(q.strip()) < 2:
                raise ValidationError("El término de búsqueda debe tener al menos 2 caracteres")
        if neighborhood_id is not None and not isinstance(neighborhood_id, str):
            raise ValidationError("El neighborhoodId debe ser un string")

        sort_by = args.get("sortBy") or "createdAt"
        if sort_by not in CUSTOMER_SORT_FIELDS:
            raise ValidationError(
                f"El campo sortBy debe ser uno de: {', '.join(CUSTOMER_SORT_FIELDS)}"
            )
        sort_order = args.get("sortOrder") or "desc"
        if sort_order not in SORT_ORDERS:
            raise ValidationError('El sortOrder debe ser "asc" o "desc"')

        return cls(
            pagination=pagination,
            q=q.strip() if q else None,
            neighborhood_id=neighborhood_id,
            sort_by=sort_by,
            sort_order=sort_order,
        )


@dataclass(frozen=True)
class OrderFilters:
    customer_id: str | None = None
    status: str | None = None
    date_from: str | None = None
    date_to: str | None = None

    @classmethod
    def create(cls, args: dict) -> "OrderFilters":
        date_from = args.get("dateFrom") or None
        date_to   = args.get("dateTo") or None
        for name, value in (("dateFrom", date_from), ("dateTo", date_to)):
            if value is not None and not (isinstance(value, str) and _ISO_DATE.match(value)):
                raise ValidationError(f"{name} debe tener formato YYYY-MM-DD")
        # ISO dates compare correctly as strings.
        if date_from and date_to and date_from > date_to:
            raise ValidationError("dateFrom debe ser anterior o igual a dateTo")

        status = args.get("status") or None
        customer_id = args.get("customerId") or None
        return cls(
            customer_id=str(customer_id) if customer_id else None,
            status=str(status).lower() if status else None,
            date_from=date_from,
            date_to=date_to,
        )

    def is_empty(self) -> bool:
        return not (self.customer_id or self.status or self.date_from or self.date_to)
