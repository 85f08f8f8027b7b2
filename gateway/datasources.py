"""
Downstream Data Sources
=======================
The gateway reads business entities through three narrow async interfaces:

  CustomerSource  → list / find_by_id / search
  ProductSource   → list / find_by_id / search
  OrderSource     → list (optionally filtered)

Persistence is not the gateway's concern — anything satisfying these
Protocols can be plugged into the ToolDispatcher (a Mongo repository, an HTTP
client, a test double). The in-memory implementations below back the demo CLI,
the MCP server and the default API wiring; replace them with real DB calls in
production.
"""
from dataclasses import dataclass, field
from typing import Protocol

from .queries import OrderFilters, Pagination, SearchCustomersQuery, SearchProductsQuery


class NotFoundError(LookupError):
    """A by-id lookup found nothing."""


# ── Entities ────────────────────────────────────────────────────────────────

@dataclass
class Named:
    id: str
    name: str


@dataclass
class Neighborhood:
    id: str
    name: str
    city: Named | None = None


@dataclass
class Customer:
    id: str
    name: str
    email: str
    phone: str = ""
    address: str = ""
    neighborhood: Neighborhood | None = None
    is_active: bool = True
    created_at: str = ""


@dataclass
class Product:
    id: str
    name: str
    description: str = ""
    price: float = 0.0
    price_with_tax: float = 0.0
    stock: int = 0
    category: Named | None = None
    unit: Named | None = None
    tags: list[str] = field(default_factory=list)
    is_active: bool = True
    created_at: str = ""


@dataclass
class Order:
    id: str
    customer: Customer | None
    subtotal: float
    total: float
    status: Named | None
    date: str
    items: list[dict] = field(default_factory=list)


@dataclass
class Page:
    items: list
    total: int


# ── Interfaces ──────────────────────────────────────────────────────────────

class CustomerSource(Protocol):
    async def list(self, pagination: Pagination) -> Page: ...
    async def find_by_id(self, customer_id: str) -> Customer: ...
    async def search(self, query: SearchCustomersQuery) -> Page: ...


class ProductSource(Protocol):
    async def list(self, pagination: Pagination) -> Page: ...
    async def find_by_id(self, product_id: str) -> Product: ...
    async def search(self, query: SearchProductsQuery) -> Page: ...


class OrderSource(Protocol):
    async def list(self, pagination: Pagination, filters: OrderFilters | None = None) -> Page: ...


# ── In-memory implementations ───────────────────────────────────────────────

def _paginate(items: list, pagination: Pagination) -> Page:
    start = pagination.offset
    return Page(items=items[start:start + pagination.limit], total=len(items))


class InMemoryCustomers:
    def __init__(self, customers: list[Customer]):
        self._customers = list(customers)

    async def list(self, pagination: Pagination) -> Page:
        return _paginate(self._customers, pagination)

    async def find_by_id(self, customer_id: str) -> Customer:
        for customer in self._customers:
            if customer.id == customer_id:
                return customer
        raise NotFoundError(f"Customer '{customer_id}' not found")

    async def search(self, query: SearchCustomersQuery) -> Page:
        matches = self._customers
        if query.q:
            needle = query.q.lower()
            matches = [c for c in matches if needle in c.name.lower() or needle in c.email.lower()]
        if query.neighborhood_id:
            matches = [
                c for c in matches
                if c.neighborhood is not None and c.neighborhood.id == query.neighborhood_id
            ]
        key = {"createdAt": "created_at", "updatedAt": "created_at"}.get(query.sort_by, query.sort_by)
        matches = sorted(matches, key=lambda c: getattr(c, key), reverse=query.sort_order == "desc")
        return _paginate(matches, query.pagination)


class InMemoryProducts:
    def __init__(self, products: list[Product]):
        self._products = list(products)

    async def list(self, pagination: Pagination) -> Page:
        return _paginate(self._products, pagination)

    async def find_by_id(self, product_id: str) -> Product:
        for product in self._products:
            if product.id == product_id:
                return product
        raise NotFoundError(f"Product '{product_id}' not found")

    async def search(self, query: SearchProductsQuery) -> Page:
        matches = self._products
        if query.query:
            needle = query.query.lower()
            matches = [
                p for p in matches
                if needle in p.name.lower()
                or needle in p.description.lower()
                or any(needle in tag.lower() for tag in p.tags)
            ]
        if query.categories:
            matches = [p for p in matches if p.category is not None and p.category.id in query.categories]
        if query.min_price is not None:
            matches = [p for p in matches if p.price >= query.min_price]
        if query.max_price is not None:
            matches = [p for p in matches if p.price <= query.max_price]

        if query.sort_by != "relevance":
            key = {"createdAt": "created_at"}.get(query.sort_by, query.sort_by)
            matches = sorted(matches, key=lambda p: getattr(p, key), reverse=query.sort_order == "desc")
        return _paginate(matches, query.pagination)


class InMemoryOrders:
    def __init__(self, orders: list[Order]):
        self._orders = list(orders)

    async def list(self, pagination: Pagination, filters: OrderFilters | None = None) -> Page:
        matches = self._orders
        if filters is not None:
            if filters.customer_id:
                matches = [o for o in matches if o.customer is not None and o.customer.id == filters.customer_id]
            if filters.status:
                matches = [o for o in matches if o.status is not None and o.status.name.lower() == filters.status]
            if filters.date_from:
                matches = [o for o in matches if o.date[:10] >= filters.date_from]
            if filters.date_to:
                matches = [o for o in matches if o.date[:10] <= filters.date_to]
        return _paginate(matches, pagination)


# ── Sample store ────────────────────────────────────────────────────────────

_CORDOBA  = Named("city-1", "Córdoba")
_CENTRO   = Neighborhood("nb-1", "Centro", _CORDOBA)
_NUEVA    = Neighborhood("nb-2", "Nueva Córdoba", _CORDOBA)

_PIZZAS    = Named("cat-1", "Pizzas")
_EMPANADAS = Named("cat-2", "Empanadas")
_SANDWICH  = Named("cat-3", "Sándwiches")
_BEBIDAS   = Named("cat-4", "Bebidas")
_UNIDAD    = Named("unit-1", "Unidad")
_DOCENA    = Named("unit-2", "Docena")

_PENDING   = Named("st-1", "pendiente")
_COMPLETED = Named("st-2", "completado")
_CANCELLED = Named("st-3", "cancelado")


def sample_customers() -> list[Customer]:
    return [
        Customer("cust-1", "Juan Pérez", "juan.perez@example.com", "3511234567",
                 "Av. Colón 123", _CENTRO, True, "2025-01-10"),
        Customer("cust-2", "María González", "maria.gonzalez@example.com", "3517654321",
                 "Bv. Illia 456", _NUEVA, True, "2025-02-14"),
        Customer("cust-3", "Carlos López", "carlos.lopez@example.com", "3519876543",
                 "Obispo Trejo 789", _NUEVA, False, "2025-03-03"),
    ]


def sample_products() -> list[Product]:
    return [
        Product("prod-1", "Pizza Muzzarella", "Pizza grande de muzzarella", 8500.0, 10285.0, 20,
                _PIZZAS, _UNIDAD, ["pizza", "muzzarella"], True, "2025-01-01"),
        Product("prod-2", "Pizza Napolitana", "Pizza con tomate, ajo y albahaca", 9500.0, 11495.0, 15,
                _PIZZAS, _UNIDAD, ["pizza"], True, "2025-01-02"),
        Product("prod-3", "Empanadas de Carne", "Docena de empanadas de carne cortada a cuchillo",
                12000.0, 14520.0, 30, _EMPANADAS, _DOCENA, ["empanada", "carne"], True, "2025-01-03"),
        Product("prod-4", "Lomito Completo", "Lomito con jamón, queso, huevo y papas", 11000.0,
                13310.0, 10, _SANDWICH, _UNIDAD, ["lomito"], True, "2025-01-04"),
        Product("prod-5", "Coca-Cola 1.5L", "Gaseosa cola", 2500.0, 3025.0, 50,
                _BEBIDAS, _UNIDAD, ["bebida", "gaseosa"], True, "2025-01-05"),
    ]


def sample_orders(customers: list[Customer] | None = None) -> list[Order]:
    customers = customers or sample_customers()
    juan, maria = customers[0], customers[1]
    return [
        Order("ord-1", juan, 20500.0, 24805.0, _COMPLETED, "2025-06-10T20:15:00",
              [{"product": "prod-1", "quantity": 1}, {"product": "prod-3", "quantity": 1}]),
        Order("ord-2", maria, 11000.0, 13310.0, _PENDING, "2025-06-15T21:40:00",
              [{"product": "prod-4", "quantity": 1}]),
        Order("ord-3", juan, 2500.0, 3025.0, _CANCELLED, "2025-06-20T13:05:00",
              [{"product": "prod-5", "quantity": 1}]),
    ]


def build_sample_sources() -> tuple[InMemoryCustomers, InMemoryProducts, InMemoryOrders]:
    customers = sample_customers()
    return (
        InMemoryCustomers(customers),
        InMemoryProducts(sample_products()),
        InMemoryOrders(sample_orders(customers)),
    )
