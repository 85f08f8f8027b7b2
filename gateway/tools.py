"""
Tool Registry & Dispatcher
==========================
The fixed catalog of business-data tools and the dispatcher that executes them.

  TOOL_CATALOG    → 8 ToolSpecs (descriptor + soft-fail flag), unique by name
  ToolDispatcher  → call_tool(name, args) routes by exact name to a handler

Every tool answers with a ToolCallResult holding one JSON text block. Errors:

  - unknown tool / bad arguments      → ValidationError
  - handler raised a GatewayError     → passes through unchanged
  - anything else                     → InternalError("Error ejecutando <tool>: ...")

By-id lookups are "soft-fail": when the downstream lookup fails the dispatcher
answers with a successful "<Entidad> con ID <id> no encontrado" text instead.
That behaviour is driven by the catalog flag, not by the handlers.
"""
import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from .datasources import CustomerSource, OrderSource, ProductSource
from .errors import GatewayError, InternalError, ValidationError
from .queries import OrderFilters, Pagination, SearchCustomersQuery, SearchProductsQuery

logger = logging.getLogger(__name__)

SEARCH_DATABASE_PAGE_SIZE = 5
DEFAULT_SEARCH_ENTITIES   = ("products", "customers")


# ── Result & request types ──────────────────────────────────────────────────

@dataclass
class ContentBlock:
    type: Literal["text", "image", "resource"] = "text"
    text: str | None = None
    data: Any = None

    def to_dict(self) -> dict:
        block: dict = {"type": self.type}
        if self.text is not None:
            block["text"] = self.text
        if self.data is not None:
            block["data"] = self.data
        return block


@dataclass
class ToolCallResult:
    content: list[ContentBlock] = field(default_factory=list)

    @classmethod
    def text(cls, text: str) -> "ToolCallResult":
        return cls(content=[ContentBlock(type="text", text=text)])

    @property
    def first_text(self) -> str | None:
        for block in self.content:
            if block.type == "text" and block.text is not None:
                return block.text
        return None

    def to_dict(self) -> dict:
        return {"content": [block.to_dict() for block in self.content]}


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: dict

    def to_dict(self) -> dict:
        return {"name": self.name, "description": self.description, "inputSchema": self.input_schema}


@dataclass(frozen=True)
class ToolCallRequest:
    tool_name: str
    arguments: dict

    @classmethod
    def create(cls, payload: Any) -> "ToolCallRequest":
        """Validate a raw `{toolName, arguments}` payload."""
        if not isinstance(payload, dict):
            raise ValidationError("Tool name is required")
        tool_name = payload.get("toolName")
        if tool_name is None:
            raise ValidationError("Tool name is required")
        if not isinstance(tool_name, str) or not tool_name.strip():
            raise ValidationError("Tool name must be a non-empty string")

        arguments = payload.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ValidationError("Arguments must be an object")
        return cls(tool_name=tool_name.strip(), arguments=arguments)


@dataclass(frozen=True)
class ToolSpec:
    descriptor: ToolDescriptor
    soft_fail: bool = False
    # Used in the soft-fail text, e.g. "Cliente con ID 42 no encontrado".
    entity_label: str | None = None

    @property
    def name(self) -> str:
        return self.descriptor.name


# ── Catalog ─────────────────────────────────────────────────────────────────

def _schema(properties: dict, required: list[str] | None = None) -> dict:
    schema = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


_PAGE       = {"type": "number", "description": "Número de página (default: 1)"}
_SORT_ORDER = {"type": "string", "enum": ["asc", "desc"], "description": "Orden (default: desc)"}

TOOL_CATALOG: tuple[ToolSpec, ...] = (
    ToolSpec(ToolDescriptor(
        "get_customers",
        "Obtiene lista de clientes con filtros opcionales",
        _schema({
            "page":   _PAGE,
            "limit":  {"type": "number", "description": "Clientes por página (default: 10)"},
            "search": {"type": "string", "description": "Buscar por nombre o email"},
        }),
    )),
    ToolSpec(ToolDescriptor(
        "get_customer_by_id",
        "Obtiene un cliente específico por ID",
        _schema({"id": {"type": "string", "description": "ID del cliente"}}, ["id"]),
    ), soft_fail=True, entity_label="Cliente"),
    ToolSpec(ToolDescriptor(
        "search_customers",
        "Busca clientes por nombre, email o barrio",
        _schema({
            "q":              {"type": "string", "description": "Término de búsqueda (mínimo 2 caracteres)"},
            "neighborhoodId": {"type": "string", "description": "ID del barrio para filtrar"},
            "page":           _PAGE,
            "limit":          {"type": "number", "description": "Clientes por página (default: 10)"},
            "sortBy":         {"type": "string", "enum": ["name", "email", "phone", "createdAt", "updatedAt"]},
            "sortOrder":      _SORT_ORDER,
        }),
    )),
    ToolSpec(ToolDescriptor(
        "get_products",
        "Obtiene lista de productos con filtros opcionales",
        _schema({
            "page":       _PAGE,
            "limit":      {"type": "number", "description": "Productos por página (default: 10)"},
            "search":     {"type": "string", "description": "Término de búsqueda en nombre/descripción"},
            "categoryId": {"type": "string", "description": "ID de categoría para filtrar"},
            "minPrice":   {"type": "number", "description": "Precio mínimo"},
            "maxPrice":   {"type": "number", "description": "Precio máximo"},
        }),
    )),
    ToolSpec(ToolDescriptor(
        "get_product_by_id",
        "Obtiene un producto específico por ID",
        _schema({"id": {"type": "string", "description": "ID del producto"}}, ["id"]),
    ), soft_fail=True, entity_label="Producto"),
    ToolSpec(ToolDescriptor(
        "search_products",
        "Busca productos por nombre, descripción o etiquetas, con filtros de precio y categoría",
        _schema({
            "q":          {"type": "string", "description": "Término de búsqueda"},
            "categories": {"type": "string", "description": "IDs de categoría separados por comas"},
            "minPrice":   {"type": "number", "description": "Precio mínimo"},
            "maxPrice":   {"type": "number", "description": "Precio máximo"},
            "page":       _PAGE,
            "limit":      {"type": "number", "description": "Productos por página (default: 10)"},
            "sortBy":     {"type": "string", "enum": ["price", "createdAt", "name", "relevance"]},
            "sortOrder":  _SORT_ORDER,
        }),
    )),
    ToolSpec(ToolDescriptor(
        "get_orders",
        "Obtiene lista de pedidos con filtros opcionales",
        _schema({
            "page":       _PAGE,
            "limit":      {"type": "number", "description": "Pedidos por página (default: 10)"},
            "customerId": {"type": "string", "description": "ID del cliente para filtrar"},
            "status":     {"type": "string", "description": "Estado del pedido"},
            "dateFrom":   {"type": "string", "description": "Fecha desde (YYYY-MM-DD)"},
            "dateTo":     {"type": "string", "description": "Fecha hasta (YYYY-MM-DD)"},
        }),
    )),
    ToolSpec(ToolDescriptor(
        "search_database",
        "Búsqueda general en productos y clientes",
        _schema({
            "query": {"type": "string", "description": "Término de búsqueda"},
            "entities": {
                "type": "array",
                "items": {"type": "string", "enum": ["products", "customers"]},
                "description": "Entidades donde buscar (default: ['products', 'customers'])",
            },
        }, ["query"]),
    )),
)

_SPECS_BY_NAME = {spec.name: spec for spec in TOOL_CATALOG}


def list_tools() -> list[ToolDescriptor]:
    return [spec.descriptor for spec in TOOL_CATALOG]


def get_tool_spec(name: str) -> ToolSpec | None:
    return _SPECS_BY_NAME.get(name)


# ── Projections ─────────────────────────────────────────────────────────────

def project_customer(customer) -> dict:
    neighborhood = customer.neighborhood
    city = neighborhood.city if neighborhood is not None else None
    return {
        "id":           customer.id,
        "name":         customer.name,
        "email":        customer.email,
        "phone":        customer.phone,
        "address":      customer.address,
        "neighborhood": neighborhood.name if neighborhood is not None else "No especificado",
        "city":         city.name if city is not None else "No especificado",
        "is_active":    customer.is_active,
    }


def project_product(product) -> dict:
    return {
        "id":             product.id,
        "name":           product.name,
        "description":    product.description,
        "price":          product.price,
        "price_with_tax": product.price_with_tax,
        "stock":          product.stock,
        "category":       product.category.name if product.category is not None else "Sin categoría",
        "unit":           product.unit.name if product.unit is not None else "Sin unidad",
        "tags":           list(product.tags),
        "is_active":      product.is_active,
    }


def project_order(order) -> dict:
    customer = order.customer
    return {
        "id":          order.id,
        "customer":    (
            {"id": customer.id, "name": customer.name, "email": customer.email}
            if customer is not None else None
        ),
        "subtotal":    order.subtotal,
        "total":       order.total,
        "status":      order.status.name if order.status is not None else "Sin estado",
        "date":        order.date,
        "items_count": len(order.items),
    }


def _json_result(payload: dict) -> ToolCallResult:
    return ToolCallResult.text(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _listing(key: str, page, pagination: Pagination, projector) -> ToolCallResult:
    return _json_result({
        "total": page.total,
        "page":  pagination.page,
        "limit": pagination.limit,
        key:     [projector(item) for item in page.items],
    })


# ── Dispatcher ──────────────────────────────────────────────────────────────

class ToolDispatcher:
    """
    Executes catalog tools against the downstream data sources.

    Usage:
        dispatcher = ToolDispatcher(customers, products, orders)
        result = await dispatcher.call_tool("search_products", {"q": "pizza"})
        print(result.first_text)
    """

    def __init__(self, customers: CustomerSource, products: ProductSource, orders: OrderSource):
        self._customers = customers
        self._products  = products
        self._orders    = orders

    def list_tools(self) -> list[ToolDescriptor]:
        return list_tools()

    async def call_tool(self, name: str, args: dict | None = None) -> ToolCallResult:
        spec = get_tool_spec(name)
        if spec is None:
            raise ValidationError(f"Herramienta desconocida: {name}")
        args = args or {}
        handler = getattr(self, f"_{spec.name}")

        logger.info("[tools] Executing tool: %s", name)
        try:
            return await handler(args)
        except GatewayError:
            raise
        except Exception as e:
            if spec.soft_fail:
                logger.info("[tools] %s lookup failed for id=%s: %s", name, args.get("id"), e)
                return ToolCallResult.text(f"{spec.entity_label} con ID {args.get('id')} no encontrado")
            logger.error("[tools] Tool %s failed: %s", name, e, exc_info=True)
            raise InternalError(f"Error ejecutando {name}: {e}") from e

    # ── Customers ───────────────────────────────────────────────────────────

    async def _get_customers(self, args: dict) -> ToolCallResult:
        pagination = Pagination.create(args.get("page"), args.get("limit"))
        search = args.get("search")
        if search:
            query = SearchCustomersQuery.create({
                "q": search, "page": pagination.page, "limit": pagination.limit,
            })
            page = await self._customers.search(query)
        else:
            page = await self._customers.list(pagination)
        return _listing("customers", page, pagination, project_customer)

    async def _get_customer_by_id(self, args: dict) -> ToolCallResult:
        customer_id = args.get("id")
        if not customer_id:
            raise ValidationError("ID del cliente es requerido")
        customer = await self._customers.find_by_id(str(customer_id))
        return _json_result(project_customer(customer))

    async def _search_customers(self, args: dict) -> ToolCallResult:
        query = SearchCustomersQuery.create(args)
        try:
            page = await self._customers.search(query)
        except Exception as e:
            raise InternalError(f"Error buscando clientes: {e}") from e
        return _listing("customers", page, query.pagination, project_customer)

    # ── Products ────────────────────────────────────────────────────────────

    async def _get_products(self, args: dict) -> ToolCallResult:
        pagination = Pagination.create(args.get("page"), args.get("limit"))
        filters = {
            "q":          args.get("search"),
            "categories": args.get("categoryId"),
            "minPrice":   args.get("minPrice"),
            "maxPrice":   args.get("maxPrice"),
        }
        if any(value not in (None, "") for value in filters.values()):
            query = SearchProductsQuery.create({
                **filters, "page": pagination.page, "limit": pagination.limit,
            })
            page = await self._products.search(query)
        else:
            page = await self._products.list(pagination)
        return _listing("products", page, pagination, project_product)

    async def _get_product_by_id(self, args: dict) -> ToolCallResult:
        product_id = args.get("id")
        if not product_id:
            raise ValidationError("ID del producto es requerido")
        product = await self._products.find_by_id(str(product_id))
        return _json_result(project_product(product))

    async def _search_products(self, args: dict) -> ToolCallResult:
        query = SearchProductsQuery.create(args)
        try:
            page = await self._products.search(query)
        except Exception as e:
            raise InternalError(f"Error buscando productos: {e}") from e
        return _listing("products", page, query.pagination, project_product)

    # ── Orders ──────────────────────────────────────────────────────────────

    async def _get_orders(self, args: dict) -> ToolCallResult:
        pagination = Pagination.create(args.get("page"), args.get("limit"))
        filters = OrderFilters.create(args)
        try:
            page = await self._orders.list(pagination, None if filters.is_empty() else filters)
        except Exception as e:
            logger.warning("[tools] get_orders failed: %s", e)
            return ToolCallResult.text(f"Error obteniendo pedidos: {e}")
        return _listing("orders", page, pagination, project_order)

    # ── Cross-entity search ─────────────────────────────────────────────────

    async def _search_database(self, args: dict) -> ToolCallResult:
        query = args.get("query")
        if not query or not isinstance(query, str):
            raise ValidationError("Query de búsqueda es requerido")
        entities = args.get("entities")
        if entities is None:
            entities = list(DEFAULT_SEARCH_ENTITIES)
        if not isinstance(entities, list):
            raise ValidationError("entities debe ser una lista")
        needle = query.lower()
        pagination = Pagination(page=1, limit=SEARCH_DATABASE_PAGE_SIZE)

        async def find_products() -> list[dict]:
            page = await self._products.list(pagination)
            return [
                project_product(p) for p in page.items
                if needle in p.name.lower() or needle in (p.description or "").lower()
            ][:SEARCH_DATABASE_PAGE_SIZE]

        async def find_customers() -> list[dict]:
            page = await self._customers.list(pagination)
            return [
                project_customer(c) for c in page.items
                if needle in c.name.lower() or needle in (c.email or "").lower()
            ][:SEARCH_DATABASE_PAGE_SIZE]

        lookups = {
            "products":  (find_products, "Error buscando productos"),
            "customers": (find_customers, "Error buscando clientes"),
        }
        # Unknown kinds are ignored; duplicates collapse.
        kinds = [kind for kind in dict.fromkeys(entities) if kind in lookups]
        outcomes = await asyncio.gather(
            *(lookups[kind][0]() for kind in kinds), return_exceptions=True
        )

        results: dict = {}
        errors: list[str] = []
        for kind, outcome in zip(kinds, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                errors.append(f"{lookups[kind][1]}: {outcome}")
            elif outcome:
                results[kind] = outcome
        if errors:
            results["errors"] = errors

        if not results:
            return ToolCallResult.text("{}")
        return _json_result(results)
