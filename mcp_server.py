"""
MCP Server: E-commerce Data Service
===================================
Exposes the gateway's business-data tool catalog via the Model Context Protocol.

Tools:
  - get_customers       → List customers (optionally filtered by a search term).
  - get_customer_by_id  → One customer; "Cliente con ID X no encontrado" on a miss.
  - search_customers    → Search customers by name/email and neighborhood.
  - get_products        → List products (optional search, category, price range).
  - get_product_by_id   → One product; "Producto con ID X no encontrado" on a miss.
  - search_products     → Search products with price/category filters and sorting.
  - get_orders          → List orders filtered by customer, status or date range.
  - search_database     → Cross-entity search over products and customers.

All tools are read-only. Every call goes through the same ToolDispatcher the
HTTP gateway uses, so validation and error messages are identical.

Run standalone:   python mcp_server.py
Or via a client:  start this as a subprocess (stdio transport).
"""
import json

from mcp.server.fastmcp import FastMCP

from gateway.datasources import build_sample_sources
from gateway.errors import GatewayError
from gateway.tools import ToolDispatcher

mcp = FastMCP("E-commerce Data Service")

# ---------------------------------------------------------------------------
# Dispatcher over the in-memory sample sources
# ---------------------------------------------------------------------------

_dispatcher = ToolDispatcher(*build_sample_sources())


async def _run(tool_name: str, args: dict) -> str:
    """Call a catalog tool and return its text block; errors become {"error": ...}."""
    # Unset optional arguments are dropped so the dispatcher applies its defaults.
    args = {k: v for k, v in args.items() if v is not None}
    try:
        result = await _dispatcher.call_tool(tool_name, args)
    except GatewayError as e:
        return json.dumps({"error": e.message}, ensure_ascii=False)
    return result.first_text or ""


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------

@mcp.tool()
async def get_customers(page: int = 1, limit: int = 10, search: str | None = None) -> str:
    """
    List customers.

    Args:
        page:   Page number (default: 1)
        limit:  Customers per page (default: 10)
        search: Optional name or email fragment
    """
    return await _run("get_customers", {"page": page, "limit": limit, "search": search})


@mcp.tool()
async def get_customer_by_id(id: str) -> str:
    """
    Retrieve one customer by ID.

    Args:
        id: The customer identifier (e.g., "cust-1")
    """
    return await _run("get_customer_by_id", {"id": id})


@mcp.tool()
async def search_customers(
    q: str | None = None,
    neighborhoodId: str | None = None,
    page: int = 1,
    limit: int = 10,
    sortBy: str | None = None,
    sortOrder: str | None = None,
) -> str:
    """
    Search customers. At least one of q / neighborhoodId is required.

    Args:
        q:              Name or email fragment (min. 2 characters)
        neighborhoodId: Restrict to one neighborhood
        sortBy:         name | email | phone | createdAt | updatedAt
        sortOrder:      asc | desc
    """
    return await _run("search_customers", {
        "q": q, "neighborhoodId": neighborhoodId, "page": page, "limit": limit,
        "sortBy": sortBy, "sortOrder": sortOrder,
    })


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

@mcp.tool()
async def get_products(
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    categoryId: str | None = None,
    minPrice: float | None = None,
    maxPrice: float | None = None,
) -> str:
    """
    List products, optionally filtered.

    Args:
        search:     Name/description fragment
        categoryId: Category to filter by
        minPrice:   Lower price bound
        maxPrice:   Upper price bound
    """
    return await _run("get_products", {
        "page": page, "limit": limit, "search": search,
        "categoryId": categoryId, "minPrice": minPrice, "maxPrice": maxPrice,
    })


@mcp.tool()
async def get_product_by_id(id: str) -> str:
    """
    Retrieve one product by ID.

    Args:
        id: The product identifier (e.g., "prod-1")
    """
    return await _run("get_product_by_id", {"id": id})


@mcp.tool()
async def search_products(
    q: str | None = None,
    categories: str | None = None,
    minPrice: float | None = None,
    maxPrice: float | None = None,
    page: int = 1,
    limit: int = 10,
    sortBy: str | None = None,
    sortOrder: str | None = None,
) -> str:
    """
    Search products by name, description or tags.

    Args:
        q:          Search term
        categories: Comma-separated category IDs
        sortBy:     price | createdAt | name | relevance
        sortOrder:  asc | desc
    """
    return await _run("search_products", {
        "q": q, "categories": categories, "minPrice": minPrice, "maxPrice": maxPrice,
        "page": page, "limit": limit, "sortBy": sortBy, "sortOrder": sortOrder,
    })


# ---------------------------------------------------------------------------
# Orders & cross-entity search
# ---------------------------------------------------------------------------

@mcp.tool()
async def get_orders(
    page: int = 1,
    limit: int = 10,
    customerId: str | None = None,
    status: str | None = None,
    dateFrom: str | None = None,
    dateTo: str | None = None,
) -> str:
    """
    List orders.

    Args:
        customerId: Only this customer's orders
        status:     Order status (e.g., "pendiente", "completado")
        dateFrom:   Start date, YYYY-MM-DD
        dateTo:     End date, YYYY-MM-DD
    """
    return await _run("get_orders", {
        "page": page, "limit": limit, "customerId": customerId,
        "status": status, "dateFrom": dateFrom, "dateTo": dateTo,
    })


@mcp.tool()
async def search_database(query: str, entities: list[str] | None = None) -> str:
    """
    Search products and customers at once (up to 5 matches per kind).

    Returns "{}" when nothing matched.

    Args:
        query:    Search term
        entities: Which kinds to search: ["products", "customers"] (default: both)
    """
    return await _run("search_database", {"query": query, "entities": entities})


if __name__ == "__main__":
    mcp.run()
