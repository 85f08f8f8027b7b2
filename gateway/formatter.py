"""
Response Formatter
==================
Turns a tool's JSON text block into a short Spanish answer for end users.

Listings render as a header line with totals plus one bullet per entity;
search_database renders one section per entity kind. Anything that is not
JSON (soft-fail "no encontrado" messages, get_orders error text) is
returned unchanged.
"""
import json

from .tools import ToolCallResult


def _money(value) -> str:
    try:
        return f"${float(value):,.2f}"
    except (TypeError, ValueError):
        return str(value)


def _product_line(product: dict) -> str:
    return (
        f"• {product.get('name')} - {_money(product.get('price'))} "
        f"(stock: {product.get('stock')}, categoría: {product.get('category')})"
    )


def _customer_line(customer: dict) -> str:
    return (
        f"• {customer.get('name')} - {customer.get('email')} "
        f"(tel: {customer.get('phone') or 'sin teléfono'}, ciudad: {customer.get('city')})"
    )


def _order_line(order: dict) -> str:
    customer = order.get("customer") or {}
    return (
        f"• Pedido {order.get('id')} - {customer.get('name', 'Cliente desconocido')} - "
        f"{_money(order.get('total'))} - {order.get('status')} ({order.get('date')})"
    )


def _format_listing(items: list, total, noun: str, empty: str, line) -> str:
    if not items:
        return empty
    header = f"Encontré {total if total is not None else len(items)} {noun}"
    if total is not None and total > len(items):
        header += f" (mostrando {len(items)})"
    return header + ":\n" + "\n".join(line(item) for item in items)


def _format_search_database(data: dict) -> str:
    sections = []
    if data.get("products"):
        sections.append(_format_listing(
            data["products"], len(data["products"]), "productos", "", _product_line
        ))
    if data.get("customers"):
        sections.append(_format_listing(
            data["customers"], len(data["customers"]), "clientes", "", _customer_line
        ))
    if data.get("errors"):
        sections.append("Algunas búsquedas fallaron:\n" + "\n".join(f"• {e}" for e in data["errors"]))
    if not sections:
        return "No encontré resultados para tu búsqueda."
    return "\n\n".join(sections)


def format_tool_result(tool_name: str, result: ToolCallResult | dict | str) -> str:
    """Render a tool result as user-facing Spanish text."""
    if isinstance(result, ToolCallResult):
        text = result.first_text or ""
    elif isinstance(result, dict):
        blocks = result.get("content") or []
        text = next((b.get("text") for b in blocks if b.get("type") == "text"), "") or ""
    else:
        text = result or ""

    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        return text
    if not isinstance(data, dict):
        return text

    if tool_name == "search_database":
        return _format_search_database(data)

    total = data.get("total")
    if "products" in data:
        return _format_listing(
            data["products"], total, "productos",
            "No encontré productos que coincidan con tu búsqueda.", _product_line,
        )
    if "customers" in data:
        return _format_listing(
            data["customers"], total, "clientes",
            "No encontré clientes que coincidan con tu búsqueda.", _customer_line,
        )
    if "orders" in data:
        return _format_listing(
            data["orders"], total, "pedidos",
            "No encontré pedidos con esos criterios.", _order_line,
        )

    # Single entity from a by-id lookup.
    if tool_name == "get_product_by_id":
        return "Detalle del producto:\n" + _product_line(data)
    if tool_name == "get_customer_by_id":
        return "Detalle del cliente:\n" + _customer_line(data)
    return text
