"""
Tests for gateway/formatter.py
===============================
Covers:
  - product / customer / order listings render as Spanish bullet lists
  - empty listings and empty search_database results
  - by-id detail rendering
  - non-JSON text passes through unchanged
"""
import json

from gateway.formatter import format_tool_result
from gateway.tools import ToolCallResult


def _result(payload) -> ToolCallResult:
    return ToolCallResult.text(json.dumps(payload, ensure_ascii=False))


class TestListings:
    def test_products(self):
        text = format_tool_result("search_products", _result({
            "total": 1, "page": 1, "limit": 10,
            "products": [{"name": "Pizza Muzzarella", "price": 8500, "stock": 20, "category": "Pizzas"}],
        }))
        assert text.startswith("Encontré 1 productos:")
        assert "• Pizza Muzzarella - $8,500.00 (stock: 20, categoría: Pizzas)" in text

    def test_total_larger_than_page(self):
        text = format_tool_result("get_products", _result({
            "total": 12, "page": 1, "limit": 1,
            "products": [{"name": "Coca", "price": 1, "stock": 1, "category": "Bebidas"}],
        }))
        assert "Encontré 12 productos (mostrando 1):" in text

    def test_empty_products(self):
        text = format_tool_result("search_products", _result({"total": 0, "products": []}))
        assert text == "No encontré productos que coincidan con tu búsqueda."

    def test_customers(self):
        text = format_tool_result("get_customers", _result({
            "total": 1,
            "customers": [{"name": "Juan Pérez", "email": "juan@x.com", "phone": "351", "city": "Córdoba"}],
        }))
        assert "• Juan Pérez - juan@x.com (tel: 351, ciudad: Córdoba)" in text

    def test_orders(self):
        text = format_tool_result("get_orders", _result({
            "total": 1,
            "orders": [{
                "id": "ord-1", "customer": {"name": "Juan Pérez"}, "total": 100,
                "status": "pendiente", "date": "2025-06-10",
            }],
        }))
        assert "• Pedido ord-1 - Juan Pérez - $100.00 - pendiente (2025-06-10)" in text

    def test_order_without_customer(self):
        text = format_tool_result("get_orders", _result({
            "total": 1,
            "orders": [{"id": "o", "customer": None, "total": 1, "status": "Sin estado", "date": "d"}],
        }))
        assert "Cliente desconocido" in text


class TestSearchDatabase:
    def test_sections(self):
        text = format_tool_result("search_database", _result({
            "products": [{"name": "Pizza", "price": 1, "stock": 1, "category": "Pizzas"}],
            "errors": ["Error buscando clientes: offline"],
        }))
        assert "Encontré 1 productos:" in text
        assert "• Error buscando clientes: offline" in text

    def test_empty_object(self):
        assert format_tool_result("search_database", ToolCallResult.text("{}")) == (
            "No encontré resultados para tu búsqueda."
        )


class TestPassThrough:
    def test_soft_fail_text_unchanged(self):
        result = ToolCallResult.text("Producto con ID x no encontrado")
        assert format_tool_result("get_product_by_id", result) == "Producto con ID x no encontrado"

    def test_dict_result_accepted(self):
        result = {"content": [{"type": "text", "text": "Error obteniendo pedidos: boom"}]}
        assert format_tool_result("get_orders", result) == "Error obteniendo pedidos: boom"

    def test_product_detail(self):
        text = format_tool_result("get_product_by_id", _result(
            {"id": "p", "name": "Lomito", "price": 10, "stock": 2, "category": "Sándwiches"}
        ))
        assert text.startswith("Detalle del producto:")
        assert "Lomito" in text
