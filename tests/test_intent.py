"""
Tests for gateway/intent.py
============================
Covers:
  - per-kind detection (products, customers, orders)
  - search-term extraction and the term validity heuristic
  - order parameter extraction and date normalization
  - detect_required_tools ordering and the listing/search choice
  - pluggable matchers on IntentClassifier
"""
import pytest

from gateway.intent import (
    DetectedIntent,
    IntentClassifier,
    ProductMatcher,
    detect_required_tools,
    extract_customer_search_term,
    extract_order_search_params,
    extract_product_search_term,
    extract_tool_parameters,
    format_date,
    is_valid_search_term,
    should_use_customer_tools,
    should_use_order_tools,
    should_use_product_tools,
)


# ---------------------------------------------------------------------------
# Reference examples
# ---------------------------------------------------------------------------

class TestReferenceExamples:
    def test_availability_question_searches_products(self):
        message = "¿Tenés pizza disponible?"
        assert detect_required_tools(message) == ["search_products"]
        assert extract_product_search_term(message) == "pizza"

    def test_generic_catalog_question_lists_products(self):
        assert detect_required_tools("qué productos tienen") == ["get_products"]


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

class TestDetection:
    @pytest.mark.parametrize("message", [
        "¿Qué productos tienen?",
        "show me the price list",
        "cuánto cuesta el lomito",
    ])
    def test_product_messages(self, message):
        assert should_use_product_tools(message)

    def test_known_product_without_intent_word_is_not_enough(self):
        assert not should_use_product_tools("me gusta la pizza")

    def test_customer_messages(self):
        assert should_use_customer_tools("listame los clientes")
        assert should_use_customer_tools("find customer named Ana")

    def test_order_messages(self):
        assert should_use_order_tools("pedidos pendientes")
        assert should_use_order_tools("show my orders")

    def test_word_boundaries(self):
        # "comprador" is a customer word, not the order word "compra"
        assert not should_use_order_tools("un comprador nuevo")

    def test_greeting_detects_nothing(self):
        assert detect_required_tools("hola, ¿cómo estás?") == []
        assert detect_required_tools("") == []


# ---------------------------------------------------------------------------
# Term extraction
# ---------------------------------------------------------------------------

class TestProductTerm:
    def test_requires_search_intent_word(self):
        assert extract_product_search_term("pizza") is None

    def test_earliest_known_product_wins(self):
        assert extract_product_search_term("¿hay empanadas o pizza?") == "empanada"

    def test_price_pattern(self):
        assert extract_product_search_term("cuánto cuesta la milanga") == "milanga"

    def test_looking_for_pattern(self):
        assert extract_product_search_term("estoy buscando fideos") == "fideos"

    def test_english_pattern(self):
        assert extract_product_search_term("do you have any noodles") == "noodles"

    def test_stopword_capture_rejected(self):
        assert extract_product_search_term("¿tenés algo disponible?") is None

    @pytest.mark.parametrize("term,valid", [
        ("pizza", True),
        ("ab", False),
        ("123", False),
        ("productos", False),
        ("", False),
        (None, False),
    ])
    def test_is_valid_search_term(self, term, valid):
        assert is_valid_search_term(term) is valid


class TestCustomerTerm:
    def test_email(self):
        assert extract_customer_search_term("el cliente juan.perez@example.com") == "juan.perez@example.com"

    def test_named(self):
        assert extract_customer_search_term("buscá el cliente llamado Juan Pérez") == "Juan Pérez"

    def test_capitalized_name(self):
        assert extract_customer_search_term("datos del cliente María") == "María"

    def test_english(self):
        assert extract_customer_search_term("customer named Carlos") == "Carlos"

    def test_nothing(self):
        assert extract_customer_search_term("listame los clientes") is None


class TestOrderParams:
    def test_status(self):
        assert extract_order_search_params("pedidos cancelados") == {"status": "cancelado"}

    def test_customer_id(self):
        assert extract_order_search_params("pedidos del cliente cust-1")["customerId"] == "cust-1"

    def test_date_range(self):
        params = extract_order_search_params("pedidos desde 01/06/2025 hasta 2025-06-15")
        assert params == {"dateFrom": "2025-06-01", "dateTo": "2025-06-15"}

    def test_single_day(self):
        params = extract_order_search_params("pedidos del 20/06/2025")
        assert params == {"dateFrom": "2025-06-20", "dateTo": "2025-06-20"}

    def test_nothing(self):
        assert extract_order_search_params("mostrame los pedidos") == {}

    @pytest.mark.parametrize("token,expected", [
        ("5/6/2025", "2025-06-05"),
        ("2025-06-05", "2025-06-05"),
        ("ayer", "ayer"),
    ])
    def test_format_date(self, token, expected):
        assert format_date(token) == expected


# ---------------------------------------------------------------------------
# Tool selection
# ---------------------------------------------------------------------------

class TestToolSelection:
    def test_order_is_products_customers_orders(self):
        tools = detect_required_tools("precio de productos, clientes y pedidos")
        assert tools == ["get_products", "get_customers", "get_orders"]

    def test_customer_search(self):
        assert detect_required_tools("cliente llamado Juan") == ["search_customers"]

    def test_orders_always_get_orders(self):
        intents = IntentClassifier().classify("pedidos pendientes")
        assert intents == [DetectedIntent("get_orders", {"status": "pendiente"})]

    def test_extract_tool_parameters(self):
        assert extract_tool_parameters("search_products", "¿Tenés pizza disponible?") == {"q": "pizza"}
        assert extract_tool_parameters("get_products", "¿Tenés pizza disponible?") == {}
        assert extract_tool_parameters("get_orders", "pedidos pendientes") == {"status": "pendiente"}


class TestPluggableMatchers:
    def test_custom_matcher_list(self):
        classifier = IntentClassifier(matchers=(ProductMatcher(),))
        assert classifier.classify("pedidos pendientes") == []

    def test_extra_matcher(self):
        class Always:
            def match(self, message):
                return DetectedIntent("search_database", {"query": message})

        classifier = IntentClassifier(matchers=(Always(),))
        assert classifier.classify("lo que sea") == [DetectedIntent("search_database", {"query": "lo que sea"})]
