"""
Intent Classifier
=================
Maps a free-text user message to the catalog tools that could answer it.

Deterministic keyword + regex matching, no model call:

  ProductMatcher   → search_products {q} | get_products
  CustomerMatcher  → search_customers {q} | get_customers
  OrderMatcher     → get_orders {status, customerId, dateFrom, dateTo}

IntentClassifier runs the matchers in that order and returns one
DetectedIntent per matching kind (0–3). A matcher picks the specific search
tool when it managed to extract a term, otherwise the general listing tool.
The catalog has no order search tool, so both order variants map to
get_orders; extracted parameters become its filters.

Examples:
  "¿Tenés pizza disponible?" → [search_products {"q": "pizza"}]
  "qué productos tienen"     → [get_products {}]
"""
import re
from dataclasses import dataclass, field
from typing import Protocol


def _word_pattern(words) -> re.Pattern:
    alternatives = sorted(words, key=len, reverse=True)
    return re.compile(r"\b(?:" + "|".join(re.escape(w) for w in alternatives) + r")\b")


# ── Vocabulary ──────────────────────────────────────────────────────────────

PRODUCT_KEYWORDS = (
    "producto", "productos", "precio", "precios", "stock", "inventario",
    "catálogo", "catalogo", "categoría", "categorías", "menú", "menu",
    "product", "products", "price", "prices", "inventory", "catalog",
)

CUSTOMER_KEYWORDS = (
    "cliente", "clientes", "comprador", "compradores",
    "customer", "customers", "client", "clients",
)

ORDER_KEYWORDS = (
    "pedido", "pedidos", "orden", "órdenes", "ordenes", "venta", "ventas",
    "compra", "compras", "order", "orders", "purchase", "purchases", "sales",
)

SEARCH_INTENT_WORDS = (
    "precio", "cuesta", "cuestan", "cuánto", "cuanto", "sale", "vale",
    "necesito", "busco", "buscando", "quiero", "tenés", "tenes", "tienen",
    "tienes", "hay", "disponible", "disponibles", "información", "info",
    "how much", "i need", "looking for", "do you have", "available",
)

KNOWN_PRODUCTS = (
    "pizza", "empanada", "lomito", "hamburguesa", "milanesa", "sandwich",
    "sándwich", "papas", "gaseosa", "coca", "cerveza", "helado", "postre",
    "bebida",
)

STOPWORDS = frozenset({
    "productos", "producto", "products", "product", "algo", "alguno", "alguna",
    "nada", "todo", "todos", "eso", "esto", "este", "esta", "estos", "estas",
    "disponible", "disponibles", "precio", "precios", "stock", "que", "qué",
    "cosas", "items", "para", "con", "del", "los", "las", "una", "uno", "unos",
    "unas", "ayuda", "info", "información", "something", "anything", "the",
    "any", "some", "help", "available", "stuff",
})

_PRODUCT_KEYWORDS_RE  = _word_pattern(PRODUCT_KEYWORDS)
_CUSTOMER_KEYWORDS_RE = _word_pattern(CUSTOMER_KEYWORDS)
_ORDER_KEYWORDS_RE    = _word_pattern(ORDER_KEYWORDS)
_SEARCH_INTENT_RE     = _word_pattern(SEARCH_INTENT_WORDS)

_ARTICLE = r"(?:(?:el|la|los|las|un|una|unos|unas|the|a|an|any|some)\s+)?"

# Ordered: price query, info query, "looking for", availability query.
_PRODUCT_TERM_PATTERNS = (
    re.compile(r"(?:precio\s+del?|cu[aá]nto\s+(?:cuesta|cuestan|sale|salen|vale|valen)|how much (?:is|are|does|do))\s+" + _ARTICLE + r"(\w+)"),
    re.compile(r"(?:informaci[oó]n|info|detalles|details|information)\s+(?:del?|sobre|about|on)\s+" + _ARTICLE + r"(\w+)"),
    re.compile(r"(?:estoy buscando|busco|necesito|i'?m looking for|looking for|i need)\s+" + _ARTICLE + r"(\w+)"),
    re.compile(r"(?:ten[eé]s|tienen|tienes|hay|do you have)\s+" + _ARTICLE + r"(\w+)"),
)

# First match wins.
_CUSTOMER_TERM_PATTERNS = (
    re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+"),
    re.compile(r"(?i:clientes?\s+llamad[oa]s?)\s+(\w+(?:\s+[A-ZÁÉÍÓÚÑ]\w+)?)"),
    re.compile(r"(?i:clientes?)\s+([A-ZÁÉÍÓÚÑ]\w+(?:\s+[A-ZÁÉÍÓÚÑ]\w+)?)"),
    re.compile(r"(?i:customers?\s+named)\s+(\w+(?:\s+[A-Z]\w+)?)"),
)

_ORDER_STATUS_PATTERNS = (
    (re.compile(r"\b(?:pendientes?|pending)\b"), "pendiente"),
    (re.compile(r"\b(?:completad[oa]s?|entregad[oa]s?|completed|delivered)\b"), "completado"),
    (re.compile(r"\b(?:cancelad[oa]s?|cancell?ed)\b"), "cancelado"),
    (re.compile(r"\b(?:en proceso|processing)\b"), "en proceso"),
)

_CUSTOMER_ID_RE = re.compile(r"(?:cliente|customer)\s+(?:id\s*)?[#:]?\s*([a-z]+-\d+|\d+)\b")

_DATE_TOKEN = r"(\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}/\d{4})"
_DATE_FROM_RE = re.compile(r"\b(?:desde|from|despu[eé]s del?|after)\s+(?:el\s+)?" + _DATE_TOKEN)
_DATE_TO_RE   = re.compile(r"\b(?:hasta|to|until|antes del?|before)\s+(?:el\s+)?" + _DATE_TOKEN)
_DATE_ON_RE   = re.compile(r"(?:\bel|\bdel|\bon)\s+" + _DATE_TOKEN)


# ── Helpers ─────────────────────────────────────────────────────────────────

def format_date(token: str) -> str:
    """DD/MM/YYYY → YYYY-MM-DD; YYYY-MM-DD passes through; anything else is returned as-is."""
    match = re.fullmatch(r"(\d{1,2})/(\d{1,2})/(\d{4})", token.strip())
    if match:
        day, month, year = match.groups()
        return f"{year}-{int(month):02d}-{int(day):02d}"
    return token.strip()


def is_valid_search_term(term: str | None) -> bool:
    if not term:
        return False
    term = term.strip().lower()
    if len(term) < 3:
        return False
    if not re.search(r"[^\W\d_]", term):
        return False
    return term not in STOPWORDS


def _normalize(message: str) -> str:
    return message.lower().strip()


# ── Per-kind detection ──────────────────────────────────────────────────────

def _find_known_product(text: str) -> str | None:
    hits = [(text.find(name), name) for name in KNOWN_PRODUCTS if name in text]
    return min(hits)[1] if hits else None


def should_use_product_tools(message: str) -> bool:
    text = _normalize(message)
    if _PRODUCT_KEYWORDS_RE.search(text):
        return True
    return bool(_SEARCH_INTENT_RE.search(text)) and _find_known_product(text) is not None


def should_use_customer_tools(message: str) -> bool:
    return bool(_CUSTOMER_KEYWORDS_RE.search(_normalize(message)))


def should_use_order_tools(message: str) -> bool:
    return bool(_ORDER_KEYWORDS_RE.search(_normalize(message)))


def extract_product_search_term(message: str) -> str | None:
    text = _normalize(message)
    if not _SEARCH_INTENT_RE.search(text):
        return None

    known = _find_known_product(text)
    if known:
        return known

    for pattern in _PRODUCT_TERM_PATTERNS:
        match = pattern.search(text)
        if match and is_valid_search_term(match.group(1)):
            return match.group(1)
    return None


def extract_customer_search_term(message: str) -> str | None:
    for pattern in _CUSTOMER_TERM_PATTERNS:
        match = pattern.search(message)
        if not match:
            continue
        term = (match.group(1) if pattern.groups else match.group(0)).strip()
        if len(term) >= 2:
            return term
    return None


def extract_order_search_params(message: str) -> dict:
    text = _normalize(message)
    params: dict = {}

    for pattern, status in _ORDER_STATUS_PATTERNS:
        if pattern.search(text):
            params["status"] = status
            break

    match = _CUSTOMER_ID_RE.search(text)
    if match:
        params["customerId"] = match.group(1)

    date_from = _DATE_FROM_RE.search(text)
    date_to   = _DATE_TO_RE.search(text)
    if date_from:
        params["dateFrom"] = format_date(date_from.group(1))
    if date_to:
        params["dateTo"] = format_date(date_to.group(1))
    if not date_from and not date_to:
        single = _DATE_ON_RE.search(text)
        if single:
            params["dateFrom"] = params["dateTo"] = format_date(single.group(1))

    return params


def extract_tool_parameters(tool_name: str, message: str) -> dict:
    """Arguments for `tool_name` pulled out of the message ({} when nothing applies)."""
    if tool_name == "search_products":
        term = extract_product_search_term(message)
        return {"q": term} if term else {}
    if tool_name == "search_customers":
        term = extract_customer_search_term(message)
        return {"q": term} if term else {}
    if tool_name == "get_orders":
        return extract_order_search_params(message)
    return {}


# ── Matchers ────────────────────────────────────────────────────────────────

@dataclass
class DetectedIntent:
    tool_name: str
    parameters: dict = field(default_factory=dict)


class IntentMatcher(Protocol):
    def match(self, message: str) -> DetectedIntent | None: ...


class ProductMatcher:
    def match(self, message: str) -> DetectedIntent | None:
        if not should_use_product_tools(message):
            return None
        params = extract_tool_parameters("search_products", message)
        if params:
            return DetectedIntent("search_products", params)
        return DetectedIntent("get_products")


class CustomerMatcher:
    def match(self, message: str) -> DetectedIntent | None:
        if not should_use_customer_tools(message):
            return None
        params = extract_tool_parameters("search_customers", message)
        if params:
            return DetectedIntent("search_customers", params)
        return DetectedIntent("get_customers")


class OrderMatcher:
    def match(self, message: str) -> DetectedIntent | None:
        if not should_use_order_tools(message):
            return None
        return DetectedIntent("get_orders", extract_tool_parameters("get_orders", message))


DEFAULT_MATCHERS: tuple[IntentMatcher, ...] = (ProductMatcher(), CustomerMatcher(), OrderMatcher())


class IntentClassifier:
    def __init__(self, matchers: tuple[IntentMatcher, ...] = DEFAULT_MATCHERS):
        self._matchers = tuple(matchers)

    def classify(self, message: str) -> list[DetectedIntent]:
        if not message or not message.strip():
            return []
        intents = []
        for matcher in self._matchers:
            intent = matcher.match(message)
            if intent is not None:
                intents.append(intent)
        return intents


_default_classifier = IntentClassifier()


def detect_required_tools(message: str) -> list[str]:
    return [intent.tool_name for intent in _default_classifier.classify(message)]
