"""Adapter around the hosted generative model used for forecasting.

Each public function makes at most one HTTPS call to the model's
``generateContent`` endpoint. When no API key is configured, or when the call
or the decoding of its reply fails for any reason, a local deterministic
substitute is returned instead. Callers cannot tell the two apart.
"""

from __future__ import annotations

import json
import random
from typing import Any, Dict, List, Optional, Sequence, Union

import requests
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from . import data_manager, log
from .constants import (
    ASSISTANT_FAILURE_REPLY,
    ASSISTANT_NO_CREDENTIAL_REPLY,
    ASSISTANT_SAMPLE_SIZE,
    FORECAST_FALLBACK_CONFIDENCE,
    FORECAST_FALLBACK_DEMAND_RANGE,
    RESTOCK_FALLBACK_MULTIPLIER,
    RESTOCK_FALLBACK_REASON,
    RESTOCK_TRIGGER_FACTOR,
    OrderStatus,
    RiskLevel,
)
from .data_manager import ForecastSettings, ProductRecord, PurchaseOrderRecord


Number = Union[int, float]


class GatewayError(Exception):
    """Raised when the model reply cannot be turned into usable text."""


class ForecastData(BaseModel):
    """Seven-day demand prediction for one product."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", strict=True)

    sku: str
    product_name: str = Field(alias="productName")
    current_stock: Number = Field(alias="currentStock")
    predicted_demand: Number = Field(alias="predictedDemand")
    confidence: Number = Field(ge=0, le=100)
    risk_level: RiskLevel = Field(alias="riskLevel")


class RestockSuggestion(BaseModel):
    """Suggested purchase order for one product."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", strict=True)

    sku: str
    product_name: str = Field(alias="productName")
    current_stock: Number = Field(alias="currentStock")
    suggested_quantity: Number = Field(alias="suggestedQuantity")
    vendor: str
    reason: str


_FORECAST_LIST = TypeAdapter(List[ForecastData])
_RESTOCK_LIST = TypeAdapter(List[RestockSuggestion])

FORECAST_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "sku": {"type": "STRING"},
            "productName": {"type": "STRING"},
            "currentStock": {"type": "NUMBER"},
            "predictedDemand": {"type": "NUMBER"},
            "confidence": {"type": "NUMBER"},
            "riskLevel": {"type": "STRING", "enum": [level.value for level in RiskLevel]},
        },
        "required": ["sku", "productName", "currentStock", "predictedDemand", "confidence", "riskLevel"],
    },
}

RESTOCK_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "sku": {"type": "STRING"},
            "productName": {"type": "STRING"},
            "currentStock": {"type": "NUMBER"},
            "suggestedQuantity": {"type": "NUMBER"},
            "vendor": {"type": "STRING"},
            "reason": {"type": "STRING"},
        },
        "required": ["sku", "productName", "currentStock", "suggestedQuantity", "vendor", "reason"],
    },
}

_FORECAST_PROMPT = """
You are an AI Inventory Forecasting Engine.
Analyze the following inventory list.
Assume standard retail seasonal trends (currently typical business days).
Predict the sales demand for the next 7 days for each item based on its category and typical utility.

Inventory: {inventory}

Return a JSON array where each object has:
- sku (string)
- productName (string)
- currentStock (number)
- predictedDemand (number, estimated sales for next 7 days)
- confidence (number, 0-100)
- riskLevel (string: 'LOW', 'MEDIUM', 'HIGH' based on if demand > stock)
"""

_RESTOCK_PROMPT = """
You are a Procurement AI. Analyze these products that are low on stock or near reorder level.
Suggest purchase orders.

Products: {products}

Return a JSON array of suggestions.
"""

_ASSISTANT_PROMPT = """
You are SmartShelfX AI Assistant. You help warehouse managers with inventory questions.

Context:
{context}

User Question: "{question}"

Answer concisely and helpfully. If asked to write an email, draft a professional one.
"""


def _generate_content(
    prompt: str,
    settings: ForecastSettings,
    *,
    response_schema: Optional[Dict[str, Any]] = None,
    session: Optional[requests.Session] = None,
) -> str:
    """Send one prompt to the model and return the text of its first candidate.

    Raises:
        requests.RequestException: On transport or HTTP status errors.
        ValueError: If the body is not JSON.
        GatewayError: If the body has no candidate text.
    """
    url = f"{settings.endpoint}/models/{settings.model}:generateContent"
    body: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
    if response_schema is not None:
        body["generationConfig"] = {
            "responseMimeType": "application/json",
            "responseSchema": response_schema,
        }

    client = session if session is not None else requests
    response = client.post(
        url,
        json=body,
        headers={"x-goog-api-key": settings.api_key},
        timeout=settings.timeout,
    )
    response.raise_for_status()
    payload = response.json()

    try:
        parts = payload["candidates"][0]["content"]["parts"]
        text = "".join(part.get("text", "") for part in parts)
    except (KeyError, IndexError, TypeError, AttributeError) as exc:
        raise GatewayError(f"Unexpected model response shape: {exc}") from exc
    if not text:
        raise GatewayError("Model response contained no text")
    return text


def generate_sales_forecast(
    products: Sequence[ProductRecord],
    settings: ForecastSettings,
    *,
    session: Optional[requests.Session] = None,
    rng: Optional[random.Random] = None,
) -> List[ForecastData]:
    """Predict next-week demand for every product in one request."""

    if not settings.has_credential:
        log.warning("Model API key is missing; forecasting on local fallback data")
        return fallback_forecast(products, rng=rng)

    inventory = [
        {"name": p.name, "sku": p.sku, "currentStock": p.current_stock, "category": p.category}
        for p in products
    ]
    prompt = _FORECAST_PROMPT.format(inventory=json.dumps(inventory))
    try:
        text = _generate_content(prompt, settings, response_schema=FORECAST_RESPONSE_SCHEMA, session=session)
        forecasts = _FORECAST_LIST.validate_json(text)
    except (GatewayError, requests.RequestException, ValueError) as exc:
        log.error("AI forecast failed, using fallback: %s", exc)
        return fallback_forecast(products, rng=rng)
    log.info("Received %d forecasts from model '%s'", len(forecasts), settings.model)
    return forecasts


def analyze_restock_needs(
    products: Sequence[ProductRecord],
    settings: ForecastSettings,
    *,
    session: Optional[requests.Session] = None,
) -> List[RestockSuggestion]:
    """Suggest purchase orders for products near or below their reorder level.

    Only products at or below ``RESTOCK_TRIGGER_FACTOR`` times their reorder
    level are sent to the model; when none qualify the result is empty and no
    request is made. The fallback applies the stricter at-or-below-reorder
    threshold.
    """
    if not settings.has_credential:
        log.warning("Model API key is missing; restock analysis on local fallback data")
        return fallback_restock(products)

    candidates = [p for p in products if p.current_stock <= p.reorder_level * RESTOCK_TRIGGER_FACTOR]
    if not candidates:
        log.info("No products near their reorder level; skipping restock analysis")
        return []

    payload = [data_manager.serialize_product(p) for p in candidates]
    prompt = _RESTOCK_PROMPT.format(products=json.dumps(payload))
    try:
        text = _generate_content(prompt, settings, response_schema=RESTOCK_RESPONSE_SCHEMA, session=session)
        suggestions = _RESTOCK_LIST.validate_json(text)
    except (GatewayError, requests.RequestException, ValueError) as exc:
        log.error("AI restock analysis failed, using fallback: %s", exc)
        return fallback_restock(products)
    log.info("Received %d restock suggestions from model '%s'", len(suggestions), settings.model)
    return suggestions


def summarize_inventory(
    products: Sequence[ProductRecord],
    orders: Sequence[PurchaseOrderRecord],
) -> str:
    """Condense inventory state into the context block sent with a question."""

    low_stock = ", ".join(p.name for p in products if p.current_stock <= p.reorder_level)
    pending = sum(1 for o in orders if o.status == OrderStatus.PENDING)
    total_value = sum(p.current_stock * p.unit_price for p in products)
    sample = [data_manager.serialize_product(p) for p in products[:ASSISTANT_SAMPLE_SIZE]]
    return (
        "Inventory Summary:\n"
        f"- Total Products: {len(products)}\n"
        f"- Total Inventory Value: ${total_value:.2f}\n"
        f"- Low Stock Items: {low_stock or 'None'}\n"
        f"- Pending Purchase Orders: {pending}\n"
        f"- Detailed Product List (Sample): {json.dumps(sample)}... (list truncated)"
    )


def ask_inventory_assistant(
    question: str,
    products: Sequence[ProductRecord],
    orders: Sequence[PurchaseOrderRecord],
    settings: ForecastSettings,
    *,
    session: Optional[requests.Session] = None,
) -> str:
    """Answer a free-text question about the inventory."""

    if not settings.has_credential:
        log.warning("Model API key is missing; assistant unavailable")
        return ASSISTANT_NO_CREDENTIAL_REPLY

    prompt = _ASSISTANT_PROMPT.format(context=summarize_inventory(products, orders), question=question)
    try:
        return _generate_content(prompt, settings, session=session)
    except (GatewayError, requests.RequestException, ValueError) as exc:
        log.error("AI assistant request failed: %s", exc)
        return ASSISTANT_FAILURE_REPLY


def fallback_forecast(
    products: Sequence[ProductRecord],
    *,
    rng: Optional[random.Random] = None,
) -> List[ForecastData]:
    """Random demand in the fallback range with a fixed confidence."""

    source = rng or random
    low, high = FORECAST_FALLBACK_DEMAND_RANGE
    forecasts = []
    for product in products:
        demand = source.randint(low, high)
        forecasts.append(
            ForecastData(
                sku=product.sku,
                product_name=product.name,
                current_stock=product.current_stock,
                predicted_demand=demand,
                confidence=FORECAST_FALLBACK_CONFIDENCE,
                risk_level=RiskLevel.HIGH if demand > product.current_stock else RiskLevel.LOW,
            )
        )
    return forecasts


def fallback_restock(products: Sequence[ProductRecord]) -> List[RestockSuggestion]:
    """Suggest three times the reorder level for every product at or below it."""

    return [
        RestockSuggestion(
            sku=p.sku,
            product_name=p.name,
            current_stock=p.current_stock,
            suggested_quantity=p.reorder_level * RESTOCK_FALLBACK_MULTIPLIER,
            vendor=p.vendor,
            reason=RESTOCK_FALLBACK_REASON,
        )
        for p in products
        if p.current_stock <= p.reorder_level
    ]
