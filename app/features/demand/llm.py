"""LLM bridge: prompt construction, completion call, and answer parsing.

The completion service is any OpenAI-compatible chat endpoint (Groq by
default). The bridge is split into steps so each can be tested alone:

1. ``build_prompt``: deterministic text from products, trending, historical,
   holidays, and weather (same inputs -> byte-identical prompt)
2. ``CompletionClient.complete``: one chat completion under a timeout
3. ``extract_json``: raw JSON, then a ```json fence, then a bare ``` fence
4. ``validate_insights``: whole-payload validation into ``HeadsUpInsights``

Parse and validation failures raise ``CompletionParseError`` carrying the raw
text; transport failures raise ``CompletionServiceError``. Neither is retried.
"""

from __future__ import annotations

import asyncio
import json
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import Any

import structlog
from openai import APIError, AsyncOpenAI
from pydantic import ValidationError

from app.core.config import get_settings
from app.core.exceptions import CompletionParseError, CompletionServiceError
from app.features.demand.schemas import HeadsUpInsights
from app.features.demand.series import ProductInfo, TrendItem
from app.features.signals.schemas import HolidayRecord, WeatherRecord

logger = structlog.get_logger()

SYSTEM_PROMPT = (
    "You are a precise retail demand forecasting assistant. Always return ONLY valid JSON."
)

MAX_HISTORICAL_ITEMS = 30
MAX_PROMPT_HOLIDAYS = 10
PROMPT_PREVIEW_CHARS = 8000

_JSON_FENCE = re.compile(r"```json\s*\n?([\s\S]*?)\n?```")
_BARE_FENCE = re.compile(r"```\s*\n?([\s\S]*?)\n?```")

PROMPT_TEMPLATE = """You are a retail demand intelligence AI with historical pattern recognition.
Given the list of products, current trending sellers (last {lookback} days), historical sales \
data from the same period last year, upcoming holidays and weather, predict which products are \
likely to be in HIGH demand in the next {horizon} days.

Historical Context: Last year's data shows what sold well during this same time period. Use \
this to identify seasonal patterns and repeating trends.

Constraints:
- Prefer concise, actionable heads-up.
- Consider seasonality signals from holidays, weather, and historical patterns.
- If a product sold well last year during this period AND is trending now, flag as HIGH \
priority for repeat demand.
- Use only the provided product list; do not invent products.
- Focus on {horizon}-day forecast window.
- Limit output to top 10 most relevant products.

Input:
- Products: {products}
- Current Trending (last {lookback} days): {trending}
- Historical Trending (same period last year, ±{radius} days) \
[{{ product_id, product_name, units_sold_last_year, selling_price }}]: {historical}
- Upcoming Holidays (next {horizon} days) [{{ date, name }}]: {holidays}
- Weather Forecast (next {horizon} days) [{{ date, weather }}]: {weather}

Output (STRICT JSON only):
{{
  "heads_up": [
    {{
      "product_id": "string",
      "product_name": "string",
      "demand_level": "high|medium|low",
      "anomaly": true,
      "rationale": "string (<=200 chars, mention if based on historical pattern or \
year-over-year trend)"
    }}
  ],
  "window": "{horizon}",
  "notes": ["string (insights about historical patterns, seasonal trends, or notable \
observations)"]
}}"""


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)


def dedupe_products(products: Iterable[ProductInfo], limit: int = 300) -> list[dict[str, str]]:
    """Unique products by stripped name, first occurrence wins.

    Args:
        products: Catalogue entries in storage order.
        limit: Maximum number of products to keep.

    Returns:
        ``[{"id", "name"}]`` with blank names skipped.
    """
    seen: set[str] = set()
    unique: list[dict[str, str]] = []
    for product in products:
        name = (product.name or "").strip()
        if not name or name in seen:
            continue
        seen.add(name)
        unique.append({"id": product.product_id, "name": name})
        if len(unique) >= limit:
            break
    return unique


def build_prompt(
    products: Sequence[ProductInfo],
    trending: Sequence[TrendItem],
    historical: Sequence[TrendItem],
    holidays: Sequence[HolidayRecord],
    weather: Sequence[WeatherRecord],
    horizon_days: int = 7,
    *,
    lookback_days: int = 7,
    radius_days: int = 7,
    max_products: int = 300,
) -> str:
    """Assemble the heads-up prompt.

    Holidays and weather are expected to be window-filtered already; this
    function only truncates.

    Args:
        products: Tenant catalogue.
        trending: Recent sellers, highest first.
        historical: Year-ago sellers, highest first.
        holidays: Holidays inside the forecast window.
        weather: Weather inside the forecast window.
        horizon_days: Forecast window length.
        lookback_days: Trending lookback, for the prompt wording.
        radius_days: Year-ago radius, for the prompt wording.
        max_products: Product cap after dedupe.

    Returns:
        Prompt text.
    """
    return PROMPT_TEMPLATE.format(
        horizon=horizon_days,
        lookback=lookback_days,
        radius=radius_days,
        products=_dumps(dedupe_products(products, max_products)),
        trending=_dumps(
            [
                {
                    "product_id": t.product_id,
                    "product_name": t.product_name,
                    "units_sold": t.units_estimate,
                }
                for t in trending
            ]
        ),
        historical=_dumps(
            [
                {
                    "product_id": h.product_id,
                    "product_name": h.product_name,
                    "units_sold_last_year": h.units_estimate,
                    "selling_price": h.selling_price,
                }
                for h in historical[:MAX_HISTORICAL_ITEMS]
            ]
        ),
        holidays=_dumps(
            [{"date": h.date.isoformat(), "name": h.name} for h in holidays[:MAX_PROMPT_HOLIDAYS]]
        ),
        weather=_dumps(
            [{"date": w.date.isoformat(), "weather": w.summary} for w in weather[:horizon_days]]
        ),
    )


def extract_json(raw: str) -> Any:
    """Decode a JSON document from a completion response.

    Tried in order: the whole text, a ```json fenced block, a bare ``` block.

    Args:
        raw: Completion text.

    Returns:
        Decoded JSON value.

    Raises:
        CompletionParseError: If no candidate decodes.
    """
    candidates = [raw.strip()]
    for pattern in (_JSON_FENCE, _BARE_FENCE):
        match = pattern.search(raw)
        if match:
            candidates.append(match.group(1).strip())

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    logger.warning("demand.llm_parse_failed", reason="no_json", raw_length=len(raw))
    raise CompletionParseError(raw=raw)


def validate_insights(payload: Any, raw: str) -> HeadsUpInsights:
    """Validate a decoded payload as a whole.

    Args:
        payload: Decoded JSON.
        raw: Original completion text, carried on failure.

    Returns:
        HeadsUpInsights.

    Raises:
        CompletionParseError: If the payload or any heads-up item is invalid.
    """
    try:
        return HeadsUpInsights.model_validate(payload)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors(include_url=False)
        ]
        logger.warning("demand.llm_parse_failed", reason="invalid_shape", error_count=len(errors))
        raise CompletionParseError(
            raw=raw,
            message="AI response did not match the expected structure",
            details={"errors": errors},
        ) from e


class CompletionClient(ABC):
    """Chat completion backend."""

    @abstractmethod
    async def complete(self, system: str, prompt: str) -> str:
        """Return the assistant text for one system + user exchange.

        Raises:
            CompletionServiceError: If the service cannot be reached or rejects the call.
        """
        ...

    async def close(self) -> None:  # noqa: B027
        """Release network resources, if any."""


class OpenAICompatibleClient(CompletionClient):
    """Completion client for OpenAI-compatible endpoints (Groq by default)."""

    def __init__(self, client: AsyncOpenAI | None = None) -> None:
        """Initialize the client.

        Args:
            client: Optional preconfigured AsyncOpenAI client.
        """
        self.settings = get_settings()
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        """Get or create the async client.

        Raises:
            CompletionServiceError: If no API key is configured.
        """
        if self._client is None:
            if not self.settings.llm_api_key:
                raise CompletionServiceError(
                    "Completion API key not configured. Set LLM_API_KEY environment variable."
                )
            self._client = AsyncOpenAI(
                api_key=self.settings.llm_api_key,
                base_url=self.settings.llm_base_url,
                max_retries=0,
            )
        return self._client

    async def complete(self, system: str, prompt: str) -> str:
        """Run one chat completion under ``llm_timeout_seconds``."""
        client = self._get_client()
        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self.settings.llm_model,
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=self.settings.llm_temperature,
                    max_tokens=self.settings.llm_max_tokens,
                ),
                timeout=self.settings.llm_timeout_seconds,
            )
        except TimeoutError as e:
            raise CompletionServiceError(
                "Completion service timed out",
                details={"timeout_seconds": self.settings.llm_timeout_seconds},
            ) from e
        except APIError as e:
            raise CompletionServiceError(
                "Completion service request failed",
                details={"error_type": type(e).__name__},
            ) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.close()
            self._client = None


class LLMBridge:
    """Build the prompt, call the completion service, and parse the answer."""

    def __init__(self, client: CompletionClient | None = None) -> None:
        """Initialize the bridge.

        Args:
            client: Completion backend (defaults to the OpenAI-compatible client).
        """
        self.settings = get_settings()
        self.client = client or OpenAICompatibleClient()

    async def invoke(self, prompt: str) -> str:
        """Send ``prompt`` with the JSON-only system message."""
        logger.debug(
            "demand.llm_prompt_preview",
            preview=prompt[:PROMPT_PREVIEW_CHARS],
            truncated=len(prompt) > PROMPT_PREVIEW_CHARS,
        )
        return await self.client.complete(SYSTEM_PROMPT, prompt)

    async def generate(
        self,
        products: Sequence[ProductInfo],
        trending: Sequence[TrendItem],
        historical: Sequence[TrendItem],
        holidays: Sequence[HolidayRecord],
        weather: Sequence[WeatherRecord],
        horizon_days: int | None = None,
    ) -> HeadsUpInsights:
        """Produce validated heads-up insights.

        Args:
            products: Tenant catalogue.
            trending: Recent sellers.
            historical: Year-ago sellers.
            holidays: Holidays inside the window.
            weather: Weather inside the window.
            horizon_days: Window length (defaults to settings).

        Returns:
            Validated HeadsUpInsights.

        Raises:
            CompletionServiceError: If the completion call fails.
            CompletionParseError: If the answer is not valid insights JSON.
        """
        horizon = horizon_days or self.settings.forecast_horizon_days
        prompt = build_prompt(
            products,
            trending,
            historical,
            holidays,
            weather,
            horizon,
            lookback_days=self.settings.forecast_trending_lookback_days,
            radius_days=self.settings.forecast_historical_radius_days,
            max_products=self.settings.llm_max_products,
        )
        logger.info(
            "demand.llm_prompt_built",
            prompt_chars=len(prompt),
            products=len(products),
            trending=len(trending),
            historical=len(historical),
            holidays=len(holidays),
            weather=len(weather),
        )

        raw = await self.invoke(prompt)
        insights = validate_insights(extract_json(raw), raw)

        logger.info("demand.llm_insights_parsed", heads_up=len(insights.heads_up))
        return insights

    async def close(self) -> None:
        """Close the completion client."""
        await self.client.close()


# Singleton instance for dependency injection
_llm_bridge: LLMBridge | None = None


def get_llm_bridge() -> LLMBridge:
    """Get singleton LLM bridge instance."""
    global _llm_bridge
    if _llm_bridge is None:
        _llm_bridge = LLMBridge()
        logger.info("demand.llm_bridge_initialized", model=get_settings().llm_model)
    return _llm_bridge


def reset_llm_bridge() -> None:
    """Reset the singleton LLM bridge. Useful for testing."""
    global _llm_bridge
    _llm_bridge = None
