import json
import logging
from typing import Any, List

import mcp.types as types
from pydantic import AnyUrl

from .client import OpenRouterClient
from .errors import UnknownResource

logger = logging.getLogger(__name__)

MODELS_URI = "openrouter://models"
PRICING_URI = "openrouter://pricing"
USAGE_URI = "openrouter://usage"


def list_resources() -> List[types.Resource]:
    return [
        types.Resource(
            uri=AnyUrl(MODELS_URI),
            name="Available Models",
            description="List of all available OpenRouter models with pricing",
            mimeType="application/json",
        ),
        types.Resource(
            uri=AnyUrl(PRICING_URI),
            name="Model Pricing",
            description="Current pricing information for all models",
            mimeType="application/json",
        ),
        types.Resource(
            uri=AnyUrl(USAGE_URI),
            name="Usage Statistics",
            description="Your OpenRouter usage statistics",
            mimeType="application/json",
        ),
    ]


async def models_document(client: OpenRouterClient) -> Any:
    return await client.get("/models")


async def pricing_document(client: OpenRouterClient) -> Any:
    return [
        {"id": m.get("id"), "name": m.get("name"), "pricing": m.get("pricing")}
        for m in await client.list_models()
    ]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


async def usage_document(client: OpenRouterClient) -> Any:
    # /auth/key reports usage and limit for the key in use
    try:
        key = await client.key_info()
    except Exception as e:
        logger.warning("usage resource: key lookup failed: %s", e)
        return {
            "message": "Usage statistics are unavailable",
            "note": "OpenRouter only reports usage for the API key in use via /auth/key",
            "error": str(e),
        }

    limit = key.get("limit")
    usage = key.get("usage")
    document = {
        "label": key.get("label"),
        "usage": usage,
        "limit": limit,
        "is_free_tier": key.get("is_free_tier"),
        "rate_limit": key.get("rate_limit"),
    }
    if _is_number(limit) and (usage is None or _is_number(usage)):
        document["remaining"] = limit - (usage or 0)
    return document


async def read_resource(client: OpenRouterClient, uri: str) -> str:
    uri = str(uri).rstrip("/")
    if uri == MODELS_URI:
        document = await models_document(client)
    elif uri == PRICING_URI:
        document = await pricing_document(client)
    elif uri == USAGE_URI:
        document = await usage_document(client)
    else:
        raise UnknownResource(uri)
    return json.dumps(document, indent=2, ensure_ascii=False)
