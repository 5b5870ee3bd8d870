"""Fan-out comparison of several models on one prompt.

Every model gets its own chat call; all calls run concurrently and the
report is built only once every call has either answered or failed. A
failing model becomes a ``CompareFailure`` in its slot and never disturbs
the others.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Union

from .client import OpenRouterClient

logger = logging.getLogger(__name__)

DIVIDER = "\n\n---\n\n"


@dataclass(frozen=True)
class CompareSuccess:
    model: str
    response_text: Any
    usage: Dict[str, Any] = field(default_factory=dict)

    def render(self) -> str:
        return f"**{self.model}:**\n{self.response_text}\n*Tokens: {self.usage.get('total_tokens')}*"


@dataclass(frozen=True)
class CompareFailure:
    model: str
    error: str

    def render(self) -> str:
        return f"**{self.model}:** ❌ Error - {self.error}"


CompareOutcome = Union[CompareSuccess, CompareFailure]


async def ask_one(client: OpenRouterClient, model: str, message: str, max_tokens: int) -> CompareOutcome:
    payload = {
        "model": model,
        "messages": [{"role": "user", "content": message}],
        "max_tokens": max_tokens,
    }
    try:
        data = await client.chat_completion(payload)
        usage = data.get("usage")
        return CompareSuccess(
            model=model,
            response_text=data["choices"][0]["message"]["content"],
            usage=usage if isinstance(usage, dict) else {},
        )
    except Exception as e:
        logger.warning("compare_models: %s failed: %s", model, e)
        return CompareFailure(model=model, error=str(e) or type(e).__name__)


async def compare_models(
    client: OpenRouterClient, models: Sequence[str], message: str, max_tokens: int
) -> List[CompareOutcome]:
    # ask_one never raises, so gather keeps input order and waits for all
    return list(await asyncio.gather(*(ask_one(client, m, message, max_tokens) for m in models)))


def format_report(outcomes: Sequence[CompareOutcome]) -> str:
    body = DIVIDER.join(o.render() for o in outcomes)
    return f"Comparison of {len(outcomes)} models:\n\n{body}"
