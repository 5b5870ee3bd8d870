import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Type

import mcp.types as types
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .client import OpenRouterClient
from .compare import compare_models, format_report
from .config import Config
from .errors import InvalidArguments, ModelNotFound, UnknownTool
from .images import generate_image

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────
# ARGUMENT MODELS
# ─────────────────────────────────────────────

class ToolArguments(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class NoArguments(ToolArguments):
    pass


class ChatRequest(ToolArguments):
    model: str = Field(..., description="OpenRouter model ID (e.g., 'openai/gpt-4')")
    message: str = Field(..., description="Message to send to the model")
    max_tokens: int = Field(1000, gt=0, description="Maximum tokens in response")
    temperature: float = Field(0.7, description="Temperature for response randomness")
    system_prompt: Optional[str] = Field(None, description="System prompt for the conversation")


class CompareRequest(ToolArguments):
    models: List[str] = Field(..., min_length=1, description="Array of model IDs to compare")
    message: str = Field(..., description="Message to send to all models")
    max_tokens: int = Field(500, gt=0, description="Maximum tokens per response")


class ModelInfoRequest(ToolArguments):
    model: str = Field(..., description="Model ID to get information about")


class ImageRequest(ToolArguments):
    model: str = Field(..., description="OpenRouter model ID that can output images")
    message: str = Field(..., description="Prompt/message that elicits an image output")
    savefile: Optional[str] = Field(None, description="File path or directory to save image (default: ./images)")


def parse_arguments(schema: Type[ToolArguments], arguments: Optional[Mapping[str, Any]]) -> ToolArguments:
    try:
        return schema.model_validate(dict(arguments or {}))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}" for err in e.errors()
        )
        raise InvalidArguments(f"Invalid arguments: {problems}") from e


# ─────────────────────────────────────────────
# TOOL LIST
# ─────────────────────────────────────────────

def list_tools() -> List[types.Tool]:
    return [
        types.Tool(
            name="list_models",
            description="Get list of available OpenRouter models",
            inputSchema={"type": "object", "properties": {}},
        ),
        types.Tool(
            name="chat_with_model",
            description="Send a message to a specific OpenRouter model",
            inputSchema={
                "type": "object",
                "properties": {
                    "model": {"type": "string", "description": "OpenRouter model ID (e.g., 'openai/gpt-4')"},
                    "message": {"type": "string", "description": "Message to send to the model"},
                    "max_tokens": {"type": "number", "description": "Maximum tokens in response", "default": 1000},
                    "temperature": {
                        "type": "number",
                        "description": "Temperature for response randomness",
                        "default": 0.7,
                    },
                    "system_prompt": {"type": "string", "description": "System prompt for the conversation"},
                },
                "required": ["model", "message"],
            },
        ),
        types.Tool(
            name="compare_models",
            description="Compare responses from multiple models",
            inputSchema={
                "type": "object",
                "properties": {
                    "models": {
                        "type": "array",
                        "items": {"type": "string"},
                        "minItems": 1,
                        "description": "Array of model IDs to compare",
                    },
                    "message": {"type": "string", "description": "Message to send to all models"},
                    "max_tokens": {"type": "number", "description": "Maximum tokens per response", "default": 500},
                },
                "required": ["models", "message"],
            },
        ),
        types.Tool(
            name="get_model_info",
            description="Get detailed information about a specific model",
            inputSchema={
                "type": "object",
                "properties": {
                    "model": {"type": "string", "description": "Model ID to get information about"},
                },
                "required": ["model"],
            },
        ),
        types.Tool(
            name="generate_image",
            description="Generate or extract image from a multimodal model response and save to disk",
            inputSchema={
                "type": "object",
                "properties": {
                    "model": {"type": "string", "description": "OpenRouter model ID that can output images"},
                    "message": {"type": "string", "description": "Prompt/message that elicits an image output"},
                    "savefile": {
                        "type": "string",
                        "description": "File path or directory to save image (default: ./images)",
                    },
                },
                "required": ["model", "message"],
            },
        ),
    ]


# ─────────────────────────────────────────────
# DISPATCH
# ─────────────────────────────────────────────

Handler = Callable[[Any], Awaitable[str]]


def _pretty(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


class ToolDispatcher:
    """Routes a tool call to its handler and always answers with text."""

    def __init__(self, client: OpenRouterClient, config: Config):
        self.client = client
        self.config = config
        self._table: Dict[str, Tuple[Type[ToolArguments], Handler]] = {
            "list_models": (NoArguments, self.list_models),
            "chat_with_model": (ChatRequest, self.chat_with_model),
            "compare_models": (CompareRequest, self.compare_models),
            "get_model_info": (ModelInfoRequest, self.get_model_info),
            "generate_image": (ImageRequest, self.generate_image),
        }

    @property
    def names(self) -> List[str]:
        return list(self._table)

    async def dispatch(self, name: str, arguments: Optional[Mapping[str, Any]]) -> str:
        """Validate and run one tool call; may raise any handler error."""
        if name not in self._table:
            raise UnknownTool(name)
        schema, handler = self._table[name]
        params = parse_arguments(schema, arguments)
        return await handler(params)

    async def call(self, name: str, arguments: Optional[Mapping[str, Any]]) -> str:
        try:
            return await self.dispatch(name, arguments)
        except Exception as e:
            logger.error("Tool %s error: %s", name, e)
            return f"Error executing {name}: {e}"

    # ─────────────────────────────────────────────
    # HANDLERS
    # ─────────────────────────────────────────────

    async def list_models(self, params: NoArguments) -> str:
        models = [
            {
                "id": m.get("id"),
                "name": m.get("name"),
                "description": m.get("description"),
                "context_length": m.get("context_length"),
                "pricing": m.get("pricing"),
            }
            for m in await self.client.list_models()
        ]
        return f"Found {len(models)} available models:\n\n{_pretty(models)}"

    async def chat_with_model(self, params: ChatRequest) -> str:
        messages = []
        if params.system_prompt:
            messages.append({"role": "system", "content": params.system_prompt})
        messages.append({"role": "user", "content": params.message})

        data = await self.client.chat_completion(
            {
                "model": params.model,
                "messages": messages,
                "max_tokens": params.max_tokens,
                "temperature": params.temperature,
            }
        )

        result = data["choices"][0]["message"]["content"]
        usage = data.get("usage") or {}
        return (
            f"**Model:** {params.model}\n"
            f"**Response:** {result}\n\n"
            "**Usage:**\n"
            f"- Prompt tokens: {usage.get('prompt_tokens')}\n"
            f"- Completion tokens: {usage.get('completion_tokens')}\n"
            f"- Total tokens: {usage.get('total_tokens')}"
        )

    async def compare_models(self, params: CompareRequest) -> str:
        outcomes = await compare_models(self.client, params.models, params.message, params.max_tokens)
        return format_report(outcomes)

    async def get_model_info(self, params: ModelInfoRequest) -> str:
        for m in await self.client.list_models():
            if m.get("id") == params.model:
                return _pretty(m)
        raise ModelNotFound(params.model)

    async def generate_image(self, params: ImageRequest) -> str:
        return await generate_image(self.client, self.config, params.model, params.message, params.savefile)
