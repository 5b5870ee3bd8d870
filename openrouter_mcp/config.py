import os
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────
# DEFAULTS
# ─────────────────────────────────────────────

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_SITE_URL = "http://localhost:3000"
DEFAULT_APP_NAME = "OpenRouter MCP Server"
DEFAULT_TIMEOUT = 60.0
DEFAULT_IMAGES_DIR = "./images"
DEFAULT_LOGS_DIR = "./logs"


@dataclass(frozen=True)
class Config:
    """Everything needed to talk to OpenRouter, resolved once at startup."""

    api_key: Optional[str]
    base_url: str = DEFAULT_BASE_URL
    site_url: str = DEFAULT_SITE_URL
    app_name: str = DEFAULT_APP_NAME
    timeout: float = DEFAULT_TIMEOUT
    images_dir: str = DEFAULT_IMAGES_DIR
    logs_dir: str = DEFAULT_LOGS_DIR

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Config":
        env = os.environ if env is None else env

        api_key = env.get("OPENROUTER_API_KEY") or None
        if not api_key:
            logger.warning("OPENROUTER_API_KEY environment variable is not set!")
            logger.warning("Please set OPENROUTER_API_KEY to use the OpenRouter MCP server.")

        timeout = DEFAULT_TIMEOUT
        raw_timeout = env.get("OPENROUTER_TIMEOUT")
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                logger.warning("OPENROUTER_TIMEOUT=%r is not a number, using %s", raw_timeout, DEFAULT_TIMEOUT)

        return cls(
            api_key=api_key,
            base_url=(env.get("OPENROUTER_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
            site_url=env.get("OPENROUTER_SITE_URL") or DEFAULT_SITE_URL,
            app_name=env.get("OPENROUTER_APP_NAME") or DEFAULT_APP_NAME,
            timeout=timeout,
            images_dir=env.get("OPENROUTER_IMAGES_DIR") or DEFAULT_IMAGES_DIR,
            logs_dir=env.get("OPENROUTER_LOGS_DIR") or DEFAULT_LOGS_DIR,
        )

    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": self.site_url,
            "X-Title": self.app_name,
            "Content-Type": "application/json",
        }
