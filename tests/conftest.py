import httpx
import pytest

from openrouter_mcp.client import OpenRouterClient
from openrouter_mcp.config import Config

from ._helpers import Upstream


@pytest.fixture
def config(tmp_path):
    return Config(
        api_key="sk-test",
        images_dir=str(tmp_path / "images"),
        logs_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def client(config, upstream):
    return OpenRouterClient(config, transport=httpx.MockTransport(upstream))
