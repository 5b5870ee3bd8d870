from typing import Optional


class OpenRouterMCPError(Exception):
    """Base class for failures raised inside tool and resource handlers."""


class UnknownTool(OpenRouterMCPError):
    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class InvalidArguments(OpenRouterMCPError):
    """Raised when tool arguments do not match the declared schema."""


class UpstreamHttpError(OpenRouterMCPError):
    """Network failure or non-2xx answer from OpenRouter."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ModelNotFound(OpenRouterMCPError):
    def __init__(self, model: str):
        super().__init__(f"Model {model} not found")
        self.model = model


class FilesystemError(OpenRouterMCPError):
    """Creating directories or writing images/logs failed."""


class UnknownResource(OpenRouterMCPError):
    def __init__(self, uri: str):
        super().__init__(f"Unknown resource: {uri}")
        self.uri = uri
