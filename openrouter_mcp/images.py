"""Image extraction from chat-completion responses.

Image-capable models hand back pictures in a few different shapes, so the
search is a fixed sequence of small strategies. Each one looks at the raw
response and either returns an ``ExtractedImage`` or ``None``; the first hit
wins:

1. ``message.images``: list of ``{"type": "image_url", "image_url": {"url": ...}}``
   (Gemini Flash Image and friends).
2. ``message.content`` as a string with an inline ``data:image/...;base64,`` URI.
3. ``message.content`` as a list of multimodal parts of type ``image`` or
   ``image_url``.

Every ``generate_image`` call is also appended to a per-day JSON log before
the search runs, so responses without an image are still on record.
"""

import base64
import json
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from .client import OpenRouterClient
from .config import Config
from .errors import FilesystemError

logger = logging.getLogger(__name__)

INLINE_DATA_URI = re.compile(r"data:image/(png|jpeg|jpg|gif|webp);base64,([A-Za-z0-9+/=]+)")
DATA_URI_HEADER = re.compile(r"data:image/([^;]+)")

IMAGE_SYSTEM_PROMPT = (
    "You are an AI that generates images. When asked to create an image, respond with "
    "a detailed image that matches the description. Make sure to output the image directly."
)


@dataclass(frozen=True)
class ExtractedImage:
    payload: str
    extension: str

    def decode(self) -> bytes:
        return base64.b64decode(self.payload)


def extension_for(subtype: str) -> str:
    return "jpg" if subtype == "jpeg" else subtype


def _first_message(response: Any) -> Dict[str, Any]:
    if not isinstance(response, dict):
        return {}
    choices = response.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return {}
    message = choices[0].get("message")
    return message if isinstance(message, dict) else {}


def _image_url(part: Any) -> Optional[str]:
    if not isinstance(part, dict):
        return None
    image_url = part.get("image_url")
    if not isinstance(image_url, dict):
        return None
    url = image_url.get("url")
    return url if isinstance(url, str) else None


def from_data_url(url: Optional[str]) -> Optional[ExtractedImage]:
    """Split a ``data:image/<subtype>;base64,<payload>`` URL."""
    if not url or not url.startswith("data:image/"):
        return None
    header, _, payload = url.partition(",")
    match = DATA_URI_HEADER.match(header)
    extension = extension_for(match.group(1)) if match else "png"
    return ExtractedImage(payload=payload, extension=extension)


# ─────────────────────────────────────────────
# STRATEGIES
# ─────────────────────────────────────────────

def from_images_field(response: Any) -> Optional[ExtractedImage]:
    images = _first_message(response).get("images")
    if not isinstance(images, list):
        return None
    for item in images:
        if isinstance(item, dict) and item.get("type") == "image_url":
            found = from_data_url(_image_url(item))
            if found:
                return found
    return None


def from_text_content(response: Any) -> Optional[ExtractedImage]:
    content = _first_message(response).get("content")
    if not isinstance(content, str):
        return None
    match = INLINE_DATA_URI.search(content)
    if not match:
        return None
    return ExtractedImage(payload=match.group(2), extension=extension_for(match.group(1)))


def from_content_parts(response: Any) -> Optional[ExtractedImage]:
    content = _first_message(response).get("content")
    if not isinstance(content, list):
        return None
    for part in content:
        if isinstance(part, dict) and part.get("type") in ("image", "image_url"):
            found = from_data_url(_image_url(part))
            if found:
                return found
    return None


Strategy = Callable[[Any], Optional[ExtractedImage]]

STRATEGIES: Sequence[Strategy] = (from_images_field, from_text_content, from_content_parts)


def extract_image(response: Any, strategies: Sequence[Strategy] = STRATEGIES) -> Optional[ExtractedImage]:
    for strategy in strategies:
        found = strategy(response)
        if found is not None:
            return found
    return None


# ─────────────────────────────────────────────
# FILESYSTEM
# ─────────────────────────────────────────────

def ensure_dir(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Cannot create directory {path}: {e}") from e
    return path


def save_image(image: ExtractedImage, save_dir: Path) -> Path:
    data = image.decode()
    path = save_dir / f"generated_{int(time.time() * 1000)}.{image.extension}"
    try:
        path.write_bytes(data)
    except OSError as e:
        raise FilesystemError(f"Cannot write image {path}: {e}") from e
    return path


class ImageLog:
    """Per-day JSON array of every image request/response pair.

    The file is read, extended and rewritten whole on each append. Nothing
    awaits between the read and the write, so appends from one process
    cannot interleave; two processes sharing the directory can still lose
    entries.
    """

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def path_for(self, when: datetime) -> Path:
        return self.directory / f"image_generation_{when.date().isoformat()}.json"

    def read(self, when: datetime) -> List[Dict[str, Any]]:
        path = self.path_for(when)
        if not path.exists():
            return []
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise FilesystemError(f"Cannot read log {path}: {e}") from e

    def append(self, entry: Dict[str, Any], when: Optional[datetime] = None) -> Path:
        when = when or datetime.now(timezone.utc)
        ensure_dir(self.directory)
        entries = self.read(when)
        entries.append(entry)
        path = self.path_for(when)
        try:
            path.write_text(json.dumps(entries, indent=2, ensure_ascii=False), encoding="utf-8")
        except (OSError, TypeError) as e:
            raise FilesystemError(f"Cannot write log {path}: {e}") from e
        return path


# ─────────────────────────────────────────────
# TOOL
# ─────────────────────────────────────────────

def build_image_request(model: str, message: str) -> Dict[str, Any]:
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": IMAGE_SYSTEM_PROMPT},
            {"role": "user", "content": f"Please generate an image: {message}"},
        ],
        "max_tokens": 2000,
        "temperature": 0.7,
    }


async def generate_image(
    client: OpenRouterClient,
    config: Config,
    model: str,
    message: str,
    savefile: Optional[str] = None,
) -> str:
    now = datetime.now(timezone.utc)
    save_dir = Path(savefile or config.images_dir)
    log = ImageLog(config.logs_dir)

    try:
        ensure_dir(save_dir)
        ensure_dir(log.directory)

        payload = build_image_request(model, message)
        status, result = await client.post("/chat/completions", payload)

        log.append(
            {
                "timestamp": now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
                "model": model,
                "message": message,
                "savefile": savefile or f"default ({config.images_dir})",
                "request": payload,
                "response": result,
                "status": status,
            },
            when=now,
        )

        image = extract_image(result)
        if image is None:
            content = _first_message(result).get("content") or "No content"
            logger.info("generate_image: no image data in response from %s", model)
            return (
                "Model response received but no image data found. "
                f"Response: {json.dumps(content, indent=2, ensure_ascii=False)}"
            )

        path = save_image(image, save_dir)
        size = path.stat().st_size
        logger.info("generate_image: saved %d bytes to %s", size, path)
        return (
            "Image generated and saved successfully!\n\n"
            f"**Model:** {model}\n"
            f"**Saved to:** {path}\n"
            f"**Size:** {size} bytes\n"
            f"**Prompt:** {message}"
        )

    except Exception as e:
        logger.error("generate_image failed: %s", e)
        return f"Error generating image: {e}"
