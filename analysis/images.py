"""
Image generation through the OpenAI Images API (gpt-image-1 returns base64).
"""

import base64
import logging
import re
from typing import Callable, Optional

import openai
from openai import OpenAI

from config import require_env
from errors import UpstreamError

logger = logging.getLogger(__name__)


def image_filename(prompt: str, ext: str = "png") -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (prompt or "").lower()).strip("-")[:60] or "image"
    return f"{slug}.{ext}"


class ImageClient:
    def __init__(self, image_config: dict, client_factory: Optional[Callable] = None):
        self._config = image_config
        self._client_factory = client_factory or (
            lambda: OpenAI(api_key=require_env("OPENAI_API_KEY"))
        )
        self._client = None

    def _get_client(self):
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def generate(self, prompt: str, size: Optional[str] = None) -> bytes:
        model = self._config.get("model", "gpt-image-1")
        size = size or self._config.get("size", "1024x1024")
        logger.info("Calling OpenAI Images: model='%s', size='%s'", model, size)
        try:
            response = self._get_client().images.generate(model=model, prompt=prompt, size=size, n=1)
        except openai.APIStatusError as exc:
            raise UpstreamError("OpenAI Images", exc.status_code, str(exc)) from exc
        except openai.APIConnectionError as exc:
            raise UpstreamError("OpenAI Images", None, str(exc)) from exc

        if not response.data or not getattr(response.data[0], "b64_json", None):
            raise UpstreamError("OpenAI Images", None, "response contained no image data")
        image_bytes = base64.b64decode(response.data[0].b64_json)
        logger.info("Decoded %d image bytes", len(image_bytes))
        return image_bytes
