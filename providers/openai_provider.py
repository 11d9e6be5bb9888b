"""
OpenAI-compatible provider dialects.
Handles every backend that accepts a chat-completions style `messages` array:
plain OpenAI-compatible servers, Open WebUI and OpenRouter.
"""
import json
import logging
from typing import Any, Dict, List

import settings
from core.models import ChatRequest
from headers import ATTRIBUTION_REFERER_HEADER, ATTRIBUTION_TITLE_HEADER
from providers.base_provider import BaseProvider, encode_image, sniff_image_mime

logger = logging.getLogger(__name__)


def build_messages(request: ChatRequest) -> List[Dict[str, Any]]:
    """Build the ordered messages array

    System prompt first (when present), prior turns in order, then the
    trailing user text last. An attached image rides on the final message.

    Args:
        request: Normalized chat request

    Returns:
        Messages in chat-completions format
    """
    messages: List[Dict[str, Any]] = []
    if request.system_prompt:
        messages.append({"role": "system", "content": request.system_prompt})

    for turn in request.turns:
        messages.append({"role": turn.role.value, "content": turn.text})

    if request.image is not None:
        data_url = f"data:{sniff_image_mime(request.image)};base64,{encode_image(request.image)}"
        content: Any = [
            {"type": "text", "text": request.trailing_user_text},
            {"type": "image_url", "image_url": {"url": data_url}},
        ]
    else:
        content = request.trailing_user_text
    messages.append({"role": "user", "content": content})
    return messages


class OpenAIProvider(BaseProvider):
    """Provider dialect for OpenAI-compatible chat completions"""

    def build_body(self, request: ChatRequest, stream: bool = True) -> Dict[str, Any]:
        return {
            "model": request.model,
            "messages": build_messages(request),
            "stream": stream,
        }

    def parse_models(self, data: Any) -> List[str]:
        # OpenAI format: data is in a 'data' property, array of objects with 'id'
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            return [model["id"] for model in data["data"] if isinstance(model, dict) and model.get("id")]

        logger.warning(f"Unexpected response format for model listing: {data!r:.200}")
        # Fallback when the root is an array
        if isinstance(data, list):
            names = []
            for model in data:
                if isinstance(model, dict):
                    name = model.get("id") or model.get("name")
                    if name:
                        names.append(name)
            return names
        return []

    def extract_completion_text(self, data: Any) -> str:
        # OpenAI format: data.choices[0].message.content
        if isinstance(data, dict):
            choices = data.get("choices")
            if isinstance(choices, list) and choices and isinstance(choices[0], dict):
                message = choices[0].get("message")
                if isinstance(message, dict) and isinstance(message.get("content"), str):
                    return message["content"]
        logger.warning("Unexpected response format for chat completion, returning raw body")
        return json.dumps(data)


class OpenWebUIProvider(OpenAIProvider):
    """Open WebUI: web search is toggled through the `features` object"""

    def web_search_fields(self) -> Dict[str, Any]:
        return {"features": {"web_search": True}}


class OpenRouterProvider(OpenAIProvider):
    """OpenRouter: web plugin for search, attribution headers on every call"""

    def extra_headers(self) -> Dict[str, str]:
        return {
            ATTRIBUTION_REFERER_HEADER: settings.APP_REFERER,
            ATTRIBUTION_TITLE_HEADER: settings.APP_TITLE,
        }

    def web_search_fields(self) -> Dict[str, Any]:
        return {"plugins": [{"id": "web"}]}
