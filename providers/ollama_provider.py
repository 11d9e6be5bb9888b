"""
Ollama provider dialect.
The generate endpoint takes one free-text prompt, so the conversation is
linearized into a single string.
"""
import json
import logging
from typing import Any, Dict, List

from core.models import ChatRequest, Role
from providers.base_provider import BaseProvider, encode_image

logger = logging.getLogger(__name__)

ROLE_LABELS = {
    Role.USER: "User:",
    Role.ASSISTANT: "Assistant:",
}


def linearize_prompt(request: ChatRequest) -> str:
    """Flatten system prompt, prior turns and trailing text into one prompt

    Parts are separated by a blank line and every turn is prefixed by its role
    label. The trailing text carries the ``User:`` label only when prior turns
    exist, so a one-shot query is sent as-is.

    Args:
        request: Normalized chat request

    Returns:
        The prompt string
    """
    parts = []
    if request.system_prompt:
        parts.append(request.system_prompt)

    for turn in request.turns:
        parts.append(f"{ROLE_LABELS[turn.role]} {turn.text}")

    if request.turns:
        parts.append(f"{ROLE_LABELS[Role.USER]} {request.trailing_user_text}")
    else:
        parts.append(request.trailing_user_text)

    return "\n\n".join(parts)


class OllamaProvider(BaseProvider):
    """Provider dialect for the Ollama generate API"""

    def build_body(self, request: ChatRequest, stream: bool = True) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": request.model,
            "prompt": linearize_prompt(request),
            "stream": stream,
        }
        if request.image is not None:
            body["images"] = [encode_image(request.image)]
        return body

    def parse_models(self, data: Any) -> List[str]:
        # Ollama format: { models: [ { name: "..." } ] }
        if isinstance(data, dict) and isinstance(data.get("models"), list):
            return [
                model["name"]
                for model in data["models"]
                if isinstance(model, dict) and model.get("name")
            ]
        logger.warning(f"Unexpected response format for model listing: {data!r:.200}")
        return []

    def extract_completion_text(self, data: Any) -> str:
        if isinstance(data, dict) and data.get("response"):
            return data["response"]
        logger.warning("Unexpected response format for generate call, returning raw body")
        return json.dumps(data)
