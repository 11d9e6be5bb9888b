"""
Base provider interface for backend dialects.
Defines the contract every provider dialect must follow: how a normalized
ChatRequest becomes a request body, and how non-streaming responses are read.
"""
import base64
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from core.models import ChatRequest
from providers.registry import ProviderConfig

# Magic-byte prefixes used to label inline images
_IMAGE_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


def sniff_image_mime(image: bytes) -> str:
    """Guess an image MIME type from its leading bytes (defaults to PNG)"""
    for signature, mime in _IMAGE_SIGNATURES:
        if image.startswith(signature):
            return mime
    if image[:4] == b"RIFF" and image[8:12] == b"WEBP":
        return "image/webp"
    return "image/png"


def encode_image(image: bytes) -> str:
    """Base64-encode raw image bytes"""
    return base64.b64encode(image).decode("ascii")


class BaseProvider(ABC):
    """Abstract base class for provider dialects"""

    def __init__(self, config: ProviderConfig):
        """
        Initialize the dialect for a provider

        Args:
            config: The provider's capability row
        """
        self.config = config

    @abstractmethod
    def build_body(self, request: ChatRequest, stream: bool = True) -> Dict[str, Any]:
        """Build the chat request body

        Args:
            request: Normalized chat request (read-only)
            stream: Whether the backend should stream its answer

        Returns:
            JSON-serializable request body
        """
        pass

    @abstractmethod
    def parse_models(self, data: Any) -> List[str]:
        """Extract model names from a model-listing response

        Args:
            data: Decoded JSON body

        Returns:
            Model names in backend order
        """
        pass

    @abstractmethod
    def extract_completion_text(self, data: Any) -> str:
        """Extract the answer text from a non-streaming chat response

        Args:
            data: Decoded JSON body

        Returns:
            Answer text
        """
        pass

    def extra_headers(self) -> Dict[str, str]:
        """Provider-specific headers added to every call"""
        return {}

    def web_search_fields(self) -> Dict[str, Any]:
        """Body fields requesting web-search augmentation

        Only consulted when the provider supports web search.
        """
        return {}
