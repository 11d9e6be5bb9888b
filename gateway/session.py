"""Conversation state for follow-up questions"""

import logging
from typing import TYPE_CHECKING, AsyncIterator, List, Optional

from config.settings_store import GatewaySettings
from core.models import ChatRequest, EventKind, Role, StreamEvent, Turn

if TYPE_CHECKING:
    from .gateway import Gateway

logger = logging.getLogger(__name__)


class ConversationSession:
    """Prior turns for one provider conversation

    Only completed exchanges are recorded: an exchange that ends in an error
    leaves the history unchanged. ``busy`` is set while a stream is in flight;
    callers must not start a second ``ask`` before the first finishes.
    """

    def __init__(self, provider_id: str, settings: GatewaySettings):
        self.provider_id = provider_id
        self.settings = settings
        self.turns: List[Turn] = []
        self.busy = False

    def build_request(self, text: str, image: Optional[bytes] = None) -> ChatRequest:
        """Build a request carrying the history and the new message"""
        return ChatRequest(
            model=self.settings.model_for(self.provider_id),
            trailing_user_text=text,
            system_prompt=self.settings.system_prompt or None,
            turns=tuple(self.turns),
            image=image,
            use_internet=self.settings.use_internet,
        )

    async def ask(self, gateway: "Gateway", text: str, image: Optional[bytes] = None) -> AsyncIterator[StreamEvent]:
        """Send a message and re-yield the gateway's events

        On ``done`` the user message and the answer are appended to the history.
        """
        if self.busy:
            logger.warning(f"ask() called while a stream is in flight for provider={self.provider_id}")

        request = self.build_request(text, image)
        self.busy = True
        try:
            async for event in gateway.send(request, self.provider_id, self.settings):
                if event.kind == EventKind.DONE:
                    self.turns.append(Turn(Role.USER, text))
                    self.turns.append(Turn(Role.ASSISTANT, event.full_text))
                yield event
        finally:
            self.busy = False

    def clear(self) -> None:
        self.turns.clear()
