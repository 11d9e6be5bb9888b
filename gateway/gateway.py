"""
Gateway orchestrator.

Ties the provider registry, token manager, request builder, stream decoder
and error classifier together. Callers get a single async iterator of
StreamEvents per chat call; every failure arrives as one classified ``error``
event.
"""
import json
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional

import httpx

import settings as app_settings
from config.settings_store import GatewaySettings
from core.errors import (
    AuthError,
    ClassifiedError,
    ContentTypeError,
    ErrorClassifier,
    ErrorContext,
    HttpStatusError,
    Stage,
)
from core.models import AuthMaterial, ChatRequest, EventKind, HttpCall, StreamEvent
from oauth.token_manager import TokenManager
from providers.registry import AuthStyle, ProviderConfig, capabilities_of
from providers.request_builder import RequestBuilder, get_provider_dialect
from stream_debug import maybe_create_stream_tracer
from streaming.decoder import StreamDecoder

logger = logging.getLogger(__name__)


def _new_request_id() -> str:
    return uuid.uuid4().hex[:12]


class Gateway:
    """Multi-provider streaming chat gateway"""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        token_manager: Optional[TokenManager] = None,
        builder: Optional[RequestBuilder] = None,
        classifier: Optional[ErrorClassifier] = None,
        stream_trace_enabled: Optional[bool] = None,
        stream_trace_dir: Optional[str] = None,
    ):
        """
        Args:
            http_client: Shared client; a short-lived one is opened per call when omitted
            token_manager: OAuth token owner (created on first OAuth call when omitted)
            builder: Request builder
            classifier: Error classifier
            stream_trace_enabled: Write per-request stream traces (defaults to settings)
            stream_trace_dir: Directory for trace files (defaults to settings)
        """
        self._http_client = http_client
        self._token_manager = token_manager
        self.builder = builder or RequestBuilder()
        self.classifier = classifier or ErrorClassifier()
        self.stream_trace_enabled = (
            app_settings.STREAM_TRACE_ENABLED if stream_trace_enabled is None else stream_trace_enabled
        )
        self.stream_trace_dir = stream_trace_dir or app_settings.STREAM_TRACE_DIR

    @property
    def token_manager(self) -> TokenManager:
        if self._token_manager is None:
            self._token_manager = TokenManager(http_client=self._http_client)
        return self._token_manager

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        # Chat streams carry no internal timeout; callers bound them if they want
        async with httpx.AsyncClient(timeout=httpx.Timeout(None)) as client:
            yield client

    async def _resolve_auth(self, provider: ProviderConfig, settings: GatewaySettings) -> AuthMaterial:
        """Credential for the provider's auth style"""
        if provider.auth_style == AuthStyle.API_KEY:
            return AuthMaterial(token=settings.api_key_for(provider.id))

        if provider.auth_style == AuthStyle.OAUTH:
            token = await self.token_manager.ensure_fresh_token(oauth_settings=settings.oauth())
            if not token:
                raise AuthError("Not signed in, or the session could not be refreshed.")
            return AuthMaterial(token=token)

        return AuthMaterial()

    async def _prepare(
        self,
        provider_id: str,
        settings: GatewaySettings,
        build,
        context: ErrorContext,
    ) -> HttpCall:
        """Run registry lookup, auth and request building, tagging failures with their stage"""
        stage = Stage.CONFIG
        try:
            provider = capabilities_of(provider_id)
            stage = Stage.AUTH
            auth = await self._resolve_auth(provider, settings)
            stage = Stage.BUILD
            call = build(provider, auth, settings.base_url_for(provider.id))
        except Exception as e:
            raise self.classifier.classify(stage, e, context) from e

        context.url = call.url
        context.headers = call.headers
        context.body = call.body
        return call

    async def send(
        self,
        request: ChatRequest,
        provider_id: str,
        settings: GatewaySettings,
    ) -> AsyncIterator[StreamEvent]:
        """Stream one chat request

        Args:
            request: Normalized chat request
            provider_id: Registered provider id
            settings: Settings snapshot (base URLs, keys, OAuth client)

        Yields:
            ``delta`` events in arrival order, then exactly one ``done``;
            or a single ``error`` after which nothing follows
        """
        request_id = _new_request_id()
        context = ErrorContext(request_id=request_id)
        logger.info(f"[{request_id}] Chat request: provider={provider_id} model={request.model}")

        try:
            call = await self._prepare(
                provider_id,
                settings,
                lambda provider, auth, base_url: self.builder.build_chat_call(
                    request, provider, auth, base_url=base_url
                ),
                context,
            )
        except ClassifiedError as e:
            yield StreamEvent.failed(e)
            return

        provider = capabilities_of(provider_id)
        tracer = maybe_create_stream_tracer(
            self.stream_trace_enabled,
            request_id=request_id,
            route=provider.id,
            base_dir=self.stream_trace_dir,
            max_bytes=app_settings.STREAM_TRACE_MAX_BYTES,
        )
        if tracer:
            tracer.log_note(f"dispatching POST {call.url} model={request.model}")

        stage = Stage.CONNECT
        terminal_sent = False
        try:
            async with self._client() as client:
                async with client.stream("POST", call.url, json=call.body, headers=call.headers) as response:
                    logger.debug(f"[{request_id}] Backend responded with status={response.status_code}")
                    if tracer:
                        tracer.log_note(f"backend responded with status={response.status_code}")

                    if not response.is_success:
                        stage = Stage.STATUS
                        error_body = (await response.aread()).decode("utf-8", "replace")
                        raise HttpStatusError(response.status_code, error_body, response.reason_phrase)

                    stage = Stage.STREAM
                    decoder = StreamDecoder(provider.stream_format, tracer=tracer, request_id=request_id)
                    events = decoder.decode(response.aiter_bytes(), context, self.classifier)
                    try:
                        async for event in events:
                            terminal_sent = event.kind != EventKind.DELTA
                            yield event
                    finally:
                        await events.aclose()

                    if decoder.sentinel_seen:
                        logger.debug(f"[{request_id}] Stream ended after [DONE]")
                    logger.info(f"[{request_id}] Stream finished: {len(decoder.full_text)} chars")
        except Exception as e:
            if tracer:
                tracer.log_error(f"{type(e).__name__}: {e}")
            if terminal_sent:
                # Teardown failed after done/error was delivered; nothing may follow it
                logger.warning(f"[{request_id}] Error while closing the stream: {e}")
            else:
                yield StreamEvent.failed(self.classifier.classify(stage, e, context))
        finally:
            if tracer:
                tracer.close()

    async def _fetch_json(self, call: HttpCall, context: ErrorContext) -> Any:
        """Issue a non-streaming call and decode its JSON body

        Raises:
            ClassifiedError: For transport, status, content-type and JSON failures
        """
        stage = Stage.CONNECT
        try:
            async with self._client() as client:
                if call.body is None:
                    response = await client.get(call.url, headers=call.headers)
                else:
                    response = await client.post(call.url, json=call.body, headers=call.headers)

            stage = Stage.STATUS
            if not response.is_success:
                raise HttpStatusError(response.status_code, response.text, response.reason_phrase)

            stage = Stage.PARSE
            content_type = response.headers.get("content-type", "").lower()
            if "application/json" not in content_type:
                raise ContentTypeError(content_type, response.text)
            return json.loads(response.text)
        except Exception as e:
            raise self.classifier.classify(stage, e, context) from e

    async def list_models(self, provider_id: str, settings: GatewaySettings) -> List[str]:
        """List model names available on a provider

        Raises:
            ClassifiedError: On any failure
        """
        request_id = _new_request_id()
        context = ErrorContext(request_id=request_id)
        call = await self._prepare(
            provider_id,
            settings,
            lambda provider, auth, base_url: self.builder.build_models_call(provider, auth, base_url=base_url),
            context,
        )

        logger.info(f"[{request_id}] Fetching models from {call.url}")
        payload = await self._fetch_json(call, context)

        provider = capabilities_of(provider_id)
        try:
            models = get_provider_dialect(provider).parse_models(payload)
        except Exception as e:
            raise self.classifier.classify(Stage.PARSE, e, context) from e

        logger.info(f"[{request_id}] Found {len(models)} model(s)")
        return models

    async def complete(self, request: ChatRequest, provider_id: str, settings: GatewaySettings) -> str:
        """Run a non-streaming chat call and return the answer text

        Raises:
            ClassifiedError: On any failure
        """
        request_id = _new_request_id()
        context = ErrorContext(request_id=request_id)
        call = await self._prepare(
            provider_id,
            settings,
            lambda provider, auth, base_url: self.builder.build_completion_call(
                request, provider, auth, base_url=base_url
            ),
            context,
        )

        logger.info(f"[{request_id}] Test chat: provider={provider_id} model={request.model}")
        payload = await self._fetch_json(call, context)

        provider = capabilities_of(provider_id)
        try:
            return get_provider_dialect(provider).extract_completion_text(payload)
        except Exception as e:
            raise self.classifier.classify(Stage.PARSE, e, context) from e

    async def test_connection(self, provider_id: str, settings: GatewaySettings) -> List[str]:
        """Check that a provider is reachable by listing its models"""
        return await self.list_models(provider_id, settings)
