"""
Incremental decoder for streamed chat responses.

Backends stream either newline-delimited JSON objects (Ollama) or
Server-Sent-Events lines carrying OpenAI-style chunks. Network chunks are not
aligned to lines, so a carry-over buffer holds the trailing partial line until
the rest of it arrives.
"""
import codecs
import json
import logging
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Union, TYPE_CHECKING

import httpx

from core.errors import ErrorClassifier, ErrorContext, Stage
from core.models import StreamEvent
from providers.registry import StreamFormat

if TYPE_CHECKING:
    from stream_debug import StreamTracer

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data:"
SSE_COMMENT_PREFIX = ":"
SSE_IGNORED_FIELDS = ("event:", "id:", "retry:")
DONE_SENTINEL = "[DONE]"


def extract_ndjson_delta(payload: Any) -> str:
    """Ollama: {"response": "...", "done": false}"""
    if isinstance(payload, dict):
        text = payload.get("response")
        if isinstance(text, str):
            return text
    return ""


def extract_sse_openai_delta(payload: Any) -> str:
    """OpenAI chunk: choices[0].delta.content"""
    if not isinstance(payload, dict):
        return ""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return ""
    content = delta.get("content")
    return content if isinstance(content, str) else ""


def is_ndjson_final(payload: Any) -> bool:
    return isinstance(payload, dict) and payload.get("done") is True


def is_sse_openai_final(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    choices = payload.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0].get("finish_reason") is not None
    return False


DELTA_EXTRACTORS: Dict[StreamFormat, Callable[[Any], str]] = {
    StreamFormat.NDJSON: extract_ndjson_delta,
    StreamFormat.SSE_OPENAI: extract_sse_openai_delta,
}

FINAL_MARKERS: Dict[StreamFormat, Callable[[Any], bool]] = {
    StreamFormat.NDJSON: is_ndjson_final,
    StreamFormat.SSE_OPENAI: is_sse_openai_final,
}


class StreamDecoder:
    """Turns raw response chunks into ordered StreamEvents

    One decoder serves one response. ``feed`` returns the delta events found in
    a chunk; ``finish`` flushes what is left and returns the ``done`` event.
    ``decode`` wraps both around an async chunk iterator.
    """

    def __init__(
        self,
        stream_format: StreamFormat,
        tracer: Optional["StreamTracer"] = None,
        request_id: Optional[str] = None,
    ) -> None:
        self.stream_format = StreamFormat(stream_format)
        self._extract = DELTA_EXTRACTORS[self.stream_format]
        self._is_final = FINAL_MARKERS[self.stream_format]
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._carry = ""
        self._deltas: List[str] = []
        self._tracer = tracer
        self._log_prefix = f"[{request_id}] " if request_id else ""

        self.malformed_lines: List[str] = []
        self.completion_flag_seen = False
        self.sentinel_seen = False
        self.finished = False
        self._started = False

    @property
    def full_text(self) -> str:
        """Concatenation of every delta emitted so far"""
        return "".join(self._deltas)

    def feed(self, chunk: Union[bytes, str]) -> List[StreamEvent]:
        """Consume one raw chunk and return the delta events it completes"""
        if self.finished:
            raise RuntimeError("StreamDecoder already finished")
        if not chunk:
            return []

        if isinstance(chunk, bytes):
            text = self._utf8.decode(chunk)
        else:
            text = chunk

        if self._tracer:
            self._tracer.log_source_chunk(text)

        self._carry += text
        lines = self._carry.split("\n")
        # The last segment may be an incomplete line
        self._carry = lines.pop()

        events = []
        for line in lines:
            event = self._process_line(line)
            if event is not None:
                events.append(event)
        return events

    def finish(self) -> List[StreamEvent]:
        """Flush buffered data and return the remaining deltas plus ``done``"""
        if self.finished:
            raise RuntimeError("StreamDecoder already finished")

        events = []
        self._carry += self._utf8.decode(b"", final=True)
        remainder, self._carry = self._carry, ""
        if remainder.strip():
            event = self._process_line(remainder)
            if event is not None:
                events.append(event)

        self.finished = True
        if self.malformed_lines:
            logger.warning(f"{self._log_prefix}Skipped {len(self.malformed_lines)} malformed stream line(s)")
        events.append(StreamEvent.done(self.full_text))
        return events

    async def decode(
        self,
        chunks: AsyncIterator[bytes],
        context: Optional[ErrorContext] = None,
        classifier: Optional[ErrorClassifier] = None,
    ) -> AsyncIterator[StreamEvent]:
        """Decode an async chunk iterator into StreamEvents

        Transport failures while reading end the sequence with a single
        ``error`` event and no ``done``. Closing this iterator early closes the
        chunk iterator too, so no further reads happen.

        Args:
            chunks: Async iterator of raw body chunks
            context: Request details for error classification
            classifier: Classifier used for transport failures

        Yields:
            Delta events in arrival order, then ``done`` (or ``error``)
        """
        if self._started:
            raise RuntimeError("StreamDecoder.decode can only be consumed once")
        self._started = True
        classifier = classifier or ErrorClassifier()

        try:
            try:
                async for chunk in chunks:
                    for event in self.feed(chunk):
                        yield event
            except (httpx.HTTPError, OSError) as exc:
                if self._tracer:
                    self._tracer.log_error(f"transport failure mid-stream: {exc!r}")
                self.finished = True
                yield StreamEvent.failed(classifier.classify(Stage.STREAM, exc, context))
                return
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()

        for event in self.finish():
            yield event

    def _process_line(self, raw_line: str) -> Optional[StreamEvent]:
        if self.sentinel_seen:
            return None

        line = raw_line.strip()
        if not line:
            return None

        if line.startswith(SSE_DATA_PREFIX):
            line = line[len(SSE_DATA_PREFIX):].strip()
            if not line:
                return None
        elif line.startswith(SSE_COMMENT_PREFIX) or line.startswith(SSE_IGNORED_FIELDS):
            return None

        if line == DONE_SENTINEL:
            self.sentinel_seen = True
            if self._tracer:
                self._tracer.log_note("received [DONE] sentinel")
            return None

        try:
            payload = json.loads(line)
        except (ValueError, RecursionError) as exc:
            logger.debug(f"{self._log_prefix}Skipping malformed stream line ({exc}): {line[:200]}")
            self.malformed_lines.append(line)
            if self._tracer:
                self._tracer.log_malformed(line)
            return None

        if self._is_final(payload):
            # Completion comes from the read loop ending; later lines still count
            self.completion_flag_seen = True

        text = self._extract(payload)
        if not text:
            return None

        self._deltas.append(text)
        if self._tracer:
            self._tracer.log_delta(text)
        return StreamEvent.delta(text)
