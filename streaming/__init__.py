"""Incremental decoding of streamed chat responses"""

from .decoder import (
    DELTA_EXTRACTORS,
    DONE_SENTINEL,
    StreamDecoder,
    extract_ndjson_delta,
    extract_sse_openai_delta,
)

__all__ = [
    "DELTA_EXTRACTORS",
    "DONE_SENTINEL",
    "StreamDecoder",
    "extract_ndjson_delta",
    "extract_sse_openai_delta",
]
