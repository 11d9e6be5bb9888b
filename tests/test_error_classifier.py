"""Tests for failure classification and debug records"""

import json

import httpx
import pytest

from core.errors import (
    AuthError,
    ClassifiedError,
    ConfigError,
    ContentTypeError,
    ErrorCategory,
    ErrorClassifier,
    ErrorContext,
    HttpStatusError,
    Stage,
    reduce_body,
    redact_headers,
)


@pytest.fixture
def classifier():
    return ErrorClassifier()


@pytest.fixture
def context():
    return ErrorContext(
        url="http://localhost:11434/api/generate",
        headers={"Content-Type": "application/json", "Authorization": "Bearer secret-token"},
        body={"model": "llava", "prompt": "hi", "images": ["QUJD" * 100]},
        request_id="req-1",
    )


class TestCategories:

    def test_connect_error_is_network(self, classifier, context):
        error = classifier.classify(Stage.CONNECT, httpx.ConnectError("refused"), context)
        assert error.category == ErrorCategory.NETWORK
        assert "http://localhost:11434/api/generate" in error.user_message

    def test_os_error_is_network(self, classifier, context):
        error = classifier.classify(Stage.STREAM, ConnectionResetError("reset"), context)
        assert error.category == ErrorCategory.NETWORK

    @pytest.mark.parametrize(
        "status,phrase",
        [
            (404, "API endpoint not found"),
            (400, "Check that the selected model is available"),
            (401, "Credentials rejected"),
            (403, "Credentials rejected"),
            (500, "Request failed (HTTP 500)"),
        ],
    )
    def test_http_status_messages(self, classifier, context, status, phrase):
        error = classifier.classify(Stage.STATUS, HttpStatusError(status, "backend says no"), context)
        assert error.category == ErrorCategory.HTTP_STATUS
        assert phrase in error.user_message
        assert "backend says no" in error.user_message
        assert error.debug_detail.status_code == status

    def test_body_excerpt_is_capped(self, classifier, context):
        error = classifier.classify(Stage.STATUS, HttpStatusError(502, "x" * 5000), context)
        assert error.user_message.count("x") <= 500
        assert len(error.debug_detail.response_excerpt) == 500

    def test_content_type_and_json_errors_are_parse(self, classifier, context):
        content_error = classifier.classify(Stage.PARSE, ContentTypeError("text/html", "<html>"), context)
        json_error = classifier.classify(Stage.PARSE, json.JSONDecodeError("bad", "doc", 0), context)
        assert content_error.category == ErrorCategory.PARSE
        assert json_error.category == ErrorCategory.PARSE

    def test_auth_error(self, classifier, context):
        error = classifier.classify(Stage.AUTH, AuthError("Session expired."), context)
        assert error.category == ErrorCategory.AUTH
        assert "sign in again" in error.user_message

    def test_config_error(self, classifier):
        error = classifier.classify(Stage.BUILD, ConfigError("No model selected."))
        assert error.category == ErrorCategory.CONFIG
        assert "No model selected." in error.user_message

    def test_unknown_error_falls_back_to_stage(self, classifier, context):
        error = classifier.classify(Stage.PARSE, RuntimeError("odd"), context)
        assert error.category == ErrorCategory.PARSE

    def test_unexpected_stream_failure_is_parse(self, classifier, context):
        error = classifier.classify(Stage.STREAM, ValueError("Exceeds the limit for integer string conversion"), context)
        assert error.category == ErrorCategory.PARSE
        assert "Could not connect" not in error.user_message

    def test_classified_error_passes_through(self, classifier, context):
        first = classifier.classify(Stage.AUTH, AuthError("x"), context)
        assert classifier.classify(Stage.STREAM, first, context) is first


class TestDebugRecord:

    def test_credentials_redacted(self, classifier, context):
        error = classifier.classify(Stage.STATUS, HttpStatusError(401, ""), context)
        record = error.debug_detail.to_dict()
        assert record["requestHeaders"]["Authorization"] == "[REDACTED]"
        assert "secret-token" not in error.debug_detail.format()

    def test_image_payload_removed(self, classifier, context):
        error = classifier.classify(Stage.STATUS, HttpStatusError(400, ""), context)
        body = error.debug_detail.body
        assert body["model"] == "llava"
        assert "QUJD" not in json.dumps(body)

    def test_record_fields(self, classifier, context):
        error = classifier.classify(Stage.CONNECT, httpx.ConnectError("refused"), context)
        record = error.debug_detail.to_dict()
        assert record["requestUrl"] == context.url
        assert record["error"]["name"] == "ConnectError"
        assert record["error"]["message"] == "refused"
        assert "timestamp" in record
        assert record["stage"] == "connect"

    def test_classified_error_is_exception(self, classifier):
        error = classifier.classify(Stage.BUILD, ConfigError("bad"))
        assert isinstance(error, ClassifiedError)
        with pytest.raises(ClassifiedError):
            raise error


class TestHelpers:

    def test_redact_headers_is_case_insensitive(self):
        assert redact_headers({"authorization": "x", "X-Title": "app"}) == {
            "authorization": "[REDACTED]",
            "X-Title": "app",
        }

    def test_reduce_body_strips_data_urls(self):
        body = {
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": "what?"},
                        {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}},
                    ],
                }
            ]
        }
        reduced = reduce_body(body)
        content = reduced["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "what?"}
        assert "AAAA" not in content[1]["image_url"]["url"]
        assert body["messages"][0]["content"][1]["image_url"]["url"] == "data:image/png;base64,AAAA"
