import logging

import httpx
import pytest

from codeloom.config import ProviderConfig, configure_logging
from codeloom.errors import (
    INSUFFICIENT_CREDITS,
    INVALID_API_KEY,
    MODEL_NOT_FOUND,
    SERVICE_UNAVAILABLE,
    TIMED_OUT,
    describe_http_error,
    describe_network_error,
    extract_error_message,
)


class TestProviderConfig:
    def test_defaults(self):
        config = ProviderConfig()
        assert config.base_url == "https://openrouter.ai/api/v1"
        assert config.temperature == 0.7
        assert config.max_retries == 5

    def test_timeout(self):
        timeout = ProviderConfig(connect_timeout=5, read_timeout=300).timeout()
        assert isinstance(timeout, httpx.Timeout)
        assert timeout.connect == 5
        assert timeout.read == 300

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CODELOOM_MODEL", "qwen/qwen3-coder")
        monkeypatch.setenv("CODELOOM_READ_TIMEOUT", "45")
        monkeypatch.setenv("CODELOOM_API_KEY", "")
        config = ProviderConfig.from_env()

        assert config.model == "qwen/qwen3-coder"
        assert config.read_timeout == 45.0
        assert config.api_key is None

    def test_configure_logging(self, tmp_path):
        root = logging.getLogger()
        saved, level = root.handlers[:], root.level
        root.handlers = []
        try:
            configure_logging(level=logging.DEBUG, log_file=str(tmp_path / "run.log"))
            assert root.level == logging.DEBUG
            assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers = saved
            root.setLevel(level)


class TestDescribeHttpError:
    @pytest.mark.parametrize("status,expected", [
        (401, INVALID_API_KEY),
        (402, INSUFFICIENT_CREDITS),
        (503, SERVICE_UNAVAILABLE),
    ])
    def test_fixed_statuses(self, status, expected):
        assert describe_http_error(status, {"message": "ignored"}) == expected

    def test_model_not_found_from_body(self):
        body = {"error": {"message": "The model `x` does not exist"}}
        assert describe_http_error(400, body) == MODEL_NOT_FOUND

    def test_api_key_mention(self):
        assert describe_http_error(403, {"message": "No API key provided"}) == INVALID_API_KEY

    def test_raw_message_passthrough(self):
        assert describe_http_error(400, {"message": "context too long"}) == "context too long"

    def test_no_body(self):
        assert describe_http_error(500) == "Request failed with status 500"


class TestErrorHelpers:
    @pytest.mark.parametrize("body,expected", [
        ({"error": {"message": "boom"}}, "boom"),
        ({"message": "boom"}, "boom"),
        ({"error": "boom"}, "boom"),
        ({"error": {"code": 1}}, None),
        ({"error": {"message": "boom", "type": 7, "metadata": {"raw": "x"}}, "user_id": "u"}, "boom"),
        ({"error": {"message": 42}}, None),
        ({"error": {"message": ""}}, None),
        ("plain", None),
        (None, None),
    ])
    def test_extract_error_message(self, body, expected):
        assert extract_error_message(body) == expected

    def test_network_error_text(self):
        assert describe_network_error(ConnectionResetError("reset by peer")) == "Network error: reset by peer"
        assert describe_network_error(OSError()) == "Network error"
        assert describe_network_error(OSError("x"), timed_out=True) == TIMED_OUT
