import pytest

from backend.services.ai_chat.errors import ChatValidationError
from backend.services.ai_chat.url_guard import (
    is_private_host,
    validate_api_url,
    validate_model_name,
)


class TestValidateApiUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "http://localhost:11434",
            "http://127.0.0.1:8080/v1",
            "http://[::1]:11434",
            "http://192.168.1.5:8080",
            "http://10.0.0.7/api",
            "http://172.20.3.4:8000",
            "https://example.com",
            "https://openrouter.ai/api/v1",
        ],
    )
    def test_accepted(self, url):
        assert validate_api_url(url) == url

    @pytest.mark.parametrize(
        "url",
        [
            "http://example.com",
            "http://172.32.0.1",
            "http://8.8.8.8",
            "ftp://localhost/models",
            "file:///etc/passwd",
            "not a url",
            "",
        ],
    )
    def test_rejected(self, url):
        with pytest.raises(ChatValidationError):
            validate_api_url(url)

    def test_public_http_message(self):
        with pytest.raises(ChatValidationError) as exc:
            validate_api_url("http://example.com")
        assert "Only HTTPS URLs allowed" in exc.value.message

    def test_trailing_slash_is_stripped(self):
        assert validate_api_url("https://api.openai.com/v1/") == "https://api.openai.com/v1"


def test_private_host_detection() -> None:
    assert is_private_host("LOCALHOST")
    assert is_private_host("172.31.255.255")
    assert not is_private_host("172.15.0.1")
    assert not is_private_host("api.openai.com")
    assert not is_private_host(None)


class TestValidateModelName:
    @pytest.mark.parametrize("model", ["gemini-1.5-pro", "gemini-2.0-flash", "a.b-c"])
    def test_accepted(self, model):
        assert validate_model_name(model) == model

    @pytest.mark.parametrize(
        "model,message",
        [
            (None, "Model name is required and must be a string"),
            (42, "Model name is required and must be a string"),
            ("   ", "Model name cannot be empty"),
            ("a" * 101, "Model name is too long (max 100 characters)"),
            ("gemini/../../admin", "Model name cannot contain path traversal sequences (..)"),
            ("/etc/passwd", "Model name cannot be an absolute path"),
            ("C:\\models\\x", "Model name cannot be an absolute path"),
            ("gemini?key=x", "Model name contains invalid characters"),
            ("org/model", "Model name contains invalid characters"),
        ],
    )
    def test_rejected(self, model, message):
        with pytest.raises(ChatValidationError) as exc:
            validate_model_name(model)
        assert exc.value.message == message

    def test_custom_options(self):
        import re

        assert validate_model_name("org/model:free", allowed_pattern=re.compile(r"^[\w./:-]+$"))
        assert validate_model_name("a..b", allow_path_traversal=True, allowed_pattern=re.compile(r"^[a-z.]+$"))
        with pytest.raises(ChatValidationError) as exc:
            validate_model_name("abcdef", max_length=3)
        assert exc.value.message == "Model name is too long (max 3 characters)"
        with pytest.raises(ChatValidationError) as exc:
            validate_model_name("a_b", error_message="Only letters please")
        assert exc.value.message == "Only letters please"
