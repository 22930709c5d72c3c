"""
Validation of user supplied provider endpoints and model identifiers.

Both values come straight from per-user settings, so they are treated as
untrusted: the URL decides where the server sends the user's API key, and the
model name is interpolated into a request path for Google.
"""

import ipaddress
import re
from typing import Optional
from urllib.parse import urlparse

from .errors import ChatValidationError

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})

_PRIVATE_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
)

DEFAULT_MODEL_PATTERN = re.compile(r"^[a-zA-Z0-9.-]+$")
_WINDOWS_ABSOLUTE = re.compile(r"^[a-zA-Z]:\\")


def host_of(raw: str) -> Optional[str]:
    """Lowercased hostname of a URL, or None when it does not parse."""
    try:
        return urlparse(raw).hostname
    except ValueError:
        return None


def is_private_host(hostname: Optional[str]) -> bool:
    """True for loopback names and RFC1918 IPv4 literals."""
    if not hostname:
        return False
    host = hostname.lower()
    if host in LOOPBACK_HOSTS:
        return True
    try:
        addr = ipaddress.ip_address(host)
    except ValueError:
        return False
    if addr.version != 4:
        return False
    return any(addr in net for net in _PRIVATE_NETWORKS)


def validate_api_url(raw: str) -> str:
    """
    Check a provider base URL and return it without a trailing slash.

    https is required everywhere except loopback and private network hosts,
    where plain http is accepted for self-hosted models.

    Raises:
        ChatValidationError: malformed URL, unsupported scheme or public http
    """
    if not isinstance(raw, str) or not raw.strip():
        raise ChatValidationError("Invalid URL format")

    try:
        parsed = urlparse(raw.strip())
        hostname = parsed.hostname
    except ValueError:
        raise ChatValidationError("Invalid URL format")

    if not parsed.scheme or not hostname:
        raise ChatValidationError("Invalid URL format")

    scheme = parsed.scheme.lower()
    if scheme == "http":
        if not is_private_host(hostname):
            raise ChatValidationError(
                "Only HTTPS URLs allowed "
                "(HTTP is permitted for localhost and private network addresses)"
            )
    elif scheme != "https":
        raise ChatValidationError(f"Unsupported URL scheme: {parsed.scheme}")

    return raw.strip().rstrip("/")


def validate_model_name(
    model,
    *,
    allowed_pattern: re.Pattern = DEFAULT_MODEL_PATTERN,
    max_length: int = 100,
    allow_path_traversal: bool = False,
    error_message: Optional[str] = None,
) -> str:
    """
    Reject model identifiers that could escape the request path.

    Returns the model name unchanged when it passes every check.
    """
    if not isinstance(model, str):
        raise ChatValidationError("Model name is required and must be a string")

    name = model.strip()
    if not name:
        raise ChatValidationError("Model name cannot be empty")

    if len(name) > max_length:
        raise ChatValidationError(f"Model name is too long (max {max_length} characters)")

    if not allow_path_traversal and ".." in name:
        raise ChatValidationError("Model name cannot contain path traversal sequences (..)")

    if name.startswith("/") or _WINDOWS_ABSOLUTE.match(name):
        raise ChatValidationError("Model name cannot be an absolute path")

    if not allowed_pattern.match(name):
        raise ChatValidationError(error_message or "Model name contains invalid characters")

    return model


def hostname_matches(hostname: Optional[str], domain: str) -> bool:
    """Exact host or any subdomain of ``domain``."""
    if not hostname:
        return False
    host = hostname.lower()
    return host == domain or host.endswith("." + domain)
