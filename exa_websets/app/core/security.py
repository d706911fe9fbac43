import re
from typing import Any, Callable

from exa_websets.app.exceptions import WebsetsException

MASK = "***MASKED***"

_SENSITIVE_KEY = re.compile(r"api[_-]?key|token|secret|password", re.IGNORECASE)
_SENSITIVE_ASSIGNMENT = re.compile(
    r"(api[_-]?key|token|secret|password)([\"'\s:=]+)([^\"'\s,}]+)",
    re.IGNORECASE,
)


def mask_sensitive_data(data: Any) -> Any:
    """Mask API keys, tokens, secrets and passwords in a value.

    Mappings have the values of sensitive keys replaced entirely; strings
    have ``key=value`` / ``"key": "value"`` fragments masked. Lists, tuples
    and nested mappings are processed recursively. Other values are returned
    unchanged.

    Args:
        data: Any JSON-like value

    Returns:
        A masked copy of ``data``
    """
    if isinstance(data, str):
        return _SENSITIVE_ASSIGNMENT.sub(lambda m: f"{m.group(1)}{m.group(2)}{MASK}", data)

    if isinstance(data, (list, tuple)):
        return [mask_sensitive_data(item) for item in data]

    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if isinstance(key, str) and _SENSITIVE_KEY.search(key):
                masked[key] = MASK
            else:
                masked[key] = mask_sensitive_data(value)
        return masked

    return data


def mask_api_key(api_key: str) -> str:
    """Render an API key for logs, keeping only the last four characters."""
    if not api_key:
        return ""
    if len(api_key) <= 8:
        return "****"
    return f"****{api_key[-4:]}"


class TokenProvider:
    """Supplies the API token for each outbound request.

    The getter is called on every request so that a rotated key takes
    effect without rebuilding the client.
    """

    def __init__(self, token_getter: Callable[[], str]):
        self._token_getter = token_getter

    @classmethod
    def static(cls, token: str) -> "TokenProvider":
        return cls(lambda: token)

    def get_token(self) -> str:
        token = self._token_getter()
        if not token:
            raise WebsetsException("API token not configured")
        return token
