"""Tests for secret masking and token provision."""

import pytest

from exa_websets.app.core.security import MASK, TokenProvider, mask_api_key, mask_sensitive_data
from exa_websets.app.exceptions import WebsetsException


class TestMaskSensitiveData:
    """Test masking of secrets in strings and structures."""

    def test_masks_assignments_in_strings(self):
        masked = mask_sensitive_data('failed: api_key=abc123, token: "xyz"')
        assert "abc123" not in masked
        assert "xyz" not in masked
        assert masked.count(MASK) == 2

    def test_masks_sensitive_keys(self):
        masked = mask_sensitive_data({"apiKey": "abc", "password": "pw", "query": "ai startups"})
        assert masked == {"apiKey": MASK, "password": MASK, "query": "ai startups"}

    def test_recurses_into_nested_values(self):
        data = {"outer": [{"secret": "s"}, "token=t1"], "count": 3}

        masked = mask_sensitive_data(data)

        assert masked["outer"][0] == {"secret": MASK}
        assert masked["outer"][1] == f"token={MASK}"
        assert masked["count"] == 3

    def test_leaves_plain_values(self):
        assert mask_sensitive_data("nothing here") == "nothing here"
        assert mask_sensitive_data(42) == 42
        assert mask_sensitive_data(None) is None

    def test_does_not_mutate_input(self):
        data = {"token": "t"}
        mask_sensitive_data(data)
        assert data == {"token": "t"}


class TestMaskApiKey:

    def test_keeps_last_four(self):
        assert mask_api_key("sk-1234567890") == "****7890"

    def test_short_and_empty(self):
        assert mask_api_key("abc") == "****"
        assert mask_api_key("") == ""


class TestTokenProvider:
    """Test token lookup."""

    def test_static(self):
        assert TokenProvider.static("k").get_token() == "k"

    def test_getter_called_each_time(self):
        keys = iter(["first", "second"])
        provider = TokenProvider(lambda: next(keys))

        assert provider.get_token() == "first"
        assert provider.get_token() == "second"

    def test_missing_token(self):
        with pytest.raises(WebsetsException, match="API token not configured"):
            TokenProvider.static("").get_token()
