# =============================================================================
# tests/test_views.py - View & Input Helper Tests
# =============================================================================
# Redirect target filtering and integer parsing of request input.
#
# Run with: pytest tests/test_views.py -v
# =============================================================================

import pytest

from app.views import safe_redirect_target
from lib.utils import MAX_DB_INT, to_int


class TestSafeRedirectTarget:
    """Only same-site paths survive."""

    @pytest.mark.parametrize("target", ["/dashboard", "/cart?step=2", "/products/alba-quills#reviews"])
    def test_local_paths_kept(self, target):
        assert safe_redirect_target(target, "/fallback") == target

    @pytest.mark.parametrize("target", [
        None,
        "",
        "dashboard",
        "https://evil.example/phish",
        "//evil.example/phish",
        "/\\evil.example/phish",
        "/\\/evil.example",
        "/path\\with\\backslashes",
        "/\t/evil.example",
        "/\n/evil.example",
        "javascript:alert(1)",
    ])
    def test_everything_else_falls_back(self, target):
        assert safe_redirect_target(target, "/fallback") == "/fallback"


class TestToInt:
    """Integer parsing of form and query values."""

    @pytest.mark.parametrize("value, expected", [("42", 42), (" 7 ", 7), (3, 3), ("-2", -2)])
    def test_valid(self, value, expected):
        assert to_int(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "1.5", [1]])
    def test_invalid_uses_default(self, value):
        assert to_int(value, 0) == 0

    def test_out_of_range_uses_default(self):
        assert to_int(str(MAX_DB_INT)) == MAX_DB_INT
        assert to_int(str(MAX_DB_INT + 1), 0) == 0
        assert to_int("99999999999999999999", 0) == 0
        assert to_int("-99999999999999999999") is None
