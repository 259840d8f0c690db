"""
Unit tests for endpoint resolution.
"""

import pytest

from examnotify.endpoint import (
    DEFAULT_API_BASE_URL,
    resolve_api_base_url,
    socket_url_from_api_base,
)


class TestResolveApiBaseUrl:
    """Tests for resolve_api_base_url."""

    def test_explicit_url_used_as_is(self):
        assert resolve_api_base_url("https://exams.example.com/api") == "https://exams.example.com/api"

    def test_explicit_url_without_scheme_gets_http(self):
        assert resolve_api_base_url("exams.example.com:4000/api") == "http://exams.example.com:4000/api"

    def test_explicit_url_trailing_slash_stripped(self):
        assert resolve_api_base_url("http://localhost:4000/api/") == "http://localhost:4000/api"

    def test_explicit_url_wins_over_page(self):
        result = resolve_api_base_url("http://api.school.com/api", "http://school.com:5173/")
        assert result == "http://api.school.com/api"

    @pytest.mark.parametrize("port", ["8080", "5173", "3000"])
    def test_frontend_dev_port_maps_to_backend(self, port):
        result = resolve_api_base_url(None, f"http://192.168.1.20:{port}/teacher/results")
        assert result == "http://192.168.1.20:4000/api"

    def test_other_port_reused(self):
        assert resolve_api_base_url(None, "https://school.example.com:8443/") == "https://school.example.com:8443/api"

    def test_page_without_port_uses_backend_port(self):
        assert resolve_api_base_url(None, "https://school.example.com/dashboard") == "https://school.example.com:4000/api"

    def test_fallback_default(self):
        assert resolve_api_base_url(None, None) == DEFAULT_API_BASE_URL
        assert resolve_api_base_url("", "") == DEFAULT_API_BASE_URL

    def test_out_of_range_port_falls_back_to_default(self):
        assert resolve_api_base_url(None, "http://school.example.com:99999/") == DEFAULT_API_BASE_URL

    @pytest.mark.parametrize(
        "page_url,expected",
        [
            ("http://[::1]:5173/", "http://[::1]:4000/api"),
            ("https://[fe80::1]:8443/results", "https://[fe80::1]:8443/api"),
            ("http://[2001:db8::7]/", "http://[2001:db8::7]:4000/api"),
        ],
    )
    def test_ipv6_host_keeps_brackets(self, page_url, expected):
        assert resolve_api_base_url(None, page_url) == expected


class TestSocketUrl:
    """Tests for socket_url_from_api_base."""

    def test_strips_api_path(self):
        assert socket_url_from_api_base("http://localhost:4000/api") == "http://localhost:4000"

    def test_keeps_scheme_and_port(self):
        assert socket_url_from_api_base("https://school.example.com:8443/api/v1") == "https://school.example.com:8443"

    def test_ipv6_origin(self):
        assert socket_url_from_api_base("http://[::1]:4000/api") == "http://[::1]:4000"
