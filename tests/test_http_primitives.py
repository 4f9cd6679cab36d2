"""
Unit tests for HTTP primitives.

Tests the URLComponents, header value, Request and Response classes
to ensure they work correctly and maintain immutability.
"""

import dataclasses

import pytest

from tiny_http_core.exceptions import RequestError
from tiny_http_core.http_primitives import (
    HeaderValue,
    Multi,
    Request,
    Response,
    ResponseHeaders,
    Single,
    URLComponents,
    header_pairs,
    merge_headers,
    normalize_headers,
)
from tiny_http_core.streams import CallableSource, IterableSource


class TestURLComponents:
    """Test URLComponents class functionality."""

    def test_from_url_with_http(self) -> None:
        url = URLComponents.from_url("http://example.com/path")
        assert url == ("http", "example.com", 80, "/path")

    def test_from_url_with_https_and_port(self) -> None:
        url = URLComponents.from_url("https://example.com:8443/api/v1")
        assert url.scheme == "https"
        assert url.port == 8443
        assert url.is_secure

    def test_query_kept_fragment_dropped(self) -> None:
        url = URLComponents.from_url("http://example.com/search?q=a%20b#top")
        assert url.target == "/search?q=a%20b"

    def test_from_url_without_path(self) -> None:
        url = URLComponents.from_url("https://example.com")
        assert url.target == "/"
        assert url.port == 443

    def test_scheme_is_case_insensitive(self) -> None:
        assert URLComponents.from_url("HTTP://example.com/").scheme == "http"

    @pytest.mark.parametrize("url", ["ftp://example.com/", "example.com/test", "mailto:me@example.com"])
    def test_unsupported_scheme(self, url) -> None:
        with pytest.raises(RequestError, match="Unsupported URL scheme"):
            URLComponents.from_url(url)

    def test_missing_host(self) -> None:
        with pytest.raises(RequestError, match="No host"):
            URLComponents.from_url("http:///path")

    def test_invalid_port(self) -> None:
        with pytest.raises(RequestError):
            URLComponents.from_url("http://example.com:99999/")

    def test_host_header_omits_default_port(self) -> None:
        assert URLComponents.from_url("http://example.com/").host_header == "example.com"
        assert URLComponents.from_url("https://example.com:443/").host_header == "example.com"
        assert URLComponents.from_url("http://example.com:8080/").host_header == "example.com:8080"

    def test_host_header_brackets_ipv6(self) -> None:
        url = URLComponents.from_url("http://[::1]:8080/")
        assert url.host == "::1"
        assert url.host_header == "[::1]:8080"

    def test_request_target_forms(self) -> None:
        url = URLComponents.from_url("http://example.com:8080/a?b=c")
        assert url.origin_form == "/a?b=c"
        assert url.absolute_form == "http://example.com:8080/a?b=c"
        assert str(url) == url.absolute_form


class TestHeaderValues:
    """Test the Single/Multi tagged header values."""

    def test_single(self) -> None:
        value = Single("text/html")
        assert value.value == "text/html"
        assert value.values == ("text/html",)
        assert str(value) == "text/html"
        assert list(value) == ["text/html"]

    def test_multi(self) -> None:
        value = Multi(("a=1", "b=2"))
        assert value.values == ("a=1", "b=2")
        assert value.value == "a=1, b=2"
        assert len(value) == 2

    def test_multi_requires_two_values(self) -> None:
        with pytest.raises(ValueError):
            Multi(("only",))

    def test_added_promotes_to_multi(self) -> None:
        assert Single("a").added("b") == Multi(("a", "b"))
        assert Multi(("a", "b")).added("c") == Multi(("a", "b", "c"))

    def test_base_class_is_abstract(self) -> None:
        with pytest.raises(TypeError):
            HeaderValue()

    def test_values_are_immutable(self) -> None:
        value = Single("a")
        with pytest.raises(dataclasses.FrozenInstanceError):
            value._value = "b"


class TestResponseHeaders:
    """Test the case-insensitive response header map."""

    def test_single_occurrence_is_scalar(self) -> None:
        headers = ResponseHeaders.from_pairs([("Content-Type", "text/plain")])
        assert isinstance(headers["content-type"], Single)
        assert headers["Content-Type"] == Single("text/plain")

    def test_repeated_header_keeps_arrival_order(self) -> None:
        headers = ResponseHeaders.from_pairs([
            ("Set-Cookie", "a=1"),
            ("X-Other", "x"),
            ("set-cookie", "b=2"),
            ("SET-COOKIE", "c=3"),
        ])
        assert headers["set-cookie"] == Multi(("a=1", "b=2", "c=3"))
        assert headers.get_all("Set-Cookie") == ("a=1", "b=2", "c=3")
        assert list(headers) == ["set-cookie", "x-other"]

    def test_get_value_and_contains(self) -> None:
        headers = ResponseHeaders.from_pairs([("Location", "/new")])
        assert headers.get_value("LOCATION") == "/new"
        assert headers.get_value("missing") is None
        assert headers.get_value("missing", "default") == "default"
        assert "location" in headers
        assert "Location" in headers
        assert headers.get_all("missing") == ()

    def test_extend_returns_new_instance(self) -> None:
        headers = ResponseHeaders.from_pairs([("X-Trace", "1")])
        extended = headers.extend([("X-Trace", "2"), ("Expires", "never")])
        assert headers["x-trace"] == Single("1")
        assert extended["x-trace"] == Multi(("1", "2"))
        assert extended["expires"] == Single("never")

    def test_equality_with_plain_mapping(self) -> None:
        headers = ResponseHeaders.from_pairs([("A", "1")])
        assert headers == {"a": Single("1")}
        assert headers == ResponseHeaders.from_pairs([("a", "1")])


class TestRequestHeaders:
    """Test request header normalization and merging."""

    def test_normalize_scalar_and_sequence(self) -> None:
        fields = normalize_headers({"Accept": "text/html", "X-Multi": ["a", "b"]})
        assert fields == (("Accept", ("text/html",)), ("X-Multi", ("a", "b")))

    def test_normalize_later_spelling_wins(self) -> None:
        fields = normalize_headers({"x-token": "old", "X-Token": "new"})
        assert fields == (("X-Token", ("new",)),)

    def test_normalize_rejects_non_mapping(self) -> None:
        with pytest.raises(RequestError):
            normalize_headers([("Accept", "text/html")])

    def test_normalize_rejects_bad_values(self) -> None:
        with pytest.raises(RequestError):
            normalize_headers({"X-Object": object()})

    def test_merge_request_values_override_defaults(self) -> None:
        defaults = normalize_headers({"Accept": "*/*", "X-Default": "d"})
        overrides = normalize_headers({"accept": ["text/html", "text/plain"]})
        merged = merge_headers(defaults, overrides)
        assert merged == (("accept", ("text/html", "text/plain")), ("X-Default", ("d",)))

    def test_header_pairs_repeat_multi_values(self) -> None:
        fields = normalize_headers({"X-Multi": ["a", "b"], "X-One": "1"})
        assert header_pairs(fields) == [("X-Multi", "a"), ("X-Multi", "b"), ("X-One", "1")]


class TestRequest:
    """Test Request class functionality."""

    def test_create_converts_types(self) -> None:
        request = Request.create("POST", "http://example.com/", content="héllo")
        assert request.url == URLComponents("http", "example.com", 80, "/")
        assert request.content == "héllo".encode("utf-8")

    def test_create_wraps_producers(self) -> None:
        assert isinstance(Request.create("PUT", "http://e.com/", content=lambda: None).content, CallableSource)
        assert isinstance(Request.create("PUT", "http://e.com/", content=[b"a"]).content, IterableSource)

    def test_method_case_preserved(self) -> None:
        assert Request.create("patch", "http://example.com/").method == "patch"

    @pytest.mark.parametrize("method", ["", "GET /", "G\r\nET", None])
    def test_invalid_method(self, method) -> None:
        with pytest.raises(RequestError, match="Invalid request method"):
            Request.create(method, "http://example.com/")

    def test_immutability(self) -> None:
        request = Request.create("GET", "http://example.com/")
        with pytest.raises(dataclasses.FrozenInstanceError):
            request.method = "POST"

    def test_with_methods(self) -> None:
        request = Request.create("POST", "http://example.com/a", headers={"X": "1"}, content=b"body")
        redirected = request.with_method("GET").with_url("http://example.com/b").with_content(None)
        assert redirected.method == "GET"
        assert redirected.url.target == "/b"
        assert redirected.content is None
        assert redirected.headers == request.headers
        assert request.method == "POST"

    def test_get_header_case_insensitive(self) -> None:
        request = Request.create("GET", "http://example.com/", headers={"User-Agent": "me"})
        assert request.get_header("user-agent") == ("me",)
        assert request.get_header("accept") is None


class TestResponse:
    """Test Response class functionality."""

    @pytest.mark.parametrize("status,success", [(200, True), (204, True), (299, True),
                                                (199, False), (304, False), (404, False)])
    def test_success_is_2xx(self, status, success) -> None:
        assert Response.create(status).success is success

    def test_success_can_be_set(self) -> None:
        response = Response.create(304, "Not Modified")
        assert response.with_success(True).success is True
        assert response.success is False

    def test_error_response(self) -> None:
        response = Response.error(ValueError("boom"), "http://example.com/")
        assert response.status_code == 599
        assert response.reason == "Internal Exception"
        assert response.success is False
        assert response.content == b"boom"
        assert response.headers["content-type"] == Single("text/plain")
        assert response.headers.get_value("content-length") == "4"
        assert response.url == "http://example.com/"

    def test_header_helpers(self) -> None:
        response = Response.create(200, headers=ResponseHeaders.from_pairs([("ETag", "x")]))
        assert response.get_header("etag") == "x"
        assert response.has_header("ETAG")
        assert not response.has_header("Location")

    def test_text(self) -> None:
        assert Response.create(200, content="naïve".encode("utf-8")).text == "naïve"
