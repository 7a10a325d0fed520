"""
Unit tests for the endpoint handlers.

Handlers are called directly with a built request; path placeholders are
passed as ``path_params`` the way the router would bind them.
"""

import base64
import json
import threading
import time
import uuid as uuid_lib

import pytest

from mockhttp.handlers import (
    DelayHandler,
    HomeHandler,
    auth,
    caching,
    cookies,
    dynamic,
    formats,
    inspection,
    parse_int,
    synthetic,
)
from mockhttp.http.router import Router


class TestParseInt:
    """Strict base-10 parsing for path parameters."""

    @pytest.mark.parametrize("value, expected", [
        ("418", 418),
        ("0", 0),
        ("+7", 7),
        ("-1", -1),
        ("007", 7),
    ])
    def test_accepts_integers(self, value, expected):
        assert parse_int(value) == expected

    @pytest.mark.parametrize("value", ["3.5", "abc", "", " 5", "5 ", "5_0", "1e3", None])
    def test_rejects_everything_else(self, value):
        """No truncation, no coercion."""
        assert parse_int(value) is None


class TestStatusHandler:

    @pytest.mark.parametrize("code", [100, 200, 204, 299, 418, 503, 599])
    def test_valid_code(self, make_request, code):
        """Status taken from the path, empty body."""
        request = make_request(target=f"/status/{code}", path_params={"code": str(code)})

        response = synthetic.status(request)

        assert response.status == code
        assert response.body == b""

    @pytest.mark.parametrize("code", ["99", "600", "-200", "abc", "3.5", "20x"])
    def test_invalid_code(self, make_request, code):
        """Out of range or non-numeric is a 400."""
        request = make_request(target=f"/status/{code}", path_params={"code": code})

        response = synthetic.status(request)

        assert response.status == 400
        assert response.text() == "Invalid status code"

    def test_informational_code_closes_connection(self, make_request):
        """No final response follows a 1xx, so the connection ends."""
        response = synthetic.status(make_request(target="/status/100", path_params={"code": "100"}))

        assert response.get_header("Connection") == "close"
        assert synthetic.status(
            make_request(target="/status/200", path_params={"code": "200"})
        ).get_header("Connection") is None

    def test_code_list_picks_one(self, make_request):
        """A comma-separated list answers with one of its codes."""
        request = make_request(target="/status/200,404,503", path_params={"code": "200,404,503"})

        statuses = {synthetic.status(request).status for _ in range(50)}

        assert statuses <= {200, 404, 503}
        assert len(statuses) > 1

    @pytest.mark.parametrize("code", ["200,", ",200", "200,abc", "200,600", "200;404"])
    def test_code_list_invalid(self, make_request, code):
        """Every entry of the list must be a valid code."""
        response = synthetic.status(make_request(target=f"/status/{code}", path_params={"code": code}))

        assert response.status == 400
        assert response.text() == "Invalid status code"


class TestDelayHandler:

    def test_zero_delay(self, make_request):
        handler = DelayHandler()

        response = handler(make_request(target="/delay/0", path_params={"seconds": "0"}))

        assert response.status == 200
        assert response.text() == "Response after 0 second(s)"
        assert response.get_header("Content-Type") == "text/plain; charset=utf-8"

    def test_waits_requested_seconds(self, make_request):
        """The response is not produced before the delay has elapsed."""
        handler = DelayHandler()

        start = time.monotonic()
        response = handler(make_request(target="/delay/1", path_params={"seconds": "1"}))
        elapsed = time.monotonic() - start

        assert response.text() == "Response after 1 second(s)"
        assert elapsed >= 1.0

    def test_stop_event_ends_wait(self, make_request):
        """Shutdown cuts pending waits short."""
        stop = threading.Event()
        stop.set()
        handler = DelayHandler(stop_event=stop)

        start = time.monotonic()
        response = handler(make_request(target="/delay/60", path_params={"seconds": "60"}))

        assert time.monotonic() - start < 5
        assert response.status == 200

    @pytest.mark.parametrize("seconds", ["-1", "abc", "1.5", ""])
    def test_invalid_delay(self, make_request, seconds):
        handler = DelayHandler()

        response = handler(make_request(target=f"/delay/{seconds}", path_params={"seconds": seconds}))

        assert response.status == 400
        assert response.text() == "Invalid delay time"

    def test_max_delay_enforced(self, make_request):
        """Values above the configured bound are rejected without waiting."""
        handler = DelayHandler(max_delay=5)

        response = handler(make_request(target="/delay/6", path_params={"seconds": "6"}))

        assert response.status == 400
        assert "maximum is 5" in response.text()

    def test_max_delay_boundary(self, make_request):
        stop = threading.Event()
        stop.set()
        handler = DelayHandler(max_delay=5, stop_event=stop)

        response = handler(make_request(target="/delay/5", path_params={"seconds": "5"}))

        assert response.status == 200


class TestJSONHandler:

    def test_fixed_body(self, make_request):
        response = synthetic.json_payload(make_request(target="/json"))

        assert response.status == 200
        assert response.body == b'{"message":"Hello, mockhttp!","author":"mockhttp team"}'
        assert response.get_header("Content-Type") == "application/json"

    def test_byte_identical_on_repeat(self, make_request):
        first = synthetic.json_payload(make_request(target="/json"))
        second = synthetic.json_payload(make_request(target="/json"))

        assert first.body == second.body


class TestInspectionHandlers:

    def test_get(self, make_request):
        """args are multi-valued; url is path plus query."""
        request = make_request(target="/get?a=1&a=2&b=x", headers={"x-test": "1"})

        body = inspection.get(request).json()

        assert body["args"] == {"a": ["1", "2"], "b": ["x"]}
        assert body["url"] == "/get?a=1&a=2&b=x"
        assert body["headers"] == {"X-Test": ["1"]}

    def test_get_without_query(self, make_request):
        body = inspection.get(make_request(target="/get")).json()

        assert body["args"] == {}
        assert body["url"] == "/get"

    def test_post_json(self, make_request):
        request = make_request("POST", "/post", body=b'{"k":"v"}',
                               headers={"Content-Type": "application/json"})

        body = inspection.echo_body(request).json()

        assert body["data"] == {"k": "v"}
        assert body["url"] == "/post"
        assert body["headers"]["Content-Type"] == ["application/json"]

    def test_post_non_json_is_lenient(self, make_request):
        """A body that is not JSON is reported as null, not rejected."""
        response = inspection.echo_body(make_request("POST", "/post", body=b"not json"))

        assert response.status == 200
        assert response.json()["data"] is None

    def test_post_empty_body(self, make_request):
        response = inspection.echo_body(make_request("POST", "/post"))

        assert response.status == 200
        assert response.json()["data"] is None

    def test_headers(self, make_request):
        request = make_request(target="/headers", headers={"x-test": "1", "Accept": "*/*"})

        body = inspection.headers(request).json()

        assert body == {"X-Test": ["1"], "Accept": ["*/*"]}

    def test_ip(self, make_request):
        request = make_request(target="/ip", client_address=("192.0.2.10", 40000))

        assert inspection.ip(request).json() == {"origin": "192.0.2.10:40000"}

    def test_anything(self, make_request):
        request = make_request("DELETE", "/anything?x=1", headers={"X-Test": "1"})

        body = inspection.anything(request).json()

        assert body == {
            "method": "DELETE",
            "headers": {"X-Test": ["1"]},
            "args": {"x": ["1"]},
            "url": "/anything?x=1",
        }

    def test_user_agent(self, make_request):
        request = make_request(target="/user-agent", headers={"User-Agent": "curl/8.0"})

        assert inspection.user_agent(request).json() == {"user-agent": "curl/8.0"}

    def test_user_agent_missing(self, make_request):
        assert inspection.user_agent(make_request(target="/user-agent")).json() == {"user-agent": ""}


class TestDynamicHandlers:

    def test_uuid(self, make_request):
        body = dynamic.uuid(make_request(target="/uuid")).json()

        assert uuid_lib.UUID(body["uuid"]).version == 4

    def test_base64_decode(self, make_request):
        request = make_request(target="/base64/bW9ja2h0dHA=", path_params={"value": "bW9ja2h0dHA="})

        response = dynamic.base64_decode(request)

        assert response.status == 200
        assert response.text() == "mockhttp"
        assert response.get_header("Content-Type") == "text/html; charset=utf-8"

    def test_base64_padding_optional(self):
        assert dynamic.decode_base64("bW9ja2h0dHA") == "mockhttp"

    def test_base64_url_safe(self):
        """URL-safe and standard alphabets decode the same bytes."""
        assert dynamic.decode_base64("Pz8-") == dynamic.decode_base64("Pz8+")
        assert dynamic.decode_base64("Pz8_") == dynamic.decode_base64("Pz8/")

    @pytest.mark.parametrize("value", ["!!!", "a", "bW9=ja2"])
    def test_base64_invalid(self, make_request, value):
        response = dynamic.base64_decode(make_request(path_params={"value": value}))

        assert response.status == 400
        assert response.text() == "Incorrect Base64 data"

    def test_bytes_length(self, make_request):
        response = dynamic.random_bytes(make_request(target="/bytes/16", path_params={"n": "16"}))

        assert response.status == 200
        assert len(response.body) == 16
        assert response.get_header("Content-Type") == "application/octet-stream"

    def test_bytes_capped(self, make_request):
        response = dynamic.random_bytes(make_request(path_params={"n": str(dynamic.MAX_BYTES + 1)}))

        assert len(response.body) == dynamic.MAX_BYTES

    def test_bytes_seeded_is_deterministic(self, make_request):
        """Same n and seed, same payload."""
        first = dynamic.random_bytes(make_request(target="/bytes/32?seed=42", path_params={"n": "32"}))
        second = dynamic.random_bytes(make_request(target="/bytes/32?seed=42", path_params={"n": "32"}))
        other = dynamic.random_bytes(make_request(target="/bytes/32?seed=43", path_params={"n": "32"}))

        assert first.body == second.body
        assert first.body != other.body

    def test_seeded_bytes_prefix_stable(self):
        """A longer payload extends a shorter one with the same seed."""
        assert dynamic.seeded_bytes(64, 7)[:10] == dynamic.seeded_bytes(10, 7)

    @pytest.mark.parametrize("target, n, message", [
        ("/bytes/-1", "-1", "n must be a non-negative integer"),
        ("/bytes/abc", "abc", "n must be a non-negative integer"),
        ("/bytes/4?seed=x", "4", "seed must be an integer"),
    ])
    def test_bytes_invalid(self, make_request, target, n, message):
        response = dynamic.random_bytes(make_request(target=target, path_params={"n": n}))

        assert response.status == 400
        assert response.text() == message

    def test_response_headers(self, make_request):
        """Query pairs become headers and are echoed."""
        request = make_request(target="/response-headers?X-Foo=bar&X-Foo=baz&X-One=1")

        response = dynamic.response_headers(request)

        assert response.status == 200
        assert response.get_header("X-Foo") == "bar, baz"
        assert response.get_header("X-One") == "1"
        assert response.json() == {"X-Foo": ["bar", "baz"], "X-One": "1"}

    def test_response_headers_escaped(self, make_request):
        request = make_request(target="/response-headers?X-Html=%3Cb%3E")

        response = dynamic.response_headers(request)

        assert response.get_header("X-Html") == "&lt;b&gt;"

    @pytest.mark.parametrize("target", [
        "/response-headers?Content-Length=0",
        "/response-headers?connection=close",
        "/response-headers?X-Bad=a%0D%0AInjected:1",
        "/response-headers?Bad%20Name=1",
    ])
    def test_response_headers_rejected(self, make_request, target):
        """Framing headers, line breaks and non-token names are refused."""
        assert dynamic.response_headers(make_request(target=target)).status == 400

    def test_redirect_to(self, make_request):
        response = dynamic.redirect_to(make_request(target="/redirect-to?url=/get"))

        assert response.status == 302
        assert response.get_header("Location") == "/get"

    def test_redirect_to_status_code(self, make_request):
        response = dynamic.redirect_to(
            make_request(target="/redirect-to?url=http://example.com/&status_code=307")
        )

        assert response.status == 307
        assert response.get_header("Location") == "http://example.com/"

    @pytest.mark.parametrize("target, message", [
        ("/redirect-to", "Missing url parameter"),
        ("/redirect-to?url=", "Missing url parameter"),
        ("/redirect-to?url=/get&status_code=200", "Invalid status code"),
        ("/redirect-to?url=/get&status_code=abc", "Invalid status code"),
        ("/redirect-to?url=/a%0D%0AX:1", "Invalid url parameter"),
    ])
    def test_redirect_to_invalid(self, make_request, target, message):
        response = dynamic.redirect_to(make_request(target=target))

        assert response.status == 400
        assert response.text() == message

    @pytest.mark.parametrize("n, location", [
        ("3", "/relative-redirect/2"),
        ("1", "/get"),
    ])
    def test_relative_redirect(self, make_request, n, location):
        response = dynamic.relative_redirect(
            make_request(target=f"/relative-redirect/{n}", path_params={"n": n})
        )

        assert response.status == 302
        assert response.get_header("Location") == location
        assert f'href="{location}"' in response.text()

    @pytest.mark.parametrize("n, location", [
        ("2", "http://example.com:8080/absolute-redirect/1"),
        ("1", "http://example.com:8080/get"),
    ])
    def test_absolute_redirect(self, make_request, n, location):
        request = make_request(
            target=f"/absolute-redirect/{n}",
            headers={"Host": "example.com:8080"},
            path_params={"n": n},
        )

        response = dynamic.absolute_redirect(request)

        assert response.status == 302
        assert response.get_header("Location") == location

    @pytest.mark.parametrize("n", ["0", "-1", "abc", "1.5"])
    def test_redirect_count_invalid(self, make_request, n):
        for handler in (dynamic.relative_redirect, dynamic.absolute_redirect):
            request = make_request(headers={"Host": "localhost"}, path_params={"n": n})

            response = handler(request)

            assert response.status == 400
            assert response.text() == "Invalid redirect count"

    def test_absolute_redirect_needs_host(self, make_request):
        response = dynamic.absolute_redirect(make_request(path_params={"n": "2"}))

        assert response.status == 400
        assert response.text() == "Missing Host header"


class TestHomeHandler:

    def test_lists_routes_with_examples(self, router, make_request):
        """Every registered endpoint appears, placeholders filled in."""
        response = router.handle(make_request(target="/"))

        page = response.text()
        assert response.status == 200
        assert response.get_header("Content-Type") == "text/html; charset=utf-8"
        assert 'href="/status/200"' in page
        assert 'href="/delay/3"' in page
        assert 'href="/get"' in page
        assert "/status/{code}" in page

    def test_hidden_routes_not_listed(self, router, make_request):
        page = router.handle(make_request(target="/")).text()

        assert "/basic-auth/{user}/{passwd}" in page
        assert "hidden-basic-auth" not in page

    def test_rendering_failure_is_500(self, make_request):
        """A placeholder with no example value cannot be rendered."""
        router = Router()
        home = HomeHandler(router)
        router.add_route("/", home)
        router.add_route("/things/{unknown}", home)

        response = home(make_request(target="/"))

        assert response.status == 500
        assert response.text() == "Error rendering page"


def basic_credentials(user, password):
    token = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


class TestCookieHandlers:
    """Cookies are read from and written to the request/response only."""

    def test_get_cookies(self, make_request):
        request = make_request(target="/cookies", headers={"Cookie": 'a=1; b="two"; flag; a=3'})

        response = cookies.get_cookies(request)

        assert response.status == 200
        assert response.json() == {"cookies": {"a": "1", "b": "two"}}

    def test_get_cookies_none_sent(self, make_request):
        assert cookies.get_cookies(make_request(target="/cookies")).json() == {"cookies": {}}

    def test_set_cookie(self, make_request):
        request = make_request(
            "POST", "/cookies",
            headers={"Cookie": "old=1"},
            body=json.dumps({"name": "session", "value": "abc"}).encode(),
        )

        response = cookies.set_cookie(request)

        assert response.status == 200
        assert response.json() == {"cookies": {"old": "1"}}
        assert response.get_header("Set-Cookie") == "session=abc; Path=/"

    @pytest.mark.parametrize("expires", [
        "2030-01-01T00:00:00Z",
        "2030-01-01T01:00:00+01:00",
        "Tue, 01 Jan 2030 00:00:00 GMT",
    ])
    def test_set_cookie_with_expires(self, make_request, expires):
        body = json.dumps({"name": "session", "value": "abc", "expires": expires}).encode()

        response = cookies.set_cookie(make_request("POST", "/cookies", body=body))

        assert response.get_header("Set-Cookie") == (
            "session=abc; expires=Tue, 01 Jan 2030 00:00:00 GMT; Path=/"
        )

    @pytest.mark.parametrize("body, message", [
        (b"", "Invalid cookie data"),
        (b"not json", "Invalid cookie data"),
        (b'["session", "abc"]', "Invalid cookie data"),
        (b'{"name": "session"}', "Invalid cookie data"),
        (b'{"name": "session", "value": 5}', "Invalid cookie data"),
        (b'{"name": "session", "value": "abc", "expires": "next week"}', "Invalid date format"),
        (b'{"name": "session", "value": "abc", "expires": 1700000000}', "Invalid date format"),
        (b'{"name": "bad name", "value": "abc"}', "Invalid cookie name"),
    ])
    def test_set_cookie_invalid(self, make_request, body, message):
        response = cookies.set_cookie(make_request("POST", "/cookies", body=body))

        assert response.status == 400
        assert response.text() == message

    def test_delete_cookie(self, make_request):
        response = cookies.delete_cookie(make_request("DELETE", "/cookies?name=session"))

        header = response.get_header("Set-Cookie")
        assert response.status == 204
        assert header.startswith("session=")
        assert "expires=Thu, 01 Jan 1970 00:00:00 GMT" in header
        assert header.endswith("; Max-Age=0")

    @pytest.mark.parametrize("target, message", [
        ("/cookies", "Missing name parameter"),
        ("/cookies?name=", "Missing name parameter"),
        ("/cookies?name=a%20b", "Invalid cookie name"),
    ])
    def test_delete_cookie_invalid(self, make_request, target, message):
        response = cookies.delete_cookie(make_request("DELETE", target))

        assert response.status == 400
        assert response.text() == message


class TestAuthHandlers:

    def test_basic_auth_accepted(self, make_request):
        request = make_request(
            headers=basic_credentials("alice", "s3cret"),
            path_params={"user": "alice", "passwd": "s3cret"},
        )

        response = auth.basic_auth(request)

        assert response.status == 200
        assert response.json() == {"authenticated": True, "user": "alice"}

    @pytest.mark.parametrize("headers", [
        {},
        basic_credentials("alice", "wrong"),
        basic_credentials("bob", "s3cret"),
        {"Authorization": "Basic !!!"},
        {"Authorization": "Basic " + base64.b64encode(b"no-colon").decode()},
        {"Authorization": "Bearer abc"},
    ])
    def test_basic_auth_rejected(self, make_request, headers):
        """Missing, wrong and malformed credentials all get the challenge."""
        request = make_request(headers=headers, path_params={"user": "alice", "passwd": "s3cret"})

        response = auth.basic_auth(request)

        assert response.status == 401
        assert response.text() == "Unauthorized"
        assert response.get_header("WWW-Authenticate") == 'Basic realm="mockhttp"'

    def test_basic_scheme_case_insensitive(self, make_request):
        headers = basic_credentials("alice", "s3cret")
        headers["Authorization"] = headers["Authorization"].replace("Basic", "basic")
        request = make_request(headers=headers, path_params={"user": "alice", "passwd": "s3cret"})

        assert auth.basic_auth(request).status == 200

    def test_bearer_token(self, make_request):
        request = make_request(target="/bearer", headers={"Authorization": "Bearer abc.def"})

        response = auth.bearer(request)

        assert response.status == 200
        assert response.json() == {"authenticated": True, "token": "abc.def"}

    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer"}, {"Authorization": "Basic eDp5"}])
    def test_bearer_required(self, make_request, headers):
        response = auth.bearer(make_request(target="/bearer", headers=headers))

        assert response.status == 401
        assert response.get_header("WWW-Authenticate") == "Bearer"

    def test_bearer_optional(self, make_request):
        response = auth.bearer(make_request(target="/bearer?required=false"))

        assert response.status == 200
        assert response.json() == {"authenticated": False, "token": ""}


class TestCachingHandlers:

    def test_cache_miss(self, make_request):
        response = caching.cache(make_request(target="/cache"))

        assert response.status == 200
        assert response.text() == caching.CACHE_BODY

    @pytest.mark.parametrize("headers", [
        {"If-Modified-Since": "Sun, 18 Oct 2026 12:00:00 GMT"},
        {"If-None-Match": '"anything"'},
    ])
    def test_cache_conditional(self, make_request, headers):
        response = caching.cache(make_request(target="/cache", headers=headers))

        assert response.status == 304
        assert response.body == b""

    def test_cache_control(self, make_request):
        response = caching.cache_control(make_request(path_params={"max_age": "60"}))

        assert response.status == 200
        assert response.get_header("Cache-Control") == "max-age=60"
        assert response.text() == "Cache-Control set for 60 seconds."

    @pytest.mark.parametrize("max_age", ["-1", "abc", "1.5"])
    def test_cache_control_invalid(self, make_request, max_age):
        response = caching.cache_control(make_request(path_params={"max_age": max_age}))

        assert response.status == 400
        assert response.text() == "Invalid cache time"

    def test_etag(self, make_request):
        response = caching.etag(make_request(path_params={"etag": "v1"}))

        assert response.status == 200
        assert response.get_header("ETag") == '"v1"'
        assert response.text() == caching.ETAG_BODY

    @pytest.mark.parametrize("if_none_match", ['"v1"', 'W/"v1"', '"v0", "v1"', "*"])
    def test_etag_not_modified(self, make_request, if_none_match):
        request = make_request(headers={"If-None-Match": if_none_match}, path_params={"etag": "v1"})

        response = caching.etag(request)

        assert response.status == 304
        assert response.get_header("ETag") == '"v1"'

    def test_etag_if_none_match_miss(self, make_request):
        request = make_request(headers={"If-None-Match": '"v0"'}, path_params={"etag": "v1"})

        assert caching.etag(request).status == 200

    def test_etag_precondition_failed(self, make_request):
        request = make_request(headers={"If-Match": '"v0"'}, path_params={"etag": "v1"})

        response = caching.etag(request)

        assert response.status == 412
        assert response.body == b""

    @pytest.mark.parametrize("if_match", ['"v1"', "*"])
    def test_etag_if_match_hit(self, make_request, if_match):
        request = make_request(headers={"If-Match": if_match}, path_params={"etag": "v1"})

        assert caching.etag(request).status == 200

    def test_etag_invalid(self, make_request):
        response = caching.etag(make_request(path_params={"etag": 'a"b'}))

        assert response.status == 400
        assert response.text() == "Invalid etag"

    def test_entity_tags(self):
        assert caching.entity_tags(' "a", W/"b" ,, c') == ["a", "b", "c"]


class TestFormatHandlers:

    @pytest.mark.parametrize("handler, content_type, samples", [
        (formats.plain, "text/plain; charset=utf-8", formats.TEXT_SAMPLES),
        (formats.html_document, "text/html; charset=utf-8", formats.HTML_SAMPLES),
        (formats.xml_document, "application/xml", formats.XML_SAMPLES),
    ])
    def test_sample_served(self, make_request, handler, content_type, samples):
        response = handler(make_request())

        assert response.status == 200
        assert response.get_header("Content-Type") == content_type
        assert response.text() in samples
