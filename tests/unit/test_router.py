"""
Unit tests for the URL router.
"""

import pytest

from mockhttp.http.request import HTTPRequest
from mockhttp.http.response import HTTPResponse, ResponseBuilder
from mockhttp.http.router import RouteConflictError, Router


def make_request(method: str, path: str) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path)


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    """Echoes the path and bound parameters."""
    return ResponseBuilder().json({"path": request.path, "params": request.path_params}).build()


def other_handler(request: HTTPRequest) -> HTTPResponse:
    return ResponseBuilder().text("other").build()


class TestRouteMatching:
    """Tests for template matching."""

    def test_match_static_path(self):
        """Literal templates match only themselves."""
        router = Router()
        router.add_route("/get", dummy_handler)
        router.add_route("/headers", dummy_handler)

        assert router.match("GET", "/get").route.path == "/get"
        assert router.match("GET", "/headers").route.path == "/headers"
        assert router.match("GET", "/getx") is None

    def test_match_placeholder(self):
        """A placeholder binds exactly one segment."""
        router = Router()
        router.add_route("/status/{code}", dummy_handler)

        match = router.match("GET", "/status/418")
        assert match is not None
        assert match.params == {"code": "418"}

        assert router.match("GET", "/status") is None
        assert router.match("GET", "/status/418/extra") is None

    def test_match_multiple_placeholders(self):
        """Every placeholder is bound by name."""
        router = Router()
        router.add_route("/a/{x}/b/{y}", dummy_handler)

        match = router.match("GET", "/a/1/b/2")
        assert match.params == {"x": "1", "y": "2"}

    def test_match_root(self):
        """The root template matches only "/"."""
        router = Router()
        router.add_route("/", dummy_handler)

        assert router.match("GET", "/") is not None
        assert router.match("GET", "/get") is None

    def test_no_trailing_slash_folding(self):
        """"/get/" is a different path from "/get"."""
        router = Router()
        router.add_route("/get", dummy_handler)

        assert router.match("GET", "/get/") is None

    def test_trailing_newline_not_ignored(self):
        """"/get\\n" (from /get%0A) is a different path from "/get"."""
        router = Router()
        router.add_route("/get", dummy_handler)
        router.add_route("/status/{code}", dummy_handler)

        assert router.match("GET", "/get\n") is None
        assert router.match("GET", "/status/200\n").params == {"code": "200\n"}
        assert router.handle(make_request("GET", "/get\n")).status == 404

    def test_method_is_part_of_the_match(self):
        """Same path, different verbs, different routes."""
        router = Router()
        router.add_route("/items", dummy_handler, method="GET")
        router.add_route("/items", other_handler, method="POST")

        assert router.match("GET", "/items").route.handler is dummy_handler
        assert router.match("post", "/items").route.handler is other_handler

    def test_most_specific_template_wins(self):
        """A literal segment beats a placeholder regardless of registration order."""
        router = Router()
        router.add_route("/status/{code}", dummy_handler)
        router.add_route("/status/teapot", other_handler)

        assert router.match("GET", "/status/teapot").route.handler is other_handler
        assert router.match("GET", "/status/200").route.handler is dummy_handler


class TestRouteRegistration:
    """Tests for adding routes."""

    def test_add_route(self):
        """Routes are listed in registration order."""
        router = Router()
        router.add_route("/get", dummy_handler, name="get", description="Echo")
        router.add_route("/post", dummy_handler, method="post")

        routes = router.routes()
        assert len(router) == 2
        assert routes[0].path == "/get"
        assert routes[0].description == "Echo"
        assert routes[1].method == "POST"

    def test_conflicting_templates_rejected(self):
        """Same verb and same shape is ambiguous."""
        router = Router()
        router.add_route("/status/{code}", dummy_handler)

        with pytest.raises(RouteConflictError):
            router.add_route("/status/{other}", other_handler)

    @pytest.mark.parametrize("first, second", [
        ("/a/{x}", "/{y}/b"),
        ("/{y}/b", "/a/{x}"),
    ])
    def test_overlapping_templates_rejected_in_either_order(self, first, second):
        """/a/b fits both with one literal each, so neither may win."""
        router = Router()
        router.add_route(first, dummy_handler)

        with pytest.raises(RouteConflictError):
            router.add_route(second, other_handler)

    def test_overlap_with_more_literals_allowed(self):
        """A strictly more specific template is not ambiguous."""
        router = Router()
        router.add_route("/a/{x}/c", dummy_handler)
        router.add_route("/{y}/b/{z}", other_handler)

        assert router.match("GET", "/a/b/c").route.handler is dummy_handler
        assert router.match("GET", "/q/b/c").route.handler is other_handler

    def test_disjoint_literals_allowed(self):
        """Different literals in the same position never overlap."""
        router = Router()
        router.add_route("/base64/{value}", dummy_handler)
        router.add_route("/bytes/{n}", other_handler)

        assert len(router) == 2

    def test_same_shape_different_verb_allowed(self):
        """The verb disambiguates."""
        router = Router()
        router.add_route("/things/{id}", dummy_handler, method="GET")
        router.add_route("/things/{id}", dummy_handler, method="DELETE")

        assert len(router) == 2

    def test_conflict_error_is_value_error(self):
        """Callers catching ValueError also see conflicts."""
        assert issubclass(RouteConflictError, ValueError)

    @pytest.mark.parametrize("template", ["get", "/a/{b", "/a/{1x}", "/a/{x}/{x}"])
    def test_malformed_template_rejected(self, template):
        """Bad templates fail at registration, not at request time."""
        router = Router()
        with pytest.raises(ValueError):
            router.add_route(template, dummy_handler)

    def test_frozen_router_rejects_new_routes(self):
        """The table is immutable once frozen."""
        router = Router()
        router.add_route("/get", dummy_handler)
        router.freeze()

        assert router.frozen
        with pytest.raises(RuntimeError):
            router.add_route("/post", dummy_handler, method="POST")

    def test_decorator_registration(self):
        """Decorators register and return the handler unchanged."""
        router = Router()

        @router.get("/ip")
        def ip(request):
            return ResponseBuilder().text("ip").build()

        @router.post("/post")
        def post(request):
            return ResponseBuilder().text("post").build()

        assert router.match("GET", "/ip").route.handler is ip
        assert router.match("POST", "/post").route.handler is post


class TestRouterDispatch:
    """Tests for Router.handle."""

    def test_handle_binds_path_params(self):
        """The handler sees the bound placeholders."""
        router = Router()
        router.add_route("/status/{code}", dummy_handler)

        response = router.handle(make_request("GET", "/status/204"))

        assert response.status == 200
        assert response.json()["params"] == {"code": "204"}

    def test_handle_not_found(self):
        """No template matches: 404 with a minimal body."""
        router = Router()
        router.add_route("/get", dummy_handler)

        response = router.handle(make_request("GET", "/unknown-path"))

        assert response.status == 404
        assert response.text() == "404 page not found"

    def test_handle_method_not_allowed(self):
        """Known path, wrong verb: 405 and an Allow header."""
        router = Router()
        router.add_route("/items", dummy_handler, method="GET")
        router.add_route("/items", dummy_handler, method="PUT")

        response = router.handle(make_request("POST", "/items"))

        assert response.status == 405
        assert response.get_header("Allow") == "GET, PUT"
        assert response.get_header("Content-Type").startswith("text/plain")
