"""
=============================================================================
APPLICATION FACTORY
=============================================================================

Builds the route table once at startup and freezes it:

    router = create_router(config, stop_event)
    router.handle(request)        # → HTTPResponse

After ``freeze()`` nothing can be added or removed, so every worker
thread reads the same immutable table without locks.

=============================================================================
"""

from typing import Optional
import threading

from .config import ServerConfig
from .handlers import DelayHandler, HomeHandler, auth, caching, cookies, dynamic, formats, inspection, synthetic
from .http.router import Router


def create_router(
    config: Optional[ServerConfig] = None,
    stop_event: Optional[threading.Event] = None,
) -> Router:
    """
    Register every mock endpoint and return the frozen router.

    Args:
        config: Supplies the /delay upper bound; defaults are used if None.
        stop_event: Shared with DelayHandler so shutdown ends pending waits.
    """
    config = config or ServerConfig()
    router = Router()

    router.add_route("/", HomeHandler(router), name="home",
                     description="This page")

    # Request inspection
    router.add_route("/get", inspection.get, name="get",
                     description="Returns query arguments, headers and URL")
    router.add_route("/post", inspection.echo_body, "POST", name="post",
                     description="Returns the JSON body, headers and URL")
    router.add_route("/put", inspection.echo_body, "PUT", name="put",
                     description="Same as /post for PUT")
    router.add_route("/patch", inspection.echo_body, "PATCH", name="patch",
                     description="Same as /post for PATCH")
    router.add_route("/delete", inspection.echo_body, "DELETE", name="delete",
                     description="Same as /post for DELETE")
    router.add_route("/headers", inspection.headers, name="headers",
                     description="Returns the request headers")
    router.add_route("/ip", inspection.ip, name="ip",
                     description="Returns the client address")
    router.add_route("/anything", inspection.anything, name="anything",
                     description="Returns method, headers, arguments and URL")
    router.add_route("/user-agent", inspection.user_agent, name="user_agent",
                     description="Returns the User-Agent header")

    # Synthetic responses
    router.add_route("/status/{code}", synthetic.status, name="status",
                     description="Responds with the given status code")
    router.add_route(
        "/delay/{seconds}",
        DelayHandler(max_delay=config.max_delay, stop_event=stop_event),
        name="delay",
        description="Responds after the given number of seconds",
    )
    router.add_route("/json", synthetic.json_payload, name="json",
                     description="Returns a fixed JSON document")

    # Dynamic data
    router.add_route("/uuid", dynamic.uuid, name="uuid",
                     description="Returns a random UUID4")
    router.add_route("/base64/{value}", dynamic.base64_decode, name="base64",
                     description="Decodes a base64 value")
    router.add_route("/bytes/{n}", dynamic.random_bytes, name="bytes",
                     description="Returns n random bytes (?seed= for repeatable output)")
    router.add_route("/response-headers", dynamic.response_headers, name="response_headers",
                     description="Sets response headers from the query string")
    router.add_route("/redirect-to", dynamic.redirect_to, name="redirect_to",
                     description="Redirects to ?url= (?status_code= for a 3xx)")
    router.add_route("/relative-redirect/{n}", dynamic.relative_redirect, name="relative_redirect",
                     description="Redirects n times with relative URLs, then to /get")
    router.add_route("/absolute-redirect/{n}", dynamic.absolute_redirect, name="absolute_redirect",
                     description="Redirects n times with absolute URLs, then to /get")

    # Cookies
    router.add_route("/cookies", cookies.get_cookies, name="cookies",
                     description="Returns the cookies sent with the request")
    router.add_route("/cookies", cookies.set_cookie, "POST", name="set_cookie",
                     description="Sets a cookie from a JSON body {name, value, expires}")
    router.add_route("/cookies", cookies.delete_cookie, "DELETE", name="delete_cookie",
                     description="Expires the cookie named by ?name=")

    # Authentication
    router.add_route("/basic-auth/{user}/{passwd}", auth.basic_auth, name="basic_auth",
                     description="Requires HTTP Basic auth with the given credentials")
    router.add_route("/hidden-basic-auth/{user}/{passwd}", auth.basic_auth,
                     name="hidden_basic_auth", hidden=True)
    router.add_route("/bearer", auth.bearer, name="bearer",
                     description="Requires a Bearer token (?required=false to make it optional)")

    # Caching
    router.add_route("/cache", caching.cache, name="cache",
                     description="Returns 304 for conditional requests, else 200")
    router.add_route("/cache/{max_age}", caching.cache_control, name="cache_control",
                     description="Sets Cache-Control: max-age for the given seconds")
    router.add_route("/etag/{etag}", caching.etag, name="etag",
                     description="Honours If-None-Match and If-Match for the given ETag")

    # Response formats
    router.add_route("/plain", formats.plain, name="plain",
                     description="Returns sample plain text")
    router.add_route("/text", formats.plain, name="text",
                     description="Same as /plain")
    router.add_route("/html", formats.html_document, name="html",
                     description="Returns a sample HTML document")
    router.add_route("/xml", formats.xml_document, name="xml",
                     description="Returns a sample XML document")

    return router.freeze()
