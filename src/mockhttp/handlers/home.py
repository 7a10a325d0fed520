"""
=============================================================================
LANDING PAGE
=============================================================================

``GET /`` lists every registered endpoint with a clickable example:

    /status/{code}    →   <a href="/status/200">/status/{code}</a>
    /delay/{seconds}  →   <a href="/delay/3">/delay/{seconds}</a>

The page is rendered from the frozen route table on each request, so it
cannot drift from what the router actually serves. Routes registered
with ``hidden=True`` are served but not listed. Rendering problems
surface as 500 "Error rendering page" rather than a broken page.

=============================================================================
"""

from string import Template
from typing import Dict, Optional
import html

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, internal_error
from ..http.router import Router


PAGE_TEMPLATE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>$title - Home</title>
    <style>
        body { font-family: sans-serif; padding: 20px; max-width: 860px; }
        code { background: #f4f4f4; padding: 1px 4px; }
        li { padding: 4px 0; }
    </style>
</head>
<body>
    <h1>Welcome to $title</h1>
    <p>A simple HTTP request &amp; response service, inspired by httpbin.org.</p>
    <ul>
$entries
    </ul>
</body>
</html>
""")

ENTRY_TEMPLATE = Template(
    '        <li><code>$method</code> <a href="$href">$path</a> - $description</li>'
)

# Values substituted into placeholders for the example links
EXAMPLE_PARAMS: Dict[str, str] = {
    "code": "200",
    "seconds": "3",
    "value": "bW9ja2h0dHA=",
    "n": "16",
    "user": "user",
    "passwd": "passwd",
    "etag": "mockhttp",
    "max_age": "60",
}


class HomeHandler:
    """
    Renders the landing page from a router's table.

    Args:
        router: The application router (frozen before serving).
        title: Name shown in the page heading.
        examples: Placeholder values for example links.
    """

    def __init__(self, router: Router, title: str = "MockHTTP", examples: Optional[Dict[str, str]] = None):
        self.router = router
        self.title = title
        self.examples = dict(EXAMPLE_PARAMS if examples is None else examples)

    def render(self) -> str:
        """
        Build the page.

        Raises:
            KeyError: If a route uses a placeholder with no example value.
            ValueError: If a template is malformed.
        """
        entries = []
        for route in self.router.routes():
            if route.hidden:
                continue
            href = route.path
            for name in route.param_names:
                href = href.replace("{" + name + "}", self.examples[name])

            entries.append(ENTRY_TEMPLATE.substitute(
                method=route.method,
                href=html.escape(href, quote=True),
                path=html.escape(route.path),
                description=html.escape(route.description or route.name or ""),
            ))

        return PAGE_TEMPLATE.substitute(
            title=html.escape(self.title),
            entries="\n".join(entries),
        )

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        try:
            page = self.render()
        except (KeyError, ValueError):
            return internal_error("Error rendering page")

        return ResponseBuilder().html(page).build()
