"""
=============================================================================
HANDLERS
=============================================================================

Every endpoint of the mock server. A handler takes the routed request
(path placeholders already bound on ``request.path_params``) and returns
one response. Handlers keep no state between requests and never log;
the access log middleware records what they did.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ home.py         GET /                   landing page                │
    │ inspection.py   /get /post /put /patch /delete /headers /ip         │
    │                 /anything /user-agent   echo the request            │
    │ synthetic.py    /status/{code} /delay/{seconds} /json               │
    │ dynamic.py      /uuid /base64/{value} /bytes/{n}                    │
    │                 /response-headers /redirect-to                      │
    │                 /relative-redirect/{n} /absolute-redirect/{n}       │
    │ cookies.py      /cookies (GET, POST, DELETE)                        │
    │ auth.py         /basic-auth /hidden-basic-auth /bearer              │
    │ caching.py      /cache /cache/{max_age} /etag/{etag}                │
    │ formats.py      /plain /text /html /xml                             │
    └─────────────────────────────────────────────────────────────────────┘

Function handlers cover the stateless endpoints; the two that need
configuration are classes (HomeHandler reads the route table,
DelayHandler carries the max-delay policy and the shutdown event).

=============================================================================
"""

from . import auth, caching, cookies, dynamic, formats, inspection, synthetic
from .home import HomeHandler
from .synthetic import DelayHandler, parse_int

__all__ = [
    "HomeHandler",
    "DelayHandler",
    "parse_int",
    "auth",
    "caching",
    "cookies",
    "dynamic",
    "formats",
    "inspection",
    "synthetic",
]
