"""
=============================================================================
RESPONSE FORMAT HANDLERS
=============================================================================

Sample documents in a given media type, for checking how a client
decodes each one:

    GET /plain    text/plain; charset=utf-8
    GET /text     text/plain; charset=utf-8
    GET /html     text/html; charset=utf-8
    GET /xml      application/xml

Each request picks one sample at random, so like /uuid these are not
repeatable. The samples themselves are fixed.

=============================================================================
"""

import random

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder


TEXT_SAMPLES = (
    "The quick brown fox jumps over the lazy dog.",
    "Lorem ipsum dolor sit amet, consectetur adipiscing elit.",
    "To be or not to be, that is the question.",
    "All work and no play makes Jack a dull boy.",
    "It was the best of times, it was the worst of times.",
    "The journey of a thousand miles begins with a single step.",
)

HTML_SAMPLES = (
    """<!DOCTYPE html>
<html lang="en">
<head>
    <title>Sample Page</title>
</head>
<body>
    <h1>Welcome to MockHTTP</h1>
    <p>This is a sample HTML page.</p>
</body>
</html>""",
    """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Contact Form</title>
</head>
<body>
    <form action="/post" method="post">
        <label for="name">Name:</label>
        <input type="text" id="name" name="name" required>
        <button type="submit">Submit</button>
    </form>
</body>
</html>""",
)

XML_SAMPLES = (
    """<?xml version="1.0" encoding="UTF-8"?>
<book>
    <title>The Great Gatsby</title>
    <author>F. Scott Fitzgerald</author>
    <year>1925</year>
</book>""",
    """<?xml version="1.0" encoding="UTF-8"?>
<users>
    <user id="1">
        <name>John Doe</name>
        <role>admin</role>
    </user>
    <user id="2">
        <name>Jane Smith</name>
        <role>user</role>
    </user>
</users>""",
)


def plain(request: HTTPRequest) -> HTTPResponse:
    """Shared by /plain and /text."""
    return ResponseBuilder().text(random.choice(TEXT_SAMPLES)).build()


def html_document(request: HTTPRequest) -> HTTPResponse:
    return ResponseBuilder().html(random.choice(HTML_SAMPLES)).build()


def xml_document(request: HTTPRequest) -> HTTPResponse:
    return ResponseBuilder().text(random.choice(XML_SAMPLES), "application/xml").build()
