"""
A fluent HTTP client. Start a request with one of the method functions, configure it, and execute it:

    with curlish.get('http://example.com').param('q', 'text').execute() as response:
        print(response.http_status_code, response.get_content_as_string())

Response bodies larger than the request's threshold are kept in a temporary file until the response is closed.
"""

from .cache import ContentCache
from .connection import Connection
from .exceptions import CurlError
from .model import Method
from .request import CurlRequest
from .response import CurlResponse
from .util import ContentOutputStream


def get(url: str) -> CurlRequest:
    return CurlRequest(Method.GET, url)


def post(url: str) -> CurlRequest:
    return CurlRequest(Method.POST, url)


def put(url: str) -> CurlRequest:
    return CurlRequest(Method.PUT, url)


def delete(url: str) -> CurlRequest:
    return CurlRequest(Method.DELETE, url)


def head(url: str) -> CurlRequest:
    return CurlRequest(Method.HEAD, url)


def options(url: str) -> CurlRequest:
    return CurlRequest(Method.OPTIONS, url)


def trace(url: str) -> CurlRequest:
    return CurlRequest(Method.TRACE, url)


def connect(url: str) -> CurlRequest:
    return CurlRequest(Method.CONNECT, url)
