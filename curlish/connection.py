import logging
import ssl
from typing import Dict, IO, List, Mapping, Optional, Set, Union

import requests
from requests.adapters import DEFAULT_POOLBLOCK, HTTPAdapter


logger = logging.getLogger(__name__)

Timeout = Union[None, float, tuple]


class SSLContextAdapter(HTTPAdapter):
    """
    An adapter that makes every HTTPS connection, direct or through a proxy, use the given SSL context.

    The context decides whether the server certificate is checked. The `verify` send option is replaced by the
    context's own `verify_mode`, because urllib3 writes the requested mode back into the context it is given and
    would otherwise override the caller's choice.
    """

    def __init__(self, ssl_context: ssl.SSLContext, *args, **kw) -> None:
        # `HTTPAdapter.__init__()` builds the pool manager, which already needs the context.
        self.ssl_context = ssl_context
        super().__init__(*args, **kw)

    @property
    def verify(self) -> bool:
        return self.ssl_context.verify_mode != ssl.CERT_NONE

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        return super().send(request, stream=stream, timeout=timeout, verify=self.verify, cert=cert, proxies=proxies)

    def init_poolmanager(self, connections, maxsize, block=DEFAULT_POOLBLOCK, **pool_kwargs):
        pool_kwargs['ssl_context'] = self.ssl_context
        super().init_poolmanager(connections, maxsize, block, **pool_kwargs)

    def proxy_manager_for(self, proxy, **proxy_kwargs):
        proxy_kwargs['ssl_context'] = self.ssl_context
        return super().proxy_manager_for(proxy, **proxy_kwargs)


class Connection:
    """
    A single HTTP exchange.

    Headers and body are staged on a `requests.PreparedRequest` and go out on `send()`. Until then, `timeout`,
    `verify` and the staged headers may be changed freely, which is what a connection hook is for. After `send()`, the
    response status, headers and body stream are available. The body is read lazily from the socket, so the
    connection must be closed when done. With an SSL context, HTTPS certificate checks follow the context, not `verify`.
    """

    def __init__(self, method: str, url: str, proxies: Optional[Mapping[str, str]] = None,
                 ssl_context: Optional[ssl.SSLContext] = None) -> None:
        self.__session = requests.Session()
        # Compression is only negotiated when asked for.
        self.__session.headers.pop('Accept-Encoding', None)
        if ssl_context is not None:
            self.__session.mount('https://', SSLContextAdapter(ssl_context))
        self.__added: Set[str] = set()
        self.__response: Optional[requests.Response] = None
        self.__closed = False
        self.proxies: Dict[str, str] = dict(proxies or {})
        self.timeout: Timeout = None
        self.verify: Union[bool, str] = True
        try:
            self.prepared = self.__session.prepare_request(requests.Request(method=method, url=url))
        except Exception:
            self.__session.close()
            raise

    @property
    def method(self) -> str:
        return self.prepared.method

    @property
    def url(self) -> str:
        return self.prepared.url

    @property
    def session(self) -> requests.Session:
        return self.__session

    @property
    def response(self) -> Optional[requests.Response]:
        return self.__response

    # region Request

    def add_request_property(self, key: str, value: str) -> None:
        """
        Add a header. Repeated headers are combined into one comma-separated value, in the order they were added.
        """
        existing = self.prepared.headers.get(key)
        if existing is not None and key.lower() in self.__added:
            self.prepared.headers[key] = '{}, {}'.format(existing, value)
        else:
            self.prepared.headers[key] = value
        self.__added.add(key.lower())

    def set_request_property(self, key: str, value: str) -> None:
        self.prepared.headers[key] = value
        self.__added.add(key.lower())

    def get_request_property(self, key: str) -> Optional[str]:
        return self.prepared.headers.get(key)

    def write_body(self, body: Union[bytes, IO[bytes]]) -> None:
        """
        Attach the body. Bytes are sent with a Content-Length; streams are sent as they are read, chunked if their size
        is unknown.
        """
        self.prepared.headers.pop('Content-Length', None)
        self.prepared.prepare_body(body, None)

    def send(self) -> requests.Response:
        if self.__response is not None:
            raise RuntimeError('The request has already been sent')
        self.__response = self.__session.send(self.prepared,
                                              stream=True,
                                              timeout=self.timeout,
                                              verify=self.verify,
                                              proxies=self.proxies,
                                              allow_redirects=False)
        return self.__response

    # endregion

    # region Response

    def _sent(self) -> requests.Response:
        if self.__response is None:
            raise RuntimeError('The request has not been sent yet')
        return self.__response

    @property
    def response_code(self) -> int:
        return self._sent().status_code

    @property
    def header_fields(self) -> Dict[str, List[str]]:
        """
        The response headers as sent, with every value of a repeated header kept.
        """
        response = self._sent()
        raw_headers = getattr(response.raw, 'headers', None)
        if raw_headers is None or not hasattr(raw_headers, 'getlist'):
            return {key: [value] for key, value in response.headers.items()}
        return {key: list(raw_headers.getlist(key)) for key in raw_headers}

    @property
    def content_encoding(self) -> Optional[str]:
        return self._sent().headers.get('Content-Encoding')

    @property
    def input_stream(self) -> IO[bytes]:
        """
        The undecoded body of a successful response.
        """
        return self._sent().raw

    @property
    def error_stream(self) -> Optional[IO[bytes]]:
        """
        The undecoded body of an error response, or `None` if the server did not send one.
        """
        return getattr(self._sent(), 'raw', None)

    # endregion

    def close(self) -> None:
        if self.__closed:
            return
        self.__closed = True
        try:
            if self.__response is not None:
                self.__response.close()
        finally:
            self.__session.close()
