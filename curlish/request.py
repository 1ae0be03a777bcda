from concurrent.futures import Executor, Future
from io import BytesIO
import logging
import os
import ssl
from typing import Any, Callable, IO, List, Mapping, Optional, Tuple, Union
from urllib.parse import quote_plus

from .connection import Connection, Timeout
from .exceptions import CurlError
from .model import DEFAULT_ENCODING, DEFAULT_THRESHOLD, GZIP, Method
from .processor import ResponseProcessor
from .response import CurlResponse


logger = logging.getLogger(__name__)

ConnectionHook = Callable[['CurlRequest', Connection], None]


class CurlRequest:
    """
    A fluent builder for one HTTP request.

    Configure the request by chaining setters, then call `execute()`. Without arguments it blocks and returns the
    response; with a success and a failure callback it reports through those instead, on the configured thread pool
    if there is one.

    A request should be executed once. It is not safe to configure a request from several threads.
    """

    def __init__(self, method: Method, url: str) -> None:
        if method is None:
            raise CurlError('method must not be None.')
        if url is None:
            raise CurlError('url must not be None.')
        self.__method = Method(method)
        self.__url = url
        self.__proxy: Optional[Mapping[str, str]] = None
        self.__encoding = DEFAULT_ENCODING
        self.__threshold = DEFAULT_THRESHOLD
        self.__params: Optional[List[str]] = None
        self.__headers: Optional[List[Tuple[str, str]]] = None
        self.__body: Optional[str] = None
        self.__body_stream: Optional[IO[bytes]] = None
        self.__compression: Optional[str] = None
        self.__ssl_context: Optional[ssl.SSLContext] = None
        self.__timeout: Timeout = None
        self.__tmp_dir: Union[str, os.PathLike, None] = None
        self.__thread_pool: Optional[Executor] = None
        self.__connection_builder: Optional[ConnectionHook] = None

    # region Getters

    def get_method(self) -> Method:
        return self.__method

    def get_url(self) -> str:
        return self.__url

    def get_proxy(self) -> Optional[Mapping[str, str]]:
        return self.__proxy

    def get_encoding(self) -> str:
        return self.__encoding

    def get_threshold(self) -> int:
        return self.__threshold

    def get_body(self) -> Optional[str]:
        return self.__body

    def get_compression(self) -> Optional[str]:
        return self.__compression

    def get_timeout(self) -> Timeout:
        return self.__timeout

    # endregion

    # region Setters

    def proxy(self, proxy: Union[str, Mapping[str, str], None]) -> 'CurlRequest':
        """
        @param proxy
          A proxy URL used for both plain and secure requests, or a mapping from scheme to proxy URL as accepted by
          `requests`.
        """
        if isinstance(proxy, str):
            proxy = {'http': proxy, 'https': proxy}
        self.__proxy = proxy
        return self

    def encoding(self, encoding: str) -> 'CurlRequest':
        """
        Set the text encoding for parameters, the text body and the response string.

        Parameters are encoded as they are added, so this must be called before `param()`.
        """
        if self.__params is not None:
            raise CurlError('This method must be called before param method.')
        self.__encoding = encoding
        return self

    def threshold(self, threshold: int) -> 'CurlRequest':
        self.__threshold = threshold
        return self

    def gzip(self) -> 'CurlRequest':
        return self.compression(GZIP)

    def compression(self, compression: Optional[str]) -> 'CurlRequest':
        self.__compression = compression
        return self

    def ssl_context(self, ssl_context: Optional[ssl.SSLContext]) -> 'CurlRequest':
        self.__ssl_context = ssl_context
        return self

    def timeout(self, timeout: Timeout) -> 'CurlRequest':
        """
        @param timeout
          Seconds to wait for the server, or a `(connect, read)` tuple. A connection hook may still override it.
        """
        self.__timeout = timeout
        return self

    def tmp_dir(self, tmp_dir: Union[str, os.PathLike, None]) -> 'CurlRequest':
        self.__tmp_dir = tmp_dir
        return self

    def thread_pool(self, thread_pool: Optional[Executor]) -> 'CurlRequest':
        self.__thread_pool = thread_pool
        return self

    def on_connect(self, connection_builder: Optional[ConnectionHook]) -> 'CurlRequest':
        """
        Register a function called with this request and the connection after the headers are set and before the body
        is written.
        """
        self.__connection_builder = connection_builder
        return self

    def body(self, body: Union[str, bytes, IO[bytes]]) -> 'CurlRequest':
        """
        Set the body as text, which is encoded on sending, or as bytes or a binary stream, which are sent as they are.
        Text and binary bodies cannot be combined.
        """
        if body is None:
            raise CurlError('body must not be None.')
        if isinstance(body, str):
            if self.__body_stream is not None:
                raise CurlError('body method is already called.')
            self.__body = body
        else:
            if self.__body is not None:
                raise CurlError('body method is already called.')
            if isinstance(body, (bytes, bytearray, memoryview)):
                body = BytesIO(bytes(body))
            self.__body_stream = body
        return self

    def param(self, key: str, value: Optional[Any]) -> 'CurlRequest':
        """
        Add a query parameter. Parameters with a `None` value are skipped.
        """
        if key is None:
            raise CurlError('key must not be None.')
        if value is None:
            return self
        encoded = '{}={}'.format(self._encode(key), self._encode(value))
        if self.__params is None:
            self.__params = []
        self.__params.append(encoded)
        return self

    def header(self, key: str, value: str) -> 'CurlRequest':
        if key is None:
            raise CurlError('key must not be None.')
        if value is None:
            raise CurlError('value must not be None.')
        if self.__headers is None:
            self.__headers = []
        self.__headers.append((key, value))
        return self

    # endregion

    def _encode(self, value: Any) -> str:
        try:
            return quote_plus(str(value), encoding=self.__encoding)
        except LookupError as e:
            raise CurlError('Invalid encoding: {}'.format(self.__encoding), e)

    def build_url(self) -> str:
        """
        @return
          The URL with the query parameters appended in the order they were added.
        """
        if not self.__params:
            return self.__url
        separator = '&' if '?' in self.__url else '?'
        return self.__url + separator + '&'.join(self.__params)

    def _open(self, url: str) -> Connection:
        connection = Connection(self.__method.value, url, proxies=self.__proxy, ssl_context=self.__ssl_context)
        connection.timeout = self.__timeout
        return connection

    def _write_body(self, connection: Connection) -> None:
        if self.__body is not None:
            logger.debug('>>> {}'.format(self.__body))
            try:
                data = self.__body.encode(self.__encoding)
            except LookupError as e:
                raise CurlError('Invalid encoding: {}'.format(self.__encoding), e)
            connection.write_body(data)
        elif self.__body_stream is not None:
            logger.debug('>>> <binary>')
            connection.write_body(self.__body_stream)

    def _task(self, action: Callable[[Connection], None],
              on_error: Callable[[Exception], None]) -> Callable[[], None]:
        def task() -> None:
            url = self.build_url()
            connection = None
            try:
                logger.debug('>>> {} {}'.format(self.__method, url))
                connection = self._open(url)
                for key, value in self.__headers or []:
                    logger.debug('>>> {}={}'.format(key, value))
                    connection.add_request_property(key, value)
                if self.__compression is not None:
                    connection.set_request_property('Accept-Encoding', self.__compression)

                if self.__connection_builder is not None:
                    self.__connection_builder(self, connection)

                self._write_body(connection)
                connection.send()

                action(connection)
            except Exception as e:
                on_error(CurlError('Failed to access to {}'.format(url), e))
            finally:
                if connection is not None:
                    connection.close()
        return task

    def connect(self, action: Callable[[Connection], None],
                on_error: Callable[[Exception], None]) -> Optional[Future]:
        """
        Send the request and pass the live connection to `action`. Failures are wrapped in a `CurlError` naming the URL
        and passed to `on_error`. The connection is closed once `action` returns.

        @return
          The future of the submitted task if a thread pool is configured, `None` if the request ran on this thread.
        """
        task = self._task(action, on_error)
        if self.__thread_pool is not None:
            return self.__thread_pool.submit(task)
        task()
        return None

    def _processor(self) -> ResponseProcessor:
        return ResponseProcessor(self.__encoding, self.__threshold, self.__tmp_dir, self.__compression)

    def execute(self, on_success: Optional[Callable[[CurlResponse], None]] = None,
                on_failure: Optional[Callable[[Exception], None]] = None) -> Union[CurlResponse, Future, None]:
        """
        Execute the request.

        Called without callbacks, the request runs on this thread and the response is returned. The caller must close
        it.

        Called with callbacks, `on_success` receives the response, which is closed as soon as the callback returns,
        and `on_failure` receives any error, including one raised by `on_success`. The request runs on the thread pool
        if one is configured, otherwise on this thread.

        @return
          The response when called without callbacks. With callbacks, the future of the task submitted to the thread
          pool, which completes after the callbacks have run and holds any error raised by `on_failure`, or `None` if
          the request ran on this thread.

        @throws CurlError
          Only without callbacks, if the request could not be sent.
        """
        if on_success is None and on_failure is None:
            return self._execute()
        if on_success is None or on_failure is None:
            raise CurlError('on_success and on_failure must be given together.')

        def action(connection: Connection) -> None:
            processor = self._processor()
            processor.process(connection)
            with processor.response as response:
                on_success(response)

        return self.connect(action, on_failure)

    def _execute(self) -> CurlResponse:
        processor = self._processor()

        def fail(e: Exception) -> None:
            raise CurlError('Failed to process a request.', e)

        self._task(processor, fail)()
        return processor.response

    def __repr__(self) -> str:
        return 'CurlRequest({} {})'.format(self.__method, self.build_url())
