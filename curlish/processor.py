import gzip
from io import BytesIO
import logging
import os
from typing import IO, Optional, Union

from . import model
from .cache import ContentCache
from .connection import Connection
from .exceptions import CurlError
from .model import CHUNK_SIZE, DEFAULT_ENCODING, DEFAULT_THRESHOLD, GZIP, Method
from .response import CurlResponse
from .util import ContentOutputStream, drain


logger = logging.getLogger(__name__)


class ResponseProcessor:
    """
    Turns a sent `Connection` into a `CurlResponse`.

    The body is read completely before the connection is given back, so the response stays usable after the
    connection is closed. Small bodies are kept in memory, larger ones in a temporary file owned by the response.
    """

    def __init__(self, encoding: str = DEFAULT_ENCODING, threshold: int = DEFAULT_THRESHOLD,
                 tmp_dir: Union[str, os.PathLike, None] = None, compression: Optional[str] = None) -> None:
        self.__encoding = encoding
        self.__threshold = threshold
        self.__tmp_dir = tmp_dir
        self.__compression = compression
        self.__response = CurlResponse()

    @property
    def response(self) -> CurlResponse:
        return self.__response

    def __call__(self, connection: Connection) -> None:
        self.process(connection)

    def process(self, connection: Connection) -> None:
        try:
            self.__response.encoding = self.__encoding
            self.__response.http_status_code = connection.response_code
            self.__response.set_headers(connection.header_fields)
        except Exception as e:
            raise CurlError('Failed to access the response.', e)
        self._write_content(connection)

    def _open_source(self, connection: Connection) -> IO[bytes]:
        if connection.response_code < 400:
            source = connection.input_stream
        elif connection.method.upper() == Method.HEAD.value:
            return BytesIO()
        else:
            source = connection.error_stream
            if source is None:
                logger.info('No error body was sent with status {}'.format(connection.response_code))
                return BytesIO()
        if self.__compression == GZIP and connection.content_encoding == GZIP:
            return gzip.GzipFile(fileobj=source, mode='rb')
        return source

    def _log_chunk(self, chunk: bytes) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        try:
            logger.debug('<<< {}'.format(chunk.decode(self.__encoding, errors='replace')))
        except LookupError as e:
            logger.debug('<<< <{}>'.format(e))

    def _write_content(self, connection: Connection) -> None:
        directory = self.__tmp_dir if self.__tmp_dir is not None else model.TMP_DIR
        try:
            source = self._open_source(connection)
            with ContentOutputStream(self.__threshold, directory) as stream:
                def on_chunk(chunk: bytes) -> None:
                    stream.write(chunk)
                    self._log_chunk(chunk)
                drain(source, on_chunk, CHUNK_SIZE)
                stream.flush()
                logger.debug('Response in {}'.format('Memory' if stream.is_in_memory else 'File'))
                if stream.is_in_memory:
                    content_cache = ContentCache(stream.get_data())
                else:
                    content_cache = ContentCache(stream.get_file())
            self.__response.content_cache = content_cache
        except Exception as e:
            logger.exception('Failed to write the response body of {}'.format(connection.url))
            self.__response.content_exception = e
