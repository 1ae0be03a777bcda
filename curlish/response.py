from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Dict, IO, List, Mapping, Optional, Sequence, TypeVar

from .cache import ContentCache
from .exceptions import CurlError
from .model import DEFAULT_ENCODING
from .util import drain


logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class CurlResponse:
    """
    The result of executing a request.

    The status code and headers are always available. The body is held by `content_cache`; if it could not be
    captured, `content_cache` is `None` and `content_exception` says why. Close the response once the body has been
    consumed so a spilled body file gets deleted.
    """

    http_status_code: int = 0
    """
    The status code of the response. E.g., 200 or 404.
    """

    encoding: str = DEFAULT_ENCODING
    """
    The text encoding used by `get_content_as_string()`.
    """

    headers: Optional[Dict[str, List[str]]] = None
    """
    The response headers keyed by lowercased name.
    """

    content_cache: Optional[ContentCache] = field(default=None, compare=False)

    content_exception: Optional[BaseException] = field(default=None, compare=False)

    def set_headers(self, headers: Optional[Mapping[Optional[str], Sequence[str]]]) -> None:
        """
        Store `headers` for case-insensitive lookup.

        Names are lowercased and entries without a name (such as a status line) are dropped. If the same name arrives
        in several casings, the first one wins.
        """
        if headers is None:
            return
        lowered: Dict[str, List[str]] = {}
        for key, values in headers.items():
            if key is None:
                continue
            lowered.setdefault(key.lower(), list(values))
        self.headers = lowered

    def get_header_values(self, name: str) -> List[str]:
        if not self.headers:
            return []
        return list(self.headers.get(name.lower(), []))

    def get_header_value(self, name: str) -> Optional[str]:
        values = self.get_header_values(name)
        if not values:
            return None
        return values[0]

    def get_content(self, parser: Callable[['CurlResponse'], T]) -> T:
        return parser(self)

    def get_content_as_stream(self) -> IO[bytes]:
        """
        Open a new stream over the body. The caller must close it.

        @throws CurlError
          If there is no body, chained to `content_exception` when capturing the body failed.
        """
        if self.content_cache is None:
            raise CurlError('The content does not exist.', self.content_exception)
        return self.content_cache.get_input_stream()

    def get_content_as_string(self) -> str:
        try:
            content = bytearray()
            with self.get_content_as_stream() as stream:
                drain(stream, content.extend)
            return content.decode(self.encoding)
        except Exception as e:
            raise CurlError('Failed to access the content.', e)

    def close(self) -> None:
        if self.content_cache is not None:
            self.content_cache.close()

    def __enter__(self) -> 'CurlResponse':
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
