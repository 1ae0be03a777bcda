"""
Defines the constants and enumerations shared by the request and response types.
"""

from enum import Enum
from pathlib import Path
import tempfile


GZIP = 'gzip'

DEFAULT_ENCODING = 'UTF-8'

DEFAULT_THRESHOLD = 1024 * 1024
"""
Response bodies larger than this many bytes are spilled to a temporary file.
"""

CHUNK_SIZE = 4096

TMP_DIR = Path(tempfile.gettempdir())
"""
The directory for spill files of requests that do not set their own. Read when a request executes, so assigning
`curlish.model.TMP_DIR` affects every later request.
"""


class Method(Enum):
    """
    The HTTP methods a request can be sent with. The value is the token sent on the request line.
    """

    GET = 'GET'
    POST = 'POST'
    PUT = 'PUT'
    DELETE = 'DELETE'
    HEAD = 'HEAD'
    OPTIONS = 'OPTIONS'
    TRACE = 'TRACE'
    CONNECT = 'CONNECT'

    def __str__(self) -> str:
        return self.value
