from io import BytesIO
import logging
import os
from pathlib import Path
from typing import IO, Optional, Union


logger = logging.getLogger(__name__)


class ContentCache:
    """
    Holds a captured body, either as bytes in memory or as a file on disk.

    The content can be read any number of times; every call to `get_input_stream()` starts from the beginning. A
    file-backed cache owns its file and deletes it on `close()`.
    """

    def __init__(self, content: Union[bytes, bytearray, memoryview, os.PathLike]) -> None:
        """
        @param content
          Either the body itself, which is copied, or the path of a file containing it.
        """
        if content is None:
            raise ValueError('content must not be None')
        if isinstance(content, (bytes, bytearray, memoryview)):
            self.__data: Optional[bytes] = bytes(content)
            self.__file: Optional[Path] = None
        elif isinstance(content, os.PathLike):
            self.__data = None
            self.__file = Path(content)
        else:
            raise TypeError('Expected bytes or a path, got {}'.format(type(content).__name__))

    @property
    def is_in_memory(self) -> bool:
        return self.__file is None

    @property
    def file(self) -> Optional[Path]:
        return self.__file

    def get_input_stream(self) -> IO[bytes]:
        """
        Open a new stream over the content. The caller must close it.
        """
        if self.__file is not None:
            return open(self.__file, 'rb')
        return BytesIO(self.__data)

    def close(self) -> None:
        """
        Delete the backing file, if there is one.

        @throws FileNotFoundError
          If the backing file no longer exists, e.g. because the cache was already closed.
        """
        if self.__file is not None:
            logger.info('Deleting {}'.format(self.__file))
            self.__file.unlink()

    def __enter__(self) -> 'ContentCache':
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __repr__(self) -> str:
        if self.__file is not None:
            return 'ContentCache(file={!r})'.format(str(self.__file))
        return 'ContentCache(data=<{} bytes>)'.format(len(self.__data))
