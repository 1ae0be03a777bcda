from io import BytesIO, RawIOBase
import logging
import os
from pathlib import Path
import tempfile
from typing import Callable, IO, Optional, Union

from .model import CHUNK_SIZE


logger = logging.getLogger(__name__)

PREFIX = 'curlish-'

SUFFIX = '.tmp'


def drain(reader: IO[bytes], on_chunk: Callable[[bytes], None], chunk_size: int = CHUNK_SIZE) -> int:
    """
    Read `reader` until EOF, passing every non-empty chunk to `on_chunk`.

    @return
      The total number of bytes read.
    """
    total = 0
    chunk = reader.read(chunk_size)
    while chunk:
        on_chunk(chunk)
        total += len(chunk)
        chunk = reader.read(chunk_size)
    return total


class ContentOutputStream(RawIOBase):
    """
    A write-only stream that keeps its contents in memory until they grow past a threshold, then moves them to a
    temporary file.

    Once spilled, the stream stays file-backed. The temporary file belongs to the stream and is deleted on `close()`,
    unless someone claimed it through `get_file()` first.
    """

    def __init__(self, threshold: int, directory: Union[str, os.PathLike],
                 prefix: str = PREFIX, suffix: str = SUFFIX) -> None:
        """
        @param threshold
          The largest number of bytes kept in memory. Zero means any content at all goes to a file.
        @param directory
          Where the temporary file is created.
        """
        super().__init__()
        self.__threshold = threshold
        self.__directory = Path(directory)
        self.__prefix = prefix
        self.__suffix = suffix
        self.__written = 0
        self.__memory = BytesIO()
        self.__file: Optional[IO[bytes]] = None
        self.__path: Optional[Path] = None
        self.__retrieved = False

    @property
    def threshold(self) -> int:
        return self.__threshold

    @property
    def written(self) -> int:
        return self.__written

    @property
    def is_in_memory(self) -> bool:
        return self.__path is None

    def get_data(self) -> Optional[bytes]:
        """
        @return
          The buffered bytes, or `None` if the content has been moved to a file.
        """
        if not self.is_in_memory:
            return None
        return self.__memory.getvalue()

    def get_file(self) -> Optional[Path]:
        """
        Claim the temporary file. The stream will no longer delete it, so the caller becomes responsible for it.
        Nothing is claimed while the content is still in memory, so a file created by a later write is still deleted on
        close.

        @return
          The path of the temporary file, or `None` if the content is still in memory.
        """
        if self.__path is None:
            return None
        self.__retrieved = True
        if self.__file is not None and not self.__file.closed:
            self.__file.flush()
            self.__file.close()
        return self.__path

    def _spill(self) -> None:
        temp_file = tempfile.NamedTemporaryFile(mode='wb', prefix=self.__prefix, suffix=self.__suffix,
                                                dir=str(self.__directory), delete=False)
        path = Path(temp_file.name)
        logger.info('Threshold of {} bytes exceeded. Moving content to {}'.format(self.__threshold, path))
        try:
            temp_file.write(self.__memory.getvalue())
        except Exception:
            temp_file.close()
            path.unlink()
            raise
        self.__file = temp_file
        self.__path = path
        self.__memory = BytesIO()

    # region IOBase methods

    def close(self) -> None:
        if self.closed:
            return
        try:
            super().close()
        finally:
            try:
                if self.__file is not None:
                    self.__file.close()
            finally:
                if self.__path is not None and not self.__retrieved:
                    try:
                        self.__path.unlink()
                    except FileNotFoundError:
                        pass
                    except OSError as e:
                        logger.warning('Could not delete {}: {}'.format(self.__path, e))

    def fileno(self) -> int:
        raise OSError()

    def flush(self) -> None:
        super().flush()
        if self.__file is not None and not self.__file.closed:
            self.__file.flush()

    def isatty(self) -> bool:
        return False

    def readable(self) -> bool:
        return False

    def seekable(self) -> bool:
        return False

    def writable(self) -> bool:
        return True

    # endregion

    # region RawIOBase methods

    def write(self, b) -> int:
        if self.closed:
            raise ValueError('I/O operation on closed stream.')
        data = bytes(b)
        if not data:
            return 0
        if self.__path is None and self.__written + len(data) > self.__threshold:
            self._spill()
        if self.__file is not None:
            self.__file.write(data)
        else:
            self.__memory.write(data)
        self.__written += len(data)
        return len(data)

    # endregion
