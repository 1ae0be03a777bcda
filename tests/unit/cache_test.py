from ddt import ddt, data
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import TestCase

from curlish.cache import ContentCache


@ddt
class TestContentCache(TestCase):
    def setUp(self):
        self.__directory = TemporaryDirectory()
        self.directory = Path(self.__directory.name)

    def tearDown(self):
        self.__directory.cleanup()

    def _write(self, contents: bytes) -> Path:
        path = self.directory / 'body.tmp'
        path.write_bytes(contents)
        return path

    @data(b'', b'some contents', bytes(range(256)) * 64)
    def test_memory(self, contents: bytes):
        cache = ContentCache(contents)

        self.assertTrue(cache.is_in_memory)
        self.assertIsNone(cache.file)
        with cache.get_input_stream() as stream:
            self.assertEqual(contents, stream.read())

    @data(b'', b'some contents', bytes(range(256)) * 64)
    def test_file(self, contents: bytes):
        cache = ContentCache(self._write(contents))

        self.assertFalse(cache.is_in_memory)
        with cache.get_input_stream() as stream:
            self.assertEqual(contents, stream.read())

    def test_accepts_os_path_like(self):
        path = self._write(b'some contents')
        cache = ContentCache(self.directory / Path(path.name))
        self.assertEqual(path, cache.file)

    def test_memory_is_copied(self):
        contents = bytearray(b'some contents')
        cache = ContentCache(contents)

        contents[0:4] = b'SOME'

        with cache.get_input_stream() as stream:
            self.assertEqual(b'some contents', stream.read())

    def test_streams_are_independent(self):
        for cache in (ContentCache(b'some contents'), ContentCache(self._write(b'some contents'))):
            with cache.get_input_stream() as first:
                self.assertEqual(b'some', first.read(4))
                with cache.get_input_stream() as second:
                    self.assertEqual(b'some contents', second.read())
                self.assertEqual(b' contents', first.read())

    def test_none(self):
        with self.assertRaises(ValueError):
            ContentCache(None)

    def test_unsupported_type(self):
        with self.assertRaises(TypeError):
            ContentCache('some/path')

    def test_close_memory_keeps_content(self):
        cache = ContentCache(b'some contents')
        cache.close()
        cache.close()
        with cache.get_input_stream() as stream:
            self.assertEqual(b'some contents', stream.read())

    def test_close_deletes_file(self):
        path = self._write(b'some contents')
        cache = ContentCache(path)

        cache.close()

        self.assertFalse(path.exists())

    def test_close_twice(self):
        cache = ContentCache(self._write(b'some contents'))
        cache.close()
        with self.assertRaises(FileNotFoundError):
            cache.close()

    def test_close_missing_file(self):
        path = self._write(b'some contents')
        cache = ContentCache(path)
        path.unlink()
        with self.assertRaises(FileNotFoundError):
            cache.close()

    def test_context_manager(self):
        path = self._write(b'some contents')
        with ContentCache(path) as cache:
            with cache.get_input_stream() as stream:
                self.assertEqual(b'some contents', stream.read())
        self.assertFalse(path.exists())
