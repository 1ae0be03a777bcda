from typing import Optional


class CurlError(Exception):
    """
    The error raised by curlish for misconfigured requests, transport failures and missing content.

    When constructed with a `cause`, the cause is chained exactly as `raise CurlError(...) from cause` would.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.__cause = cause
        if cause is not None:
            self.__cause__ = cause
            self.__suppress_context__ = True

    @property
    def message(self) -> str:
        return self.args[0]

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause
