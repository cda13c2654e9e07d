from typing import List, Optional


class StumpError(Exception):
    """Base class for every failure raised while talking to Stump."""


class StumpTransportError(StumpError):
    """Network level failure (connect, read, timeout)."""


class StumpHTTPError(StumpError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StumpAuthenticationError(StumpHTTPError):
    pass


class StumpResourceNotFoundError(StumpError):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class StumpGraphQLError(StumpError):
    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class StumpEmptyResponseError(StumpGraphQLError):
    pass
