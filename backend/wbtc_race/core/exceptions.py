"""
Custom exceptions for the Wrapped BTC Race service
"""


class WrappedBtcRaceException(Exception):
    """Base exception for all custom exceptions"""

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class ConnectionError(WrappedBtcRaceException):
    """Raised when connection to an RPC node or REST endpoint fails"""
    pass


class RequestTimeoutError(ConnectionError):
    """Raised when a single network call exceeds its timeout and is cancelled"""
    pass


class APIError(WrappedBtcRaceException):
    """Raised when an HTTP request returns an error status or an unreadable body"""
    pass


class RateLimitError(APIError):
    """Raised when rate limit is exceeded"""
    pass


class RPCError(APIError):
    """Raised when a JSON-RPC response carries an error member or no result"""
    pass


class DataValidationError(WrappedBtcRaceException):
    """Raised when data validation fails"""
    pass


class CacheError(WrappedBtcRaceException):
    """Raised when the shared cache tier cannot be reached or written"""
    pass
