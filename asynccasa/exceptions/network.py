"""
Network-related exceptions.
"""

from asynccasa.exceptions import CasaException


class TransportError(CasaException):
    """Exception raised when the gateway cannot be reached or answers unusably."""
    pass


class NetworkConnectionError(TransportError):
    """Exception raised when a connection to the gateway cannot be established."""
    pass


class NetworkTimeoutError(TransportError):
    """Exception raised when a request to the gateway exceeds its deadline."""
    pass


class ResponseError(TransportError):
    """Exception raised when a response from the gateway indicates an error."""

    def __init__(self, status_code, message=None):
        """Initialize the exception with a status code and optional message.

        Args:
            status_code: HTTP status code
            message: Optional error message
        """
        self.status_code = status_code
        self.message = message
        super().__init__(f"HTTP error {status_code}{': ' + message if message else ''}")
