"""
Authentication-related exceptions.
"""

from typing import Optional

from asynccasa.exceptions import CasaException


class AuthenticationError(CasaException):
    """Exception raised when digest authentication cannot be completed.

    Covers responses that carry no usable challenge as well as credentials the
    gateway rejected after the single re-authentication attempt.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        if status_code is not None:
            message = f"{message} (HTTP {status_code})"
        super().__init__(message)
