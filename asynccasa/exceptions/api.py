"""
Exceptions raised while interpreting gateway payloads.
"""

from asynccasa.exceptions import CasaException


class DecodeError(CasaException):
    """Exception raised when a response body is not the expected JSON document."""
    pass


class DiscoveryError(CasaException):
    """Exception raised when no metering contract yields a meter identity."""
    pass


class NoDataError(CasaException):
    """Exception raised when a reading succeeded but no value survived decoding."""
    pass
