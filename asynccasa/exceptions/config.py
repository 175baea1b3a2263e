"""
Configuration-related exceptions.
"""

from asynccasa.exceptions import CasaException


class ConfigurationError(CasaException):
    """Exception raised when the client is constructed with missing or invalid input."""
    pass
