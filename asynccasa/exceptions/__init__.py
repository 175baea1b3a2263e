"""
Exceptions raised by asynccasa.
"""


class CasaException(Exception):
    """Base exception for all errors raised by asynccasa."""
    pass
