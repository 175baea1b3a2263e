"""Shared HTTP header constants used across asynccasa."""

ACCEPT_HEADER: str = "application/json"
"""Default *Accept:* value used by all requests."""

WWW_AUTHENTICATE: str = "WWW-Authenticate"
AUTHORIZATION: str = "Authorization"

UNAUTHORIZED: int = 401
