"""
Asynccasa - Async Python client for CASA smart meter gateways.

This package reads meter values from the JSON metering API of CASA 1.1 smart
meter gateways, handling HTTP digest authentication, the gateway's fixed
virtual host and its self-signed TLS certificate.
"""

__version__ = "0.1.0"

from asynccasa.api.client import CasaClient
from asynccasa.config import CasaConfig, settings
from asynccasa.enums import OBIS_NAMES, ObisCode, UnitCode
from asynccasa.exceptions import CasaException
from asynccasa.exceptions.api import DecodeError, DiscoveryError, NoDataError
from asynccasa.exceptions.auth import AuthenticationError
from asynccasa.exceptions.config import ConfigurationError
from asynccasa.exceptions.network import (
    NetworkConnectionError,
    NetworkTimeoutError,
    ResponseError,
    TransportError,
)
from asynccasa.metering.models import DerivedContract, MeterReading, ReadingItem
from asynccasa.metering.obis import convert_to_obis, convert_value, decode_values
from asynccasa.utils.discovery import resolve_gateway


async def read_meter(uri: str, username: str, password: str, **kwargs):
    """
    Read the current meter values of a gateway in one call.

    Args:
        uri: Gateway URI
        username: Digest authentication user
        password: Digest authentication password

    Returns:
        Mapping of OBIS ``C.D.E`` keys to values
    """
    async with await CasaClient.create(uri, username, password, **kwargs) as client:
        return await client.get_meter_values()
