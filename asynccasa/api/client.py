"""
Async client for CASA smart meter gateways.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Type, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, TypeAdapter, ValidationError

from asynccasa.config import CasaConfig, settings
from asynccasa.exceptions import CasaException
from asynccasa.exceptions.api import DecodeError, DiscoveryError, NoDataError
from asynccasa.exceptions.config import ConfigurationError
from asynccasa.exceptions.network import NetworkTimeoutError, ResponseError, TransportError
from asynccasa.metering.models import DerivedContract, MeterReading
from asynccasa.metering.obis import decode_values
from asynccasa.transport.base import AiohttpTransport, Request, Transport
from asynccasa.transport.digest import DigestAuthTransport
from asynccasa.transport.host import HostRoutingTransport
from asynccasa.utils.discovery import resolve_gateway
from asynccasa.utils.http_consts import ACCEPT_HEADER

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_CONTRACT_IDS = TypeAdapter(List[str])

CONTRACTS_PATH = "/json/metering/derived"
CONTRACT_PATH = "/json/metering/derived/{contract_id}"
READING_PATH = "/json/metering/origin/{meter_id}/extended"


class CasaClient:
    """Async client for the JSON metering API of a CASA 1.1 gateway.

    Requests go through ``base transport -> HostRoutingTransport ->
    DigestAuthTransport``.  One instance may be polled from several tasks at
    once; the digest state and the meter identity are shared between them.
    """

    def __init__(
        self,
        uri: str,
        username: str,
        password: str,
        meter_id: Optional[str] = None,
        host: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[Transport] = None,
    ):
        """
        Initialize the gateway client.

        Args:
            uri: Gateway URI, ``https://`` is assumed when no scheme is given
            username: Digest authentication user
            password: Digest authentication password
            meter_id: Meter to read; use :meth:`create` to discover it when unknown
            host: Host header / TLS server name; derived from *uri* when omitted
            timeout: Deadline in seconds for each call, digest retry included
            transport: Base transport, an :class:`AiohttpTransport` by default

        Raises:
            ConfigurationError: If the URI or credentials are missing or no host
                can be derived
        """
        self._config = CasaConfig.create(
            uri=uri,
            username=username,
            password=password,
            meter_id=meter_id,
            host=host,
        )
        self.uri = self._config.uri
        self.host = self._config.host
        self.timeout = settings.request_timeout if timeout is None else timeout

        base = transport if transport is not None else AiohttpTransport()
        self._transport = DigestAuthTransport(
            self._config.username,
            self._config.password.get_secret_value(),
            HostRoutingTransport(base, self.host),
        )

        self._meter_id: Optional[str] = self._config.meter_id
        self._discovery_lock = asyncio.Lock()

    @classmethod
    async def create(
        cls,
        uri: Optional[str],
        username: str,
        password: str,
        meter_id: Optional[str] = None,
        host: Optional[str] = None,
        *,
        hostname: Optional[str] = None,
        **kwargs,
    ) -> "CasaClient":
        """Create a client and discover the meter identity if none is given.

        When *uri* is empty and *hostname* is given, the gateway address is
        resolved from *hostname* first.

        Raises:
            ConfigurationError: On invalid arguments
            DiscoveryError: If the gateway cannot be resolved or no meter is found
        """
        if not uri and hostname:
            uri = await resolve_gateway(hostname)

        client = cls(uri or "", username, password, meter_id, host, **kwargs)
        try:
            await client.ensure_meter_id()
        except BaseException:
            await client.close()
            raise
        return client

    @property
    def meter_id(self) -> Optional[str]:
        """The meter identity in use, explicit or discovered."""
        return self._meter_id

    @property
    def transport(self) -> DigestAuthTransport:
        return self._transport

    async def close(self) -> None:
        """Close the underlying transport (idempotent)."""
        await self._transport.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def __repr__(self) -> str:
        return f"CasaClient(uri={self.uri!r}, host={self.host!r}, meter_id={self._meter_id!r})"

    # ------------------------------------------------------------------
    # Request helpers

    async def _get(self, path: str, timeout: Optional[float] = None) -> bytes:
        url = f"{self.uri}{path}"
        request = Request(
            "GET",
            url,
            headers={"Accept": ACCEPT_HEADER, "User-Agent": settings.user_agent},
        )
        deadline = self.timeout if timeout is None else timeout

        try:
            response = await asyncio.wait_for(self._transport.send(request), deadline)
        except asyncio.TimeoutError as exc:
            raise NetworkTimeoutError(f"GET {url} exceeded {deadline}s") from exc

        if response.status != 200:
            raise ResponseError(response.status, f"GET {url}")
        return response.body

    async def _get_model(
        self, path: str, model: Type[ModelT], timeout: Optional[float] = None
    ) -> ModelT:
        body = await self._get(path, timeout)
        try:
            return model.model_validate_json(body)
        except ValidationError as exc:
            raise DecodeError(f"Malformed JSON from {self.uri}{path}: {exc}") from exc

    # ------------------------------------------------------------------
    # Contracts and discovery

    async def get_contract_ids(self, *, timeout: Optional[float] = None) -> List[str]:
        """Return the ordered list of derived contract identifiers."""
        body = await self._get(CONTRACTS_PATH, timeout)
        try:
            return _CONTRACT_IDS.validate_json(body)
        except ValidationError as exc:
            raise DecodeError(f"Malformed contract list from {self.uri}: {exc}") from exc

    async def get_contract(
        self, contract_id: str, *, timeout: Optional[float] = None
    ) -> DerivedContract:
        """Return the detail document of one derived contract."""
        path = CONTRACT_PATH.format(contract_id=quote(contract_id, safe=""))
        return await self._get_model(path, DerivedContract, timeout)

    async def discover_meter_id(self, *, timeout: Optional[float] = None) -> str:
        """Find the first contract with sensor domains and use its first domain.

        Re-running overwrites the current meter identity on success.
        Concurrent calls are serialized.

        Raises:
            DiscoveryError: If the contract list cannot be fetched or no
                contract lists a sensor domain
            AuthenticationError: If the gateway rejects the credentials
        """
        async with self._discovery_lock:
            return await self._discover(timeout)

    async def ensure_meter_id(self, *, timeout: Optional[float] = None) -> str:
        """Return the meter identity, discovering it on first use.

        Tasks arriving while discovery runs wait for it and reuse its result.
        """
        async with self._discovery_lock:
            if self._meter_id:
                return self._meter_id
            return await self._discover(timeout)

    async def _discover(self, timeout: Optional[float]) -> str:
        try:
            contract_ids = await self.get_contract_ids(timeout=timeout)
        except (TransportError, DecodeError) as exc:
            raise DiscoveryError(f"Failed to get contracts: {exc}") from exc

        for contract_id in contract_ids:
            try:
                contract = await self.get_contract(contract_id, timeout=timeout)
            except CasaException as exc:
                logger.debug(f"Skipping contract {contract_id}: {exc}")
                continue

            if contract.sensor_domains:
                self._meter_id = contract.sensor_domains[0]
                logger.info(f"Using meter {self._meter_id} from contract {contract_id}")
                return self._meter_id

        raise DiscoveryError("No contract with sensor domains found")

    # ------------------------------------------------------------------
    # Readings

    def _require_meter_id(self) -> str:
        if not self._meter_id:
            raise ConfigurationError("Meter ID not set")
        return self._meter_id

    async def get_reading(self, *, timeout: Optional[float] = None) -> MeterReading:
        """Return the raw extended reading document of the configured meter."""
        meter_id = self._require_meter_id()
        path = READING_PATH.format(meter_id=quote(meter_id, safe=""))
        return await self._get_model(path, MeterReading, timeout)

    async def get_meter_values(self, *, timeout: Optional[float] = None) -> Dict[str, float]:
        """
        Fetch current readings keyed by OBIS ``C.D.E`` code.

        Common keys are ``16.7.0`` (power, W), ``1.8.0`` / ``2.8.0`` (imported /
        exported energy, kWh), ``31.7.0`` ``51.7.0`` ``71.7.0`` (phase
        currents, A) and ``32.7.0`` ``52.7.0`` ``72.7.0`` (phase voltages, V).

        Returns:
            Mapping of OBIS key to value

        Raises:
            ConfigurationError: If no meter identity is set
            NoDataError: If no item of the reading could be decoded
            TransportError: If the gateway cannot be reached
            AuthenticationError: If the gateway rejects the credentials
            DecodeError: If the reading document is malformed
        """
        reading = await self.get_reading(timeout=timeout)
        values = decode_values(reading.reading_items())
        if not values:
            raise NoDataError(f"No valid meter values found for meter {self._meter_id}")
        return values
