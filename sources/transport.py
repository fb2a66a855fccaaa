"""HTTP transport used for every upstream call."""

from __future__ import annotations

import ipaddress
import json
import logging
import random
from typing import Any, Dict, Optional, Protocol

import httpx

from config import NetworkSettings, get_network_settings
from core import InfoOptions
from utils.exceptions import PermanentTransportError, transport_error_for


logger = logging.getLogger(__name__)


class Transport(Protocol):
    async def request(
        self,
        url: str,
        *,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        json_body: Any = None,
    ) -> str:
        ...

    async def request_json(
        self,
        url: str,
        *,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        json_body: Any = None,
    ) -> Any:
        ...


def random_ipv6(block: str) -> str:
    """Random address inside an IPv6 CIDR block."""
    network = ipaddress.IPv6Network(block, strict=False)
    host_bits = 128 - network.prefixlen
    offset = random.getrandbits(host_bits) if host_bits else 0
    return str(network.network_address + offset)


class HttpTransport:
    """
    httpx-backed transport.

    Non-2xx answers raise TransientTransportError (5xx) or
    PermanentTransportError; connection failures carry no status and are
    permanent.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        user_agent: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        cookies: Optional[str] = None,
        proxy: Optional[str] = None,
        local_address: Optional[str] = None,
        ipv6_block: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._headers: Dict[str, str] = {}
        if user_agent:
            self._headers["User-Agent"] = user_agent
        self._headers.update(headers or {})
        self._cookies = cookies
        if ipv6_block and not local_address:
            local_address = random_ipv6(ipv6_block)
        self.local_address = local_address
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                timeout=httpx.Timeout(timeout),
                follow_redirects=True,
                transport=httpx.AsyncHTTPTransport(local_address=local_address, proxy=proxy),
            )
        self._client = client

    @classmethod
    def from_options(
        cls,
        options: InfoOptions,
        network: Optional[NetworkSettings] = None,
    ) -> "HttpTransport":
        network = network or get_network_settings()
        headers = {"Accept-Language": f"{options.lang},en;q=0.9"}
        headers.update(options.headers or {})
        return cls(
            timeout=network.request_timeout,
            user_agent=network.user_agent,
            headers=headers,
            cookies=options.cookies or network.cookies,
            proxy=options.proxy or network.proxy,
            local_address=options.local_address or network.local_address,
            ipv6_block=options.ipv6_block or network.ipv6_block,
        )

    def cookie_header(self) -> Optional[str]:
        return self._cookies

    async def request(
        self,
        url: str,
        *,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        json_body: Any = None,
    ) -> str:
        merged = dict(self._headers)
        if self._cookies:
            merged["Cookie"] = self._cookies
        merged.update(headers or {})
        content = None
        if json_body is not None:
            content = json.dumps(json_body, separators=(",", ":"))
            merged.setdefault("Content-Type", "application/json")

        try:
            response = await self._client.request(method, url, params=params, headers=merged, content=content)
        except httpx.RequestError as exc:
            raise PermanentTransportError(f"Request failed: {exc}", status=None, url=url) from exc

        if not response.is_success:
            raise transport_error_for(response.status_code, url=url)
        return response.text

    async def request_json(
        self,
        url: str,
        *,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        json_body: Any = None,
    ) -> Any:
        text = await self.request(url, method=method, params=params, headers=headers, json_body=json_body)
        try:
            return json.loads(text)
        except ValueError as exc:
            raise PermanentTransportError(f"Invalid JSON body: {exc}", status=None, url=url) from exc

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
