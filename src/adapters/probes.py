"""Network probe adapter.

Implements the core ProberPort for HTTP(S), raw TCP connect and ICMP ping.
Any scheme other than http, https or ping is checked with a TCP connect.
"""

from __future__ import annotations

import asyncio
import platform
from typing import Optional

import httpx

from core.errors import ProbeError
from core.models import HTTP_SCHEMES, PING_SCHEME, ProbeOptions, ProbeResult, TargetAddress


def build_ping_command(host: str, timeout: float, system: Optional[str] = None) -> list[str]:
    """Return a single-echo ping command for the current platform."""

    system = (system or platform.system()).lower()
    wait = max(1, int(timeout))
    if system == "darwin":
        return ["ping", "-c", "1", "-W", str(wait * 1000), host]
    if system == "windows":
        return ["ping", "-n", "1", "-w", str(wait * 1000), host]
    return ["ping", "-c", "1", "-W", str(wait), host]


class NetworkProber:
    """Runs one blocking-style health check per call."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        # A custom transport is only used by tests; production builds a fresh
        # connection per check.
        self._transport = transport

    async def probe(self, address: TargetAddress, options: ProbeOptions) -> ProbeResult:
        if address.scheme in HTTP_SCHEMES:
            return await self.check_http(address, options)
        if address.scheme == PING_SCHEME:
            return await self.check_ping(address, options)
        return await self.check_tcp(address, options)

    async def check_http(self, address: TargetAddress, options: ProbeOptions) -> ProbeResult:
        """GET the URL; any response counts unless a required keyword is missing."""

        headers = {
            # No keep-alive and no compression: every check opens a new
            # connection and reads the raw body.
            "Connection": "close",
            "Accept-Encoding": "identity",
        }
        extensions = {}
        if options.host_override:
            headers["Host"] = options.host_override
        if options.tls_name_override and address.scheme == "https":
            # Connect to addr but present another server name, e.g. to check one
            # GeoDNS backend directly.
            extensions["sni_hostname"] = options.tls_name_override

        client_kwargs = {
            "timeout": options.timeout,
            "follow_redirects": True,
            "limits": httpx.Limits(max_keepalive_connections=0),
        }
        if self._transport is not None:
            client_kwargs["transport"] = self._transport

        try:
            async with httpx.AsyncClient(**client_kwargs) as client:
                response = await client.get(address.url, headers=headers, extensions=extensions)
                body = response.text
        except httpx.HTTPError as exc:
            raise ProbeError(f"http(s) error, {type(exc).__name__}: {exc}") from exc

        if options.keyword and options.keyword not in body:
            raise ProbeError(f"keyword '{options.keyword}' not found")
        return ProbeResult(healthy=True)

    async def check_tcp(self, address: TargetAddress, options: ProbeOptions) -> ProbeResult:
        """Open and immediately close a TCP connection."""

        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(address.host, address.port),
                timeout=options.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ProbeError(f"tcp conn error, timeout after {options.timeout}s") from exc
        except (OSError, UnicodeError) as exc:
            # UnicodeError comes from the idna codec for malformed host labels.
            raise ProbeError(f"tcp conn error, {exc}") from exc

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return ProbeResult(healthy=True)

    async def check_ping(self, address: TargetAddress, options: ProbeOptions) -> ProbeResult:
        """Send one ICMP echo using the system ping binary."""

        cmd = build_ping_command(address.host, options.timeout)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise ProbeError(f"ping error, {exc}") from exc

        try:
            returncode = await asyncio.wait_for(proc.wait(), timeout=options.timeout + 2)
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise ProbeError("ping error, timeout") from exc

        if returncode != 0:
            return ProbeResult(healthy=False, message="host unreachable")
        return ProbeResult(healthy=True)
