"""TCP connection to the simulation server.

The protocol has no framing: every ``send`` writes one JSON document and
every ``receive`` returns whatever the next read produced (up to
``max_chunk_size`` bytes). This works only as long as each server write
arrives as one read. ``newline_framing`` appends a newline to outbound
documents for servers that split on it; payloads are unchanged otherwise.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from agentworld.logging_utils import ConsoleLogger

DEFAULT_MAX_CHUNK_SIZE = 64 * 1024


class ConnectError(ConnectionError):
    """Could not establish the connection (DNS, refused, handshake)."""


class StreamClosed(ConnectionError):
    """The peer closed the stream, or no stream is open."""


class TransportError(IOError):
    """Read or write failed on an open stream."""


class ConnectionManager:
    """Owns the single duplex stream to the server.

    ``receive`` and ``send`` share one lock, so at most one read or write is
    outstanding at any time.
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
        read_timeout: Optional[float] = None,
        connect_attempts: int = 1,
        newline_framing: bool = False,
        logger: Optional[ConsoleLogger] = None,
    ) -> None:
        if connect_attempts < 1:
            raise ValueError("connect_attempts must be >= 1")
        self.host = host
        self.port = port
        self.max_chunk_size = max_chunk_size
        self.read_timeout = read_timeout
        self.connect_attempts = connect_attempts
        self.newline_framing = newline_framing
        self.logger = logger or ConsoleLogger("Network")
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    async def __aenter__(self) -> "ConnectionManager":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    async def _open_once(self) -> None:
        try:
            self._reader, self._writer = await asyncio.open_connection(self.host, self.port)
        except OSError as exc:
            self.logger.error(f"Connection to {self.host}:{self.port} failed: {exc}")
            raise ConnectError(f"Could not connect to {self.host}:{self.port}: {exc}") from exc

    async def connect(self) -> None:
        """Open the stream, retrying up to ``connect_attempts`` times.

        Raises:
            ConnectError: If every attempt fails
        """
        if self.is_connected:
            return
        self.logger.debug(f"Establishing connection to {self.host}:{self.port}")
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(ConnectError),
            stop=stop_after_attempt(self.connect_attempts),
            wait=wait_exponential(multiplier=0.5, max=10),
            reraise=True,
        ):
            with attempt:
                number = attempt.retry_state.attempt_number
                if number > 1:
                    self.logger.info(f"Connect retry {number}/{self.connect_attempts}")
                await self._open_once()
        self.logger.success(f"Connection established to {self.host}:{self.port}")

    async def receive(self) -> bytes:
        """Wait for the next inbound chunk.

        Raises:
            StreamClosed: The peer closed the stream, or there is no stream
            TransportError: The read failed or timed out
        """
        async with self._lock:
            if self._reader is None:
                raise StreamClosed("No active connection")
            try:
                if self.read_timeout is None:
                    data = await self._reader.read(self.max_chunk_size)
                else:
                    data = await asyncio.wait_for(
                        self._reader.read(self.max_chunk_size), timeout=self.read_timeout
                    )
            except asyncio.TimeoutError as exc:
                raise TransportError(f"No data within {self.read_timeout}s") from exc
            except OSError as exc:
                raise TransportError(f"Receive failed: {exc}") from exc
        if not data:
            raise StreamClosed("Connection closed by remote peer")
        self.logger.debug(f"Received {len(data)} bytes")
        return data

    async def send(self, payload: bytes) -> None:
        """Write one complete JSON document.

        Raises:
            StreamClosed: There is no stream
            TransportError: The write failed
        """
        async with self._lock:
            if self._writer is None:
                raise StreamClosed("No active connection")
            data = payload + b"\n" if self.newline_framing else payload
            self.logger.debug(f"Sending: {payload.decode('utf-8', errors='replace')}")
            try:
                self._writer.write(data)
                await self._writer.drain()
            except OSError as exc:
                raise TransportError(f"Send failed: {exc}") from exc

    async def disconnect(self) -> None:
        """Close the stream. Calling it again is a no-op."""
        writer, self._writer, self._reader = self._writer, None, None
        if writer is None:
            return
        self.logger.debug(f"Disconnecting from {self.host}:{self.port}")
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as exc:
            self.logger.debug(f"Error while closing stream: {exc}")


__all__ = [
    "ConnectionManager",
    "ConnectError",
    "StreamClosed",
    "TransportError",
    "DEFAULT_MAX_CHUNK_SIZE",
]
