"""
Printer connection management for Feed Printer.

This module owns:
- Two transports (USB bulk, raw TCP on port 9100) with their flush policies
- PrinterConnection: the one process-wide handle on the physical printer,
  built explicitly at startup and passed to whoever prints

A job is first replayed into an in-memory ESC/POS command buffer
(python-escpos' Dummy printer), then the buffered bytes are sent over the
transport on commit. USB opens and closes the device for every job. The
network transport, by default, keeps one socket open for the life of the
connection and reuses it across jobs; with network_keepalive=false it behaves
per-job like USB.
"""

from __future__ import annotations

import enum
import logging
import threading
from typing import Any, Optional, Protocol

from escpos.exceptions import Error as EscposError
from escpos.printer import Dummy, Network, Usb

from feed_printer.core.config import PrinterSettings
from feed_printer.core.errors import TransportError, TransportUnreachable
from feed_printer.printing.compose import PrintJob

logger = logging.getLogger(__name__)

NETWORK_PORT = 9100


class Transport(Protocol):
    name: str
    supports_persistent_stream: bool

    @property
    def is_open(self) -> bool: ...

    def open(self) -> None: ...

    def send(self, data: bytes) -> None: ...

    def commit(self) -> None: ...

    def close(self) -> None: ...


class UsbTransport:
    """
    USB bulk endpoint. One open/commit pair per job; commit closes the device.
    """

    name = "usb"
    supports_persistent_stream = False

    def __init__(self, vendor_id: int, product_id: int, profile: Optional[str] = None):
        self.vendor_id = vendor_id
        self.product_id = product_id
        self.profile = profile
        self._device: Any = None

    @property
    def is_open(self) -> bool:
        return self._device is not None

    def open(self) -> None:
        kwargs = {"profile": self.profile} if self.profile else {}
        device = Usb(self.vendor_id, self.product_id, **kwargs)
        try:
            device.open()
        except (EscposError, OSError) as e:
            raise TransportUnreachable(
                f"USB printer {self.vendor_id:#06x}:{self.product_id:#06x} not reachable: {e}"
            ) from e
        self._device = device

    def send(self, data: bytes) -> None:
        if self._device is None:
            raise TransportError("USB device is not open")
        try:
            self._device._raw(data)
        except (EscposError, OSError) as e:
            raise TransportError(f"USB write failed: {e}") from e

    def commit(self) -> None:
        self.close()

    def close(self) -> None:
        device, self._device = self._device, None
        if device is None:
            return
        try:
            device.close()
        except (EscposError, OSError) as e:
            logger.warning(f"Error closing USB printer: {e}")

    def __repr__(self) -> str:
        return f"UsbTransport({self.vendor_id:#06x}:{self.product_id:#06x})"


class NetworkTransport:
    """
    Raw TCP to host:9100. With keepalive the socket is opened by the first
    acquire and reused by every later job until close().
    """

    name = "network"

    def __init__(self, host: str, keepalive: bool = True, profile: Optional[str] = None):
        self.host = host
        self.port = NETWORK_PORT
        self.keepalive = keepalive
        self.profile = profile
        self._stream: Any = None

    @property
    def supports_persistent_stream(self) -> bool:  # type: ignore[override]
        return self.keepalive

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def open(self) -> None:
        if self._stream is not None:
            return
        kwargs = {"profile": self.profile} if self.profile else {}
        stream = Network(self.host, self.port, **kwargs)
        try:
            stream.open()
        except (EscposError, OSError) as e:
            raise TransportUnreachable(f"Network printer {self.host}:{self.port} not reachable: {e}") from e
        self._stream = stream
        logger.info(f"Printer network connected ({self.host}:{self.port})")

    def send(self, data: bytes) -> None:
        if self._stream is None:
            raise TransportError("Network printer socket is not open")
        try:
            self._stream._raw(data)
        except (EscposError, OSError) as e:
            raise TransportError(f"Network write to {self.host}:{self.port} failed: {e}") from e

    def commit(self) -> None:
        if not self.keepalive:
            self.close()

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.close()
        except (EscposError, OSError) as e:
            logger.warning(f"Error closing network printer socket: {e}")

    def __repr__(self) -> str:
        mode = "persistent" if self.keepalive else "per-job"
        return f"NetworkTransport({self.host}:{self.port}, {mode})"


def transport_from_settings(settings: PrinterSettings) -> Transport:
    if settings.printer_type == "usb":
        return UsbTransport(settings.usb_vendor_id, settings.usb_product_id, settings.printer_profile)
    if settings.printer_type == "network":
        return NetworkTransport(settings.network_ip, settings.network_keepalive, settings.printer_profile)
    raise TransportError(f"Unsupported printer type: {settings.printer_type}")


class ConnectionState(enum.Enum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"


class PrinterConnection:
    """
    The process-wide printer handle.

    acquire/write/commit are the low-level steps; print_job() runs all three
    under the connection's lock so concurrent callers never interleave jobs.
    """

    def __init__(self, transport: Transport, profile: Optional[str] = None):
        self.transport = transport
        self.profile = profile
        self.state = ConnectionState.CLOSED
        self._buffer: Optional[Dummy] = None
        self._lock = threading.RLock()

    @classmethod
    def from_settings(cls, settings: PrinterSettings) -> "PrinterConnection":
        return cls(transport_from_settings(settings), profile=settings.printer_profile)

    def _new_buffer(self) -> Dummy:
        if self.profile:
            return Dummy(profile=self.profile)
        return Dummy()

    def acquire(self) -> "PrinterConnection":
        """
        Open the transport (or reuse a persistent one) and start a fresh command buffer.
        """
        with self._lock:
            if self.state is ConnectionState.OPEN and self.transport.is_open:
                self._buffer = self._new_buffer()
                return self
            self.state = ConnectionState.OPENING
            try:
                self.transport.open()
            except TransportError:
                self.state = ConnectionState.CLOSED
                raise
            self.state = ConnectionState.OPEN
            self._buffer = self._new_buffer()
            return self

    def write(self, job: PrintJob) -> None:
        """
        Replay the job's directives into the command buffer, in order.
        """
        with self._lock:
            if self.state is not ConnectionState.OPEN or self._buffer is None:
                raise TransportError("Printer connection is not open")
            try:
                directives = job.consume()
            except RuntimeError as e:
                raise TransportError(str(e)) from e
            for directive in directives:
                try:
                    directive.apply(self._buffer)
                except (EscposError, ValueError, OSError) as e:
                    raise TransportError(f"Could not encode {type(directive).__name__}: {e}") from e

    def commit(self) -> int:
        """
        Flush the command buffer over the transport. Returns the byte count sent.
        """
        with self._lock:
            if self.state is not ConnectionState.OPEN or self._buffer is None:
                raise TransportError("Nothing to commit; printer connection is not open")
            data = self._buffer.output
            self._buffer = None
            self.transport.send(data)
            self.transport.commit()
            if not self.transport.is_open:
                self.state = ConnectionState.CLOSED
            return len(data)

    def print_job(self, job: PrintJob) -> int:
        """
        acquire + write + commit as one serialized unit. On failure the job is
        abandoned and the transport is closed so the next job starts clean.
        """
        with self._lock:
            try:
                self.acquire()
                self.write(job)
                sent = self.commit()
            except Exception:
                self._abandon()
                raise
            logger.info(f"Printed {job.kind} job ({sent} bytes via {self.transport.name})")
            return sent

    def _abandon(self) -> None:
        self._buffer = None
        self.transport.close()
        self.state = ConnectionState.CLOSED

    def close(self) -> None:
        with self._lock:
            self._abandon()

    def __enter__(self) -> "PrinterConnection":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


__all__ = [
    "NETWORK_PORT",
    "ConnectionState",
    "NetworkTransport",
    "PrinterConnection",
    "Transport",
    "UsbTransport",
    "transport_from_settings",
]
