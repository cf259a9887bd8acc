"""
Transport layer for the Phidget network protocol.

Available transports:
- AsyncTcpTransport: asyncio TCP connection to the network service
- MockTransport: Mock transport for testing without a service

Example:
    >>> from phidgetnet.transport import AsyncTcpTransport
    >>> async with AsyncTcpTransport("192.168.1.10", 5001) as transport:
    ...     await transport.write(b"995 authenticate, version=1.0.10\\r\\n")
    ...     chunk = await transport.read_chunk()
"""

from phidgetnet.transport.abc import AbstractTransport
from phidgetnet.transport.mock import MockTransport
from phidgetnet.transport.tcp_async import AsyncTcpTransport

__all__ = [
    "AbstractTransport",
    "AsyncTcpTransport",
    "MockTransport",
]
