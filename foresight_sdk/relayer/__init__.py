"""
Relayer module for the Foresight SDK.

The relayer fronts the confidential-computation backend (encrypted inputs)
and the decryption authority (user and public decryption). Transports are
interchangeable: ``HttpTransport`` talks to a real relayer, ``StubTransport``
keeps everything in memory.
"""
from .exceptions import (
    RelayerError, RelayerConnectionError, RelayerResponseError,
    RelayerTimeoutError, RelayerErrorLabel
)
from .transport import RelayerTransport, get_transport, get_http_transport, get_stub_transport

__all__ = [
    'RelayerTransport', 'get_transport', 'get_http_transport', 'get_stub_transport',
    'RelayerError', 'RelayerConnectionError', 'RelayerResponseError',
    'RelayerTimeoutError', 'RelayerErrorLabel'
]
