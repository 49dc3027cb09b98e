"""NSCA protocol package - packet encoding, checksums and encryption.

Public API:
- Wire constants and dataclasses (InitializationPacket, DataPacket, CheckState)
- Protocol encoder/decoder (NSCAProtocol)
- Encryption (EncryptionMethod, EncryptionContext, make_context, prepare_cipher)
"""

from nsca_client.protocol.encryption import (
    SUPPORTED_METHODS,
    CipherSuite,
    EncryptionContext,
    EncryptionMethod,
    make_context,
    prepare_cipher,
)
from nsca_client.protocol.exceptions import (
    NSCAConfigurationError,
    NSCAError,
    NSCAValidationError,
    PacketDecodeError,
)
from nsca_client.protocol.nsca_protocol import NSCAProtocol
from nsca_client.protocol.packet_types import (
    DATA_PACKET_SIZE,
    INIT_PACKET_SIZE,
    MAX_DESCRIPTION_LENGTH,
    MAX_HOSTNAME_LENGTH,
    MAX_PLUGINOUTPUT_LENGTH,
    MAX_PLUGINOUTPUT_LENGTH_LARGE,
    NSCA_PACKET_VERSION,
    TRANSMITTED_IV_SIZE,
    CheckState,
    DataPacket,
    InitializationPacket,
    data_packet_size,
)

__all__ = [
    # Protocol encoder/decoder
    "NSCAProtocol",
    # Encryption
    "SUPPORTED_METHODS",
    "CipherSuite",
    "EncryptionContext",
    "EncryptionMethod",
    "make_context",
    "prepare_cipher",
    # Exceptions
    "NSCAConfigurationError",
    "NSCAError",
    "NSCAValidationError",
    "PacketDecodeError",
    # Wire constants
    "DATA_PACKET_SIZE",
    "INIT_PACKET_SIZE",
    "MAX_DESCRIPTION_LENGTH",
    "MAX_HOSTNAME_LENGTH",
    "MAX_PLUGINOUTPUT_LENGTH",
    "MAX_PLUGINOUTPUT_LENGTH_LARGE",
    "NSCA_PACKET_VERSION",
    "TRANSMITTED_IV_SIZE",
    # Dataclasses
    "CheckState",
    "DataPacket",
    "InitializationPacket",
    "data_packet_size",
]
