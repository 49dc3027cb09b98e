"""NSCA packet constants and dataclass structures.

Packet Overview:
- Initialization packet: acceptor → client, sent once right after accept
- Data packet: client → acceptor, one per check result, encrypted as a unit

Data packet layout (protocol version 3, network byte order):

    offset  size  field
    0       2     packet_version (3)
    2       2     reserved (0)
    4       4     crc32 (computed with this slot zeroed)
    8       4     timestamp (echoed from the initialization packet)
    12      2     return_code (state)
    14      64    host_name (null padded)
    78      128   svc_description (null padded, all zero for host checks)
    206     N     plugin_output (null padded, N = 512 or 4096)
    206+N   0-3   alignment padding to a 4-byte multiple
"""

from dataclasses import dataclass
from enum import IntEnum

# Initialization packet
TRANSMITTED_IV_SIZE = 128  # Random IV bytes generated by the acceptor
INIT_PACKET_SIZE = TRANSMITTED_IV_SIZE + 4  # IV + uint32 timestamp

# Data packet
NSCA_PACKET_VERSION = 3
MAX_HOSTNAME_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 128
MAX_PLUGINOUTPUT_LENGTH = 512  # Stock acceptor build
MAX_PLUGINOUTPUT_LENGTH_LARGE = 4096  # Acceptor built with large plugin output

DATA_PACKET_HEADER_FORMAT = ">hHIIh"  # version, reserved, crc32, timestamp, state
DATA_PACKET_HEADER_LENGTH = 14
CRC32_OFFSET = 4
CRC32_LENGTH = 4
HOST_OFFSET = DATA_PACKET_HEADER_LENGTH
SERVICE_OFFSET = HOST_OFFSET + MAX_HOSTNAME_LENGTH
OUTPUT_OFFSET = SERVICE_OFFSET + MAX_DESCRIPTION_LENGTH

SUPPORTED_OUTPUT_LENGTHS = (MAX_PLUGINOUTPUT_LENGTH, MAX_PLUGINOUTPUT_LENGTH_LARGE)


class CheckState(IntEnum):
    """Check result state codes."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


def data_packet_size(max_output_length: int = MAX_PLUGINOUTPUT_LENGTH) -> int:
    """Return the on-wire size of a data packet for the given output width.

    The acceptor reads sizeof(struct), which the C compiler pads to the
    4-byte alignment of the uint32 members.

    Example:
        >>> data_packet_size()
        720
        >>> data_packet_size(MAX_PLUGINOUTPUT_LENGTH_LARGE)
        4304

    """
    unpadded = OUTPUT_OFFSET + max_output_length
    return (unpadded + 3) & ~3


DATA_PACKET_SIZE = data_packet_size()


@dataclass
class InitializationPacket:
    """Per-connection handshake data sent by the acceptor.

    Attributes:
        iv: 128 random bytes, mixed into the encryption context
        timestamp: Acceptor clock (uint32), echoed back in every data packet

    """

    iv: bytes
    timestamp: int


@dataclass
class DataPacket:
    """Decoded data packet, as the acceptor sees it after decryption.

    Text fields have their null padding stripped.

    Attributes:
        version: Protocol version (3)
        crc32: Checksum carried in the packet
        timestamp: Echoed acceptor timestamp
        state: Check state code
        host: Host name
        service: Service description ("" for host checks)
        output: Plugin output
        checksum_valid: Whether the recomputed checksum matches crc32

    """

    version: int
    crc32: int
    timestamp: int
    state: int
    host: str
    service: str
    output: str
    checksum_valid: bool = True
