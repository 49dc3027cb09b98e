"""
Checksum utilities for NSCA data packets.

The acceptor verifies a standard CRC-32 (the zlib polynomial) computed over
the whole decrypted packet with the 4-byte checksum slot set to zero. The
checksum is written big-endian into bytes 4..8.

This module centralizes that logic so the builder and the peer-side decoder
share one implementation.
"""

from __future__ import annotations

import zlib
from typing import Final

from nsca_client.protocol.packet_types import CRC32_LENGTH, CRC32_OFFSET, DATA_PACKET_HEADER_LENGTH

_ZERO_SLOT: Final[bytes] = b"\x00" * CRC32_LENGTH


def calculate_crc32(packet: bytes | bytearray) -> int:
    """
    Compute the packet checksum with the checksum slot treated as zero.

    The bytes currently in the slot are ignored, so the function can be used
    both before insertion and for verification of a received packet.

    Args:
        packet: Complete (unencrypted) data packet

    Returns:
        The CRC-32 value (0 to 2**32 - 1)
    """
    if len(packet) < DATA_PACKET_HEADER_LENGTH:
        raise ValueError("Packet too short to compute checksum")

    crc = zlib.crc32(packet[:CRC32_OFFSET])
    crc = zlib.crc32(_ZERO_SLOT, crc)
    crc = zlib.crc32(packet[CRC32_OFFSET + CRC32_LENGTH :], crc)
    return crc & 0xFFFFFFFF


def insert_checksum_in_place(packet: bytearray) -> int:
    """
    Compute and write the checksum into a mutable packet.

    Args:
        packet: Mutable packet buffer

    Returns:
        The checksum that was written
    """
    checksum = calculate_crc32(packet)
    packet[CRC32_OFFSET : CRC32_OFFSET + CRC32_LENGTH] = checksum.to_bytes(CRC32_LENGTH, "big")
    return checksum


def read_checksum(packet: bytes | bytearray) -> int:
    """Return the checksum currently stored in the packet."""
    return int.from_bytes(packet[CRC32_OFFSET : CRC32_OFFSET + CRC32_LENGTH], "big")


def verify_checksum(packet: bytes | bytearray) -> bool:
    """Check the stored checksum against a recomputation."""
    return read_checksum(packet) == calculate_crc32(packet)
