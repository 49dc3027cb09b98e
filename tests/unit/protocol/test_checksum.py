"""Unit tests for the data packet CRC-32."""

import zlib

import pytest

from nsca_client.protocol.checksum import (
    calculate_crc32,
    insert_checksum_in_place,
    read_checksum,
    verify_checksum,
)
from nsca_client.protocol.nsca_protocol import NSCAProtocol


@pytest.mark.unit
def test_crc_ignores_current_slot_contents() -> None:
    """The stored checksum never feeds into its own computation."""
    packet = bytearray(NSCAProtocol.build_data_packet(1, 0, "web01", "disk", "ok"))
    before = calculate_crc32(packet)
    packet[4:8] = b"\xde\xad\xbe\xef"
    assert calculate_crc32(packet) == before


@pytest.mark.unit
def test_crc_matches_zlib_over_zeroed_packet() -> None:
    packet = bytearray(NSCAProtocol.build_data_packet(7, 2, "web01", "disk", "95% full"))
    assert calculate_crc32(packet) == zlib.crc32(bytes(packet)) & 0xFFFFFFFF


@pytest.mark.unit
def test_insert_then_verify() -> None:
    packet = NSCAProtocol.build_data_packet(7, 1, "h", "s", "o")
    checksum = insert_checksum_in_place(packet)
    assert read_checksum(packet) == checksum
    assert verify_checksum(packet)


@pytest.mark.unit
def test_single_bit_flip_detected() -> None:
    packet = NSCAProtocol.build_data_packet(7, 1, "h", "s", "o")
    _ = insert_checksum_in_place(packet)
    packet[-1] ^= 0x01
    assert not verify_checksum(packet)


@pytest.mark.unit
def test_short_packet_rejected() -> None:
    with pytest.raises(ValueError, match="too short"):
        _ = calculate_crc32(b"\x00" * 10)
