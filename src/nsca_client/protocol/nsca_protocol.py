"""NSCA protocol encoder/decoder implementation.

This module implements the initialization packet parser and the data packet
builder. Decoders for the acceptor's side of the exchange are included so
that packets can be verified end to end without a real acceptor.
"""

from __future__ import annotations

import logging
import struct

from nsca_client.metrics import registry
from nsca_client.protocol.checksum import insert_checksum_in_place, verify_checksum
from nsca_client.protocol.exceptions import NSCAValidationError, PacketDecodeError
from nsca_client.protocol.packet_types import (
    DATA_PACKET_HEADER_FORMAT,
    HOST_OFFSET,
    INIT_PACKET_SIZE,
    MAX_DESCRIPTION_LENGTH,
    MAX_HOSTNAME_LENGTH,
    MAX_PLUGINOUTPUT_LENGTH,
    NSCA_PACKET_VERSION,
    OUTPUT_OFFSET,
    SERVICE_OFFSET,
    TRANSMITTED_IV_SIZE,
    CheckState,
    DataPacket,
    InitializationPacket,
    data_packet_size,
)

TEXT_ENCODING = "utf-8"

logger = logging.getLogger(__name__)


class NSCAProtocol:
    """NSCA protocol encoder/decoder.

    Provides static methods for encoding and decoding NSCA packets.
    All methods are stateless - no instance state maintained.
    """

    @staticmethod
    def decode_init_packet(data: bytes) -> InitializationPacket:
        """Parse the 132-byte initialization packet sent by the acceptor.

        Structure:
        - Bytes 0-127: IV
        - Bytes 128-131: timestamp (big-endian uint32)

        Args:
            data: Exactly INIT_PACKET_SIZE bytes

        Returns:
            InitializationPacket with iv and timestamp

        Raises:
            PacketDecodeError: If data is not exactly one initialization packet

        Example:
            >>> packet = NSCAProtocol.decode_init_packet(bytes(128) + (1000).to_bytes(4, "big"))
            >>> packet.timestamp
            1000

        """
        if len(data) < INIT_PACKET_SIZE:
            error_reason = "too_short"
            raise PacketDecodeError(error_reason, data)
        if len(data) > INIT_PACKET_SIZE:
            error_reason = "too_long"
            raise PacketDecodeError(error_reason, data)

        iv = bytes(data[:TRANSMITTED_IV_SIZE])
        timestamp = int.from_bytes(data[TRANSMITTED_IV_SIZE:INIT_PACKET_SIZE], "big")

        logger.debug("Parsed initialization packet: timestamp=%d", timestamp)

        return InitializationPacket(iv=iv, timestamp=timestamp)

    @staticmethod
    def encode_init_packet(iv: bytes, timestamp: int) -> bytes:
        """Encode an initialization packet (acceptor side).

        Args:
            iv: 128 IV bytes
            timestamp: Acceptor clock as uint32

        Returns:
            132-byte packet

        """
        if len(iv) != TRANSMITTED_IV_SIZE:
            msg = f"IV must be {TRANSMITTED_IV_SIZE} bytes, got {len(iv)}"
            raise ValueError(msg)
        return bytes(iv) + struct.pack(">I", timestamp & 0xFFFFFFFF)

    @staticmethod
    def encode_field(value: str | bytes | None, width: int, field_name: str = "field") -> bytes:
        """Encode text into a fixed-width, null-padded field.

        Values longer than ``width`` bytes are cut to exactly ``width`` bytes
        (logged and counted, never fatal). Shorter values are padded with
        NUL bytes.

        Example:
            >>> NSCAProtocol.encode_field("web01", 8)
            b'web01\\x00\\x00\\x00'

        """
        if value is None:
            raw = b""
        elif isinstance(value, bytes):
            raw = value
        else:
            raw = value.encode(TEXT_ENCODING)

        if len(raw) > width:
            logger.warning(
                "Truncating %s from %d to %d bytes",
                field_name,
                len(raw),
                width,
                extra={"field": field_name, "length": len(raw), "width": width},
            )
            registry.record_field_truncated(field_name)
            raw = raw[:width]

        return raw.ljust(width, b"\x00")

    @staticmethod
    def validate_state(state: int) -> CheckState:
        """Coerce a state code into CheckState.

        Raises:
            NSCAValidationError: If the code is not 0-3

        """
        try:
            return CheckState(state)
        except ValueError as e:
            reason = f"state code {state!r} is not one of OK/WARNING/CRITICAL/UNKNOWN"
            raise NSCAValidationError(reason, "state") from e

    @staticmethod
    def build_data_packet(
        timestamp: int,
        state: int,
        host: str | bytes,
        service: str | bytes | None = None,
        output: str | bytes | None = None,
        *,
        max_output_length: int = MAX_PLUGINOUTPUT_LENGTH,
    ) -> bytearray:
        """Lay out an unencrypted data packet with a zeroed checksum slot.

        Steps:
        1. Validate the state code
        2. Pack version, reserved, zero checksum, timestamp, state
        3. Append host, service and output fields at their fixed widths
        4. Zero-fill alignment padding

        Args:
            timestamp: Timestamp from the initialization packet
            state: Check state code (0-3)
            host: Host name
            service: Service description (None or "" for a host check)
            output: Plugin output
            max_output_length: Output field width the acceptor was built with

        Returns:
            Mutable packet buffer, ready for ``finalize``

        """
        check_state = NSCAProtocol.validate_state(state)

        packet = bytearray(data_packet_size(max_output_length))
        struct.pack_into(
            DATA_PACKET_HEADER_FORMAT,
            packet,
            0,
            NSCA_PACKET_VERSION,
            0,
            0,
            timestamp & 0xFFFFFFFF,
            int(check_state),
        )
        packet[HOST_OFFSET:SERVICE_OFFSET] = NSCAProtocol.encode_field(host, MAX_HOSTNAME_LENGTH, "host")
        packet[SERVICE_OFFSET:OUTPUT_OFFSET] = NSCAProtocol.encode_field(
            service,
            MAX_DESCRIPTION_LENGTH,
            "service",
        )
        packet[OUTPUT_OFFSET : OUTPUT_OFFSET + max_output_length] = NSCAProtocol.encode_field(
            output,
            max_output_length,
            "output",
        )

        logger.debug(
            "Built data packet: state=%s, size=%d",
            check_state.name,
            len(packet),
            extra={"state": int(check_state), "bytes": len(packet)},
        )

        return packet

    @staticmethod
    def finalize(packet: bytearray) -> bytes:
        """Compute the checksum over the packet and write it into its slot."""
        checksum = insert_checksum_in_place(packet)
        logger.debug("Finalized data packet: crc32=0x%08x", checksum)
        return bytes(packet)

    @staticmethod
    def encode_data_packet(
        timestamp: int,
        state: int,
        host: str | bytes,
        service: str | bytes | None = None,
        output: str | bytes | None = None,
        *,
        max_output_length: int = MAX_PLUGINOUTPUT_LENGTH,
    ) -> bytes:
        """Build and finalize a data packet in one step (still unencrypted)."""
        packet = NSCAProtocol.build_data_packet(
            timestamp,
            state,
            host,
            service,
            output,
            max_output_length=max_output_length,
        )
        return NSCAProtocol.finalize(packet)

    @staticmethod
    def decode_data_packet(
        data: bytes,
        *,
        max_output_length: int = MAX_PLUGINOUTPUT_LENGTH,
    ) -> DataPacket:
        """Decode a decrypted data packet the way the acceptor does.

        The checksum is recomputed and reported in ``checksum_valid`` rather
        than raised, so callers can inspect corrupted packets.

        Raises:
            PacketDecodeError: If the size or protocol version is wrong

        """
        expected_size = data_packet_size(max_output_length)
        if len(data) != expected_size:
            error_reason = "too_short" if len(data) < expected_size else "too_long"
            raise PacketDecodeError(error_reason, data)

        version, _reserved, crc32, timestamp, state = struct.unpack_from(DATA_PACKET_HEADER_FORMAT, data, 0)
        if version != NSCA_PACKET_VERSION:
            error_reason = "invalid_version"
            raise PacketDecodeError(error_reason, data)

        def text(start: int, end: int) -> str:
            return data[start:end].split(b"\x00", 1)[0].decode(TEXT_ENCODING, errors="replace")

        return DataPacket(
            version=version,
            crc32=crc32,
            timestamp=timestamp,
            state=state,
            host=text(HOST_OFFSET, SERVICE_OFFSET),
            service=text(SERVICE_OFFSET, OUTPUT_OFFSET),
            output=text(OUTPUT_OFFSET, OUTPUT_OFFSET + max_output_length),
            checksum_valid=verify_checksum(data),
        )
