"""NSCA payload encryption.

The acceptor and the client agree on an encryption method out of band (both
sides are configured with the same method code and password). The per
connection IV comes from the initialization packet. Method codes follow the
acceptor's numbering, which in turn follows the libmcrypt algorithm list.

Resolution happens in two steps so that configuration problems surface
before any network I/O:

1. ``prepare_cipher(method, password)`` picks the strategy for the method code
   and derives the key from the password (unknown codes, unavailable
   algorithms and unusable keys raise NSCAConfigurationError here).
2. ``CipherSuite.bind(iv)`` creates the EncryptionContext for one connection.

Block ciphers run in 8-bit CFB mode, as the acceptor does. The acceptor keeps
one cipher instance per connection, so an EncryptionContext is stream
stateful: every call to ``encrypt`` continues the keystream of the previous
call. The XOR method is stateless per buffer.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from types import ModuleType
from typing import Any

from Crypto.Cipher import AES, ARC2, CAST, DES, DES3, Blowfish

from nsca_client.protocol.exceptions import NSCAConfigurationError

logger = logging.getLogger(__name__)

CFB_SEGMENT_BITS = 8

Transform = Callable[[bytes], bytes]


class EncryptionMethod(IntEnum):
    """Encryption method codes understood by the acceptor."""

    NONE = 0
    XOR = 1
    DES = 2
    TRIPLE_DES = 3
    CAST128 = 4
    CAST256 = 5
    XTEA = 6
    THREEWAY = 7
    BLOWFISH = 8
    TWOFISH = 9
    LOKI97 = 10
    RC2 = 11
    ARCFOUR = 12
    RC6 = 13
    RIJNDAEL128 = 14
    RIJNDAEL192 = 15
    RIJNDAEL256 = 16
    MARS = 17
    PANAMA = 18
    WAKE = 19
    SERPENT = 20
    IDEA = 21
    ENIGMA = 22
    GOST = 23
    SAFER64 = 24
    SAFER128 = 25
    SAFERPLUS = 26


class EncryptionContext:
    """Cipher state bound to one password and one IV.

    Lives exactly as long as the connection it was negotiated on. ``encrypt``
    produces what the acceptor expects on the wire; ``decrypt`` runs the
    acceptor-side inverse with its own independent stream.
    """

    def __init__(self, method: EncryptionMethod, encryptor: Transform, decryptor: Transform) -> None:
        self.method: EncryptionMethod = method
        self._encryptor: Transform = encryptor
        self._decryptor: Transform = decryptor

    def encrypt(self, buffer: bytes) -> bytes:
        """Transform an outgoing buffer. Length preserving."""
        return self._encryptor(bytes(buffer))

    def decrypt(self, buffer: bytes) -> bytes:
        """Invert ``encrypt`` the way the acceptor does."""
        return self._decryptor(bytes(buffer))

    def __repr__(self) -> str:
        return f"EncryptionContext({self.method.name})"


class CipherStrategy(ABC):
    """One encryption method: key derivation plus context construction."""

    method: EncryptionMethod
    key_size: int = 0

    def derive_key(self, password: bytes) -> bytes:  # noqa: ARG002
        """Turn the shared password into key material for this method."""
        return b""

    @abstractmethod
    def create_context(self, key: bytes, iv: bytes) -> EncryptionContext:
        """Build the per-connection context."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.method.name}, key_size={self.key_size})"


class IdentityCipher(CipherStrategy):
    """Method 0: no encryption."""

    method = EncryptionMethod.NONE

    def create_context(self, key: bytes, iv: bytes) -> EncryptionContext:  # noqa: ARG002
        return EncryptionContext(self.method, bytes, bytes)


class XORCipher(CipherStrategy):
    """Method 1: XOR with the transmitted IV, then with the password.

    Both keys are repeated across the buffer. With an all-zero IV the
    transform reduces to the password keystream alone.
    """

    method = EncryptionMethod.XOR

    def derive_key(self, password: bytes) -> bytes:
        return password

    def create_context(self, key: bytes, iv: bytes) -> EncryptionContext:
        iv = bytes(iv)

        def transform(buffer: bytes) -> bytes:
            out = bytearray(buffer)
            for keystream in (iv, key):
                if not keystream:
                    continue
                size = len(keystream)
                for index in range(len(out)):
                    out[index] ^= keystream[index % size]
            return bytes(out)

        # XOR is its own inverse
        return EncryptionContext(self.method, transform, transform)


class BlockCipher(CipherStrategy):
    """Block cipher in 8-bit CFB mode, keyed from a zero padded password."""

    def __init__(self, method: EncryptionMethod, module: ModuleType, key_size: int) -> None:
        self.method = method
        self.module: ModuleType = module
        self.key_size = key_size

    @property
    def block_size(self) -> int:
        return int(self.module.block_size)

    def derive_key(self, password: bytes) -> bytes:
        """Copy the password into a zero-filled key buffer of ``key_size`` bytes."""
        key = password[: self.key_size].ljust(self.key_size, b"\x00")
        if self.module is DES3:
            try:
                DES3.adjust_key_parity(key)
            except ValueError as e:
                reason = "password derives a degenerate triple DES key"
                raise NSCAConfigurationError(reason, int(self.method)) from e
        return key

    def _new(self, key: bytes, iv: bytes) -> Any:
        return self.module.new(key, self.module.MODE_CFB, iv=iv, segment_size=CFB_SEGMENT_BITS)

    def create_context(self, key: bytes, iv: bytes) -> EncryptionContext:
        if len(iv) < self.block_size:
            reason = f"IV too short for {self.method.name} ({len(iv)} < {self.block_size})"
            raise NSCAConfigurationError(reason, int(self.method))
        cipher_iv = bytes(iv[: self.block_size])
        try:
            encryptor = self._new(key, cipher_iv)
            decryptor = self._new(key, cipher_iv)
        except ValueError as e:
            raise NSCAConfigurationError(str(e), int(self.method)) from e
        return EncryptionContext(self.method, encryptor.encrypt, decryptor.decrypt)


# Key sizes are the maximum key sizes libmcrypt reports for each algorithm,
# which is what the acceptor allocates.
_STRATEGIES: dict[EncryptionMethod, CipherStrategy] = {
    EncryptionMethod.NONE: IdentityCipher(),
    EncryptionMethod.XOR: XORCipher(),
    EncryptionMethod.DES: BlockCipher(EncryptionMethod.DES, DES, 8),
    EncryptionMethod.TRIPLE_DES: BlockCipher(EncryptionMethod.TRIPLE_DES, DES3, 24),
    EncryptionMethod.CAST128: BlockCipher(EncryptionMethod.CAST128, CAST, 16),
    EncryptionMethod.BLOWFISH: BlockCipher(EncryptionMethod.BLOWFISH, Blowfish, 56),
    EncryptionMethod.RC2: BlockCipher(EncryptionMethod.RC2, ARC2, 128),
    EncryptionMethod.RIJNDAEL128: BlockCipher(EncryptionMethod.RIJNDAEL128, AES, 32),
}

SUPPORTED_METHODS: tuple[EncryptionMethod, ...] = tuple(_STRATEGIES)


def resolve_strategy(method: int) -> CipherStrategy:
    """Map a method code to its strategy.

    Raises:
        NSCAConfigurationError: Unknown code, or an algorithm this client lacks

    """
    try:
        known = EncryptionMethod(method)
    except ValueError as e:
        reason = "unknown encryption method"
        raise NSCAConfigurationError(reason, method) from e

    strategy = _STRATEGIES.get(known)
    if strategy is None:
        reason = f"encryption method {known.name} is not supported"
        raise NSCAConfigurationError(reason, method)
    return strategy


@dataclass(frozen=True)
class CipherSuite:
    """A resolved strategy plus the key derived from the password.

    Safe to keep across reconnects; only ``bind`` output is per connection.
    """

    strategy: CipherStrategy
    key: bytes

    @property
    def method(self) -> EncryptionMethod:
        return self.strategy.method

    def bind(self, iv: bytes) -> EncryptionContext:
        """Create a fresh context for the IV of a new connection."""
        context = self.strategy.create_context(self.key, iv)
        logger.debug(
            "Derived %s encryption context",
            self.method.name,
            extra={"method": int(self.method), "iv_bytes": len(iv)},
        )
        return context


def _password_bytes(password: str | bytes) -> bytes:
    if isinstance(password, bytes):
        return password
    return password.encode("utf-8")


def prepare_cipher(method: int, password: str | bytes) -> CipherSuite:
    """Resolve the method and derive its key, failing fast on bad settings."""
    strategy = resolve_strategy(method)
    key = strategy.derive_key(_password_bytes(password))
    return CipherSuite(strategy, key)


def make_context(method: int, password: str | bytes, iv: bytes) -> EncryptionContext:
    """Build the EncryptionContext for one connection in a single call.

    Raises:
        NSCAConfigurationError: If the method or password cannot be used

    """
    return prepare_cipher(method, password).bind(iv)
