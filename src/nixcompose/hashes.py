# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parsing and rendering of Nix content hashes.

Nix accepts a hash in four textual encodings:

* ``base16``: lowercase hexadecimal, optionally prefixed with ``algo:``.
* ``nix32``: the Nix flavour of base-32 (custom alphabet, least significant
  bits first), optionally prefixed with ``algo:``.
* ``base64``: standard padded base-64, optionally prefixed with ``algo:``.
* ``sri``: Subresource Integrity form ``algo-<base64>``.

When the prefix is absent the algorithm must be supplied by the caller; the
encoding is then inferred from the length of the text.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

NIX32_ALPHABET: Final[str] = "0123456789abcdfghijklmnpqrsvwxyz"
_NIX32_LOOKUP: Final[dict[str, int]] = {char: index for index, char in enumerate(NIX32_ALPHABET)}
_HEX_DIGITS: Final[frozenset[str]] = frozenset("0123456789abcdef")


class HashAlgo(str, Enum):
    """Enumerate hash algorithms understood by Nix."""

    BLAKE3 = "blake3"
    MD5 = "md5"
    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA512 = "sha512"

    @property
    def size(self) -> int:
        """Return the digest size in bytes."""

        return _DIGEST_SIZES[self]

    @classmethod
    def from_prefix(cls, prefix: str) -> HashAlgo:
        """Return the algorithm named by ``prefix``.

        Raises:
            UnknownPrefixError: If ``prefix`` does not name a known algorithm.
        """

        try:
            return cls(prefix)
        except ValueError as exc:
            raise UnknownPrefixError(prefix) from exc


_DIGEST_SIZES: Final[dict[HashAlgo, int]] = {
    HashAlgo.BLAKE3: 32,
    HashAlgo.MD5: 16,
    HashAlgo.SHA1: 20,
    HashAlgo.SHA256: 32,
    HashAlgo.SHA512: 64,
}

HASH_TYPES_LIST: Final[str] = ", ".join(f"`{algo.value}`" for algo in HashAlgo)


class HashFormat(str, Enum):
    """Enumerate textual encodings of a hash."""

    BASE16 = "base16"
    NIX32 = "nix32"
    BASE64 = "base64"
    SRI = "sri"


class HashParseError(ValueError):
    """Base class for hash parsing failures."""


class MissingPrefixError(HashParseError):
    """Raised when no algorithm is given by the text or by the caller."""

    def __init__(self) -> None:
        super().__init__("hash does not specify a type, which is not otherwise known from context")


class UnknownPrefixError(HashParseError):
    """Raised when the algorithm prefix is not recognised."""

    def __init__(self, found: str) -> None:
        super().__init__(f"hash has an unknown prefix `{found}`, expected one of {HASH_TYPES_LIST}")
        self.found = found


class PrefixMismatchError(HashParseError):
    """Raised when the prefix names a different algorithm than requested."""

    def __init__(self, want: HashAlgo, found: HashAlgo) -> None:
        super().__init__(f"attempted to parse a hash of type `{want.value}`, found `{found.value}` instead")
        self.want = want
        self.found = found


class WrongLengthError(HashParseError):
    """Raised when the text length matches none of the encodings."""

    def __init__(self, algo: HashAlgo, n_chars: int) -> None:
        super().__init__(f"hash of type `{algo.value}` with length `{n_chars}` does not match any encoding")
        self.algo = algo
        self.n_chars = n_chars


class InvalidHashError(HashParseError):
    """Raised when decoded bytes do not have the digest size of the algorithm."""

    def __init__(self, algo: HashAlgo, n_bytes: int) -> None:
        super().__init__(
            f"decoded bytes are not a valid `{algo.value}` hash, expected {algo.size} bytes, found {n_bytes}",
        )
        self.algo = algo
        self.n_bytes = n_bytes


class InvalidEncodingError(HashParseError):
    """Raised when the text contains characters outside the encoding."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"hash has an invalid encoding: {detail}")


def nix32_encoded_length(size: int) -> int:
    """Return the number of nix32 characters needed for ``size`` bytes."""

    return (size * 8 - 1) // 5 + 1


def nix32_encode(data: bytes) -> str:
    """Encode ``data`` with the Nix base-32 scheme."""

    if not data:
        return ""
    length = len(data)
    chars: list[str] = []
    for position in range(nix32_encoded_length(length) - 1, -1, -1):
        bit = position * 5
        index, shift = divmod(bit, 8)
        value = data[index] >> shift
        if index + 1 < length:
            value |= data[index + 1] << (8 - shift)
        chars.append(NIX32_ALPHABET[value & 0x1F])
    return "".join(chars)


def nix32_decode(text: str, size: int) -> bytes:
    """Decode nix32 ``text`` into ``size`` bytes.

    Raises:
        InvalidEncodingError: If ``text`` contains foreign characters or
            encodes more bits than ``size`` bytes can hold.
    """

    out = bytearray(size)
    for offset, char in enumerate(reversed(text)):
        digit = _NIX32_LOOKUP.get(char)
        if digit is None:
            raise InvalidEncodingError(f"invalid nix32 symbol {char!r}")
        index, shift = divmod(offset * 5, 8)
        out[index] |= (digit << shift) & 0xFF
        carry = digit >> (8 - shift)
        if index + 1 < size:
            out[index + 1] |= carry
        elif carry:
            raise InvalidEncodingError("nix32 text has trailing non-zero bits")
    return bytes(out)


@dataclass(frozen=True, slots=True)
class NixHash:
    """A digest tagged with its algorithm and, when parsed, its source format."""

    algo: HashAlgo
    digest: bytes
    format: HashFormat | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if len(self.digest) != self.algo.size:
            raise InvalidHashError(self.algo, len(self.digest))

    @classmethod
    def from_data(cls, data: bytes, algo: HashAlgo = HashAlgo.SHA256) -> NixHash:
        """Hash ``data`` with ``algo`` using :mod:`hashlib`.

        Raises:
            ValueError: If ``hashlib`` does not provide ``algo``.
        """

        if algo is HashAlgo.BLAKE3:
            raise ValueError("blake3 digests are not available from hashlib")
        return cls(algo, hashlib.new(algo.value, data).digest())

    @classmethod
    def parse(cls, text: str, algo: HashAlgo | None = None) -> NixHash:
        """Parse ``text`` in any of the supported encodings.

        Args:
            text: Hash text, optionally prefixed with ``algo:`` or ``algo-``.
            algo: Algorithm known from context; must agree with any prefix.

        Returns:
            NixHash: Parsed hash remembering the encoding it was read from.
        """

        prefix, is_sri, body = _split_prefix(text)
        if prefix is None:
            if algo is None:
                raise MissingPrefixError()
            return cls._decode(body, algo, is_sri=is_sri)
        if algo is not None and prefix is not algo:
            raise PrefixMismatchError(algo, prefix)
        return cls._decode(body, prefix, is_sri=is_sri)

    @classmethod
    def _decode(cls, body: str, algo: HashAlgo, *, is_sri: bool) -> NixHash:
        size = algo.size
        if not is_sri and len(body) == size * 2:
            if not set(body) <= _HEX_DIGITS:
                raise InvalidEncodingError("invalid base16 symbol")
            return cls(algo, bytes.fromhex(body), HashFormat.BASE16)
        if not is_sri and len(body) == nix32_encoded_length(size):
            return cls(algo, nix32_decode(body, size), HashFormat.NIX32)
        if is_sri or len(body) == 4 * ((size + 2) // 3):
            try:
                decoded = base64.b64decode(body, validate=True)
            except binascii.Error as exc:
                raise InvalidEncodingError(str(exc)) from exc
            if len(decoded) != size:
                raise InvalidHashError(algo, len(decoded))
            return cls(algo, decoded, HashFormat.SRI if is_sri else HashFormat.BASE64)
        raise WrongLengthError(algo, len(body))

    def to_string(self, format: HashFormat = HashFormat.SRI, *, show_algo: bool = True) -> str:
        """Render the hash in ``format``; SRI always carries its prefix."""

        if format is HashFormat.SRI:
            return f"{self.algo.value}-{base64.b64encode(self.digest).decode('ascii')}"
        if format is HashFormat.BASE16:
            body = self.digest.hex()
        elif format is HashFormat.NIX32:
            body = nix32_encode(self.digest)
        else:
            body = base64.b64encode(self.digest).decode("ascii")
        return f"{self.algo.value}:{body}" if show_algo else body

    def __str__(self) -> str:
        return self.to_string(HashFormat.SRI)


def _split_prefix(text: str) -> tuple[HashAlgo | None, bool, str]:
    if ":" in text:
        prefix, body = text.split(":", 1)
        return HashAlgo.from_prefix(prefix), False, body
    if "-" in text:
        prefix, body = text.split("-", 1)
        return HashAlgo.from_prefix(prefix), True, body
    return None, False, text


__all__ = [
    "HashAlgo",
    "HashFormat",
    "HashParseError",
    "InvalidEncodingError",
    "InvalidHashError",
    "MissingPrefixError",
    "NIX32_ALPHABET",
    "NixHash",
    "PrefixMismatchError",
    "UnknownPrefixError",
    "WrongLengthError",
    "nix32_decode",
    "nix32_encode",
]
