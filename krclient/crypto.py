"""Key material, encoding, and OpenPGP ASCII armor utilities."""

from __future__ import annotations

import base64
import binascii

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

ARMOR_LINE_LENGTH = 64
ARMOR_COMMENT = "Created With Kryptonite"

# RFC 4880, section 6.1
CRC24_INIT = 0xB704CE
CRC24_POLY = 0x1864CFB


def generate_symmetric_key() -> bytes:
    """Generate a random 256-bit key for a new pairing.

    Returns:
        32 bytes of key material from the OS CSPRNG.
    """
    return AESGCM.generate_key(bit_length=256)


def b64encode(data: bytes) -> str:
    """Encode bytes to standard padded base64."""
    return base64.b64encode(data).decode("ascii")


def b64decode(s: str) -> bytes:
    """Decode standard padded base64, rejecting stray characters.

    Raises:
        ValueError: If ``s`` is not valid base64.
    """
    try:
        return base64.b64decode(s, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"invalid base64: {exc}") from exc


def crc24(data: bytes) -> int:
    """Return the OpenPGP CRC-24 checksum of data."""
    crc = CRC24_INIT
    for byte in data:
        crc ^= byte << 16
        for _ in range(8):
            crc <<= 1
            if crc & 0x1000000:
                crc ^= CRC24_POLY
    return crc & 0xFFFFFF


def armor_signature(signature: bytes, comment: str | None = ARMOR_COMMENT) -> str:
    """ASCII-armor a binary OpenPGP signature packet.

    Args:
        signature: Raw signature packet bytes.
        comment: Optional ``Comment`` armor header.

    Returns:
        The armored block, without a trailing newline.
    """
    body = b64encode(signature)
    lines = ["-----BEGIN PGP SIGNATURE-----"]
    if comment:
        lines.append(f"Comment: {comment}")
    lines.append("")
    lines.extend(
        body[i:i + ARMOR_LINE_LENGTH] for i in range(0, len(body), ARMOR_LINE_LENGTH)
    )
    checksum = crc24(signature).to_bytes(3, "big")
    lines.append("=" + b64encode(checksum))
    lines.append("-----END PGP SIGNATURE-----")
    return "\n".join(lines)
