"""Message authentication primitives used by the one-time code generator."""

from __future__ import annotations

from cryptography.hazmat.primitives import hashes, hmac

SHA1_DIGEST_LEN: int = 20


def hmac_sha1(key: bytes, message: bytes) -> bytes:
    """Return the raw HMAC-SHA1 digest of ``message`` keyed with ``key``."""

    mac = hmac.HMAC(key, hashes.SHA1())
    mac.update(message)
    return mac.finalize()


def hmac_sha1_hex(key_hex: str, message_hex: str) -> str:
    """Hex-in, hex-out wrapper around :func:`hmac_sha1`.

    Both arguments must be even-length hex strings; ``bytes.fromhex`` raises
    ``ValueError`` otherwise.
    """

    digest = hmac_sha1(bytes.fromhex(key_hex), bytes.fromhex(message_hex))
    return digest.hex()
