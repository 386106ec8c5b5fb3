"""Time-based One-Time Password utilities for mfa-session.

The code generator is implemented directly on top of HMAC-SHA1 instead of
delegating to pyotp because existing MFA secrets depend on the odd-length key
normalisation in :func:`generate_totp`. pyotp is still used for provisioning
URIs and secret generation.
"""

from __future__ import annotations

import logging
import math
import sys
import time
from datetime import datetime
from typing import Optional, Union

import pyotp

from ..crypto import crypto_utils
from ..errors import InvalidSecretFormat

logger = logging.getLogger(__name__)

BASE32_ALPHABET: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
TOTP_INTERVAL: int = 30
TOTP_DIGITS: int = 6
COUNTER_HEX_LEN: int = 16
TRUNCATION_MASK: int = 0x7FFFFFFF

# padding count -> hex digits to drop from the end of the decoded value
_PADDING_TRIM = {0: 0, 1: 2, 3: 4, 4: 6, 6: 8}

Timestamp = Union[int, float, datetime]


def base32_to_hex(secret: str) -> str:
    """Decode a Base32 string into a lowercase hex string.

    Each character contributes five bits (``=`` contributes five zero bits),
    the bit string is regrouped into nibbles from the front and the result is
    trimmed according to the padding count. The result may have odd length.
    """

    bits = []
    padding = 0
    for char in secret:
        if char == "=":
            padding += 1
            bits.append("00000")
            continue
        if padding:
            raise InvalidSecretFormat("Padding may only appear at the end of a Base32 secret.")
        index = BASE32_ALPHABET.find(char.upper())
        if index < 0:
            raise InvalidSecretFormat(f"Invalid Base32 character {char!r} in secret.")
        bits.append(format(index, "05b"))

    if padding not in _PADDING_TRIM:
        raise InvalidSecretFormat(f"Invalid Base32 padding length {padding}.")

    bit_string = "".join(bits)
    nibbles = [bit_string[i : i + 4] for i in range(0, len(bit_string) - 3, 4)]
    hex_key = "".join(format(int(nibble, 2), "x") for nibble in nibbles)

    trim = _PADDING_TRIM[padding]
    if trim > len(hex_key):
        raise InvalidSecretFormat("Base32 secret is too short for its padding.")
    if trim:
        hex_key = hex_key[:-trim]
    return hex_key


def _to_epoch_seconds(now: Optional[Timestamp]) -> float:
    if now is None:
        return time.time()
    if isinstance(now, datetime):
        return now.timestamp()
    return float(now)


def time_step(now: Optional[Timestamp] = None, interval: int = TOTP_INTERVAL) -> int:
    """Return the TOTP counter for ``now`` (defaults to the current time)."""

    return int(math.floor(_to_epoch_seconds(now) / interval))


def seconds_remaining(now: Optional[Timestamp] = None, interval: int = TOTP_INTERVAL) -> int:
    """Return how many whole seconds the code for ``now`` stays valid."""

    epoch = _to_epoch_seconds(now)
    return int(math.ceil(interval - (epoch % interval)))


def _normalize_key(hex_key: str) -> str:
    # Odd-length keys are padded or clipped to whole bytes. Existing secrets
    # rely on this exact rule, so it must not be "corrected".
    if len(hex_key) % 2 == 1:
        if hex_key.endswith("0"):
            return hex_key[:-1]
        return hex_key + "0"
    return hex_key


def _truncate(digest_hex: str, digits: int) -> str:
    offset = int(digest_hex[-1], 16)
    chunk = digest_hex[offset * 2 : offset * 2 + 8]
    value = int(chunk, 16) & TRUNCATION_MASK
    return str(value).zfill(digits)[-digits:]


def generate_totp(secret: str, now: Optional[Timestamp] = None) -> str:
    """Derive the 6-digit one-time code for ``secret`` at ``now``.

    ``now`` may be a Unix timestamp or a ``datetime``; it defaults to the
    current time. Raises :class:`InvalidSecretFormat` for malformed secrets.
    """

    hex_key = base32_to_hex(secret)
    if not hex_key:
        raise InvalidSecretFormat("Invalid secret key: decodes to an empty value.")

    counter = format(time_step(now), "x").rjust(COUNTER_HEX_LEN, "0")
    key = _normalize_key(hex_key)
    digest_hex = crypto_utils.hmac_sha1_hex(key, counter)
    return _truncate(digest_hex, TOTP_DIGITS)


def generate_mfa_secret(length: int = 32) -> str:
    """Return a random Base32 secret compatible with authenticator apps."""

    return pyotp.random_base32(length=length)


def provisioning_uri(secret: str, account_name: str, issuer: str = "mfa-session") -> str:
    """Build an ``otpauth://`` URI so ``secret`` can be enrolled in an authenticator app."""

    base32_to_hex(secret)
    totp = pyotp.TOTP(secret.upper(), digits=TOTP_DIGITS, interval=TOTP_INTERVAL)
    return totp.provisioning_uri(name=account_name, issuer_name=issuer)


def display_qr(uri: str) -> None:
    try:
        import qrcode
    except ImportError:  # pragma: no cover - optional at runtime
        print("Install the 'qrcode' package to display QR codes, or copy the URI below.")
        print(uri)
        return

    qr = qrcode.QRCode(border=2)
    qr.add_data(uri)
    qr.make(fit=True)
    qr.print_ascii(out=sys.stdout)
