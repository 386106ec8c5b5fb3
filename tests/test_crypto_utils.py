import pytest

from mfasession.crypto import crypto_utils


def test_hmac_sha1_rfc2202_vector():
    digest = crypto_utils.hmac_sha1(b"Jefe", b"what do ya want for nothing?")
    assert digest.hex() == "effcdf6ae5eb2fa2d27416d5f184df9c259a7c79"
    assert len(digest) == crypto_utils.SHA1_DIGEST_LEN


def test_hmac_sha1_hex_matches_bytes_variant():
    key_hex = b"Jefe".hex()
    message_hex = b"what do ya want for nothing?".hex()
    assert crypto_utils.hmac_sha1_hex(key_hex, message_hex) == "effcdf6ae5eb2fa2d27416d5f184df9c259a7c79"


def test_hmac_sha1_hex_rejects_odd_length_key():
    with pytest.raises(ValueError):
        crypto_utils.hmac_sha1_hex("abc", "00")
