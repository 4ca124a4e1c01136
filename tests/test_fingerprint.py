"""Tests for fingerprints and the base64 text transform."""

import pytest

from epx.errors import DecodeError
from epx.fingerprint import FINGERPRINT_LENGTH, fingerprint, from_base64, to_base64


def test_known_digests():
    assert fingerprint(b"") == "d41d8cd98f00b204e9800998ecf8427e"
    assert fingerprint(b"abc") == "900150983cd24fb0d6963f7d28e17f72"


def test_fingerprint_is_fixed_length_hex():
    fp = fingerprint(bytes(range(256)) * 10)
    assert len(fp) == FINGERPRINT_LENGTH
    int(fp, 16)


def test_base64_round_trip():
    data = bytes(range(256))
    text = to_base64(data)
    assert isinstance(text, str)
    assert from_base64(text) == data


def test_base64_of_known_value():
    assert to_base64(b"BM") == "Qk0="


@pytest.mark.parametrize("text", ["Qk0", "Qk0=!", "@@@@"])
def test_invalid_base64(text):
    with pytest.raises(DecodeError):
        from_base64(text)
