"""Tests for canonical JSON encoding."""

from __future__ import annotations

import pytest

from device_envelope.utils.canonical import canonical_json, canonicalize, parse_canonical


def test_canonical_json_sorts_keys_and_strips_whitespace() -> None:
    assert canonical_json({"b": 1, "a": [1, 2], "c": {"z": 0, "y": None}}) == (
        '{"a":[1,2],"b":1,"c":{"y":null,"z":0}}'
    )


def test_canonicalize_is_order_independent() -> None:
    assert canonicalize({"x": 1, "y": 2}) == canonicalize({"y": 2, "x": 1})


def test_canonicalize_keeps_unicode_as_utf8() -> None:
    assert canonicalize({"text": "héllo ✉"}) == '{"text":"héllo ✉"}'.encode()


@pytest.mark.parametrize("value", [{"n": float("nan")}, {"s": {1, 2}}, {"b": b"raw"}])
def test_canonicalize_rejects_unencodable_values(value) -> None:
    with pytest.raises(ValueError):
        canonicalize(value)


def test_parse_canonical_accepts_bytes_and_text() -> None:
    data = canonicalize({"from": {"username": "bob"}, "text": "hi"})
    assert parse_canonical(data) == {"from": {"username": "bob"}, "text": "hi"}
    assert parse_canonical(data.decode()) == parse_canonical(data)


def test_canonicalize_formats_numbers_like_ecmascript() -> None:
    assert canonicalize({"f": 1.0, "n": 1e16, "s": 1e-7}) == (
        b'{"f":1,"n":10000000000000000,"s":1e-7}'
    )


def test_canonicalize_sorts_keys_by_utf16_code_units() -> None:
    # U+1F600 encodes as the surrogate pair D83D DE00, which sorts before U+FF61.
    assert canonical_json({"k": {"｡": 2, "😀": 1}}) == '{"k":{"😀":1,"｡":2}}'


def test_canonicalize_rejects_unsafe_integers() -> None:
    with pytest.raises(ValueError):
        canonicalize({"n": 2**53})


def test_parse_canonical_keeps_canonical_form_stable() -> None:
    data = canonicalize({"f": 1.5, "n": 1e16, "i": 7})
    parsed = parse_canonical(data)

    assert parsed == {"f": 1.5, "n": 1e16, "i": 7}
    assert isinstance(parsed["n"], float)
    assert canonicalize(parsed) == data
