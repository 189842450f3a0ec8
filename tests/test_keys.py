import pytest

from gneiss.keys import (
    MAX_SEQUENCE,
    InternalKey,
    ValueType,
    encode_internal_key,
)


def test_encode_layout():
    encoded = encode_internal_key(b"key", 0, ValueType.VALUE)
    assert encoded[:3] == b"key"
    assert encoded[3:11] == b"\xff" * 8
    assert encoded[11] == int(ValueType.VALUE)
    assert len(encoded) == 12


def test_encode_max_sequence_inverts_to_zero():
    encoded = encode_internal_key(b"", MAX_SEQUENCE, ValueType.DELETION)
    assert encoded[:8] == b"\x00" * 8
    assert encoded[8] == int(ValueType.DELETION)


@pytest.mark.parametrize(
    "user_key,sequence,value_type",
    [
        (b"key1", 1, ValueType.VALUE),
        (b"", 0, ValueType.DELETION),
        (b"\x00\xff", MAX_SEQUENCE, ValueType.VALUE),
        (b"key-3-0999", 3999, ValueType.DELETION),
    ],
)
def test_round_trip(user_key, sequence, value_type):
    key = InternalKey(user_key, sequence, value_type)
    decoded = InternalKey.decode(key.encode())
    assert decoded == key
    assert decoded.user_key == user_key
    assert decoded.sequence == sequence
    assert decoded.value_type is value_type


def test_newer_sequence_sorts_first():
    older = encode_internal_key(b"key1", 5, ValueType.VALUE)
    newer = encode_internal_key(b"key1", 10, ValueType.VALUE)
    assert newer < older


def test_user_key_order_preserved():
    a = encode_internal_key(b"key0020", 51, ValueType.VALUE)
    b = encode_internal_key(b"key0021", 2, ValueType.VALUE)
    assert a < b


def test_decode_too_short():
    with pytest.raises(ValueError):
        InternalKey.decode(b"12345678")


def test_decode_unknown_value_type():
    data = b"key" + b"\x00" * 8 + b"\x07"
    with pytest.raises(ValueError):
        InternalKey.decode(data)


@pytest.mark.parametrize("sequence", [-1, MAX_SEQUENCE + 1])
def test_sequence_out_of_range(sequence):
    with pytest.raises(ValueError):
        encode_internal_key(b"key", sequence, ValueType.VALUE)