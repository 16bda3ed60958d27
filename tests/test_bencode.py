import io
import random

import pytest

from torrent_bencode import bencode
from torrent_bencode.bencode import (
    DuplicateKey,
    InvalidData,
    InvalidIntegerLiteral,
    MissingColon,
    MissingLength,
    NestingTooDeep,
    StringTooLong,
    TrailingData,
    TruncatedString,
    UnsortedKeys,
    UnterminatedDict,
    UnterminatedInteger,
    UnterminatedList,
)
from torrent_bencode.bobj import BDict, BencodeEncodingError, BInt, BList, BStr


def test_parse_byte_strings():
    assert bencode.parse(b"5:hello") == BStr(b"hello")
    assert bencode.parse("0:") == BStr(b"")
    assert bencode.parse(b"3:\x00\xff\x10") == BStr(b"\x00\xff\x10")


def test_parse_truncated_string():
    with pytest.raises(TruncatedString):
        bencode.parse(b"5:hell")


def test_parse_huge_declared_length_is_truncated():
    with pytest.raises(TruncatedString):
        bencode.parse(b"99999999999999999999999999:a")


def test_length_is_a_byte_count():
    payload = "Σζ".encode("utf-8")[:3]
    assert bencode.parse(b"3:" + payload) == BStr(payload)
    with pytest.raises(UnicodeDecodeError):
        payload.decode("utf-8")


def test_str_input_is_sliced_by_bytes():
    # 10 bytes cover "Σigmaϟζ", leaving "Eta" unconsumed
    remaining, obj = bencode.inc_parse("10:ΣigmaϟζEta")
    assert obj == BStr("Σigmaϟζ".encode("utf-8"))
    assert remaining == b"Eta"


def test_parse_integers():
    assert bencode.parse(b"i345e") == BInt(345)
    assert bencode.parse(b"i-345e") == BInt(-345)
    assert bencode.parse(b"i0e") == BInt(0)
    assert bencode.parse(b"i123456789012345678901234567890e") == BInt(
        123456789012345678901234567890
    )


def test_trailing_data_after_integer():
    with pytest.raises(TrailingData) as excinfo:
        bencode.parse(b"i-345e4:what")
    assert excinfo.value.position == 6


def test_unterminated_integer():
    with pytest.raises(UnterminatedInteger):
        bencode.parse(b"i12")


@pytest.mark.parametrize(
    "data", [b"ie", b"i-e", b"iabce", b"i+5e", b"i 5e", b"i1_0e", b"i--1e", b"i1x2e"]
)
def test_invalid_integer_literals(data):
    with pytest.raises(InvalidIntegerLiteral):
        bencode.parse(data)


def test_non_canonical_integers_are_accepted_by_default():
    assert bencode.parse(b"i03e") == BInt(3)
    assert bencode.parse(b"i-0e") == BInt(0)


@pytest.mark.parametrize("data", [b"i03e", b"i-0e", b"i-03e", b"i00e"])
def test_strict_integers_reject_non_canonical(data):
    with pytest.raises(InvalidIntegerLiteral):
        bencode.parse(data, strict_integers=True)


def test_strict_integers_accept_canonical():
    assert bencode.parse(b"i0e", strict_integers=True) == BInt(0)
    assert bencode.parse(b"i-10e", strict_integers=True) == BInt(-10)


def test_parse_list():
    assert bencode.parse(b"l4:spam4:eggse") == BList((BStr(b"spam"), BStr(b"eggs")))
    assert bencode.parse(b"le") == BList(())


def test_parse_dict():
    assert bencode.parse(b"d3:cow3:moo4:spam4:eggse") == BDict(
        (
            (BStr(b"cow"), BStr(b"moo")),
            (BStr(b"spam"), BStr(b"eggs")),
        )
    )
    assert bencode.parse(b"de") == BDict(())


def test_parse_nested():
    obj = bencode.parse(b"d4:turni3456e4:downi-12e3:for4:what4:listli1eli2eed1:ai3eeee")
    assert obj.get("turn") == BInt(3456)
    assert obj.get("down") == BInt(-12)
    assert obj.get("for") == BStr(b"what")
    assert obj.get("list") == BList(
        (BInt(1), BList((BInt(2),)), BDict(((BStr(b"a"), BInt(3)),)))
    )


def test_duplicate_and_unsorted_keys_are_kept_in_order():
    obj = bencode.parse(b"d1:bi1e1:ai2e1:bi3ee")
    assert obj.keys() == [b"b", b"a", b"b"]
    assert obj.get("b") == BInt(1)


def test_strict_keys_reject_unsorted():
    with pytest.raises(UnsortedKeys):
        bencode.parse(b"d1:bi1e1:ai2ee", strict_keys=True)


def test_strict_keys_reject_duplicates():
    with pytest.raises(DuplicateKey) as excinfo:
        bencode.parse(b"d1:ai1e1:ai2ee", strict_keys=True)
    assert excinfo.value.position == 7


def test_strict_keys_accept_sorted():
    obj = bencode.parse(b"d1:ai1e2:aai2e1:bi3ee", strict_keys=True)
    assert obj.keys() == [b"a", b"aa", b"b"]


@pytest.mark.parametrize("data", [b"", b"x", b"e", b"-1", b" i1e"])
def test_invalid_lookahead(data):
    with pytest.raises(InvalidData):
        bencode.parse(data)


@pytest.mark.parametrize("data", [b"l", b"li1e", b"l4:spam", b"lli1ee"])
def test_unterminated_list(data):
    with pytest.raises(UnterminatedList):
        bencode.parse(data)


@pytest.mark.parametrize("data", [b"d", b"d3:cow", b"d3:cow3:moo", b"d1:ad"])
def test_unterminated_dict(data):
    with pytest.raises(UnterminatedDict):
        bencode.parse(data)


def test_dict_key_must_be_a_string():
    with pytest.raises(MissingLength):
        bencode.parse(b"di1ei2ee")


@pytest.mark.parametrize("data", [b"5hello", b"12", b"d3xcowe"])
def test_missing_colon(data):
    with pytest.raises(MissingColon):
        bencode.parse(data)


def test_child_errors_propagate_from_lists():
    with pytest.raises(TruncatedString):
        bencode.parse(b"l5:hie")
    with pytest.raises(UnterminatedInteger) as excinfo:
        bencode.parse(b"l4:spami1")
    assert excinfo.value.position == 7


def test_max_depth():
    assert bencode.parse(b"llleee", max_depth=3) == BList((BList((BList(()),)),))
    with pytest.raises(NestingTooDeep):
        bencode.parse(b"llleee", max_depth=2)
    with pytest.raises(NestingTooDeep):
        bencode.parse(b"d1:ad1:ad1:adeeee", max_depth=3)


def test_default_max_depth():
    deep = b"l" * (bencode.DEFAULT_MAX_DEPTH + 1) + b"e" * (bencode.DEFAULT_MAX_DEPTH + 1)
    with pytest.raises(NestingTooDeep):
        bencode.parse(deep)
    assert isinstance(bencode.parse(deep, max_depth=None), BList)


def test_depth_is_released_after_each_container():
    # siblings do not add up
    assert len(bencode.parse(b"llelelee", max_depth=2)) == 3


def test_max_string_length():
    assert bencode.parse(b"5:hello", max_string_length=5) == BStr(b"hello")
    with pytest.raises(StringTooLong):
        bencode.parse(b"5:hello", max_string_length=4)
    with pytest.raises(StringTooLong):
        bencode.parse(b"999999:a", max_string_length=10)


def test_length_within_limit_but_past_input_is_truncated():
    with pytest.raises(TruncatedString):
        bencode.parse(b"50:hello", max_string_length=1000)
    with pytest.raises(TruncatedString):
        bencode.parse(b"999999:a", max_string_length=10**6)


def test_unlimited_depth_beyond_the_stack():
    deep = b"l" * 100000 + b"e" * 100000
    with pytest.raises(NestingTooDeep):
        bencode.parse(deep, max_depth=None)
    with pytest.raises(NestingTooDeep):
        bencode.inc_parse(deep, max_depth=10**6)


def test_errors_are_value_errors():
    with pytest.raises(ValueError):
        bencode.parse(b"x")


def test_inc_parse_returns_remaining_input():
    remaining, obj = bencode.inc_parse(b"i-345e4:what")
    assert obj == BInt(-345)
    assert remaining == b"4:what"

    remaining, obj = bencode.inc_parse(remaining)
    assert obj == BStr(b"what")
    assert remaining == b""


def test_decoder_cursor():
    decoder = bencode.Decoder(b"4:spami1e")
    assert decoder.decode() == BStr(b"spam")
    assert decoder.index == 6
    assert decoder.decode() == BInt(1)
    assert decoder.remaining == b""


def test_load_reads_file_objects():
    assert bencode.load(io.BytesIO(b"l4:spame")) == BList((BStr(b"spam"),))
    assert bencode.loads(bytearray(b"i7e")) == BInt(7)


@pytest.mark.parametrize(
    "data",
    [
        b"i-345e",
        b"0:",
        b"l4:turn4:down3:for4:whate",
        b"d4:turni3456e4:downi-12e3:for4:whate",
        b"d1:bi1e1:ai2e1:bi3ee",
        b"lld1:aleee0:i0ee",
    ],
)
def test_encode_reproduces_decoded_documents(data):
    assert bencode.dumps(bencode.parse(data)) == data


def test_encode_python_values():
    assert bencode.dumps({"spam": [1, "eggs"], "cow": b"moo"}) == (
        b"d3:cow3:moo4:spamli1e4:eggsee"
    )
    assert bencode.dumps(True) == b"i1e"
    assert bencode.dumps((1, 2)) == b"li1ei2ee"
    assert bencode.dumps("Σ") == b"2:\xce\xa3"


@pytest.mark.parametrize("value", [1.5, None, {1: 2}, object()])
def test_encode_unsupported(value):
    with pytest.raises(BencodeEncodingError):
        bencode.dumps(value)


def test_dump_writes_to_file_objects():
    fp = io.BytesIO()
    bencode.dump(BList((BInt(1), BStr(b"a"))), fp)
    assert fp.getvalue() == b"li1e1:ae"


def _random_value(rng, depth=0):
    kind = rng.choice(["str", "int"] if depth > 3 else ["str", "int", "list", "dict"])
    if kind == "str":
        return BStr(bytes(rng.randrange(256) for _ in range(rng.randrange(8))))
    if kind == "int":
        return BInt(rng.randint(-(2**70), 2**70))
    if kind == "list":
        return BList(tuple(_random_value(rng, depth + 1) for _ in range(rng.randrange(4))))
    return BDict(
        tuple(
            (BStr(bytes(rng.randrange(97, 123) for _ in range(3))), _random_value(rng, depth + 1))
            for _ in range(rng.randrange(4))
        )
    )


def test_decode_inverts_encode():
    rng = random.Random(1234)
    for _ in range(200):
        value = _random_value(rng)
        assert bencode.parse(bencode.dumps(value)) == value
