# /usr/bin/env python3
# Based on https://github.com/gazev/bencode (GPLv3 license) as of 2023-12-12
import re
from typing import Optional, Tuple, Union

from torrent_bencode.bobj import (
    BDict,
    BencodeEncodingError,
    BInt,
    BList,
    BObj,
    BStr,
    from_python,
)

# Lists and dictionaries nested deeper than this are rejected by default
DEFAULT_MAX_DEPTH = 256

DIGITS = b"0123456789"
INTEGER_LITERAL = re.compile(rb"-?[0-9]+")

Bytes = Union[bytes, bytearray, memoryview, str]


def _decode_value(decoder: "Decoder") -> BObj:
    try:
        return decoder.decode()
    except RecursionError as e:
        # max_depth is off or above what the interpreter stack can hold
        raise NestingTooDeep(
            "Nesting deeper than the interpreter recursion limit", decoder.index
        ) from e


def parse(data: Bytes, **options) -> BObj:
    """Decode a complete Bencoded document into a value tree.

    Raises ``TrailingData`` if anything follows the top-level value.
    Keyword ``options`` are passed on to ``Decoder``.
    """
    decoder = Decoder(data, **options)
    obj = _decode_value(decoder)
    if decoder.index != len(decoder.data):
        raise TrailingData(
            f"{len(decoder.data) - decoder.index} bytes of input remaining",
            decoder.index,
        )
    return obj


def inc_parse(data: Bytes, **options) -> Tuple[bytes, BObj]:
    """Decode one value from the front of ``data``.

    Returns the unconsumed suffix and the value.
    """
    decoder = Decoder(data, **options)
    obj = _decode_value(decoder)
    return decoder.remaining, obj


def loads(s: Bytes, **options) -> BObj:
    """Deserialize ``s`` (``bytes`` or ``bytearray`` instance
    containing a Bencoded document) to a value tree.
    """
    return parse(s, **options)


def load(fp, **options) -> BObj:
    """Deserialize ``fp`` (a ``.read()``-supporting file-like object containing
    a Bencoded document) to a value tree.
    """
    return parse(fp.read(), **options)


def dumps(obj) -> bytes:
    """Serialize ``obj`` to Bencode formatted ``bytes``."""
    return Encoder().encode(obj)


def dump(obj, fp):
    """Serialize ``obj`` as a Bencode formatted stream to ``fp`` (a
    ``.write()``-supporting file-like object).
    """
    fp.write(Encoder().encode(obj))


class Encoder:
    """Simple Bencode encoder <https://en.wikipedia.org/wiki/Bencode>

    Value trees are written exactly as they are, so a decoded document
    encodes back to the same bytes. Plain Python values are converted
    first:
    +---------------+-------------------+
    | Python        | Bencode           |
    +===============+===================+
    | int, bool     | integer           |
    +---------------+-------------------+
    | str           | string (UTF-8)    |
    +---------------+-------------------+
    | bytes         | string            |
    +---------------+-------------------+
    | list, tuple   | list              |
    +---------------+-------------------+
    | dict          | dictionary        |
    +---------------+-------------------+
    """

    @classmethod
    def encode(cls, item) -> bytes:
        """Encode passed item into corresponding Bencode type"""
        obj = from_python(item)
        if isinstance(obj, BDict):
            ret = cls.encode_dict(obj)
        elif isinstance(obj, BList):
            ret = cls.encode_list(obj)
        elif isinstance(obj, BInt):
            ret = cls.encode_int(obj)
        elif isinstance(obj, BStr):
            ret = cls.encode_byte_str(obj)
        else:
            raise BencodeEncodingError(f"Unsupported type {type(item)}")

        return ret

    @classmethod
    def encode_int(cls, num: BInt) -> bytes:
        return b"i%de" % num.value

    @classmethod
    def encode_byte_str(cls, string: BStr) -> bytes:
        return b"%d:" % len(string.value) + string.value

    @classmethod
    def encode_list(cls, lst: BList) -> bytes:
        res = bytearray(b"l")
        for item in lst.items:
            res += cls.encode(item)
        res += b"e"

        return bytes(res)

    @classmethod
    def encode_dict(cls, dic: BDict) -> bytes:
        res = bytearray(b"d")
        for k, v in dic.pairs:
            res += cls.encode_byte_str(k)
            res += cls.encode(v)
        res += b"e"

        return bytes(res)


class BencodeDecodingError(ValueError):
    def __init__(self, msg: str, position: Optional[int] = None):
        if position is not None:
            msg = f"{msg} at position {position}"
        super().__init__(msg)
        self.position = position


class InvalidData(BencodeDecodingError):
    ...


class MissingLength(BencodeDecodingError):
    ...


class MissingColon(BencodeDecodingError):
    ...


class TruncatedString(BencodeDecodingError):
    ...


class StringTooLong(BencodeDecodingError):
    ...


class UnterminatedInteger(BencodeDecodingError):
    ...


class InvalidIntegerLiteral(BencodeDecodingError):
    ...


class UnterminatedList(BencodeDecodingError):
    ...


class UnterminatedDict(BencodeDecodingError):
    ...


class TrailingData(BencodeDecodingError):
    ...


class NestingTooDeep(BencodeDecodingError):
    ...


class DuplicateKey(BencodeDecodingError):
    ...


class UnsortedKeys(BencodeDecodingError):
    ...


class Decoder:
    """Simple Bencode decoder <https://en.wikipedia.org/wiki/Bencode>

    Performs the following translations in decoding:
    +---------------+-------------------+
    | Bencode       | BObj              |
    +===============+===================+
    | integer       | BInt              |
    +---------------+-------------------+
    | string        | BStr              |
    +---------------+-------------------+
    | list          | BList             |
    +---------------+-------------------+
    | dictionary    | BDict             |
    +---------------+-------------------+

    Args:
        - data (bytes): Input, a ``str`` is UTF-8 encoded first
        - max_depth (int, optional): Deepest list/dict nesting accepted, None for no limit. Defaults to DEFAULT_MAX_DEPTH.
        - max_string_length (int, optional): Largest declared string length accepted. Defaults to None (no limit).
        - strict_integers (bool, optional): Reject leading zeros and ``-0``. Defaults to False.
        - strict_keys (bool, optional): Require dictionary keys to be unique and sorted. Defaults to False.
    """

    def __init__(
        self,
        data: Bytes,
        max_depth: Optional[int] = DEFAULT_MAX_DEPTH,
        max_string_length: Optional[int] = None,
        strict_integers: bool = False,
        strict_keys: bool = False,
    ):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._data = bytes(data)
        self._index = 0
        self._depth = 0

        self.max_depth = max_depth
        self.max_string_length = max_string_length
        self.strict_integers = strict_integers
        self.strict_keys = strict_keys

        self.decoder_call = {
            b"i": self.decode_int,
            b"l": self.decode_list,
            b"d": self.decode_dict,
        }
        for digit in DIGITS:
            self.decoder_call[bytes([digit])] = self.decode_str

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def index(self) -> int:
        """Offset of the first byte not consumed yet"""
        return self._index

    @property
    def remaining(self) -> bytes:
        return self._data[self._index :]

    def _current_byte(self) -> bytes:
        """Peek current byte"""
        return self._data[self._index : self._index + 1]

    def _enter_container(self, start: int):
        self._depth += 1
        if self.max_depth is not None and self._depth > self.max_depth:
            raise NestingTooDeep(
                f"Nesting deeper than {self.max_depth} levels", start
            )

    def decode(self) -> BObj:
        token = self._current_byte()
        if token == b"":
            raise InvalidData("Unexpected end of input", self._index)

        decoder = self.decoder_call.get(token)
        if decoder is None:
            raise InvalidData(f"Unexpected token {token!r}", self._index)
        return decoder()

    def decode_int(self) -> BInt:
        start = self._index
        # discard 'i' begin token
        self._index += 1
        end = self._data.find(b"e", self._index)
        if end == -1:
            raise UnterminatedInteger('Integer is missing its "e"', start)

        literal = self._data[self._index : end]
        if not INTEGER_LITERAL.fullmatch(literal):
            raise InvalidIntegerLiteral(f"Invalid integer literal {literal!r}", start)

        if self.strict_integers:
            digits = literal.lstrip(b"-")
            # reject numbers with leading zeros and negative zero
            if literal == b"-0" or (len(digits) > 1 and digits[:1] == b"0"):
                raise InvalidIntegerLiteral(
                    f"Non-canonical integer literal {literal!r}", start
                )

        try:
            value = int(literal)
        except ValueError as e:
            # interpreter limit on str -> int conversion of huge literals
            raise InvalidIntegerLiteral(str(e), start) from e

        # discard 'e' end token
        self._index = end + 1
        return BInt(value)

    def decode_str(self) -> BStr:
        start = self._index
        end = start
        while end < len(self._data) and self._data[end] in DIGITS:
            end += 1

        if end == start:
            raise MissingLength(
                f"Expected string length, got {self._current_byte()!r}", start
            )
        if self._data[end : end + 1] != b":":
            raise MissingColon('String length is not followed by ":"', end)

        begin = end + 1
        available = len(self._data) - begin
        digits = self._data[start:end].lstrip(b"0") or b"0"
        bound = available
        if self.max_string_length is not None:
            bound = max(available, self.max_string_length)
        # more digits than either the remaining input or the limit allows
        if len(digits) > len(str(bound)):
            length = None
        else:
            length = int(digits)

        if self.max_string_length is not None and (
            length is None or length > self.max_string_length
        ):
            raise StringTooLong(
                f"Declared string length {digits.decode()} exceeds "
                f"limit {self.max_string_length}",
                start,
            )
        if length is None or length > available:
            raise TruncatedString(
                f"Declared string length {digits.decode()} but only "
                f"{available} bytes remain",
                start,
            )

        self._index = begin + length
        return BStr(self._data[begin : self._index])

    def decode_list(self) -> BList:
        start = self._index
        self._enter_container(start)
        # discard 'l' begin token
        self._index += 1
        items = []
        while True:
            token = self._current_byte()
            if token == b"":
                raise UnterminatedList('List is missing its "e"', start)
            if token == b"e":
                break
            items.append(self.decode())

        # discard 'e' end token
        self._index += 1
        self._depth -= 1
        return BList(tuple(items))

    def decode_dict(self) -> BDict:
        start = self._index
        self._enter_container(start)
        # discard 'd' begin token
        self._index += 1
        pairs = []
        previous_key = None
        while True:
            token = self._current_byte()
            if token == b"":
                raise UnterminatedDict('Dictionary is missing its "e"', start)
            if token == b"e":
                break

            key_position = self._index
            key = self.decode_str()
            if self.strict_keys and previous_key is not None:
                if key.value == previous_key:
                    raise DuplicateKey(f"Duplicate key {key.value!r}", key_position)
                if key.value < previous_key:
                    raise UnsortedKeys(
                        f"Key {key.value!r} is out of order", key_position
                    )
            previous_key = key.value

            if self._current_byte() == b"":
                raise UnterminatedDict(
                    f"Dictionary ends before the value of key {key.value!r}", start
                )
            pairs.append((key, self.decode()))

        # discard 'e' end token
        self._index += 1
        self._depth -= 1
        return BDict(tuple(pairs))
