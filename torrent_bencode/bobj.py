# !/usr/bin/env python
# bobj.py
"""
Typed value tree produced by the decoder.

A decoded document is one of four variants:
+---------------+-------------------------------+
| Bencode       | BObj                          |
+===============+===============================+
| string        | BStr(bytes)                   |
+---------------+-------------------------------+
| integer       | BInt(int)                     |
+---------------+-------------------------------+
| list          | BList(tuple of BObj)          |
+---------------+-------------------------------+
| dictionary    | BDict(tuple of (BStr, BObj))  |
+---------------+-------------------------------+

Trees are immutable once built. Dictionaries keep their pairs in the order
they were read, duplicates included.
"""
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple, Union


class BencodeEncodingError(ValueError):
    ...


@dataclass(frozen=True)
class BStr:
    value: bytes

    def __len__(self) -> int:
        return len(self.value)

    def text(self, encoding: str = "utf-8") -> str:
        """Decode the payload as text, raising ``UnicodeDecodeError`` if it isn't"""
        return self.value.decode(encoding)


@dataclass(frozen=True)
class BInt:
    value: int


@dataclass(frozen=True)
class BList:
    items: Tuple["BObj", ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator["BObj"]:
        return iter(self.items)

    def __getitem__(self, index: int) -> "BObj":
        return self.items[index]


@dataclass(frozen=True)
class BDict:
    pairs: Tuple[Tuple[BStr, "BObj"], ...] = ()

    def __len__(self) -> int:
        return len(self.pairs)

    def __iter__(self) -> Iterator[Tuple[BStr, "BObj"]]:
        return iter(self.pairs)

    def __contains__(self, key: Union[bytes, str]) -> bool:
        return self.get(key) is not None

    def keys(self) -> list[bytes]:
        return [key.value for key, _ in self.pairs]

    def get(self, key: Union[bytes, str], default: Optional["BObj"] = None):
        """
        Returns the value of the first pair whose key matches

        Args:
            - key (bytes | str): Key to look up, ``str`` keys are UTF-8 encoded
            - default (BObj, optional): Returned when no pair matches. Defaults to None.
        """
        if isinstance(key, str):
            key = key.encode("utf-8")
        for pair_key, value in self.pairs:
            if pair_key.value == key:
                return value
        return default


BObj = Union[BStr, BInt, BList, BDict]


def to_python(obj: BObj) -> Any:
    """
    Converts a value tree into plain ``bytes``, ``int``, ``list`` and ``dict``.
    Duplicate dictionary keys collapse, the last one wins.
    """
    if isinstance(obj, BStr):
        return obj.value
    elif isinstance(obj, BInt):
        return obj.value
    elif isinstance(obj, BList):
        return [to_python(item) for item in obj.items]
    elif isinstance(obj, BDict):
        return {key.value: to_python(value) for key, value in obj.pairs}
    raise TypeError(f"Not a bencode value: {type(obj)}")


def _key_bytes(key: Any) -> bytes:
    if isinstance(key, bytes):
        return key
    if isinstance(key, str):
        return key.encode("utf-8")
    raise BencodeEncodingError(f"Dictionary keys must be str or bytes, got {type(key)}")


def from_python(value: Any) -> BObj:
    """
    Converts plain Python values into a value tree.

    ``str`` is UTF-8 encoded, ``bool`` becomes an integer and dictionaries are
    laid out in sorted key order as the format requires.
    """
    if isinstance(value, (BStr, BInt, BList, BDict)):
        return value
    elif isinstance(value, bytes):
        return BStr(value)
    elif isinstance(value, (bytearray, memoryview)):
        return BStr(bytes(value))
    elif isinstance(value, str):
        return BStr(value.encode("utf-8"))
    elif isinstance(value, int):
        return BInt(int(value))
    elif isinstance(value, (list, tuple)):
        return BList(tuple(from_python(item) for item in value))
    elif isinstance(value, dict):
        pairs = sorted(
            ((_key_bytes(k), v) for k, v in value.items()), key=lambda pair: pair[0]
        )
        return BDict(tuple((BStr(k), from_python(v)) for k, v in pairs))
    raise BencodeEncodingError(f"Unsupported type {type(value)}")
