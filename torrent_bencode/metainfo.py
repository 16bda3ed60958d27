# !/usr/bin/env python
# metainfo.py
import hashlib
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from torrent_bencode import bencode
from torrent_bencode.bobj import BDict, BInt, BList, BObj, BStr

logger = logging.getLogger(__name__)

# Length of a single SHA-1 piece hash inside ``pieces``
PIECE_HASH_LENGTH = 20


class MetainfoError(ValueError):
    ...


def _require(dic: BDict, key: str, kind: type, where: str) -> BObj:
    value = dic.get(key)
    if value is None:
        raise MetainfoError(f"{where} is missing '{key}'")
    if not isinstance(value, kind):
        raise MetainfoError(
            f"{where} '{key}' should be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def _optional(dic: BDict, key: str, kind: type, where: str) -> Optional[BObj]:
    value = dic.get(key)
    if value is None:
        return None
    if not isinstance(value, kind):
        logger.warning(
            "Ignoring %s '%s': expected %s, got %s",
            where,
            key,
            kind.__name__,
            type(value).__name__,
        )
        return None
    return value


def _text(value: BStr, encoding: str = "utf-8") -> str:
    return value.value.decode(encoding, errors="replace")


@dataclass
class CommonFileInfo:
    piece_length: int
    pieces: bytes
    private: bool = False

    @property
    def piece_hashes(self) -> list[bytes]:
        return [
            self.pieces[i : i + PIECE_HASH_LENGTH]
            for i in range(0, len(self.pieces), PIECE_HASH_LENGTH)
        ]


@dataclass
class SingleFileInfo:
    name: str
    length: int
    md5sum: Optional[str] = None


@dataclass
class FileEntry:
    length: int
    path: List[str]
    md5sum: Optional[str] = None


@dataclass
class MultiFileInfo:
    name: str
    files: List[FileEntry] = field(default_factory=list)


@dataclass
class InfoDict:
    common: CommonFileInfo
    layout: Union[SingleFileInfo, MultiFileInfo]

    @property
    def name(self) -> str:
        return self.layout.name

    @property
    def is_multi_file(self) -> bool:
        return isinstance(self.layout, MultiFileInfo)

    @property
    def total_length(self) -> int:
        if isinstance(self.layout, MultiFileInfo):
            return sum(entry.length for entry in self.layout.files)
        return self.layout.length


def parse_info(info: BDict, encoding: str = "utf-8") -> InfoDict:
    """
    Builds the typed ``info`` dictionary of a torrent

    Args:
        - info (BDict): Decoded ``info`` dictionary
        - encoding (str, optional): Text encoding of names and paths. Defaults to "utf-8".

    Returns:
        - InfoDict: Common fields plus the single-file or multi-file layout
    """
    common = CommonFileInfo(
        piece_length=_require(info, "piece length", BInt, "info").value,
        pieces=_require(info, "pieces", BStr, "info").value,
        private=bool(getattr(_optional(info, "private", BInt, "info"), "value", 0)),
    )
    name = _text(_require(info, "name", BStr, "info"), encoding)

    files = info.get("files")
    if files is None:
        md5sum = _optional(info, "md5sum", BStr, "info")
        layout = SingleFileInfo(
            name=name,
            length=_require(info, "length", BInt, "info").value,
            md5sum=_text(md5sum) if md5sum is not None else None,
        )
        return InfoDict(common=common, layout=layout)

    if not isinstance(files, BList):
        raise MetainfoError("info 'files' should be BList")

    entries = []
    for index, file_info in enumerate(files):
        where = f"info.files[{index}]"
        if not isinstance(file_info, BDict):
            raise MetainfoError(f"{where} should be BDict")
        path = _require(file_info, "path", BList, where)
        parts = []
        for part in path:
            if not isinstance(part, BStr):
                raise MetainfoError(f"{where} 'path' should only hold strings")
            parts.append(_text(part, encoding))
        md5sum = _optional(file_info, "md5sum", BStr, where)
        entries.append(
            FileEntry(
                length=_require(file_info, "length", BInt, where).value,
                path=parts,
                md5sum=_text(md5sum) if md5sum is not None else None,
            )
        )
    return InfoDict(common=common, layout=MultiFileInfo(name=name, files=entries))


@dataclass
class Metainfo:
    announce: str
    info: InfoDict
    raw_info: BDict
    announce_list: Optional[List[List[str]]] = None
    creation_date: Optional[int] = None
    comment: Optional[str] = None
    created_by: Optional[str] = None
    encoding: Optional[str] = None

    @property
    def info_hash(self) -> bytes:
        """SHA-1 of the ``info`` dictionary exactly as it was encoded"""
        return hashlib.sha1(bencode.dumps(self.raw_info)).digest()

    @property
    def info_hash_hex(self) -> str:
        return self.info_hash.hex()

    @property
    def trackers(self) -> list[str]:
        """Returns the announce url followed by every announce-list url, without repeats"""
        trackers = [self.announce] if self.announce else []
        for tier in self.announce_list or []:
            for tracker in tier:
                if tracker not in trackers:
                    trackers.append(tracker)
        return trackers

    @classmethod
    def from_bobj(cls, root: BObj) -> "Metainfo":
        """
        Reads the torrent metadata out of a decoded document

        Args:
            - root (BObj): Decoded contents of a .torrent file

        Returns:
            - Metainfo: Typed view of the document
        """
        if not isinstance(root, BDict):
            raise MetainfoError(
                f"Torrent root should be BDict, got {type(root).__name__}"
            )

        encoding_value = _optional(root, "encoding", BStr, "torrent")
        encoding = _text(encoding_value) if encoding_value is not None else None
        text_encoding = encoding or "utf-8"
        try:
            "".encode(text_encoding)
        except LookupError:
            logger.warning("Unknown encoding %s, falling back to utf-8", encoding)
            text_encoding = "utf-8"

        raw_info = _require(root, "info", BDict, "torrent")
        announce = _require(root, "announce", BStr, "torrent")

        announce_list = None
        tiers = _optional(root, "announce-list", BList, "torrent")
        if tiers is not None:
            announce_list = []
            for tier in tiers:
                # some writers flatten the tiers into a plain list of urls
                if isinstance(tier, BStr):
                    tier = BList((tier,))
                if not isinstance(tier, BList):
                    logger.warning("Skipping announce-list tier of type %s", type(tier).__name__)
                    continue
                urls = [_text(url) for url in tier if isinstance(url, BStr)]
                if urls:
                    announce_list.append(urls)

        creation_date = _optional(root, "creation date", BInt, "torrent")
        comment = _optional(root, "comment", BStr, "torrent")
        created_by = _optional(root, "created by", BStr, "torrent")

        metainfo = cls(
            announce=_text(announce),
            info=parse_info(raw_info, text_encoding),
            raw_info=raw_info,
            announce_list=announce_list,
            creation_date=creation_date.value if creation_date is not None else None,
            comment=_text(comment, text_encoding) if comment is not None else None,
            created_by=_text(created_by, text_encoding) if created_by is not None else None,
            encoding=encoding,
        )
        logger.debug("Read metainfo for %s (%s)", metainfo.info.name, metainfo.info_hash_hex)
        return metainfo

    @classmethod
    def from_bytes(cls, data: bytes, **options) -> "Metainfo":
        return cls.from_bobj(bencode.parse(data, **options))


def load_metainfo(torrent_file_location: str, **options) -> Metainfo:
    """
    Parses a torrent file

    Args:
        - torrent_file_location (str): Torrent file location
        - options: Decoder options, see ``bencode.Decoder``

    Returns:
        - Metainfo: Parsed torrent metadata
    """
    with open(torrent_file_location, "rb") as fp:
        root = bencode.load(fp, **options)
    return Metainfo.from_bobj(root)
