# !/usr/bin/env python
# cli.py
import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from torrent_bencode import bencode
from torrent_bencode.bobj import BDict, BInt, BList, BObj, BStr
from torrent_bencode.metainfo import Metainfo, MultiFileInfo, load_metainfo
from torrent_bencode.tracker import DEFAULT_PORT, build_announce_request, write_request

logger = logging.getLogger(__name__)

# Inputs the decoder is demonstrated on by the ``samples`` command
SAMPLES = [
    b"i345e",
    b"i-345e",
    b"i-345e4:what",
    b"l4:turn4:down3:for4:whate",
    b"d4:turni3456e4:downi-12e3:for4:whate",
]


def printable(obj: BObj) -> Any:
    """
    Converts a value tree into something ``json.dumps`` accepts.
    Strings that are not valid UTF-8 are shown as hex.
    """
    if isinstance(obj, BStr):
        try:
            return obj.text()
        except UnicodeDecodeError:
            return obj.value.hex()
    elif isinstance(obj, BInt):
        return obj.value
    elif isinstance(obj, BList):
        return [printable(item) for item in obj]
    elif isinstance(obj, BDict):
        return {printable(key): printable(value) for key, value in obj}
    raise TypeError(f"Not a bencode value: {type(obj)}")


def decoder_options(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "max_depth": args.max_depth,
        "max_string_length": args.max_string_length,
        "strict_integers": args.strict,
        "strict_keys": args.strict,
    }


def read_input(source: str) -> bytes:
    if source == "-":
        return sys.stdin.buffer.read()
    with open(source, "rb") as fp:
        return fp.read()


def cmd_decode(args: argparse.Namespace) -> int:
    if (args.value is None) == (args.file is None):
        raise ValueError("Pass either a value or --file")
    data = args.value.encode() if args.value is not None else read_input(args.file)
    obj = bencode.parse(data, **decoder_options(args))
    print(json.dumps(printable(obj), indent=args.indent))
    return 0


def print_metainfo(metainfo: Metainfo):
    info = metainfo.info
    print(f"Name: {info.name}")
    print(f"Tracker URL: {metainfo.announce}")
    print(f"Length: {info.total_length}")
    print(f"Info Hash: {metainfo.info_hash_hex}")
    print(f"Piece Length: {info.common.piece_length}")
    print(f"Private: {info.common.private}")
    if metainfo.creation_date is not None:
        print(f"Creation Date: {metainfo.creation_date}")
    if metainfo.comment:
        print(f"Comment: {metainfo.comment}")
    if metainfo.created_by:
        print(f"Created By: {metainfo.created_by}")
    if isinstance(info.layout, MultiFileInfo):
        print("Files:")
        for entry in info.layout.files:
            print(f"  {'/'.join(entry.path)} ({entry.length})")
    print("Piece Hashes:")
    for piece_hash in info.common.piece_hashes:
        print(piece_hash.hex())


def cmd_info(args: argparse.Namespace) -> int:
    metainfo = load_metainfo(args.torrent, **decoder_options(args))
    print_metainfo(metainfo)
    return 0


def cmd_announce(args: argparse.Namespace) -> int:
    metainfo = load_metainfo(args.torrent, **decoder_options(args))
    peer_id = args.peer_id.encode("latin-1")
    prepared = build_announce_request(
        args.tracker or metainfo,
        info_hash=metainfo.info_hash,
        peer_id=peer_id,
        port=args.port,
        left=metainfo.info.total_length,
        event=args.event,
    )
    sys.stdout.write(write_request(prepared).decode("latin-1"))
    return 0


def cmd_samples(args: argparse.Namespace) -> int:
    for sample in SAMPLES:
        try:
            result = json.dumps(printable(bencode.parse(sample)))
        except bencode.BencodeDecodingError as e:
            result = f"{type(e).__name__}: {e}"
        print(f"{sample.decode()} -> {result}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="torrent-bencode", description="Decode bencoded data and torrent files"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Reject non-canonical integers and unsorted or duplicate keys",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=bencode.DEFAULT_MAX_DEPTH,
        help="Deepest list/dict nesting accepted",
    )
    parser.add_argument(
        "--max-string-length", type=int, default=None, help="Largest string length accepted"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    decode = subparsers.add_parser("decode", help="Decode a value and print it as JSON")
    decode.add_argument("value", nargs="?", help="Bencoded value given inline")
    decode.add_argument("-f", "--file", help="Read the value from a file, - for stdin")
    decode.add_argument("--indent", type=int, default=None)
    decode.set_defaults(handler=cmd_decode)

    info = subparsers.add_parser("info", help="Show the metadata of a .torrent file")
    info.add_argument("torrent")
    info.set_defaults(handler=cmd_info)

    announce = subparsers.add_parser(
        "announce", help="Print the HTTP announce request for a .torrent file"
    )
    announce.add_argument("torrent")
    announce.add_argument("--peer-id", default="-TB0001-000000000000")
    announce.add_argument("--port", type=int, default=DEFAULT_PORT)
    announce.add_argument("--tracker", help="Announce url, defaults to the torrent's")
    announce.add_argument("--event", choices=["started", "stopped", "completed"])
    announce.set_defaults(handler=cmd_announce)

    samples = subparsers.add_parser("samples", help="Decode a few sample values")
    samples.set_defaults(handler=cmd_samples)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig()
    logging.getLogger("torrent_bencode").setLevel(
        logging.DEBUG if args.verbose else logging.INFO
    )

    try:
        return args.handler(args)
    except (ValueError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
