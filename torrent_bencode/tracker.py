# !/usr/bin/env python
# tracker.py
import logging
from typing import Optional, Union
from urllib.parse import urlsplit

import requests

from torrent_bencode.metainfo import Metainfo

logger = logging.getLogger(__name__)

DEFAULT_PORT = 6881
# info_hash and peer_id are both raw 20 byte values
ID_LENGTH = 20
USER_AGENT = "torrent-bencode"


class TRACKER_EVENT:
    STARTED = "started"
    STOPPED = "stopped"
    COMPLETED = "completed"


class TrackerRequestError(ValueError):
    ...


def is_http_tracker(url: str) -> bool:
    return urlsplit(url).scheme in ("http", "https")


def pick_http_tracker(metainfo: Metainfo) -> str:
    """
    Returns the first HTTP(S) tracker of a torrent

    Args:
        - metainfo (Metainfo): Parsed torrent

    Returns:
        - str: Announce url
    """
    for tracker in metainfo.trackers:
        if is_http_tracker(tracker):
            return tracker
        logger.debug("Skipping non HTTP tracker %s", tracker)
    raise TrackerRequestError(
        f"No HTTP tracker found for {metainfo.info.name}: {metainfo.trackers}"
    )


def build_announce_request(
    tracker: Union[Metainfo, str],
    info_hash: Optional[bytes],
    peer_id: bytes,
    port: int = DEFAULT_PORT,
    uploaded: int = 0,
    downloaded: int = 0,
    left: int = 0,
    event: Optional[str] = None,
    compact: bool = True,
) -> requests.PreparedRequest:
    """
    Prepares (but does not send) an HTTP GET announce request

    Args:
        - tracker (Metainfo | str): Torrent to announce, or the announce url itself
        - info_hash (bytes, optional): 20 byte info hash, taken from ``tracker`` when it is a Metainfo and this is None
        - peer_id (bytes): 20 byte peer id
        - port (int, optional): Port we listen on. Defaults to 6881.
        - uploaded (int, optional): Bytes uploaded so far. Defaults to 0.
        - downloaded (int, optional): Bytes downloaded so far. Defaults to 0.
        - left (int, optional): Bytes still missing. Defaults to 0.
        - event (str, optional): One of TRACKER_EVENT. Defaults to None.
        - compact (bool, optional): Ask for the compact peer list. Defaults to True.

    Returns:
        - requests.PreparedRequest: The request with its query string encoded
    """
    if isinstance(tracker, Metainfo):
        url = pick_http_tracker(tracker)
        if info_hash is None:
            info_hash = tracker.info_hash
    else:
        url = tracker
        if not is_http_tracker(url):
            raise TrackerRequestError(f"Only HTTP(S) trackers are supported, got {url}")

    if info_hash is None or len(info_hash) != ID_LENGTH:
        raise TrackerRequestError(f"info_hash must be {ID_LENGTH} bytes")
    if len(peer_id) != ID_LENGTH:
        raise TrackerRequestError(f"peer_id must be {ID_LENGTH} bytes")
    if event is not None and event not in (
        TRACKER_EVENT.STARTED,
        TRACKER_EVENT.STOPPED,
        TRACKER_EVENT.COMPLETED,
    ):
        raise TrackerRequestError(f"Unknown announce event {event}")

    params = [
        ("info_hash", info_hash),
        ("peer_id", peer_id),
        ("port", port),
        ("uploaded", uploaded),
        ("downloaded", downloaded),
        ("left", left),
        ("compact", 1 if compact else 0),
    ]
    if event is not None:
        params.append(("event", event))

    request = requests.Request(
        "GET",
        url,
        params=params,
        headers={"User-Agent": USER_AGENT, "Connection": "close"},
    )
    prepared = request.prepare()
    logger.debug("Prepared announce request %s", prepared.url)
    return prepared


def write_request(prepared: requests.PreparedRequest) -> bytes:
    """
    Renders a prepared GET request as HTTP/1.1 wire bytes

    Args:
        - prepared (requests.PreparedRequest): Request to render

    Returns:
        - bytes: Request line and headers, terminated by an empty line
    """
    if prepared.method != "GET":
        raise TrackerRequestError(f"Only GET requests can be written, got {prepared.method}")

    host = urlsplit(prepared.url).netloc
    lines = [f"GET {prepared.path_url} HTTP/1.1", f"Host: {host}"]
    for name, value in prepared.headers.items():
        if name.lower() == "host":
            continue
        lines.append(f"{name}: {value}")

    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")
