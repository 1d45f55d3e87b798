import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
from urllib.parse import quote

import requests

from cdnfetch.classify import PLAYABLE_TYPES, get_file_type
from cdnfetch.config import API_KEY, DECRYPT_WORKERS, REQUEST_TIMEOUT, SERVER_URL
from cdnfetch.encryption import DecryptionKey, decrypt_file
from cdnfetch.errors import FetchError, RetrievalCancelled, RetrievalError
from cdnfetch.sink import DecryptedArtifact, PlaybackSession, open_handle
from cdnfetch.utils import decode_transport

UPLOAD_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class FileDescriptor:
    name: str
    size: int
    upload_date: Optional[datetime]
    category: str = "other"

    @classmethod
    def from_json(cls, item: dict) -> "FileDescriptor":
        try:
            upload_date = datetime.strptime(item.get("uploadDate", ""), UPLOAD_DATE_FORMAT)
        except (TypeError, ValueError):
            upload_date = None
        name = item["name"]
        return cls(name=name, size=int(item.get("size", 0)), upload_date=upload_date, category=get_file_type(name))


def _headers():
    return {"X-API-Key": API_KEY}


def list_files() -> List[FileDescriptor]:
    try:
        res = requests.get(f"{SERVER_URL}/files", headers=_headers(), timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise FetchError(f"Could not reach server: {e}") from e

    if res.status_code != 200:
        raise FetchError(f"File listing failed: {res.status_code} - {res.text}", status_code=res.status_code)

    try:
        return [FileDescriptor.from_json(item) for item in res.json()]
    except (ValueError, KeyError, TypeError) as e:
        raise FetchError(f"Malformed file listing: {e}") from e


def fetch_payload(
    name: str,
    progress: Optional[Callable[[int, Optional[int]], None]] = None,
    cancel: Optional[threading.Event] = None,
) -> bytes:
    """
    Download the base64 body for one file. progress(received, total) is called
    per network block; total is None when the server sends no Content-Length.
    """
    url = f"{SERVER_URL}/download/{quote(name, safe='')}"
    try:
        with requests.get(url, headers=_headers(), stream=True, timeout=REQUEST_TIMEOUT) as res:
            if res.status_code != 200:
                raise FetchError(f"Download failed: {res.status_code} - {res.text}", status_code=res.status_code)

            length = res.headers.get("Content-Length")
            total = int(length) if length and length.isdigit() else None
            body = bytearray()
            for block in res.iter_content(chunk_size=64 * 1024):
                if cancel is not None and cancel.is_set():
                    raise RetrievalCancelled("Retrieval cancelled during download")
                body.extend(block)
                if progress:
                    progress(len(body), total)
            return bytes(body)
    except requests.RequestException as e:
        raise FetchError(f"Could not reach server: {e}") from e


def retrieve_artifact(
    name: str,
    key: Optional[DecryptionKey] = None,
    workers: int = DECRYPT_WORKERS,
    progress: Optional[Callable[[str, int, Optional[int]], None]] = None,
    cancel: Optional[threading.Event] = None,
) -> DecryptedArtifact:
    """
    Fetch, decode, decrypt and classify one file.

    progress(stage, done, total) reports "download" bytes and "decrypt" chunks.
    Raises a RetrievalError subclass on any failure; nothing is returned unless
    every chunk authenticated.
    """
    def report(stage):
        if progress is None:
            return None
        return lambda done, total: progress(stage, done, total)

    text = fetch_payload(name, progress=report("download"), cancel=cancel)
    raw = decode_transport(text)
    plaintext = decrypt_file(raw, key=key, workers=workers, progress=report("decrypt"), cancel=cancel)
    return DecryptedArtifact.from_plaintext(plaintext, name)


def download_file(name: str, dir, key: Optional[DecryptionKey] = None, workers: int = DECRYPT_WORKERS, logger=print):
    def log(msg):
        if logger:
            logger(msg)

    try:
        log(f"[→] Requesting {name} from server...")
        artifact = retrieve_artifact(name, key=key, workers=workers)
        log(f"[✓] Decryption successful ({len(artifact.data)} bytes, {artifact.mime_type})")
    except RetrievalError as e:
        log(f"[!] {e.user_message} ({e})")
        return None

    try:
        with open_handle(artifact) as handle:
            output_path = handle.save_to(dir)
        log(f"[✓] File saved as: {output_path}")
        return output_path
    except OSError as e:
        log(f"[!] Failed to write file: {e}")
        return None


def play_file(
    name: str,
    session: PlaybackSession,
    key: Optional[DecryptionKey] = None,
    workers: int = DECRYPT_WORKERS,
    cancel: Optional[threading.Event] = None,
    logger=print,
):
    """
    Retrieve a file into the session's playback slot. The previous handle is
    revoked when the new one is attached. Returns the new handle or None.
    """
    def log(msg):
        if logger:
            logger(msg)

    ticket = session.begin()
    try:
        log(f"[⋯] Preparing {name} for playback...")
        artifact = retrieve_artifact(name, key=key, workers=workers, cancel=cancel)
    except RetrievalError as e:
        log(f"[!] {e.user_message} ({e})")
        return None

    if artifact.category not in PLAYABLE_TYPES:
        log(f"[!] {name} is not an audio or video file ({artifact.mime_type})")

    try:
        handle = session.attach(artifact, ticket)
    except OSError as e:
        log(f"[!] Failed to prepare playback file: {e}")
        return None
    if handle is None:
        log(f"[!] Playback of {name} was replaced before it finished; discarding")
        return None
    log(f"[✓] Ready to play: {handle.uri} ({artifact.mime_type})")
    return handle