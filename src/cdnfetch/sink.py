# Decrypted artifacts and the temporary handles that expose them
import os, shutil, tempfile, threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from werkzeug.utils import secure_filename

from cdnfetch.classify import classify


@dataclass(frozen=True)
class DecryptedArtifact:
    data: bytes
    mime_type: str
    name: str
    category: str = "other"

    @classmethod
    def from_plaintext(cls, data: bytes, name: str) -> "DecryptedArtifact":
        category, mime_type = classify(name)
        return cls(data=data, mime_type=mime_type, name=name, category=category)


def download_name(name: str) -> str:
    """
    Basename of the server-side name, keeping non-ASCII characters.
    Only names with no usable basename ("", ".", "..") go through secure_filename.
    """
    basename = Path(name.replace("\\", "/").replace("\x00", "")).name
    if basename in ("", ".", ".."):
        return secure_filename(name) or "download.bin"
    return basename


class ArtifactHandle:
    """
    A temporary file holding one artifact, addressable by path or file:// URI.
    Must be revoked once the consumer is done with it; revoking twice is a no-op.
    """

    def __init__(self, artifact: DecryptedArtifact):
        self.artifact = artifact
        suffix = Path(download_name(artifact.name)).suffix
        fd, path = tempfile.mkstemp(prefix="cdnfetch-", suffix=suffix)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(artifact.data)
        except BaseException:
            # Never leave partial plaintext behind without a handle to revoke it
            os.unlink(path)
            raise
        self.path = Path(path)
        self._revoked = False
        self._lock = threading.Lock()

    @property
    def uri(self) -> str:
        return self.path.as_uri()

    @property
    def revoked(self) -> bool:
        return self._revoked

    def save_to(self, directory) -> Path:
        """
        Copy the artifact into directory under its original file name.
        An existing file is never overwritten; "name (1).ext", "name (2).ext", ... are tried instead.
        """
        if self._revoked:
            raise RuntimeError("Handle has already been revoked")
        filename = download_name(self.artifact.name)
        stem, suffix = os.path.splitext(filename)
        directory = Path(directory)
        output_path = directory / filename
        n = 0
        while True:
            try:
                with open(self.path, "rb") as src, open(output_path, "xb") as dst:
                    shutil.copyfileobj(src, dst)
                return output_path
            except FileExistsError:
                n += 1
                output_path = directory / f"{stem} ({n}){suffix}"

    def revoke(self) -> bool:
        """Delete the backing file. Returns True only for the call that actually revoked it."""
        with self._lock:
            if self._revoked:
                return False
            self._revoked = True
        self.path.unlink(missing_ok=True)
        return True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.revoke()

    def __repr__(self):
        state = "revoked" if self._revoked else "live"
        return f"<ArtifactHandle {self.artifact.name!r} {state}>"


def open_handle(artifact: DecryptedArtifact) -> ArtifactHandle:
    return ArtifactHandle(artifact)


class PlaybackSession:
    """
    Holds at most one live handle for a player.

    Each retrieval calls begin() to get a ticket before it starts; a retrieval
    that was overtaken by a newer begin() gets no handle when it resolves.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._ticket = 0
        self._handle: Optional[ArtifactHandle] = None

    @property
    def handle(self) -> Optional[ArtifactHandle]:
        return self._handle

    def begin(self) -> int:
        with self._lock:
            self._ticket += 1
            return self._ticket

    def is_current(self, ticket: Optional[int]) -> bool:
        return ticket is None or ticket == self._ticket

    def attach(self, artifact: DecryptedArtifact, ticket: Optional[int] = None) -> Optional[ArtifactHandle]:
        with self._lock:
            if not self.is_current(ticket):
                return None
            previous, self._handle = self._handle, None
            if previous is not None:
                previous.revoke()
            self._handle = open_handle(artifact)
            return self._handle

    def close(self):
        with self._lock:
            previous, self._handle = self._handle, None
            self._ticket += 1
        if previous is not None:
            previous.revoke()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
