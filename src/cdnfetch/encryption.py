# AES-GCM chunked decryption
import base64, binascii, os, threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from cdnfetch import config
from cdnfetch.errors import IntegrityError, KeyImportError, MalformedPayloadError, RetrievalCancelled

SUPPORTED_KEY_SIZES = (16, 24, 32)  # AES-128/192/256


@dataclass
class EncryptedPayload:
    nonce: bytes
    chunks: List[bytes] = field(default_factory=list)


class DecryptionKey:
    """
    Read-only AES-GCM key handle. Only exposes decrypt(), so the client can
    never be used to produce ciphertext. Safe to share between threads.
    """

    __slots__ = ("_aesgcm",)

    def __init__(self, raw_key: bytes):
        if len(raw_key) not in SUPPORTED_KEY_SIZES:
            raise KeyImportError(
                f"AES key must be 16, 24 or 32 bytes, got {len(raw_key)}"
            )
        self._aesgcm = AESGCM(raw_key)

    def decrypt(self, nonce: bytes, data: bytes) -> bytes:
        return self._aesgcm.decrypt(nonce, data, None)

    def __repr__(self):
        return "<DecryptionKey AES-GCM>"


# --- Key Management ---

def import_key(key_b64) -> DecryptionKey:
    try:
        raw_key = base64.b64decode(key_b64, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise KeyImportError(f"AES key is not valid base64: {e}") from e
    return DecryptionKey(raw_key)


_shared_key: Optional[DecryptionKey] = None
_shared_key_lock = threading.Lock()


def get_shared_key() -> DecryptionKey:
    """
    Import the configured key once and hand out the same handle afterwards.
    The key is static for the life of the process, so nothing ever invalidates it.
    """
    global _shared_key
    if _shared_key is None:
        with _shared_key_lock:
            if _shared_key is None:
                key_b64 = os.getenv(config.AES_KEY_ENV)
                if not key_b64:
                    raise KeyImportError(f"{config.AES_KEY_ENV} environment variable is not set")
                _shared_key = import_key(key_b64.strip())
    return _shared_key


# --- Framing ---

def split_payload(raw: bytes, chunk_size: Optional[int] = None) -> EncryptedPayload:
    """
    nonce(12) || chunk_1 || ... || chunk_n, each chunk being ciphertext || tag(16).
    Every chunk but the last carries exactly chunk_size bytes of plaintext.
    """
    chunk_size = chunk_size or config.CHUNK_SIZE
    window = chunk_size + config.TAG_SIZE

    if len(raw) < config.NONCE_SIZE + config.TAG_SIZE:
        raise MalformedPayloadError(
            f"Payload too short: {len(raw)} bytes, need at least "
            f"{config.NONCE_SIZE + config.TAG_SIZE}"
        )

    nonce = raw[:config.NONCE_SIZE]
    body = memoryview(raw)[config.NONCE_SIZE:]

    # A bare tag is how the server encodes an empty file
    if len(body) == config.TAG_SIZE:
        return EncryptedPayload(nonce=nonce, chunks=[bytes(body)])

    chunks = [bytes(body[offset:offset + window]) for offset in range(0, len(body), window)]
    if len(chunks[-1]) <= config.TAG_SIZE:
        raise MalformedPayloadError(
            f"Trailing chunk of {len(chunks[-1])} bytes holds no ciphertext "
            f"(chunk size {chunk_size} does not match the server?)"
        )
    return EncryptedPayload(nonce=nonce, chunks=chunks)


# --- Decryption ---

def decrypt_chunk(key: DecryptionKey, nonce: bytes, chunk: bytes, index: int = 0) -> bytes:
    # NOTE: the server seals every chunk under the same nonce. Reproduced here
    # for wire compatibility only; never reuse this scheme for encryption.
    try:
        return key.decrypt(nonce, chunk)
    except InvalidTag:
        raise IntegrityError(f"Chunk {index} failed authentication", chunk_index=index) from None


def decrypt_chunks(
    payload: EncryptedPayload,
    key: DecryptionKey,
    workers: int = 1,
    progress: Optional[Callable[[int, int], None]] = None,
    cancel: Optional[threading.Event] = None,
) -> List[bytes]:
    """
    Decrypt all chunks and return their plaintexts in chunk order.

    With workers > 1 the chunks are decrypted on a thread pool; results are
    still collected by index, so the output never depends on completion order.
    The first failure (integrity or cancellation) aborts everything and no
    plaintext is returned.
    """
    total = len(payload.chunks)

    def check_cancelled():
        if cancel is not None and cancel.is_set():
            raise RetrievalCancelled("Retrieval cancelled during decryption")

    def report(done):
        if progress:
            progress(done, total)

    if workers <= 1 or total == 1:
        plaintexts = []
        for i, chunk in enumerate(payload.chunks):
            check_cancelled()
            plaintexts.append(decrypt_chunk(key, payload.nonce, chunk, i))
            report(i + 1)
        return plaintexts

    def work(i):
        check_cancelled()
        return decrypt_chunk(key, payload.nonce, payload.chunks[i], i)

    executor = ThreadPoolExecutor(max_workers=workers)
    try:
        futures = [executor.submit(work, i) for i in range(total)]
        plaintexts = []
        for i, future in enumerate(futures):
            plaintexts.append(future.result())
            report(i + 1)
        return plaintexts
    finally:
        # On failure, drop chunks that have not started yet
        executor.shutdown(wait=True, cancel_futures=True)


def assemble_chunks(chunks: List[bytes]) -> bytes:
    return b"".join(chunks)


def decrypt_file(
    raw: bytes,
    key: Optional[DecryptionKey] = None,
    chunk_size: Optional[int] = None,
    workers: int = 1,
    progress: Optional[Callable[[int, int], None]] = None,
    cancel: Optional[threading.Event] = None,
) -> bytes:
    """
    Frame, decrypt and reassemble one downloaded payload.
    Framing is validated before the key is touched or any chunk is decrypted.
    """
    payload = split_payload(raw, chunk_size)
    if key is None:
        key = get_shared_key()
    return assemble_chunks(decrypt_chunks(payload, key, workers, progress, cancel))
