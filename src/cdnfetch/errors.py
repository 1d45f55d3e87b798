# Retrieval failures, grouped by what the user should be told


class RetrievalError(Exception):
    kind = "read"
    user_message = "Could not read the file data."


class FetchError(RetrievalError):
    """The server could not be reached or refused the request."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class TransportDecodeError(RetrievalError):
    """The payload is not valid base64."""


class KeyImportError(RetrievalError):
    kind = "config"
    user_message = "The decryption key is missing or invalid."


class MalformedPayloadError(RetrievalError):
    """Framing does not match the configured nonce/tag/chunk sizes."""
    kind = "config"
    user_message = "The file does not match the expected encryption settings."


class IntegrityError(RetrievalError):
    kind = "integrity"
    user_message = "The file failed its integrity check and was discarded."

    def __init__(self, message, chunk_index=None):
        super().__init__(message)
        self.chunk_index = chunk_index


class RetrievalCancelled(RetrievalError):
    kind = "cancelled"
    user_message = "The retrieval was cancelled."
