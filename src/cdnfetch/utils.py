import base64, binascii, platform, subprocess

from cdnfetch.errors import TransportDecodeError


def decode_transport(text) -> bytes:
    """
    Decode the base64 text the server sends back into raw payload bytes.
    Accepts str or bytes; surrounding whitespace (e.g. a trailing newline) is ignored.
    """
    if isinstance(text, str):
        try:
            text = text.strip().encode("ascii")
        except UnicodeEncodeError as e:
            raise TransportDecodeError(f"Payload is not ASCII: {e}") from e
    else:
        text = bytes(text).strip()

    try:
        # validate=True rejects characters outside the alphabet instead of skipping them
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise TransportDecodeError(f"Invalid base64 payload: {e}") from e


def format_file_size(size: int) -> str:
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    i = 0
    while i < len(units) - 1 and size >= 1024 ** (i + 1):
        i += 1
    value = f"{size / 1024 ** i:.2f}".rstrip("0").rstrip(".")
    return f"{value} {units[i]}"


def open_with_default_app(path):
    # Platform-specific "open this file" action
    system = platform.system()
    if system == "Darwin":
        subprocess.run(["open", str(path)])
    elif system == "Windows":
        subprocess.run(["explorer", str(path)])
    elif system == "Linux":
        subprocess.run(["xdg-open", str(path)])
    else:
        raise RuntimeError(f"Unsupported platform: {system}")
