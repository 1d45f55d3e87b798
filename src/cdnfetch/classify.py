# Extension -> category / MIME type lookup

FILE_TYPES = {
    "image": {"jpg", "jpeg", "png", "gif", "webp", "svg", "bmp", "ico", "tiff"},
    "video": {"mp4", "webm", "avi", "mov", "wmv", "flv", "mkv", "m4v", "3gp", "ogv"},
    "document": {"pdf", "doc", "docx", "txt", "rtf", "odt", "xls", "xlsx", "ppt", "pptx", "csv", "md"},
    "archive": {"zip", "rar", "7z", "tar", "gz", "bz2"},
    "audio": {"mp3", "wav", "ogg", "oga", "flac", "m4a", "aac", "wma"},
    "code": {"js", "ts", "jsx", "tsx", "html", "css", "scss", "json", "xml", "yaml",
             "py", "java", "cpp", "c", "cs", "php", "go", "rs"},
}

MIME_TYPES = {
    # Images
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "bmp": "image/bmp",
    # Video
    "mp4": "video/mp4",
    "m4v": "video/mp4",
    "webm": "video/webm",
    "ogv": "video/ogg",
    "mov": "video/quicktime",
    "mkv": "video/x-matroska",
    # Audio
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "oga": "audio/ogg",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    "m4a": "audio/mp4",
    "aac": "audio/aac",
    # Documents
    "pdf": "application/pdf",
    "txt": "text/plain",
    "csv": "text/csv",
    "md": "text/markdown",
    # Archives
    "zip": "application/zip",
    "gz": "application/gzip",
    "tar": "application/x-tar",
    "7z": "application/x-7z-compressed",
    # Code
    "json": "application/json",
    "html": "text/html",
    "css": "text/css",
    "xml": "application/xml",
}

DEFAULT_MIME_TYPE = "application/octet-stream"
PLAYABLE_TYPES = ("audio", "video")


def get_extension(filename: str) -> str:
    # "archive.tar.gz" -> "gz", "noext" -> ""
    _, dot, ext = filename.rpartition(".")
    return ext.lower() if dot else ""


def get_file_type(filename: str) -> str:
    ext = get_extension(filename)
    for file_type, extensions in FILE_TYPES.items():
        if ext in extensions:
            return file_type
    return "other"


def get_mime_type(filename: str) -> str:
    return MIME_TYPES.get(get_extension(filename), DEFAULT_MIME_TYPE)


def classify(filename: str) -> tuple:
    """Return (category, mime_type) for a file name. Unknown names degrade to ("other", octet-stream)."""
    return get_file_type(filename), get_mime_type(filename)
