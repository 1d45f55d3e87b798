import os
from dotenv import load_dotenv


load_dotenv()

SERVER_URL = os.getenv("CDN_SERVER_URL", "http://localhost:17233").rstrip("/")
API_KEY = os.getenv("CDN_API_KEY", "")
AES_KEY_ENV = "CDN_AES_KEY"

# Must match the encrypting server exactly
CHUNK_SIZE = int(os.getenv("CDN_CHUNK_SIZE", 1024 * 1024))  # 1 MiB of plaintext per chunk
NONCE_SIZE = 12  # 96 bits for AES-GCM standard
TAG_SIZE = 16    # 128-bit GCM tag appended to every chunk

DECRYPT_WORKERS = int(os.getenv("CDN_DECRYPT_WORKERS", 4))
REQUEST_TIMEOUT = float(os.getenv("CDN_REQUEST_TIMEOUT", 10))
