import os
from pathlib import Path
from dotenv import load_dotenv

# .env sits next to the package (matters when started from another directory)
load_dotenv(Path(__file__).with_name(".env"))


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


DATABASE_URL = os.getenv("DATABASE_URL")

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = _int("ACCESS_TOKEN_EXPIRE_MINUTES", 7 * 24 * 60)

GENERATOR_URL = os.getenv("GENERATOR_URL", "http://localhost:8100/generate")
GENERATOR_API_KEY = os.getenv("GENERATOR_API_KEY")
GENERATOR_TIMEOUT = float(os.getenv("GENERATOR_TIMEOUT") or 30)

# slack for network latency on timer-driven submits
SUBMIT_GRACE_SECONDS = _int("SUBMIT_GRACE_SECONDS", 30)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")
