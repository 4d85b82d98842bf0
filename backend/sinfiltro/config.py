import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Behind a reverse proxy (nginx, etc.)
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Shared state store: memory:// (default) or redis://host:port/db
    STORE_URL = os.environ.get("STORE_URL", "memory://")

    # Answer auto-fill (empty token -> always filler text)
    HUGGINGFACE_TOKEN = os.environ.get("HUGGINGFACE_TOKEN", "")
    AUTOFILL_MODEL = os.environ.get("AUTOFILL_MODEL", "mistralai/Mistral-7B-Instruct-v0.2")
    AUTOFILL_TIMEOUT_SEC = float(os.environ.get("AUTOFILL_TIMEOUT_SEC", "8"))

    # Game
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "3"))
    MAX_NAME_LENGTH = int(os.environ.get("MAX_NAME_LENGTH", "15"))
    FILL_GRACE_SEC = int(os.environ.get("FILL_GRACE_SEC", "2"))
    RESULTS_DELAY_SEC = int(os.environ.get("RESULTS_DELAY_SEC", "10"))

    # Referee (TV role)
    REFEREE_ENABLED = os.environ.get("REFEREE_ENABLED", "1") == "1"
    REFEREE_TICK_SEC = float(os.environ.get("REFEREE_TICK_SEC", "0.25"))
    HEARTBEAT_INTERVAL_SEC = int(os.environ.get("HEARTBEAT_INTERVAL_SEC", "120"))

    # Room recycling
    FINISHED_GRACE_SEC = int(os.environ.get("FINISHED_GRACE_SEC", str(15 * 60)))
    INACTIVE_SEC = int(os.environ.get("INACTIVE_SEC", str(2 * 60 * 60)))
    MAX_ROOM_AGE_SEC = int(os.environ.get("MAX_ROOM_AGE_SEC", str(4 * 60 * 60)))
