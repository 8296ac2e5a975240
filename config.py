import os


def _default_data_dir() -> str:
    env_dir = os.getenv("DATA_DIR")
    if env_dir:
        return env_dir
    # Home Assistant add-ons mount persistent storage at /config.
    if os.path.isdir("/config"):
        return "/config"
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "data")


class Config:
    BASE_DIR = os.path.dirname(os.path.abspath(__file__))
    DATA_DIR = _default_data_dir()

    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DB_URL",
        "sqlite:///" + os.path.join(DATA_DIR, "household.db"),
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.getenv("SECRET_KEY", "household-dev-secret")

    # "database" keeps each collection in the stored_document table,
    # "file" writes one JSON file per collection into DATA_DIR.
    STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "database")

    FLUSH_INTERVAL_SECONDS = float(os.getenv("FLUSH_INTERVAL_SECONDS", 1))
    FLUSH_SCHEDULER_ENABLED = os.getenv("FLUSH_SCHEDULER_ENABLED", "true")

    LOG_DIR = os.getenv("LOG_DIR", os.path.join(BASE_DIR, "logs"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", 5 * 1024 * 1024))
    LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", 5))
    CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "£")
