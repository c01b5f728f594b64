import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "shiftboard_test"),
}

DEBUG = False
TESTING = True

DOCUMENT_STORE = "memory"
AUTO_INIT_DB = False

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
TRANSACTION_ATTEMPTS = 1
MAX_OPEN_SYNCS = int(os.getenv("MAX_OPEN_SYNCS", "256"))
