import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "shiftboard"),
}

DEBUG = True

# "memory" keeps documents in-process; "mysql" uses DB_CONFIG.
DOCUMENT_STORE = os.getenv("DOCUMENT_STORE", "memory")

# If enabled with the mysql store, schema.sql is applied on startup (CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
TRANSACTION_ATTEMPTS = int(os.getenv("TRANSACTION_ATTEMPTS", "5"))
MAX_OPEN_SYNCS = int(os.getenv("MAX_OPEN_SYNCS", "256"))
