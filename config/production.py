import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "shiftboard"),
}

DEBUG = False

DOCUMENT_STORE = os.getenv("DOCUMENT_STORE", "mysql")
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
TRANSACTION_ATTEMPTS = int(os.getenv("TRANSACTION_ATTEMPTS", "5"))
MAX_OPEN_SYNCS = int(os.getenv("MAX_OPEN_SYNCS", "256"))
