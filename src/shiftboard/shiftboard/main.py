from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .approvals.controller import register as register_approvals
from .common.http import error_response
from .container import Container, build_container_from_settings
from .core.exceptions import DomainError
from .database.bootstrap import apply_schema, list_tables
from .shifts.controller import register as register_shifts

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(container: Optional[Container] = None) -> Flask:
    """Build the JSON API; tests pass their own ``container``."""

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    _configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    if container is None:
        store_kind = str(getattr(settings, "DOCUMENT_STORE", "memory")).lower()
        db_config = getattr(settings, "DB_CONFIG", {})
        logger.info("settings=%s store=%s", settings_module, store_kind)

        if store_kind == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("schema ready (tables=%s)", len(list_tables(db_config)))

        container = build_container_from_settings(settings)

    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        return error_response(exc)

    register_shifts(app, container)
    register_approvals(app, container)
    app.extensions["shiftboard.container"] = container

    return app
