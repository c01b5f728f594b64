from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .approvals.batch import BatchApprovalCoordinator
from .approvals.engine import ApprovalTransactionEngine
from .approvals.repository import ApprovalRepository
from .approvals.service import ApprovalService
from .auth.roles import RoleDirectory
from .core.constants import DEFAULT_MAX_OPEN_SYNCS, DEFAULT_TRANSACTION_ATTEMPTS
from .database.connection import DBConfig, DatabaseConnection
from .documents.memory_store import InMemoryDocumentStore
from .documents.mysql_store import MySQLDocumentStore
from .documents.store import DocumentStore
from .shifts.repository import ShiftRequestRepository
from .shifts.service import ShiftRequestService


@dataclass(frozen=True)
class Container:
    store: DocumentStore

    shift_requests_repo: ShiftRequestRepository
    approvals_repo: ApprovalRepository
    role_directory: RoleDirectory

    approval_engine: ApprovalTransactionEngine
    batch_coordinator: BatchApprovalCoordinator

    shift_request_service: ShiftRequestService
    approval_service: ApprovalService


def build_store(
    *,
    kind: str = "memory",
    db_config: Optional[dict] = None,
    transaction_attempts: int = DEFAULT_TRANSACTION_ATTEMPTS,
) -> DocumentStore:
    kind = (kind or "memory").lower()
    if kind == "memory":
        return InMemoryDocumentStore()
    if kind == "mysql":
        if not db_config:
            raise ValueError("DB_CONFIG is required for the mysql document store")
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
        return MySQLDocumentStore(conn, transaction_attempts=transaction_attempts)
    raise ValueError(f"Unknown DOCUMENT_STORE: {kind!r}")


def build_container(*, store: DocumentStore, max_open_syncs: int = DEFAULT_MAX_OPEN_SYNCS) -> Container:
    shift_requests_repo = ShiftRequestRepository(store)
    approvals_repo = ApprovalRepository(store)
    role_directory = RoleDirectory(store)

    approval_engine = ApprovalTransactionEngine(store)
    batch_coordinator = BatchApprovalCoordinator(store)

    shift_request_service = ShiftRequestService(store, shift_requests_repo, max_open_syncs=max_open_syncs)
    approval_service = ApprovalService(approvals_repo, approval_engine, batch_coordinator, role_directory)

    return Container(
        store=store,
        shift_requests_repo=shift_requests_repo,
        approvals_repo=approvals_repo,
        role_directory=role_directory,
        approval_engine=approval_engine,
        batch_coordinator=batch_coordinator,
        shift_request_service=shift_request_service,
        approval_service=approval_service,
    )


def build_container_from_settings(settings: Any) -> Container:
    store = build_store(
        kind=getattr(settings, "DOCUMENT_STORE", "memory"),
        db_config=getattr(settings, "DB_CONFIG", None),
        transaction_attempts=int(getattr(settings, "TRANSACTION_ATTEMPTS", DEFAULT_TRANSACTION_ATTEMPTS)),
    )
    return build_container(
        store=store,
        max_open_syncs=int(getattr(settings, "MAX_OPEN_SYNCS", DEFAULT_MAX_OPEN_SYNCS)),
    )
