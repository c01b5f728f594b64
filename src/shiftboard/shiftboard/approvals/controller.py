from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_user_id, current_user_name, json_body, login_required
from ..container import Container
from ..core.enums import ApprovalStatus, ApprovalType
from ..core.exceptions import ValidationError
from .model import ApprovalAction, Requester


def _parse_enum(enum_cls, value, label: str):
    if not value:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Unknown {label}: {value!r}")


def register(app: Flask, container: Container) -> None:
    service = container.approval_service

    def _action(body: dict) -> ApprovalAction:
        return ApprovalAction(
            actor_user_id=current_user_id(),
            actor_display_name=current_user_name(),
            comment=body.get("comment") if isinstance(body.get("comment"), str) else None,
        )

    @app.route("/api/approvals", methods=["GET"], endpoint="list_approvals")
    @login_required
    def list_approvals():
        approvals = service.list_approvals(
            current_user_id=current_user_id(),
            store_id=request.args.get("storeId") or None,
            status=_parse_enum(ApprovalStatus, request.args.get("status"), "status"),
            approval_type=_parse_enum(ApprovalType, request.args.get("type"), "approval type"),
        )
        return jsonify([a.to_dict() for a in approvals])

    @app.route("/api/approvals/batches", methods=["POST"], endpoint="create_approval_batch")
    @login_required
    def create_approval_batch():
        body = json_body()
        targets = body.get("targetRoleDocIds")
        if not isinstance(targets, list) or not all(isinstance(t, str) for t in targets):
            raise ValidationError("targetRoleDocIds must be a list of strings")
        payload = body.get("payload") or {}
        if not isinstance(payload, dict):
            raise ValidationError("payload must be an object")
        result = service.submit_proxy_request(
            requester=Requester(uid=current_user_id(), name=current_user_name()),
            store_id=str(body.get("storeId") or ""),
            target_role_doc_ids=targets,
            approval_type=str(body.get("type") or ""),
            payload=payload,
            title=body.get("title") or None,
            comment_required=body.get("commentRequired") is True,
        )
        return jsonify(result.to_dict()), 201

    @app.route("/api/approvals/<approval_id>/approve", methods=["POST"], endpoint="approve_approval")
    @login_required
    def approve_approval(approval_id: str):
        approval = service.approve(approval_id, _action(json_body()))
        return jsonify(approval.to_dict())

    @app.route("/api/approvals/<approval_id>/reject", methods=["POST"], endpoint="reject_approval")
    @login_required
    def reject_approval(approval_id: str):
        approval = service.reject(approval_id, _action(json_body()))
        return jsonify(approval.to_dict())

    def _bulk_ids(body: dict) -> list[str]:
        ids = body.get("approvalIds")
        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            raise ValidationError("approvalIds must be a list of strings")
        return ids

    @app.route("/api/approvals/bulk/approve", methods=["POST"], endpoint="bulk_approve")
    @login_required
    def bulk_approve():
        body = json_body()
        applied = service.approve_many(_bulk_ids(body), _action(body))
        return jsonify({"applied": applied})

    @app.route("/api/approvals/bulk/reject", methods=["POST"], endpoint="bulk_reject")
    @login_required
    def bulk_reject():
        body = json_body()
        applied = service.reject_many(_bulk_ids(body), _action(body))
        return jsonify({"applied": applied})
