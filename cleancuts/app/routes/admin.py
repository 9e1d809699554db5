"""
routes/admin.py — Order administration.

Admin access is an access token whose phone matches ADMIN_PHONE; see
middleware/auth_middleware.require_admin.

Endpoints (url_prefix=/api):
  GET    /admin/orders               → 200
  PATCH  /admin/orders/:id/status    → 200
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from cleancuts.app.extensions import db
from cleancuts.app.middleware.auth_middleware import require_admin
from cleancuts.app.schemas.order_schema import UpdateOrderStatusSchema
from cleancuts.app.services import order_service

admin_bp = Blueprint("admin", __name__)


@admin_bp.route("/admin/orders", methods=["GET"])
@require_admin
def list_orders():
    """GET /admin/orders — Every order with its owner's contact details."""
    result = order_service.list_all_orders(session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@admin_bp.route("/admin/orders/<int:order_id>/status", methods=["PATCH"])
@require_admin
def update_order_status(order_id: int):
    """PATCH /admin/orders/:id/status — Move an order to a new fulfilment status."""
    data = UpdateOrderStatusSchema().load(request.get_json(force=True, silent=True) or {})
    result = order_service.update_order_status(
        order_id=order_id,
        status=data["status"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200
