from functools import wraps
from flask import g, jsonify, request, current_app

def load_current_principal():
    """
    Identity is verified by the upstream gateway, which forwards the student id
    and role names in trusted headers. Nothing here re-checks credentials.
    """
    header = current_app.config.get("PRINCIPAL_HEADER", "X-Student-Id")
    role_header = current_app.config.get("ROLE_HEADER", "X-Principal-Role")

    principal = (request.headers.get(header) or "").strip()
    g.principal_id = principal or None

    raw_roles = request.headers.get(role_header) or ""
    g.principal_roles = {r.strip().upper() for r in raw_roles.split(",") if r.strip()}

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "principal_id", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
