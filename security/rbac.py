from functools import wraps
from flask import g, jsonify

def require_roles(*role_names: str):
    """
    Usage: @require_roles("ADMIN")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if getattr(g, "principal_id", None) is None:
                return jsonify(error="Authentication required"), 401

            roles = getattr(g, "principal_roles", None) or set()
            if "SUPER_ADMIN" not in roles and not roles.intersection(set(role_names)):
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
