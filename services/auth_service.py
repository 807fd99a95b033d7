import hashlib
import secrets
from functools import wraps

from flask import current_app, g, request

from models import User, db
from services.errors import AuthenticationError, AuthorizationError, BadRequestError


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_user(name: str, email: str, role: str = "student"):
    # Returns the user plus the plain token; only the hash is stored.
    if role not in ("admin", "student"):
        raise BadRequestError(f"Unknown role: {role}")
    if User.query.filter_by(email=email.strip().lower()).first():
        raise BadRequestError("A user with this email already exists")

    token = secrets.token_hex(24)
    user = User(name=name.strip(), email=email.strip().lower(), role=role, token_hash=hash_token(token))
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Created %s user %s", role, user.email)
    return user, token


def load_current_user():
    # Resolve the bearer token once per request.
    g.current_user = None
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return
    token = header[len("Bearer "):].strip()
    if token:
        g.current_user = User.query.filter_by(token_hash=hash_token(token)).first()


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        user = g.get("current_user")
        if user is None:
            raise AuthenticationError("Authentication required")
        if not user.is_admin:
            current_app.logger.warning("Non-admin user %s attempted %s", user.email, request.path)
            raise AuthorizationError("Admin access required")
        return view(*args, **kwargs)

    return wrapper
