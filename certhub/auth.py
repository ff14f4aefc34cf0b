"""
User registration, login and the bearer-token gate for protected routes.

Passwords are hashed with bcrypt; tokens are HS256 JWTs issued through
flask-jwt-extended and carry the ``userId``, ``username`` and ``role`` claims.
Tokens are stateless: nothing revokes them before their expiry.
"""
import bcrypt
from flask import current_app
from flask_jwt_extended import JWTManager, create_access_token, get_jwt
from sqlalchemy.exc import IntegrityError

from certhub.errors import (
    DuplicateUsername,
    InvalidCredentials,
    InvalidOrExpiredToken,
    MissingToken,
    ValidationError,
    error_response,
)
from certhub.models import ROLE_ISSUER, ROLES, User, db


def hash_password(password, rounds=None):
    rounds = rounds or current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def check_password(password, password_hash):
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def _text(data, key):
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"invalid {key}")
    return value


def register_user(data, role=ROLE_ISSUER):
    if not isinstance(data, dict):
        raise ValidationError("invalid body")
    username = _text(data, "username").strip()
    password = _text(data, "password")
    organization = _text(data, "organization").strip() or None
    if not username or not password:
        raise ValidationError("username and password are required")
    if role not in ROLES:
        raise ValidationError("invalid role")
    if User.query.filter_by(username=username).first():
        raise DuplicateUsername()
    user = User(
        username=username,
        password_hash=hash_password(password),
        role=role,
        organization=organization,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # lost a race against a concurrent registration
        db.session.rollback()
        raise DuplicateUsername()
    current_app.logger.info("registered user %s (%s)", username, role)
    return user


def login_user(data):
    """Check credentials and return ``(token, user)``."""
    if not isinstance(data, dict):
        raise ValidationError("invalid body")
    username = _text(data, "username").strip()
    password = _text(data, "password")
    user = User.query.filter_by(username=username).first() if username else None
    if user is None or not check_password(password, user.password_hash):
        current_app.logger.warning("failed login for %r", username)
        raise InvalidCredentials()
    token = create_access_token(
        identity=str(user.id),
        additional_claims={"userId": user.id, "username": user.username, "role": user.role},
    )
    return token, user


def current_identity():
    claims = get_jwt()
    return {
        "userId": claims.get("userId"),
        "username": claims.get("username"),
        "role": claims.get("role"),
    }


def init_jwt(app):
    jwt = JWTManager(app)

    @jwt.unauthorized_loader
    def missing_token(reason):
        return error_response(MissingToken())

    @jwt.invalid_token_loader
    def invalid_token(reason):
        app.logger.info("rejected token: %s", reason)
        return error_response(InvalidOrExpiredToken())

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return error_response(InvalidOrExpiredToken())

    return jwt
