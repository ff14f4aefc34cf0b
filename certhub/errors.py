from flask import jsonify


class ConfigError(RuntimeError):
    """Raised at startup when required settings are absent."""


class CertHubError(Exception):
    status_code = 400
    default_message = "request failed"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(CertHubError):
    status_code = 400
    default_message = "invalid body"


class DuplicateUsername(CertHubError):
    status_code = 400
    default_message = "Username already exists"


class InvalidCredentials(CertHubError):
    status_code = 401
    default_message = "Invalid credentials"


class MissingToken(CertHubError):
    status_code = 401
    default_message = "Access token required"


class InvalidOrExpiredToken(CertHubError):
    status_code = 403
    default_message = "Invalid or expired token"


class NotFound(CertHubError):
    status_code = 404
    default_message = "Certificate not found"


def error_response(exc):
    return jsonify({"error": exc.message}), exc.status_code
