import os

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from certhub.auth import current_identity, init_jwt, login_user, register_user
from certhub.certificates import (
    certificate_to_dict,
    get_certificate,
    issue_certificate,
    list_certificates,
    qr_data_url,
    revoke_certificate,
    verification_url,
    verify_certificate,
)
from certhub.commands import register_commands
from certhub.config import Config, validate_config
from certhub.errors import CertHubError, error_response
from certhub.models import db


def load_config(overrides=None):
    config = {key: getattr(Config, key) for key in dir(Config) if key.isupper()}
    config.update(overrides or {})
    validate_config(config)
    return config


def create_app(overrides=None):
    config = load_config(overrides)
    static_dir = os.path.abspath(config["FRONTEND_DIR"])
    app = Flask(__name__, static_folder=static_dir, static_url_path="/")
    app.config.update(config)
    app.logger.setLevel(app.config["LOG_LEVEL"])
    CORS(app)

    db.init_app(app)
    with app.app_context():
        db.create_all()
    init_jwt(app)
    register_commands(app)

    @app.errorhandler(CertHubError)
    def handle_certhub_error(exc):
        return error_response(exc)

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(exc):
        db.session.rollback()
        app.logger.exception("database error")
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        if isinstance(exc, HTTPException):
            return exc
        app.logger.exception("unhandled error")
        return jsonify({"error": str(exc)}), 400

    @app.route("/api/register", methods=["POST"])
    def register():
        register_user(request.get_json(silent=True))
        return jsonify({"message": "User created successfully"}), 201

    @app.route("/api/login", methods=["POST"])
    def login():
        token, user = login_user(request.get_json(silent=True))
        return jsonify({"token": token, "user": {"username": user.username, "role": user.role}})

    @app.route("/api/certificates", methods=["POST"])
    @jwt_required()
    def issue():
        identity = current_identity()
        cert = issue_certificate(request.get_json(silent=True), issued_by_id=identity["userId"])
        base_url = app.config.get("PUBLIC_BASE_URL") or request.host_url
        body = certificate_to_dict(cert)
        body["qrCode"] = qr_data_url(verification_url(cert.certificate_id, base_url))
        return jsonify(body), 201

    @app.route("/api/certificates", methods=["GET"])
    @jwt_required()
    def list_all():
        return jsonify([certificate_to_dict(c) for c in list_certificates()])

    @app.route("/api/certificates/<certificate_id>/revoke", methods=["PUT"])
    @jwt_required()
    def revoke(certificate_id):
        cert = revoke_certificate(certificate_id)
        app.logger.info("revocation of %s requested by %s", certificate_id, current_identity()["username"])
        return jsonify({"message": "Certificate revoked successfully", "certificate": certificate_to_dict(cert)})

    @app.route("/api/certificates/<certificate_id>/pdf", methods=["GET"])
    def certificate_pdf(certificate_id):
        cert = get_certificate(certificate_id)
        return jsonify({
            "message": "PDF generation is not implemented; returning certificate data",
            "certificate": certificate_to_dict(cert),
        })

    @app.route("/api/verify/<certificate_id>", methods=["GET"])
    def verify(certificate_id):
        body, status = verify_certificate(certificate_id)
        return jsonify(body), status

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "service": "certhub"}), 200

    @app.route("/")
    @app.route("/verify/<certificate_id>")
    def index(certificate_id=None):
        # the client reads the certificate id from the path itself
        index_path = os.path.join(static_dir, "index.html")
        if os.path.exists(index_path):
            return app.send_static_file("index.html")
        return jsonify({"status": "ok", "service": "certhub"}), 200

    return app
