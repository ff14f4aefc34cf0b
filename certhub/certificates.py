import base64
import hashlib
import json
import math
import secrets
from datetime import datetime, timezone
from io import BytesIO

import qrcode
from flask import current_app
from sqlalchemy.exc import IntegrityError

from certhub.errors import CertHubError, NotFound, ValidationError
from certhub.models import STATUS_ACTIVE, STATUS_EXPIRED, STATUS_REVOKED, Certificate, db, utcnow

CERTIFICATE_ID_PREFIX = "CERT-"
REQUIRED_FIELDS = (
    ("recipientName", "recipient_name"),
    ("recipientEmail", "recipient_email"),
    ("courseName", "course_name"),
    ("issuer", "issuer"),
)


class CertificateIdExhausted(CertHubError):
    default_message = "could not allocate a unique certificate ID"


def generate_certificate_id():
    return CERTIFICATE_ID_PREFIX + secrets.token_hex(4).upper()


def compute_hash(payload):
    """SHA-256 of the payload serialized with sorted keys."""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_date(value, field):
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"invalid {field}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = datetime.strptime(text, "%d-%m-%Y")
        except ValueError:
            raise ValidationError(f"invalid {field}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _optional_text(data, key, label=None):
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"invalid {label or key}")
    return value.strip() or None


def _parse_metadata(value):
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError("invalid metadata")
    credits = value.get("credits")
    if credits == "" or credits is None:
        credits = None
    elif isinstance(credits, bool):
        raise ValidationError("invalid metadata.credits")
    else:
        try:
            credits = float(credits)
        except (TypeError, ValueError):
            raise ValidationError("invalid metadata.credits")
        if not math.isfinite(credits):
            raise ValidationError("invalid metadata.credits")
    return {
        "duration": _optional_text(value, "duration", "metadata.duration"),
        "credits": credits,
        "issuer_signature": _optional_text(value, "issuerSignature", "metadata.issuerSignature"),
    }


def parse_payload(data):
    """Validate an issuance payload and map it onto model columns."""
    if not isinstance(data, dict):
        raise ValidationError("invalid body")
    fields = {}
    missing = []
    for key, column in REQUIRED_FIELDS:
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"invalid {key}")
        value = (value or "").strip()
        if not value:
            missing.append(key)
        fields[column] = value
    if missing:
        raise ValidationError("missing fields: " + ", ".join(missing))
    issue_date = parse_date(data.get("issueDate"), "issueDate")
    if issue_date is not None:
        fields["issue_date"] = issue_date
    fields["expiry_date"] = parse_date(data.get("expiryDate"), "expiryDate")
    fields["grade"] = _optional_text(data, "grade")
    fields.update(_parse_metadata(data.get("metadata")))
    return fields


def issue_certificate(data, issued_by_id=None):
    fields = parse_payload(data)
    digest = compute_hash(data)
    attempts = current_app.config.get("CERTIFICATE_ID_ATTEMPTS", 5)
    for _ in range(attempts):
        certificate_id = generate_certificate_id()
        if Certificate.query.filter_by(certificate_id=certificate_id).first():
            continue
        cert = Certificate(
            certificate_id=certificate_id,
            status=STATUS_ACTIVE,
            hash=digest,
            issued_by_id=issued_by_id,
            **fields,
        )
        db.session.add(cert)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.warning("certificate id collision on %s, retrying", certificate_id)
            continue
        current_app.logger.info("issued certificate %s to %s", cert.certificate_id, cert.recipient_email)
        return cert
    raise CertificateIdExhausted()


def verification_url(certificate_id, base_url):
    return f"{base_url.rstrip('/')}/verify/{certificate_id}"


def qr_data_url(data):
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def _iso(value):
    return value.isoformat() + "Z" if value else None


def certificate_to_dict(cert):
    return {
        "certificateId": cert.certificate_id,
        "recipientName": cert.recipient_name,
        "recipientEmail": cert.recipient_email,
        "courseName": cert.course_name,
        "issueDate": _iso(cert.issue_date),
        "expiryDate": _iso(cert.expiry_date),
        "issuer": cert.issuer,
        "grade": cert.grade,
        "status": cert.status,
        "hash": cert.hash,
        "metadata": {
            "duration": cert.duration,
            "credits": cert.credits,
            "issuerSignature": cert.issuer_signature,
        },
        "createdAt": _iso(cert.created_at),
    }


def public_view(cert):
    return {
        "certificateId": cert.certificate_id,
        "recipientName": cert.recipient_name,
        "courseName": cert.course_name,
        "issueDate": _iso(cert.issue_date),
        "expiryDate": _iso(cert.expiry_date),
        "issuer": cert.issuer,
        "grade": cert.grade,
        "status": cert.status,
    }


def revoked_view(cert):
    return {
        "recipientName": cert.recipient_name,
        "courseName": cert.course_name,
        "issueDate": _iso(cert.issue_date),
        "issuer": cert.issuer,
        "status": cert.status,
    }


def get_certificate(certificate_id):
    cert = Certificate.query.filter_by(certificate_id=certificate_id).first()
    if cert is None:
        raise NotFound()
    return cert


def list_certificates():
    return Certificate.query.order_by(Certificate.created_at.desc(), Certificate.id.desc()).all()


def revoke_certificate(certificate_id):
    cert = get_certificate(certificate_id)
    cert.status = STATUS_REVOKED
    db.session.commit()
    current_app.logger.info("revoked certificate %s", certificate_id)
    return cert


def verify_certificate(certificate_id):
    """Return ``(body, status_code)`` for a public verification lookup.

    An active certificate whose expiry date has passed is moved to
    ``expired`` and saved before answering. It is still reported with
    ``valid: true``; only revocation makes a certificate invalid.
    """
    cert = Certificate.query.filter_by(certificate_id=certificate_id).first()
    if cert is None:
        return {"valid": False, "message": "Certificate not found"}, 404
    if cert.status == STATUS_REVOKED:
        return {
            "valid": False,
            "message": "This certificate has been revoked",
            "certificate": revoked_view(cert),
        }, 200
    if cert.status == STATUS_ACTIVE and cert.is_past_expiry(utcnow()):
        cert.status = STATUS_EXPIRED
        db.session.commit()
        current_app.logger.info("certificate %s expired", certificate_id)
    return {
        "valid": True,
        "message": "Certificate is valid",
        "certificate": public_view(cert),
    }, 200
