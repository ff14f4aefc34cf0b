from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

ROLE_ADMIN = "admin"
ROLE_ISSUER = "issuer"
ROLES = (ROLE_ADMIN, ROLE_ISSUER)

STATUS_ACTIVE = "active"
STATUS_REVOKED = "revoked"
STATUS_EXPIRED = "expired"
STATUSES = (STATUS_ACTIVE, STATUS_REVOKED, STATUS_EXPIRED)


def utcnow():
    # naive UTC, as stored by SQLite
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Enum(*ROLES, name="user_role"), nullable=False, default=ROLE_ISSUER)
    organization = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)


class Certificate(db.Model):
    __tablename__ = "certificates"

    id = db.Column(db.Integer, primary_key=True)
    certificate_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    recipient_name = db.Column(db.String(255), nullable=False)
    recipient_email = db.Column(db.String(255), nullable=False)
    course_name = db.Column(db.String(255), nullable=False)
    issue_date = db.Column(db.DateTime, default=utcnow, nullable=False)
    expiry_date = db.Column(db.DateTime, nullable=True)
    issuer = db.Column(db.String(255), nullable=False)
    grade = db.Column(db.String(64), nullable=True)
    status = db.Column(db.Enum(*STATUSES, name="certificate_status"), nullable=False, default=STATUS_ACTIVE)
    hash = db.Column(db.String(64), nullable=False)
    # metadata
    duration = db.Column(db.String(128), nullable=True)
    credits = db.Column(db.Float, nullable=True)
    issuer_signature = db.Column(db.String(255), nullable=True)
    issued_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    issued_by = db.relationship("User", backref=db.backref("certificates", lazy=True))

    def is_past_expiry(self, now=None):
        if self.expiry_date is None:
            return False
        return self.expiry_date < (now or utcnow())
