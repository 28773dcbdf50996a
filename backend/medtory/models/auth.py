from __future__ import annotations

from ..extensions import db
from medtory.time_utils import to_utc_z


class Employee(db.Model):
    """
    Employee accounts for authentication and attribution.

    WHY: Every sale, void and stock adjustment must be attributable. No shared logins.

    INVITATION LIFECYCLE:
    - An invited employee has reset_token_hash set until they choose a password.
      The users list treats such rows as "pending".
    - Reset tokens are stored hashed (SHA-256), like session tokens.
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_employees_username"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(50), nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    employee_name = db.Column(db.String(100), nullable=False)

    # Owner / Admin / Manager / Cashier (see permissions.roles.Position)
    position = db.Column(db.String(16), nullable=False, index=True)

    # Email address used for invitations and reset links
    contact_info = db.Column(db.String(255), nullable=False, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    reset_token_hash = db.Column(db.String(64), nullable=True, unique=True, index=True)
    reset_token_expiry = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_pending(self) -> bool:
        return self.reset_token_hash is not None

    def __repr__(self) -> str:
        return f"<Employee id={self.id} username={self.username!r} position={self.position!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "employee_name": self.employee_name,
            "position": self.position,
            "contact_info": self.contact_info,
            "is_active": self.is_active,
            "is_pending": self.is_pending,
            "reset_token_expiry": to_utc_z(self.reset_token_expiry) if self.reset_token_expiry else None,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Secure session token management.

    WHY: Stateless auth tokens with timeout and revocation support.
    Tokens are cryptographically secure random strings (32 bytes = 64 hex chars).

    The session row doubles as the server-side key/value store for the POS
    cart: cart_json holds the serialized cart, cart_updated_at drives its
    idle expiry. A cart never outlives or crosses the session it belongs to.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - Absolute and idle timeouts come from config
    - Revocable on logout
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_employee_active", "employee_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    # Server-side POS cart
    cart_json = db.Column(db.Text, nullable=True)
    cart_updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    employee = db.relationship("Employee", backref=db.backref("session_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
