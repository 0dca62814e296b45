"""
Auth identity model: credentials and confirmation state for a login
"""
import uuid
from werkzeug.security import generate_password_hash, check_password_hash
from extensions import db
from utils.clock import utcnow


class AuthIdentity(db.Model):
    """Login credentials, one per customer account"""
    __tablename__ = 'auth_identities'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    phone = db.Column(db.String(20), nullable=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Confirmation
    email_confirmed_at = db.Column(db.DateTime, nullable=True)
    phone_confirmed_at = db.Column(db.DateTime, nullable=True)
    last_sign_in_at = db.Column(db.DateTime, nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    customer = db.relationship('Customer', back_populates='identity', uselist=False)

    def __init__(self, email, password, **kwargs):
        self.email = email
        self.set_password(password)
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def set_password(self, password):
        """Hash and set password"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Verify password"""
        return check_password_hash(self.password_hash, password)

    def confirm(self, email=True, phone=True, now=None):
        """Mark email and/or phone as confirmed"""
        now = now or utcnow()
        if email and not self.email_confirmed_at:
            self.email_confirmed_at = now
        if phone and self.phone and not self.phone_confirmed_at:
            self.phone_confirmed_at = now

    @property
    def is_email_confirmed(self):
        return self.email_confirmed_at is not None

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'phone': self.phone,
            'email_confirmed_at': self.email_confirmed_at.isoformat() if self.email_confirmed_at else None,
            'phone_confirmed_at': self.phone_confirmed_at.isoformat() if self.phone_confirmed_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<AuthIdentity {self.email}>'
