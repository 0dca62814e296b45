"""
Customer model
"""
from extensions import db
from utils.clock import utcnow


class Customer(db.Model):
    """Loyalty customer profile"""
    __tablename__ = 'customers'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    auth_id = db.Column(
        db.String(36),
        db.ForeignKey('auth_identities.id', ondelete='CASCADE'),
        unique=True,
        nullable=True,
        index=True,
    )
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=True, index=True)
    # Canonical E.164 (see utils.phone.normalize_phone)
    phone_number = db.Column(db.String(20), unique=True, nullable=True, index=True)
    language_preference = db.Column(db.String(5), nullable=False, default='it')

    # Status
    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    gdpr_consent_at = db.Column(db.DateTime, nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    identity = db.relationship('AuthIdentity', back_populates='customer')

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self):
        return {
            'id': self.id,
            'auth_id': self.auth_id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'email': self.email,
            'phone_number': self.phone_number,
            'language_preference': self.language_preference,
            'is_verified': bool(self.is_verified),
            'is_active': bool(self.is_active),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Customer {self.full_name}>'
