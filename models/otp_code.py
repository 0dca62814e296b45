"""
One-time verification codes sent by SMS
"""
from datetime import timedelta
from extensions import db
from utils.clock import utcnow


class OtpCode(db.Model):
    """A 6-digit code proving control of a phone number"""
    __tablename__ = 'otp_codes'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    phone_number = db.Column(db.String(20), nullable=False, index=True)
    code = db.Column(db.String(6), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    def expires_at(self, ttl_seconds):
        return self.created_at + timedelta(seconds=ttl_seconds)

    def is_expired(self, now, ttl_seconds):
        """Expired strictly after created_at + ttl"""
        return now > self.expires_at(ttl_seconds)

    def __repr__(self):
        return f'<OtpCode {self.id} {self.created_at}>'
