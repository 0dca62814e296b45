"""
Database models package
"""
from .auth_identity import AuthIdentity
from .customer import Customer
from .otp_code import OtpCode
from .activity_log import ActivityLog

__all__ = [
    'AuthIdentity',
    'Customer',
    'OtpCode',
    'ActivityLog',
]
