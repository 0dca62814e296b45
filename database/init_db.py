"""
Database initialization script
Creates the tables and seeds demo customers for local development
"""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from extensions import db
from models import AuthIdentity, Customer
from utils.clock import utcnow


DEMO_CUSTOMERS = [
    # email, password, first name, last name, phone, verified
    ('demo.verified@baraka.local', 'baraka123', 'Giulia', 'Bianchi', '+393407654321', True),
    ('demo.pending@baraka.local', 'baraka123', 'Mario', 'Rossi', '+393331234567', False),
]


def seed_customers():
    """Create demo customers, one verified and one awaiting phone verification"""
    print("Creating demo customers...")

    for email, password, first_name, last_name, phone, verified in DEMO_CUSTOMERS:
        if AuthIdentity.query.filter_by(email=email).first():
            print(f"  - Customer '{email}' already exists")
            continue

        identity = AuthIdentity(email=email, password=password, phone=phone)
        if verified:
            identity.confirm(email=True, phone=True)
        db.session.add(identity)
        db.session.flush()

        db.session.add(Customer(
            auth_id=identity.id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone_number=phone,
            is_verified=verified,
            gdpr_consent_at=utcnow(),
        ))
        print(f"  ✓ Customer '{email}' created")

    db.session.commit()


def init_db():
    """Initialize database with demo data"""
    app = create_app()
    with app.app_context():
        print("\n" + "="*50)
        print(f"{app.config['APP_NAME']} - Database Initialization")
        print("="*50 + "\n")

        print("Creating database tables...")
        db.create_all()
        print("  ✓ Tables created\n")

        seed_customers()

        print("\n" + "="*50)
        print("Database initialization complete!")
        print("="*50)
        print("\nDemo logins:")
        for email, password, *_, verified in DEMO_CUSTOMERS:
            state = 'verified' if verified else 'needs phone verification'
            print(f"  {email} / {password} ({state})")
        print()


if __name__ == '__main__':
    init_db()
