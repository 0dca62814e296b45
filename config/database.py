"""config.database

Database configuration.

Priority:
1) DATABASE_URL (managed Postgres)
2) DB_* variables (MySQL)
3) a local SQLite file for development

Managed providers often hand out `postgres://...` URLs; SQLAlchemy expects
`postgresql://...` and we pin the psycopg (v3) driver.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

_is_production = os.getenv('FLASK_ENV', 'development') == 'production'
load_dotenv(override=(not _is_production))


def _normalize_database_url(url: str) -> str:
    url = url.strip()
    if url.startswith('postgres://'):
        return 'postgresql+psycopg://' + url[len('postgres://'):]
    if url.startswith('postgresql://'):
        return 'postgresql+psycopg://' + url[len('postgresql://'):]

    return url


def _build_mysql_uri() -> str:
    database_config = {
        'host': os.getenv('DB_HOST', 'localhost'),
        'port': int(os.getenv('DB_PORT', 3306)),
        'user': os.getenv('DB_USER', 'root'),
        'password': os.getenv('DB_PASSWORD', ''),
        'database': os.getenv('DB_NAME', 'baraka_loyalty'),
        'charset': 'utf8mb4',
    }

    return (
        f"mysql+pymysql://{database_config['user']}:{database_config['password']}"
        f"@{database_config['host']}:{database_config['port']}/{database_config['database']}"
        f"?charset={database_config['charset']}"
    )


def _build_sqlite_uri() -> str:
    path = Path(__file__).resolve().parent.parent / 'instance' / 'baraka.sqlite3'
    path.parent.mkdir(parents=True, exist_ok=True)
    return f'sqlite:///{path}'


def get_sqlalchemy_database_uri() -> str:
    """Return the SQLAlchemy DB URI."""

    database_url = os.getenv('DATABASE_URL') or os.getenv('POSTGRES_URL')
    if database_url:
        return _normalize_database_url(database_url)

    if os.getenv('DB_HOST'):
        return _build_mysql_uri()

    return _build_sqlite_uri()
