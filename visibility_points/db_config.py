# visibility_points/db_config.py
"""Database configuration and credentials management"""
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote_plus, urlparse

from visibility_points.config import Settings, settings

SUPPORTED_SCHEMES = ('postgresql', 'postgresql+psycopg2', 'sqlite')

@dataclass
class DatabaseCredentials:
    """Database credentials container with validation"""
    host: str
    port: str
    name: str
    user: str
    password: str
    ssl_mode: str = 'require'

    def to_connection_string(self) -> str:
        """Generate database connection string with proper escaping"""
        return (
            f"postgresql://{quote_plus(self.user)}:{quote_plus(self.password)}@{self.host}:{self.port}/"
            f"{self.name}?sslmode={self.ssl_mode}"
        )

    @classmethod
    def from_settings(cls, config: Settings) -> 'DatabaseCredentials':
        """Create credentials from application settings"""
        return cls(
            host=config.DB_HOST,
            port=config.DB_PORT,
            name=config.DB_NAME,
            user=config.DB_USER,
            password=config.DB_PASSWORD,
            ssl_mode=config.DB_SSL_MODE
        )

    @classmethod
    def validate_url(cls, url: str) -> bool:
        """Validate database URL format"""
        try:
            parsed = urlparse(url)
            if parsed.scheme not in SUPPORTED_SCHEMES:
                return False

            # SQLite URLs carry only a path
            if parsed.scheme == 'sqlite':
                return True

            return bool(parsed.hostname and parsed.path.lstrip('/'))
        except ValueError:
            return False

class DatabaseManager:
    """Resolves the connection string from settings"""

    @staticmethod
    def get_connection_string(config: Settings) -> str:
        """
        Generate database connection string from settings

        Returns:
            DATABASE_URL when set, otherwise a PostgreSQL URL built from the DB_* fields

        Raises:
            ValueError: If DATABASE_URL is malformed or DB_PASSWORD is missing
        """
        if config.DATABASE_URL:
            if not DatabaseCredentials.validate_url(config.DATABASE_URL):
                raise ValueError("DATABASE_URL is not a supported database URL")
            return config.DATABASE_URL

        if not config.DB_PASSWORD:
            raise ValueError("DB_PASSWORD setting is required")

        return DatabaseCredentials.from_settings(config).to_connection_string()

    @classmethod
    def initialize_from_env(cls, config: Optional[Settings] = None) -> str:
        """
        Initialize database connection from environment variables

        Returns:
            Database connection string
        """
        return cls.get_connection_string(config or settings)
