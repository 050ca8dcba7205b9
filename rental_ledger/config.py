"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class LedgerConfig(BaseSettings):
    """Rental ledger configuration"""

    # Database configuration
    database_url: str = "sqlite:///rental_ledger.db"  # or sqlite:///:memory: / memory://
    sqlite_timeout_seconds: float = 30.0

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Posting rules configuration
    cash_account_name: str = "Cash"
    bank_name_marker: str = "Bank"

    # Document numbering
    document_number_max_attempts: int = 25

    # Feature flags
    seed_chart_of_accounts: bool = True
    enable_audit_logging: bool = True

    class Config:
        env_prefix = "RENTAL_LEDGER_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
