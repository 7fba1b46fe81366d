"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class BankDemoConfig(BaseSettings):
    """Bank demo data service configuration"""

    # Database targets, one per DatabaseType
    seed_database_url: str = "sqlite:///bank_seed.db"
    testing_database_url: str = "sqlite:///bank_testing.db"
    prod_database_url: str = "sqlite:///bank_prod.db"
    database_schema: str = "bank"  # PostgreSQL only
    database_pool_min: int = 1
    database_pool_max: int = 10

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    cors_origins: str = "*"  # Comma-separated

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Paging rules
    default_page_size: int = 10
    max_page_size: int = 1000

    # Migration configuration
    auto_migrate: bool = True

    class Config:
        env_prefix = "BANK_DEMO_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = BankDemoConfig()


def get_config() -> BankDemoConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> BankDemoConfig:
    """Reload configuration from environment"""
    global config
    config = BankDemoConfig()
    return config
