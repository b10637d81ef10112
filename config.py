"""
Configuration Module
====================
Centralized environment variable loading, validation, and access.
Validates all required configuration at startup to fail fast.

NO BUSINESS LOGIC - Pure configuration management only.
"""

import os
import logging
from typing import Optional, Dict, Any, List
from pathlib import Path
from dotenv import load_dotenv


# ============================================================================
# LOGGING
# ============================================================================

logger = logging.getLogger(__name__)


# ============================================================================
# ENVIRONMENT LOADING
# ============================================================================

def load_environment():
    """
    Load environment variables from .env file if present.
    Safe to call multiple times.
    """
    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)
        logger.info("Loaded environment from .env file")
    else:
        logger.info("No .env file found, using system environment variables")


# Load on module import
load_environment()


# ============================================================================
# CONFIGURATION EXCEPTION
# ============================================================================

class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def _get_required_env(key: str, description: str = None) -> str:
    """
    Get required environment variable.

    Args:
        key: Environment variable name
        description: Optional description for error message

    Returns:
        Environment variable value

    Raises:
        ConfigurationError: If variable is missing or empty
    """
    value = os.getenv(key)

    if not value or value.strip() == "":
        desc = f" ({description})" if description else ""
        raise ConfigurationError(
            f"Missing required environment variable: {key}{desc}"
        )

    return value.strip()


def _get_optional_env(key: str, default: str = None) -> Optional[str]:
    """Get optional environment variable, falling back to default."""
    value = os.getenv(key, default)
    return value.strip() if value else default


def _get_bool_env(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on", "enabled")


def _get_int_env(key: str, default: int = None) -> Optional[int]:
    """
    Get integer environment variable.

    Raises:
        ConfigurationError: If value is not a valid integer
    """
    value = os.getenv(key)

    if not value:
        return default

    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(
            f"Invalid integer value for {key}: {value}"
        )


def _get_float_env(key: str, default: float = None) -> Optional[float]:
    """
    Get float environment variable.

    Raises:
        ConfigurationError: If value is not a valid number
    """
    value = os.getenv(key)

    if not value:
        return default

    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(
            f"Invalid numeric value for {key}: {value}"
        )


# ============================================================================
# DATABASE CONFIGURATION
# ============================================================================

class DatabaseConfig:
    """Persistence backend configuration (Supabase or in-memory)."""

    def __init__(self):
        self.backend = _get_optional_env("DATABASE_BACKEND", "supabase").lower()

        if self.backend not in ["supabase", "memory"]:
            raise ConfigurationError(
                f"Invalid DATABASE_BACKEND: {self.backend}. "
                f"Must be 'supabase' or 'memory'"
            )

        self.url: Optional[str] = None
        self.key: Optional[str] = None

        if self.backend == "supabase":
            self.url = _get_required_env(
                "SUPABASE_URL",
                "Supabase project URL"
            )

            self.key = _get_required_env(
                "SUPABASE_KEY",
                "Supabase anon or service role key"
            )

            # Validate URL format
            if not self.url.startswith("https://"):
                raise ConfigurationError(
                    f"SUPABASE_URL must start with https://: {self.url}"
                )

        # Per-call timeout (seconds)
        self.timeout = _get_float_env("SUPABASE_TIMEOUT", 10.0)

        if self.timeout <= 0:
            raise ConfigurationError(
                f"SUPABASE_TIMEOUT must be positive: {self.timeout}"
            )


# ============================================================================
# RESTAURANT CONFIGURATION
# ============================================================================

class RestaurantConfig:
    """Restaurant identity and tax settings printed on receipts."""

    def __init__(self):
        self.name = _get_optional_env("RESTAURANT_NAME", "Restaurant")
        self.vat_registration_number = _get_optional_env(
            "VAT_REGISTRATION_NUMBER",
            "000000000000000"
        )
        self.vat_rate = _get_float_env("VAT_RATE", 0.15)
        self.currency = _get_optional_env("CURRENCY", "SAR").upper()

        if not 0.0 <= self.vat_rate < 1.0:
            raise ConfigurationError(
                f"VAT_RATE must be between 0.0 and 1.0: {self.vat_rate}"
            )

        if len(self.currency) != 3:
            raise ConfigurationError(
                f"CURRENCY must be a 3-letter code: {self.currency}"
            )


# ============================================================================
# LOCAL STORAGE CONFIGURATION
# ============================================================================

class StorageConfig:
    """Device-local storage for carts, parked orders and event discount."""

    def __init__(self):
        self.directory = Path(
            _get_optional_env("LOCAL_STORAGE_DIR", "data/local")
        )
        self.max_parked_orders = _get_int_env("MAX_PARKED_ORDERS", 50)
        self.max_parking_hours = _get_int_env("MAX_PARKING_HOURS", 24)

        if self.max_parked_orders <= 0:
            raise ConfigurationError(
                f"MAX_PARKED_ORDERS must be positive: {self.max_parked_orders}"
            )


# ============================================================================
# FEATURE FLAGS
# ============================================================================

class FeatureFlags:
    """Feature flags for optional functionality."""

    def __init__(self):
        self.enable_daily_serial = _get_bool_env("ENABLE_DAILY_SERIAL", True)
        self.enable_customer_tracking = _get_bool_env(
            "ENABLE_CUSTOMER_TRACKING",
            True
        )
        self.debug_mode = _get_bool_env("DEBUG_MODE", False)


# ============================================================================
# SERVER CONFIGURATION
# ============================================================================

class ServerConfig:
    """Web server configuration."""

    def __init__(self):
        self.host = _get_optional_env("HOST", "0.0.0.0")
        self.port = _get_int_env("PORT", 8000)

        # CORS settings
        self.cors_origins = _get_optional_env("CORS_ORIGINS", "*").split(",")

        # Logging
        self.log_level = _get_optional_env("LOG_LEVEL", "INFO").upper()

        if self.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ConfigurationError(
                f"Invalid LOG_LEVEL: {self.log_level}"
            )


# ============================================================================
# MAIN CONFIGURATION CLASS
# ============================================================================

class Config:
    """
    Main configuration container.
    Loads and validates all configuration on initialization.
    """

    def __init__(self):
        """
        Initialize and validate all configuration.

        Raises:
            ConfigurationError: If any required configuration is missing or invalid
        """
        try:
            self.database = DatabaseConfig()
            self.restaurant = RestaurantConfig()
            self.storage = StorageConfig()
            self.features = FeatureFlags()
            self.server = ServerConfig()

            logger.info("Configuration loaded and validated successfully")

        except ConfigurationError as e:
            logger.error(f"Configuration error: {str(e)}")
            raise
        except Exception as e:
            logger.error(f"Unexpected error loading configuration: {str(e)}")
            raise ConfigurationError(f"Configuration initialization failed: {str(e)}")

    def get_safe_summary(self) -> Dict[str, Any]:
        """
        Get safe configuration summary (no secrets).

        Returns:
            Dictionary with non-sensitive configuration
        """
        return {
            "database_backend": self.database.backend,
            "restaurant": self.restaurant.name,
            "currency": self.restaurant.currency,
            "vat_rate": self.restaurant.vat_rate,
            "storage_dir": str(self.storage.directory),
            "features": {
                "daily_serial": self.features.enable_daily_serial,
                "customer_tracking": self.features.enable_customer_tracking,
            },
            "server": {
                "host": self.server.host,
                "port": self.server.port,
                "log_level": self.server.log_level,
            },
        }

    def validate_runtime_dependencies(self) -> List[str]:
        """
        Validate that runtime dependencies are accessible.

        Returns:
            List of warnings (empty if all OK)
        """
        warnings = []

        directory = self.storage.directory
        if directory.exists() and not directory.is_dir():
            warnings.append(
                f"LOCAL_STORAGE_DIR is not a directory: {directory}"
            )

        if not self.restaurant.vat_registration_number.isdigit():
            warnings.append(
                "VAT_REGISTRATION_NUMBER is not numeric; receipt QR payloads will be rejected"
            )

        return warnings


# ============================================================================
# SINGLETON INSTANCE
# ============================================================================

# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get global configuration instance.
    Initializes on first call.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config

    if _config is None:
        _config = Config()

    return _config


def reload_config():
    """
    Reload configuration from environment.
    Useful for testing or dynamic reconfiguration.
    """
    global _config
    load_environment()
    _config = Config()
    logger.info("Configuration reloaded")


def is_feature_enabled(feature_name: str) -> bool:
    """Check if a feature flag is enabled."""
    features = get_config().features
    return getattr(features, f"enable_{feature_name}", False)


def validate_configuration():
    """
    Validate configuration and log summary.
    Useful for startup checks.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config = get_config()
    summary = config.get_safe_summary()

    logger.info("Configuration Summary:")
    logger.info(f"  Database backend: {summary['database_backend']}")
    logger.info(f"  Restaurant: {summary['restaurant']} ({summary['currency']})")
    logger.info(f"  VAT rate: {summary['vat_rate']}")
    logger.info(f"  Server: {summary['server']['host']}:{summary['server']['port']}")
    logger.info(f"  Log Level: {summary['server']['log_level']}")

    logger.info("Feature Flags:")
    for feature, enabled in summary['features'].items():
        status = "enabled" if enabled else "disabled"
        logger.info(f"  {feature}: {status}")

    warnings = config.validate_runtime_dependencies()
    if warnings:
        logger.warning("Configuration warnings:")
        for warning in warnings:
            logger.warning(f"  - {warning}")

    logger.info("Configuration validation complete")
