# src/greenplace/core/config.py

import logging
import os

from dotenv import load_dotenv

from .scheduler import parse_duration

# Load environment variables from a .env file located in the project root
dotenv_path = os.path.join(os.path.dirname(__file__), "..", "..", "..", ".env")
load_dotenv(dotenv_path=dotenv_path)

KNOWN_PROVIDERS = ("electricity_maps", "custom_api", "mock")


def _get_bool(key: str, default: str = "False") -> bool:
    return os.getenv(key, default).lower() in ("true", "1", "t", "y", "yes")


class Config:
    """
    Handles the application's configuration by loading values from environment variables.

    Values that depend on the environment at call time (provider order,
    horizons, scoring knobs) are exposed as properties so tests and operators
    can change them without re-importing the module.
    """

    def __init__(self):
        # --- Provider credentials ---
        self.ELECTRICITY_MAPS_TOKEN = self._get_secret("ELECTRICITY_MAPS_TOKEN")
        self.CUSTOM_API_TOKEN = self._get_secret("CUSTOM_API_TOKEN")

    @staticmethod
    def _get_secret(key: str, default: str = None) -> str:
        """
        Retrieves a secret from a file (Docker secret/volume) or falls back to environment variable.

        Raises:
            PermissionError: If the secret file exists but cannot be read due to permissions.
            IOError: If the secret file exists but cannot be read due to I/O errors.
        """
        secret_file = f"/etc/greenplace/secrets/{key}"
        if os.path.exists(secret_file):
            try:
                with open(secret_file, "r") as f:
                    value = f.read().strip()
                    logging.getLogger(__name__).debug(f"Loaded secret '{key}' from {secret_file}")
                    return value
            except PermissionError as e:
                raise PermissionError(
                    f"Secret file '{secret_file}' exists but cannot be read due to permission denied. "
                    f"Please check file permissions or run with appropriate privileges."
                ) from e
            except (IOError, OSError) as e:
                raise IOError(
                    f"Secret file '{secret_file}' exists but cannot be read: {e}. "
                    f"Please check the file integrity and system resources."
                ) from e
        return os.getenv(key, default)

    # --- Carbon data providers ---
    @property
    def CARBON_PROVIDERS(self) -> list:
        """Provider names in fallback priority order."""
        raw = os.getenv("CARBON_PROVIDERS", "electricity_maps,mock")
        return [name.strip().lower() for name in raw.split(",") if name.strip()]

    ELECTRICITY_MAPS_API_URL = os.getenv("ELECTRICITY_MAPS_API_URL", "https://api.electricitymaps.com/v3")
    CUSTOM_API_URL = os.getenv("CUSTOM_API_URL")
    CUSTOM_API_VERIFY_CERTS = _get_bool("CUSTOM_API_VERIFY_CERTS", "True")

    # --- Cache freshness horizons ---
    @property
    def CURRENT_TTL_SECONDS(self) -> float:
        return float(os.getenv("CURRENT_TTL_SECONDS", "300"))

    @property
    def FORECAST_TTL_SECONDS(self) -> float:
        return float(os.getenv("FORECAST_TTL_SECONDS", "86400"))

    # --- Timeouts ---
    # Hard bound for a single provider call inside the fallback chain.
    PROVIDER_TIMEOUT_SECONDS = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "5"))
    # Bound on the synchronous refresh a scoring read may wait for.
    REFRESH_TIMEOUT_SECONDS = float(os.getenv("REFRESH_TIMEOUT_SECONDS", "2"))
    DEFAULT_TIMEOUT_CONNECT = float(os.getenv("DEFAULT_TIMEOUT_CONNECT", "5"))
    DEFAULT_TIMEOUT_READ = float(os.getenv("DEFAULT_TIMEOUT_READ", "10"))
    USER_AGENT = os.getenv("USER_AGENT", "greenplace/0.1")

    REFRESH_WORKERS = int(os.getenv("REFRESH_WORKERS", "2"))

    # --- Fallbacks and estimates ---
    DEFAULT_INTENSITY = float(os.getenv("DEFAULT_INTENSITY", 500))
    NODE_BASELINE_KWH = float(os.getenv("NODE_BASELINE_KWH", "0.2"))

    # --- Scoring ---
    SCORE_MAX = float(os.getenv("SCORE_MAX", "100"))
    NEUTRAL_SCORE = float(os.getenv("NEUTRAL_SCORE", "50"))
    FALLBACK_SCORE = float(os.getenv("FALLBACK_SCORE", "25"))
    SCORE_RANGE_PADDING = float(os.getenv("SCORE_RANGE_PADDING", "50"))

    # --- Topology ---
    REGION_MAPPING_FILE = os.getenv("REGION_MAPPING_FILE")

    # --- Periodic jobs ---
    SNAPSHOT_INTERVAL = os.getenv("SNAPSHOT_INTERVAL", "1m")
    CACHE_WARM_INTERVAL = os.getenv("CACHE_WARM_INTERVAL", "5m")

    # --- Footprint sink ---
    FOOTPRINT_SINK_PATH = os.getenv("FOOTPRINT_SINK_PATH")

    # --- Logging variables ---
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # --- API ---
    API_HOST = os.getenv("API_HOST", "0.0.0.0")
    API_PORT = int(os.getenv("API_PORT", "8000"))

    def validate_instance(self):
        unknown = [name for name in self.CARBON_PROVIDERS if name not in KNOWN_PROVIDERS]
        if unknown:
            raise ValueError(f"CARBON_PROVIDERS contains unknown provider(s): {', '.join(unknown)}")
        if not self.CARBON_PROVIDERS:
            raise ValueError("CARBON_PROVIDERS must name at least one provider")
        if self.CURRENT_TTL_SECONDS <= 0 or self.FORECAST_TTL_SECONDS <= 0:
            raise ValueError("CURRENT_TTL_SECONDS and FORECAST_TTL_SECONDS must be positive")
        if self.PROVIDER_TIMEOUT_SECONDS <= 0 or self.REFRESH_TIMEOUT_SECONDS <= 0:
            raise ValueError("PROVIDER_TIMEOUT_SECONDS and REFRESH_TIMEOUT_SECONDS must be positive")
        if not 0 <= self.FALLBACK_SCORE <= self.SCORE_MAX or not 0 <= self.NEUTRAL_SCORE <= self.SCORE_MAX:
            raise ValueError("NEUTRAL_SCORE and FALLBACK_SCORE must lie between 0 and SCORE_MAX")
        if self.SCORE_RANGE_PADDING <= 0:
            raise ValueError("SCORE_RANGE_PADDING must be positive")
        for key in ("SNAPSHOT_INTERVAL", "CACHE_WARM_INTERVAL"):
            try:
                parse_duration(getattr(self, key))
            except ValueError as e:
                raise ValueError(f"{key} format is invalid: {e}") from e
        if "electricity_maps" in self.CARBON_PROVIDERS and not self.ELECTRICITY_MAPS_TOKEN:
            logging.warning("ELECTRICITY_MAPS_TOKEN is not set; the Electricity Maps provider will fail over.")
        if "custom_api" in self.CARBON_PROVIDERS and not self.CUSTOM_API_URL:
            raise ValueError("CUSTOM_API_URL must be set when the custom_api provider is enabled")


# Instantiate the config to be imported by other modules
config = Config()
config.validate_instance()
