"""Whereabouts service configuration.

Protocol constants are fixed. Operational settings may be overridden
via WHEREABOUTS_* environment variables. Tests reload this module with
importlib.reload() after changing the environment.
"""
import os
from pathlib import Path


# =============================================================================
# PERSISTENCE CONFIGURATION
# =============================================================================

def _get_data_dir() -> Path:
    """Determine data directory based on environment.

    Priority:
    1. WHEREABOUTS_DATA_DIR env var (explicit override)
    2. ~/.whereabouts if it already exists (local development)
    3. /tmp/whereabouts (container default)
    """
    env_path = os.getenv("WHEREABOUTS_DATA_DIR")
    if env_path:
        return Path(env_path)

    try:
        home_path = Path.home() / ".whereabouts"
        if home_path.exists():
            return home_path
    except (OSError, RuntimeError):
        pass

    return Path("/tmp/whereabouts")


DATA_DIR: Path = _get_data_dir()

DATABASE_URL: str = os.getenv(
    "WHEREABOUTS_DATABASE_URL",
    f"sqlite:///{DATA_DIR}/whereabouts.db"
)


# =============================================================================
# ATTESTATION PROTOCOL
# =============================================================================

# Pending challenges must be signed and submitted within this window
CHALLENGE_TTL_SECONDS: int = int(os.getenv("WHEREABOUTS_CHALLENGE_TTL_SECONDS", "900"))

# Lifetime of a minted bearer secret
SESSION_TTL_SECONDS: int = int(os.getenv("WHEREABOUTS_SESSION_TTL_SECONDS", "86400"))

CHALLENGE_HEX_LENGTH: int = 128
SECRET_BYTES: int = 64


# =============================================================================
# LOCATION LEDGER
# =============================================================================

LOCATION_TTL_SECONDS: int = int(os.getenv("WHEREABOUTS_LOCATION_TTL_SECONDS", "86400"))
DEFAULT_LOCATION_LIMIT: int = 50
MAX_LOCATION_LIMIT: int = 100


# =============================================================================
# SERVICE SETTINGS
# =============================================================================

LOG_LEVEL: str = os.getenv("WHEREABOUTS_LOG_LEVEL", "INFO")
SERVICE_PORT: int = int(os.getenv("WHEREABOUTS_PORT", "8000"))
