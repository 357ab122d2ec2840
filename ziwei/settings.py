import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Base paths
BASE_DIR = Path(__file__).resolve().parent.parent

# Swiss Ephemeris data files (falls back to the built-in Moshier model when missing)
EPHE_PATH = os.getenv("ZIWEI_EPHE_PATH", str(BASE_DIR / "ephe"))

# Birth time handling
TRUE_SOLAR_TIME = _env_flag("ZIWEI_TRUE_SOLAR_TIME", False)
LATE_ZI_NEXT_DAY = _env_flag("ZIWEI_LATE_ZI_NEXT_DAY", True)

# Reading context
DECADE_COUNT = int(os.getenv("ZIWEI_DECADE_COUNT", "10"))

# Logging
LOG_LEVEL = os.getenv("ZIWEI_LOG_LEVEL", "INFO")
