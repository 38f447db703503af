"""
Configuration for LAN clipboard multicast
"""
import os
import sys
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Multicast Settings
MULTICAST_GROUP = "239.0.0.0"
MULTICAST_PORT = 9999
MULTICAST_ADDRESS = f"{MULTICAST_GROUP}:{MULTICAST_PORT}"
MULTICAST_TTL = 1  # Stay inside the local broadcast domain
MAX_DATAGRAM_SIZE = 8192  # Every datagram we send must fit in this

# Fallback (point-to-point) channel
FALLBACK_PORT = 30099
FALLBACK_CONNECT_TIMEOUT = 5.0  # seconds
FALLBACK_MAX_RECORD_SIZE = 64 * 1024 * 1024  # 64MB max framed envelope

# Timing
DEFAULT_RUN_TIMEOUT = 60  # seconds a send/receive runs before exiting
ANNOUNCE_INTERVAL = 1.0  # seconds between two announcements
SEND_JOIN_TIMEOUT = 0.5  # bounded wait for per-interface writes of one tick
SOCKET_POLL_INTERVAL = 0.5  # blocking socket calls wake up this often to check for stop

# Interface selection
ALL_INTERFACES = "all"
INTERFACES_ENV_VAR = "LANCLIP_INTERFACES"

# Paths
if os.name == 'nt':  # Windows
    TEMP_DIR = Path(os.environ.get('TEMP', 'C:/Temp')) / 'lanclip'
else:  # macOS/Linux
    TEMP_DIR = Path('/tmp/lanclip')

# Logging
LOG_LEVEL = "INFO"
LOG_FILE = TEMP_DIR / "lanclip.log"


def get_data_dir() -> Path:
    """Platform-specific directory for user data (config.json).

    Returns a persistent directory that works correctly even when the
    application is packaged with PyInstaller (where __file__ resolves
    to a temporary _MEI* directory).
    """
    if sys.platform == 'win32':
        base = Path(os.environ.get('LOCALAPPDATA', Path.home() / 'AppData' / 'Local'))
    elif sys.platform == 'darwin':
        base = Path.home() / 'Library' / 'Application Support'
    else:
        base = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))
    d = base / 'lanclip'
    d.mkdir(parents=True, exist_ok=True)
    return d


def ensure_temp_dir() -> Path:
    """Create the temp directory (log file lives there)"""
    TEMP_DIR.mkdir(parents=True, exist_ok=True)
    return TEMP_DIR


def get_default_interfaces() -> list:
    """
    Interfaces to multicast on when none are given on the command line.

    Reads LANCLIP_INTERFACES (comma separated). Empty means all interfaces.
    """
    raw = os.environ.get(INTERFACES_ENV_VAR, "")
    names = [name.strip() for name in raw.split(",") if name.strip()]
    if names:
        logger.debug(f"Using interfaces from {INTERFACES_ENV_VAR}: {names}")
    return names
