# anim_timing/config.py

import os
import logging
logger = logging.getLogger(__name__)

# --- Time Units ---
# Units accepted for timing tables exported by animaker, and their
# multiplier to milliseconds (all internal delays are in ms).
TIME_UNIT_MULTIPLIERS = {
    "ms": 1,
    "s": 1000,
    "m": 60 * 1000,
}
DEFAULT_TIME_UNIT = "ms"  # natural unit for timers

# --- Playback Defaults ---
DEFAULT_FPS = 10
# Upper bound on frames per frame_apply() call, and frames evaluated per chunk
MAX_FRAME_COUNT = 1000000
FRAME_CHUNK_SIZE = 4096

# --- Threaded Substrate / Waiting ---
WAIT_POLL_INTERVAL_S = 0.01
WORKER_JOIN_TIMEOUT_S = 2.0

# --- Logging ---
LOG_LEVEL_ENV_VAR = "ANIM_TIMING_LOG_LEVEL"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(log_level_str=None):
    """Set up logging with specified level (falls back to the environment, then INFO)"""
    if log_level_str is None:
        log_level_str = os.environ.get(LOG_LEVEL_ENV_VAR, 'INFO')
    log_level = getattr(logging, log_level_str.upper(), logging.INFO)
    logging.basicConfig(level=log_level, format=LOG_FORMAT)

    # Keep numpy quiet even in debug runs
    if log_level_str.upper() == 'DEBUG':
        logging.getLogger('numpy').setLevel(logging.WARNING)

    logger.debug(f"CONFIG: Logging configured at {log_level_str.upper()}")
    return logging.getLogger('anim_timing')
