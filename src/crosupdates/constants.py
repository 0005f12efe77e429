"""
Constants and configuration values for crosupdates.

This module contains all hardcoded values, URLs, cache settings, and other
constants used throughout the application.
"""

# Upstream endpoints
SERVING_BUILDS_URL = "https://chromiumdash.appspot.com/cros/fetch_serving_builds"
RECOVERY_URL = "https://dl.google.com/dl/edgedl/chromeos/recovery/recovery2.json"
FLEX_SERVING_BUILDS_URL = f"{SERVING_BUILDS_URL}?deviceCategory=ChromeOS%20Flex"
FLEX_RECOVERY_URL = (
    "https://dl.google.com/dl/edgedl/chromeos/recovery/cloudready_recovery2.json"
)
BOARD_DATA_URL_TEMPLATE = (
    "https://raw.githubusercontent.com/jay0lee/chromeos-update-directory"
    "/main/data/updates/{board}/stable/data.json"
)

# Error labels used by the fetcher
SERVING_BUILDS_ERROR_LABEL = "Serving builds fetch failed"
RECOVERY_ERROR_LABEL = "Recovery fetch failed"
FLEX_SERVING_BUILDS_ERROR_LABEL = "Flex version fetch failed"
FLEX_RECOVERY_ERROR_LABEL = "Flex recovery fetch failed"

# Cache files
APP_NAME = "crosupdates"
DEVICE_CACHE_FILE = "device-recovery-cache.json"
ENHANCED_CACHE_FILE = "enhanced-devices-cache.json"
CONFIG_FILE_NAME = "config.yaml"

# Enhanced metadata loader
ENHANCED_CACHE_HOURS = 24
ENHANCED_BATCH_SIZE = 10
ENHANCED_BATCH_DELAY = 0.05  # seconds between batches

# Hash construction
INNER_HASH_LENGTH = 8

# Boards used when the serving-builds endpoint cannot be reached
FALLBACK_BOARDS = (
    "brya",
    "volteer",
    "dedede",
    "hatch",
    "octopus",
    "coral",
    "atlas",
    "nocturne",
    "eve",
    "fizz",
    "poppy",
    "reef",
    "gru",
    "kevin",
    "oak",
    "braswell",
    "baytrail",
    "auron",
    "buddy",
    "butterfly",
    "link",
    "lumpy",
)

# Serving channel field names in the upstream schema
SERVING_FIELDS = {
    "stable": "servingStable",
    "beta": "servingBeta",
    "dev": "servingDev",
    "canary": "servingCanary",
    "ltc": "servingLtc",
    "ltr": "servingLtr",
}

# Long-term channel spellings seen in the recovery feed
LONG_TERM_CHANNEL_ALIASES = ("lts", "ltr")

# Canonical empty data model returned on primary source failure
EMPTY_DATA = {"devices": {}, "boards": {}, "singleDeviceBoards": {}}

# Logging configuration
LOGGER_NAME = "crosupdates"
LOG_LEVEL_ENV_VAR = "CROSUPDATES_LOG_LEVEL"
CACHE_DIR_ENV_VAR = "CROSUPDATES_CACHE_DIR"
LOG_FILE_NAME = "crosupdates.log"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5
