"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    TEST_FAILED = 1
    USAGE_ERROR = 2
    TEST_ERROR = 3
    SYSTEM_ERROR = 4


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    RELEASES_URL = "https://releases.electronjs.org/releases.json"
    COMPARE_URL_TEMPLATE = "https://github.com/electron/electron/compare/v{good}...v{bad}"
    CACHE_DIR_NAME = "relbisect"
    CACHE_FILE_NAME = "releases.json"
    VERSION_CACHE_TTL_SEC = 4 * 60 * 60  # refresh the release list every 4 hours
    NUM_SUPPORTED_MAJORS = 4
    NIGHTLY_TAG = "nightly"
    PAYLOAD_ENTRY_NAME = "main.js"
    HEADLESS_WRAPPER = "xvfb-run"
    HEADLESS_WRAPPER_ARGS = ["--auto-servernum"]
    NATIVE_GUI_PLATFORMS = ("darwin", "win32")
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    LOG_LEVEL_ENV = "RELBISECT_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    CONFIG_SECTION = "relbisect"
    ENV_PREFIX = "RELBISECT_"
