"""Constants for openapicmd"""

# ==================== File Paths ====================
DATA_DIR_DEFAULT = "data"
CONFIG_FILE_DEFAULT = "config.toml"
LOG_FILE_DEFAULT = "data/openapicmd.log"

HISTORY_FILE = "history.json"
SAVED_REQUESTS_FILE = "saved-requests.json"
FIELD_LOOKUPS_FILE = "field-lookups.json"
SAVED_LOOKUPS_FILE = "saved-lookups.json"
FIELD_PATTERNS_FILE = "field-patterns.json"

# ==================== Field Model ====================
MAX_FIELD_DEPTH = 2
NULL_LITERAL = "null"

# ==================== Form Field Ids ====================
FIELD_BASE_URL = "baseUrl"
FIELD_HEADERS = "headers"
FIELD_SUBMIT = "__submit__"
PATH_PREFIX = "path:"
QUERY_PREFIX = "query:"
BODY_PREFIX = "body:"
BODY_GROUP_PREFIX = "body-group:"

# ==================== Date / Time Editing ====================
DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"
YEAR_MIN = 1900
YEAR_MAX = 2100

# ==================== Tree Navigator ====================
TREE_ROOT = "root"
TREE_STRING_PREVIEW = 100
CAPTURE_PREVIEW = 40

# ==================== Timeouts (seconds) ====================
TIMEOUT_HTTP_REQUEST = 30  # 30 seconds - API requests
TIMEOUT_TOKEN_REQUEST = 15  # 15 seconds - token provider calls
TIMEOUT_PRE_REQUEST_HOOK = 10  # 10 seconds - shell hook

# ==================== Limits ====================
HISTORY_MAX_ENTRIES = 50
RECENT_SPECS_MAX = 10
DEFAULT_VIEWPORT = 20

# ==================== Headers ====================
DEFAULT_TOKEN_HEADER = "Authorization"
DEFAULT_TOKEN_PREFIX = "Bearer "
DEFAULT_CONTENT_TYPE = "application/json"

HTTP_METHODS = ("get", "post", "put", "patch", "delete", "head", "options", "trace")
