STATE_DIR_NAME = ".brainfile"
CONFIG_FILE = "config.yaml"
STATE_FILE = "state.yaml"
STATE_LOCK_FILE = "state.lock"

BOARD_FILE_CANDIDATES = ("brainfile.md", ".brainfile.md", ".bb.md")
BOARD_FILE_GLOB = "brainfile.*.md"
ARCHIVE_SUFFIX = "-archive.md"
ARCHIVE_BOARD_TITLE = "Archive"

# Debounce windows (seconds). Editor buffers settle slower than the file system.
DEFAULT_DOCUMENT_EDIT_DEBOUNCE = 0.5
DEFAULT_FILE_EVENT_DEBOUNCE = 0.15
DEFAULT_WATCH_POLL_INTERVAL = 0.25

# Consecutive parse failures before the cached board is dropped.
PARSE_ERROR_TOLERANCE = 3

MAX_STATS_COLUMNS = 4
MAX_NOTICES = 200

TASK_ID_PREFIX = "task-"
RULE_TYPES = ("always", "never", "prefer", "context")
COMPLETION_COLUMN_PATTERNS = ("done", "complete", "finished", "closed")

ERROR_TYPE_VALIDATION = "validation"
ERROR_TYPE_PARSE = "parse"
ERROR_TYPE_IO = "io"
ERROR_TYPE_UNEXPECTED = "unexpected"

LAST_USED_AGENT_KEY = "brainfile.lastUsedAgent"
