"""Shared constants for the MosaicFlow storage core.

File names and directory names here are part of the on-disk format.
Changing any of them breaks existing vaults.
"""

# --- Schema versions ---
SCHEMA_V1 = "1.0.0"
SCHEMA_V2 = "2.0.0"
CURRENT_SCHEMA_VERSION = SCHEMA_V2
APP_STATE_VERSION = "1.0.0"

# --- Vault layout ---
VAULT_META_FILE = "vault.json"
VAULT_CANVASES_DIR = "canvases"
VAULT_ASSETS_DIR = "assets"
VAULT_ATTACHMENTS_DIR = "attachments"
VAULT_CONFIG_DIR = ".mosaicflow"

# --- Canvas layout ---
CANVAS_META_DIR = ".mosaic"
CANVAS_META_FILE = "meta.json"
CANVAS_STATE_FILE = "state.json"
CANVAS_WORKSPACE_FILE = "workspace.json"
CANVAS_LEGACY_FILE = "canvas.json"
CANVAS_NODES_DIR = "nodes"
CANVAS_EDGES_DIR = "edges"
CANVAS_IMAGES_DIR = "images"
CANVAS_ATTACHMENTS_DIR = "attachments"

# --- App data layout ---
APP_DATA_DIR = "data"
APP_STATE_FILE = "data.json"
APP_HISTORY_FILE = "history.json"
APP_CONFIG_FILE = "config.json"

# --- Defaults ---
DEFAULT_CANVAS_NAME = "Untitled"
DEFAULT_CANVAS_MODE = "select"
DEFAULT_EDGE_TYPE = "default"
DEFAULT_Z_INDEX = 1
DEFAULT_MAX_HISTORY = 50
DEFAULT_RECENT_LIMIT = 10

# Upper bound on "<name>_<n>" attempts when a canvas folder already exists
MAX_FOLDER_SUFFIX = 10_000

# --- Workspace settings defaults ---
DEFAULT_GRID_SIZE = 20
DEFAULT_AUTO_SAVE_INTERVAL = 1000  # milliseconds
DEFAULT_THEME = "dark"
DEFAULT_NODE_COLOR = "#1e1e1e"
DEFAULT_EDGE_COLOR = "#555555"

# --- Time constants (seconds) ---
SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
SECONDS_PER_MONTH = 2592000  # 30 days
SECONDS_PER_YEAR = 31104000  # 12 * 30 days
