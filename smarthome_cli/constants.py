import os
from pathlib import Path

import typer

# Application Constants
APP_NAME = "smarthome-cli"

# Directories and Files (User)
USER_APP_DIR = Path(typer.get_app_dir(APP_NAME))
USER_CONFIG_FILE = USER_APP_DIR / "config.json"
USER_LOGS_DIR = USER_APP_DIR / "logs"
USER_CACHE_DIR = Path(
    os.environ.get("XDG_CACHE_HOME") or Path.home() / ".cache"
)
REPL_HISTORY_FILE = USER_CACHE_DIR / "smarthome.history"

# Workspace layout
MANIFEST_FILE_NAME = ".hms.yaml"
SCRIPT_FILE_EXTENSION = "hms"

# Remote record constraints
MAX_ID_LENGTH = 30
MAX_NAME_LENGTH = 30
MAX_WORKSPACE_LENGTH = 50
DEFAULT_SCRIPT_WORKSPACE = "default"
DEFAULT_SCRIPT_ICON = "code"

# Server compatibility
SERVER_VERSION_REQUIREMENT = ">=0.10.0"
