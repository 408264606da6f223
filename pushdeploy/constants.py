"""
pushdeploy Constants

Centralized constants for magic values, defaults, and configuration.
"""

# Default SSH Configuration
DEFAULT_SSH_DIR = "~/.ssh"
DEFAULT_SSH_KEY_PATH = "~/.ssh/id_rsa"
DEFAULT_KNOWN_HOSTS_NAME = "known_hosts"
DEFAULT_SSH_USER = "deploy"
DEFAULT_SSH_PORT = 22

# Default Deployment Configuration
DEFAULT_DEPLOY_PATH = "/var/www"
DEFAULT_RUNTIME_VERSION = "20"
DEFAULT_TRANSITION = "skip"
DEFAULT_GIT_REMOTE = "origin"
DEFAULT_START_COMMAND = "npm start"
DEFAULT_CONFIG_FILE = "pushdeploy.yml"

# Environment variable prefix for configuration overrides
ENV_PREFIX = "PUSHDEPLOY_"

# Log Configuration
DEFAULT_LOG_DIR = "logs"
LOG_DIR_ENV = "PUSHDEPLOY_LOG_DIR"
LOG_DATE_FORMAT = "%Y-%m-%d"
LOG_TIME_FORMAT = "%H-%M-%S"

# File Permissions
SSH_DIR_PERMISSIONS = 0o700
SSH_KEY_PERMISSIONS = 0o600
KNOWN_HOSTS_PERMISSIONS = 0o644

# OpenSSH exits with 255 when the connection itself fails
SSH_CONNECTION_ERROR_CODE = 255

# Runtime manager
NVM_ACTIVATE = '. "${NVM_DIR:-$HOME/.nvm}/nvm.sh"'

# Lockfile -> reproducible install command (first match wins)
LOCKFILE_INSTALL_COMMANDS = [
    ("package-lock.json", "npm ci"),
    ("npm-shrinkwrap.json", "npm ci"),
    ("yarn.lock", "yarn install --frozen-lockfile"),
    ("pnpm-lock.yaml", "pnpm install --frozen-lockfile"),
]

# Tool Names (for doctor check)
REQUIRED_TOOLS = [
    "ssh",
    "scp",
    "ssh-keyscan",
    "ssh-keygen",
]

# Pipeline stage names, in execution order
STAGE_TRUST = "trust"
STAGE_SYNC = "sync"
STAGE_MATERIALIZE = "materialize"
STAGE_RUNTIME = "runtime"
STAGE_TRANSITION = "transition"

PIPELINE_STAGES = [
    STAGE_TRUST,
    STAGE_SYNC,
    STAGE_MATERIALIZE,
    STAGE_RUNTIME,
    STAGE_TRANSITION,
]
