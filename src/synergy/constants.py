"""Centralized constants for synergy."""

from __future__ import annotations

APP_NAME = "synergy"

# Persistence
STORAGE_KEY = "synergySphere.v1"
STORAGE_FILE_SUFFIX = ".json"

# Entity id prefixes
ID_PREFIX_USER = "user"
ID_PREFIX_PROJECT = "proj"
ID_PREFIX_TASK = "task"
ID_PREFIX_MESSAGE = "msg"
ID_PREFIX_NOTIFICATION = "ntf"

# Derived task flags
DUE_SOON_WINDOW_HOURS = 48

# Session strategies
SESSION_STRATEGY_LOCAL = "local"
SESSION_STRATEGY_REMOTE = "remote"
SESSION_STRATEGIES = (SESSION_STRATEGY_LOCAL, SESSION_STRATEGY_REMOTE)

# Auth service
AUTH_SIGNUP_PATH = "/api/signup"
AUTH_LOGIN_PATH = "/api/login"
AUTH_TOKEN_TTL_SEC = 60 * 60
AUTH_ERROR_USER_EXISTS = "User already exists"
AUTH_ERROR_USER_NOT_FOUND = "User not found"
AUTH_ERROR_INVALID_PASSWORD = "Invalid password"
AUTH_ERROR_MISSING_FIELDS = "Email and password required"

# Profile defaults
DEFAULT_DATA_DIR = "~/.synergysphere"
DEFAULT_AUTH_BASE_URL = "http://localhost:5000"
DEFAULT_AUTH_TIMEOUT_SEC = 10

# CLI
CLI_HELP_HINT = "Run 'synergy --help' for usage."
