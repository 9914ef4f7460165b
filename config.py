# config.py
"""
Centralized configuration management, project-wide constants, and logging setup.

This module acts as the single source of truth for configurable parameters,
preventing the use of "magic strings" or numbers throughout the application.
It also initializes the application's logging system to ensure consistent,
structured, and informative logs from all modules.
"""

import logging
import os
import sys
from typing import Dict, Any

import structlog

# --- Environment Variables ---
# Names of the environment variables the command-line tool reads its
# connection settings from. Centralized so they can be renamed in one place.
ENV_DBMS = "DB_DBMS"  # "mysql" (also used for MariaDB) or "pgsql".
ENV_DBNAME = "DB_NAME"
ENV_HOST = "DB_HOST"
ENV_PORT = "DB_PORT"  # Optional. 0 or unset lets the driver pick its default port.
ENV_LOGIN = "DB_USER"
ENV_PASSWORD = "DB_PASSWORD"
ENV_CHARSET = "DB_CHARSET"  # Optional. Only honoured by MySQL/MariaDB.
ENV_DEBUG = "DB_DEBUG"  # Optional. "1", "true" or "yes" enables query dumps.

REQUIRED_ENV_VARS = (ENV_DBMS, ENV_DBNAME, ENV_HOST, ENV_LOGIN, ENV_PASSWORD)

# --- Connection Defaults ---
DEFAULT_PORT = 0  # 0 means "do not pass a port", the driver default applies.
DEFAULT_CHARSET = ""
CONNECT_TIMEOUT_SECONDS = 10

# Substrings marking a configuration key as secret. See `mask_sensitive_data`.
SENSITIVE_KEYS = ["token", "password", "secret", "key"]


# --- Logging Setup ---


def setup_logging(level: int = logging.INFO):
    """
    Configures structlog for rich, context-aware, and structured logging.

    Workflow:
    1.  Sets up Python's standard logging module as the base.
    2.  Configures structlog to wrap this base logger.
    3.  Defines a chain of "processors" that enrich and format log records before output.
        - This chain adds context, timestamps, log levels, and exception information.
    4.  The final processor (`ConsoleRenderer`) formats the log record into a
        human-readable, colorized line for development environments.

    Args:
        - level (int): Minimum level of messages to handle. The command-line
                       tool passes `logging.DEBUG` when query dumps are enabled.
    """
    # Step 1: Configure the standard library's logging.
    # structlog will pass its final, processed log records to this handler.
    logging.basicConfig(
        level=level,
        format="%(message)s",  # The format is simple as structlog handles the complex parts.
        stream=sys.stderr,  # Keep stdout free for query results.
    )

    # Step 2: Configure structlog's processor chain.
    # Processors are executed in the order they are listed.
    structlog.configure(
        processors=[
            # Merges context from `structlog.contextvars` into the event dict.
            structlog.contextvars.merge_contextvars,
            # Adds the logger's name (e.g., 'database.db') to the record.
            structlog.stdlib.add_logger_name,
            # Adds the log level (e.g., 'info', 'error') to the record.
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            # If the log record contains exception info, this renders it into a string.
            structlog.processors.format_exc_info,
            # For production, this could be swapped with `structlog.processors.JSONRenderer()`.
            structlog.dev.ConsoleRenderer(colors=True),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# --- Database Configuration ---


def _env_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def get_db_config_from_env() -> Dict[str, Any]:
    """
    Loads the database connection settings from environment variables.

    This keeps credentials out of the command line and out of the source code.

    Workflow:
    1.  Reads the required variables (`DB_DBMS`, `DB_NAME`, `DB_HOST`,
        `DB_USER`, `DB_PASSWORD`) and the optional ones (`DB_PORT`,
        `DB_CHARSET`, `DB_DEBUG`).
    2.  If any required value is missing, or the port is not an integer, it
        logs the problem and terminates the application.
    3.  Otherwise it returns the settings keyed like the `Db` constructor
        arguments, so the result can be splatted straight into it.

    Returns:
        - A dictionary with the keys 'dbms', 'dbname', 'host', 'login',
          'password', 'port', 'charset' and 'debug'.

    Raises:
        - SystemExit: If a required variable is not set or DB_PORT is invalid.
    """
    log = structlog.get_logger("config.db")

    missing_keys = [name for name in REQUIRED_ENV_VARS if not os.getenv(name)]
    if missing_keys:
        log.error(
            "Database config missing from environment",
            missing_keys=missing_keys,
            error_type="ConfigurationError",
        )
        sys.exit("Error: Required environment variables for the database are not set. Exiting.")

    raw_port = os.getenv(ENV_PORT) or str(DEFAULT_PORT)
    try:
        port = int(raw_port)
    except ValueError:
        log.error(
            "Database port is not an integer",
            value=raw_port,
            error_type="ConfigurationError",
        )
        sys.exit(f"Error: {ENV_PORT} must be an integer. Exiting.")

    config = {
        "dbms": os.getenv(ENV_DBMS),
        "dbname": os.getenv(ENV_DBNAME),
        "host": os.getenv(ENV_HOST),
        "login": os.getenv(ENV_LOGIN),
        "password": os.getenv(ENV_PASSWORD),
        "port": port,
        "charset": os.getenv(ENV_CHARSET, DEFAULT_CHARSET),
        "debug": _env_flag(os.getenv(ENV_DEBUG)),
    }

    log.info(
        "Database configuration loaded successfully from environment variables",
        config=mask_sensitive_data(config),
    )
    return config


def mask_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Creates a copy of a dictionary and masks sensitive values for safe logging.

    This is a security utility to prevent accidental leakage of secrets like
    passwords into log files or console output.

    Workflow:
    1.  Creates a shallow copy of the input dictionary to avoid side effects.
    2.  Iterates through the copy; if a key's name contains one of the
        `SENSITIVE_KEYS` substrings and its value is a string, the value is
        replaced with '***REDACTED***'.
    3.  Returns the sanitized copy.

    Args:
        - data (Dict[str, Any]): The dictionary to process.

    Returns:
        - A new dictionary (Dict[str, Any]) with sensitive values redacted.
    """
    safe_data = data.copy()
    for key, value in safe_data.items():
        if any(sens_key in key.lower() for sens_key in SENSITIVE_KEYS):
            if isinstance(value, str):
                safe_data[key] = "***REDACTED***"
    return safe_data
