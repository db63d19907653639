"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Configuration for the static file server, read once from the environment
at startup and never changed afterwards.

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  VARIABLE        DEFAULT     MEANING                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │  FOLDER          /web        Folder whose contents are served        │
    │  HOST            (empty)     Host name to bind (empty = all)         │
    │  PORT            8080        Port (or service name) to bind          │
    │  SHOW_LISTING    true        Serve index.html on directory requests  │
    │  TLS_CERT        (empty)     Certificate file, enables HTTPS         │
    │  TLS_KEY         (empty)     Key file, required with TLS_CERT        │
    │  URL_PREFIX      (empty)     Prefix stripped from request paths      │
    │  LOG_LEVEL       INFO        DEBUG, INFO, WARNING, ERROR, CRITICAL   │
    └─────────────────────────────────────────────────────────────────────┘

An empty variable is treated exactly like an unset one: the default wins.

=============================================================================
FAIL-FAST VALIDATION
=============================================================================

Two combinations are fatal and stop the process before anything binds:

    1. Only one of TLS_CERT / TLS_KEY is set.
    2. URL_PREFIX does not start with '/' or ends with '/'.

A bad boolean (SHOW_LISTING=maybe) or log level is NOT fatal. We log a
warning and continue with the default.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional


logger = logging.getLogger(__name__)


DEFAULT_FOLDER = "/web"
DEFAULT_PORT = "8080"
DEFAULT_LOG_LEVEL = "INFO"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_FALSE_VALUES = {"0", "false", "f", "no", "n"}
_TRUE_VALUES = {"1", "true", "t", "yes", "y"}


class ConfigError(ValueError):
    """Raised when the startup configuration cannot be used."""


# =============================================================================
# ENVIRONMENT HELPERS
# =============================================================================

def env(environ: Mapping[str, str], key: str, fallback: str) -> str:
    """
    Get an environment value, or the fallback when unset or empty.
    """
    value = environ.get(key, "")
    if value:
        return value
    return fallback


def str_as_bool(value: str) -> bool:
    """
    Convert the intent of a string into a boolean.

    Case-insensitive. Accepted spellings:

        False: 0, false, f, no, n
        True:  1, true, t, yes, y

    Raises:
        ValueError: For anything else.

    Examples:
        >>> str_as_bool("Yes")
        True
        >>> str_as_bool("F")
        False
    """
    lowered = value.lower()
    if lowered in _FALSE_VALUES:
        return False
    if lowered in _TRUE_VALUES:
        return True
    raise ValueError(f"Unknown conversion from string to bool for value '{value}'")


def env_as_bool(environ: Mapping[str, str], key: str, fallback: bool) -> bool:
    """
    Get an environment value as a boolean.

    Unparseable values are logged and replaced by the fallback instead
    of aborting startup.
    """
    value = env(environ, key, str(fallback).lower())
    try:
        return str_as_bool(value)
    except ValueError as e:
        logger.warning(
            f"Invalid value for '{key}': {e}. "
            f"Using fallback: {str(fallback).lower()}"
        )
        return fallback


def env_as_log_level(environ: Mapping[str, str], key: str, fallback: str) -> str:
    """Get a logging level name, falling back on unknown names."""
    value = env(environ, key, fallback).upper()
    if value not in LOG_LEVELS:
        logger.warning(f"Invalid value for '{key}': '{value}'. Using fallback: {fallback}")
        return fallback
    return value


@dataclass(frozen=True)
class ServerConfig:
    """
    Immutable configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    SERVING (from the environment)
    - folder, show_listing, url_prefix

    NETWORK (from the environment)
    - host, port, tls_cert, tls_key

    LOGGING (from the environment)
    - log_level

    RUNTIME TUNING (fixed defaults, override in code)
    - backlog, buffer_size, timeout, keep_alive, keep_alive_timeout,
      max_request_size, min_workers, max_workers, server_name

    =========================================================================
    USAGE
    =========================================================================

        # From the process environment (what the CLI does)
        config = ServerConfig.from_env()

        # In code / tests
        config = ServerConfig(folder="/var/www/", port="0")

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # SERVING
    # ─────────────────────────────────────────────────────────────────────

    folder: str = DEFAULT_FOLDER + "/"
    """
    Root for file resolution. Always written with a trailing '/', so
    request paths can be appended without checking for a separator.
    """

    show_listing: bool = True
    """Serve the directory's index.html when a directory is requested."""

    url_prefix: str = ""
    """Prefix stripped from request paths. Empty means no prefix."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = ""
    """Host to bind. Empty binds every interface."""

    port: str = DEFAULT_PORT
    """
    Port to bind, kept as given. Resolved with getaddrinfo() at bind
    time, so service names such as "http" work too.
    """

    tls_cert: str = ""
    tls_key: str = ""

    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024  # 1 MB, GET/HEAD carry no body

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 64

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = DEFAULT_LOG_LEVEL
    server_name: str = "static-file-server"

    @property
    def tls_enabled(self) -> bool:
        """True when both TLS files are configured."""
        return bool(self.tls_cert) and bool(self.tls_key)

    @property
    def bind_address(self) -> str:
        """Human readable host:port."""
        return f"{self.host}:{self.port}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Build and validate the configuration from environment variables.

        =====================================================================
        RESOLUTION
        =====================================================================

            FOLDER=/var/www     → folder="/var/www/"
            FOLDER=/var/www/    → folder="/var/www//"  (always appended)
            SHOW_LISTING=nope   → warning, show_listing=True
            TLS_CERT=a.crt      → ConfigError (TLS_KEY missing)
            URL_PREFIX=/a/      → ConfigError (trailing slash)

        =====================================================================

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Returns:
            A validated ServerConfig.

        Raises:
            ConfigError: On an invalid TLS pairing or URL prefix.
        """
        if environ is None:
            environ = os.environ

        config = cls(
            folder=env(environ, "FOLDER", DEFAULT_FOLDER) + "/",
            host=env(environ, "HOST", ""),
            port=env(environ, "PORT", DEFAULT_PORT),
            show_listing=env_as_bool(environ, "SHOW_LISTING", True),
            tls_cert=env(environ, "TLS_CERT", ""),
            tls_key=env(environ, "TLS_KEY", ""),
            url_prefix=env(environ, "URL_PREFIX", ""),
            log_level=env_as_log_level(environ, "LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigError: Describing the first problem found.
        """
        # HTTPS needs both halves of the key pair.
        if self.tls_cert or self.tls_key:
            if not self.tls_cert or not self.tls_key:
                raise ConfigError(
                    "If value for environment variable 'TLS_CERT' or 'TLS_KEY' is set "
                    "then value for environment variable 'TLS_KEY' or 'TLS_CERT' must "
                    "also be set."
                )

        if self.url_prefix and (
            not self.url_prefix.startswith("/") or self.url_prefix.endswith("/")
        ):
            raise ConfigError(
                "Value for environment variable 'URL_PREFIX' must start "
                "with '/' and not end with '/'. Example: '/my/prefix'"
            )

        if self.min_workers < 1:
            raise ConfigError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ConfigError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ConfigError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError("timeout must be > 0")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. env() / env_as_bool(): lookups where empty == unset
# 2. str_as_bool(): the accepted true/false spellings
# 3. ServerConfig.from_env(): build once, validate, never mutate
#
# Everything downstream receives the ServerConfig explicitly. Nothing in
# the request path reads os.environ.
# =============================================================================
