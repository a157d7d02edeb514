# =============================================================================
# lib/env.py - Environment File Loader
# =============================================================================
# Loads KEY=VALUE pairs from a .env file into the process environment.
#
# python-dotenv splits the file into bindings; each line is then read as
# written:
# - Blank lines, "#" comments and lines without "=" are skipped
# - Key and value are split on the first "=" and trimmed
# - One layer of matching quotes is removed; nothing else is decoded, so
#   backslashes and " #" survive inside values
#
# Variables already present in the process environment are never overridden,
# so deployment-level configuration always wins over the file.
#
# Usage:
#   from lib.env import Env
#   Env.load()
#   db_host = Env.get("DB_HOST", "localhost")
#   secret = Env.required("SECRET_KEY")
# =============================================================================

import logging
import os
from pathlib import Path
from typing import IO, Iterator

from dotenv.parser import parse_stream

from app.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

QUOTES = ("\"", "'")


def parse_env_line(line: str) -> tuple[str, str] | None:
    """
    Read one KEY=VALUE line.

    Returns:
        (key, value), or None for blank lines, comments and lines without "="
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#") or "=" not in stripped:
        return None
    key, value = stripped.split("=", 1)
    key, value = key.strip(), value.strip()
    if not key:
        return None
    if len(value) >= 2 and value[0] in QUOTES and value[-1] == value[0]:
        value = value[1:-1]
    return key, value


def parse_env_lines(stream: IO[str]) -> Iterator[tuple[str, str]]:
    """Yield (key, value) pairs from an env file, line by line."""
    for binding in parse_stream(stream):
        # A quoted value may span several lines in dotenv's grammar
        for line in binding.original.string.splitlines():
            pair = parse_env_line(line)
            if pair is not None:
                yield pair


class Env:
    """
    Process-wide environment loader.

    Loading happens once per process; later calls to load() are no-ops.
    All methods are class methods so the loader can be used before any
    settings object exists.
    """

    _loaded: bool = False

    @classmethod
    def load(cls, path: str | Path = ".env") -> None:
        """
        Load variables from a .env file into os.environ.

        Args:
            path: Location of the env file. A missing file is not an error.
        """
        if cls._loaded:
            return

        env_path = Path(path)
        if not env_path.is_file():
            logger.debug(f"No env file at {env_path}, using process environment only")
            cls._loaded = True
            return

        count = 0
        with env_path.open(encoding="utf-8") as stream:
            for key, value in parse_env_lines(stream):
                if key not in os.environ:
                    os.environ[key] = value
                    count += 1

        cls._loaded = True
        logger.debug(f"Loaded {count} variables from {env_path}")

    @classmethod
    def reset(cls) -> None:
        """Forget that the file was loaded (tests only)."""
        cls._loaded = False

    @classmethod
    def is_loaded(cls) -> bool:
        return cls._loaded

    @staticmethod
    def get(key: str, default: str | None = None) -> str | None:
        """Return the variable or the default. Never raises."""
        return os.environ.get(key, default)

    @staticmethod
    def required(key: str) -> str:
        """
        Return a mandatory variable.

        Raises:
            ConfigurationError: If the variable is missing or empty
        """
        value = os.environ.get(key)
        if value is None or value.strip() == "":
            raise ConfigurationError(key)
        return value
