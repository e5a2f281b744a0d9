"""Configuration management for Discogs Tagger."""

import os
import sys
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv

DEFAULT_FUZZINESS = 80
DEFAULT_ARTIST_SEPARATOR = ", "


def eprint(*args, **kwargs):
    """Print to stderr."""
    print(*args, file=sys.stderr, **kwargs)


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        eprint(f"Warning: {name}={value!r} is not a number - using {default}.")
        return default


def load_config(env_file: Optional[str] = None) -> dict:
    """
    Load configuration from .env file.

    Args:
        env_file: Path to .env file. Defaults to .env in current directory.

    Returns:
        Dictionary of configuration values.
    """
    if env_file is None:
        env_file = ".env"

    env_path = Path(env_file)
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)
        eprint(f"Loaded environment from {env_path.resolve()}")
    else:
        eprint(
            f"Warning: .env file not found at {env_path.resolve()} "
            "- falling back to process env."
        )

    return {
        "discogs_user_token": os.getenv("DISCOGS_USER_TOKEN"),
        "fuzziness": _int_env("DISCOGS_TAGGER_FUZZINESS", DEFAULT_FUZZINESS),
        "artist_separator": os.getenv(
            "DISCOGS_TAGGER_SEPARATOR", DEFAULT_ARTIST_SEPARATOR
        ),
    }


def validate_config(config: dict) -> List[str]:
    """
    Validate configuration and return list of missing credentials.

    Args:
        config: Configuration dictionary from load_config()

    Returns:
        List of missing variable names (empty if all present).
    """
    missing = []

    if not config.get("discogs_user_token"):
        missing.append("DISCOGS_USER_TOKEN")

    fuzziness = config.get("fuzziness", DEFAULT_FUZZINESS)
    if not 0 <= fuzziness <= 100:
        missing.append("DISCOGS_TAGGER_FUZZINESS (0-100)")

    return missing


def get_discogs_token_instructions() -> str:
    """Return instructions for obtaining a Discogs user token."""
    return """
To get a Discogs user token:
1. Go to https://www.discogs.com/settings/developers
2. Click "Generate new token"
3. Copy the token and add to your .env file:
   DISCOGS_USER_TOKEN=your_token_here
"""
