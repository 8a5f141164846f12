"""
Environment loading for the enrichment setup library.

Keys are read from the process environment, after loading a `.env` file
from the project root if one exists. `load_dotenv` never overrides values
that are already set in the environment.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

dotenv_path = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path)


def get_env(key: str) -> Optional[str]:
    """Environment value for `key`, or None when unset or blank."""
    value = os.getenv(key)
    if value is None or not value.strip():
        return None
    return value.strip()
