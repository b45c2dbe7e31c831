"""Oracle system prompts, shipped as package data next to this module."""

from functools import lru_cache
from pathlib import Path

_PROMPT_DIR = Path(__file__).parent


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """Prompt text for *name* (file stem), whitespace-trimmed; read once per process."""
    path = _PROMPT_DIR / f"{name}.txt"
    if not path.is_file():
        raise FileNotFoundError(f"no prompt named {name!r} in {_PROMPT_DIR}")
    return path.read_text(encoding="utf-8").strip()
