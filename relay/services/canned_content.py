from functools import lru_cache
from pathlib import Path

import yaml

from relay.logging_config import get_logger

logger = get_logger("canned_content")

_CANNED_PATH = Path(__file__).resolve().parents[1] / "content" / "canned.yaml"

# Used when the content file is missing or a section is empty.
_FALLBACKS = {
    "jokes": ["I forgot the punchline."],
    "flirts": ["You light up this chat."],
    "compliments": ["You're great!"],
    "insults": ["You silly goose!"],
    "meme_bottoms": ["Now ship it"],
}


@lru_cache(maxsize=4)
def _load_yaml(path: Path) -> dict:
    if not path.exists():
        logger.warning(f"Canned content file not found: {path}")
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return data if isinstance(data, dict) else {}


def load_canned(section: str, path: Path = _CANNED_PATH) -> list[str]:
    """Return the non-empty string lines of one canned section."""
    items = _load_yaml(path).get(section)
    lines = [str(item) for item in items if item] if isinstance(items, list) else []
    return lines or list(_FALLBACKS.get(section, []))
