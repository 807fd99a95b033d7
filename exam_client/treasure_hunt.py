import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional


logger = logging.getLogger(__name__)

FIRST = "firstFound"
SECOND = "secondFound"
CLICKS_FOR_FIRST = 6

CODES = {
    FIRST: "99111100101",
    SECOND: "109111110107",
}


def default_path() -> Path:
    base = os.getenv("PLACEMENT_DATA_DIR") or os.path.join(Path.home(), ".placement_portal")
    return Path(base) / "treasure_hunt.json"


class TreasureHunt:
    """Two hidden flags that survive restarts. Marking is idempotent."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else default_path()
        self.clicks = 0
        self._flags = self._load()

    def _load(self) -> Dict[str, bool]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as file_obj:
                data = json.load(file_obj)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable treasure hunt file %s: %s", self.path, exc)
            return {}
        return {key: bool(data.get(key)) for key in CODES}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as file_obj:
            json.dump(self._flags, file_obj)

    def is_found(self, key: str) -> bool:
        return self._flags.get(key, False)

    def mark_found(self, key: str) -> bool:
        # True only the first time.
        if key not in CODES:
            raise KeyError(key)
        if self.is_found(key):
            return False
        self._flags[key] = True
        self._save()
        return True

    def register_click(self) -> bool:
        if self.is_found(FIRST):
            return False
        self.clicks += 1
        if self.clicks >= CLICKS_FOR_FIRST:
            return self.mark_found(FIRST)
        return False

    @property
    def complete(self) -> bool:
        return all(self.is_found(key) for key in CODES)

    def combined_code(self) -> Optional[str]:
        if not self.complete:
            return None
        return "  ".join(CODES[key] for key in (FIRST, SECOND))
