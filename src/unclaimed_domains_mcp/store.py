"""
Seen-domain store.

Remembers which registrable domains have already been checked so each one is
resolved only on its first sighting. Optionally persisted as a JSON list.
"""

import json
import logging
import os
import threading
from pathlib import Path

logger = logging.getLogger(__name__)


def get_store_path() -> Path:
    """Get the seen-domain file path in the user's cache directory."""
    if os.name == 'nt':  # Windows
        base = Path(os.environ.get('APPDATA', Path.home()))
    else:  # macOS, Linux
        base = Path(os.environ.get('XDG_CACHE_HOME', Path.home() / '.cache'))

    return base / 'unclaimed-domains-mcp' / 'seen_domains.json'


class DomainStore:
    """Thread-safe idempotent set of seen domains."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._domains: set[str] = self._load() if path else set()

    def _load(self) -> set[str]:
        try:
            if self._path.exists():
                data = json.loads(self._path.read_text())
                if isinstance(data, list):
                    return {d for d in data if isinstance(d, str)}
                logger.warning("Ignoring malformed seen-domain file %s", self._path)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not read seen-domain file %s: %s", self._path, e)
        return set()

    def _save(self) -> None:
        if not self._path:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(sorted(self._domains), indent=2))
        except OSError as e:
            logger.warning("Could not write seen-domain file %s: %s", self._path, e)

    def mark_if_new(self, domain: str) -> bool:
        """
        Mark a domain as seen.

        Returns:
            True if the domain had not been seen before, False otherwise
            (also False for an empty domain).
        """
        if not domain:
            return False
        with self._lock:
            if domain in self._domains:
                return False
            self._domains.add(domain)
            self._save()
            return True

    def clear(self) -> int:
        """Forget all seen domains. Returns how many were removed."""
        with self._lock:
            removed = len(self._domains)
            self._domains = set()
            self._save()
            return removed

    def __contains__(self, domain: object) -> bool:
        return domain in self._domains

    def __len__(self) -> int:
        return len(self._domains)
