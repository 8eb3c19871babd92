"""Persisted browser state (cookies + localStorage), one snapshot file per save.

Design
- Snapshots live under `<session>/state/` as `state-<timestamp>.json`; names sort by time.
- Append-only: files are created exclusively and never rewritten or pruned.
- Best-effort: save/load failures are logged and never propagate to the controller.
- Restore is a fill-gaps merge: live browser state always wins.

Security posture
- This is NOT encrypted. Cookie values are stored as-is.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

if TYPE_CHECKING:
    from .capability import Capability

logger = logging.getLogger("glyde.browser.state")

CookieRecord = dict[str, Any]


def cookie_identity(cookie: CookieRecord) -> tuple[str, str]:
    return (str(cookie.get("name") or ""), str(cookie.get("domain") or ""))


def merge_cookies(live: list[CookieRecord], saved: list[CookieRecord]) -> list[CookieRecord]:
    """Saved cookies whose (name, domain) is not already present in the live session."""
    taken = {cookie_identity(c) for c in live}
    out: list[CookieRecord] = []
    for cookie in saved:
        ident = cookie_identity(cookie)
        if not ident[0] or ident in taken:
            continue
        taken.add(ident)
        out.append(cookie)
    return out


def merge_local_storage(live: dict[str, str], saved: dict[str, str]) -> dict[str, str]:
    """Saved items whose key is absent from live localStorage."""
    return {k: v for k, v in saved.items() if k not in live}


def origin_of(url: str) -> str:
    parts = urlsplit(url or "")
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


@dataclass
class StateSnapshot:
    cookies: list[CookieRecord] = field(default_factory=list)
    local_storage: dict[str, str] = field(default_factory=dict)
    timestamp: str = ""
    url: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "cookies": self.cookies,
            "localStorage": self.local_storage,
            "timestamp": self.timestamp,
            "url": self.url,
        }

    @classmethod
    def from_dict(cls, obj: Any) -> StateSnapshot:
        if not isinstance(obj, dict):
            raise ValueError("snapshot must be a JSON object")
        cookies = obj.get("cookies") or []
        storage = obj.get("localStorage") or {}
        if not isinstance(cookies, list) or not isinstance(storage, dict):
            raise ValueError("snapshot has malformed cookies/localStorage")
        return cls(
            cookies=[dict(c) for c in cookies if isinstance(c, dict)],
            local_storage={str(k): "" if v is None else str(v) for k, v in storage.items()},
            timestamp=str(obj.get("timestamp") or ""),
            url=str(obj.get("url") or ""),
        )

    @property
    def origin(self) -> str:
        return origin_of(self.url)


class StateStore:
    def __init__(self, state_dir: Path) -> None:
        self.state_dir = Path(state_dir)

    def _new_path(self, now: datetime) -> Path:
        return self.state_dir / f"state-{now.strftime('%Y-%m-%d-%H-%M-%S-%f')}.json"

    def save(self, snapshot: StateSnapshot) -> Path | None:
        """Write a new snapshot file. Returns its path, or None if the save failed."""
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            text = json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2)
            for _ in range(5):
                path = self._new_path(datetime.now(timezone.utc))
                try:
                    with open(path, "x", encoding="utf-8") as fp:
                        fp.write(text + "\n")
                except FileExistsError:
                    continue
                logger.info("State saved to %s", path)
                return path
            raise FileExistsError("could not allocate a unique snapshot filename")
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to save state")
            return None

    def latest_path(self) -> Path | None:
        try:
            names = sorted(p.name for p in self.state_dir.iterdir() if p.is_file() and p.name.endswith(".json"))
        except FileNotFoundError:
            return None
        except OSError:
            logger.exception("Failed to list state directory %s", self.state_dir)
            return None
        return self.state_dir / names[-1] if names else None

    def load(self) -> StateSnapshot | None:
        """Return the most recent snapshot, or None if there is none (or it cannot be parsed)."""
        path = self.latest_path()
        if path is None:
            logger.info("No state files found, using browser profile state only")
            return None
        try:
            snapshot = StateSnapshot.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError):
            logger.exception("Failed to load state from %s", path)
            return None
        logger.info("State loaded from %s", path.name)
        return snapshot

    def capture(self, capability: Capability) -> StateSnapshot:
        """Read the live cookies, localStorage and URL into a snapshot."""
        url = capability.current_url()
        return StateSnapshot(
            cookies=capability.get_cookies(),
            local_storage=capability.local_storage_items(),
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            url=url,
        )

    def capture_and_save(self, capability: Capability) -> Path | None:
        try:
            snapshot = self.capture(capability)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to capture state")
            return None
        return self.save(snapshot)


def restore_cookies(capability: Capability, snapshot: StateSnapshot) -> int:
    """Apply snapshot cookies missing from the live session. Returns how many were set."""
    missing = merge_cookies(capability.get_cookies(), snapshot.cookies)
    if missing:
        capability.set_cookies(missing)
        logger.info("Restored %d cookies from state file", len(missing))
    return len(missing)


def restore_local_storage(capability: Capability, snapshot: StateSnapshot) -> int:
    """Apply snapshot localStorage keys missing from the current page. Returns the count."""
    missing = merge_local_storage(capability.local_storage_items(), snapshot.local_storage)
    if missing:
        capability.set_local_storage_items(missing)
        logger.info("Restored %d localStorage items from state file", len(missing))
    return len(missing)


__all__ = [
    "StateSnapshot",
    "StateStore",
    "cookie_identity",
    "merge_cookies",
    "merge_local_storage",
    "origin_of",
    "restore_cookies",
    "restore_local_storage",
]
