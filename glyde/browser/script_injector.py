"""Manifest-driven page script injection.

The manifest is plain data:

    {"scripts": [{"path": "page_scripts/click-monitor.js",
                  "sessions": ["*"],
                  "urlPatterns": {"dev": ["*"], "prod": ["example.com"]}}],
     "plugins": []}

`sessions` lists session names exactly as given to the controller (`GLYDE_SESSION` or
`--session`), before they are sanitized into directory and socket names.

It is re-read on every page load so edits apply on the next navigation. Matching is a pure
function of (entries, session name, URL); injection evaluates eligible scripts one by one in
manifest order, and a failing script never stops the ones after it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .capability import Capability

logger = logging.getLogger("glyde.browser.injector")

WILDCARD = "*"
DEV_MARKER = "localhost"
DEFAULT_MANIFEST: dict[str, Any] = {"scripts": [], "plugins": []}


class ManifestError(ValueError):
    pass


@dataclass(frozen=True)
class ManifestEntry:
    path: str
    sessions: frozenset[str] = field(default_factory=frozenset)
    url_patterns: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, obj: Any) -> ManifestEntry:
        if not isinstance(obj, dict):
            raise ManifestError("manifest script entry must be an object")
        path = obj.get("path")
        if not isinstance(path, str) or not path.strip():
            raise ManifestError("manifest script entry requires a non-empty 'path'")
        sessions = obj.get("sessions", [])
        if not isinstance(sessions, list):
            raise ManifestError(f"'sessions' must be a list ({path})")
        raw_patterns = obj.get("urlPatterns", {})
        if not isinstance(raw_patterns, dict):
            raise ManifestError(f"'urlPatterns' must be an object ({path})")
        patterns: dict[str, tuple[str, ...]] = {}
        for env, values in raw_patterns.items():
            if not isinstance(values, list):
                raise ManifestError(f"urlPatterns.{env} must be a list ({path})")
            patterns[str(env)] = tuple(str(v) for v in values)
        return cls(path=path.strip(), sessions=frozenset(str(s) for s in sessions), url_patterns=patterns)

    def applies_to_session(self, session_name: str) -> bool:
        return WILDCARD in self.sessions or session_name in self.sessions

    def matching_pattern(self, env: str, url: str) -> str | None:
        """The pattern that makes this entry eligible for `url`, or None."""
        patterns = self.url_patterns.get(env, ())
        if WILDCARD in patterns:
            return WILDCARD
        return next((p for p in patterns if p and p in url), None)


def classify_environment(url: str) -> str:
    return "dev" if DEV_MARKER in (url or "") else "prod"


def parse_manifest(obj: Any) -> list[ManifestEntry]:
    if not isinstance(obj, dict):
        raise ManifestError("manifest must be a JSON object")
    scripts = obj.get("scripts", [])
    if not isinstance(scripts, list):
        raise ManifestError("manifest 'scripts' must be a list")
    return [ManifestEntry.from_dict(item) for item in scripts]


def load_manifest(path: Path) -> list[ManifestEntry]:
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"cannot read manifest {path}: {exc}") from exc
    try:
        obj = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"invalid JSON in manifest {path}: {exc}") from exc
    return parse_manifest(obj)


def ensure_manifest(path: Path) -> bool:
    """Write an empty manifest if none exists. Returns True when a file was created."""
    path = Path(path)
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(DEFAULT_MANIFEST, indent=2) + "\n", encoding="utf-8")
    logger.info("Created empty scripts manifest at %s", path)
    return True


def eligible_entries(entries: list[ManifestEntry], session_name: str, url: str) -> list[ManifestEntry]:
    """Entries to inject for (session, url), in manifest order."""
    env = classify_environment(url)
    return [e for e in entries if e.applies_to_session(session_name) and e.matching_pattern(env, url) is not None]


def inject_page_scripts(
    capability: Capability,
    *,
    url: str,
    session_name: str,
    manifest_path: Path,
    scripts_root: Path | None = None,
) -> list[str]:
    """Evaluate every eligible manifest script into the page. Returns the injected paths."""
    logger.info("Checking URL for script injection: %s", url)
    try:
        entries = load_manifest(manifest_path)
    except ManifestError:
        logger.exception("Failed to load scripts manifest")
        return []

    root = Path(scripts_root) if scripts_root is not None else Path(manifest_path).parent
    env = classify_environment(url)
    injected: list[str] = []
    for entry in eligible_entries(entries, session_name, url):
        logger.info("Found matching pattern: %s for script: %s", entry.matching_pattern(env, url), entry.path)
        try:
            source = (root / entry.path).read_text(encoding="utf-8")
            capability.evaluate(source)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to inject script %s", entry.path)
            continue
        logger.info("Successfully injected script: %s", entry.path)
        injected.append(entry.path)
    return injected


__all__ = [
    "DEFAULT_MANIFEST",
    "ManifestEntry",
    "ManifestError",
    "classify_environment",
    "eligible_entries",
    "ensure_manifest",
    "inject_page_scripts",
    "load_manifest",
    "parse_manifest",
]
