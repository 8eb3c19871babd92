"""Visual element labels (numbers / coordinates) drawn over matching elements."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from ..browser_session import ScriptError
from .base import CommandContext, CommandError, text_arg

logger = logging.getLogger("glyde.browser.tools.label")

DEFAULT_COLOR = "#00ff9d"
DEFAULT_SIZE = 11
CLEANUP_AFTER_MS = 5000

# Returns the number of labels added; invalid selectors count as zero matches.
_LABEL_JS = r"""((opts) => {
  let elements;
  try { elements = document.querySelectorAll(opts.selector); } catch (e) { return 0; }
  if (!document.querySelector('#glyde-label-style')) {
    const style = document.createElement('style');
    style.id = 'glyde-label-style';
    style.textContent = '@keyframes glyde-label-fade {' +
      ' from { opacity: 0; transform: translateY(10px); } to { opacity: 1; transform: translateY(0); } }';
    (document.head || document.documentElement).appendChild(style);
  }
  let added = 0;
  elements.forEach((el, index) => {
    if (opts.selector === '*' && (el.tagName === 'SCRIPT' || el.tagName === 'STYLE' ||
        !el.offsetParent || (el.textContent || '').trim() === '')) {
      return;
    }
    const rect = el.getBoundingClientRect();
    if (rect.width === 0 || rect.height === 0) return;
    const parts = [];
    if (opts.number) parts.push(String(index + 1));
    if (opts.coords) parts.push('(' + Math.round(rect.x) + ', ' + Math.round(rect.y) + ')');
    const label = document.createElement('div');
    label.className = 'glyde-label';
    label.textContent = parts.join(' ');
    Object.assign(label.style, {
      position: 'fixed', zIndex: '10000', padding: '2px 4px', borderRadius: '2px',
      color: opts.color, border: '1px solid ' + opts.color, background: 'rgba(0, 0, 0, 0.15)',
      fontSize: opts.size + 'px', fontFamily: "'Courier New', monospace", fontWeight: '500',
      pointerEvents: 'none', whiteSpace: 'nowrap', top: rect.top + 'px', left: rect.left + 'px',
      animation: 'glyde-label-fade 0.3s ease-in-out',
    });
    document.body.appendChild(label);
    added += 1;
    if (!opts.nocleanup) {
      setTimeout(() => {
        label.style.transition = 'all 0.3s ease-in-out';
        label.style.opacity = '0';
        label.style.transform = 'translateY(-10px)';
        setTimeout(() => label.remove(), 300);
      }, opts.cleanupAfterMs);
    }
  });
  return added;
})"""


@dataclass
class LabelOptions:
    selector: str
    number: bool = False
    coords: bool = False
    color: str = DEFAULT_COLOR
    size: int = DEFAULT_SIZE
    nocleanup: bool = False

    @classmethod
    def from_args(cls, args: Any) -> LabelOptions:
        if isinstance(args, dict):
            opts = args.get("options") if isinstance(args.get("options"), dict) else args
            selector = text_arg(args, "selector")
            try:
                size = int(opts.get("size") or DEFAULT_SIZE)
            except (TypeError, ValueError):
                size = DEFAULT_SIZE
            return cls(
                selector=selector,
                number=bool(opts.get("number")),
                coords=bool(opts.get("coords")),
                color=str(opts.get("color") or DEFAULT_COLOR),
                size=max(6, min(size, 72)),
                nocleanup=bool(opts.get("nocleanup")),
            )
        return cls(selector=text_arg(args))

    def script(self) -> str:
        payload = {
            "selector": self.selector,
            "number": self.number,
            "coords": self.coords,
            "color": self.color,
            "size": self.size,
            "nocleanup": self.nocleanup,
            "cleanupAfterMs": CLEANUP_AFTER_MS,
        }
        return f"{_LABEL_JS}({json.dumps(payload)})"


def add_labels(ctx: CommandContext, options: LabelOptions) -> int:
    if not options.selector:
        raise CommandError("label", "Please provide a selector")
    try:
        count = ctx.capability.evaluate(options.script())
    except ScriptError as exc:
        logger.info("Labeling %s raised in page: %s", options.selector, exc.message)
        count = 0
    try:
        added = int(count or 0)
    except (TypeError, ValueError):
        added = 0
    logger.info("Added %d label(s)%s for %s", added, " permanently" if options.nocleanup else "", options.selector)
    return added


__all__ = ["LabelOptions", "add_labels"]
