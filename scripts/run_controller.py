#!/usr/bin/env python3
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

print(
    f"[glyde] session={os.environ.get('GLYDE_SESSION', 'default')} | "
    f"binary={os.environ.get('GLYDE_BROWSER_BINARY', 'auto')} | "
    f"port={os.environ.get('GLYDE_CDP_PORT', '9222')} | "
    f"manifest={os.environ.get('GLYDE_MANIFEST', 'scripts.manifest.json')}",
    file=sys.stderr,
)

from glyde.browser.main import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
