"""Root conftest: exports .env.test before talawang.config builds its settings."""
from __future__ import annotations

import os
from pathlib import Path

_env_test = Path(__file__).resolve().parent / ".env.test"
if _env_test.exists():
    for raw in _env_test.read_text().splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        # variables already exported by CI take precedence
        os.environ.setdefault(key.strip(), value.strip().strip("'\""))
