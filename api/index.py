"""
Vercel serverless entrypoint.

Vercel imports `app` from this file and serves it itself; no socket is bound.
"""

import sys
from pathlib import Path

# api/ is the function root on Vercel; the server modules live one level up
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from main import app  # noqa: E402

__all__ = ["app"]
