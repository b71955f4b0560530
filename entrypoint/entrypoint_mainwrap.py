#!/usr/bin/env python3
"""Process entrypoint.

Responsibilities:
    1. Validate the backend configuration (missing values are fatal).
    2. Build the Flask `app` with all first-party wiring applied.
    3. Expose `app` for development (``app.run``) or production WSGI servers.
"""

from __future__ import annotations

import os
import sys

from digilib.config import ConfigurationError
from digilib.startup.wiring import create_app


def _build_app():
    try:
        return create_app()
    except ConfigurationError as exc:
        print(f"[MAINWRAP] FATAL: {exc}", file=sys.stderr)
        raise SystemExit(2)


app = _build_app()


if __name__ == "__main__":  # pragma: no cover
    host = os.getenv("DIGILIB_HOST", "0.0.0.0")
    port = int(os.getenv("DIGILIB_PORT", "8083"))
    app.run(host=host, port=port)
