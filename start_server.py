#!/usr/bin/env python3
"""Run the tracking API under uvicorn, honouring the PORT environment variable."""

import os
import subprocess
import sys
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parent / "src"


def resolve_port(raw: str | None) -> int:
    try:
        return int(raw or "8000")
    except ValueError:
        print(f"Warning: Invalid PORT value '{raw}', using default 8000", file=sys.stderr)
        return 8000


def main() -> int:
    port = resolve_port(os.environ.get("PORT"))

    existing = os.environ.get("PYTHONPATH", "")
    os.environ["PYTHONPATH"] = f"{SRC_DIR}{os.pathsep}{existing}" if existing else str(SRC_DIR)
    sys.path.insert(0, str(SRC_DIR))

    # Fail fast with a readable message instead of a uvicorn traceback
    try:
        import geotrack.main  # noqa: F401
    except Exception as exc:
        print(f"Failed to import geotrack.main: {exc}", file=sys.stderr)
        return 1

    cmd = [
        sys.executable,
        "-m",
        "uvicorn",
        "geotrack.main:app",
        "--host",
        "0.0.0.0",
        "--port",
        str(port),
        "--proxy-headers",
        "--forwarded-allow-ips",
        "*",
    ]
    print(f"Starting server on port {port}", file=sys.stderr)
    return subprocess.call(cmd)


if __name__ == "__main__":
    sys.exit(main())
