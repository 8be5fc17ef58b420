"""
Premium schedule service – standalone entry point.

Used for the frozen (PyInstaller) build and for running the service without
an ASGI command line. In development use
``uvicorn schedule_api.main:app --reload`` instead.

Startup protocol:
  1. multiprocessing.freeze_support() is called first – mandatory for
     ProcessPoolExecutor workers inside a frozen executable on Windows.
  2. A free OS port is discovered by binding to 127.0.0.1:0, unless
     PREMIUM_SCHEDULE_PORT is set.
  3. "PORT:{port}" is printed to stdout (flushed) so a parent process can
     read it and poll /api/health.
  4. uvicorn starts the FastAPI app on that port.
"""

from __future__ import annotations

import multiprocessing
import os
import socket
import sys

# Static import so PyInstaller walks the full dependency tree; the object is
# passed to uvicorn.run() instead of an "module:app" string.
from schedule_api.main import app as _fastapi_app  # noqa: E402


def _find_free_port() -> int:
    """Bind to port 0, let the OS assign a free port, return it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def main() -> None:
    bundle_dir = os.path.dirname(sys.executable)
    if bundle_dir not in sys.path:
        sys.path.insert(0, bundle_dir)

    port = int(os.environ.get("PREMIUM_SCHEDULE_PORT") or _find_free_port())
    print(f"PORT:{port}", flush=True)

    import uvicorn

    # workers=1: parallelism comes from the lifespan ProcessPoolExecutor.
    uvicorn.run(
        _fastapi_app,
        host="127.0.0.1",
        port=port,
        workers=1,
        loop="asyncio",
        access_log=False,
    )


if __name__ == "__main__":
    # freeze_support() MUST be the very first call in the __main__ block.
    multiprocessing.freeze_support()
    main()
