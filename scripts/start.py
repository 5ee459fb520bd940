#!/usr/bin/env python
"""Start the SiteAudit API under uvicorn.

Host, port and worker count come from ``API_HOST``, ``API_PORT`` and
``API_WORKERS``; a platform-assigned ``PORT`` takes precedence over
``API_PORT``.
"""

import os
import signal
import sys

from dotenv import load_dotenv

sys.path.insert(0, ".")

load_dotenv()


def uvicorn_argv() -> list[str]:
    from api.config import get_settings

    settings = get_settings()
    port = os.getenv("PORT", str(settings.api_port))

    # Progress streams and cancellation tokens are process-local, so extra
    # workers need sticky routing by domain.
    if settings.api_workers > 1:
        print(f"warning: {settings.api_workers} workers do not share progress streams")

    return [
        "uvicorn",
        "api.main:app",
        "--host",
        settings.api_host,
        "--port",
        port,
        "--workers",
        str(settings.api_workers),
        "--log-level",
        settings.log_level.lower(),
        "--proxy-headers",
        "--forwarded-allow-ips",
        "*",
    ]


def _on_signal(signum: int, _frame: object) -> None:
    print(f"Received signal {signum}, exiting")
    sys.exit(0)


def main() -> None:
    signal.signal(signal.SIGTERM, _on_signal)
    signal.signal(signal.SIGINT, _on_signal)

    argv = uvicorn_argv()
    print(f"Starting SiteAudit API: {' '.join(argv[1:])}")
    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()
