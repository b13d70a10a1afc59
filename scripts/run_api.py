from __future__ import annotations

import argparse

import uvicorn

from vokalconnect.apps.api.main import create_app
from vokalconnect.core.config import get_settings


def main() -> None:
    # Serve the portal API; log level follows LOG_LEVEL unless overridden.
    parser = argparse.ArgumentParser(description="Run the Vokal Connect API")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()
    uvicorn.run(create_app(), host=args.host, port=args.port, log_level=get_settings().log_level.lower())


if __name__ == "__main__":
    main()
