"""
Run the SignalPro backend server.

Usage:
    python run_server.py [--host HOST] [--port PORT] [--no-reload]
"""
import argparse
import os
import sys

backend_dir = os.path.dirname(os.path.abspath(__file__))
os.chdir(backend_dir)
sys.path.insert(0, backend_dir)

# .env must be loaded before signalpro.core.config builds its settings
from dotenv import load_dotenv
load_dotenv(os.path.join(backend_dir, ".env"))

import uvicorn

from signalpro.core.config import settings


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=f"Run {settings.app_name}")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument(
        "--no-reload", dest="reload", action="store_false",
        help="Disable auto-reload (enabled by default outside production)",
    )
    parser.set_defaults(reload=settings.environment != "production")
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()

    print(f"Starting {settings.app_name} v{settings.app_version} ({settings.environment})")
    print(f"Live data: {settings.enable_live_data}, advisory: {settings.advisory_enabled}")
    print(f"API Docs: http://{args.host}:{args.port}/docs")
    print("-" * 50)

    uvicorn.run(
        "signalpro.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
