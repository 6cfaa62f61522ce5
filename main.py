"""Storyteller hub launcher. Loads settings and serves the HTTP API."""

import argparse
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "13013"))


def main():
    parser = argparse.ArgumentParser(description="Storyteller hub")
    parser.add_argument("--config", type=Path, default=ROOT / "storyteller.json",
                        help="Settings file (default: ./storyteller.json)")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Conversation storage directory (default: ./data)")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    from backend.app import create_app
    from storyteller.config import configure_logging, load_settings

    configure_logging(args.debug)
    settings = load_settings(args.config)
    if args.data_dir:
        settings.data_dir = args.data_dir

    print(f"Starting storyteller hub on http://localhost:{args.port} ...")
    uvicorn.run(create_app(settings), host=args.host, port=args.port,
                log_level="debug" if args.debug else "info")


if __name__ == "__main__":
    main()
