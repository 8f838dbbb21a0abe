#!/usr/bin/env python3
"""
Entry point for running the catalog API server.

Usage:
    python run.py [--port PORT] [--host HOST] [--seed]
"""

import argparse
import logging
import os
import uvicorn
from sqlalchemy.engine import make_url

from catalog.config import load_settings


def main():
    parser = argparse.ArgumentParser(description="Catalog Admin API")
    parser.add_argument("--port", type=int, default=8000, help="Port to run on")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    parser.add_argument("--seed", action="store_true", help="Insert demo categories into an empty database")
    args = parser.parse_args()

    if args.seed:
        # Read by catalog.main when the app module is imported
        os.environ["CATALOG_SEED_DEMO_DATA"] = "1"

    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    url = f"http://{args.host}:{args.port}"

    print("\n" + "=" * 50)
    print("  Catalog Admin API")
    print("=" * 50)
    print(f"\n  URL:      {url}")
    print(f"  Docs:     {url}/docs")
    print(f"  Database: {make_url(settings.database_url).render_as_string(hide_password=True)}")
    print("\n  Press Ctrl+C to stop the server\n")
    print("=" * 50 + "\n")

    uvicorn.run(
        "catalog.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
