#!/usr/bin/env python3
"""
Storefront Sync - Main Entry Point

Usage:
    # Run API server
    python main.py server

    # Run one job message from a JSON file and print the result envelope
    python main.py dispatch --file job.json
"""

import argparse
import asyncio
import json
import sys

from api.config import config
from api.logging_config import logger


def check_environment() -> bool:
    """Check that required settings are present."""
    missing = config.validate()

    if missing:
        print("❌ Missing required settings:")
        for var in missing:
            print(f"  - {var}")
        print("\nPlease set these in your .env file or environment.")
        return False

    print("✅ All required settings present")
    return True


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = False):
    """Run the FastAPI server."""
    import uvicorn

    print(f"🚀 Starting server on {host}:{port}")
    uvicorn.run(
        "api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )


async def dispatch_file(path: str) -> dict:
    """Run a single job message read from ``path``."""
    from api.dispatcher import JobDispatcher
    from api.services import build_services

    with open(path, encoding="utf-8") as f:
        message = json.load(f)

    logger.info(f"Dispatching {message.get('pattern')} from {path}")
    services = build_services(config)
    await services.start()
    try:
        dispatcher = JobDispatcher(services, store=config.STORE)
        return await dispatcher.dispatch(message)
    finally:
        await services.close()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Storefront Sync - marketplace order, invoice and catalog jobs"
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Server command
    server_parser = subparsers.add_parser('server', help='Run API server')
    server_parser.add_argument('--host', default=config.HOST, help='Host to bind to')
    server_parser.add_argument('--port', type=int, default=config.PORT, help='Port to bind to')
    server_parser.add_argument('--reload', action='store_true', help='Enable auto-reload')

    # Dispatch command
    dispatch_parser = subparsers.add_parser('dispatch', help='Run one job message')
    dispatch_parser.add_argument('--file', required=True, help='Path to job message JSON')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    # Check environment
    if not check_environment():
        sys.exit(1)

    # Run command
    if args.command == 'server':
        run_server(args.host, args.port, args.reload)

    elif args.command == 'dispatch':
        envelope = asyncio.run(dispatch_file(args.file))
        print(json.dumps(envelope, ensure_ascii=False, indent=2, default=str))
        if envelope.get("status") != "success":
            sys.exit(1)


if __name__ == "__main__":
    main()
