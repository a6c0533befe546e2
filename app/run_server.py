#!/usr/bin/env python3
"""
BlobCalc API Server Entry Point

Run with:
    python run_server.py

Or for development with auto-reload:
    uvicorn blobcalc.server:app --reload --host 127.0.0.1 --port 8765
"""

import sys
import os

# Make the blobcalc package importable without installing it
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import uvicorn

from blobcalc.config import load_config


def main():
    """Start the BlobCalc API server."""
    config = load_config()

    print("=" * 50)
    print("  BlobCalc API Server")
    print("=" * 50)
    print()
    print(f"Starting server on http://{config.host}:{config.port}")
    print(f"WebSocket endpoint: ws://{config.host}:{config.port}/ws")
    print()
    print("Press Ctrl+C to stop")
    print()

    uvicorn.run(
        "blobcalc.server:app",
        host=config.host,
        port=config.port,
        reload=False,
        log_level=config.log_level.lower()
    )


if __name__ == "__main__":
    main()
