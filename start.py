#!/usr/bin/env python3
"""
Start script - runs the real-time activity stream until Ctrl-C
"""
import asyncio
import sys

if __name__ == "__main__":
    from app.main import main

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutting down...")
        sys.exit(0)
