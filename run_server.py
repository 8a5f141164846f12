#!/usr/bin/env python3
"""
Startup script for the enrichment setup API.
"""

import os
import socket
import sys

import uvicorn
from dotenv import load_dotenv

load_dotenv()


def check_port(port):
    """Check if a port is available"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    result = sock.connect_ex(('localhost', port))
    sock.close()
    return result != 0  # True if port is available


def main():
    port = int(os.getenv("PORT", "8001"))

    print("=" * 60)
    print("Enrichment Setup - Starting API")
    print("=" * 60)

    if not check_port(port):
        print(f"WARNING: Port {port} is already in use!")
        return 1

    for key in ("OPENAI_API_KEY", "FIRECRAWL_API_KEY"):
        if not os.getenv(key):
            print(f"   Note: {key} is not set; uploads will wait for it to be provided")

    print("\nAccess Points:")
    print(f"   API Docs:       http://localhost:{port}/docs")
    print(f"   API Base:       http://localhost:{port}/api/v1")
    print("\nPress Ctrl+C to stop the server")

    uvicorn.run("app.main:app", host="0.0.0.0", port=port, reload=os.getenv("DEBUG", "").lower() == "true")
    return 0


if __name__ == "__main__":
    sys.exit(main())
