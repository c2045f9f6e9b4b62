"""
Run the Bridge Wrapped API server.

  - API: python run_api.py
  - Or:  uvicorn api.main:app --port 8000
"""

import os
import sys

import uvicorn

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from bridge_wrapped.config import settings


def main():
    """Run the API server."""
    host = settings.api_host
    port = settings.api_port

    print(f"Starting Bridge Wrapped API on {host}:{port}")
    print(f"API docs available at http://{host}:{port}/docs")

    uvicorn.run(
        "api.main:app",
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
