#!/usr/bin/env python3
"""
Rental Ledger Entry Point

Starts the FastAPI server with the posting and reporting engine.
Host, port and database come from RENTAL_LEDGER_* environment variables.
"""

import sys

from rental_ledger.api import run_server
from rental_ledger.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Rental Ledger...")
    print(f"Database: {config.database_url}")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(debug=False)
    except KeyboardInterrupt:
        print("\nShutting down Rental Ledger...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
