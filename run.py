#!/usr/bin/env python3
"""
Bank Demo Data Service Entry Point

Starts the FastAPI server on the configured host and port (8080 by default).
"""

import sys

from bank_demo.api import run_server
from bank_demo.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("🏦 Starting Bank Demo Data Service...")
    print(f"🗄️  SEED:    {config.seed_database_url.split('://', 1)[0]}")
    print(f"🗄️  TESTING: {config.testing_database_url.split('://', 1)[0]}")
    print(f"🗄️  PROD:    {config.prod_database_url.split('://', 1)[0]}")
    print(f"🌐 API available at: http://localhost:{config.api_port}/api")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(debug=False)
    except KeyboardInterrupt:
        print("\n👋 Shutting down Bank Demo Data Service...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
