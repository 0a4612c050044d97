#!/usr/bin/env python3
"""
Baby Sleep Tracker Server Startup Script

Runs database migrations and starts the API server with uvicorn.
"""

import os
import subprocess
import sys
from pathlib import Path


def setup_environment():
    """Setup the Python path and environment."""
    project_root = Path(__file__).parent.absolute()
    src_path = project_root / "src"

    if not src_path.exists():
        print(f"❌ Error: src directory not found at {src_path}")
        print("Make sure you're running this script from the project root directory")
        sys.exit(1)

    src_str = str(src_path)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)

    # Also set PYTHONPATH environment variable for subprocesses
    current_pythonpath = os.environ.get("PYTHONPATH", "")
    if src_str not in current_pythonpath:
        if current_pythonpath:
            os.environ["PYTHONPATH"] = f"{src_str}{os.pathsep}{current_pythonpath}"
        else:
            os.environ["PYTHONPATH"] = src_str

    os.environ.setdefault("BABYSLEEP_DEV_MODE", "true")

    print(f"📁 Project root: {project_root}")
    print(f"🐍 Python executable: {sys.executable}")


def run_migrations() -> bool:
    """Run database migrations to ensure schema is up to date."""
    from baby_sleep_tracker.config import get_store_backend
    from baby_sleep_tracker.core.enums import StoreBackend

    if get_store_backend() == StoreBackend.MEMORY:
        print("ℹ️  In-memory store selected, skipping migrations")
        return True

    print("🔧 Running database migrations...")
    try:
        subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", "head"],
            check=True,
            capture_output=True,
            text=True,
        )
        print("✅ Database migrations completed successfully")
        return True
    except subprocess.CalledProcessError as e:
        print(f"❌ Migration failed: {e}")
        print(f"Stdout: {e.stdout}")
        print(f"Stderr: {e.stderr}")
        return False


def start_server() -> bool:
    """Start the FastAPI server using uvicorn."""
    from baby_sleep_tracker.config import get_config

    server = get_config().server
    url = f"http://{server.host}:{server.port}"

    print("🚀 Starting Baby Sleep Tracker server...")
    print(f"📍 Server will be available at: {url}")
    print(f"📖 API docs: {url}/docs")
    print("")
    print("Press Ctrl+C to stop the server")
    print("=" * 50)

    command = [
        sys.executable, "-m", "uvicorn",
        "baby_sleep_tracker.main:app",
        "--host", server.host,
        "--port", str(server.port),
    ]
    if server.auto_reload:
        command.append("--reload")

    try:
        subprocess.run(command, check=True, env=os.environ.copy())
    except KeyboardInterrupt:
        print("\n👋 Server stopped by user")
    except subprocess.CalledProcessError as e:
        print(f"❌ Server failed to start: {e}")
        return False

    return True


def main():
    setup_environment()
    if not run_migrations():
        sys.exit(1)
    if not start_server():
        sys.exit(1)


if __name__ == "__main__":
    main()
