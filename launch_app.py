"""Serve the Shift Planner API with uvicorn from a source checkout."""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path
from typing import List, Optional


PROJECT_ROOT = Path(__file__).resolve().parent
APP_DIR = PROJECT_ROOT / "app"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Start the shift planner HTTP API.")
    parser.add_argument("--host", default=os.getenv("SHIFT_PLANNER_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("SHIFT_PLANNER_PORT", "8000")))
    parser.add_argument("--reload", action="store_true", help="Restart the server when files under app/ change.")
    parser.add_argument(
        "--install",
        action="store_true",
        help="Install the project (pip install -e .) into the running interpreter before serving.",
    )
    return parser.parse_args(argv)


def install_project() -> None:
    print(f"[launcher] Installing {PROJECT_ROOT} into {sys.executable}...")
    subprocess.check_call([sys.executable, "-m", "pip", "install", "-e", str(PROJECT_ROOT)])


def launch_app(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.install:
        install_project()
    if not (APP_DIR / "api.py").exists():
        raise FileNotFoundError(f"API module not found in {APP_DIR}")

    # Imported late so --install can provide it.
    import uvicorn

    print(f"[launcher] Starting Shift Planner API on http://{args.host}:{args.port} ...")
    uvicorn.run(
        "api:app",
        app_dir=str(APP_DIR),
        host=args.host,
        port=args.port,
        reload=args.reload,
        reload_dirs=[str(APP_DIR)] if args.reload else None,
    )
    return 0


if __name__ == "__main__":
    try:
        sys.exit(launch_app())
    except subprocess.CalledProcessError as exc:
        print(f"[launcher] Command failed with exit code {exc.returncode}", file=sys.stderr)
        sys.exit(exc.returncode)
    except FileNotFoundError as exc:
        print(f"[launcher] {exc}", file=sys.stderr)
        sys.exit(1)
