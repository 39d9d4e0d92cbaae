#!/usr/bin/env python3
"""Development scripts for the Event Marketplace."""

import subprocess
import sys


def start():
    """Start the development server."""
    subprocess.run([
        "uvicorn",
        "event_marketplace.main:app",
        "--host", "0.0.0.0",
        "--port", "8000",
        "--reload"
    ])


def worker():
    """Start a Celery worker with the beat scheduler embedded."""
    subprocess.run([
        "celery",
        "-A", "event_marketplace.tasks.celery_app:celery_app",
        "worker",
        "--beat",
        "--loglevel", "info",
    ])


def test():
    """Run the test suite."""
    sys.exit(subprocess.run(["pytest", "tests/"]).returncode)


def lint():
    """Run linting and type checking."""
    subprocess.run(["black", "event_marketplace/"])
    subprocess.run(["mypy", "event_marketplace/"])


def format_code():
    """Format code with black."""
    subprocess.run(["black", "event_marketplace/", "tests/"])


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts.py <command>")
        print("Commands: start, worker, test, lint, format-code")
        sys.exit(1)

    command = sys.argv[1].replace("-", "_")
    if hasattr(sys.modules[__name__], command):
        getattr(sys.modules[__name__], command)()
    else:
        print(f"Unknown command: {sys.argv[1]}")
        sys.exit(1)
