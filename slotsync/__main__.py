"""
Convenience entry point for running slotsync directly.

Usage: python -m slotsync [command] [options]
"""

from .cli.app import app

if __name__ == "__main__":
    app()
