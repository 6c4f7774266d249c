"""Allow running preflight as ``python -m preflight``."""

from .cli import app

if __name__ == "__main__":
    app()
