"""Allow running as ``python -m backstop``."""

from backstop.cli import app

if __name__ == "__main__":
    app()
