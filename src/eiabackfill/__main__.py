"""Allow ``python -m eiabackfill``."""

from eiabackfill.cli import app

if __name__ == "__main__":
    app()
