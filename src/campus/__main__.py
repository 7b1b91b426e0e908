"""``python -m campus`` entry point."""

from campus.cli.main import app

if __name__ == "__main__":  # pragma: no cover
    app(prog_name="campus")
