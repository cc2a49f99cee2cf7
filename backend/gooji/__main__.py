"""CLI entry point for python -m gooji"""
from gooji.cli.commands import app

if __name__ == "__main__":
    app()
