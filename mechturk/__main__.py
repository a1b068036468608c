"""
Entry point for running mechturk as a module: python -m mechturk
"""

from mechturk.cli.commands import app

if __name__ == "__main__":
    app()
