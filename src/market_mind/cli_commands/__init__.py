"""Command registrations for the Typer CLI.

`market_mind/cli.py` stays the entrypoint module (``pyproject.toml`` points the
script at `market_mind.cli:app`); the commands live in this package and are
registered from there.
"""
