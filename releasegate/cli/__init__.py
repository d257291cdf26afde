"""releasegate CLI — Typer-based command-line interface.

Provides the ``releasegate`` command with subcommands for running the
full pipeline, the change-detection gate on its own, version bumps,
deploy-only jobs, and ledger history.

All output uses Rich for formatted terminal display.
"""
