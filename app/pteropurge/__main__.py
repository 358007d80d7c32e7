"""Allow running pteropurge with ``python -m pteropurge``."""

from pteropurge.cli.main import app

app()
