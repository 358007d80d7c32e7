"""Fixtures for CLI command tests."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from pteropurge.models.server import Server
from pteropurge.panel.client import PanelClient, ServerPage


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the user's settings file and environment out of CLI tests."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("PTEROPURGE_API_KEY", raising=False)
    monkeypatch.delenv("PTEROPURGE_PANEL_URL", raising=False)


@pytest.fixture
def mock_client() -> Iterator[MagicMock]:
    """Patch client creation; lists 'drop-this' (id 5) and 'keep-this' (id 6) on node 2."""
    client = MagicMock(spec=PanelClient)
    client.__enter__.return_value = client
    client.__exit__.return_value = False
    client.list_page.side_effect = [
        ServerPage(
            servers=(
                Server(id=5, name="drop-this", node=2),
                Server(id=6, name="keep-this", node=2),
            ),
            has_more=True,
        ),
        ServerPage(servers=(), has_more=False),
    ]
    client.delete_server.return_value = None

    with patch("pteropurge.cli.options.PanelClient", return_value=client) as factory:
        client.factory = factory
        yield client
