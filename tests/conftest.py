"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from pathlib import Path
from typing import Any

import pytest
from pteropurge.core.config import PurgeConfig


@pytest.fixture
def purge_config() -> PurgeConfig:
    """Configuration targeting nodes 1, 2 and 3, protecting names with 'keep'."""
    return PurgeConfig(
        panel_url="https://panel.example.com",
        api_key="ptla_test_key",
        node_ids="1, 2,3",
        exclude_keyword="keep",
    )


@pytest.fixture
def servers_payload() -> dict[str, Any]:
    """Sample page of the Application API server listing."""
    return {
        "object": "list",
        "data": [
            {
                "object": "server",
                "attributes": {
                    "id": 5,
                    "uuid": "1a7ce997-259b-452e-8b4e-cecc464142ca",
                    "identifier": "1a7ce997",
                    "name": "drop-this",
                    "node": 2,
                },
            },
            {
                "object": "server",
                "attributes": {
                    "id": 6,
                    "uuid": "9c1b1f3e-4c8d-4e8a-9a3f-0b2f8f1e2d3c",
                    "identifier": "9c1b1f3e",
                    "name": "keep-this",
                    "node": 2,
                },
            },
        ],
        "meta": {"pagination": {"total": 2, "per_page": 100, "current_page": 1}},
    }


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    """Settings file with panel defaults."""
    path = tmp_path / "config.toml"
    path.write_text(
        '[panel]\npanel_url = "https://panel.example.com/"\n'
        'api_key = "ptla_from_file"\nnode_ids = "4"\nexclude_keyword = "prod"\n'
    )
    return path
