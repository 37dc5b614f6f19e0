"""Shared fixtures for the SDK tests"""

import copy
from pathlib import Path
from typing import Any, Dict

import pytest

from traffical_sdk.config import ClientOptions
from traffical_sdk.models import ConfigBundle

SDK_BASE = "https://sdk.test.local"
MANAGEMENT_BASE = "https://api.test.local"

BUNDLE_DATA: Dict[str, Any] = {
    "version": "42",
    "orgId": "org_1",
    "projectId": "proj_1",
    "env": "production",
    "hashing": {"unitKey": "userId", "bucketCount": 1000},
    "parameters": [
        {"key": "ui.button.color", "type": "string", "default": "blue", "layerId": "layer_ui"},
        {"key": "pricing.discount", "type": "number", "default": 5, "layerId": "layer_pricing"},
        {"key": "feature.beta.enabled", "type": "boolean", "default": False},
        {"key": "layout.home.hero", "type": "json", "default": {"slides": 3}},
    ],
    "layers": [
        {
            "id": "layer_ui",
            "policies": [
                {
                    "id": "pol_color",
                    "state": "running",
                    "conditions": [],
                    "allocations": [
                        {"name": "control", "bucketRange": [0, 499], "overrides": {"ui.button.color": "blue"}},
                        {"name": "treatment", "bucketRange": [500, 999], "overrides": {"ui.button.color": "green"}},
                    ],
                }
            ],
        },
        {
            "id": "layer_pricing",
            "policies": [
                {
                    "id": "pol_paused",
                    "state": "paused",
                    "allocations": [
                        {"name": "all", "bucketRange": [0, 999], "overrides": {"pricing.discount": 50}}
                    ],
                },
                {
                    "id": "pol_de",
                    "conditions": [{"field": "locale", "op": "eq", "value": "de-DE"}],
                    "allocations": [
                        {"name": "de", "bucketRange": [0, 999], "overrides": {"pricing.discount": 10}}
                    ],
                },
            ],
        },
    ],
    "events": {"purchase": {"valueType": "currency", "unit": "USD"}},
}

CONFIG_YAML = """\
version: "1.0"
project:
  id: proj_1
  orgId: org_1
parameters:
  ui.button.color:
    type: string
    default: blue
    description: Primary button colour
  pricing.discount:
    type: number
    default: 5
events:
  purchase:
    valueType: currency
    unit: USD
"""


@pytest.fixture
def bundle_data() -> Dict[str, Any]:
    return copy.deepcopy(BUNDLE_DATA)


@pytest.fixture
def bundle(bundle_data) -> ConfigBundle:
    return ConfigBundle.model_validate(bundle_data)


@pytest.fixture
def options() -> ClientOptions:
    return ClientOptions(
        api_key="sk_test",
        project_id="proj_1",
        base_url=SDK_BASE,
        auto_refresh=False,
    )


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / ".traffical" / "config.yaml"
    path.parent.mkdir()
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
