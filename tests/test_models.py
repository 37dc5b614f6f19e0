"""Validation rules for config-file and bundle models"""

import pytest
from pydantic import ValidationError

from traffical_sdk.models import (
    ConfigBundle,
    ConfigFile,
    DecisionEvent,
    ParameterDefinition,
    TrackEvent,
    value_matches_type,
)


@pytest.mark.parametrize(
    "value, param_type, expected",
    [
        ("red", "string", True),
        (3, "number", True),
        (0.5, "number", True),
        (True, "number", False),
        (True, "boolean", True),
        (1, "boolean", False),
        ({"a": 1}, "json", True),
        ([1, 2], "json", True),
        ("{}", "json", False),
        ("x", "unknown", False),
    ],
)
def test_value_matches_type(value, param_type, expected):
    assert value_matches_type(value, param_type) is expected


def test_parameter_default_must_match_type():
    with pytest.raises(ValidationError):
        ParameterDefinition(type="number", default="5")


def test_parameter_type_must_be_known():
    with pytest.raises(ValidationError):
        ParameterDefinition(type="integer", default=5)


def test_config_file_accepts_yaml_shapes():
    config = ConfigFile.model_validate(
        {
            "version": 1.0,
            "project": {"id": "proj_1", "orgId": "org_1"},
            "parameters": {"checkout.button.color": {"type": "string", "default": "#fff"}},
            "events": {"purchase": {"valueType": "currency", "unit": "USD"}},
        }
    )
    assert config.version == "1.0"
    assert config.project.org_id == "org_1"
    assert config.events["purchase"].value_type == "currency"


def test_config_file_rejects_non_dot_notation_keys():
    with pytest.raises(ValidationError) as exc_info:
        ConfigFile.model_validate(
            {
                "project": {"id": "p", "orgId": "o"},
                "parameters": {"Checkout Button": {"type": "string", "default": "x"}},
            }
        )
    assert "dot notation" in str(exc_info.value)


def test_config_file_null_sections_become_empty():
    config = ConfigFile.model_validate(
        {"project": {"id": "p", "orgId": "o"}, "parameters": None, "events": None}
    )
    assert config.parameters == {}
    assert config.events == {}


def test_config_payload_uses_wire_keys_and_drops_none():
    config = ConfigFile.model_validate(
        {
            "project": {"id": "p", "orgId": "o"},
            "parameters": {"a.b": {"type": "json", "default": {"x": None}}},
            "events": {"signup": {"valueType": "count"}},
        }
    )
    payload = config.to_payload()
    assert payload["project"] == {"id": "p", "orgId": "o"}
    assert payload["parameters"]["a.b"] == {"type": "json", "default": {"x": None}}
    assert payload["events"]["signup"] == {"valueType": "count"}


def test_bundle_is_immutable(bundle):
    with pytest.raises(ValidationError):
        bundle.version = "43"


def test_bundle_rejects_inverted_bucket_range(bundle_data):
    bundle_data["layers"][0]["policies"][0]["allocations"][0]["bucketRange"] = [10, 5]
    with pytest.raises(ValidationError):
        ConfigBundle.model_validate(bundle_data)


def test_bundle_parameter_index(bundle):
    index = bundle.parameter_index()
    assert index["ui.button.color"].layer_id == "layer_ui"
    assert index["feature.beta.enabled"].layer_id is None


def test_event_payloads():
    decision = DecisionEvent(decision_id="d-1", unit_key="u-1", assignments={"a.b": None})
    payload = decision.to_payload()
    assert payload["type"] == "decision"
    assert payload["decisionId"] == "d-1"
    assert payload["assignments"] == {"a.b": None}
    assert "timestamp" in payload

    track = TrackEvent(event="purchase", value=12)
    payload = track.to_payload()
    assert payload["event"] == "purchase"
    assert payload["value"] == 12.0
    assert "unitKey" not in payload


def test_track_event_requires_name():
    with pytest.raises(ValidationError):
        TrackEvent(event="")


class Account:
    def __str__(self) -> str:
        return "account-7"


def test_event_payloads_stringify_unknown_values():
    decision = DecisionEvent(
        decision_id="d-1",
        context={"userId": "u-1", "account": Account(), "tags": {"plan": Account()}},
    )
    payload = decision.to_payload()
    assert payload["context"] == {
        "userId": "u-1",
        "account": "account-7",
        "tags": {"plan": "account-7"},
    }

    track = TrackEvent(event="purchase", properties={"cart": Account()})
    assert track.to_payload()["properties"] == {"cart": "account-7"}
