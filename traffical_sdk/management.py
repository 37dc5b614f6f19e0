"""
Management API client used by the CLI

Only two calls are needed: read a project's parameter/event definitions and
replace them. Everything smarter (diffing, merging, pattern imports) happens
locally in traffical_sdk.sync.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from .config import DEFAULT_MANAGEMENT_URL
from .exceptions import ErrorCodes, ManagementApiError
from .models import EventDefinition, ParameterDefinition

logger = logging.getLogger(__name__)


@dataclass
class RemoteConfig:
    """Parameter and event definitions as the platform currently holds them"""

    parameters: Dict[str, ParameterDefinition] = field(default_factory=dict)
    events: Dict[str, EventDefinition] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteConfig":
        try:
            parameters = {
                key: ParameterDefinition.model_validate(value)
                for key, value in (data.get("parameters") or {}).items()
            }
            events = {
                name: EventDefinition.model_validate(value)
                for name, value in (data.get("events") or {}).items()
            }
        except (AttributeError, ValidationError) as e:
            raise ManagementApiError(
                ErrorCodes.MANAGEMENT_HTTP, f"Unexpected config payload from platform: {e}", cause=e
            ) from e
        return cls(parameters=parameters, events=events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameters": {key: p.to_payload() for key, p in self.parameters.items()},
            "events": {name: e.to_payload() for name, e in self.events.items()},
        }


class ManagementClient:
    """httpx-based client for the project configuration endpoints"""

    CONFIG_PATH = "/v1/projects/{project_id}/config"

    def __init__(
        self,
        management_key: str,
        base_url: str = DEFAULT_MANAGEMENT_URL,
        timeout_seconds: float = 10.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(base_url=base_url, timeout=timeout_seconds)
        self._headers = {
            "Authorization": f"Bearer {management_key}",
            "Content-Type": "application/json",
        }

    def _handle_error(self, resp: httpx.Response, context: str) -> None:
        if resp.status_code == 404:
            raise ManagementApiError(ErrorCodes.PROJECT_NOT_FOUND, f"{context}: project not found")
        if resp.status_code >= 400:
            raise ManagementApiError(
                ErrorCodes.MANAGEMENT_HTTP,
                f"{context}: HTTP {resp.status_code}: {resp.text}",
            )

    def _request(self, method: str, project_id: str, **kwargs: Any) -> RemoteConfig:
        context = f"{method} config({project_id})"
        try:
            resp = self._http.request(
                method,
                self.CONFIG_PATH.format(project_id=project_id),
                headers=self._headers,
                **kwargs,
            )
        except httpx.HTTPError as e:
            raise ManagementApiError(
                ErrorCodes.MANAGEMENT_HTTP, f"{context} failed: {e}", cause=e
            ) from e
        self._handle_error(resp, context)
        try:
            data = resp.json()
        except ValueError as e:
            raise ManagementApiError(
                ErrorCodes.MANAGEMENT_HTTP, f"{context}: response is not JSON", cause=e
            ) from e
        return RemoteConfig.from_dict(data)

    def get_config(self, project_id: str) -> RemoteConfig:
        remote = self._request("GET", project_id)
        logger.info(
            f"Fetched remote config for {project_id}: {len(remote.parameters)} parameter(s), "
            f"{len(remote.events)} event(s)"
        )
        return remote

    def put_config(self, project_id: str, config: RemoteConfig) -> RemoteConfig:
        remote = self._request("PUT", project_id, json=config.to_dict())
        logger.info(f"Pushed config for {project_id}")
        return remote

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> "ManagementClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
