"""
Local/remote reconciliation for the CLI

All functions are pure: they take the local ConfigFile and a RemoteConfig and
return a diff or a new ConfigFile/RemoteConfig. The CLI decides what to write
and where.

Push never deletes remote definitions; definitions that only exist remotely
are preserved and reported so the developer can pull or import them.
"""

import fnmatch
from dataclasses import dataclass, field
from typing import Dict, List, Tuple, TypeVar

from .management import RemoteConfig
from .models import ConfigFile

T = TypeVar("T")


@dataclass
class SectionDiff:
    local_only: List[str] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)
    remote_only: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)

    @property
    def has_local_changes(self) -> bool:
        return bool(self.local_only or self.changed)


@dataclass
class ConfigDiff:
    parameters: SectionDiff
    events: SectionDiff

    @property
    def has_local_changes(self) -> bool:
        return self.parameters.has_local_changes or self.events.has_local_changes

    @property
    def in_sync(self) -> bool:
        return not self.has_local_changes and not (
            self.parameters.remote_only or self.events.remote_only
        )


def _diff_section(local: Dict[str, T], remote: Dict[str, T]) -> SectionDiff:
    diff = SectionDiff()
    for key in sorted(local):
        if key not in remote:
            diff.local_only.append(key)
        elif local[key] != remote[key]:
            diff.changed.append(key)
        else:
            diff.unchanged.append(key)
    diff.remote_only = sorted(key for key in remote if key not in local)
    return diff


def diff_config(local: ConfigFile, remote: RemoteConfig) -> ConfigDiff:
    return ConfigDiff(
        parameters=_diff_section(local.parameters, remote.parameters),
        events=_diff_section(local.events, remote.events),
    )


def build_push_payload(local: ConfigFile, remote: RemoteConfig) -> RemoteConfig:
    """Remote definitions overlaid with local ones (local wins)"""
    return RemoteConfig(
        parameters={**remote.parameters, **local.parameters},
        events={**remote.events, **local.events},
    )


def apply_pull(local: ConfigFile, remote: RemoteConfig) -> ConfigFile:
    """Replace local definitions with the remote ones, keeping project info"""
    return local.model_copy(
        update={"parameters": dict(remote.parameters), "events": dict(remote.events)}
    )


def merge_remote_only(local: ConfigFile, remote: RemoteConfig) -> ConfigFile:
    """Add definitions that exist only remotely; local definitions are untouched"""
    parameters = dict(local.parameters)
    for key, definition in remote.parameters.items():
        parameters.setdefault(key, definition)
    events = dict(local.events)
    for name, definition in remote.events.items():
        events.setdefault(name, definition)
    return local.model_copy(update={"parameters": parameters, "events": events})


def import_matching(
    local: ConfigFile, remote: RemoteConfig, pattern: str
) -> Tuple[ConfigFile, List[str]]:
    """
    Copy remote parameters whose key matches a glob pattern into `local`

    `checkout.*` imports every parameter under the checkout namespace.
    Existing local definitions are overwritten by the remote ones.

    Returns:
        (updated config, sorted list of imported keys)
    """
    imported = sorted(key for key in remote.parameters if fnmatch.fnmatchcase(key, pattern))
    parameters = dict(local.parameters)
    for key in imported:
        parameters[key] = remote.parameters[key]
    return local.model_copy(update={"parameters": parameters}), imported
