from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from kubernetes import client

from .errors import GateEvaluationError


@dataclass(frozen=True)
class RestoreContext:
    name: str = ""
    annotations: Mapping[str, str] | None = None

    @classmethod
    def from_restore(cls, document: Mapping[str, Any] | None) -> RestoreContext:
        metadata = (document or {}).get("metadata") or {}
        if not isinstance(metadata, Mapping):
            raise GateEvaluationError("restore metadata must be a mapping")
        annotations = metadata.get("annotations")
        return cls(name=metadata.get("name") or "", annotations=annotations)


@dataclass(frozen=True)
class ResourceSelector:
    included_resources: tuple[str, ...] = ()


@dataclass(frozen=True)
class VolumeBinding:
    claim_name: str
    volume_name: str
    mount_path: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "mount_path", f"/{self.claim_name}")

    def volume_mount(self) -> client.V1VolumeMount:
        return client.V1VolumeMount(name=self.volume_name, mount_path=self.mount_path, read_only=False)
