from __future__ import annotations

import copy
from typing import Any, Mapping

from .errors import ConversionError, GateEvaluationError

RESTORE_FROM_OFFLOAD_ANNOTATION = "cloudcasa-restore-from-offload"
PRESENCE_ANNOTATION_VALUE = "1"


def should_mutate(restore_annotations: Mapping[str, str] | None) -> bool:
    if restore_annotations is None:
        return False
    if not isinstance(restore_annotations, Mapping):
        raise GateEvaluationError(
            f"restore annotations must be a mapping, got {type(restore_annotations).__name__}"
        )
    return RESTORE_FROM_OFFLOAD_ANNOTATION in restore_annotations


def with_presence_annotation(annotations: Mapping[str, str] | None, plugin_name: str) -> dict[str, str]:
    """Return a copy of ``annotations`` marking the item as seen by ``plugin_name``."""
    updated = dict(annotations or {})
    updated[plugin_name] = PRESENCE_ANNOTATION_VALUE
    return updated


def tag_generic_item(item: Mapping[str, Any], *, plugin_name: str) -> dict[str, Any]:
    """Return a deep copy of a generic item carrying the presence annotation."""
    if not isinstance(item, Mapping):
        raise ConversionError(direction="item metadata", reason=f"expected a mapping, got {type(item).__name__}")
    tagged = copy.deepcopy(dict(item))
    metadata = tagged.get("metadata") or {}
    if not isinstance(metadata, Mapping):
        raise ConversionError(direction="item metadata", reason="metadata must be a mapping")
    tagged["metadata"] = {
        **metadata,
        "annotations": with_presence_annotation(metadata.get("annotations"), plugin_name),
    }
    return tagged
