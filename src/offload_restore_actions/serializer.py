from __future__ import annotations

from datetime import date, datetime
import json
from typing import Any, Mapping

from kubernetes import client
from kubernetes.client import ApiException

from .errors import ConversionError

_POD_MODEL = "V1Pod"


class PodCodec:
    """Converts Pod documents between the generic wire form and ``V1Pod`` models.

    Field names follow the API's camelCase wire names on the generic side and the
    client's snake_case model attributes on the typed side. Unknown wire fields are
    not represented on the typed side.
    """

    def __init__(self, api_client: client.ApiClient | None = None) -> None:
        self.api_client = api_client or client.ApiClient()

    def to_pod(self, item: Mapping[str, Any]) -> client.V1Pod:
        if not isinstance(item, Mapping):
            raise ConversionError(direction="item to pod", reason=f"expected a mapping, got {type(item).__name__}")
        try:
            document = json.loads(json.dumps(item, default=_json_default))
            # The public deserialize() takes an HTTP response whose signature changed
            # across client releases; the model decoder takes the parsed document.
            pod = self.api_client._ApiClient__deserialize(document, _POD_MODEL)  # pylint: disable=protected-access
        except ApiException as error:
            raise ConversionError(direction="item to pod", reason=error.reason or str(error)) from error
        except (TypeError, ValueError) as error:
            raise ConversionError(direction="item to pod", reason=str(error)) from error
        if not isinstance(pod, client.V1Pod):
            raise ConversionError(direction="item to pod", reason="item did not decode to a Pod")
        return pod

    def to_item(self, pod: client.V1Pod) -> dict[str, Any]:
        if not isinstance(pod, client.V1Pod):
            raise ConversionError(direction="pod to item", reason=f"expected V1Pod, got {type(pod).__name__}")
        try:
            item = self.api_client.sanitize_for_serialization(pod)
        except (TypeError, ValueError, AttributeError) as error:
            raise ConversionError(direction="pod to item", reason=str(error)) from error
        if not isinstance(item, dict):
            raise ConversionError(direction="pod to item", reason="pod did not encode to a mapping")
        return item


def pod_from_item(item: Mapping[str, Any], *, codec: PodCodec | None = None) -> client.V1Pod:
    return (codec or PodCodec()).to_pod(item)


def pod_to_item(pod: client.V1Pod, *, codec: PodCodec | None = None) -> dict[str, Any]:
    return (codec or PodCodec()).to_item(pod)


def _json_default(value: Any) -> str:
    # YAML loaders turn unquoted timestamps into datetime objects.
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
