from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from kubernetes import client

from .annotations import should_mutate, tag_generic_item, with_presence_annotation
from .config import PluginConfig
from .errors import ConversionError
from .models import ResourceSelector, RestoreContext, VolumeBinding
from .serializer import PodCodec
from .volumes import bind_volumes

logger = logging.getLogger(__name__)

POD_ACTION_NAME = "catalogicsoftware.com/offload-restore-pod-action-plugin"
KUBE_MOVER_BINARY = "/usr/local/bin/kubemover"
CLUSTER_ID_ENV = "AMDS_CLUSTER_ID"


class RestorePodAction:
    """Restore item action that prepends a kube-mover init container to restored Pods."""

    def __init__(
        self,
        config_loader: Callable[[], PluginConfig],
        *,
        plugin_name: str = POD_ACTION_NAME,
        codec: PodCodec | None = None,
    ) -> None:
        self.config_loader = config_loader
        self.plugin_name = plugin_name
        self.codec = codec or PodCodec()

    def applies_to(self) -> ResourceSelector:
        return ResourceSelector(included_resources=("pods",))

    def execute(self, restore: RestoreContext, item: Mapping[str, Any]) -> dict[str, Any]:
        logger.info("%s invoked for restore %s", self.plugin_name, restore.name or "<unnamed>")

        if not should_mutate(restore.annotations):
            return tag_generic_item(item, plugin_name=self.plugin_name)

        pod = self.codec.to_pod(item)
        if pod.spec is None:
            raise ConversionError(direction="item to pod", reason="pod has no spec")

        plugin_config = self.config_loader()
        bindings = bind_volumes(pod)
        pod_name = pod.metadata.name if pod.metadata and pod.metadata.name else ""
        init_container = build_kube_mover_container(plugin_config, pod_name=pod_name, bindings=bindings)

        pod.spec.init_containers = merge_init_container(pod.spec.init_containers, init_container)
        if pod.metadata is None:
            pod.metadata = client.V1ObjectMeta()
        pod.metadata.annotations = with_presence_annotation(pod.metadata.annotations, self.plugin_name)

        return self.codec.to_item(pod)


def build_kube_mover_container(
    plugin_config: PluginConfig,
    *,
    pod_name: str,
    bindings: list[VolumeBinding],
) -> client.V1Container:
    return client.V1Container(
        name=plugin_config.kube_mover_pod_name_prefix + pod_name,
        image=plugin_config.kube_mover_image,
        env=[
            client.V1EnvVar(name=CLUSTER_ID_ENV, value=plugin_config.cluster_id),
            _field_ref_env_var(name="POD_NAMESPACE", field_path="metadata.namespace"),
            _field_ref_env_var(name="POD_NAME", field_path="metadata.name"),
        ],
        args=[
            KUBE_MOVER_BINARY,
            "--server_addr",
            plugin_config.server_addr,
            "--tls",
            plugin_config.use_tls,
            *(binding.mount_path for binding in bindings),
        ],
        volume_mounts=[binding.volume_mount() for binding in bindings],
        resources=plugin_config.resource_requirements(),
        security_context=plugin_config.security_context(),
    )


def merge_init_container(
    init_containers: list[client.V1Container] | None,
    init_container: client.V1Container,
) -> list[client.V1Container]:
    """Place ``init_container`` first, replacing a previous copy instead of stacking another one."""
    existing = list(init_containers or [])
    if existing and existing[0].name == init_container.name:
        return [init_container, *existing[1:]]
    return [init_container, *existing]


def _field_ref_env_var(*, name: str, field_path: str) -> client.V1EnvVar:
    return client.V1EnvVar(
        name=name,
        value_from=client.V1EnvVarSource(field_ref=client.V1ObjectFieldSelector(field_path=field_path)),
    )
