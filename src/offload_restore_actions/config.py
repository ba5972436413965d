from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from typing import Mapping

from kubernetes import client

from .errors import ConfigValidationError
from .k8s import DEFAULT_REQUEST_TIMEOUT_SECONDS, find_plugin_config_map
from .validation import parse_bool_flag, parse_resource_requirements, parse_security_context

logger = logging.getLogger(__name__)

PLUGIN_KIND_RESTORE_ITEM_ACTION = "RestoreItemAction"
DEFAULT_CONFIG_NAMESPACE = "cloudcasa-io"

# Kept verbatim from the deployed plugin so existing ConfigMaps behave the same.
DEFAULT_CPU_REQUEST = "100m"
DEFAULT_CPU_LIMIT = "128Mi"
DEFAULT_MEM_REQUEST = "100m"
DEFAULT_MEM_LIMIT = "128Mi"


@dataclass(frozen=True)
class ActionSettings:
    config_namespace: str = field(
        default_factory=lambda: os.getenv("OFFLOAD_RESTORE_CONFIG_NAMESPACE", DEFAULT_CONFIG_NAMESPACE)
    )
    log_level: str = field(default_factory=lambda: os.getenv("OFFLOAD_RESTORE_LOG_LEVEL", "INFO"))
    request_timeout_seconds: int = field(
        default_factory=lambda: int(
            os.getenv("OFFLOAD_RESTORE_REQUEST_TIMEOUT_SECONDS", str(DEFAULT_REQUEST_TIMEOUT_SECONDS))
        )
    )


@dataclass(frozen=True)
class PluginConfig:
    cluster_id: str = ""
    kube_mover_pod_name_prefix: str = ""
    kube_mover_image: str = ""
    server_addr: str = ""
    use_tls: str = ""
    cpu_request: str = DEFAULT_CPU_REQUEST
    cpu_limit: str = DEFAULT_CPU_LIMIT
    mem_request: str = DEFAULT_MEM_REQUEST
    mem_limit: str = DEFAULT_MEM_LIMIT
    run_as_user: str = ""
    run_as_group: str = ""
    allow_privilege_escalation: str = ""

    def __post_init__(self) -> None:
        if self.use_tls != "":
            parse_bool_flag(field="useTLS", value=self.use_tls)
        self.resource_requirements()
        self.security_context()

    def resource_requirements(self) -> client.V1ResourceRequirements:
        return parse_resource_requirements(self.cpu_request, self.mem_request, self.cpu_limit, self.mem_limit)

    def security_context(self) -> client.V1SecurityContext:
        return parse_security_context(self.run_as_user, self.run_as_group, self.allow_privilege_escalation)


def plugin_config_from_data(data: Mapping[str, str] | None) -> PluginConfig:
    data = data or {}
    return PluginConfig(
        cluster_id=_record_value(data, "clusterID"),
        kube_mover_pod_name_prefix=_record_value(data, "kubeMoverPodNamePrefix"),
        kube_mover_image=_record_value(data, "kubeMoverImage"),
        server_addr=_record_value(data, "serverAddr"),
        use_tls=_record_value(data, "useTLS"),
        cpu_request=_record_value(data, "cpuRequest") or DEFAULT_CPU_REQUEST,
        cpu_limit=_record_value(data, "cpuLimit") or DEFAULT_CPU_LIMIT,
        mem_request=_record_value(data, "memRequest") or DEFAULT_MEM_REQUEST,
        mem_limit=_record_value(data, "memLimit") or DEFAULT_MEM_LIMIT,
        run_as_user=_record_value(data, "runAsRoot"),
        run_as_group=_record_value(data, "runAsGroup"),
        allow_privilege_escalation=_record_value(data, "allowPrivilegeEscalation"),
    )


def _record_value(data: Mapping[str, str], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        # ConfigMap data is string-only; YAML turns unquoted 0 or true into int/bool.
        raise ConfigValidationError(
            field=key,
            value=str(value),
            reason="must be a string; quote the value in the ConfigMap data",
        )
    return value


class PluginConfigResolver:
    def __init__(
        self,
        core_api: client.CoreV1Api,
        *,
        plugin_name: str,
        plugin_kind: str = PLUGIN_KIND_RESTORE_ITEM_ACTION,
        namespace: str = DEFAULT_CONFIG_NAMESPACE,
        request_timeout_seconds: int = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self.core_api = core_api
        self.plugin_name = plugin_name
        self.plugin_kind = plugin_kind
        self.namespace = namespace
        self.request_timeout_seconds = request_timeout_seconds

    def resolve(self) -> PluginConfig:
        config_map = find_plugin_config_map(
            self.core_api,
            namespace=self.namespace,
            plugin_name=self.plugin_name,
            plugin_kind=self.plugin_kind,
            request_timeout_seconds=self.request_timeout_seconds,
        )
        if config_map is None:
            logger.warning(
                "No ConfigMap for %s found in namespace %s; using default configuration",
                self.plugin_name,
                self.namespace,
            )
            return plugin_config_from_data(None)
        return plugin_config_from_data(config_map.data)

    __call__ = resolve
