from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from kubernetes import client, config
from kubernetes.client import ApiException

from .errors import ConfigFetchError

PLUGIN_CONFIG_LABEL = "velero.io/plugin-config"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 20


@dataclass(frozen=True)
class KubernetesClients:
    api_client: client.ApiClient
    core_api: client.CoreV1Api


class KubernetesAuthenticationError(RuntimeError):
    """Raised when Kubernetes authentication configuration fails."""


def load_kubernetes_clients(
    *,
    kubeconfig_path: str | None,
    context: str | None,
    in_cluster: bool,
) -> KubernetesClients:
    expanded = _expand_kubeconfig_path(kubeconfig_path)
    client_configuration = client.Configuration()
    try:
        if in_cluster:
            config.load_incluster_config(client_configuration=client_configuration)
        else:
            config.load_kube_config(
                config_file=expanded,
                context=context,
                client_configuration=client_configuration,
            )
    except Exception as error:  # pylint: disable=broad-except
        raise KubernetesAuthenticationError(
            _format_authentication_error(
                in_cluster=in_cluster,
                kubeconfig_path=expanded,
                context=context,
                error=error,
            )
        ) from error

    api_client = client.ApiClient(configuration=client_configuration)
    return KubernetesClients(api_client=api_client, core_api=client.CoreV1Api(api_client))


def plugin_config_label_selector(*, plugin_name: str, plugin_kind: str) -> str:
    return f"{PLUGIN_CONFIG_LABEL},{plugin_name}={plugin_kind}"


def find_plugin_config_map(
    core_api: client.CoreV1Api,
    *,
    namespace: str,
    plugin_name: str,
    plugin_kind: str,
    request_timeout_seconds: int = DEFAULT_REQUEST_TIMEOUT_SECONDS,
) -> client.V1ConfigMap | None:
    if request_timeout_seconds <= 0:
        raise ValueError("request_timeout_seconds must be positive")

    label_selector = plugin_config_label_selector(plugin_name=plugin_name, plugin_kind=plugin_kind)
    operation = f"list plugin ConfigMaps in namespace '{namespace}' matching '{label_selector}'"
    hint = "Check API reachability and RBAC verbs for configmaps."
    try:
        config_maps = core_api.list_namespaced_config_map(
            namespace=namespace,
            label_selector=label_selector,
            _request_timeout=request_timeout_seconds,
        ).items
    except ApiException as error:
        raise ConfigFetchError(
            _format_api_exception_message(operation=operation, hint=hint, error=error)
        ) from error
    except Exception as error:  # pylint: disable=broad-except
        raise ConfigFetchError(f"Plugin configuration lookup failed while trying to {operation}: {error}. {hint}") from error

    if not config_maps:
        return None

    if len(config_maps) > 1:
        names = [item.metadata.name if item.metadata else "" for item in config_maps]
        raise ConfigFetchError(
            f"found more than one ConfigMap matching label selector {label_selector!r}: {names}"
        )

    return config_maps[0]


def _format_api_exception_message(*, operation: str, hint: str, error: ApiException) -> str:
    status = error.status if error.status is not None else "unknown"
    reason = error.reason or "no reason provided"
    return (
        f"Plugin configuration lookup failed while trying to {operation}: "
        f"API status {status} ({reason}). {hint}"
    )


def _expand_kubeconfig_path(kubeconfig_path: str | None) -> str | None:
    if kubeconfig_path is None:
        return None
    stripped = kubeconfig_path.strip()
    if not stripped:
        return None
    return str(Path(stripped).expanduser())


def _format_authentication_error(
    *,
    in_cluster: bool,
    kubeconfig_path: str | None,
    context: str | None,
    error: Exception,
) -> str:
    reason = str(error).strip() or error.__class__.__name__
    if in_cluster:
        return (
            "Kubernetes authentication setup failed while loading in-cluster service account credentials: "
            f"{reason}. Ensure the pod has a mounted service account token and Kubernetes service host "
            "environment variables."
        )

    kubeconfig_source = kubeconfig_path or "default kubeconfig search path"
    context_message = f" with context '{context}'" if context else ""
    return (
        "Kubernetes authentication setup failed while loading kubeconfig "
        f"from '{kubeconfig_source}'{context_message}: {reason}. "
        "Verify the kubeconfig path and context are valid."
    )
