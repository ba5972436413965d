from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from kubernetes.client import ApiException

from offload_restore_actions.config import (
    ActionSettings,
    PluginConfig,
    PluginConfigResolver,
    plugin_config_from_data,
)
from offload_restore_actions.errors import ConfigFetchError, ConfigValidationError

_POD_ACTION = "catalogicsoftware.com/offload-restore-pod-action-plugin"


def _config_map(name: str, data: dict[str, str] | None) -> SimpleNamespace:
    return SimpleNamespace(metadata=SimpleNamespace(name=name), data=data)


def test_plugin_config_from_data_with_every_key_maps_fields() -> None:
    config = plugin_config_from_data(
        {
            "clusterID": "cluster-1",
            "kubeMoverPodNamePrefix": "kubemover-",
            "kubeMoverImage": "catalogicsoftware/kubemover:1.2.0",
            "serverAddr": "amds.example.com:443",
            "useTLS": "true",
            "cpuRequest": "250m",
            "cpuLimit": "1",
            "memRequest": "64Mi",
            "memLimit": "256Mi",
            "runAsRoot": "0",
            "runAsGroup": "1001",
            "allowPrivilegeEscalation": "false",
        }
    )

    assert config == PluginConfig(
        cluster_id="cluster-1",
        kube_mover_pod_name_prefix="kubemover-",
        kube_mover_image="catalogicsoftware/kubemover:1.2.0",
        server_addr="amds.example.com:443",
        use_tls="true",
        cpu_request="250m",
        cpu_limit="1",
        mem_request="64Mi",
        mem_limit="256Mi",
        run_as_user="0",
        run_as_group="1001",
        allow_privilege_escalation="false",
    )


def test_plugin_config_from_data_with_missing_resource_keys_applies_defaults() -> None:
    config = plugin_config_from_data({"cpuRequest": "", "memLimit": "512Mi"})

    assert config.cpu_request == "100m"
    assert config.cpu_limit == "128Mi"
    assert config.mem_request == "100m"
    assert config.mem_limit == "512Mi"


def test_plugin_config_from_data_with_no_record_returns_default_only_config() -> None:
    assert plugin_config_from_data(None) == PluginConfig()


def test_plugin_config_with_malformed_run_as_group_raises_on_construction() -> None:
    with pytest.raises(ConfigValidationError, match='runAsGroup "wheel" is not a number'):
        plugin_config_from_data({"runAsGroup": "wheel"})


def test_plugin_config_with_malformed_tls_flag_raises_on_construction() -> None:
    with pytest.raises(ConfigValidationError, match='useTLS "maybe" is not a boolean'):
        PluginConfig(use_tls="maybe")


def test_plugin_config_from_data_with_unquoted_integer_raises_validation_error() -> None:
    with pytest.raises(ConfigValidationError, match='runAsRoot "0" must be a string; quote the value'):
        plugin_config_from_data({"runAsRoot": 0})  # type: ignore[dict-item]


def test_plugin_config_from_data_with_unquoted_boolean_raises_validation_error() -> None:
    with pytest.raises(ConfigValidationError, match='useTLS "True" must be a string') as excinfo:
        plugin_config_from_data({"useTLS": True})  # type: ignore[dict-item]

    assert excinfo.value.field == "useTLS"


def test_plugin_config_from_data_with_null_value_treats_key_as_unset() -> None:
    config = plugin_config_from_data({"runAsGroup": None, "cpuLimit": None})  # type: ignore[dict-item]

    assert config.run_as_group == ""
    assert config.cpu_limit == "128Mi"


def test_plugin_config_with_request_above_limit_raises_on_construction() -> None:
    with pytest.raises(ConfigValidationError, match="CPU request"):
        plugin_config_from_data({"cpuRequest": "2", "cpuLimit": "1"})


def test_plugin_config_resource_requirements_uses_configured_values() -> None:
    resources = PluginConfig(cpu_request="250m", cpu_limit="0", mem_request="64Mi", mem_limit="256Mi").resource_requirements()

    assert resources.requests == {"cpu": "250m", "memory": "64Mi"}
    assert resources.limits == {"memory": "256Mi"}


def test_plugin_config_resolver_with_single_config_map_returns_its_data() -> None:
    core_api = Mock()
    core_api.list_namespaced_config_map.return_value = SimpleNamespace(
        items=[_config_map("offload-config", {"clusterID": "cluster-9", "kubeMoverImage": "mover:2"})]
    )
    resolver = PluginConfigResolver(core_api, plugin_name=_POD_ACTION)

    config = resolver.resolve()

    assert config.cluster_id == "cluster-9"
    assert config.kube_mover_image == "mover:2"
    core_api.list_namespaced_config_map.assert_called_once_with(
        namespace="cloudcasa-io",
        label_selector=f"velero.io/plugin-config,{_POD_ACTION}=RestoreItemAction",
        _request_timeout=20,
    )


def test_plugin_config_resolver_with_no_config_map_returns_default_config() -> None:
    core_api = Mock()
    core_api.list_namespaced_config_map.return_value = SimpleNamespace(items=[])

    assert PluginConfigResolver(core_api, plugin_name=_POD_ACTION)() == PluginConfig()


def test_plugin_config_resolver_with_api_failure_raises_fetch_error() -> None:
    core_api = Mock()
    core_api.list_namespaced_config_map.side_effect = ApiException(status=500, reason="Internal Server Error")
    resolver = PluginConfigResolver(core_api, plugin_name=_POD_ACTION, namespace="backup-system")

    with pytest.raises(ConfigFetchError, match="namespace 'backup-system'"):
        resolver.resolve()


def test_plugin_config_resolver_with_invalid_record_raises_validation_error() -> None:
    core_api = Mock()
    core_api.list_namespaced_config_map.return_value = SimpleNamespace(
        items=[_config_map("offload-config", {"memRequest": "1Gi", "memLimit": "512Mi"})]
    )

    with pytest.raises(ConfigValidationError, match="memory request"):
        PluginConfigResolver(core_api, plugin_name=_POD_ACTION).resolve()


def test_action_settings_with_environment_overrides_reads_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OFFLOAD_RESTORE_CONFIG_NAMESPACE", "velero")
    monkeypatch.setenv("OFFLOAD_RESTORE_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("OFFLOAD_RESTORE_REQUEST_TIMEOUT_SECONDS", "5")

    settings = ActionSettings()

    assert settings.config_namespace == "velero"
    assert settings.log_level == "DEBUG"
    assert settings.request_timeout_seconds == 5


def test_action_settings_without_environment_uses_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "OFFLOAD_RESTORE_CONFIG_NAMESPACE",
        "OFFLOAD_RESTORE_LOG_LEVEL",
        "OFFLOAD_RESTORE_REQUEST_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)

    assert ActionSettings() == ActionSettings(
        config_namespace="cloudcasa-io",
        log_level="INFO",
        request_timeout_seconds=20,
    )
