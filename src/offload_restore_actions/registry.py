from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol

from .config import PluginConfig
from .models import ResourceSelector, RestoreContext
from .restore_pod_action import POD_ACTION_NAME, RestorePodAction
from .restore_pvc_action import PVC_ACTION_NAME, RestorePvcAction

ConfigLoader = Callable[[], PluginConfig]
ConfigLoaderFactory = Callable[[str], ConfigLoader]


class RestoreItemAction(Protocol):
    def applies_to(self) -> ResourceSelector: ...

    def execute(self, restore: RestoreContext, item: Mapping[str, Any]) -> dict[str, Any]: ...


class UnknownActionError(LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"unknown restore item action '{name}'; registered actions: {', '.join(sorted(ACTION_REGISTRY))}")
        self.name = name


def _new_restore_pod_action(config_loader_for: ConfigLoaderFactory) -> RestoreItemAction:
    return RestorePodAction(config_loader_for(POD_ACTION_NAME))


def _new_restore_pvc_action(config_loader_for: ConfigLoaderFactory) -> RestoreItemAction:
    return RestorePvcAction()


ACTION_REGISTRY: dict[str, Callable[[ConfigLoaderFactory], RestoreItemAction]] = {
    PVC_ACTION_NAME: _new_restore_pvc_action,
    POD_ACTION_NAME: _new_restore_pod_action,
}


def new_action(name: str, config_loader_for: ConfigLoaderFactory) -> RestoreItemAction:
    try:
        factory = ACTION_REGISTRY[name]
    except KeyError as error:
        raise UnknownActionError(name) from error
    return factory(config_loader_for)
