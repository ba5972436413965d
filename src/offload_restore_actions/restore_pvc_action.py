from __future__ import annotations

import logging
from typing import Any, Mapping

from .annotations import tag_generic_item
from .models import ResourceSelector, RestoreContext

logger = logging.getLogger(__name__)

PVC_ACTION_NAME = "catalogicsoftware.com/offload-restore-pvc-action-plugin"


class RestorePvcAction:
    def __init__(self, *, plugin_name: str = PVC_ACTION_NAME) -> None:
        self.plugin_name = plugin_name

    def applies_to(self) -> ResourceSelector:
        return ResourceSelector(included_resources=("persistentvolumeclaims",))

    def execute(self, restore: RestoreContext, item: Mapping[str, Any]) -> dict[str, Any]:
        logger.info("%s invoked for restore %s", self.plugin_name, restore.name or "<unnamed>")
        return tag_generic_item(item, plugin_name=self.plugin_name)
