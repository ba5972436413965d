from __future__ import annotations

import logging

from kubernetes import client

from .models import VolumeBinding

logger = logging.getLogger(__name__)


def bind_volumes(pod: client.V1Pod) -> list[VolumeBinding]:
    namespace = pod.metadata.namespace if pod.metadata else None
    volumes = pod.spec.volumes if pod.spec and pod.spec.volumes else []

    bindings: list[VolumeBinding] = []
    for volume in volumes:
        pvc_source = volume.persistent_volume_claim
        if pvc_source is None:
            logger.debug("Skipping volume %s: not backed by a persistent volume claim", volume.name)
            continue

        bindings.append(VolumeBinding(claim_name=pvc_source.claim_name, volume_name=volume.name))
        logger.info(
            "Adding PVC %s/%s as an item to be restored from offloaded data",
            namespace,
            pvc_source.claim_name,
        )
    return bindings
