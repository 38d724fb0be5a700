"""Volumes and volume claims of the OpenTelemetry Collector workload."""

from __future__ import annotations

from typing import List

from . import naming
from .model import (
    CollectorMode,
    ConfigMapVolumeSource,
    KeyToPath,
    ObjectMeta,
    OpenTelemetryCollector,
    PersistentVolumeClaim,
    PersistentVolumeClaimSpec,
    Volume,
)


def volumes(otelcol: OpenTelemetryCollector, config_map_entry: str) -> List[Volume]:
    """Volumes for the instance: the config map volume, then the user's volumes."""
    config_volume = Volume(
        name=naming.config_map_volume(),
        config_map=ConfigMapVolumeSource(
            name=naming.config_map(otelcol),
            items=[KeyToPath(key=config_map_entry, path=config_map_entry)],
        ),
    )
    return [config_volume, *otelcol.spec.volumes]


def volume_claim_templates(otelcol: OpenTelemetryCollector) -> List[PersistentVolumeClaim]:
    """Volume claim templates for a statefulset instance; empty for other modes."""
    if otelcol.spec.mode != CollectorMode.STATEFULSET:
        return []

    if otelcol.spec.volume_claim_templates:
        return list(otelcol.spec.volume_claim_templates)

    return [
        PersistentVolumeClaim(
            metadata=ObjectMeta(name="default-volume"),
            spec=PersistentVolumeClaimSpec(
                access_modes=["ReadWriteOnce"],
                requests={"storage": "50Mi"},
            ),
        )
    ]