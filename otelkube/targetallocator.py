"""Resources of the TargetAllocator that serves a collector's Prometheus targets."""

from __future__ import annotations

from typing import Dict, List

from . import naming
from .model import (
    ConfigMapVolumeSource,
    Container,
    Deployment,
    DeploymentSpec,
    EnvVar,
    EnvVarSource,
    KeyToPath,
    LabelSelector,
    ObjectMeta,
    OpenTelemetryCollector,
    PodSpec,
    PodTemplateSpec,
    Volume,
    VolumeMount,
)


def labels(otelcol: OpenTelemetryCollector) -> Dict[str, str]:
    """Common labels of all TargetAllocator objects of a managed collector."""
    base = dict(otelcol.labels)
    base["app.kubernetes.io/managed-by"] = "opentelemetry-operator"
    base["app.kubernetes.io/instance"] = f"{otelcol.namespace}.{otelcol.name}"
    base["app.kubernetes.io/part-of"] = "opentelemetry"
    base["app.kubernetes.io/component"] = "opentelemetry-targetallocator"
    return base


def container(otelcol: OpenTelemetryCollector, default_image: str) -> Container:
    """The TargetAllocator container, using ``default_image`` unless the spec sets one."""
    image = otelcol.spec.target_allocator.image or default_image
    return Container(
        name=naming.ta_container(),
        image=image,
        env=[
            EnvVar(
                name="OTELCOL_NAMESPACE",
                value_from=EnvVarSource(field_path="metadata.namespace"),
            )
        ],
        volume_mounts=[VolumeMount(name=naming.ta_config_map_volume(), mount_path="/conf")],
    )


def volumes(otelcol: OpenTelemetryCollector, config_map_entry: str) -> List[Volume]:
    """The TargetAllocator volumes: its config map volume."""
    return [
        Volume(
            name=naming.ta_config_map_volume(),
            config_map=ConfigMapVolumeSource(
                name=naming.ta_config_map(otelcol),
                items=[KeyToPath(key=config_map_entry, path=config_map_entry)],
            ),
        )
    ]


def deployment(
    otelcol: OpenTelemetryCollector, default_image: str, config_map_entry: str
) -> Deployment:
    """The TargetAllocator deployment for the given collector."""
    name = naming.target_allocator(otelcol)
    common = labels(otelcol)
    common["app.kubernetes.io/name"] = name

    return Deployment(
        metadata=ObjectMeta(name=name, namespace=otelcol.namespace, labels=dict(common)),
        spec=DeploymentSpec(
            replicas=1,
            selector=LabelSelector(match_labels=dict(common)),
            template=PodTemplateSpec(
                metadata=ObjectMeta(
                    labels=dict(common),
                    annotations=dict(otelcol.spec.pod_annotations),
                ),
                spec=PodSpec(
                    containers=[container(otelcol, default_image)],
                    volumes=volumes(otelcol, config_map_entry),
                ),
            ),
        ),
    )