"""Data model for the Kubernetes and OpenTelemetry resources the package works on."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


@dataclass
class ObjectMeta:
    """Name, namespace, labels and annotations of a resource."""

    name: str = ""
    namespace: str = ""
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)


class _HasMetadata:
    """Exposes the fields of ``metadata`` directly on the resource."""

    metadata: ObjectMeta

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def labels(self) -> Dict[str, str]:
        return self.metadata.labels

    @property
    def annotations(self) -> Dict[str, str]:
        return self.metadata.annotations


@dataclass
class EnvVarSource:
    """Where an environment variable takes its value from, instead of a literal."""

    field_path: str = ""


@dataclass
class EnvVar:
    name: str
    value: str = ""
    value_from: Optional[EnvVarSource] = None


@dataclass
class VolumeMount:
    name: str
    mount_path: str


@dataclass
class KeyToPath:
    key: str
    path: str


@dataclass
class ConfigMapVolumeSource:
    name: str
    items: List[KeyToPath] = field(default_factory=list)


@dataclass
class EmptyDirVolumeSource:
    """A scratch volume that lives as long as the pod."""


@dataclass
class Volume:
    name: str = ""
    config_map: Optional[ConfigMapVolumeSource] = None
    empty_dir: Optional[EmptyDirVolumeSource] = None


@dataclass
class Container:
    name: str = ""
    image: str = ""
    command: List[str] = field(default_factory=list)
    env: List[EnvVar] = field(default_factory=list)
    volume_mounts: List[VolumeMount] = field(default_factory=list)


@dataclass
class PodSpec:
    containers: List[Container] = field(default_factory=list)
    init_containers: List[Container] = field(default_factory=list)
    volumes: List[Volume] = field(default_factory=list)


@dataclass
class Pod(_HasMetadata):
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: PodSpec = field(default_factory=PodSpec)


@dataclass
class Namespace(_HasMetadata):
    metadata: ObjectMeta = field(default_factory=ObjectMeta)


@dataclass
class PersistentVolumeClaimSpec:
    access_modes: List[str] = field(default_factory=list)
    requests: Dict[str, str] = field(default_factory=dict)


@dataclass
class PersistentVolumeClaim(_HasMetadata):
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: PersistentVolumeClaimSpec = field(default_factory=PersistentVolumeClaimSpec)


class CollectorMode(str, Enum):
    """How a collector is deployed."""

    DAEMONSET = "daemonset"
    DEPLOYMENT = "deployment"
    SIDECAR = "sidecar"
    STATEFULSET = "statefulset"


@dataclass
class TargetAllocatorSpec:
    enabled: bool = False
    image: str = ""


@dataclass
class CollectorSpec:
    mode: CollectorMode = CollectorMode.DEPLOYMENT
    config: str = ""
    args: Dict[str, str] = field(default_factory=dict)
    image: str = ""
    volumes: List[Volume] = field(default_factory=list)
    volume_claim_templates: List[PersistentVolumeClaim] = field(default_factory=list)
    pod_annotations: Dict[str, str] = field(default_factory=dict)
    target_allocator: TargetAllocatorSpec = field(default_factory=TargetAllocatorSpec)


@dataclass
class CollectorStatus:
    version: str = ""
    messages: List[str] = field(default_factory=list)


@dataclass
class OpenTelemetryCollector(_HasMetadata):
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: CollectorSpec = field(default_factory=CollectorSpec)
    status: CollectorStatus = field(default_factory=CollectorStatus)


@dataclass
class JavaSpec:
    image: str = ""


@dataclass
class NodeJSSpec:
    image: str = ""


@dataclass
class Sampler:
    type: str = ""
    argument: str = ""


@dataclass
class InstrumentationSpec:
    endpoint: str = ""
    propagators: List[str] = field(default_factory=list)
    resource_attributes: Dict[str, str] = field(default_factory=dict)
    sampler: Sampler = field(default_factory=Sampler)
    java: JavaSpec = field(default_factory=JavaSpec)
    nodejs: NodeJSSpec = field(default_factory=NodeJSSpec)


@dataclass
class Instrumentation(_HasMetadata):
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: InstrumentationSpec = field(default_factory=InstrumentationSpec)


@dataclass
class LabelSelector:
    match_labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class PodTemplateSpec(_HasMetadata):
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: PodSpec = field(default_factory=PodSpec)


@dataclass
class DeploymentSpec:
    replicas: Optional[int] = None
    selector: LabelSelector = field(default_factory=LabelSelector)
    template: PodTemplateSpec = field(default_factory=PodTemplateSpec)


@dataclass
class Deployment(_HasMetadata):
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: DeploymentSpec = field(default_factory=DeploymentSpec)