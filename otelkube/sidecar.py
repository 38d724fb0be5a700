"""Adding, removing and selecting the collector sidecar of a pod."""

from __future__ import annotations

import copy
import logging
from typing import Callable, Iterable, List

from . import collector, naming
from .instrumentation import annotation_value as _effective_value
from .model import CollectorMode, Container, Namespace, OpenTelemetryCollector, Pod

logger = logging.getLogger(__name__)

ANNOTATION = "sidecar.opentelemetry.io/inject"
LABEL = "sidecar.opentelemetry.io/injected"


class SidecarSelectionError(Exception):
    """No collector instance suitable for a sidecar could be selected."""


_MULTIPLE = (
    "multiple OpenTelemetry Collector instances available, cannot determine which one to select"
)
_NONE = "no OpenTelemetry Collector instances available"
_NOT_SIDECAR = "the OpenTelemetry Collector's mode is not set to sidecar"


def annotation_value(ns: Namespace, pod: Pod) -> str:
    """The effective sidecar annotation value, from the pod's and namespace's annotations."""
    return _effective_value(ns.metadata, pod.metadata, ANNOTATION)


def add(
    otelcol: OpenTelemetryCollector, pod: Pod, container: Container, config_map_entry: str
) -> Pod:
    """Return the pod with the sidecar container and the collector's volumes added."""
    pod = copy.deepcopy(pod)
    pod.spec.containers.append(copy.deepcopy(container))
    pod.spec.volumes.extend(collector.volumes(otelcol, config_map_entry))
    pod.metadata.labels[LABEL] = f"{otelcol.namespace}.{otelcol.name}"
    return pod


def remove(pod: Pod) -> Pod:
    """Return the pod without any sidecar container."""
    if not exists_in(pod):
        return pod
    pod = copy.deepcopy(pod)
    pod.spec.containers = [c for c in pod.spec.containers if c.name != naming.container()]
    return pod


def exists_in(pod: Pod) -> bool:
    """Whether the pod already has a sidecar container."""
    return any(c.name == naming.container() for c in pod.spec.containers)


class CollectorClient:
    """An in-memory store of collector resources; subclass to use another store."""

    def __init__(self, collectors: Iterable[OpenTelemetryCollector] = ()) -> None:
        self._items: List[OpenTelemetryCollector] = list(collectors)

    def get_collector(self, namespace: str, name: str) -> OpenTelemetryCollector:
        """Return the named collector, or raise ``LookupError`` if there is none."""
        for otelcol in self._items:
            if otelcol.namespace == namespace and otelcol.name == name:
                return copy.deepcopy(otelcol)
        raise LookupError(f'opentelemetrycollectors.opentelemetry.io "{name}" not found')

    def list_collectors(self, namespace: str) -> List[OpenTelemetryCollector]:
        """Return every collector in the namespace."""
        return [copy.deepcopy(c) for c in self._items if c.namespace == namespace]


def _is(value: str, word: str) -> bool:
    return value.casefold() == word.casefold()


class SidecarMutator:
    """Adds or removes the collector sidecar according to the pod's annotations."""

    def __init__(
        self,
        client: CollectorClient,
        container_builder: Callable[[OpenTelemetryCollector], Container],
        config_map_entry: str,
    ) -> None:
        self.client = client
        self.container_builder = container_builder
        self.config_map_entry = config_map_entry

    def mutate(self, ns: Namespace, pod: Pod) -> Pod:
        """Return the pod with the sidecar added or removed as its annotations ask."""
        value = annotation_value(ns, pod)
        if not value:
            logger.debug("annotation not present in pod, skipping sidecar injection")
            return pod

        if _is(value, "false"):
            logger.debug("pod explicitly refuses sidecar injection, removing it if present")
            return remove(pod)

        if exists_in(pod):
            logger.debug("pod already has sidecar in it, skipping injection")
            return pod

        try:
            otelcol = self._collector_instance(ns, value)
        except SidecarSelectionError as exc:
            # The pod is still allowed through; the problem only goes to the logs.
            logger.error(
                "failed to select an OpenTelemetry Collector instance for this pod's sidecar: %s",
                exc,
            )
            return pod

        logger.debug(
            "injecting sidecar into pod (otelcol %s/%s)", otelcol.namespace, otelcol.name
        )
        return add(otelcol, pod, self.container_builder(otelcol), self.config_map_entry)

    def _collector_instance(self, ns: Namespace, value: str) -> OpenTelemetryCollector:
        if _is(value, "true"):
            return self._select_collector(ns)
        otelcol = self.client.get_collector(ns.name, value)
        if otelcol.spec.mode != CollectorMode.SIDECAR:
            raise SidecarSelectionError(_NOT_SIDECAR)
        return otelcol

    def _select_collector(self, ns: Namespace) -> OpenTelemetryCollector:
        sidecars = [
            c for c in self.client.list_collectors(ns.name) if c.spec.mode == CollectorMode.SIDECAR
        ]
        if not sidecars:
            raise SidecarSelectionError(_NONE)
        if len(sidecars) > 1:
            raise SidecarSelectionError(_MULTIPLE)
        return sidecars[0]