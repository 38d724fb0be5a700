"""Pod mutation that selects an Instrumentation and injects it into the pod."""

from __future__ import annotations

import copy
import logging
from typing import Iterable, List, Optional

from .instrumentation import (
    ANNOTATION_INJECT_JAVA,
    ANNOTATION_INJECT_NODEJS,
    LanguageInstrumentations,
    annotation_value,
    inject,
)
from .model import Instrumentation, Namespace, Pod

logger = logging.getLogger(__name__)


class InstrumentationSelectionError(Exception):
    """No single Instrumentation instance could be selected for a pod."""


class NoInstancesAvailableError(InstrumentationSelectionError):
    """The namespace holds no Instrumentation instance."""

    def __init__(self) -> None:
        super().__init__("no OpenTelemetry Instrumentation instances available")


class MultipleInstancesPossibleError(InstrumentationSelectionError):
    """The namespace holds more than one Instrumentation instance."""

    def __init__(self) -> None:
        super().__init__(
            "multiple OpenTelemetry Instrumentation instances available, "
            "cannot determine which one to select"
        )


class InstrumentationClient:
    """An in-memory store of Instrumentation resources; subclass to use another store."""

    def __init__(self, instrumentations: Iterable[Instrumentation] = ()) -> None:
        self._items: List[Instrumentation] = list(instrumentations)

    def get_instrumentation(self, namespace: str, name: str) -> Instrumentation:
        """Return the named instance, or raise ``LookupError`` if there is none."""
        for inst in self._items:
            if inst.namespace == namespace and inst.name == name:
                return copy.deepcopy(inst)
        raise LookupError(f'instrumentations.opentelemetry.io "{name}" not found')

    def list_instrumentations(self, namespace: str) -> List[Instrumentation]:
        """Return every instance in the namespace."""
        return [copy.deepcopy(inst) for inst in self._items if inst.namespace == namespace]


def _is(value: str, word: str) -> bool:
    return value.casefold() == word.casefold()


class InstrumentationMutator:
    """Injects auto-instrumentation into pods that ask for it through annotations."""

    def __init__(self, client: InstrumentationClient, default_java_image: str) -> None:
        self.client = client
        self.default_java_image = default_java_image

    def mutate(self, ns: Namespace, pod: Pod) -> Pod:
        """Return the pod with the requested instrumentation injected.

        Raises when an annotation names an instance that cannot be selected.
        """
        try:
            java = self._apply_defaults(self._instance(ns, pod, ANNOTATION_INJECT_JAVA))
            nodejs = self._instance(ns, pod, ANNOTATION_INJECT_NODEJS)
        except Exception:
            logger.exception(
                "failed to select an OpenTelemetry Instrumentation instance for pod %s/%s",
                pod.namespace,
                pod.name,
            )
            raise

        if java is None and nodejs is None:
            logger.debug(
                "annotation not present in pod %s/%s, skipping instrumentation injection",
                pod.namespace,
                pod.name,
            )
            return pod

        return inject(LanguageInstrumentations(java=java, nodejs=nodejs), ns, pod)

    def _instance(self, ns: Namespace, pod: Pod, annotation: str) -> Optional[Instrumentation]:
        value = annotation_value(ns.metadata, pod.metadata, annotation)
        if not value or _is(value, "false"):
            return None
        if _is(value, "true"):
            return self._select_from_namespace(ns)
        return self.client.get_instrumentation(ns.name, value)

    def _select_from_namespace(self, ns: Namespace) -> Instrumentation:
        insts = self.client.list_instrumentations(ns.name)
        if not insts:
            raise NoInstancesAvailableError()
        if len(insts) > 1:
            raise MultipleInstancesPossibleError()
        return insts[0]

    def _apply_defaults(self, inst: Optional[Instrumentation]) -> Optional[Instrumentation]:
        if inst is None:
            return None
        inst = copy.deepcopy(inst)
        if not inst.spec.java.image:
            inst.spec.java.image = self.default_java_image
        return inst