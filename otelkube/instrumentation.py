"""Injection of OpenTelemetry auto-instrumentation into pods."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .model import (
    Container,
    EmptyDirVolumeSource,
    EnvVar,
    Instrumentation,
    JavaSpec,
    Namespace,
    NodeJSSpec,
    ObjectMeta,
    Pod,
    Volume,
    VolumeMount,
)

logger = logging.getLogger(__name__)

ANNOTATION_INJECT_JAVA = "instrumentation.opentelemetry.io/inject-java"
ANNOTATION_INJECT_NODEJS = "instrumentation.opentelemetry.io/inject-nodejs"

VOLUME_NAME = "opentelemetry-auto-instrumentation"
INIT_CONTAINER_NAME = "opentelemetry-auto-instrumentation"
MOUNT_PATH = "/otel-auto-instrumentation"

ENV_JAVA_TOOL_OPTIONS = "JAVA_TOOL_OPTIONS"
JAVA_JVM_ARGUMENT = " -javaagent:/otel-auto-instrumentation/javaagent.jar"

ENV_NODE_OPTIONS = "NODE_OPTIONS"
NODE_REQUIRE_ARGUMENT = " --require /otel-auto-instrumentation/autoinstrumentation.js"

ENV_OTEL_SERVICE_NAME = "OTEL_SERVICE_NAME"
ENV_OTEL_EXPORTER_OTLP_ENDPOINT = "OTEL_EXPORTER_OTLP_ENDPOINT"
ENV_OTEL_RESOURCE_ATTRS = "OTEL_RESOURCE_ATTRIBUTES"
ENV_OTEL_PROPAGATORS = "OTEL_PROPAGATORS"
ENV_OTEL_TRACES_SAMPLER = "OTEL_TRACES_SAMPLER"
ENV_OTEL_TRACES_SAMPLER_ARG = "OTEL_TRACES_SAMPLER_ARG"


@dataclass
class LanguageInstrumentations:
    """The instrumentation selected for each supported language, if any."""

    java: Optional[Instrumentation] = None
    nodejs: Optional[Instrumentation] = None


def _is(value: str, word: str) -> bool:
    return value.casefold() == word.casefold()


def annotation_value(ns_meta: ObjectMeta, pod_meta: ObjectMeta, annotation: str) -> str:
    """The effective value of ``annotation``, from the pod's and namespace's annotations."""
    pod_value = pod_meta.annotations.get(annotation, "")
    ns_value = ns_meta.annotations.get(annotation, "")

    if not ns_value:
        return pod_value
    if not pod_value:
        return ns_value
    # An instance name or "false" on the pod is the decision.
    if not _is(pod_value, "true"):
        return pod_value
    if _is(ns_value, "false"):
        return pod_value
    return ns_value


def _find_env(envs: List[EnvVar], name: str) -> Optional[EnvVar]:
    return next((env for env in envs if env.name == name), None)


def _inject_agent(
    pod: Pod, env_name: str, argument: str, image: str, command: List[str], what: str
) -> Pod:
    pod = copy.deepcopy(pod)
    container = pod.spec.containers[0]
    existing = _find_env(container.env, env_name)
    if existing is None:
        container.env.append(EnvVar(name=env_name, value=argument))
    else:
        if existing.value_from is not None:
            logger.info(
                "Skipping %s injection, the container defines %s env var value via "
                "ValueFrom (container %s)",
                what,
                env_name,
                container.name,
            )
            return pod
        existing.value += argument

    container.volume_mounts.append(VolumeMount(name=VOLUME_NAME, mount_path=MOUNT_PATH))
    pod.spec.volumes.append(Volume(name=VOLUME_NAME, empty_dir=EmptyDirVolumeSource()))
    pod.spec.init_containers.append(
        Container(
            name=INIT_CONTAINER_NAME,
            image=image,
            command=command,
            volume_mounts=[VolumeMount(name=VOLUME_NAME, mount_path=MOUNT_PATH)],
        )
    )
    return pod


def inject_javaagent(java_spec: JavaSpec, pod: Pod) -> Pod:
    """Add the Java agent to the pod's first container; the pod must have one."""
    return _inject_agent(
        pod,
        ENV_JAVA_TOOL_OPTIONS,
        JAVA_JVM_ARGUMENT,
        java_spec.image,
        ["cp", "/javaagent.jar", "/otel-auto-instrumentation/javaagent.jar"],
        "javaagent",
    )


def inject_nodejs_sdk(nodejs_spec: NodeJSSpec, pod: Pod) -> Pod:
    """Add the NodeJS SDK to the pod's first container; the pod must have one."""
    return _inject_agent(
        pod,
        ENV_NODE_OPTIONS,
        NODE_REQUIRE_ARGUMENT,
        nodejs_spec.image,
        ["cp", "-a", "/autoinstrumentation/.", "/otel-auto-instrumentation/"],
        "NodeJS SDK",
    )


def inject(insts: LanguageInstrumentations, ns: Namespace, pod: Pod) -> Pod:
    """Inject the selected instrumentations into the pod's first container."""
    if not pod.spec.containers:
        return pod

    if insts.java is not None:
        inst = insts.java
        logger.debug(
            "injecting instrumentation into pod (otelinst %s/%s)", inst.namespace, inst.name
        )
        pod = inject_common_sdk_config(inst, ns, pod)
        pod = inject_javaagent(inst.spec.java, pod)
    if insts.nodejs is not None:
        inst = insts.nodejs
        logger.debug(
            "injecting instrumentation into pod (otelinst %s/%s)", inst.namespace, inst.name
        )
        pod = inject_common_sdk_config(inst, ns, pod)
        pod = inject_nodejs_sdk(inst.spec.nodejs, pod)
    return pod


def inject_common_sdk_config(inst: Instrumentation, ns: Namespace, pod: Pod) -> Pod:
    """Set the SDK environment variables the container does not already define."""
    pod = copy.deepcopy(pod)
    container = pod.spec.containers[0]
    env = container.env

    if _find_env(env, ENV_OTEL_SERVICE_NAME) is None:
        env.append(EnvVar(name=ENV_OTEL_SERVICE_NAME, value=container.name))

    if _find_env(env, ENV_OTEL_EXPORTER_OTLP_ENDPOINT) is None:
        env.append(EnvVar(name=ENV_OTEL_EXPORTER_OTLP_ENDPOINT, value=inst.spec.endpoint))

    resources = resource_map_to_str(create_resource_map(inst, ns, pod))
    existing = _find_env(env, ENV_OTEL_RESOURCE_ATTRS)
    if existing is None:
        env.append(EnvVar(name=ENV_OTEL_RESOURCE_ATTRS, value=resources))
    else:
        if not existing.value.endswith(","):
            resources = "," + resources
        existing.value += resources

    if _find_env(env, ENV_OTEL_PROPAGATORS) is None and inst.spec.propagators:
        env.append(EnvVar(name=ENV_OTEL_PROPAGATORS, value=",".join(inst.spec.propagators)))

    sampler = inst.spec.sampler
    if (
        _find_env(env, ENV_OTEL_TRACES_SAMPLER) is None
        and sampler.type
        and _find_env(env, ENV_OTEL_TRACES_SAMPLER_ARG) is None
    ):
        env.append(EnvVar(name=ENV_OTEL_TRACES_SAMPLER, value=str(sampler.type)))
        if sampler.argument:
            env.append(EnvVar(name=ENV_OTEL_TRACES_SAMPLER_ARG, value=sampler.argument))

    return pod


def create_resource_map(inst: Instrumentation, ns: Namespace, pod: Pod) -> Dict[str, str]:
    """Resource attributes to add; those the container already sets take precedence."""
    container = pod.spec.containers[0]
    existing_keys = set()
    existing = _find_env(container.env, ENV_OTEL_RESOURCE_ATTRS)
    if existing is not None:
        for pair in existing.value.split(","):
            parts = pair.strip().split("=")
            if len(parts) == 2:
                existing_keys.add(parts[0])

    res = {k: v for k, v in inst.spec.resource_attributes.items() if k not in existing_keys}
    if "k8s.namespace.name" not in existing_keys:
        res["k8s.namespace.name"] = ns.name
    # A pod created from a deployment template has no name yet.
    if pod.name and "k8s.pod.name" not in existing_keys:
        res["k8s.pod.name"] = pod.name
    if "k8s.container.name" not in existing_keys:
        res["k8s.container.name"] = container.name
    return res


def resource_map_to_str(res: Dict[str, str]) -> str:
    """Render resource attributes as ``k=v`` pairs joined by commas, sorted by key."""
    return ",".join(f"{key}={res[key]}" for key in sorted(res))