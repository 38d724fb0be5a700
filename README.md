# otelkube

Python building blocks for running OpenTelemetry on Kubernetes. The package
works on plain data classes that describe pods, namespaces, volumes and
OpenTelemetry custom resources. It has four jobs:

- build the volumes and volume claim templates for a collector instance
  (`otelkube.collector`);
- build the deployment, container, volumes and labels for a target allocator
  (`otelkube.targetallocator`), and pull the Prometheus receiver configuration
  out of a collector configuration (`otelkube.adapters`);
- decide whether a pod should get a collector sidecar or language
  auto-instrumentation, and inject it (`otelkube.sidecar`,
  `otelkube.instrumentation`, `otelkube.instmutator`);
- upgrade collector resources step by step to the latest known collector
  version (`otelkube.upgrade`).

## Installation

```
pip install otelkube
```

The runtime dependencies are PyYAML and semver.

## Objects

`otelkube.model` holds the data classes the other modules work on, among them
`Pod`, `Namespace`, `Container`, `EnvVar`, `Volume`, `OpenTelemetryCollector`,
`Instrumentation` and `Deployment`. Resource names come from
`otelkube.naming`; for example `naming.collector(otelcol)` returns
`"<name>-collector"`. `otelkube.platform.Platform` names the platforms the
package knows of (`UNKNOWN`, `OPENSHIFT`, `KUBERNETES`).

## Collector and target allocator resources

```python
from otelkube import collector, targetallocator
from otelkube.model import ObjectMeta, OpenTelemetryCollector

otelcol = OpenTelemetryCollector(metadata=ObjectMeta(name="my-instance", namespace="my-ns"))

vols = collector.volumes(otelcol, "collector.yaml")
claims = collector.volume_claim_templates(otelcol)   # empty unless the mode is statefulset
deployment = targetallocator.deployment(otelcol, "targetallocator:latest", "targetallocator.yaml")
```

`adapters.config_to_prom_config(text)` returns the `config` section of the
`prometheus` receiver, and raises `adapters.ConfigError` when a part is
missing or is not a mapping.

## Injecting auto-instrumentation

```python
from otelkube import instrumentation
from otelkube.model import Container, Instrumentation, InstrumentationSpec, JavaSpec, Namespace, Pod, PodSpec

inst = Instrumentation(spec=InstrumentationSpec(java=JavaSpec(image="img:1"), endpoint="https://collector:4317"))
pod = Pod(spec=PodSpec(containers=[Container(name="app")]))

result = instrumentation.inject(instrumentation.LanguageInstrumentations(java=inst), Namespace(), pod)
```

The first container of the returned pod gets the OpenTelemetry SDK
environment variables, the `JAVA_TOOL_OPTIONS` agent argument and a shared
volume mount; an init container is added to copy in the agent. NodeJS works
the same way through `NODE_OPTIONS`. The pod passed in is left unchanged.

For a whole pod decision, use `instmutator.InstrumentationMutator` or
`sidecar.SidecarMutator`. They read the
`instrumentation.opentelemetry.io/inject-java`,
`instrumentation.opentelemetry.io/inject-nodejs` and
`sidecar.opentelemetry.io/inject` annotations on the pod and its namespace,
and look up custom resources through an `InstrumentationClient` or a
`CollectorClient`. `SidecarMutator` also takes a function that builds the
sidecar container for a collector.

## Upgrading collectors

```python
from otelkube.upgrade import manager

upgraded = manager.managed_instance(otelcol, "0.38.0")
```

Each versioned step rewrites the collector's arguments and YAML configuration
where an older setting is deprecated, and records what it changed in
`status.messages`. An unparseable version or a failing step raises
`upgrade.legacy.UpgradeError`. `manager.managed_instances(client, version)`
does the same for every collector labelled as managed by the operator, and
stores the changes through an `UpgradeClient`.

## What the package does not do

- It does not talk to a Kubernetes API server. `InstrumentationClient`,
  `CollectorClient` and `UpgradeClient` are in-memory stores; subclass them to
  read from and write to a real cluster.
- It runs no admission webhook, controller or reconcile loop, and has no
  command-line program. The mutators are plain functions of a namespace and a
  pod.
- It does not build the collector container itself; the caller supplies it to
  `SidecarMutator`.

## Running the tests

```
pip install -e ".[test]"
pytest
```