"""Kubernetes object builders, pod mutators and upgrade steps for OpenTelemetry collectors and instrumentation."""

__version__ = "0.1.0"