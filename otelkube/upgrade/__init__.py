"""Step-wise upgrades of OpenTelemetry Collector resources between versions."""

__all__ = ["legacy", "recent", "manager"]