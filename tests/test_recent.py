import pytest
import yaml

from otelkube.model import CollectorSpec, ObjectMeta, OpenTelemetryCollector
from otelkube.upgrade.legacy import UpgradeError
from otelkube.upgrade.recent import upgrade_0_31_0, upgrade_0_36_0, upgrade_0_38_0


def _collector(config="", args=None):
    return OpenTelemetryCollector(
        metadata=ObjectMeta(
            name="my-instance",
            namespace="default",
            labels={"app.kubernetes.io/managed-by": "opentelemetry-operator"},
        ),
        spec=CollectorSpec(config=config, args=dict(args or {})),
    )


def _pipeline(receiver, exporter, kind):
    return {"pipelines": {kind: {"receivers": [receiver], "exporters": [exporter]}}}


def test_influxdb_receiver_property_drop():
    source = {
        "receivers": {
            "influxdb": {
                "endpoint": "0.0.0.0:8080",
                "metrics_schema": "telegraf-prometheus-v1",
            }
        },
        "exporters": {"prometheusremotewrite": {"endpoint": "http:hello:4555/hii"}},
        "service": _pipeline("influxdb", "prometheusremotewrite", "metrics"),
    }

    res = upgrade_0_31_0(_collector(yaml.safe_dump(source)))

    assert yaml.safe_load(res.spec.config) == {
        "receivers": {"influxdb": {"endpoint": "0.0.0.0:8080"}},
        "exporters": {"prometheusremotewrite": {"endpoint": "http:hello:4555/hii"}},
        "service": _pipeline("influxdb", "prometheusremotewrite", "metrics"),
    }
    assert res.spec.config.startswith(
        "exporters:\n  prometheusremotewrite:\n    endpoint: http:hello:4555/hii\n"
    )
    assert "metrics_schema" not in res.spec.config
    assert res.status.messages[0] == (
        "upgrade to v0.31.0 dropped the 'metrics_schema' field from \"influxdb\" receiver"
    )


def test_0_31_0_without_receivers_leaves_config_untouched():
    config = "exporters:\n  foo: {}\n"
    res = upgrade_0_31_0(_collector(config))
    assert res.spec.config == config
    assert res.status.messages == []


def test_0_31_0_rejects_unparseable_config():
    with pytest.raises(UpgradeError, match="couldn't upgrade to v0.31.0, failed to parse"):
        upgrade_0_31_0(_collector("receivers: [unclosed"))


def _tls_files():
    return {
        "client_ca_file": "client.pem",
        "cert_file": "server.crt",
        "key_file": "server.key",
    }


def test_0_36_0_upgrade():
    endpoint = "mysite.local:55690"
    source = {
        "receivers": {
            "otlp/mtls": {
                "protocols": {
                    proto: {"endpoint": endpoint, "tls_settings": _tls_files()}
                    for proto in ("grpc", "http")
                }
            }
        },
        "exporters": {
            "otlp": {
                "endpoint": "example.com",
                "ca_file": "/var/lib/mycert.pem",
                "insecure": True,
                "key_file": "keyfile",
                "min_version": "1.0.0",
                "max_version": "2.0.2",
                "insecure_skip_verify": True,
                "server_name_override": "hii",
            }
        },
        "service": _pipeline("otlp/mtls", "otlp", "traces"),
    }

    res = upgrade_0_36_0(_collector(yaml.safe_dump(source)))

    assert yaml.safe_load(res.spec.config) == {
        "receivers": {
            "otlp/mtls": {
                "protocols": {
                    proto: {"endpoint": endpoint, "tls": _tls_files()}
                    for proto in ("grpc", "http")
                }
            }
        },
        "exporters": {
            "otlp": {
                "endpoint": "example.com",
                "tls": {
                    "ca_file": "/var/lib/mycert.pem",
                    "insecure": True,
                    "insecure_skip_verify": True,
                    "key_file": "keyfile",
                    "max_version": "2.0.2",
                    "min_version": "1.0.0",
                    "server_name_override": "hii",
                },
            }
        },
        "service": _pipeline("otlp/mtls", "otlp", "traces"),
    }
    for proto in ("grpc", "http"):
        assert (
            "upgrade to v0.36.0 has changed the tls_settings field name to tls "
            f"in {proto} protocol of otlp/mtls receiver"
        ) in res.status.messages
    assert (
        "upgrade to v0.36.0 move tls config i.e. ca_file, key_file, cert_file, "
        "min_version, max_version to tls.* in otlp exporter"
    ) in res.status.messages


ARGS = {
    "--hii": "hello",
    "--log-profile": "",
    "--log-format": "hii",
    "--log-level": "debug",
    "--arg1": "",
}

BASE = {
    "receivers": {"otlp/mtls": {"protocols": {"http": {"endpoint": "mysite.local:55690"}}}},
    "exporters": {"otlp": {"endpoint": "example.com"}},
    "service": _pipeline("otlp/mtls", "otlp", "traces"),
}


def _with_logging():
    service = dict(_pipeline("otlp/mtls", "otlp", "traces"))
    service["telemetry"] = {
        "logs": {"development": True, "encoding": "hii", "level": "debug"}
    }
    return {**BASE, "service": service}


LOGGING_MESSAGE = (
    "upgrade to v0.38.0 dropped the deprecated logging arguments "
    "i.e. [--log-format --log-level --log-profile] from otelcol custom resource "
    "otelcol.spec.args and adding them to otelcol.spec.config.service.telemetry.logs, "
    "if no logging parameters are configured already."
)


def test_0_38_0_moves_logging_args_into_config():
    res = upgrade_0_38_0(_collector(yaml.safe_dump(BASE), ARGS))

    assert res.spec.args == {"--hii": "hello", "--arg1": ""}
    assert yaml.safe_load(res.spec.config) == _with_logging()
    assert res.status.messages[0] == LOGGING_MESSAGE


def test_0_38_0_keeps_existing_logging_config():
    source = _with_logging()
    source["service"]["telemetry"]["logs"] = {"level": "info"}

    res = upgrade_0_38_0(_collector(yaml.safe_dump(source), ARGS))

    assert yaml.safe_load(res.spec.config) == source
    assert res.spec.args == {"--hii": "hello", "--arg1": ""}
    assert res.status.messages[0] == LOGGING_MESSAGE


def test_0_38_0_creates_service_section_for_empty_config():
    res = upgrade_0_38_0(_collector("", {"--log-level": "debug"}))

    assert res.spec.config == "service:\n  telemetry:\n    logs:\n      level: debug\n"
    assert res.spec.args == {}


def test_0_38_0_without_logging_args_changes_nothing():
    config = yaml.safe_dump(BASE)
    res = upgrade_0_38_0(_collector(config, {"--hii": "hello"}))

    assert res.spec.config == config
    assert res.spec.args == {"--hii": "hello"}
    assert res.status.messages == []