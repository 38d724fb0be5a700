import pytest

from otelkube import naming
from otelkube.model import ObjectMeta, OpenTelemetryCollector


@pytest.fixture
def otelcol():
    return OpenTelemetryCollector(metadata=ObjectMeta(name="my-instance", namespace="ns"))


def test_fixed_names():
    assert naming.config_map_volume() == "otc-internal"
    assert naming.ta_config_map_volume() == "ta-internal"
    assert naming.container() == "otc-container"
    assert naming.ta_container() == "ta-container"


def test_target_allocator_name(otelcol):
    assert naming.target_allocator(otelcol) == "my-instance-targetallocator"


@pytest.mark.parametrize(
    "func",
    [naming.config_map, naming.collector, naming.service, naming.service_account],
)
def test_collector_suffix(otelcol, func):
    assert func(otelcol) == otelcol.name + "-collector"


@pytest.mark.parametrize("func", [naming.ta_config_map, naming.ta_service, naming.target_allocator])
def test_target_allocator_suffix(otelcol, func):
    assert func(otelcol) == otelcol.name + "-targetallocator"


def test_services_derive_from_service_name(otelcol):
    assert naming.headless_service(otelcol) == naming.service(otelcol) + "-headless"
    assert naming.monitoring_service(otelcol) == naming.service(otelcol) + "-monitoring"


def test_names_follow_instance_name():
    a = OpenTelemetryCollector(metadata=ObjectMeta(name="a"))
    b = OpenTelemetryCollector(metadata=ObjectMeta(name="b"))
    assert naming.collector(a) != naming.collector(b)
    assert naming.collector(a).startswith("a")