import pytest

from otelkube.platform import Platform


@pytest.mark.parametrize(
    "platform, text",
    [
        (Platform.UNKNOWN, "Unknown"),
        (Platform.OPENSHIFT, "OpenShift"),
        (Platform.KUBERNETES, "Kubernetes"),
    ],
)
def test_str(platform, text):
    assert str(platform) == text


def test_unknown_is_zero():
    assert Platform(0) is Platform.UNKNOWN


@pytest.mark.parametrize(
    "value, text",
    [(1, "OpenShift"), (2, "Kubernetes")],
)
def test_values_follow_declaration(value, text):
    assert str(Platform(value)) == text


def test_invalid_value():
    with pytest.raises(ValueError):
        Platform(len(Platform))