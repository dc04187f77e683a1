from unittest.mock import MagicMock
import pytest

from cpi.base.config import CPIConfig
from cpi.base.models import ImageInfo, Instance, SubnetRef, VolumeRef
from cpi.base.provider import ProviderBlueprint
from cpi.base.registry import RegistryBlueprint
from cpi.cloud import Cloud


@pytest.fixture
def config():
    return CPIConfig(
        aws={"aws_access_key_id": "k", "aws_secret_access_key": "s", "region_name": "us-east-1"},
        registry={"endpoint": "http://registry:3333"},
        default_security_groups=["default"],
        agent={"foo": "bar", "baz": "zaz"},
    )


@pytest.fixture
def provider():
    mock = MagicMock(spec=ProviderBlueprint)
    mock.describe_image.return_value = ImageInfo(image_id="sc-id", root_device_name="/dev/sda1")
    mock.create_instance.return_value = Instance(id="i-test")
    mock.describe_instance.return_value = Instance(
        id="i-test", status="running", security_groups=["default"]
    )
    mock.lookup_subnet.return_value = SubnetRef(
        subnet_id="subnet-11a35d7c", availability_zone="az-1b"
    )
    mock.lookup_volume.side_effect = lambda vid: VolumeRef(
        volume_id=vid, availability_zone="foobar-1a"
    )
    return mock


@pytest.fixture
def registry():
    return MagicMock(spec=RegistryBlueprint)


@pytest.fixture
def cloud(config, provider, registry):
    return Cloud(config, provider, registry)


@pytest.fixture
def resource_pool():
    return {"instance_type": "m3.zb", "key_name": "test_key", "availability_zone": "foobar-1a"}


@pytest.fixture
def dynamic_network():
    return {"type": "dynamic", "cloud_properties": {}}


@pytest.fixture
def combined_networks(dynamic_network):
    return {
        "network_a": dynamic_network,
        "network_b": {"type": "vip", "ip": "10.0.0.1", "cloud_properties": {}},
    }
