"""AWS EC2 implementation of the provider blueprint."""

from __future__ import annotations

import math
from typing import Any, NoReturn

import boto3
from botocore.exceptions import ClientError, ConnectionError as BotoConnectionError, WaiterError

from cpi.base.config import AWSConfig
from cpi.base.exceptions import (
    CPIError,
    ElasticIPNotFoundError,
    ImageNotFoundError,
    InstanceLaunchError,
    InstanceNotFoundError,
    ProviderError,
    ProviderTransientError,
    ReadinessTimeoutError,
    SecurityGroupNotFoundError,
    SubnetNotFoundError,
    VolumeNotFoundError,
)
from cpi.base.models import ImageInfo, Instance, LaunchRequest, SubnetRef, VolumeRef
from cpi.base.provider import ProviderBlueprint
from cpi.base.retry import retry

_ERROR_MAP: dict[str, type[CPIError]] = {
    "InvalidInstanceID.NotFound": InstanceNotFoundError,
    "InvalidInstanceID.Malformed": InstanceNotFoundError,
    "InvalidAMIID.NotFound": ImageNotFoundError,
    "InvalidAMIID.Malformed": ImageNotFoundError,
    "InvalidAMIID.Unavailable": ImageNotFoundError,
    "InvalidSubnetID.NotFound": SubnetNotFoundError,
    "InvalidSubnetID.Malformed": SubnetNotFoundError,
    "InvalidVolume.NotFound": VolumeNotFoundError,
    "InvalidVolumeID.Malformed": VolumeNotFoundError,
    "InvalidAddress.NotFound": ElasticIPNotFoundError,
    "InvalidGroup.NotFound": SecurityGroupNotFoundError,
    "RequestLimitExceeded": ProviderTransientError,
    "Throttling": ProviderTransientError,
    "InternalError": ProviderTransientError,
    "Unavailable": ProviderTransientError,
    "ServiceUnavailable": ProviderTransientError,
}

# Seconds between instance state polls.
WAIT_DELAY = 5


def _handle(e: ClientError, msg: str) -> NoReturn:
    exc = _ERROR_MAP.get(e.response["Error"]["Code"])
    raise (exc or ProviderError)(msg) from e


def _max_attempts(provider: Provider) -> int:
    return provider.max_attempts


class Provider(ProviderBlueprint):
    """AWS EC2 provider client.

    Attributes:
        client: boto3 EC2 client.
        max_attempts: Attempts per call on throttling / connection errors.
    """

    def __init__(self, config: AWSConfig) -> None:
        """Initialize the EC2 client.

        Args:
            config: AWS configuration object containing credentials and region.
        """
        self.client = boto3.client(
            "ec2",
            aws_access_key_id=config.aws_access_key_id,
            aws_secret_access_key=config.aws_secret_access_key,
            region_name=config.region_name,
        )
        self.max_attempts = config.max_attempts

    @retry(max_attempts=_max_attempts)
    def create_instance(self, request: LaunchRequest) -> Instance:
        """Launch one EC2 instance.

        The VM name doubles as the idempotency token, so a retried call
        cannot launch a second instance.  Groups starting with ``sg-`` are
        ids.  Without a subnet, anything else is sent as ``SecurityGroups``
        names; EC2 refuses names together with ``SubnetId``, so with a subnet
        they are first resolved to ids inside the subnet's VPC.

        Returns:
            The instance as reported by ``RunInstances``.

        Raises:
            SecurityGroupNotFoundError: If a group name does not exist in the
                subnet's VPC.
        """
        params: dict[str, Any] = {
            "ImageId": request.image_id,
            "InstanceType": request.instance_type,
            "MinCount": request.count,
            "MaxCount": request.count,
            "UserData": request.user_data,
            "ClientToken": request.name,
            "Placement": {"AvailabilityZone": request.availability_zone},
            "TagSpecifications": [
                {
                    "ResourceType": "instance",
                    "Tags": [{"Key": "Name", "Value": request.name}],
                }
            ],
        }
        if request.key_name:
            params["KeyName"] = request.key_name
        group_ids = [g for g in request.security_groups if g.startswith("sg-")]
        group_names = [g for g in request.security_groups if not g.startswith("sg-")]
        if request.private_ip:
            params["PrivateIpAddress"] = request.private_ip
        try:
            if request.subnet is not None:
                params["SubnetId"] = request.subnet.subnet_id
                if group_names:
                    group_ids += self._group_ids(group_names, request.subnet.vpc_id)
                    group_names = []
            if group_ids:
                params["SecurityGroupIds"] = group_ids
            if group_names:
                params["SecurityGroups"] = group_names
            resp = self.client.run_instances(**params)
        except BotoConnectionError as e:
            raise ProviderTransientError(f"Failed to create instance '{request.name}'") from e
        except ClientError as e:
            _handle(e, f"Failed to create instance '{request.name}'")
        return _to_instance(resp["Instances"][0])

    def _group_ids(self, names: list[str], vpc_id: str | None) -> list[str]:
        """Resolve security group names to ids, in the order given."""
        filters = [{"Name": "group-name", "Values": names}]
        if vpc_id:
            filters.append({"Name": "vpc-id", "Values": [vpc_id]})
        resp = self.client.describe_security_groups(Filters=filters)
        by_name = {g["GroupName"]: g["GroupId"] for g in resp.get("SecurityGroups", [])}
        missing = [n for n in names if n not in by_name]
        if missing:
            raise SecurityGroupNotFoundError(
                f"Security groups not found in VPC '{vpc_id}': {', '.join(missing)}"
            )
        return [by_name[n] for n in names]

    @retry(max_attempts=_max_attempts)
    def describe_image(self, image_id: str) -> ImageInfo:
        """Return the root device name of an AMI.

        Raises:
            ImageNotFoundError: If the image does not exist.
        """
        try:
            resp = self.client.describe_images(ImageIds=[image_id])
        except BotoConnectionError as e:
            raise ProviderTransientError(f"Failed to describe image '{image_id}'") from e
        except ClientError as e:
            _handle(e, f"Failed to describe image '{image_id}'")
        images = resp.get("Images", [])
        if not images:
            raise ImageNotFoundError(f"Image '{image_id}' not found")
        return ImageInfo(image_id=image_id, root_device_name=images[0]["RootDeviceName"])

    @retry(max_attempts=_max_attempts)
    def lookup_subnet(self, subnet_id: str) -> SubnetRef:
        """Return a subnet and its availability zone.

        Raises:
            SubnetNotFoundError: If the subnet does not exist.
        """
        try:
            resp = self.client.describe_subnets(SubnetIds=[subnet_id])
        except BotoConnectionError as e:
            raise ProviderTransientError(f"Failed to look up subnet '{subnet_id}'") from e
        except ClientError as e:
            _handle(e, f"Failed to look up subnet '{subnet_id}'")
        subnets = resp.get("Subnets", [])
        if not subnets:
            raise SubnetNotFoundError(f"Subnet '{subnet_id}' not found")
        return SubnetRef(
            subnet_id=subnet_id,
            availability_zone=subnets[0]["AvailabilityZone"],
            vpc_id=subnets[0].get("VpcId"),
        )

    @retry(max_attempts=_max_attempts)
    def lookup_volume(self, volume_id: str) -> VolumeRef:
        """Return an EBS volume and its availability zone.

        Raises:
            VolumeNotFoundError: If the volume does not exist.
        """
        try:
            resp = self.client.describe_volumes(VolumeIds=[volume_id])
        except BotoConnectionError as e:
            raise ProviderTransientError(f"Failed to look up volume '{volume_id}'") from e
        except ClientError as e:
            _handle(e, f"Failed to look up volume '{volume_id}'")
        volumes = resp.get("Volumes", [])
        if not volumes:
            raise VolumeNotFoundError(f"Volume '{volume_id}' not found")
        return VolumeRef(volume_id=volume_id, availability_zone=volumes[0]["AvailabilityZone"])

    @retry(max_attempts=_max_attempts)
    def describe_instance(self, instance_id: str) -> Instance:
        """Re-read an instance with its attached security groups.

        Raises:
            InstanceNotFoundError: If the instance does not exist.
        """
        try:
            resp = self.client.describe_instances(InstanceIds=[instance_id])
        except BotoConnectionError as e:
            raise ProviderTransientError(f"Failed to describe instance '{instance_id}'") from e
        except ClientError as e:
            _handle(e, f"Failed to describe instance '{instance_id}'")
        for reservation in resp.get("Reservations", []):
            for inst in reservation.get("Instances", []):
                return _to_instance(inst)
        raise InstanceNotFoundError(f"Instance '{instance_id}' not found")

    def wait_until(self, instance_id: str, state: str, timeout: float) -> None:
        """Poll with the boto3 ``instance_<state>`` waiter.

        Raises:
            ReadinessTimeoutError: If *timeout* elapses first.
            InstanceLaunchError: If the instance reaches a terminal state.
        """
        waiter = self.client.get_waiter(f"instance_{state}")
        try:
            waiter.wait(
                InstanceIds=[instance_id],
                WaiterConfig={
                    "Delay": WAIT_DELAY,
                    "MaxAttempts": max(1, math.ceil(timeout / WAIT_DELAY)),
                },
            )
        except WaiterError as e:
            if "Max attempts exceeded" in str(e):
                raise ReadinessTimeoutError(
                    f"Instance '{instance_id}' did not reach '{state}' within {timeout:.0f}s",
                    instance_id=instance_id,
                ) from e
            raise InstanceLaunchError(
                f"Instance '{instance_id}' failed to reach '{state}': {e.last_response}"
            ) from e

    @retry(max_attempts=_max_attempts)
    def associate_elastic_ip(self, instance_id: str, ip: str) -> None:
        """Associate an elastic IP, by allocation id for VPC addresses.

        Raises:
            ElasticIPNotFoundError: If *ip* is not allocated to the account.
        """
        try:
            resp = self.client.describe_addresses(PublicIps=[ip])
            addresses = resp.get("Addresses", [])
            if not addresses:
                raise ElasticIPNotFoundError(f"Elastic IP '{ip}' not found")
            allocation_id = addresses[0].get("AllocationId")
            if allocation_id:
                self.client.associate_address(InstanceId=instance_id, AllocationId=allocation_id)
            else:
                self.client.associate_address(InstanceId=instance_id, PublicIp=ip)
        except BotoConnectionError as e:
            raise ProviderTransientError(f"Failed to associate '{ip}' with '{instance_id}'") from e
        except ClientError as e:
            _handle(e, f"Failed to associate '{ip}' with '{instance_id}'")


def _to_instance(inst: dict[str, Any]) -> Instance:
    return Instance(
        id=inst["InstanceId"],
        status=inst.get("State", {}).get("Name", "pending"),
        security_groups=[g["GroupName"] for g in inst.get("SecurityGroups", [])],
        elastic_ip=inst.get("PublicIpAddress"),
    )
