"""Provider client blueprint."""

from abc import ABC, abstractmethod

from cpi.base.models import ImageInfo, Instance, LaunchRequest, SubnetRef, VolumeRef


class ProviderBlueprint(ABC):
    """Abstract interface for the cloud calls the CPI core depends on.

    Implementations own retries for transient failures; every method either
    returns a typed value or raises a :class:`cpi.base.exceptions.CPIError`.
    """

    @abstractmethod
    def create_instance(self, request: LaunchRequest) -> Instance:
        """Launch exactly one instance and return it as first reported.

        Raises:
            ProviderError: If the launch is rejected.
        """

    @abstractmethod
    def describe_image(self, image_id: str) -> ImageInfo:
        """Return the image's root device name.

        Raises:
            ImageNotFoundError: If the image does not exist.
        """

    @abstractmethod
    def lookup_subnet(self, subnet_id: str) -> SubnetRef:
        """Return the subnet and the zone it lives in.

        Raises:
            SubnetNotFoundError: If the subnet does not exist.
        """

    @abstractmethod
    def lookup_volume(self, volume_id: str) -> VolumeRef:
        """Return the persistent disk and the zone it lives in.

        Raises:
            VolumeNotFoundError: If the disk does not exist.
        """

    @abstractmethod
    def describe_instance(self, instance_id: str) -> Instance:
        """Re-read an instance, including the security groups actually attached.

        Raises:
            InstanceNotFoundError: If the instance does not exist.
        """

    @abstractmethod
    def wait_until(self, instance_id: str, state: str, timeout: float) -> None:
        """Block until the instance reaches *state*.

        Raises:
            ReadinessTimeoutError: If *timeout* seconds elapse first.
            InstanceLaunchError: If the instance reaches a terminal state.
        """

    @abstractmethod
    def associate_elastic_ip(self, instance_id: str, ip: str) -> None:
        """Associate an allocated elastic IP with a running instance.

        Raises:
            ElasticIPNotFoundError: If *ip* is not allocated to the account.
        """
