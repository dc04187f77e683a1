"""
CPI exception hierarchy.

Every failure raised by the VM-provisioning core inherits from
:class:`CPIError`.  Lookups that miss raise a :class:`NotFoundError`
subclass, provider API failures raise :class:`ProviderError`, and
zone conflicts raise :class:`ConfigurationInconsistencyError`.
"""


# ── Base ──────────────────────────────────────────────────────────────
class CPIError(Exception):
    """Root exception for all CPI errors."""


# ── Consistency ───────────────────────────────────────────────────────
class ConfigurationInconsistencyError(CPIError):
    """Disks, preferred zone or subnet disagree on the availability zone."""


# ── Lookups ───────────────────────────────────────────────────────────
class NotFoundError(CPIError):
    """Base exception for unknown provider resource ids."""


class VolumeNotFoundError(NotFoundError):
    """Persistent disk not found."""


class SubnetNotFoundError(NotFoundError):
    """Subnet not found."""


class ImageNotFoundError(NotFoundError):
    """Machine image not found."""


class InstanceNotFoundError(NotFoundError):
    """VM instance not found."""


class ElasticIPNotFoundError(NotFoundError):
    """Elastic IP is not allocated to this account."""


class SecurityGroupNotFoundError(NotFoundError):
    """Security group name does not exist in the subnet's VPC."""


# ── Provider ──────────────────────────────────────────────────────────
class ProviderError(CPIError):
    """Base exception for provider API failures."""


class ProviderTransientError(ProviderError):
    """Throttling or connectivity failure that may succeed on retry."""


class InstanceLaunchError(ProviderError):
    """Instance entered a terminal state instead of running."""


# ── Readiness ─────────────────────────────────────────────────────────
class ReadinessTimeoutError(CPIError):
    """Instance did not become ready in time.

    The instance may still exist in the provider and must be reconciled
    by the operator.
    """

    def __init__(self, message: str, instance_id: str | None = None) -> None:
        super().__init__(message)
        self.instance_id = instance_id


# ── Registry ──────────────────────────────────────────────────────────
class RegistryError(CPIError):
    """Agent settings could not be written to or read from the registry."""
