class ProvisioningError(Exception):
    """A provisioning step failed. The message is meant for humans."""


class InvalidSpecError(ProvisioningError):
    """The merged cluster options did not validate."""


class OperationFailedError(ProvisioningError):
    """A cluster operation finished in an error state."""
