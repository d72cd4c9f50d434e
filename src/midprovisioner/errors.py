"""Domain errors for midprovisioner."""


class ProvisionerError(RuntimeError):
    """Raised when provisioning cannot continue safely."""
