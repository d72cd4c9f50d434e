"""
midprovisioner - ServiceNow MID Server container provisioning tool
"""

__version__ = "0.1.0"

from .core import MidProvisioner, ProvisionerError

__all__ = ["MidProvisioner", "ProvisionerError"]
