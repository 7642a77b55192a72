"""Core infrastructure components for Foreman Provisioner."""

from foreman_provisioner.core.provider import BasicAuth, ForemanProvider
from foreman_provisioner.core.state import ResourceInstance, State

__all__ = ["BasicAuth", "ForemanProvider", "ResourceInstance", "State"]
