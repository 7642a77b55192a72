"""Terraform-style provisioning of Foreman smart class parameters."""

__version__ = "0.1.0"
