"""rolekeeper: role provisioning and verification for access-controlled registries."""

__version__ = "1.0.0"
