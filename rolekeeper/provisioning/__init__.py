"""Role provisioning workflow.

Gate, grant, verify and probe components plus the orchestrator that runs
them in that order against one registry.
"""

from rolekeeper.provisioning.gate import AccessGate
from rolekeeper.provisioning.granter import RoleGranter
from rolekeeper.provisioning.orchestrator import ProvisioningOrchestrator, requests_from_settings
from rolekeeper.provisioning.probe import CapabilityProbe
from rolekeeper.provisioning.sequencing import SubmissionSequencer
from rolekeeper.provisioning.verifier import RoleVerifier

__all__ = [
    "AccessGate",
    "CapabilityProbe",
    "ProvisioningOrchestrator",
    "RoleGranter",
    "RoleVerifier",
    "SubmissionSequencer",
    "requests_from_settings",
]
