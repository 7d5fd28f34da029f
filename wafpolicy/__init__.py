"""Front Door firewall policy resource adapter.

Maps ``azurerm_frontdoor_firewall_policy`` configuration onto the Azure
Resource Manager API: schema, validation, expand/flatten translation and the
create/read/update/delete lifecycle.
"""

from .client import ArmResponse, FrontDoorPolicyClient, LongRunningOperation
from .context import CallContext
from .models import FirewallPolicy, decode_policy, normalize_attributes
from .resource import FirewallPolicyResource

__version__ = "0.1"

__all__ = [
    "ArmResponse",
    "CallContext",
    "FirewallPolicy",
    "FirewallPolicyResource",
    "FrontDoorPolicyClient",
    "LongRunningOperation",
    "decode_policy",
    "normalize_attributes",
]
