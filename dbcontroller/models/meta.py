"""
Object metadata shared by every resource the controller reads or writes.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OwnerReference(BaseModel):
    """Back-reference from a derived resource to the resource that caused it."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(..., alias="apiVersion", description="API version of the owner")
    kind: str = Field(..., description="Kind of the owner")
    name: str = Field(..., description="Name of the owner")
    uid: str = Field(..., description="UID of the owner")
    controller: bool = Field(default=False, description="Whether the owner is the managing controller")
    block_owner_deletion: bool = Field(
        default=False, alias="blockOwnerDeletion", description="Block owner deletion until this object is gone"
    )


class ObjectMeta(BaseModel):
    """Identity and bookkeeping of a stored object."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Object name")
    namespace: str = Field(default="default", description="Object namespace")
    uid: str = Field(default="", description="Server-assigned unique identifier")
    resource_version: Optional[str] = Field(
        default=None, alias="resourceVersion", description="Version used for optimistic concurrency"
    )
    labels: Dict[str, str] = Field(default_factory=dict, description="Labels")
    owner_references: List[OwnerReference] = Field(
        default_factory=list, alias="ownerReferences", description="Owner references"
    )

    def controller_ref(self) -> Optional[OwnerReference]:
        """Return the owner reference flagged as controller, if any."""
        for ref in self.owner_references:
            if ref.controller:
                return ref
        return None
