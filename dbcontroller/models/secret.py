"""
Pydantic models for core resources read or produced by the controller.
"""
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

from dbcontroller.models.meta import ObjectMeta

DSN_KEY = "dsn"


class Secret(BaseModel):
    """A Secret with its data already decoded to strings."""

    model_config = ConfigDict(populate_by_name=True)

    metadata: ObjectMeta
    type: str = Field(default="Opaque", description="Secret type")
    data: Dict[str, str] = Field(default_factory=dict, description="Decoded secret data")

    def is_controlled_by(self, uid: str) -> bool:
        """True when the controller owner reference points at ``uid``."""
        ref = self.metadata.controller_ref()
        return ref is not None and bool(uid) and ref.uid == uid


class ConfigMap(BaseModel):
    """A ConfigMap, read only as a value source."""

    metadata: ObjectMeta
    data: Dict[str, str] = Field(default_factory=dict, description="ConfigMap data")
