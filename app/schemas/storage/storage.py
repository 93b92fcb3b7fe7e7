from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class StorageLocator(BaseModel):
    """Where a firmware binary lives: the provider choice plus one reference per backend"""
    provider: Optional[str] = None
    references: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.references


class BackendStatus(BaseModel):
    connected: bool
    detail: Optional[str] = None
