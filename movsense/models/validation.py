"""Inventory validation models for MovSense."""

from typing import Dict, Any, List
from pydantic import BaseModel, Field


class InventoryValidation(BaseModel):
    """Advisory findings about a reconciled inventory.

    Anomalies are likely detection mistakes. Warnings are plausible but
    worth a second look. Neither alters the inventory.
    """

    anomalies: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    stats: Dict[str, Any] = Field(default_factory=dict)

    @property
    def has_anomalies(self) -> bool:
        return bool(self.anomalies)
