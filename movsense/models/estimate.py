"""Estimate models for MovSense.

Pricing calibration table, calculator parameters and calculator output.
"""

from typing import Dict, Any
from pydantic import BaseModel, Field, model_validator


class MappingItem(BaseModel):
    """Calibration entry for one item label."""

    cubic_feet: float = Field(
        default=0.0,
        alias="cubicFeet",
        ge=0.0,
        description="Cubic feet per unit"
    )
    minutes: float = Field(
        default=0.0,
        ge=0.0,
        description="Handling minutes per unit"
    )
    requires_wrap: bool = Field(
        default=False,
        alias="requiresWrap",
        description="Whether the item is wrapped before moving"
    )

    class Config:
        populate_by_name = True

    @model_validator(mode="before")
    @classmethod
    def accept_short_keys(cls, data: Any) -> Any:
        """Accept the short `cf`/`wrap` keys used by stored pricing configs."""
        if isinstance(data, dict):
            data = dict(data)
            if "cf" in data and "cubicFeet" not in data and "cubic_feet" not in data:
                data["cubicFeet"] = data.pop("cf")
            if "wrap" in data and "requiresWrap" not in data and "requires_wrap" not in data:
                data["requiresWrap"] = data.pop("wrap")
        return data


MappingTable = Dict[str, MappingItem]


def load_mapping_table(data: Dict[str, Dict[str, Any]]) -> MappingTable:
    """Build a MappingTable from a plain dict (e.g. loaded JSON)."""
    return {label: MappingItem.model_validate(entry) for label, entry in data.items()}


class EstimateParams(BaseModel):
    """Crew and logistics parameters supplied per calculation."""

    crew: int = Field(default=2, ge=1, description="Crew size used for pricing")
    rate: float = Field(
        default=0.0,
        alias="hourlyRate",
        ge=0.0,
        description="Hourly rate per crew member"
    )
    travel_mins: float = Field(
        default=0.0,
        alias="travelMins",
        ge=0.0,
        description="Travel minutes added once"
    )
    stairs: bool = Field(default=False, description="Stairs at either end")
    elevator: bool = Field(default=False, description="Elevator at either end")
    wrapping: bool = Field(default=False, description="Wrapping service requested")
    safety_pct: float = Field(
        default=0.0,
        alias="safetyPct",
        ge=0.0,
        description="Safety margin percentage"
    )

    class Config:
        populate_by_name = True


class EstimateResult(BaseModel):
    """Calculator output. Derived and never persisted by the pipeline."""

    hours: float = Field(description="Labor hours, rounded to 1 decimal")
    crew_suggestion: int = Field(alias="crewSuggestion", description="Advisory crew size")
    total: int = Field(description="Total price, rounded to whole currency units")
    total_cubic_feet: float = Field(
        default=0.0,
        alias="totalCubicFeet",
        description="Calibrated volume from the mapping table"
    )

    class Config:
        populate_by_name = True

    def to_api_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
