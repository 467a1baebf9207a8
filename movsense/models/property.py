"""Property context model for MovSense.

Optional listing hints supplied once per job.
"""

from typing import Optional, List
from pydantic import BaseModel, Field


class PropertyContext(BaseModel):
    """Listing hints used to steer room classification and detection."""

    bedrooms: Optional[int] = Field(
        default=None,
        ge=0,
        description="Number of bedrooms, if known"
    )
    bathrooms: Optional[float] = Field(
        default=None,
        ge=0,
        description="Number of bathrooms, if known"
    )
    sqft: Optional[int] = Field(
        default=None,
        ge=0,
        description="Living area in square feet"
    )
    property_type: str = Field(
        default="SINGLE_FAMILY",
        alias="propertyType",
        description="Listing property type"
    )

    class Config:
        populate_by_name = True
        frozen = True

    def describe_lines(self, style: str = "classify") -> List[str]:
        """Render the known hints as prompt bullet lines.

        Args:
            style: "classify" for short phrasing, "detect" for labelled totals.
        """
        lines = []
        if style == "detect":
            if self.bedrooms:
                lines.append(f"- Total Bedrooms: {self.bedrooms}")
            if self.bathrooms:
                lines.append(f"- Total Bathrooms: {_format_count(self.bathrooms)}")
            if self.sqft:
                lines.append(f"- Square Footage: {self.sqft:,} sq ft")
        else:
            if self.bedrooms:
                lines.append(f"- {self.bedrooms} bedrooms")
            if self.bathrooms:
                lines.append(f"- {_format_count(self.bathrooms)} bathrooms")
            if self.sqft:
                lines.append(f"- {self.sqft:,} square feet")
        if self.property_type:
            lines.append(f"- Property Type: {self.property_type}")
        return lines


def _format_count(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
