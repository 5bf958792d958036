from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

GroupedRecords = Union[Dict[str, Any], List[Any]]
RawRecord = Dict[str, Any]

Severity = Literal["high", "medium", "low"]

SEVERITY_VARIANTS: Dict[str, str] = {
    "high": "success",
    "medium": "warning",
    "low": "danger",
}


class ConfiguredBaseModel(BaseModel):
    model_config = {
        "arbitrary_types_allowed": True,
        "from_attributes": True,
    }


class DeliveryViewModel(ConfiguredBaseModel):
    """Display-ready delivery derived from a top-level source record."""
    delCode: str = Field(..., description="Delivery code, used as list key and route parameter.")
    client: str = Field(..., description="'<description> for <client>' display string.")
    initiated: str = Field(..., description="Formatted planned start time, or a sentinel string.")
    deadline: str = Field(..., description="'<days> days <hours> hrs left', or a sentinel string.")
    tasksPlanned: int = Field(0, description="Planned task count, 0 when absent.")
    tasksTotal: int = Field(0, description="Total task count, 0 when absent.")


class DeliveryCard(DeliveryViewModel):
    """A view model together with the values the renderer derives for it."""
    progress: float = Field(..., description="Planned/total ratio in percent, 0 when total is 0.")
    severity: Severity = Field(..., description="Progress tier: 'high' (>50), 'medium' (>20) or 'low'.")
    variant: str = Field(..., description="Progress bar variant matching the severity tier.")
    href: str = Field(..., description="Route to the delivery detail view.")


class DeliveryListResponse(ConfiguredBaseModel):
    """Response returned for delivery list queries."""
    total_count: int = Field(..., description="Number of deliveries matching the search term.")
    visible_count: int = Field(..., description="Maximum number of deliveries rendered.")
    search: str = Field("", description="The search term applied.")
    label: str = Field(..., description="Human-readable count label.")
    data: List[DeliveryCard]


class HealthResponse(ConfiguredBaseModel):
    status: str = "ok"
    loaded: bool = Field(False, description="Whether the initial fetch has completed.")
    timestamp: Optional[str] = None
