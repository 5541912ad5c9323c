"""System health schemas."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field


class SystemHealth(BaseModel):
    """Row counts reported by the backend health RPC."""

    vessels_count: Annotated[int, Field(ge=0)] = 0
    alerts_count: Annotated[int, Field(ge=0)] = 0
    positions_count: Annotated[int, Field(ge=0)] = 0
    last_check: datetime
    backend_available: bool = True
