"""Logo brief schema sent to the generation endpoint."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LogoBrief(BaseModel):
    """What the user asked for; the request body of a generation call."""

    prompt: str = Field(min_length=1, description="Free-text description of the logo")
    style: str | None = Field(default=None, description="Visual style, e.g. 'minimal'")
    color_palette: list[str] = Field(default_factory=list, description="Preferred colors")
    font: str | None = Field(default=None, description="Preferred typeface")
    industry: str = Field(default="general", description="Industry the brand operates in")
    uniqueness_preference: int | None = Field(
        default=None, ge=0, le=10, description="0-10, higher asks for a more unusual design"
    )
    include_animations: bool = Field(default=False, description="Also request an animated SVG")
