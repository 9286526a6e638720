"""Export configuration.

All configuration models use Pydantic for validation. A configuration can be
loaded from a JSON file or constructed programmatically.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

Unit = Literal["mm", "cm", "m", "in", "ft"]

# Millimetres per unit
UNIT_MM: dict[str, float] = {
    "mm": 1.0,
    "cm": 10.0,
    "m": 1000.0,
    "in": 25.4,
    "ft": 304.8,
}


class ViewerNormalization(BaseModel):
    """Normalization reported by the viewing surface.

    When supplied, "export as displayed" reuses these exact numbers instead
    of recomputing them from the scene bounds.
    """

    scale: float = Field(gt=0, description="Uniform display scale")
    offset: tuple[float, float, float] = Field(
        default=(0.0, 0.0, 0.0),
        description="Translation applied after scaling"
    )


class ExportConfig(BaseModel):
    """Options for a single export request."""

    output_format: Literal["stl"] = Field(default="stl", description="Output file format")

    # Display normalization
    apply_display_normalization: bool = Field(
        default=False,
        description="Bake the on-screen normalization into the exported vertices"
    )
    target_extent: float = Field(
        default=4.0,
        gt=0,
        description="Largest model dimension in the canonical display volume"
    )
    viewer_normalization: ViewerNormalization | None = Field(
        default=None,
        description="Normalization reported by the viewer; overrides the computed one"
    )

    # Units
    scale: float = Field(default=1.0, gt=0, description="Extra uniform scale factor")
    source_units: Unit = Field(default="mm", description="Units the scene is authored in")
    units: Unit = Field(default="mm", description="Units of the exported file")

    # Coordinate conventions
    up_axis: Literal["y", "z"] = Field(
        default="y",
        description="'y' keeps the authored axes, 'z' rotates Y-up scenes to Z-up"
    )

    # Output
    solid_name: str = Field(default="model", description="Name used in the solid/endsolid lines")
    precision: int = Field(default=6, ge=1, le=9, description="Decimal digits per coordinate")

    # Processing
    decode_workers: int = Field(default=1, ge=1, le=64, description="Threads for buffer decoding")
    strict: bool = Field(default=False, description="Abort on the first malformed primitive")
    fail_on_empty: bool = Field(default=False, description="Raise EmptyGeometry when nothing is exported")

    @field_validator("solid_name")
    @classmethod
    def _single_token_name(cls, value: str) -> str:
        # STL readers split the solid line on whitespace
        name = "_".join(value.split())
        return name or "model"

    @property
    def unit_scale(self) -> float:
        """Factor applied to every exported coordinate."""
        return self.scale * UNIT_MM[self.source_units] / UNIT_MM[self.units]

    @classmethod
    def from_file(cls, path: Path | str) -> ExportConfig:
        """Load configuration from a JSON file."""
        path = Path(path)
        with open(path) as f:
            data = json.load(f)
        return cls.model_validate(data)

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)

    @classmethod
    def default(cls) -> ExportConfig:
        """Create a default configuration."""
        return cls()

    @classmethod
    def as_displayed(cls, **kwargs) -> ExportConfig:
        """Configuration for exporting exactly what the viewer shows."""
        return cls(apply_display_normalization=True, **kwargs)
