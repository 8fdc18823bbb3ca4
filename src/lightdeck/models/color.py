"""Color model for pixel previews."""

from pydantic import BaseModel, ConfigDict, Field


class Color(BaseModel):
    """Standard 8-bit RGB color of one previewed pixel.

    The model is frozen so colors can be compared and cached.
    """

    model_config = ConfigDict(frozen=True)

    r: int = Field(ge=0, le=255, description="Red (0-255)")
    g: int = Field(ge=0, le=255, description="Green (0-255)")
    b: int = Field(ge=0, le=255, description="Blue (0-255)")

    @classmethod
    def off(cls) -> "Color":
        """Create off (black) color."""
        return cls(r=0, g=0, b=0)

    @property
    def is_off(self) -> bool:
        return self.r == 0 and self.g == 0 and self.b == 0

    def to_rgb_tuple(self) -> tuple[int, int, int]:
        """Convert to RGB tuple."""
        return (self.r, self.g, self.b)

    def to_hex(self) -> str:
        """Convert to CSS hex color string (e.g., '#FF0000').

        Example:
            >>> Color(r=255, g=0, b=0).to_hex()
            '#FF0000'
        """
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"
