"""
Export Configuration.

Caller-supplied, immutable description of how a consent document is
exported: paper size, fonts, timestamp, title override.

Fonts are PDF base-14 fonts (helv, tiro, cour families). Text outside
Latin-1 falls back to one embedded Unicode font, so exports stay
byte-for-byte reproducible.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import ConsentSettings

POINTS_PER_INCH = 72.0


class PaperSize(str, Enum):
    US_LETTER = "us_letter"
    DIN_A4 = "din_a4"

    @property
    def dimensions(self) -> tuple[float, float]:
        """(width, height) in points."""
        if self is PaperSize.DIN_A4:
            return 8.3 * POINTS_PER_INCH, 11.7 * POINTS_PER_INCH
        return 8.5 * POINTS_PER_INCH, 11.0 * POINTS_PER_INCH


# Base-14 font families: (regular, bold, italic, bold-italic)
FONT_FAMILIES = {
    "helv": ("helv", "hebo", "heit", "hebi"),
    "tiro": ("tiro", "tibo", "tiit", "tibi"),
    "cour": ("cour", "cobo", "coit", "cobi"),
}

MONOSPACE_FAMILY = "cour"

# Base-14 fonts only encode Latin-1. Other characters are drawn with
# MuPDF's built-in Unicode font (Droid Sans Fallback), embedded on use.
UNICODE_FALLBACK_FONT = "cjk"


def font_family(fontname: str) -> str:
    """Family key of a base-14 font name. Raises ValueError for other fonts."""
    for family, members in FONT_FAMILIES.items():
        if fontname in members:
            return family
    raise ValueError(f"Unsupported font '{fontname}'")


class FontSpec(BaseModel):
    """A base-14 font and point size."""

    model_config = ConfigDict(frozen=True)

    name: str = "helv"
    size: float = Field(default=12, gt=0)

    @field_validator("name")
    @classmethod
    def validate_base14(cls, v: str) -> str:
        font_family(v)
        return v

    def variant(self, bold: bool = False, italic: bool = False, monospace: bool = False) -> "FontSpec":
        """
        The same size in a bold/italic/monospace variant of this font's family.

        Styles already carried by this font are kept, so an italic run in a
        bold base font comes out bold-italic.
        """
        family = font_family(self.name)
        index = FONT_FAMILIES[family].index(self.name)
        bold = bold or index in (1, 3)
        italic = italic or index in (2, 3)
        if monospace:
            family = MONOSPACE_FAMILY
        name = FONT_FAMILIES[family][(1 if bold else 0) + (2 if italic else 0)]
        return FontSpec(name=name, size=self.size)


class FontSettings(BaseModel):
    """Fonts for each part of the exported document."""

    model_config = ConfigDict(frozen=True)

    signature_caption_font: FontSpec = FontSpec(name="helv", size=10)
    signature_prefix_font: FontSpec = FontSpec(name="hebo", size=12)
    document_content_font: FontSpec = FontSpec(name="helv", size=12)
    header_title_font: FontSpec = FontSpec(name="hebo", size=28)
    header_export_timestamp_font: FontSpec = FontSpec(name="helv", size=8)


class ExportConfiguration(BaseModel):
    """How to export a ConsentDocument."""

    model_config = ConfigDict(frozen=True)

    paper_size: PaperSize = PaperSize.US_LETTER
    including_timestamp: bool = True
    font_settings: FontSettings = FontSettings()
    title_override: str | None = None

    @classmethod
    def from_settings(cls, settings: ConsentSettings, **overrides) -> "ExportConfiguration":
        values = {
            "paper_size": PaperSize(settings.paper_size),
            "including_timestamp": settings.including_timestamp,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
