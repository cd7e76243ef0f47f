"""
Signature capture.

A signature is either drawn ink strokes or typed text, selected by
configuration (CONSENT_SIGNATURE_MODE) rather than by platform.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Union

Point = tuple[float, float]


class SignatureMode(Enum):
    INK = "ink"      # Handwritten strokes, exported as a drawing
    TYPED = "typed"  # Typed text, exported as literal text


@dataclass(frozen=True)
class PersonName:
    """Structured person name as entered in a signature form."""
    given_name: str = ""
    family_name: str = ""
    middle_name: str = ""
    name_prefix: str = ""
    name_suffix: str = ""

    def formatted(self) -> str:
        """Long-style name, e.g. 'Dr. Leland Stanford Jr.'"""
        parts = [self.name_prefix, self.given_name, self.middle_name, self.family_name, self.name_suffix]
        return " ".join(part.strip() for part in parts if part and part.strip())


@dataclass
class InkSignature:
    """Drawn signature: a list of strokes, each a list of points."""
    strokes: list[list[Point]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not any(self.strokes)

    def add_stroke(self, points: Iterable[Iterable[float]]) -> None:
        stroke = [(float(x), float(y)) for x, y in points]
        if stroke:
            self.strokes.append(stroke)

    def clear(self) -> None:
        self.strokes.clear()


@dataclass
class TypedSignature:
    """Signature entered as text."""
    text: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.text

    def clear(self) -> None:
        self.text = ""


Signature = Union[InkSignature, TypedSignature]


def empty_signature(mode: SignatureMode) -> Signature:
    if mode is SignatureMode.TYPED:
        return TypedSignature()
    return InkSignature()


@dataclass
class SignatureStorage:
    """The data entered into one signature form."""
    name: PersonName = field(default_factory=PersonName)
    signature: Signature = field(default_factory=InkSignature)
    drawing_size: tuple[float, float] = (0.0, 0.0)

    @classmethod
    def empty(cls, mode: SignatureMode, name: PersonName | None = None) -> "SignatureStorage":
        return cls(name=name or PersonName(), signature=empty_signature(mode))

    @property
    def is_signed(self) -> bool:
        return not self.signature.is_empty

    @property
    def did_enter_names(self) -> bool:
        return self.name.given_name != "" and self.name.family_name != ""

    def clear_signature(self) -> None:
        """Reset the signature to an empty state. Entered names are kept."""
        self.signature.clear()
