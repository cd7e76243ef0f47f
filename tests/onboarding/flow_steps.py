"""
Step payload types used across the onboarding tests.
"""

from dataclasses import dataclass


@dataclass
class Welcome:
    def present(self) -> str:
        return "welcome"


@dataclass
class Interests:
    topic: str = "general"

    def present(self) -> str:
        return f"interests: {self.topic}"


@dataclass
class Consent:
    def present(self) -> str:
        return "consent"


@dataclass
class Done:
    def present(self) -> str:
        return "done"


@dataclass
class Help:
    """Shown as a custom step."""
    text: str = "help"

    def present(self) -> str:
        return self.text


@dataclass
class Named:
    """Declares its own identity."""
    name: str

    @property
    def onboarding_identity(self) -> str:
        return self.name

    def present(self) -> str:
        return self.name
