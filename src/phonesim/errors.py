from __future__ import annotations


class PhonesimError(Exception):
    """Base class for errors raised by the simulation library."""


class DecisionValidationError(PhonesimError, ValueError):
    """A decision bundle violates a business rule."""


class ModuleProcessingError(PhonesimError):
    """Hard failure inside a department processor.

    The orchestrator catches this per team and degrades that team's round.
    """

    def __init__(self, module: str, message: str) -> None:
        super().__init__(f"{module}: {message}")
        self.module = module


class UnknownArchetypeError(PhonesimError, KeyError, ValueError):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown strategy archetype '{self.name}'"


__all__ = [
    "DecisionValidationError",
    "ModuleProcessingError",
    "PhonesimError",
    "UnknownArchetypeError",
]
