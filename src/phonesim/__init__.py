"""Multi-team phone manufacturing business simulation."""

from phonesim.errors import DecisionValidationError, ModuleProcessingError, PhonesimError, UnknownArchetypeError
from phonesim.runtime.constants import ENGINE_VERSION

__version__ = ENGINE_VERSION

__all__ = [
    "DecisionValidationError",
    "ENGINE_VERSION",
    "ModuleProcessingError",
    "PhonesimError",
    "UnknownArchetypeError",
    "__version__",
]
