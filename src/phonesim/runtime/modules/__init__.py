"""Department processors and the fixed order the orchestrator runs them in."""

from __future__ import annotations

from typing import Tuple

from phonesim.runtime.modules.base import ModuleProcessor, ModuleResult
from phonesim.runtime.modules.factory import process_factory
from phonesim.runtime.modules.finance import process_finance
from phonesim.runtime.modules.marketing import process_marketing
from phonesim.runtime.modules.materials import process_materials
from phonesim.runtime.modules.rd import process_rd
from phonesim.runtime.modules.workforce import process_workforce

DEFAULT_PIPELINE: Tuple[Tuple[str, ModuleProcessor], ...] = (
    ("materials", process_materials),
    ("factory", process_factory),
    ("workforce", process_workforce),
    ("rd", process_rd),
    ("marketing", process_marketing),
    ("finance", process_finance),
)

__all__ = [
    "DEFAULT_PIPELINE",
    "ModuleProcessor",
    "ModuleResult",
    "process_factory",
    "process_finance",
    "process_marketing",
    "process_materials",
    "process_rd",
    "process_workforce",
]
