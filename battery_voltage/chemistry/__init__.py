"""Cell chemistry presets for voltage models."""

from typing import List

from battery_voltage.chemistry.base_chemistry import BaseChemistry
from battery_voltage.chemistry.lfp import LFPChemistry
from battery_voltage.chemistry.nmc811 import NMC811Chemistry
from battery_voltage.chemistry.vanadium import VanadiumRedoxChemistry


class Chemistry:
    """Factory for creating chemistry presets."""

    NMC811 = "NMC811"
    LFP = "LFP"
    VRFB = "VRFB"

    _registry = {
        "NMC811": NMC811Chemistry,
        "NMC811-GRAPHITE": NMC811Chemistry,
        "LFP": LFPChemistry,
        "LFP-GRAPHITE": LFPChemistry,
        "VRFB": VanadiumRedoxChemistry,
        "VANADIUM-REDOX": VanadiumRedoxChemistry,
    }

    @classmethod
    def from_name(cls, name: str) -> BaseChemistry:
        """
        Create chemistry preset from name.

        Args:
            name: Chemistry name (e.g., 'NMC811', 'LFP', 'VRFB')

        Returns:
            Chemistry preset object

        Raises:
            ValueError: If chemistry name is not recognized
        """
        name_upper = name.upper().replace(" ", "-").replace("_", "-")
        if name_upper not in cls._registry:
            available = list(cls._registry.keys())
            raise ValueError(f"Unknown chemistry '{name}'. Available: {available}")
        return cls._registry[name_upper]()

    @classmethod
    def list_available(cls) -> List[str]:
        """List canonical chemistry names."""
        return [cls.NMC811, cls.LFP, cls.VRFB]

    @classmethod
    def register(cls, name: str, chemistry_class: type) -> None:
        """Register a custom chemistry."""
        cls._registry[name.upper()] = chemistry_class


__all__ = [
    "Chemistry",
    "BaseChemistry",
    "NMC811Chemistry",
    "LFPChemistry",
    "VanadiumRedoxChemistry",
]
