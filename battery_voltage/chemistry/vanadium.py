"""All-vanadium redox flow battery preset."""

from dataclasses import dataclass

from battery_voltage.chemistry.base_chemistry import BaseChemistry


@dataclass
class VanadiumRedoxChemistry(BaseChemistry):
    """
    All-vanadium redox flow stack (VRFB).

    Cell voltage follows a Nernst relation around the 1.41 V standard
    potential; capacity is set by electrolyte volume rather than the cell.
    """

    def _init_parameters(self) -> None:
        """Initialize vanadium redox parameters."""
        self.name = "Vanadium-Redox"
        self.description = "All-vanadium redox flow cell"

        self.voltage_nominal = 1.41
        self.resistance = 0.001  # Ohm
        self.capacity = 100.0  # Ah per string of electrolyte
        self.default_model = "vanadium_redox"
        self.flow_battery = True
