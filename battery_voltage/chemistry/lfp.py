"""LFP (LiFePO4) / Graphite chemistry preset."""

from dataclasses import dataclass

from battery_voltage.chemistry.base_chemistry import BaseChemistry
from battery_voltage.core.voltage_model import DynamicParameters


@dataclass
class LFPChemistry(BaseChemistry):
    """
    LFP (Lithium Iron Phosphate) / Graphite chemistry.

    Characteristics:
    - Flat voltage plateau between roughly 20% and 80% depth of discharge
    - Steep knees at both ends of the discharge curve
    - Common in stationary storage
    """

    def _init_parameters(self) -> None:
        """Initialize LFP-specific parameters."""
        self.name = "LFP-Graphite"
        self.description = "Lithium iron phosphate cathode, graphite anode"

        self.voltage_nominal = 3.2
        self.resistance = 0.030  # Ohm (typically lower than NMC)
        self.capacity = 3.0  # Ah
        self.default_model = "table"

        # Discharge curve, [DOD %, V]; the plateau is thinned so that no two
        # neighbouring rows share a voltage
        self.voltage_table = [
            [0.0, 3.65],
            [5.0, 3.55],
            [10.0, 3.48],
            [15.0, 3.42],
            [20.0, 3.38],
            [30.0, 3.35],
            [40.0, 3.33],
            [60.0, 3.31],
            [70.0, 3.29],
            [80.0, 3.26],
            [85.0, 3.22],
            [90.0, 3.15],
            [95.0, 3.00],
            [98.0, 2.80],
            [100.0, 2.50],
        ]

        self.dynamic = DynamicParameters(
            Vfull=3.65,
            Vexp=3.40,
            Vnom=3.30,
            Vcut=2.50,
            Qfull=3.0,
            Qexp=0.30,
            Qnom=2.70,
            C_rate=1.0,
        )
