"""NMC811 (LiNi0.8Mn0.1Co0.1O2) / Graphite chemistry preset."""

from dataclasses import dataclass

from battery_voltage.chemistry.base_chemistry import BaseChemistry
from battery_voltage.core.voltage_model import DynamicParameters


@dataclass
class NMC811Chemistry(BaseChemistry):
    """
    NMC811 / Graphite high-energy chemistry.

    Characteristics:
    - Sloped discharge curve from 4.2 V to 3.0 V
    - Pronounced exponential zone just below full charge
    - Common in EVs and consumer electronics
    """

    def _init_parameters(self) -> None:
        """Initialize NMC811-specific parameters."""
        self.name = "NMC811-Graphite"
        self.description = "Nickel-rich NMC cathode, graphite anode"

        self.voltage_nominal = 3.7
        self.resistance = 0.050  # Ohm (typical 18650)
        self.capacity = 3.0  # Ah
        self.default_model = "dynamic"

        # Discharge curve, [DOD %, V]
        self.voltage_table = [
            [0.0, 4.20],
            [5.0, 4.16],
            [10.0, 4.12],
            [15.0, 4.08],
            [20.0, 4.05],
            [25.0, 4.00],
            [30.0, 3.95],
            [35.0, 3.90],
            [40.0, 3.86],
            [45.0, 3.82],
            [50.0, 3.78],
            [55.0, 3.75],
            [60.0, 3.72],
            [65.0, 3.70],
            [70.0, 3.68],
            [75.0, 3.65],
            [80.0, 3.62],
            [85.0, 3.58],
            [90.0, 3.50],
            [95.0, 3.35],
            [98.0, 3.20],
            [100.0, 3.00],
        ]

        self.dynamic = DynamicParameters(
            Vfull=4.20,
            Vexp=4.05,
            Vnom=3.70,
            Vcut=3.00,
            Qfull=3.0,
            Qexp=0.30,
            Qnom=2.40,
            C_rate=1.0,
        )
