"""
Battery Voltage Models

Terminal voltage and power/current limits for battery and flow-battery
stacks: empirical discharge tables, the Tremblay-Dube dynamic model, and a
vanadium redox flow cell model.
"""

from battery_voltage.chemistry import Chemistry
from battery_voltage.core.factory import create_voltage_model
from battery_voltage.core.voltage_dynamic import VoltageDynamic
from battery_voltage.core.voltage_model import VoltageModel, VoltageParameters
from battery_voltage.core.voltage_table import VoltageTable
from battery_voltage.core.voltage_vanadium import VoltageVanadiumRedox

__version__ = "1.0.0"
__all__ = [
    "VoltageModel",
    "VoltageParameters",
    "VoltageTable",
    "VoltageDynamic",
    "VoltageVanadiumRedox",
    "create_voltage_model",
    "Chemistry",
]
