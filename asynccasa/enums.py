from enum import IntEnum


class UnitCode(IntEnum):
    """DLMS/COSEM unit codes reported by the gateway."""

    Watt = 27
    WattHour = 30
    Ampere = 33
    Volt = 35
    Hertz = 44

    @property
    def divisor(self) -> int:
        """Divisor normalising the scaled value (Wh is reported as kWh)."""
        return UNIT_DIVISORS[self]


UNIT_DIVISORS = {
    UnitCode.Watt: 1,
    UnitCode.WattHour: 1000,
    UnitCode.Ampere: 1,
    UnitCode.Volt: 1,
    UnitCode.Hertz: 1,
}


class ObisCode:
    """Common OBIS C.D.E keys as returned by ``CasaClient.get_meter_values``."""

    ENERGY_IMPORT = "1.8.0"
    ENERGY_EXPORT = "2.8.0"
    FREQUENCY = "14.7.0"
    POWER = "16.7.0"
    CURRENT_L1 = "31.7.0"
    VOLTAGE_L1 = "32.7.0"
    CURRENT_L2 = "51.7.0"
    VOLTAGE_L2 = "52.7.0"
    CURRENT_L3 = "71.7.0"
    VOLTAGE_L3 = "72.7.0"


OBIS_NAMES = {
    ObisCode.ENERGY_IMPORT: "Total imported energy (kWh)",
    ObisCode.ENERGY_EXPORT: "Total exported energy (kWh)",
    ObisCode.FREQUENCY: "Grid frequency (Hz)",
    ObisCode.POWER: "Current power (W)",
    ObisCode.CURRENT_L1: "Current L1 (A)",
    ObisCode.VOLTAGE_L1: "Voltage L1 (V)",
    ObisCode.CURRENT_L2: "Current L2 (A)",
    ObisCode.VOLTAGE_L2: "Voltage L2 (V)",
    ObisCode.CURRENT_L3: "Current L3 (A)",
    ObisCode.VOLTAGE_L3: "Voltage L3 (V)",
}
