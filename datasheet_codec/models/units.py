"""Controlled vocabulary of physical units accepted on parameters.

A unit string that is not in this vocabulary cannot be attached to a
Parameter's semantics; the exporter drops it and the raw cell survives only in
the archived column data.
"""

from enum import Enum
from typing import Optional


class PhysicalUnit(str, Enum):
    """Physical unit symbols recognized by the data-sheet semantics."""

    # SI base units
    METER = "m"
    KILOGRAM = "kg"
    SECOND = "s"
    AMPERE = "A"
    KELVIN = "K"
    MOLE = "mol"
    CANDELA = "cd"

    # SI derived units
    RADIAN = "rad"
    STERADIAN = "sr"
    HERTZ = "Hz"
    NEWTON = "N"
    PASCAL = "Pa"
    JOULE = "J"
    WATT = "W"
    COULOMB = "C"
    VOLT = "V"
    FARAD = "F"
    OHM = "ohm"
    SIEMENS = "S"
    WEBER = "Wb"
    TESLA = "T"
    HENRY = "H"
    DEGREE_CELSIUS = "degC"
    LUMEN = "lm"
    LUX = "lx"

    # Common engineering units
    MILLISECOND = "ms"
    MICROSECOND = "us"
    MINUTE = "min"
    HOUR = "h"
    DEGREE = "deg"
    KILOMETER = "km"
    MILLIMETER = "mm"
    GRAM = "g"
    MILLIAMPERE = "mA"
    MILLIVOLT = "mV"
    KILOWATT = "kW"
    KILOPASCAL = "kPa"
    BAR = "bar"
    METER_PER_SECOND = "m/s"
    METER_PER_SECOND_SQUARED = "m/s^2"
    RADIAN_PER_SECOND = "rad/s"
    DEGREE_PER_SECOND = "deg/s"
    PERCENT = "%"
    BIT = "bit"
    BYTE = "byte"
    BITS_PER_SECOND = "bit/s"
    COUNT = "count"

    @classmethod
    def parse(cls, text: Optional[str]) -> Optional["PhysicalUnit"]:
        """Return the unit matching ``text`` exactly, or None if unrecognized."""
        if not text:
            return None
        try:
            return cls(text.strip())
        except ValueError:
            return None
