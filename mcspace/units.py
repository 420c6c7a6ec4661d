"""
Physical constants and unit conversions.

Internal units:

    Property        | Unit
    --------------- | ---------------------------
    Energy          | Thermal energy (kT)
    Temperature     | Kelvin (K)
    Length          | Angstrom (Å)
    Charge          | Electron unit charge (e)
    Dipole moment   | Electron angstrom (eÅ)
    Concentration   | Particles / Å³
    Pressure        | Particles / Å³
    Angle           | Radians

Each converter takes a value in the named unit and returns it in internal
units, e.g. ``molar(0.1)`` is the number density of a 100 mM solution.
Divide by ``molar(1.0)`` to go back.
"""

import math

# Physical constants (SI)
PI = math.pi
E0 = 8.85419e-12        # Permittivity of vacuum [C²/(J m)]
ECHARGE = 1.602177e-19  # Elementary charge [C]
KB = 1.380658e-23       # Boltzmann constant [J/K]
NAV = 6.022137e23       # Avogadro's number [1/mol]
C = 299792458.0         # Speed of light [m/s]
R = KB * NAV            # Molar gas constant [J/(K mol)]

DEFAULT_TEMPERATURE = 298.15  # K


def kT(temperature: float = DEFAULT_TEMPERATURE) -> float:
    """Thermal energy [J]."""
    return temperature * KB


def lB(epsilon_r: float, temperature: float = DEFAULT_TEMPERATURE) -> float:
    """
    Bjerrum length [Å].

    Parameters:
        epsilon_r: Relative dielectric constant of the medium
        temperature: Temperature [K]
    """
    return ECHARGE**2 / (4 * PI * E0 * epsilon_r * 1e-10 * kT(temperature))


# ============================================================================
# Temperature
# ============================================================================

def celsius(t: float) -> float:
    """Celsius → Kelvin."""
    return 273.15 + t


# ============================================================================
# Length and volume
# ============================================================================

def angstrom(length: float) -> float:
    return length


def meter(length: float) -> float:
    return length * 1e10


def nm(length: float) -> float:
    return length * 10.0


def bohr(length: float) -> float:
    return length * 0.52917721092


def liter(volume: float) -> float:
    """Liter → Å³."""
    return volume * 1e27


def m3(volume: float) -> float:
    """Cubic meter → Å³."""
    return volume * 1e30


# ============================================================================
# Amount and concentration
# ============================================================================

def mol(n: float) -> float:
    """Moles → number of particles."""
    return n * NAV


def molar(c: float) -> float:
    """mol/l → particles/Å³."""
    return mol(c) / liter(1.0)


def millimolar(c: float) -> float:
    """mmol/l → particles/Å³."""
    return molar(c * 1e-3)


# ============================================================================
# Dipole moment and angle
# ============================================================================

def debye(mu: float) -> float:
    """Debye → eÅ."""
    return mu * 0.208194334424626


def coulomb_meter(mu: float) -> float:
    """C m → eÅ."""
    return mu * debye(1.0) / 3.335640951981520e-30


def rad(angle: float) -> float:
    return angle


def deg(angle: float) -> float:
    """Degrees → radians."""
    return angle * PI / 180.0


# ============================================================================
# Energy (temperature dependent)
# ============================================================================

def joule(u: float, temperature: float = DEFAULT_TEMPERATURE) -> float:
    """J → kT."""
    return u / kT(temperature)


def kJmol(u: float, temperature: float = DEFAULT_TEMPERATURE) -> float:
    """kJ/mol → kT per particle."""
    return u / kT(temperature) / NAV * 1e3


def kcalmol(u: float, temperature: float = DEFAULT_TEMPERATURE) -> float:
    """kcal/mol → kT per particle."""
    return kJmol(u * 4.1868, temperature)


def hartree(u: float, temperature: float = DEFAULT_TEMPERATURE) -> float:
    """Hartree → kT."""
    return joule(u * 4.35974434e-18, temperature)


# ============================================================================
# Pressure (temperature dependent)
# ============================================================================

def pascal(p: float, temperature: float = DEFAULT_TEMPERATURE) -> float:
    """Pa → particles/Å³."""
    return p / kT(temperature) / m3(1.0)


def atm(p: float, temperature: float = DEFAULT_TEMPERATURE) -> float:
    return pascal(p * 101325.0, temperature)


def bar(p: float, temperature: float = DEFAULT_TEMPERATURE) -> float:
    return pascal(p * 100000.0, temperature)
