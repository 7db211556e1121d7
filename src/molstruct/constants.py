"""
This file contains constants.
"""

from dataclasses import dataclass
from typing import Dict


## Element Parameters
# Element record class
@dataclass(frozen=True)
class ElementRecord:
  color: str  # display color as a hex string
  radius: float  # covalent/display radius in angstroms, also used as the bond length surrogate
  mass: float  # atomic mass in daltons
  sigma: float  # Lennard-Jones contact distance in angstroms
  epsilon: float  # Lennard-Jones well depth in kcal/mol


# Lennard-Jones parameters used by every element that has no entry of its own
DEFAULT_LJ_SIGMA = 3.0
DEFAULT_LJ_EPSILON = 0.1

# Fallback for element symbols that are not in ELEMENT_DATA
DEFAULT_ELEMENT = ElementRecord("#FF69B4", 1.0, 1.0, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON)

## Elements keyed by title-cased symbol
ELEMENT_DATA: Dict[str, ElementRecord] = {
  "H": ElementRecord("#FFFFFF", 0.31, 1.008, 2.5, 0.02),
  "He": ElementRecord("#D9FFFF", 0.28, 4.003, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "Li": ElementRecord("#CC80FF", 1.28, 6.941, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "Be": ElementRecord("#C2FF00", 0.96, 9.012, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "B": ElementRecord("#FFB5B5", 0.84, 10.81, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "C": ElementRecord("#909090", 0.76, 12.01, 3.4, 0.086),
  "N": ElementRecord("#3050F8", 0.71, 14.01, 3.25, 0.17),
  "O": ElementRecord("#FF0D0D", 0.66, 16.00, 3.0, 0.21),
  "F": ElementRecord("#90E050", 0.57, 19.00, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "Ne": ElementRecord("#B3E3F5", 0.58, 20.18, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "Na": ElementRecord("#AB5CF2", 1.66, 22.99, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "Mg": ElementRecord("#8AFF00", 1.41, 24.31, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "Al": ElementRecord("#BFA6A6", 1.21, 26.98, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "Si": ElementRecord("#F0C8A0", 1.11, 28.09, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "P": ElementRecord("#FF8000", 1.07, 30.97, 3.74, 0.20),
  "S": ElementRecord("#FFFF30", 1.05, 32.07, 3.55, 0.25),
  "Cl": ElementRecord("#1FF01F", 1.02, 35.45, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "Ar": ElementRecord("#80D1E3", 1.06, 39.95, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "K": ElementRecord("#8F40D4", 2.03, 39.10, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "Ca": ElementRecord("#3DFF00", 1.76, 40.08, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "Fe": ElementRecord("#E06633", 1.32, 55.85, 2.91, 0.013),
  "Co": ElementRecord("#F090A0", 1.26, 58.93, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "Ni": ElementRecord("#50D050", 1.24, 58.69, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "Cu": ElementRecord("#C88033", 1.32, 63.55, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "Zn": ElementRecord("#7D80B0", 1.22, 65.38, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "Br": ElementRecord("#A62929", 1.20, 79.90, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
  "I": ElementRecord("#940094", 1.39, 126.9, DEFAULT_LJ_SIGMA, DEFAULT_LJ_EPSILON),
}

## Bond Inference
# A pair is bonded when MIN_BOND_DISTANCE < d < BOND_TOLERANCE * (r1 + r2)
BOND_TOLERANCE = 1.3
MIN_BOND_DISTANCE = 0.4

## Pairwise Loops
# Rows of the pair matrix evaluated at once, bounds memory to PAIR_BLOCK_SIZE * N per array
PAIR_BLOCK_SIZE = 256

## Energy Model
# Harmonic force constant per unit of bond order (kcal/mol/A^2)
BOND_FORCE_CONSTANT = 300.0
# Pairs closer than this contribute no van der Waals energy
VDW_MIN_DISTANCE = 0.1

## Minimizer
# Per-atom force magnitude cap applied before each Euler step
MAX_FORCE = 10.0
# Bonds shorter than this contribute no force
MIN_FORCE_DISTANCE = 0.01
DEFAULT_MINIMIZE_STEPS = 100
DEFAULT_STEP_SIZE = 0.01
# Chunked relaxation defaults (10 chunks of 50 steps)
DEFAULT_RELAX_CHUNKS = 10
DEFAULT_RELAX_CHUNK_SIZE = 50
DEFAULT_RELAX_STEP_SIZE = 0.005

## Defaults for atoms coming from single-ligand formats (SDF, MOL2)
LIGAND_RESIDUE_NAME = "LIG"
LIGAND_RESIDUE_ID = 1
DEFAULT_CHAIN_ID = "A"

## Remote Lookup
PUBCHEM_BASE_URL = "https://pubchem.ncbi.nlm.nih.gov/rest/pug"
USER_AGENT = "molstruct/0.1.0"
REQUEST_TIMEOUT = 30

## Demo Structure
# Caffeine with explicit connectivity, loaded by molstruct.chemicals.load_demo()
CAFFEINE_PDB = """\
HEADER    DEMO MOLECULE - CAFFEINE
ATOM      1  N1  CAF A   1       1.320   0.530   0.000  1.00  0.00           N
ATOM      2  C2  CAF A   1       1.980   1.520   0.000  1.00  0.00           C
ATOM      3  N3  CAF A   1       1.370   2.610   0.000  1.00  0.00           N
ATOM      4  C4  CAF A   1       0.040   2.580   0.000  1.00  0.00           C
ATOM      5  C5  CAF A   1      -0.660   1.520   0.000  1.00  0.00           C
ATOM      6  C6  CAF A   1       0.000   0.380   0.000  1.00  0.00           C
ATOM      7  N7  CAF A   1      -2.010   1.780   0.000  1.00  0.00           N
ATOM      8  C8  CAF A   1      -2.170   3.000   0.000  1.00  0.00           C
ATOM      9  N9  CAF A   1      -0.880   3.510   0.000  1.00  0.00           N
ATOM     10  O2  CAF A   1       3.200   1.500   0.000  1.00  0.00           O
ATOM     11  O6  CAF A   1      -0.530  -0.750   0.000  1.00  0.00           O
ATOM     12  C10 CAF A   1       2.010  -0.630   0.000  1.00  0.00           C
ATOM     13  C11 CAF A   1       2.070   3.850   0.000  1.00  0.00           C
ATOM     14  C12 CAF A   1      -3.050   0.790   0.000  1.00  0.00           C
CONECT    1    2    6   12
CONECT    2    1    3   10
CONECT    3    2    4   13
CONECT    4    3    5    9
CONECT    5    4    6    7
CONECT    6    1    5   11
CONECT    7    5    8   14
CONECT    8    7    9
CONECT    9    4    8
END
"""
