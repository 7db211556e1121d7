"""
Provides distance, angle and dihedral measurements between atoms of a molecule.
"""

import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from molstruct.errors import InvalidArityError
from molstruct.structure import IdFactory, Molecule, new_id
from molstruct.vectors import VectorLike, distance, normalize, vec

# number of atoms each measurement kind needs
MEASUREMENT_ARITY = {"distance": 2, "angle": 3, "dihedral": 4}
MEASUREMENT_UNITS = {"distance": "Å", "angle": "°", "dihedral": "°"}


### CLASSES ###
@dataclass(frozen=True)
class Measurement:
  """A measured geometric quantity.

  Attributes:
    id: Unique identifier
    kind: ``"distance"``, ``"angle"`` or ``"dihedral"``
    atom_indices: Indices of the measured atoms, in order
    value: Measured value rounded to 2 decimals
    unit: ``"Å"`` for distances, ``"°"`` for angles and dihedrals
    visible: Display flag
  """

  id: str
  kind: str
  atom_indices: Tuple[int, ...]
  value: float
  unit: str
  visible: bool = True


### FUNCTIONS ###
def measure_distance(a: VectorLike, b: VectorLike) -> float:
  """Distance between two points in angstroms."""
  return distance(a, b)


def measure_angle(a: VectorLike, b: VectorLike, c: VectorLike) -> float:
  """Angle ``a-b-c`` at vertex ``b`` in degrees."""
  v1 = normalize(vec(a) - vec(b))
  v2 = normalize(vec(c) - vec(b))
  cos_value = float(np.clip(np.dot(v1, v2), -1.0, 1.0))
  return math.degrees(math.acos(cos_value))


def measure_dihedral(a: VectorLike, b: VectorLike, c: VectorLike, d: VectorLike) -> float:
  """Signed torsion angle about the ``b-c`` axis in degrees.

  With ``b1 = b - a``, ``b2 = c - b`` and ``b3 = d - c`` the normals are
  ``n1 = b1 x b2`` and ``n2 = b2 x b3``, ``m1 = n1 x unit(b2)`` and the
  result is ``atan2(m1 . n2, n1 . n2)``. A planar cis arrangement gives 0
  and a planar trans arrangement gives 180.
  """
  a, b, c, d = vec(a), vec(b), vec(c), vec(d)
  b1 = b - a
  b2 = c - b
  b3 = d - c
  n1 = normalize(np.cross(b1, b2))
  n2 = normalize(np.cross(b2, b3))
  m1 = np.cross(n1, normalize(b2))
  x = float(np.dot(n1, n2))
  y = float(np.dot(m1, n2))
  return math.degrees(math.atan2(y, x))


_MEASURE_FUNCTIONS = {
  "distance": measure_distance,
  "angle": measure_angle,
  "dihedral": measure_dihedral,
}


def measure(molecule: Molecule, atom_indices: Sequence[int], kind: str, id_factory: IdFactory = new_id) -> Measurement:
  """Measure a distance, angle or dihedral between atoms of a molecule.

  Parameters:
    molecule: Molecule containing the atoms
    atom_indices: 2, 3 or 4 atom indices depending on ``kind``
    kind: ``"distance"``, ``"angle"`` or ``"dihedral"``
    id_factory: Callable returning a unique measurement id

  Returns:
    The measurement, with its value rounded to 2 decimal places

  Raises:
    ValueError: If ``kind`` is unknown
    InvalidArityError: If the number of indices does not match ``kind``
    IndexError: If an index is outside the molecule

  """
  if kind not in MEASUREMENT_ARITY:
    raise ValueError(f'Unknown measurement kind "{kind}", expected one of {", ".join(MEASUREMENT_ARITY)}')
  atom_indices = tuple(int(i) for i in atom_indices)
  if len(atom_indices) != MEASUREMENT_ARITY[kind]:
    raise InvalidArityError(f"A {kind} measurement needs {MEASUREMENT_ARITY[kind]} atoms, got {len(atom_indices)}")
  for i in atom_indices:
    if not 0 <= i < len(molecule.atoms):
      raise IndexError(f"Atom index {i} is out of range for molecule {molecule.name} with {len(molecule.atoms)} atoms")

  positions = [molecule.atoms[i].position for i in atom_indices]
  value = round(_MEASURE_FUNCTIONS[kind](*positions), 2)
  if kind == "dihedral" and value <= -180.0:
    value += 360.0  # report (-180, 180]
  return Measurement(id=id_factory(), kind=kind, atom_indices=atom_indices, value=value, unit=MEASUREMENT_UNITS[kind])


def remove_measurement(measurements: Sequence[Measurement], measurement_id: str) -> List[Measurement]:
  """Return a new list without the measurement that has ``measurement_id``.
  Unknown ids leave the list unchanged.
  """
  return [m for m in measurements if m.id != measurement_id]
