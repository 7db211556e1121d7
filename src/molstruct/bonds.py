"""
Distance based connectivity for structures that come without explicit bonds.
"""

from typing import List, Sequence

import numpy as np
from scipy.spatial import cKDTree

from molstruct.constants import BOND_TOLERANCE, MIN_BOND_DISTANCE
from molstruct.log import logger
from molstruct.structure import Atom, Bond


def infer_bonds(atoms: Sequence[Atom], start_id: int = 0, tolerance: float = BOND_TOLERANCE, min_distance: float = MIN_BOND_DISTANCE) -> List[Bond]:
  """Build single bonds between every pair of atoms that sit close enough.

  A pair ``(i, j)`` is bonded when ``min_distance < d < tolerance * (r_i + r_j)``
  where ``r`` is the atom's display radius. Candidate pairs come from a k-d tree
  query at the largest possible cutoff and are then filtered by their own
  radius sum, so memory stays proportional to the number of close pairs.
  Pairs at or below ``min_distance`` are treated as duplicated atoms and
  never bonded.

  Parameters:
    atoms: Atoms to connect, ``atoms[i].id`` must equal ``i``
    start_id: Id given to the first created bond
    tolerance: Multiplier applied to the radius sum
    min_distance: Distance (angstroms) at or below which no bond is made

  Returns:
    Bonds of order 1 with ``atom_index1 < atom_index2``, ordered by ``(i, j)``

  """
  n = len(atoms)
  if n < 2:
    return []

  coords = np.array([atom.position for atom in atoms], dtype=float)
  radii = np.array([atom.radius for atom in atoms], dtype=float)
  tree = cKDTree(coords)
  pairs = tree.query_pairs(r=tolerance * 2 * radii.max(), output_type="ndarray")

  bonds = []
  if len(pairs):
    i, j = pairs[:, 0], pairs[:, 1]
    dists = np.linalg.norm(coords[i] - coords[j], axis=1)
    keep = (dists > min_distance) & (dists < (radii[i] + radii[j]) * tolerance)
    pairs = pairs[keep]
    pairs = pairs[np.lexsort((pairs[:, 1], pairs[:, 0]))]
    bonds = [Bond(id=start_id + k, atom_index1=int(a), atom_index2=int(b), order=1) for k, (a, b) in enumerate(pairs)]
  logger.debug(f"Inferred {len(bonds):,} bonds from distances between {n:,} atoms")
  return bonds
