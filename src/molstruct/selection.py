"""
Provides atom selection helpers.

Selections are plain lists of atom indices. Flagging atoms as selected
returns a new molecule, the input is never modified.
"""

from dataclasses import replace
from typing import Iterable, List, Sequence

from molstruct.structure import Molecule

SELECTION_MODES = ("atom", "residue", "chain", "molecule")


def toggle_atom(selected: Sequence[int], index: int, multi: bool = False) -> List[int]:
  """Update a selection after an atom is picked.

  Parameters:
    selected: Currently selected atom indices
    index: Picked atom index
    multi: If ``True`` the picked atom is added or, when already selected,
      removed. Otherwise the selection becomes just the picked atom.

  Returns:
    The new selection

  """
  if not multi:
    return [index]
  if index in selected:
    return [i for i in selected if i != index]
  return list(selected) + [index]


def expand_selection(molecule: Molecule, index: int, mode: str = "atom") -> List[int]:
  """Expand a picked atom to the atoms sharing its residue, chain or molecule.

  Parameters:
    molecule: Molecule containing the atom
    index: Picked atom index
    mode: One of ``"atom"``, ``"residue"``, ``"chain"`` or ``"molecule"``

  Returns:
    Atom indices in ascending order

  Raises:
    ValueError: If ``mode`` is unknown
    IndexError: If ``index`` is outside the molecule

  """
  if mode not in SELECTION_MODES:
    raise ValueError(f'Invalid selection mode "{mode}", expected one of {", ".join(SELECTION_MODES)}')
  if not 0 <= index < len(molecule.atoms):
    raise IndexError(f"Atom index {index} is out of range for molecule {molecule.name} with {len(molecule.atoms)} atoms")

  picked = molecule.atoms[index]
  if mode == "atom":
    return [index]
  elif mode == "residue":
    return [a.id for a in molecule.atoms if a.chain_id == picked.chain_id and a.residue_id == picked.residue_id]
  elif mode == "chain":
    return [a.id for a in molecule.atoms if a.chain_id == picked.chain_id]
  return list(range(len(molecule.atoms)))


def apply_selection(molecule: Molecule, indices: Iterable[int]) -> Molecule:
  """Return a copy of ``molecule`` whose atoms carry the ``selected`` flag
  for exactly the given indices.
  """
  chosen = set(indices)
  for i in chosen:
    if not 0 <= i < len(molecule.atoms):
      raise IndexError(f"Atom index {i} is out of range for molecule {molecule.name} with {len(molecule.atoms)} atoms")
  return molecule.with_atoms(replace(atom, selected=atom.id in chosen) for atom in molecule.atoms)
