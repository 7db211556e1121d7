"""
Provides the structural model shared by every part of molstruct.

A :obj:`Molecule` is a flat value: atoms, bonds, residues and chains live in
tuples and refer to each other by integer index only, so copying a molecule
never has to chase object references.
"""

import uuid
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

import numpy as np
import pandas as pd

from molstruct.constants import (
  DEFAULT_CHAIN_ID,
  DEFAULT_ELEMENT,
  ELEMENT_DATA,
  LIGAND_RESIDUE_ID,
  LIGAND_RESIDUE_NAME,
  ElementRecord,
)
from molstruct.vectors import as_tuple

Position = Tuple[float, float, float]
IdFactory = Callable[[], str]


### FUNCTIONS ###
def new_id() -> str:
  """Default unique id generator used for molecules and measurements."""
  return uuid.uuid4().hex


def normalize_element(symbol: str) -> str:
  """Title-case an element symbol, ``"CL"`` becomes ``"Cl"``."""
  symbol = symbol.strip()
  return symbol[:1].upper() + symbol[1:].lower()


def get_element(symbol: str) -> ElementRecord:
  """Look up the parameters of an element.

  Unknown symbols are not an error, they resolve to
  :obj:`molstruct.constants.DEFAULT_ELEMENT`.

  Parameters:
    symbol: Element symbol in any letter case

  Returns:
    The matching element record or the default record

  """
  return ELEMENT_DATA.get(normalize_element(symbol), DEFAULT_ELEMENT)


### CLASSES ###
@dataclass(frozen=True)
class Atom:
  """A single atom.

  ``id`` always equals the atom's index in the owning molecule's atom tuple.
  ``radius`` and ``color`` are copied from the element table when not given.
  """

  id: int
  element: str
  name: str
  position: Position
  residue_name: str = LIGAND_RESIDUE_NAME
  residue_id: int = LIGAND_RESIDUE_ID
  chain_id: str = DEFAULT_CHAIN_ID
  occupancy: float = 1.0
  b_factor: float = 0.0
  charge: float = 0.0
  radius: Optional[float] = None
  color: Optional[str] = None
  selected: bool = False

  def __post_init__(self):
    object.__setattr__(self, "position", as_tuple(self.position))
    record = get_element(self.element)
    if self.radius is None:
      object.__setattr__(self, "radius", record.radius)
    if self.color is None:
      object.__setattr__(self, "color", record.color)

  @property
  def mass(self) -> float:
    return get_element(self.element).mass


@dataclass(frozen=True)
class Bond:
  id: int
  atom_index1: int
  atom_index2: int
  order: int = 1  # 1=single, 2=double, 3=triple

  @property
  def pair(self) -> Tuple[int, int]:
    """Atom indices as an ordered ``(low, high)`` tuple."""
    return (min(self.atom_index1, self.atom_index2), max(self.atom_index1, self.atom_index2))


@dataclass(frozen=True)
class Residue:
  id: int
  name: str
  chain_id: str
  atoms: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Chain:
  id: str
  residues: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Molecule:
  """Immutable molecular structure.

  Operations that change a molecule (minimization, selection) return a new
  instance. Bonds refer to atoms by index, residues refer to atoms by index and
  chains refer to residues by residue id.

  Parameters:
    name: Display name
    atoms: Atoms, where ``atoms[i].id == i``
    bonds: Bonds between valid atom indices
    residues: Residues in first-seen order
    chains: Chains in first-seen order
    metadata: Free-form string metadata (header, title, source, cid, ...)
    id: Opaque unique identifier

  """

  name: str
  atoms: Tuple[Atom, ...]
  bonds: Tuple[Bond, ...] = ()
  residues: Tuple[Residue, ...] = ()
  chains: Tuple[Chain, ...] = ()
  metadata: Dict[str, str] = field(default_factory=dict)
  id: str = field(default_factory=new_id)

  def __post_init__(self):
    object.__setattr__(self, "atoms", tuple(self.atoms))
    object.__setattr__(self, "bonds", tuple(self.bonds))
    object.__setattr__(self, "residues", tuple(self.residues))
    object.__setattr__(self, "chains", tuple(self.chains))
    for i, atom in enumerate(self.atoms):
      if atom.id != i:
        raise ValueError(f"Atom at position {i} has id {atom.id}, atom ids must match their index")
    n = len(self.atoms)
    for bond in self.bonds:
      if not (0 <= bond.atom_index1 < n and 0 <= bond.atom_index2 < n):
        raise ValueError(f"Bond {bond.id} references atoms ({bond.atom_index1}, {bond.atom_index2}) outside of 0..{n - 1}")

  def __repr__(self):
    return f"<Molstruct Molecule: Name={self.name} Atoms={len(self.atoms)}, Bonds={len(self.bonds)}, Residues={len(self.residues)}, Chains=[{', '.join(c.id for c in self.chains)}]>"

  def __len__(self):
    return len(self.atoms)

  def coords(self) -> np.ndarray:
    """Returns the atom positions as a new ``(N, 3)`` float array."""
    if not self.atoms:
      return np.zeros((0, 3), dtype=float)
    return np.array([atom.position for atom in self.atoms], dtype=float)

  def with_atoms(self, atoms: Iterable[Atom]) -> "Molecule":
    """Returns a copy of this molecule with a different atom tuple.
    Every other field, including the id, is shared.
    """
    return replace(self, atoms=tuple(atoms))

  def with_coords(self, coords: np.ndarray) -> "Molecule":
    """Returns a copy of this molecule with the atom positions replaced.

    Parameters:
      coords: Array-like of shape ``(N, 3)``

    Returns:
      New molecule with freshly copied atoms

    """
    coords = np.asarray(coords, dtype=float)
    if coords.shape != (len(self.atoms), 3):
      raise ValueError(f"Expected coordinates of shape ({len(self.atoms)}, 3), got {coords.shape}")
    return self.with_atoms(replace(atom, position=coords[i]) for i, atom in enumerate(self.atoms))

  def bonded_pairs(self) -> Set[Tuple[int, int]]:
    """Returns the set of bonded ``(low, high)`` atom index pairs."""
    return {bond.pair for bond in self.bonds}

  def elements(self) -> Set[str]:
    return {atom.element for atom in self.atoms}

  def formula(self) -> str:
    """Molecular formula in Hill order (C, then H, then alphabetical).
    Without carbon every element is alphabetical.
    """
    counts = Counter(atom.element for atom in self.atoms)
    if "C" in counts:
      order = ["C"] + (["H"] if "H" in counts else []) + sorted(e for e in counts if e not in ("C", "H"))
    else:
      order = sorted(counts)
    return "".join(f"{e}{counts[e] if counts[e] > 1 else ''}" for e in order)

  def total_mass(self) -> float:
    return float(sum(atom.mass for atom in self.atoms))

  def center_of_mass(self) -> np.ndarray:
    """Calculate the mass-weighted center of the molecule.

    Returns:
      center_of_mass: A 3D numpy array representing the center of mass

    Raises:
      ValueError: If the molecule has no atoms

    """
    if not self.atoms:
      raise ValueError("Cannot compute the center of mass of a molecule without atoms.")
    masses = np.array([atom.mass for atom in self.atoms])
    return np.average(self.coords(), axis=0, weights=masses)

  def to_df(self) -> pd.DataFrame:
    """Generate a biopandas-like dataframe with one row per atom.

    Inspired by: https://biopandas.github.io/biopandas

    """
    df = {
      "atom": [],
      "atom_name": [],
      "element": [],
      "chain": [],
      "res_id": [],
      "res_name": [],
      "x": [],
      "y": [],
      "z": [],
      "occupancy": [],
      "bfactor": [],
      "charge": [],
      "mass": [],
    }
    for atom in self.atoms:
      df["atom"].append(atom.id)
      df["atom_name"].append(atom.name)
      df["element"].append(atom.element)
      df["chain"].append(atom.chain_id)
      df["res_id"].append(atom.residue_id)
      df["res_name"].append(atom.residue_name)
      df["x"].append(atom.position[0])
      df["y"].append(atom.position[1])
      df["z"].append(atom.position[2])
      df["occupancy"].append(atom.occupancy)
      df["bfactor"].append(atom.b_factor)
      df["charge"].append(atom.charge)
      df["mass"].append(atom.mass)
    return pd.DataFrame(df)


### FUNCTIONS ###
def build_residues(atoms: Iterable[Atom]) -> Tuple[Tuple[Residue, ...], Tuple[Chain, ...]]:
  """Group atoms into residues and residues into chains.

  Residues are keyed by ``(chain_id, residue_id)`` and both residues and
  chains keep the order in which they were first seen.

  Parameters:
    atoms: Atoms with their residue and chain columns filled in

  Returns:
    A tuple of the form ``(residues, chains)``

  """
  residue_atoms: Dict[Tuple[str, int], List[int]] = {}
  residue_names: Dict[Tuple[str, int], str] = {}
  chain_residues: Dict[str, List[int]] = {}
  for atom in atoms:
    key = (atom.chain_id, atom.residue_id)
    if key not in residue_atoms:
      residue_atoms[key] = []
      residue_names[key] = atom.residue_name
    residue_atoms[key].append(atom.id)

    members = chain_residues.setdefault(atom.chain_id, [])
    if atom.residue_id not in members:
      members.append(atom.residue_id)

  residues = tuple(
    Residue(id=res_id, name=residue_names[(chain_id, res_id)], chain_id=chain_id, atoms=tuple(indices))
    for (chain_id, res_id), indices in residue_atoms.items()
  )
  chains = tuple(Chain(id=chain_id, residues=tuple(members)) for chain_id, members in chain_residues.items())
  return residues, chains
