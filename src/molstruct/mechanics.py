"""
Provides a simplified molecular mechanics model and a steepest-descent relaxation.

The energy is a harmonic bond stretch plus a 12-6 Lennard-Jones term over all
non-bonded pairs. The minimizer only follows bond forces, so it does not
strictly descend the reported total energy.
"""

import math
from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np
from tqdm import tqdm

from molstruct.constants import (
  BOND_FORCE_CONSTANT,
  DEFAULT_MINIMIZE_STEPS,
  DEFAULT_RELAX_CHUNK_SIZE,
  DEFAULT_RELAX_CHUNKS,
  DEFAULT_RELAX_STEP_SIZE,
  DEFAULT_STEP_SIZE,
  MAX_FORCE,
  MIN_FORCE_DISTANCE,
  PAIR_BLOCK_SIZE,
  VDW_MIN_DISTANCE,
)
from molstruct.log import logger
from molstruct.structure import Atom, Bond, Molecule, get_element
from molstruct.vectors import distance


### CLASSES ###
@dataclass(frozen=True)
class EnergyBreakdown:
  """Energy terms in kcal/mol."""

  bond: float
  vdw: float
  total: float


### ENERGY ###
def bond_energy(atom1: Atom, atom2: Atom, bond: Bond) -> float:
  """Harmonic stretch energy ``0.5 * k * (d - d0)^2`` of one bond.

  ``k`` is ``300 * bond.order`` and the equilibrium length ``d0`` is the sum
  of the two display radii.
  """
  d = distance(atom1.position, atom2.position)
  eq_length = atom1.radius + atom2.radius
  k = BOND_FORCE_CONSTANT * bond.order
  return 0.5 * k * (d - eq_length) ** 2


def vdw_energy(atom1: Atom, atom2: Atom) -> float:
  """Lennard-Jones energy of a single atom pair.

  Uses ``sigma = (s1 + s2) / 2`` and ``epsilon = sqrt(e1 * e2)``. Pairs closer
  than 0.1 angstroms contribute 0.
  """
  r = distance(atom1.position, atom2.position)
  if r < VDW_MIN_DISTANCE:
    return 0.0
  p1 = get_element(atom1.element)
  p2 = get_element(atom2.element)
  sigma = (p1.sigma + p2.sigma) / 2
  epsilon = math.sqrt(p1.epsilon * p2.epsilon)
  ratio = sigma / r
  return 4 * epsilon * (ratio**12 - ratio**6)


def _vdw_term(coords: np.ndarray, sigmas: np.ndarray, epsilons: np.ndarray, bonded: np.ndarray) -> float:
  """Lennard-Jones sum over every ``i < j`` pair, ``PAIR_BLOCK_SIZE`` rows at a time.

  ``bonded`` is a ``(B, 2)`` array of excluded pairs with ``i < j``.
  """
  n = len(coords)
  total = 0.0
  for start in range(0, n - 1, PAIR_BLOCK_SIZE):
    stop = min(start + PAIR_BLOCK_SIZE, n - 1)
    rows = np.arange(start, stop)
    cols = np.arange(start + 1, n)
    dists = np.linalg.norm(coords[rows, np.newaxis] - coords[np.newaxis, cols], axis=-1)

    mask = (cols[np.newaxis, :] > rows[:, np.newaxis]) & (dists >= VDW_MIN_DISTANCE)
    in_block = (bonded[:, 0] >= start) & (bonded[:, 0] < stop)
    mask[bonded[in_block, 0] - start, bonded[in_block, 1] - (start + 1)] = False

    r, c = np.nonzero(mask)
    sigma = (sigmas[rows[r]] + sigmas[cols[c]]) / 2
    epsilon = np.sqrt(epsilons[rows[r]] * epsilons[cols[c]])
    ratio6 = (sigma / dists[r, c]) ** 6
    total += float(np.sum(4 * epsilon * (ratio6**2 - ratio6)))
  return total


def total_energy(molecule: Molecule) -> EnergyBreakdown:
  """Compute the bond and van der Waals energy of a molecule.

  Every atom pair that is not directly bonded gets a Lennard-Jones term, there
  is no special treatment of 1-3 or 1-4 neighbours. Runs in O(n^2) time, pair
  distances are evaluated in row blocks so memory grows linearly with n.

  Parameters:
    molecule: Molecule to evaluate

  Returns:
    Energy breakdown with ``bond``, ``vdw`` and ``total`` in kcal/mol

  """
  atoms = molecule.atoms
  bond_term = 0.0
  for bond in molecule.bonds:
    bond_term += bond_energy(atoms[bond.atom_index1], atoms[bond.atom_index2], bond)

  vdw_term = 0.0
  if len(atoms) > 1:
    params = [get_element(atom.element) for atom in atoms]
    sigmas = np.array([p.sigma for p in params])
    epsilons = np.array([p.epsilon for p in params])
    bonded = np.array(sorted(pair for pair in molecule.bonded_pairs() if pair[0] != pair[1]), dtype=int).reshape(-1, 2)
    vdw_term = _vdw_term(molecule.coords(), sigmas, epsilons, bonded)

  return EnergyBreakdown(bond=bond_term, vdw=vdw_term, total=bond_term + vdw_term)


### FORCES ###
def _bond_arrays(molecule: Molecule) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
  """Per-bond endpoint indices, equilibrium lengths and force constants."""
  idx1 = np.array([b.atom_index1 for b in molecule.bonds], dtype=int)
  idx2 = np.array([b.atom_index2 for b in molecule.bonds], dtype=int)
  radii = np.array([a.radius for a in molecule.atoms], dtype=float)
  eq_lengths = radii[idx1] + radii[idx2]
  k = BOND_FORCE_CONSTANT * np.array([b.order for b in molecule.bonds], dtype=float)
  return idx1, idx2, eq_lengths, k


def _bond_forces(coords: np.ndarray, idx1: np.ndarray, idx2: np.ndarray, eq_lengths: np.ndarray, k: np.ndarray) -> np.ndarray:
  delta = coords[idx2] - coords[idx1]
  dist = np.linalg.norm(delta, axis=1)
  active = dist >= MIN_FORCE_DISTANCE
  direction = delta / np.where(active, dist, 1.0)[:, np.newaxis]
  magnitude = np.where(active, k * (dist - eq_lengths), 0.0)
  pull = direction * magnitude[:, np.newaxis]

  forces = np.zeros_like(coords)
  np.add.at(forces, idx1, pull)
  np.add.at(forces, idx2, -pull)
  return forces


def bond_forces(molecule: Molecule) -> np.ndarray:
  """Spring forces ``k * (d - d0)`` along each bond axis, summed per atom.

  A stretched bond pulls its two atoms together, a compressed one pushes them
  apart. Bonds shorter than 0.01 angstroms are ignored. No clamping is applied.

  Returns:
    ``(N, 3)`` array of forces

  """
  coords = molecule.coords()
  if not molecule.bonds:
    return np.zeros_like(coords)
  return _bond_forces(coords, *_bond_arrays(molecule))


### MINIMIZATION ###
def minimize(molecule: Molecule, steps: int = DEFAULT_MINIMIZE_STEPS, step_size: float = DEFAULT_STEP_SIZE) -> Molecule:
  """Relax atom positions with force-clamped steepest descent.

  Each iteration computes bond forces only (van der Waals is left out even
  though :obj:`total_energy` reports it), scales any per-atom force longer
  than 10 down to length 10 and moves every atom by ``force * step_size``.
  There is no convergence test, exactly ``steps`` iterations run. The result is
  fully deterministic for a given input.

  Parameters:
    molecule: Starting structure, left untouched
    steps: Number of iterations
    step_size: Euler step multiplier

  Returns:
    New molecule with updated positions, every other field is shared

  Raises:
    ValueError: If ``steps`` is negative

  """
  if steps < 0:
    raise ValueError(f"Number of minimization steps must be non-negative, got {steps}")

  coords = molecule.coords()
  if molecule.bonds and steps:
    idx1, idx2, eq_lengths, k = _bond_arrays(molecule)
    for _ in range(steps):
      forces = _bond_forces(coords, idx1, idx2, eq_lengths, k)
      magnitudes = np.linalg.norm(forces, axis=1)
      scale = MAX_FORCE / np.maximum(magnitudes, MAX_FORCE)
      coords = coords + forces * scale[:, np.newaxis] * step_size
  return molecule.with_coords(coords)


def iter_minimize(
  molecule: Molecule,
  chunks: int = DEFAULT_RELAX_CHUNKS,
  chunk_size: int = DEFAULT_RELAX_CHUNK_SIZE,
  step_size: float = DEFAULT_RELAX_STEP_SIZE,
) -> Iterator[Molecule]:
  """Run :obj:`minimize` in chunks, yielding a snapshot after each chunk.

  Each snapshot is the input of the next chunk, so stopping the iteration
  early simply leaves the relaxation at the last yielded snapshot.

  Parameters:
    molecule: Starting structure
    chunks: Number of chunks to run
    chunk_size: Minimization steps per chunk
    step_size: Euler step multiplier

  Yields:
    The molecule after each chunk

  """
  if chunks < 0:
    raise ValueError(f"Number of chunks must be non-negative, got {chunks}")
  for chunk in range(chunks):
    molecule = minimize(molecule, steps=chunk_size, step_size=step_size)
    logger.debug(f"Finished minimization chunk {chunk + 1}/{chunks}")
    yield molecule


def relax(
  molecule: Molecule,
  chunks: int = DEFAULT_RELAX_CHUNKS,
  chunk_size: int = DEFAULT_RELAX_CHUNK_SIZE,
  step_size: float = DEFAULT_RELAX_STEP_SIZE,
  progress: bool = True,
) -> Molecule:
  """Relax a molecule chunk by chunk with a progress bar.

  Parameters:
    molecule: Starting structure
    chunks: Number of chunks to run
    chunk_size: Minimization steps per chunk
    step_size: Euler step multiplier
    progress: Show a tqdm progress bar

  Returns:
    The relaxed molecule

  """
  before = total_energy(molecule)
  logger.info(f"Relaxing {molecule.name} with {chunks * chunk_size:,} steepest-descent steps")
  result = molecule
  for result in tqdm(iter_minimize(molecule, chunks, chunk_size, step_size), desc="Minimizing", total=chunks, disable=not progress):
    pass
  after = total_energy(result)
  logger.info(f"Energy before: {before.total:.2f} kcal/mol, after: {after.total:.2f} kcal/mol")
  return result
