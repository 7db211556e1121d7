"""
Provides functions for fetching chemical structures and converting them to and from RDKit.
"""

import urllib.parse
from dataclasses import replace
from typing import Optional

import requests
from rdkit import Chem
from rdkit.Geometry import Point3D

from molstruct.bonds import infer_bonds
from molstruct.constants import CAFFEINE_PDB, PUBCHEM_BASE_URL, REQUEST_TIMEOUT, USER_AGENT
from molstruct.errors import NotFoundError, TransportError
from molstruct.formats import parse_pdb, parse_sdf
from molstruct.log import logger
from molstruct.structure import Atom, Bond, IdFactory, Molecule, build_residues, new_id

RDKIT_BOND_TYPES = {
  1: Chem.BondType.SINGLE,
  2: Chem.BondType.DOUBLE,
  3: Chem.BondType.TRIPLE,
}


### REMOTE LOOKUP ###
def _get(url: str, timeout: float) -> requests.Response:
  try:
    return requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
  except requests.RequestException as e:
    raise TransportError(f"Request to {url} failed: {e}") from e


def _is_ok(r: requests.Response) -> bool:
  return 200 <= r.status_code < 300


def fetch_pubchem(query: str, timeout: float = REQUEST_TIMEOUT, id_factory: IdFactory = new_id) -> Molecule:
  """Look up a compound on PubChem by name and return its structure.

  The name is first resolved to a PubChem CID. Then the 3D SDF record of that
  CID is fetched; if PubChem has no 3D conformer the 2D record is fetched
  instead, once.

  Parameters:
    query: Free text compound name, e.g. ``"caffeine"``
    timeout: Timeout in seconds for each HTTP request
    id_factory: Callable returning a unique molecule id

  Returns:
    The parsed molecule, with ``source`` (``"PubChem"`` or ``"PubChem (2D)"``)
    and ``cid`` stored in its metadata

  Raises:
    NotFoundError: If the name matches no compound or no structure record exists
    TransportError: If a request fails or PubChem answers with an unexpected error

  External Resources:
    - PUG REST documentation: https://pubchem.ncbi.nlm.nih.gov/docs/pug-rest

  """
  logger.info(f'Searching PubChem for "{query}"')
  url = f"{PUBCHEM_BASE_URL}/compound/name/{urllib.parse.quote(query, safe='')}/cids/JSON"
  r = _get(url, timeout)
  if r.status_code == 404:
    raise NotFoundError(f'Molecule "{query}" not found on PubChem')
  if not _is_ok(r):
    raise TransportError(f'PubChem search for "{query}" failed with status code {r.status_code}')
  try:
    cids = r.json().get("IdentifierList", {}).get("CID", [])
  except ValueError as e:
    raise TransportError(f'PubChem returned an unreadable response for "{query}"') from e
  if not cids:
    raise NotFoundError(f'No results found for "{query}"')
  cid = cids[0]
  logger.debug(f'Resolved "{query}" to PubChem CID {cid}')

  source = "PubChem"
  r = _get(f"{PUBCHEM_BASE_URL}/compound/cid/{cid}/SDF?record_type=3d", timeout)
  if not _is_ok(r):
    logger.warning(f"No 3D structure available for CID {cid} (status code {r.status_code}), falling back to 2D.")
    source = "PubChem (2D)"
    r = _get(f"{PUBCHEM_BASE_URL}/compound/cid/{cid}/SDF?record_type=2d", timeout)
    if r.status_code == 404:
      raise NotFoundError(f'Could not fetch structure for "{query}" (CID: {cid})')
    if not _is_ok(r):
      raise TransportError(f'Fetching structure for "{query}" (CID: {cid}) failed with status code {r.status_code}')

  mol = parse_sdf(r.text, query, id_factory=id_factory)
  return replace(mol, metadata={**mol.metadata, "source": source, "cid": str(cid)})


### RDKIT INTEROP ###
def to_rdkit(molecule: Molecule) -> Chem.Mol:
  """Convert a molecule to an RDKit molecule with a single conformer.

  Bond orders map to single/double/triple bonds. No hydrogens are added and the
  molecule is not sanitized. Elements RDKit does not know become dummy atoms.

  Parameters:
    molecule: Molecule to convert

  Returns:
    RDKit molecule named after the input

  """
  rw = Chem.RWMol()
  for atom in molecule.atoms:
    try:
      rd_atom = Chem.Atom(atom.element)
    except (RuntimeError, ValueError):
      logger.warning(f'RDKit does not know element "{atom.element}" of atom {atom.id + 1}, using a dummy atom.')
      rd_atom = Chem.Atom(0)
    rd_atom.SetNoImplicit(True)
    rd_atom.SetFormalCharge(int(round(atom.charge)))
    rw.AddAtom(rd_atom)
  for bond in molecule.bonds:
    rw.AddBond(bond.atom_index1, bond.atom_index2, RDKIT_BOND_TYPES.get(bond.order, Chem.BondType.SINGLE))

  conf = Chem.Conformer(len(molecule.atoms))
  for i, atom in enumerate(molecule.atoms):
    conf.SetAtomPosition(i, Point3D(*atom.position))

  mol = rw.GetMol()
  mol.AddConformer(conf, assignId=True)
  mol.SetProp("_Name", molecule.name)
  mol.UpdatePropertyCache(strict=False)
  return mol


def from_rdkit(mol: Chem.Mol, name: Optional[str] = None, id_factory: IdFactory = new_id) -> Molecule:
  """Convert an RDKit molecule with 3D coordinates to a molecule.

  Aromatic bonds become order 2. Atoms are put in a single ``LIG`` residue on
  chain ``A``. When the RDKit molecule has no bonds they are inferred from
  distances.

  Parameters:
    mol: RDKit molecule, must have at least one conformer
    name: Molecule name, defaults to the ``_Name`` property
    id_factory: Callable returning a unique molecule id

  Returns:
    The converted molecule

  Raises:
    ValueError: If ``mol`` has no conformer

  """
  if mol.GetNumConformers() == 0:
    raise ValueError("RDKit molecule has no conformer, embed it before converting.")
  if name is None:
    name = mol.GetProp("_Name") if mol.HasProp("_Name") else ""
  name = name or "molecule"

  conf = mol.GetConformer()
  atoms = []
  for rd_atom in mol.GetAtoms():
    idx = rd_atom.GetIdx()
    pos = conf.GetAtomPosition(idx)
    symbol = rd_atom.GetSymbol()
    atoms.append(
      Atom(
        id=idx,
        element=symbol,
        name=f"{symbol}{idx + 1}",
        position=(pos.x, pos.y, pos.z),
        charge=float(rd_atom.GetFormalCharge()),
      )
    )

  bonds = []
  for rd_bond in mol.GetBonds():
    if rd_bond.GetIsAromatic():
      order = 2
    else:
      order = int(rd_bond.GetBondTypeAsDouble())
      if order not in (1, 2, 3):
        order = 1
    bonds.append(Bond(id=len(bonds), atom_index1=rd_bond.GetBeginAtomIdx(), atom_index2=rd_bond.GetEndAtomIdx(), order=order))
  if not bonds:
    logger.info("RDKit molecule has no bonds, inferring connectivity from distances.")
    bonds = infer_bonds(atoms)

  residues, chains = build_residues(atoms)
  return Molecule(name=name, atoms=atoms, bonds=bonds, residues=residues, chains=chains, metadata={"name": name}, id=id_factory())


### DEMO ###
def load_demo(id_factory: IdFactory = new_id) -> Molecule:
  """Returns the bundled 14-atom caffeine structure with explicit connectivity."""
  return parse_pdb(CAFFEINE_PDB, "Caffeine", id_factory=id_factory)
