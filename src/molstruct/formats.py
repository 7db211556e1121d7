"""
Provides parsers for PDB, SDF and MOL2 text and a PDB writer.

Every parser returns a :obj:`molstruct.structure.Molecule`. When a file carries
no explicit connectivity the bonds are inferred from interatomic distances.
"""

import math
import re
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Tuple, Union

from molstruct.bonds import infer_bonds
from molstruct.constants import DEFAULT_CHAIN_ID, LIGAND_RESIDUE_ID, LIGAND_RESIDUE_NAME
from molstruct.errors import MalformedInputError
from molstruct.log import logger
from molstruct.structure import Atom, Bond, IdFactory, Molecule, build_residues, new_id, normalize_element

MOL2_SECTION_TAG = "@<TRIPOS>"
# MOL2 bond type tokens that are not plain integers
MOL2_BOND_TYPES = {"ar": 2, "am": 1}
# SDF encodes aromatic bonds as order 4
SDF_AROMATIC_ORDER = 4
# file extension -> format name, anything else is read as PDB
EXTENSION_FORMATS = {
  ".pdb": "pdb",
  ".ent": "pdb",
  ".sdf": "sdf",
  ".mol": "sdf",
  ".mol2": "mol2",
}


### HELPERS ###
def _float_or(text: str, default: float) -> float:
  """Parse a float, returning ``default`` for blank, unparsable or non-finite text."""
  try:
    value = float(text)
  except ValueError:
    return default
  return value if math.isfinite(value) else default


def _int_or(text: str, default: Optional[int]) -> Optional[int]:
  try:
    return int(text.strip())
  except ValueError:
    return default


def _require_float(text: str, label: str) -> float:
  try:
    value = float(text)
  except ValueError as e:
    raise MalformedInputError(f"Could not parse {label} from {text!r}") from e
  if not math.isfinite(value):
    raise MalformedInputError(f"Expected a finite {label}, got {text!r}")
  return value


def _require_int(text: str, label: str) -> int:
  try:
    return int(text.strip())
  except ValueError as e:
    raise MalformedInputError(f"Could not parse {label} from {text!r}") from e


def _check_bond_indices(a1: int, a2: int, num_atoms: int, label: str):
  if not (0 <= a1 < num_atoms and 0 <= a2 < num_atoms):
    raise MalformedInputError(f"{label} references atoms {a1 + 1} and {a2 + 1} but only {num_atoms} atoms are defined")


def _fallback_bonds(atoms: List[Atom], bonds: List[Bond], fmt: str) -> List[Bond]:
  """Return ``bonds`` or, if there are none, bonds inferred from distances."""
  if bonds:
    return bonds
  logger.info(f"No explicit bonds found in {fmt} input, inferring connectivity from distances.")
  return infer_bonds(atoms)


def _pdb_element(line: str, atom_name: str) -> str:
  """Element column (77-78) or, when blank, the first letter of the
  atom name with digits removed.
  """
  element = line[76:78].strip()
  if not element:
    element = re.sub(r"[0-9]", "", atom_name)[:1]
  return normalize_element(element)


### PARSERS ###
def parse_pdb(text: str, name: str = "molecule", id_factory: IdFactory = new_id) -> Molecule:
  """Parse PDB formatted text.

  Reads ``HEADER``, ``TITLE``, ``ATOM``/``HETATM`` and ``CONECT`` records,
  everything else is ignored. Numeric atom columns that cannot be parsed or are not finite fall
  back to 0 (coordinates, residue number), 1.0 (occupancy) or 0.0 (b-factor).
  CONECT records only keep edges pointing to a higher atom serial so each
  undirected bond is stored once, targets beyond the atoms read so far are
  dropped. When no CONECT record yields a bond, bonds are inferred.

  Parameters:
    text: PDB file contents
    name: Name given to the resulting molecule
    id_factory: Callable returning a unique molecule id

  Returns:
    The parsed molecule

  """
  atoms: List[Atom] = []
  bonds: List[Bond] = []
  seen: Set[Tuple[int, int]] = set()
  metadata: Dict[str, str] = {}
  titles: List[str] = []

  for line in text.splitlines():
    record = line[0:6].strip()
    if record == "HEADER":
      metadata["header"] = line[10:50].strip()
    elif record == "TITLE":
      titles.append(line[10:].strip())
    elif record in ("ATOM", "HETATM"):
      atom_name = line[12:16].strip()
      atoms.append(
        Atom(
          id=len(atoms),
          element=_pdb_element(line, atom_name),
          name=atom_name,
          position=(_float_or(line[30:38], 0.0), _float_or(line[38:46], 0.0), _float_or(line[46:54], 0.0)),
          residue_name=line[17:20].strip(),
          residue_id=_int_or(line[22:26], 0),
          chain_id=line[21:22].strip() or DEFAULT_CHAIN_ID,
          occupancy=_float_or(line[54:60], 1.0),
          b_factor=_float_or(line[60:66], 0.0),
        )
      )
    elif record == "CONECT":
      source = _int_or(line[6:11], None)
      if source is None or not 1 <= source <= len(atoms):
        logger.warning(f"Skipping CONECT record with invalid source atom: {line.rstrip()!r}")
        continue
      source -= 1
      for i in range(11, len(line), 5):
        target = _int_or(line[i : i + 5], None)
        if target is None:
          continue
        target -= 1
        if source < target < len(atoms) and (source, target) not in seen:
          seen.add((source, target))
          bonds.append(Bond(id=len(bonds), atom_index1=source, atom_index2=target, order=1))

  if titles:
    metadata["title"] = " ".join(t for t in titles if t)

  bonds = _fallback_bonds(atoms, bonds, "PDB")
  residues, chains = build_residues(atoms)
  logger.debug(f"Parsed PDB {name}: {len(atoms):,} atoms, {len(bonds):,} bonds, {len(residues):,} residues")
  return Molecule(name=name, atoms=atoms, bonds=bonds, residues=residues, chains=chains, metadata=metadata, id=id_factory())


def parse_sdf(text: str, name: str = "molecule", id_factory: IdFactory = new_id) -> Molecule:
  """Parse the first record of an SDF / MOL (V2000) connection table.

  The first line is the molecule name (``name`` is used when it is blank) and
  the fourth line declares the atom and bond counts in 3-character fields.
  Atoms go into a single ``LIG`` residue on chain ``A``. Bond orders outside
  1-3 are mapped to 1, except aromatic (4) which becomes 2. Charges from
  ``M  CHG`` property lines are applied to the atoms.

  Parameters:
    text: SDF file contents
    name: Fallback name when the header line is blank
    id_factory: Callable returning a unique molecule id

  Returns:
    The parsed molecule

  Raises:
    MalformedInputError: If the header, counts line, atom block or bond block is missing or not numeric

  """
  lines = text.splitlines()
  if len(lines) < 4:
    raise MalformedInputError(f"SDF input has {len(lines)} lines but at least 4 are required")

  mol_name = lines[0].strip() or name
  counts_line = lines[3]
  if "V3000" in counts_line:
    raise MalformedInputError("V3000 connection tables are not supported")
  num_atoms = _require_int(counts_line[0:3], "SDF atom count")
  num_bonds = _require_int(counts_line[3:6], "SDF bond count")
  if num_atoms < 0 or num_bonds < 0:
    raise MalformedInputError(f"SDF counts line declares negative counts: {counts_line!r}")
  block_end = 4 + num_atoms + num_bonds
  if len(lines) < block_end:
    raise MalformedInputError(f"SDF declares {num_atoms} atoms and {num_bonds} bonds but only {len(lines) - 4} lines follow the counts line")

  atoms: List[Atom] = []
  for i in range(num_atoms):
    line = lines[4 + i]
    element = normalize_element(line[31:34])
    atoms.append(
      Atom(
        id=i,
        element=element,
        name=f"{element}{i + 1}",
        position=(
          _require_float(line[0:10], f"x coordinate of atom {i + 1}"),
          _require_float(line[10:20], f"y coordinate of atom {i + 1}"),
          _require_float(line[20:30], f"z coordinate of atom {i + 1}"),
        ),
      )
    )

  bonds: List[Bond] = []
  for i in range(num_bonds):
    line = lines[4 + num_atoms + i]
    a1 = _require_int(line[0:3], f"first atom of bond {i + 1}") - 1
    a2 = _require_int(line[3:6], f"second atom of bond {i + 1}") - 1
    _check_bond_indices(a1, a2, num_atoms, f"SDF bond {i + 1}")
    order = _int_or(line[6:9], 1)
    if order == SDF_AROMATIC_ORDER:
      order = 2
    elif order not in (1, 2, 3):
      order = 1
    bonds.append(Bond(id=i, atom_index1=a1, atom_index2=a2, order=order))

  # property block, only formal charges are read
  for line in lines[block_end:]:
    if line.startswith("M  END") or line.startswith("$$$$"):
      break
    if line.startswith("M  CHG"):
      tokens = line.split()
      try:
        entries = int(tokens[2])
        for k in range(entries):
          idx = int(tokens[3 + 2 * k]) - 1
          if not 0 <= idx < num_atoms:
            raise IndexError(idx)
          atoms[idx] = replace(atoms[idx], charge=float(tokens[4 + 2 * k]))
      except (IndexError, ValueError):
        logger.warning(f"Ignoring malformed charge line: {line.rstrip()!r}")

  bonds = _fallback_bonds(atoms, bonds, "SDF")
  residues, chains = build_residues(atoms)
  logger.debug(f"Parsed SDF {mol_name}: {len(atoms):,} atoms, {len(bonds):,} bonds")
  return Molecule(name=mol_name, atoms=atoms, bonds=bonds, residues=residues, chains=chains, metadata={"name": mol_name}, id=id_factory())


def parse_mol2(text: str, name: str = "molecule", id_factory: IdFactory = new_id) -> Molecule:
  """Parse Tripos MOL2 text.

  The text is split on ``@<TRIPOS>`` and the ``MOLECULE``, ``ATOM`` and
  ``BOND`` sections of the first molecule are read. Atom lines are
  ``id name x y z type [subst_id [subst_name [charge]]]`` and the element is
  the part of the atom type before the ``.``. Bond lines are
  ``id atom1 atom2 type`` where ``ar`` maps to order 2, ``am`` to 1 and
  anything else is read as an integer (1 when it is not one).

  Parameters:
    text: MOL2 file contents
    name: Fallback name when the molecule section has no name line
    id_factory: Callable returning a unique molecule id

  Returns:
    The parsed molecule

  Raises:
    MalformedInputError: If the MOLECULE or ATOM section is missing, or a count, coordinate or bond index is not numeric

  """
  molecule_section = None
  atom_section = None
  bond_section = None
  for section in text.split(MOL2_SECTION_TAG):
    if section.startswith("MOLECULE"):
      if molecule_section is not None:
        break  # start of a second molecule
      molecule_section = section
    elif section.startswith("ATOM") and atom_section is None:
      atom_section = section
    elif section.startswith("BOND") and bond_section is None:
      bond_section = section

  if molecule_section is None:
    raise MalformedInputError("MOL2 input has no @<TRIPOS>MOLECULE section")
  if atom_section is None:
    raise MalformedInputError("MOL2 input has no @<TRIPOS>ATOM section")

  mol_lines = molecule_section.splitlines()
  mol_name = (mol_lines[1].strip() if len(mol_lines) > 1 else "") or name
  declared_atoms = None
  if len(mol_lines) > 2 and mol_lines[2].strip():
    declared_atoms = _require_int(mol_lines[2].split()[0], "MOL2 atom count")

  atoms: List[Atom] = []
  for line in atom_section.splitlines()[1:]:
    parts = line.split()
    if not parts:
      continue
    if len(parts) < 6:
      logger.warning(f"Skipping short MOL2 atom line: {line.strip()!r}")
      continue
    i = len(atoms)
    atoms.append(
      Atom(
        id=i,
        element=normalize_element(parts[5].split(".")[0]),
        name=parts[1],
        position=(
          _require_float(parts[2], f"x coordinate of atom {i + 1}"),
          _require_float(parts[3], f"y coordinate of atom {i + 1}"),
          _require_float(parts[4], f"z coordinate of atom {i + 1}"),
        ),
        residue_id=_int_or(parts[6], LIGAND_RESIDUE_ID) if len(parts) > 6 else LIGAND_RESIDUE_ID,
        residue_name=parts[7] if len(parts) > 7 else LIGAND_RESIDUE_NAME,
        charge=_float_or(parts[8], 0.0) if len(parts) > 8 else 0.0,
      )
    )
  if declared_atoms is not None and declared_atoms != len(atoms):
    logger.warning(f"MOL2 molecule {mol_name} declares {declared_atoms} atoms but {len(atoms)} were read")

  bonds: List[Bond] = []
  for line in (bond_section or "").splitlines()[1:]:
    parts = line.split()
    if not parts:
      continue
    if len(parts) < 4:
      logger.warning(f"Skipping short MOL2 bond line: {line.strip()!r}")
      continue
    a1 = _require_int(parts[1], "MOL2 bond atom index") - 1
    a2 = _require_int(parts[2], "MOL2 bond atom index") - 1
    _check_bond_indices(a1, a2, len(atoms), f"MOL2 bond {parts[0]}")
    bond_type = parts[3].lower()
    order = MOL2_BOND_TYPES[bond_type] if bond_type in MOL2_BOND_TYPES else _int_or(bond_type, 1)
    if order not in (1, 2, 3):
      order = 1
    bonds.append(Bond(id=len(bonds), atom_index1=a1, atom_index2=a2, order=order))

  bonds = _fallback_bonds(atoms, bonds, "MOL2")
  residues, chains = build_residues(atoms)
  logger.debug(f"Parsed MOL2 {mol_name}: {len(atoms):,} atoms, {len(bonds):,} bonds, {len(residues):,} residues")
  return Molecule(name=mol_name, atoms=atoms, bonds=bonds, residues=residues, chains=chains, metadata={"name": mol_name}, id=id_factory())


PARSERS: Dict[str, Callable[..., Molecule]] = {
  "pdb": parse_pdb,
  "sdf": parse_sdf,
  "mol2": parse_mol2,
}


### WRITERS ###
def write_pdb(molecule: Molecule) -> str:
  """Build PDB text for a molecule.

  Writes a ``HEADER`` line with the molecule name, one ``ATOM`` line per atom,
  one ``CONECT`` line per bond (lower serial first) and ``END``.

  NOTE: CONECT records carry no bond order, so reading the output back with
  :obj:`parse_pdb` turns every double or triple bond into a single bond.

  Parameters:
    molecule: Molecule to encode

  Returns:
    PDB text ending in a newline

  """
  lines = [f"HEADER    {molecule.name}"]
  for i, atom in enumerate(molecule.atoms):
    x, y, z = atom.position
    lines.append(
      "ATOM  "
      f"{i + 1:5d} "
      f"{atom.name[:4]:<4s} "
      f"{atom.residue_name[:3]:>3s} "
      f"{(atom.chain_id or ' ')[:1]}"
      f"{atom.residue_id:4d}"
      "    "
      f"{x:8.3f}{y:8.3f}{z:8.3f}"
      f"{atom.occupancy:6.2f}{atom.b_factor:6.2f}"
      "          "
      f"{atom.element[:2]:>2s}"
    )
  for bond in molecule.bonds:
    a1, a2 = bond.pair
    lines.append(f"CONECT{a1 + 1:5d}{a2 + 1:5d}")
  lines.append("END")
  return "\n".join(lines) + "\n"


### FUNCTIONS ###
def detect_format(filename: str) -> str:
  """Guess the structure format from a file name, defaulting to ``"pdb"``."""
  return EXTENSION_FORMATS.get(Path(filename).suffix.lower(), "pdb")


def parse_structure(text: str, fmt: str = "pdb", name: str = "molecule", id_factory: IdFactory = new_id) -> Molecule:
  """Parse structure text in any supported format.

  Parameters:
    text: File contents
    fmt: One of ``"pdb"``, ``"sdf"`` or ``"mol2"``
    name: Default molecule name
    id_factory: Callable returning a unique molecule id

  Returns:
    The parsed molecule

  Raises:
    ValueError: If ``fmt`` is not a supported format

  """
  fmt = fmt.lower()
  if fmt not in PARSERS:
    raise ValueError(f'Unsupported structure format "{fmt}", expected one of {", ".join(PARSERS)}')
  return PARSERS[fmt](text, name, id_factory=id_factory)


def load_structure(fpath: Union[str, Path], fmt: str = "auto", id_factory: IdFactory = new_id) -> Molecule:
  """Read a structure file from disk.

  The molecule is named after the file name without its extension.

  Parameters:
    fpath: Path to a PDB, SDF/MOL or MOL2 file
    fmt: Format name or ``"auto"`` to infer it from the extension (unknown extensions are read as PDB)
    id_factory: Callable returning a unique molecule id

  Returns:
    The parsed molecule

  """
  fpath = Path(fpath)
  if fmt == "auto":
    fmt = detect_format(fpath.name)
  logger.debug(f"Loading {fpath} as {fmt}")
  with open(fpath) as f:
    text = f.read()
  return parse_structure(text, fmt, name=fpath.stem, id_factory=id_factory)
