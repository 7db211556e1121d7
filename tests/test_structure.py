# tests/test_structure.py
from pathlib import Path

import numpy as np
import pytest

from molstruct.constants import DEFAULT_ELEMENT, ELEMENT_DATA
from molstruct.formats import parse_pdb
from molstruct.structure import (
  Atom,
  Bond,
  Molecule,
  build_residues,
  get_element,
  new_id,
  normalize_element,
)

HERE = Path(__file__).resolve().parent
FILES = HERE / "files"


@pytest.fixture(scope="module")
def caffeine() -> Molecule:
  return parse_pdb((FILES / "caffeine.pdb").read_text(), "Caffeine")


# -----------------------------
# element table
# -----------------------------


@pytest.mark.parametrize(
  "raw,expected",
  [("CL", "Cl"), ("cl", "Cl"), (" fe ", "Fe"), ("C", "C"), ("", "")],
)
def test_normalize_element(raw, expected):
  assert normalize_element(raw) == expected


def test_get_element_known():
  assert get_element("CL") is ELEMENT_DATA["Cl"]
  assert get_element("o").radius == 0.66


def test_get_element_unknown_uses_default():
  record = get_element("Xx")
  assert record is DEFAULT_ELEMENT
  assert record.radius == 1.0
  assert record.color == "#FF69B4"
  assert record.mass == 1.0


def test_new_id_unique():
  assert len({new_id() for _ in range(50)}) == 50


# -----------------------------
# Atom / Bond
# -----------------------------


def test_atom_derives_display_fields():
  atom = Atom(id=0, element="O", name="O1", position=[1, 2, 3])
  assert atom.radius == 0.66
  assert atom.color == "#FF0D0D"
  assert atom.position == (1.0, 2.0, 3.0)
  assert isinstance(atom.position[0], float)
  assert atom.mass == pytest.approx(16.0)
  assert (atom.residue_name, atom.residue_id, atom.chain_id) == ("LIG", 1, "A")


def test_atom_keeps_explicit_display_fields():
  atom = Atom(id=0, element="O", name="O1", position=(0, 0, 0), radius=2.0, color="#000000")
  assert atom.radius == 2.0
  assert atom.color == "#000000"


def test_bond_pair_is_ordered():
  assert Bond(id=0, atom_index1=4, atom_index2=2).pair == (2, 4)


# -----------------------------
# Molecule
# -----------------------------


def test_molecule_rejects_mismatched_atom_ids():
  atoms = [Atom(id=1, element="C", name="C1", position=(0, 0, 0))]
  with pytest.raises(ValueError):
    Molecule(name="bad", atoms=atoms)


def test_molecule_rejects_dangling_bonds():
  atoms = [Atom(id=0, element="C", name="C1", position=(0, 0, 0))]
  with pytest.raises(ValueError):
    Molecule(name="bad", atoms=atoms, bonds=[Bond(id=0, atom_index1=0, atom_index2=1)])


def test_molecule_basics(caffeine):
  assert len(caffeine) == 14
  assert isinstance(caffeine.atoms, tuple)
  assert "Atoms=14" in repr(caffeine)
  assert caffeine.coords().shape == (14, 3)
  assert caffeine.formula() == "C8N4O2"
  assert caffeine.total_mass() == pytest.approx(8 * 12.01 + 4 * 14.01 + 2 * 16.00)


def test_molecule_formula_without_carbon():
  atoms = [
    Atom(id=0, element="O", name="O", position=(0, 0, 0)),
    Atom(id=1, element="H", name="H1", position=(0.96, 0, 0)),
    Atom(id=2, element="H", name="H2", position=(-0.24, 0.93, 0)),
  ]
  assert Molecule(name="water", atoms=atoms).formula() == "H2O"


def test_molecule_center_of_mass():
  atoms = [
    Atom(id=0, element="C", name="C1", position=(0, 0, 0)),
    Atom(id=1, element="C", name="C2", position=(2, 0, 0)),
  ]
  assert Molecule(name="cc", atoms=atoms).center_of_mass() == pytest.approx([1.0, 0.0, 0.0])
  with pytest.raises(ValueError):
    Molecule(name="empty", atoms=()).center_of_mass()


def test_molecule_with_coords(caffeine):
  shifted = caffeine.with_coords(caffeine.coords() + 1.0)
  assert shifted.id == caffeine.id
  assert shifted.bonds == caffeine.bonds
  assert shifted.atoms[0].position == pytest.approx((2.32, 1.53, 1.0))
  assert caffeine.atoms[0].position == pytest.approx((1.32, 0.53, 0.0))
  with pytest.raises(ValueError):
    caffeine.with_coords(np.zeros((3, 3)))


def test_molecule_to_df(caffeine):
  df = caffeine.to_df()
  assert list(df.columns) == [
    "atom",
    "atom_name",
    "element",
    "chain",
    "res_id",
    "res_name",
    "x",
    "y",
    "z",
    "occupancy",
    "bfactor",
    "charge",
    "mass",
  ]
  assert len(df) == 14
  assert df.iloc[0]["atom_name"] == "N1"
  assert df["element"].value_counts()["C"] == 8


# -----------------------------
# build_residues
# -----------------------------


def test_build_residues_first_seen_order():
  atoms = [
    Atom(id=0, element="C", name="CA", position=(0, 0, 0), residue_name="ALA", residue_id=1, chain_id="A"),
    Atom(id=1, element="C", name="CA", position=(4, 0, 0), residue_name="GLY", residue_id=2, chain_id="A"),
    Atom(id=2, element="C", name="CA", position=(8, 0, 0), residue_name="SER", residue_id=1, chain_id="B"),
    Atom(id=3, element="C", name="CB", position=(0, 1, 0), residue_name="ALA", residue_id=1, chain_id="A"),
  ]
  residues, chains = build_residues(atoms)
  assert [(r.chain_id, r.id, r.name, r.atoms) for r in residues] == [
    ("A", 1, "ALA", (0, 3)),
    ("A", 2, "GLY", (1,)),
    ("B", 1, "SER", (2,)),
  ]
  assert [(c.id, c.residues) for c in chains] == [("A", (1, 2)), ("B", (1,))]


def test_build_residues_empty():
  assert build_residues([]) == ((), ())
