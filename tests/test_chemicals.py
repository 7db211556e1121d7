# tests/test_chemicals.py
import json
from pathlib import Path

import pytest
import requests
from rdkit import Chem

from molstruct.chemicals import fetch_pubchem, from_rdkit, load_demo, to_rdkit
from molstruct.errors import NotFoundError, TransportError
from molstruct.formats import parse_mol2, parse_pdb, parse_sdf

HERE = Path(__file__).resolve().parent
FILES = HERE / "files"


class _MockResp:
  def __init__(self, text="", status_code=200):
    self.text = text
    self.content = text.encode()
    self.status_code = status_code

  def json(self):
    return json.loads(self.text)


def _cid_response(cids):
  return _MockResp(json.dumps({"IdentifierList": {"CID": cids}}))


@pytest.fixture(scope="module")
def ethanol_sdf() -> str:
  return (FILES / "ethanol.sdf").read_text()


# -----------------------------
# fetch_pubchem
# -----------------------------


def test_fetch_pubchem_3d(monkeypatch, ethanol_sdf):
  calls = []

  def fake_get(url, **kwargs):
    calls.append(url)
    assert kwargs["timeout"] == 5
    assert "User-Agent" in kwargs["headers"]
    if url.endswith("/compound/name/ethanol/cids/JSON"):
      return _cid_response([702, 12345])
    if url.endswith("/compound/cid/702/SDF?record_type=3d"):
      return _MockResp(ethanol_sdf)
    raise AssertionError(f"unexpected url {url}")

  monkeypatch.setattr("molstruct.chemicals.requests.get", fake_get)
  mol = fetch_pubchem("ethanol", timeout=5)
  assert len(calls) == 2
  assert mol.name == "ethanol"
  assert len(mol.atoms) == 9
  assert mol.metadata["source"] == "PubChem"
  assert mol.metadata["cid"] == "702"


def test_fetch_pubchem_falls_back_to_2d(monkeypatch, ethanol_sdf):
  def fake_get(url, **kwargs):
    if "/cids/JSON" in url:
      return _cid_response([702])
    if url.endswith("record_type=3d"):
      return _MockResp("not found", 404)
    if url.endswith("record_type=2d"):
      return _MockResp(ethanol_sdf)
    raise AssertionError(f"unexpected url {url}")

  monkeypatch.setattr("molstruct.chemicals.requests.get", fake_get)
  mol = fetch_pubchem("ethanol", id_factory=lambda: "pubchem-1")
  assert mol.metadata["source"] == "PubChem (2D)"
  assert mol.id == "pubchem-1"


def test_fetch_pubchem_quotes_query(monkeypatch, ethanol_sdf):
  seen = []

  def fake_get(url, **kwargs):
    seen.append(url)
    if "/cids/JSON" in url:
      return _cid_response([1])
    return _MockResp(ethanol_sdf)

  monkeypatch.setattr("molstruct.chemicals.requests.get", fake_get)
  fetch_pubchem("acetic acid/ester")
  assert "/compound/name/acetic%20acid%2Fester/cids/JSON" in seen[0]


def test_fetch_pubchem_unknown_name(monkeypatch):
  monkeypatch.setattr("molstruct.chemicals.requests.get", lambda url, **kwargs: _MockResp("", 404))
  with pytest.raises(NotFoundError):
    fetch_pubchem("definitely-not-a-molecule")


def test_fetch_pubchem_empty_cid_list(monkeypatch):
  monkeypatch.setattr("molstruct.chemicals.requests.get", lambda url, **kwargs: _cid_response([]))
  with pytest.raises(NotFoundError):
    fetch_pubchem("nothing")


def test_fetch_pubchem_no_structure_at_all(monkeypatch):
  def fake_get(url, **kwargs):
    if "/cids/JSON" in url:
      return _cid_response([42])
    return _MockResp("", 404)

  monkeypatch.setattr("molstruct.chemicals.requests.get", fake_get)
  with pytest.raises(NotFoundError):
    fetch_pubchem("ghost")


@pytest.mark.parametrize("status", [500, 503])
def test_fetch_pubchem_server_error(monkeypatch, status):
  monkeypatch.setattr("molstruct.chemicals.requests.get", lambda url, **kwargs: _MockResp("", status))
  with pytest.raises(TransportError):
    fetch_pubchem("caffeine")


def test_fetch_pubchem_bad_json(monkeypatch):
  monkeypatch.setattr("molstruct.chemicals.requests.get", lambda url, **kwargs: _MockResp("<html>"))
  with pytest.raises(TransportError):
    fetch_pubchem("caffeine")


def test_fetch_pubchem_connection_error(monkeypatch):
  def fake_get(url, **kwargs):
    raise requests.ConnectionError("offline")

  monkeypatch.setattr("molstruct.chemicals.requests.get", fake_get)
  with pytest.raises(TransportError):
    fetch_pubchem("caffeine")


# -----------------------------
# RDKit interop
# -----------------------------


def test_to_rdkit_caffeine():
  mol = load_demo()
  rd = to_rdkit(mol)
  assert rd.GetNumAtoms() == 14
  assert rd.GetNumBonds() == 15
  assert rd.GetProp("_Name") == "Caffeine"
  pos = rd.GetConformer().GetAtomPosition(0)
  assert (pos.x, pos.y, pos.z) == pytest.approx((1.32, 0.53, 0.0))
  assert [a.GetSymbol() for a in rd.GetAtoms()][:3] == ["N", "C", "N"]


def test_to_rdkit_keeps_bond_orders_and_charges(ethanol_sdf):
  benzene_text = (FILES / "benzene.mol2").read_text()
  rd = to_rdkit(parse_mol2(benzene_text))
  orders = sorted(b.GetBondTypeAsDouble() for b in rd.GetBonds())
  assert orders == [1.0] * 6 + [2.0] * 6

  charged = ethanol_sdf.replace("M  END", "M  CHG  1   3  -1\nM  END")
  rd = to_rdkit(parse_sdf(charged))
  assert rd.GetAtomWithIdx(2).GetFormalCharge() == -1


def test_from_rdkit_ethanol():
  rd = Chem.SDMolSupplier(str(FILES / "ethanol.sdf"), removeHs=False)[0]
  mol = from_rdkit(rd, id_factory=lambda: "rd-1")
  assert mol.id == "rd-1"
  assert mol.name == "ethanol"
  assert len(mol.atoms) == 9
  assert len(mol.bonds) == 8
  assert mol.formula() == "C2H6O"
  assert mol.atoms[2].position == pytest.approx((2.0, 1.34, 0.0))


def test_from_rdkit_requires_conformer():
  with pytest.raises(ValueError):
    from_rdkit(Chem.MolFromSmiles("CCO"))


def test_rdkit_round_trip_caffeine():
  mol = load_demo()
  back = from_rdkit(to_rdkit(mol))
  assert back.name == "Caffeine"
  assert back.bonded_pairs() == mol.bonded_pairs()
  for a, b in zip(mol.atoms, back.atoms):
    assert a.element == b.element
    assert b.position == pytest.approx(a.position)


# -----------------------------
# load_demo
# -----------------------------


def test_load_demo_matches_fixture():
  demo = load_demo(id_factory=lambda: "demo")
  fixture = parse_pdb((FILES / "caffeine.pdb").read_text(), "Caffeine")
  assert demo.id == "demo"
  assert demo.name == "Caffeine"
  assert demo.metadata["header"] == "DEMO MOLECULE - CAFFEINE"
  assert len(demo.atoms) == 14
  assert demo.bonded_pairs() == fixture.bonded_pairs()
  assert [a.position for a in demo.atoms] == [a.position for a in fixture.atoms]
