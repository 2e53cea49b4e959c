"""Test loading declarations from files."""

import json
from pathlib import Path

import pytest

from stackdeploy.errors import DeclarationError
from stackdeploy.loader import load_resources, parse_resources, read_document
from stackdeploy.scheduler import plan_resources

DECLARATIONS = Path(__file__).resolve().parent.parent / "declarations"


def test_load_bundled_toml():
    specs = load_resources(DECLARATIONS / "gateway.toml")
    assert [s.id for s in specs] == ["rg", "storage", "keyvault", "gateway"]
    assert specs[3].depends_on == ("storage", "keyvault")
    assert specs[1].properties["account_tier"] == "Standard"
    assert plan_resources(specs).order == ["rg", "storage", "keyvault", "gateway"]


def test_load_json_object(tmp_path):
    path = tmp_path / "stack.json"
    path.write_text(json.dumps({"resources": [
        {"id": "rg", "type": "resource_group"},
        {"id": "sa", "type": "storage", "depends_on": ["rg"], "properties": {"tier": "Standard"}},
    ]}))
    specs = load_resources(path)
    assert specs[1].depends_on == ("rg",)
    assert specs[1].properties == {"tier": "Standard"}


def test_load_json_list(tmp_path):
    path = tmp_path / "stack.json"
    path.write_text(json.dumps([{"id": "rg", "type": "resource_group"}]))
    assert [s.id for s in load_resources(path)] == ["rg"]


def test_document_without_resources(tmp_path):
    path = tmp_path / "empty.toml"
    path.write_text('[stack]\nprefix = "acme"\n')
    assert read_document(path)["stack"] == {"prefix": "acme"}
    assert load_resources(path) == []


def test_missing_file(tmp_path):
    with pytest.raises(DeclarationError, match="Cannot read"):
        load_resources(tmp_path / "nope.json")


def test_unsupported_suffix(tmp_path):
    path = tmp_path / "stack.yaml"
    path.write_text("resources: []")
    with pytest.raises(DeclarationError, match="Unsupported"):
        load_resources(path)


def test_malformed_json(tmp_path):
    path = tmp_path / "stack.json"
    path.write_text("{not json")
    with pytest.raises(DeclarationError, match="Cannot parse"):
        load_resources(path)


def test_malformed_toml(tmp_path):
    path = tmp_path / "stack.toml"
    path.write_text("[[resources]\nid = ")
    with pytest.raises(DeclarationError, match="Cannot parse"):
        load_resources(path)


def test_scalar_document(tmp_path):
    path = tmp_path / "stack.json"
    path.write_text("42")
    with pytest.raises(DeclarationError, match="expected an object"):
        load_resources(path)


def test_invalid_entry_names_position():
    with pytest.raises(DeclarationError, match=r"resource #2 is invalid \(type"):
        parse_resources([{"id": "rg", "type": "resource_group"}, {"id": "sa"}])


def test_resources_must_be_list():
    with pytest.raises(DeclarationError, match="must be a list"):
        parse_resources({"id": "rg"})
