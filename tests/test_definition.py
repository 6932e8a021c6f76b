"""Tests for parsing plugin definitions."""

import pytest

from apm.definition import (
    VM,
    DefinitionKind,
    SemanticVersion,
    Subnet,
    parse_definition,
    parse_definition_path,
)
from apm.exceptions import InvalidDefinitionError

from fakes import subnet_doc, vm_doc


@pytest.mark.parametrize(
    ("path", "kind", "name"),
    [
        ("vms/foo.yaml", DefinitionKind.VM, "foo"),
        ("vm/foo.yml", DefinitionKind.VM, "foo"),
        ("subnets/bar.yaml", DefinitionKind.SUBNET, "bar"),
        ("subnet/bar.yaml", DefinitionKind.SUBNET, "bar"),
    ],
)
def test_parse_definition_path(path: str, kind: DefinitionKind, name: str) -> None:
    """Test the kind and name are read from the repository path."""
    parsed = parse_definition_path(path)
    assert parsed is not None
    assert parsed.kind == kind
    assert parsed.name == name
    assert parsed.path == path


@pytest.mark.parametrize(
    "path",
    [
        "README.md",
        "vms/foo.json",
        "vms/nested/foo.yaml",
        "other/foo.yaml",
        "foo.yaml",
    ],
)
def test_parse_non_definition_path(path: str) -> None:
    """Test files that are not definitions are ignored."""
    assert parse_definition_path(path) is None


def test_parse_vm() -> None:
    """Test parsing a VM definition document."""
    path = parse_definition_path("vms/foo.yaml")
    assert path is not None
    vm = parse_definition(path, vm_doc("foo", id="tGas3T58KzdjcJ2iKSyiYsWiqYctRXaPTqBCA11BqEkNg8kPc"))
    assert isinstance(vm, VM)
    assert vm.id == "tGas3T58KzdjcJ2iKSyiYsWiqYctRXaPTqBCA11BqEkNg8kPc"
    assert vm.alias == "foo"
    assert vm.install_script == "scripts/build.sh"
    assert vm.binary_path == "build/tGas3T58KzdjcJ2iKSyiYsWiqYctRXaPTqBCA11BqEkNg8kPc"
    assert vm.maintainers == ["dev@example.com"]
    assert vm.version == SemanticVersion(1, 0, 0)


def test_parse_vm_string_version() -> None:
    """Test a version may be written as a string."""
    vm = VM.parse_doc({"vm": {"id": "foo-id", "binaryPath": "foo", "version": "v1.7"}})
    assert vm.version == SemanticVersion(1, 7, 0)
    assert str(vm.version) == "v1.7.0"


@pytest.mark.parametrize(
    "doc",
    [
        {},
        {"vm": "foo"},
        {"vm": {"binaryPath": "foo"}},
        {"vm": {"id": "foo-id"}},
        {"vm": {"id": "foo-id", "binaryPath": "foo", "version": "latest"}},
        {"vm": {"id": "foo-id", "binaryPath": "foo", "version": [1]}},
        {"vm": {"id": "foo-id", "binaryPath": "foo", "maintainers": 5}},
        {"vm": {"id": "foo-id", "binaryPath": "foo", "maintainers": "bob"}},
    ],
)
def test_parse_invalid_vm(doc: dict) -> None:
    """Test VM documents with missing or malformed fields."""
    with pytest.raises(InvalidDefinitionError):
        VM.parse_doc(doc)


def test_parse_subnet() -> None:
    """Test parsing a Subnet definition document."""
    path = parse_definition_path("subnets/spaces.yaml")
    assert path is not None
    subnet = parse_definition(path, subnet_doc("spaces", ["foo", "bar"], id="subnet-id"))
    assert isinstance(subnet, Subnet)
    assert subnet.get_id() == "subnet-id"
    assert subnet.vms == ["foo", "bar"]


@pytest.mark.parametrize(
    "doc",
    [
        {"vm": {"id": "foo"}},
        {"subnet": {"vms": []}},
        {"subnet": {"id": "s", "vms": "foo"}},
        {"subnet": {"id": "s", "config": ["a"]}},
        {"subnet": {"id": "s", "maintainers": "bob"}},
    ],
)
def test_parse_invalid_subnet(doc: dict) -> None:
    """Test Subnet documents with missing or malformed fields."""
    with pytest.raises(InvalidDefinitionError):
        Subnet.parse_doc(doc)


@pytest.mark.parametrize(
    "content",
    [b"vm: [unclosed", b"- a\n- list\n", b""],
)
def test_parse_malformed_document(content: bytes) -> None:
    """Test documents that are not a yaml mapping."""
    path = parse_definition_path("vms/foo.yaml")
    assert path is not None
    with pytest.raises(InvalidDefinitionError, match="vms/foo.yaml"):
        parse_definition(path, content)


def test_vm_yaml_round_trip() -> None:
    """Test a definition serializes with its published field names."""
    vm = VM(id="foo-id", alias="foo", binary_path="build/foo", install_script="build.sh")
    content = vm.yaml()
    assert "binaryPath: build/foo" in content
    assert "installScript: build.sh" in content
    assert VM.parse_yaml(content) == vm


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("v1.2.3", SemanticVersion(1, 2, 3)),
        ("1.2", SemanticVersion(1, 2, 0)),
        ("3", SemanticVersion(3, 0, 0)),
    ],
)
def test_semantic_version(value: str, expected: SemanticVersion) -> None:
    """Test parsing and ordering of versions."""
    assert SemanticVersion.parse(value) == expected
    assert SemanticVersion(1, 2, 3) < SemanticVersion(1, 10, 0)
