"""Representation of the plugin definitions published by a plugin repository.

A plugin repository contains one YAML document per plugin, laid out as:

```
vms/<name>.yaml       # a single top-level `vm:` mapping
subnets/<name>.yaml   # a single top-level `subnet:` mapping
```

Definitions are parsed from the raw document with `parse_doc` and are then
serialized into the registry as part of a `apm.store.records.Definition`.
"""

from dataclasses import dataclass, field
from enum import StrEnum
import hashlib
import logging
from pathlib import PurePosixPath
from typing import Any, ClassVar

from mashumaro import DataClassDictMixin, field_options
from mashumaro.codecs.yaml import yaml_decode, yaml_encode
from mashumaro.config import BaseConfig
import yaml

from .exceptions import InvalidDefinitionError

__all__ = [
    "DefinitionKind",
    "SemanticVersion",
    "VM",
    "Subnet",
    "DefinitionPath",
    "parse_definition_path",
    "parse_definition",
]

_LOGGER = logging.getLogger(__name__)

VM_KEY = "vm"
SUBNET_KEY = "subnet"
DEFINITION_SUFFIXES = {".yaml", ".yml"}


class DefinitionKind(StrEnum):
    """The kind of a definition published by a plugin repository."""

    VM = "vm"
    SUBNET = "subnet"


# Directories holding each kind of definition. The plural form is the layout
# used by published repositories and the singular form is accepted as well.
KIND_DIRECTORIES: dict[str, DefinitionKind] = {
    "vms": DefinitionKind.VM,
    "vm": DefinitionKind.VM,
    "subnets": DefinitionKind.SUBNET,
    "subnet": DefinitionKind.SUBNET,
}


@dataclass(frozen=True, order=True)
class SemanticVersion(DataClassDictMixin):
    """A semantic version of a plugin."""

    major: int = 0
    minor: int = 0
    patch: int = 0

    def __str__(self) -> str:
        return f"v{self.major}.{self.minor}.{self.patch}"

    @classmethod
    def parse(cls, value: str) -> "SemanticVersion":
        """Parse a version string such as `v1.2.3` or `1.2`."""
        parts = value.strip().removeprefix("v").split(".")
        if not 1 <= len(parts) <= 3 or not all(p.isdigit() for p in parts):
            raise ValueError(f"Invalid semantic version: {value!r}")
        numbers = [int(p) for p in parts] + [0] * (3 - len(parts))
        return cls(major=numbers[0], minor=numbers[1], patch=numbers[2])


@dataclass
class BaseDefinition(DataClassDictMixin):
    """Base class for all definitions."""

    kind: ClassVar[DefinitionKind]

    id: str
    """The id of the plugin on the network."""

    alias: str
    """A human readable name of the plugin."""

    homepage: str = ""
    """The homepage of the plugin project."""

    description: str = ""
    """A short description of the plugin."""

    maintainers: list[str] = field(default_factory=list)
    """Contact information for the maintainers."""

    def get_id(self) -> str:
        """Return the network identifier for this definition."""
        return self.id

    def yaml(self) -> str:
        """Return a YAML string representation of the definition."""
        return yaml_encode(self, self.__class__)  # type: ignore[return-value]

    def digest(self) -> str:
        """Return the sha256 of the serialized definition."""
        return hashlib.sha256(self.yaml().encode("utf-8")).hexdigest()

    @classmethod
    def parse_yaml(cls, content: str) -> "BaseDefinition":
        """Parse a serialized definition."""
        return yaml_decode(content, cls)

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True
        allow_deserialization_not_by_alias = True


@dataclass
class VM(BaseDefinition):
    """A virtual machine that can be installed into the plugin directory."""

    kind: ClassVar[DefinitionKind] = DefinitionKind.VM

    install_script: str = field(
        default="", metadata=field_options(alias="installScript")
    )
    """Script run inside the extracted archive to build the binary."""

    binary_path: str = field(default="", metadata=field_options(alias="binaryPath"))
    """Path of the built binary relative to the extracted archive."""

    url: str = ""
    """URL of the archive containing the plugin sources or binary."""

    sha256: str = ""
    """Expected sha256 checksum of the archive."""

    version: SemanticVersion = field(default_factory=SemanticVersion)
    """Version of the plugin."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "VM":
        """Parse a VM from a raw definition document."""
        if not isinstance(body := doc.get(VM_KEY), dict):
            raise InvalidDefinitionError(f"Invalid {cls.__name__} missing vm: {doc}")
        if not (vm_id := body.get("id")):
            raise InvalidDefinitionError(f"Invalid {cls.__name__} missing vm.id: {doc}")
        if not body.get("binaryPath"):
            raise InvalidDefinitionError(
                f"Invalid {cls.__name__} missing vm.binaryPath: {doc}"
            )
        version = body.get("version") or {}
        try:
            if isinstance(version, str):
                parsed_version = SemanticVersion.parse(version)
            elif isinstance(version, dict):
                parsed_version = SemanticVersion.from_dict(version)
            else:
                raise ValueError("expected a string or a mapping")
        except (ValueError, TypeError, LookupError) as err:
            raise InvalidDefinitionError(
                f"Invalid {cls.__name__} vm.version {version!r}: {err}"
            ) from err
        return cls(
            id=str(vm_id),
            alias=str(body.get("alias") or ""),
            homepage=str(body.get("homepage") or ""),
            description=str(body.get("description") or ""),
            maintainers=_string_list(cls, body, VM_KEY, "maintainers", doc),
            install_script=str(body.get("installScript") or ""),
            binary_path=str(body["binaryPath"]),
            url=str(body.get("url") or ""),
            sha256=str(body.get("sha256") or ""),
            version=parsed_version,
        )


@dataclass
class Subnet(BaseDefinition):
    """A subnet and the virtual machines it needs to validate."""

    kind: ClassVar[DefinitionKind] = DefinitionKind.SUBNET

    vms: list[str] = field(default_factory=list)
    """Names of the VMs, published in the same repository, run by the subnet."""

    config: dict[str, Any] = field(default_factory=dict)
    """Free form subnet configuration."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "Subnet":
        """Parse a Subnet from a raw definition document."""
        if not isinstance(body := doc.get(SUBNET_KEY), dict):
            raise InvalidDefinitionError(
                f"Invalid {cls.__name__} missing subnet: {doc}"
            )
        if not (subnet_id := body.get("id")):
            raise InvalidDefinitionError(
                f"Invalid {cls.__name__} missing subnet.id: {doc}"
            )
        config = body.get("config") or {}
        if not isinstance(config, dict):
            raise InvalidDefinitionError(
                f"Invalid {cls.__name__} subnet.config is not a mapping: {doc}"
            )
        return cls(
            id=str(subnet_id),
            alias=str(body.get("alias") or ""),
            homepage=str(body.get("homepage") or ""),
            description=str(body.get("description") or ""),
            maintainers=_string_list(cls, body, SUBNET_KEY, "maintainers", doc),
            vms=_string_list(cls, body, SUBNET_KEY, "vms", doc),
            config=config,
        )


def _string_list(
    cls: type[BaseDefinition], body: dict[str, Any], prefix: str, key: str, doc: Any
) -> list[str]:
    value = body.get(key) or []
    if not isinstance(value, list):
        raise InvalidDefinitionError(
            f"Invalid {cls.__name__} {prefix}.{key} is not a list: {doc}"
        )
    return [str(item) for item in value]


@dataclass(frozen=True)
class DefinitionPath:
    """Location of a definition file within a plugin repository."""

    kind: DefinitionKind
    name: str
    path: str

    def __str__(self) -> str:
        return f"{self.kind}/{self.name}"


def parse_definition_path(path: str) -> DefinitionPath | None:
    """Return the kind and name encoded in a repository path.

    Returns None for files that are not definitions (e.g. a README or files
    nested below the definition directories).
    """
    parsed = PurePosixPath(path)
    if len(parsed.parts) != 2 or parsed.suffix not in DEFINITION_SUFFIXES:
        return None
    if (kind := KIND_DIRECTORIES.get(parsed.parts[0])) is None:
        return None
    if not parsed.stem:
        return None
    return DefinitionPath(kind=kind, name=parsed.stem, path=path)


def parse_definition(path: DefinitionPath, content: bytes) -> VM | Subnet:
    """Decode the contents of a definition file."""
    try:
        doc = yaml.safe_load(content)
    except yaml.YAMLError as err:
        raise InvalidDefinitionError(
            f"Definition {path.path} failed to parse as yaml: {err}"
        ) from err
    if not isinstance(doc, dict):
        raise InvalidDefinitionError(
            f"Definition {path.path} expected dictionary but was {type(doc).__name__}"
        )
    _LOGGER.debug("Parsing %s definition %s", path.kind, path.path)
    if path.kind == DefinitionKind.VM:
        return VM.parse_doc(doc)
    return Subnet.parse_doc(doc)
