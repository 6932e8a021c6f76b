"""Parsing and resolution of plugin names.

A plugin is addressed by its qualified name `organization/repository:plugin`.
A bare plugin name is resolved using the alias index when exactly one tracked
repository provides it.
"""

import logging

from .constants import ALIAS_DELIMITER, QUALIFIED_NAME_DELIMITER
from .exceptions import AmbiguousNameError, NotFoundError, ValidationError
from .store import RepoList, Storage

__all__ = [
    "valid_alias",
    "parse_alias",
    "is_qualified",
    "parse_qualified_name",
    "qualified_name",
    "resolve",
]

_LOGGER = logging.getLogger(__name__)


def valid_alias(alias: str) -> bool:
    """Return True if the alias is in the form of organization/repository."""
    parts = alias.split(ALIAS_DELIMITER)
    return (
        len(parts) == 2
        and all(part.strip() == part and part for part in parts)
        and QUALIFIED_NAME_DELIMITER not in alias
    )


def parse_alias(alias: str) -> tuple[str, str]:
    """Split an alias into its organization and repository."""
    if not valid_alias(alias):
        raise ValidationError(
            f"{alias} is not a valid alias (must be in the form of organization/repository)"
        )
    organization, repository = alias.split(ALIAS_DELIMITER)
    return organization, repository


def is_qualified(name: str) -> bool:
    return QUALIFIED_NAME_DELIMITER in name


def parse_qualified_name(name: str) -> tuple[str, str]:
    """Split a qualified name into its repository alias and plugin name."""
    alias, _, plugin = name.partition(QUALIFIED_NAME_DELIMITER)
    if not valid_alias(alias) or not plugin or QUALIFIED_NAME_DELIMITER in plugin:
        raise ValidationError(
            f"{name} is not a valid qualified name (must be in the form of organization/repository:plugin)"
        )
    return alias, plugin


def qualified_name(alias: str, plugin: str) -> str:
    return f"{alias}{QUALIFIED_NAME_DELIMITER}{plugin}"


def resolve(registry: Storage[RepoList], name: str) -> str:
    """Return the qualified name for a possibly bare plugin name.

    Raises:
        ValidationError: If a qualified name is malformed.
        NotFoundError: If no tracked repository provides the plugin.
        AmbiguousNameError: If more than one tracked repository provides it.
    """
    if is_qualified(name):
        parse_qualified_name(name)
        return name
    if not name:
        raise ValidationError("Plugin name must not be empty")

    try:
        repo_list = registry.get(name)
    except NotFoundError as err:
        raise NotFoundError(f"No repository provides a plugin named {name}") from err

    if not repo_list.repositories:
        raise NotFoundError(f"No repository provides a plugin named {name}")
    if len(repo_list.repositories) > 1:
        raise AmbiguousNameError(name, list(repo_list.repositories))

    resolved = qualified_name(repo_list.repositories[0], name)
    _LOGGER.debug("Resolved %s to %s", name, resolved)
    return resolved
