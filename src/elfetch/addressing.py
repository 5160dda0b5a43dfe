"""Repository addressing - where a recipe lives on disk and remotely.

Both functions are pure: the same recipe always gives the same answer.

Repositories live under the package store as <name>.<owner>.<host>, where
name is the recipe's local_repo override or the part of repo after the
owner separator.
"""

from pathlib import Path

from .exceptions import MalformedOrderError
from .exceptions import UnsupportedHostError
from .exceptions import UnsupportedProtocolError
from .schema import Recipe

# protocol -> (URI prefix, separator between host and repo)
PROTOCOLS: dict[str, tuple[str, str]] = {
    "https": ("https://", "/"),
    "ssh": ("git@", ":"),
}

HOSTS: dict[str, str] = {
    "github": "github.com",
    "gitlab": "gitlab.com",
    "codeberg": "codeberg.org",
    "sourcehut": "git.sr.ht",
}


def split_repo(recipe: Recipe) -> tuple[str, str]:
    """Split recipe.repo into (owner, name) at the first '/'."""
    owner, separator, name = recipe.repo.partition("/")
    if not separator or not owner or not name:
        raise MalformedOrderError(
            f"Recipe repo must look like 'owner/name', got {recipe.repo!r} in {recipe!r}",
            context={"recipe": recipe.model_dump()},
        )
    return owner, name


def is_explicit_host(host: str) -> bool:
    """Explicit hosts are domain names; symbolic hosts are table keys."""
    return "." in host


def resolve_host(recipe: Recipe) -> str:
    """Return the domain for the recipe's host.

    Raises:
        UnsupportedHostError: If host is symbolic and not in HOSTS
    """
    host = recipe.host or ""
    if is_explicit_host(host):
        return host
    domain = HOSTS.get(host)
    if domain is None:
        raise UnsupportedHostError(
            f"Unsupported host {recipe.host!r} in {recipe!r}; expected one of {sorted(HOSTS)} or a domain name",
            context={"recipe": recipe.model_dump()},
        )
    return domain


def repository_name(recipe: Recipe) -> str:
    """Directory name for the recipe's repository: <name>.<owner>.<host>."""
    owner, name = split_repo(recipe)
    local = recipe.local_repo or name.replace("/", ".")
    return ".".join([local, owner, recipe.host or ""])


def repository_path(recipe: Recipe, store_dir: Path) -> Path:
    """
    Path of the recipe's repository under the package store.

    Args:
        recipe: Resolved recipe
        store_dir: Package store root

    Returns:
        store_dir / "<name>.<owner>.<host>"

    Example:
        >>> recipe = Recipe(package="pkg", repo="user/pkg", host="github")
        >>> repository_path(recipe, Path("/store"))
        PosixPath('/store/pkg.user.github')
    """
    return store_dir / repository_name(recipe)


def repository_uri(recipe: Recipe) -> str:
    """
    Remote URI of the recipe's repository.

    Example:
        >>> repository_uri(Recipe(package="pkg", repo="user/pkg", host="github"))
        'https://github.com/user/pkg.git'
        >>> repository_uri(Recipe(package="pkg", repo="user/pkg", host="github", protocol="ssh"))
        'git@github.com:user/pkg.git'

    Raises:
        UnsupportedProtocolError: If protocol is not in PROTOCOLS
        UnsupportedHostError: If host is symbolic and not in HOSTS
    """
    scheme = PROTOCOLS.get(recipe.protocol)
    if scheme is None:
        raise UnsupportedProtocolError(
            f"Unsupported protocol {recipe.protocol!r} in {recipe!r}; expected one of {sorted(PROTOCOLS)}",
            context={"recipe": recipe.model_dump()},
        )
    prefix, separator = scheme
    repo = recipe.repo.removesuffix(".git")
    return f"{prefix}{resolve_host(recipe)}{separator}{repo}.git"
