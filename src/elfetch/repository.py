"""Repository operations - clone, remotes, checkout.

All git work goes through an injected ProcessExecutor so tests and apps
can replace the external client.

initialize_repository() composes the steps in order:
1. clone (skipped when the repository already exists)
2. configure remotes (fresh clones only; renames are not idempotent)
3. check out ref / tag / branch
4. run pre-build commands
"""

import logging
import shlex
import shutil
import warnings
from collections.abc import Mapping
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from .addressing import repository_path
from .addressing import repository_uri
from .exceptions import AmbiguousRefSpecError
from .exceptions import BuildStepFailedError
from .exceptions import CheckoutFailedError
from .exceptions import CloneFailedError
from .exceptions import ElfetchError
from .exceptions import InvalidRemoteSpecError
from .exceptions import MissingHostError
from .exceptions import MissingRemoteError
from .exceptions import RefOverrideWarning
from .exceptions import RepositoryNotFoundError
from .process import ProcessResult
from .process import SubprocessExecutor
from .protocols import ProcessExecutor
from .schema import Recipe
from .schema import normalize_properties

logger = logging.getLogger(__name__)

ADDRESS_KEYWORDS = frozenset({"host", "protocol", "repo"})


def _remote_entry(recipe: Recipe, entry: Any) -> tuple[str, dict[str, Any]]:
    """Split one remote list entry into (name, overrides)."""
    if isinstance(entry, str):
        return entry, {}

    if isinstance(entry, Sequence) and entry and isinstance(entry[0], str):
        name, rest = entry[0], list(entry[1:])
        try:
            if len(rest) == 1 and isinstance(rest[0], Mapping):
                return name, normalize_properties(rest[0])
            if len(rest) % 2 == 0:
                return name, normalize_properties(dict(zip(rest[::2], rest[1::2], strict=True)))
        except ElfetchError as e:
            raise InvalidRemoteSpecError(
                f"Invalid remote {entry!r} in {recipe!r}: {e.message}",
                context={"recipe": recipe.model_dump(), "remote": entry},
            ) from e

    raise InvalidRemoteSpecError(
        f"Invalid remote {entry!r} in {recipe!r}; expected a name or (name, properties)",
        context={"recipe": recipe.model_dump(), "remote": entry},
    )


def first_remote(recipe: Recipe) -> str | None:
    """Name of the recipe's first remote, or None if it configures none."""
    remotes = recipe.remotes
    if isinstance(remotes, str):
        return remotes
    if not remotes:
        return None
    name, _ = _remote_entry(recipe, remotes[0])
    return name


class RepositoryManager:
    """
    Clone and check out recipe repositories under a package store.

    Philosophy:
    - Shell out to git, never reimplement it
    - Each step runs with the repository directory as its working directory
    - Failures carry git's own output
    """

    def __init__(self, store_dir: Path, executor: ProcessExecutor | None = None):
        """Initialize manager with app-provided store location.

        Args:
            store_dir: Package store root (app determines location)
            executor: Command runner (defaults to SubprocessExecutor)
        """
        self.store_dir = store_dir
        self.executor = executor or SubprocessExecutor()

    def path_for(self, recipe: Recipe) -> Path:
        return repository_path(recipe, self.store_dir)

    def is_shallow(self, recipe: Recipe) -> bool:
        """True if the repository was cloned with a depth limit (git keeps .git/shallow)."""
        return (self.path_for(recipe) / ".git" / "shallow").exists()

    def _git(self, recipe: Recipe, *args: str) -> ProcessResult:
        return self.executor.run(["git", *args], cwd=self.path_for(recipe))

    def clone(self, recipe: Recipe) -> Path:
        """
        Clone the recipe's repository into the package store.

        A fork override clones from the fork; the canonical repository is
        added as "upstream" when remotes are configured.

        Returns:
            Repository path

        Raises:
            MissingHostError: If recipe has no host
            CloneFailedError: If git clone fails
        """
        if not recipe.host:
            raise MissingHostError(f"Recipe {recipe!r} has no host", context={"recipe": recipe.model_dump()})

        path = self.path_for(recipe)
        source = recipe.with_overrides(recipe.fork) if recipe.fork else recipe
        uri = repository_uri(source)

        args = ["git", "clone"]
        if recipe.depth:
            args += ["--depth", str(recipe.depth), "--no-single-branch"]
        args += [uri, str(path)]

        logger.info(f"Cloning {uri} to {path}")
        self.store_dir.mkdir(parents=True, exist_ok=True)
        result = self.executor.run(args, cwd=self.store_dir)
        if not result.success:
            raise CloneFailedError(
                f"Failed to clone {recipe.package} from {uri}: {result.output}",
                context={"recipe": recipe.model_dump(), "uri": uri, "output": result.output},
            )
        return path

    def _rename_origin(self, recipe: Recipe, name: str) -> None:
        if name == "origin":
            return
        logger.debug(f"Renaming origin to {name} for {recipe.package}")
        result = self._git(recipe, "remote", "rename", "origin", name)
        if not result.success:
            raise InvalidRemoteSpecError(
                f"Could not rename origin to {name} for {recipe!r}: {result.output}",
                context={"recipe": recipe.model_dump(), "remote": name, "output": result.output},
            )

    def _add_remote(self, recipe: Recipe, name: str, uri: str) -> None:
        logger.debug(f"Adding remote {name} at {uri} for {recipe.package}")
        result = self._git(recipe, "remote", "add", name, uri)
        if not result.success:
            raise InvalidRemoteSpecError(
                f"Could not add remote {name} ({uri}) for {recipe!r}: {result.output}",
                context={"recipe": recipe.model_dump(), "remote": name, "output": result.output},
            )

    def configure_remotes(self, recipe: Recipe) -> None:
        """
        Apply the recipe's remotes to a freshly cloned repository.

        - "origin": nothing to do
        - "name": rename origin to name
        - list: each bare name is a rename; each (name, overrides) entry adds
          a remote at the overridden address when overrides name a host,
          protocol or repo, and is a rename otherwise

        Raises:
            InvalidRemoteSpecError: If a remote entry has an unrecognized shape
        """
        if recipe.fork:
            self._add_remote(recipe, "upstream", repository_uri(recipe))

        remotes = recipe.remotes
        if isinstance(remotes, str):
            self._rename_origin(recipe, remotes)
            return

        if not isinstance(remotes, list):
            raise InvalidRemoteSpecError(
                f"Invalid remotes {remotes!r} in {recipe!r}",
                context={"recipe": recipe.model_dump()},
            )

        for entry in remotes:
            name, overrides = _remote_entry(recipe, entry)
            if ADDRESS_KEYWORDS & overrides.keys():
                self._add_remote(recipe, name, repository_uri(recipe.with_overrides(overrides)))
            else:
                self._rename_origin(recipe, name)

    def checkout_ref(self, recipe: Recipe) -> None:
        """
        Check out the recipe's ref, tag or branch.

        ref wins over branch and tag (with a RefOverrideWarning). tag and
        branch together without ref is ambiguous. A branch becomes a local
        branch tracking <first-remote>/<branch>.

        Raises:
            AmbiguousRefSpecError: If tag and branch are both set without ref
            MissingRemoteError: If recipe configures no remote
            CheckoutFailedError: If git fetch or checkout fails
        """
        ref, branch, tag = recipe.ref, recipe.branch, recipe.tag
        if not (ref or branch or tag):
            return

        if ref and (branch or tag):
            ignored = ", ".join(f"{key}={value!r}" for key, value in (("branch", branch), ("tag", tag)) if value)
            message = f"Recipe for {recipe.package} sets ref={ref!r}; ignoring {ignored}"
            logger.warning(message)
            warnings.warn(message, RefOverrideWarning, stacklevel=2)
        elif tag and branch:
            raise AmbiguousRefSpecError(
                f"Recipe {recipe!r} sets both tag={tag!r} and branch={branch!r}; set only one, or a ref",
                context={"recipe": recipe.model_dump()},
            )

        remote = first_remote(recipe)
        if remote is None:
            raise MissingRemoteError(
                f"Recipe {recipe!r} has no remote to check out from",
                context={"recipe": recipe.model_dump()},
            )

        fetches = [["fetch", "--all"] + (["--tags"] if tag and not ref else [])]
        # A pinned ref may be any commit; a depth-limited clone only has branch tips
        if ref and self.is_shallow(recipe):
            fetches.append(["fetch", "--unshallow", remote])

        for fetch_args in fetches:
            result = self._git(recipe, *fetch_args)
            if not result.success:
                raise CheckoutFailedError(
                    f"Failed to fetch remotes for {recipe.package}: {result.output}",
                    context={"recipe": recipe.model_dump(), "output": result.output},
                )

        if ref:
            args = ["checkout", ref]
        elif tag:
            args = ["checkout", f"refs/tags/{tag}"]
        else:
            args = ["checkout", "-B", branch, "--track", f"{remote}/{branch}"]

        result = self._git(recipe, *args)
        if not result.success:
            raise CheckoutFailedError(
                f"Failed to check out {args[-1]} for {recipe.package}: {result.output}",
                context={"recipe": recipe.model_dump(), "output": result.output},
            )
        logger.debug(f"Checked out {args[-1]} for {recipe.package}")

    def run_pre_build(self, recipe: Recipe) -> None:
        """Run the recipe's pre-build commands in the repository directory.

        Raises:
            BuildStepFailedError: If a command exits non-zero
        """
        for command in recipe.pre_build:
            args = shlex.split(command) if isinstance(command, str) else list(command)
            logger.info(f"Running pre-build step for {recipe.package}: {' '.join(args)}")
            result = self.executor.run(args, cwd=self.path_for(recipe))
            if not result.success:
                raise BuildStepFailedError(
                    f"Pre-build step {args!r} failed for {recipe.package}: {result.output}",
                    context={"recipe": recipe.model_dump(), "command": args, "output": result.output},
                )

    def current_commit(self, recipe: Recipe) -> str | None:
        """Commit SHA checked out in the recipe's repository, or None."""
        result = self._git(recipe, "rev-parse", "HEAD")
        if not result.success:
            return None
        return result.stdout.strip() or None

    def initialize_repository(self, recipe: Recipe) -> Path:
        """
        Clone, configure remotes, check out, and run pre-build steps.

        Returns:
            Repository path
        """
        path = self.path_for(recipe)
        if (path / ".git").exists():
            logger.info(f"Repository for {recipe.package} already exists at {path}")
        else:
            self.clone(recipe)
            self.configure_remotes(recipe)

        self.checkout_ref(recipe)
        self.run_pre_build(recipe)
        return path

    def remove_repository(self, recipe: Recipe) -> None:
        """Delete the recipe's repository directory.

        Raises:
            RepositoryNotFoundError: If the repository does not exist
        """
        path = self.path_for(recipe)
        if not path.exists():
            raise RepositoryNotFoundError(
                f"Repository for {recipe.package} not found at {path}",
                context={"recipe": recipe.model_dump(), "path": str(path)},
            )
        logger.info(f"Removing repository {path}")
        shutil.rmtree(path)
