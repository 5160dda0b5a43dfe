"""Tests for RepositoryManager (git calls recorded, not run)."""

from pathlib import Path

import pytest
from elfetch import AmbiguousRefSpecError
from elfetch import BuildStepFailedError
from elfetch import CheckoutFailedError
from elfetch import CloneFailedError
from elfetch import InvalidRemoteSpecError
from elfetch import MissingHostError
from elfetch import MissingRemoteError
from elfetch import ProcessResult
from elfetch import Recipe
from elfetch import RefOverrideWarning
from elfetch import RepositoryManager
from elfetch import RepositoryNotFoundError


class RecordingExecutor:
    """Records commands; answers with canned results by argument prefix."""

    def __init__(self, results: dict[tuple[str, ...], ProcessResult] | None = None):
        self.calls: list[tuple[list[str], Path | None]] = []
        self.results = results or {}

    def run(self, args, cwd=None):
        self.calls.append((list(args), cwd))
        for prefix, result in self.results.items():
            if tuple(args[: len(prefix)]) == prefix:
                return result
        return ProcessResult(returncode=0)

    async def run_async(self, args, cwd=None, input=None, timeout=None):
        raise NotImplementedError

    @property
    def commands(self) -> list[list[str]]:
        return [args for args, _ in self.calls]


def make_recipe(**overrides) -> Recipe:
    return Recipe(**{"package": "pkg", "repo": "user/pkg", "host": "github", **overrides})


def make_manager(tmp_path, results=None) -> tuple[RepositoryManager, RecordingExecutor]:
    executor = RecordingExecutor(results)
    return RepositoryManager(tmp_path / "repos", executor=executor), executor


class TestClone:
    def test_clone_command(self, tmp_path):
        """Test clone runs git clone into the addressed path from the store."""
        manager, executor = make_manager(tmp_path)

        path = manager.clone(make_recipe())

        assert path == tmp_path / "repos" / "pkg.user.github"
        assert executor.calls == [
            (["git", "clone", "https://github.com/user/pkg.git", str(path)], tmp_path / "repos"),
        ]
        assert (tmp_path / "repos").is_dir()

    def test_clone_with_depth(self, tmp_path):
        """Test depth makes a shallow clone that still sees every branch."""
        manager, executor = make_manager(tmp_path)

        manager.clone(make_recipe(depth=1, protocol="ssh"))

        assert executor.commands[0][:6] == [
            "git",
            "clone",
            "--depth",
            "1",
            "--no-single-branch",
            "git@github.com:user/pkg.git",
        ]

    def test_clone_fork(self, tmp_path):
        """Test forks clone from the fork's address into the package's path."""
        manager, executor = make_manager(tmp_path)

        path = manager.clone(make_recipe(fork={"repo": "me/pkg"}))

        assert executor.commands[0] == ["git", "clone", "https://github.com/me/pkg.git", str(path)]
        assert path.name == "pkg.user.github"

    def test_clone_missing_host(self, tmp_path):
        """Test cloning needs a host."""
        manager, executor = make_manager(tmp_path)

        with pytest.raises(MissingHostError, match="no host"):
            manager.clone(make_recipe(host=None))

        assert executor.calls == []

    def test_clone_failure(self, tmp_path):
        """Test clone failures carry git's output."""
        manager, _ = make_manager(
            tmp_path, {("git", "clone"): ProcessResult(returncode=128, stderr="fatal: repository not found")}
        )

        with pytest.raises(CloneFailedError, match="repository not found"):
            manager.clone(make_recipe())


class TestConfigureRemotes:
    def test_default_origin_is_noop(self, tmp_path):
        """Test the default remote needs no git calls."""
        manager, executor = make_manager(tmp_path)

        manager.configure_remotes(make_recipe())

        assert executor.calls == []

    def test_single_name_renames_origin(self, tmp_path):
        """Test a single remote name renames origin."""
        manager, executor = make_manager(tmp_path)
        recipe = make_recipe(remotes="upstream")

        manager.configure_remotes(recipe)

        assert executor.calls == [
            (["git", "remote", "rename", "origin", "upstream"], manager.path_for(recipe)),
        ]

    def test_remote_list(self, tmp_path):
        """Test bare names rename and address overrides add remotes."""
        manager, executor = make_manager(tmp_path)
        recipe = make_recipe(remotes=["fork", ("upstream", {"repo": "other/pkg"}), ["mirror", ":host", "gitlab"]])

        manager.configure_remotes(recipe)

        assert executor.commands == [
            ["git", "remote", "rename", "origin", "fork"],
            ["git", "remote", "add", "upstream", "https://github.com/other/pkg.git"],
            ["git", "remote", "add", "mirror", "https://gitlab.com/user/pkg.git"],
        ]

    def test_pair_without_address_renames(self, tmp_path):
        """Test a (name, properties) pair without address overrides renames origin."""
        manager, executor = make_manager(tmp_path)

        manager.configure_remotes(make_recipe(remotes=[("mine", {"branch": "dev"})]))

        assert executor.commands == [["git", "remote", "rename", "origin", "mine"]]

    def test_fork_adds_upstream(self, tmp_path):
        """Test forks get the canonical repository as upstream."""
        manager, executor = make_manager(tmp_path)

        manager.configure_remotes(make_recipe(fork={"repo": "me/pkg"}))

        assert executor.commands == [["git", "remote", "add", "upstream", "https://github.com/user/pkg.git"]]

    @pytest.mark.parametrize("remotes", [[42], [("name", "not-a-mapping")], [[]], [("name", ":colour", "red")]])
    def test_invalid_remote_spec(self, tmp_path, remotes):
        """Test unrecognized remote shapes are rejected."""
        manager, _ = make_manager(tmp_path)

        with pytest.raises(InvalidRemoteSpecError):
            manager.configure_remotes(make_recipe(remotes=remotes))


class TestCheckoutRef:
    def test_nothing_to_check_out(self, tmp_path):
        """Test recipes without ref, branch or tag need no git calls."""
        manager, executor = make_manager(tmp_path)

        manager.checkout_ref(make_recipe())

        assert executor.calls == []

    def test_ref(self, tmp_path):
        """Test refs are fetched then checked out verbatim in the repository."""
        manager, executor = make_manager(tmp_path)
        recipe = make_recipe(ref="abc123")

        manager.checkout_ref(recipe)

        assert executor.calls == [
            (["git", "fetch", "--all"], manager.path_for(recipe)),
            (["git", "checkout", "abc123"], manager.path_for(recipe)),
        ]

    def test_ref_in_shallow_clone_unshallows(self, tmp_path):
        """Test pinned refs deepen a depth-limited clone from the first remote before checkout."""
        manager, executor = make_manager(tmp_path)
        recipe = make_recipe(ref="abc123", depth=1, remotes="upstream")
        (manager.path_for(recipe) / ".git").mkdir(parents=True)
        (manager.path_for(recipe) / ".git" / "shallow").write_text("deadbeef\n")

        manager.checkout_ref(recipe)

        assert executor.commands == [
            ["git", "fetch", "--all"],
            ["git", "fetch", "--unshallow", "upstream"],
            ["git", "checkout", "abc123"],
        ]

    def test_branch_in_shallow_clone_stays_shallow(self, tmp_path):
        """Test branch checkouts need no extra history."""
        manager, executor = make_manager(tmp_path)
        recipe = make_recipe(branch="dev", depth=1)
        (manager.path_for(recipe) / ".git").mkdir(parents=True)
        (manager.path_for(recipe) / ".git" / "shallow").write_text("deadbeef\n")

        manager.checkout_ref(recipe)

        assert ["git", "fetch", "--unshallow", "origin"] not in executor.commands

    def test_unshallow_failure(self, tmp_path):
        """Test a failed unshallow fetch stops the checkout."""
        manager, executor = make_manager(
            tmp_path, {("git", "fetch", "--unshallow"): ProcessResult(returncode=128, stderr="fatal: offline")}
        )
        recipe = make_recipe(ref="abc123", depth=1)
        (manager.path_for(recipe) / ".git").mkdir(parents=True)
        (manager.path_for(recipe) / ".git" / "shallow").touch()

        with pytest.raises(CheckoutFailedError, match="offline"):
            manager.checkout_ref(recipe)

        assert executor.commands[-1][:2] == ["git", "fetch"]

    def test_ref_overrides_branch_with_warning(self, tmp_path, caplog):
        """Test ref wins over branch and the conflict is reported."""
        manager, executor = make_manager(tmp_path)

        with pytest.warns(RefOverrideWarning, match="ignoring branch='main'"):
            manager.checkout_ref(make_recipe(ref="abc123", branch="main"))

        assert executor.commands[-1] == ["git", "checkout", "abc123"]
        assert "ignoring branch='main'" in caplog.text

    def test_ref_overrides_tag_with_warning(self, tmp_path):
        """Test ref wins over tag."""
        manager, executor = make_manager(tmp_path)

        with pytest.warns(RefOverrideWarning):
            manager.checkout_ref(make_recipe(ref="abc123", tag="v1.0"))

        assert executor.commands[-1] == ["git", "checkout", "abc123"]

    def test_tag_and_branch_is_ambiguous(self, tmp_path):
        """Test tag plus branch without ref is an error and nothing runs."""
        manager, executor = make_manager(tmp_path)

        with pytest.raises(AmbiguousRefSpecError):
            manager.checkout_ref(make_recipe(tag="v1.0", branch="main"))

        assert executor.calls == []

    def test_tag(self, tmp_path):
        """Test tags are checked out by reference path."""
        manager, executor = make_manager(tmp_path)

        manager.checkout_ref(make_recipe(tag="v1.0"))

        assert executor.commands == [
            ["git", "fetch", "--all", "--tags"],
            ["git", "checkout", "refs/tags/v1.0"],
        ]

    def test_branch_tracks_first_remote(self, tmp_path):
        """Test branches become local branches tracking the first remote."""
        manager, executor = make_manager(tmp_path)

        manager.checkout_ref(make_recipe(branch="dev"))
        manager.checkout_ref(make_recipe(branch="dev", remotes=["fork", ("upstream", {"repo": "o/pkg"})]))

        assert executor.commands[1] == ["git", "checkout", "-B", "dev", "--track", "origin/dev"]
        assert executor.commands[3] == ["git", "checkout", "-B", "dev", "--track", "fork/dev"]

    def test_missing_remote(self, tmp_path):
        """Test checkout needs a remote."""
        manager, _ = make_manager(tmp_path)

        with pytest.raises(MissingRemoteError):
            manager.checkout_ref(make_recipe(ref="abc123", remotes=[]))

    def test_checkout_failure(self, tmp_path):
        """Test checkout failures carry git's output."""
        manager, _ = make_manager(
            tmp_path,
            {("git", "checkout"): ProcessResult(returncode=1, stderr="error: pathspec 'nope' did not match")},
        )

        with pytest.raises(CheckoutFailedError, match="did not match") as exc_info:
            manager.checkout_ref(make_recipe(ref="nope"))

        assert "did not match" in exc_info.value.context["output"]

    def test_fetch_failure(self, tmp_path):
        """Test fetch failures stop the checkout."""
        manager, executor = make_manager(tmp_path, {("git", "fetch"): ProcessResult(returncode=1, stderr="offline")})

        with pytest.raises(CheckoutFailedError, match="offline"):
            manager.checkout_ref(make_recipe(branch="dev"))

        assert len(executor.calls) == 1


class TestInitializeRepository:
    def test_steps_in_order(self, tmp_path):
        """Test clone, remotes, checkout and pre-build run in order."""
        manager, executor = make_manager(tmp_path)
        recipe = make_recipe(remotes="upstream", branch="dev", pre_build=["make autoloads", ["emacs", "--batch"]])

        path = manager.initialize_repository(recipe)

        assert executor.commands == [
            ["git", "clone", "https://github.com/user/pkg.git", str(path)],
            ["git", "remote", "rename", "origin", "upstream"],
            ["git", "fetch", "--all"],
            ["git", "checkout", "-B", "dev", "--track", "upstream/dev"],
            ["make", "autoloads"],
            ["emacs", "--batch"],
        ]
        assert all(cwd == path for _, cwd in executor.calls[1:])

    def test_existing_repository_skips_clone(self, tmp_path):
        """Test existing repositories are only checked out again."""
        manager, executor = make_manager(tmp_path)
        recipe = make_recipe(remotes="upstream", ref="abc123")
        (manager.path_for(recipe) / ".git").mkdir(parents=True)

        manager.initialize_repository(recipe)

        assert executor.commands == [["git", "fetch", "--all"], ["git", "checkout", "abc123"]]

    def test_pre_build_failure(self, tmp_path):
        """Test failing pre-build steps raise BuildStepFailedError."""
        manager, _ = make_manager(tmp_path, {("make",): ProcessResult(returncode=2, stderr="no rule")})

        with pytest.raises(BuildStepFailedError, match="no rule"):
            manager.initialize_repository(make_recipe(pre_build=["make"]))


def test_current_commit(tmp_path):
    """Test reading the checked-out commit."""
    manager, _ = make_manager(tmp_path, {("git", "rev-parse"): ProcessResult(returncode=0, stdout="deadbeef\n")})

    assert manager.current_commit(make_recipe()) == "deadbeef"


def test_current_commit_unknown(tmp_path):
    """Test a failing rev-parse gives None."""
    manager, _ = make_manager(tmp_path, {("git", "rev-parse"): ProcessResult(returncode=128)})

    assert manager.current_commit(make_recipe()) is None


def test_remove_repository(tmp_path):
    """Test removing a repository directory."""
    manager, _ = make_manager(tmp_path)
    recipe = make_recipe()
    manager.path_for(recipe).mkdir(parents=True)

    manager.remove_repository(recipe)

    assert not manager.path_for(recipe).exists()

    with pytest.raises(RepositoryNotFoundError):
        manager.remove_repository(recipe)
