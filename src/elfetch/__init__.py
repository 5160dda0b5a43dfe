"""elfetch - Resolve, fetch, and install Emacs Lisp packages from git.

Public API: apps inject policy (menus, hooks, store location), the library
provides the mechanism.
"""

from .addressing import repository_path
from .addressing import repository_uri
from .config import ElfetchSettings
from .dependencies import DependencyScanner
from .exceptions import AmbiguousRefSpecError
from .exceptions import BuildStepFailedError
from .exceptions import CheckoutFailedError
from .exceptions import CloneFailedError
from .exceptions import ConfigError
from .exceptions import DependencyParseError
from .exceptions import ElfetchError
from .exceptions import HostVersionTooLowError
from .exceptions import InvalidRemoteSpecError
from .exceptions import MalformedOrderError
from .exceptions import MissingHostError
from .exceptions import MissingRemoteError
from .exceptions import NoRecipeError
from .exceptions import RefOverrideWarning
from .exceptions import RepositoryNotFoundError
from .exceptions import UnknownPackageError
from .exceptions import UnsupportedHostError
from .exceptions import UnsupportedProtocolError
from .exceptions import WorkerError
from .hooks import FunctionHook
from .hooks import OrderDefaults
from .installer import build_orchestrator
from .installer import install_packages
from .installer import uninstall_package
from .lock import PackageLock
from .lock import PackageLockEntry
from .merge import merge_properties
from .orchestrator import Orchestrator
from .orders import InlineOrder
from .orders import NamedOrder
from .orders import PromptOrder
from .orders import parse_order
from .process import ProcessResult
from .process import SubprocessExecutor
from .protocols import MenuProvider
from .protocols import ModifierHook
from .protocols import ProcessExecutor
from .protocols import Worker
from .providers import ProviderRegistry
from .providers import StaticMenu
from .providers import TomlMenu
from .repository import RepositoryManager
from .resolver import RecipeResolver
from .schema import Dependency
from .schema import MenuItem
from .schema import Recipe
from .worker import SubprocessWorker

__all__ = [
    # Models
    "Recipe",
    "Dependency",
    "MenuItem",
    "PromptOrder",
    "NamedOrder",
    "InlineOrder",
    "parse_order",
    "merge_properties",
    # Resolution
    "RecipeResolver",
    "ProviderRegistry",
    "StaticMenu",
    "TomlMenu",
    "MenuProvider",
    "ModifierHook",
    "FunctionHook",
    "OrderDefaults",
    # Repositories
    "repository_path",
    "repository_uri",
    "RepositoryManager",
    "ProcessExecutor",
    "ProcessResult",
    "SubprocessExecutor",
    "DependencyScanner",
    # Orchestration
    "Orchestrator",
    "Worker",
    "SubprocessWorker",
    "build_orchestrator",
    "install_packages",
    "uninstall_package",
    # Settings and lock file
    "ElfetchSettings",
    "PackageLock",
    "PackageLockEntry",
    # Exceptions
    "ElfetchError",
    "UnknownPackageError",
    "NoRecipeError",
    "MalformedOrderError",
    "UnsupportedProtocolError",
    "UnsupportedHostError",
    "MissingHostError",
    "CloneFailedError",
    "InvalidRemoteSpecError",
    "MissingRemoteError",
    "AmbiguousRefSpecError",
    "RefOverrideWarning",
    "CheckoutFailedError",
    "BuildStepFailedError",
    "RepositoryNotFoundError",
    "DependencyParseError",
    "HostVersionTooLowError",
    "WorkerError",
    "ConfigError",
]

__version__ = "0.1.0"
