"""Git repository operations."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from re import Pattern
from typing import Optional

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from twig.report import BranchReport, all_branch_properties, is_reserved_property, parse_branch_properties

logger = logging.getLogger(__name__)

# Exit status of `git config <key>` when the key isn't set
CONFIG_KEY_NOT_SET_STATUS = 1
# Exit status of `git config --unset` when the key doesn't exist
CONFIG_KEY_MISSING_STATUS = 5


class GitError(Exception):
    """Git operation error."""


@dataclass(frozen=True)
class PropertyChange:
    """Result of setting or removing a branch property."""

    message: str
    rejected: bool = False

    def __str__(self) -> str:
        return self.message


class GitRepo:
    """Git repository operations.

    Query results are cached on first use for the lifetime of the instance.
    """

    def __init__(
        self,
        path: Path,
        name_only: Optional[Pattern[str]] = None,
        name_except: Optional[Pattern[str]] = None,
    ) -> None:
        """Initialize repository.

        Args:
            path: Path to the repository
            name_only: Only list branches whose name matches this pattern
            name_except: Skip branches whose name matches this pattern
        """
        try:
            self.repo: Repo = Repo(path)
            if self.repo.bare:
                raise GitError("Cannot operate on bare repository")
        except (GitCommandError, ValueError, InvalidGitRepositoryError, NoSuchPathError) as err:
            raise GitError(f"Failed to open repository: {err}") from err

        self.name_only = name_only
        self.name_except = name_except

        self._current_branch_name: Optional[str] = None
        self._branch_names: Optional[list[str]] = None
        self._last_commit_times: Optional[dict[str, int]] = None
        self._config_lines: Optional[list[str]] = None
        self._all_branch_properties: Optional[list[str]] = None

    def get_current_branch_name(self) -> str:
        """Get current branch name."""
        if self._current_branch_name is None:
            try:
                try:
                    self._current_branch_name = self.repo.active_branch.name
                except TypeError:
                    # Detached HEAD
                    self._current_branch_name = ""
            except (GitCommandError, ValueError) as err:
                raise GitError(f"Failed to get current branch: {err}") from err
        return self._current_branch_name

    def branch_names(self) -> list[str]:
        """Get local branch names, sorted and filtered by the name patterns."""
        if self._branch_names is None:
            try:
                names = sorted(head.name for head in self.repo.heads)
            except GitCommandError as err:
                raise GitError(f"Failed to list branches: {err}") from err

            if self.name_only is not None:
                names = [name for name in names if self.name_only.search(name)]
            if self.name_except is not None:
                names = [name for name in names if not self.name_except.search(name)]
            logger.debug("Found %d branch(es)", len(names))
            self._branch_names = names
        return self._branch_names

    def last_commit_times(self) -> dict[str, int]:
        """Get the last commit time of each branch, in epoch seconds."""
        if self._last_commit_times is None:
            heads = {head.name: head for head in self.repo.heads}
            times: dict[str, int] = {}
            for name in self.branch_names():
                try:
                    times[name] = heads[name].commit.committed_date
                except ValueError:
                    # Branch points at a missing object
                    logger.debug("Skipping branch %s without a readable commit", name)
                except GitCommandError as err:
                    raise GitError(f"Failed to read last commit of {name}: {err}") from err
            self._last_commit_times = times
        return self._last_commit_times

    def config_lines(self) -> list[str]:
        """Get all git config entries as `key=value` lines."""
        if self._config_lines is None:
            try:
                self._config_lines = self.repo.git.config("--list").splitlines()
            except GitCommandError as err:
                raise GitError(f"Failed to read git config: {err}") from err
        return self._config_lines

    def branch_properties(self) -> dict[str, dict[str, str]]:
        """Get the properties of all branches, keyed by branch name."""
        return parse_branch_properties(self.config_lines())

    def all_branch_properties(self) -> list[str]:
        """Get the names of all custom properties set on any branch."""
        if self._all_branch_properties is None:
            self._all_branch_properties = all_branch_properties(self.branch_properties())
        return self._all_branch_properties

    def get_branch_property(self, branch_name: str, key: str) -> str:
        """Get a branch property, or an empty string if it isn't set."""
        key = key.strip()
        try:
            return str(self.repo.git.config(f"branch.{branch_name}.{key}"))
        except GitCommandError as err:
            # A missing key fails silently, an invalid one prints an error
            if err.status == CONFIG_KEY_NOT_SET_STATUS and not err.stderr.strip():
                return ""
            raise GitError(f"Failed to get property {key!r} for branch {branch_name!r}: {err}") from err

    def set_branch_property(self, branch_name: str, key: str, value: str) -> PropertyChange:
        """Set a branch property.

        Reserved properties are never written. An empty value removes the property.

        Returns:
            The change, marked as rejected for reserved properties
        """
        key = key.strip()
        if is_reserved_property(key):
            return PropertyChange(f'Can\'t modify the reserved property "{key}".', rejected=True)
        if not value.strip():
            return self.unset_branch_property(branch_name, key)

        try:
            self.repo.git.config(f"branch.{branch_name}.{key}", value)
        except GitCommandError as err:
            raise GitError(f"Failed to set property {key!r} for branch {branch_name!r}: {err}") from err
        self._clear_property_cache()
        return PropertyChange(f'Saved property "{key}" as "{value}" for branch "{branch_name}".')

    def unset_branch_property(self, branch_name: str, key: str) -> PropertyChange:
        """Remove a branch property.

        Returns:
            The change, marked as rejected for reserved properties
        """
        key = key.strip()
        if is_reserved_property(key):
            return PropertyChange(f'Can\'t modify the reserved property "{key}".', rejected=True)

        try:
            self.repo.git.config("--unset", f"branch.{branch_name}.{key}")
        except GitCommandError as err:
            if err.status == CONFIG_KEY_MISSING_STATUS:
                return PropertyChange(f'There is no property "{key}" for branch "{branch_name}".')
            raise GitError(f"Failed to remove property {key!r} for branch {branch_name!r}: {err}") from err
        self._clear_property_cache()
        return PropertyChange(f'Removed property "{key}" for branch "{branch_name}".')

    def _clear_property_cache(self) -> None:
        self._config_lines = None
        self._all_branch_properties = None

    def build_report(self, max_days_old: Optional[int] = None, now: Optional[datetime] = None) -> BranchReport:
        """Build the branch report, most recently committed branch first."""
        return BranchReport.build(
            self.branch_names(),
            self.last_commit_times(),
            self.branch_properties(),
            now=now,
            max_days_old=max_days_old,
            columns=self.all_branch_properties(),
            current_branch=self.get_current_branch_name(),
        )
