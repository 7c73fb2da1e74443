"""Branch report building and rendering."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence

from twig.commit_time import SECONDS_PER_DAY, CommitTime

logger = logging.getLogger(__name__)

# Branch config keys managed by git itself
RESERVED_BRANCH_PROPERTIES = frozenset(
    {
        "remote",
        "pushremote",
        "merge",
        "mergeoptions",
        "rebase",
        "description",
    }
)

BRANCH_PROPERTY_PATTERN = re.compile(r"^branch\.(?P<branch>[^=]+)\.(?P<key>[^.=\s]+)=(?P<value>.*)$")

EMPTY_PROPERTY = "-"
CURRENT_BRANCH_MARKER = "* "
COLUMN_SEPARATOR = "  "


def is_reserved_property(key: str) -> bool:
    """Check if a branch property is managed by git and must not be changed."""
    return key.strip().lower() in RESERVED_BRANCH_PROPERTIES


def parse_branch_properties(lines: Iterable[str]) -> dict[str, dict[str, str]]:
    """Group `branch.<name>.<key>=<value>` config lines by branch name.

    Lines that don't match are skipped.
    """
    properties: dict[str, dict[str, str]] = {}
    for line in lines:
        match = BRANCH_PROPERTY_PATTERN.match(line.strip())
        if not match:
            continue
        properties.setdefault(match.group("branch"), {})[match.group("key")] = match.group("value")
    return properties


def all_branch_properties(properties_by_branch: Mapping[str, Mapping[str, str]]) -> list[str]:
    """Get the sorted union of custom property names across all branches."""
    keys = {key for properties in properties_by_branch.values() for key in properties}
    return sorted(key for key in keys if not is_reserved_property(key))


@dataclass
class Branch:
    """A branch with its last commit time and custom properties."""

    name: str
    last_commit_time: CommitTime
    properties: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Branch name must not be empty")

    def get_property(self, key: str) -> str:
        return self.properties.get(key, "")


class BranchReport:
    """Branches ordered by most recent commit, ready for display."""

    def __init__(
        self,
        branches: Sequence[Branch],
        columns: Sequence[str] = (),
        current_branch: str = "",
        max_days_old: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self.branches = list(branches)
        self.columns = list(columns)
        self.current_branch = current_branch
        self.max_days_old = max_days_old
        self.now = now

    @classmethod
    def build(
        cls,
        branch_names: Iterable[str],
        commit_times: Mapping[str, float],
        properties_by_branch: Mapping[str, Mapping[str, str]],
        now: Optional[datetime] = None,
        max_days_old: Optional[int] = None,
        columns: Optional[Sequence[str]] = None,
        current_branch: str = "",
    ) -> "BranchReport":
        """Build a report from raw branch data.

        Args:
            branch_names: Branch names, in the order ties should keep
            commit_times: Last commit epoch seconds per branch
            properties_by_branch: Custom properties per branch
            now: Reference time for relative times and age filtering
            max_days_old: Drop branches last committed more than this many days ago
            columns: Property columns to show, defaults to all custom properties
            current_branch: Name of the checked out branch

        Returns:
            The report, most recently committed branch first
        """
        if now is None:
            now = CommitTime.current_time()
        if columns is None:
            columns = all_branch_properties(properties_by_branch)

        branches = []
        for name in branch_names:
            if name not in commit_times:
                logger.debug("Skipping branch %s without a commit time", name)
                continue
            commit_time = CommitTime.from_timestamp(commit_times[name], now)
            branches.append(Branch(name, commit_time, dict(properties_by_branch.get(name, {}))))

        if max_days_old is not None:
            min_seconds = int(now.timestamp()) - max_days_old * SECONDS_PER_DAY
            kept = [branch for branch in branches if branch.last_commit_time.to_i() >= min_seconds]
            logger.debug("Dropped %d branch(es) older than %d day(s)", len(branches) - len(kept), max_days_old)
            branches = kept

        # sorted() is stable, so equal commit times keep the input order
        branches = sorted(branches, key=lambda branch: branch.last_commit_time.to_i(), reverse=True)
        return cls(branches, columns, current_branch, max_days_old, now)

    def headers(self) -> list[str]:
        return ["last commit", *self.columns, "branch"]

    def row(self, branch: Branch) -> list[str]:
        """Render one branch as display cells."""
        marker = CURRENT_BRANCH_MARKER if branch.name == self.current_branch else " " * len(CURRENT_BRANCH_MARKER)
        values = [branch.get_property(column) or EMPTY_PROPERTY for column in self.columns]
        return [str(branch.last_commit_time), *values, marker + branch.name]

    def rows(self) -> list[list[str]]:
        return [self.row(branch) for branch in self.branches]

    def render(self, header: Optional[str] = None) -> str:
        """Render the report as plain text lines.

        Args:
            header: Text to put above the rows, defaults to aligned column names

        Returns:
            Header and rows separated by line breaks, or just the header if there are no branches
        """
        rows = self.rows()
        if header is None:
            indent = " " * len(CURRENT_BRANCH_MARKER)
            headers = self.headers()
            underlines = ["-" * len(cell) for cell in headers]
            headers[-1] = indent + headers[-1]
            underlines[-1] = indent + underlines[-1]
            widths = [max(len(cells[i]) for cells in [headers, *rows]) for i in range(len(headers))]
            header = "\n".join([self._format_line(headers, widths), self._format_line(underlines, widths)])
        else:
            widths = [max((len(cells[i]) for cells in rows), default=0) for i in range(len(self.headers()))]

        return "\n".join([header, *(self._format_line(cells, widths) for cells in rows)])

    @staticmethod
    def _format_line(cells: Sequence[str], widths: Sequence[int]) -> str:
        return COLUMN_SEPARATOR.join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()
