"""Test configuration and fixtures."""

import time
from pathlib import Path
from typing import Generator

import pytest
from git import Actor, Repo

HOUR = 60 * 60
DAY = 24 * HOUR


@pytest.fixture
def test_env(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a test repository with branches committed at different times.

    Branches, most recent first:
        feature/recent: 1 hour ago, current branch, property "status"
        feature/week: 8 days ago, properties "status" and "reviewer"
        main: 10 days ago, tracking config "remote" and "merge"
        feature/old: 40 days ago

    Returns:
        Path to the repository
    """
    local_path = tmp_path / "local"
    local_path.mkdir()
    local_repo = Repo.init(local_path)

    # Set up git config
    author = Actor("Test User", "test@example.com")
    local_repo.config_writer().set_value("user", "name", author.name).release()
    local_repo.config_writer().set_value("user", "email", author.email).release()

    now = int(time.time())

    def commit(filename: str, content: str, seconds_ago: int) -> None:
        """Commit a file with a fixed commit date."""
        date = f"{now - seconds_ago} +0000"
        test_file = local_path / filename
        test_file.write_text(content)
        local_repo.index.add([filename])
        local_repo.index.commit(
            f"Add {filename}",
            author=author,
            committer=author,
            author_date=date,
            commit_date=date,
        )

    # Create initial commit and make sure the branch is called main
    commit("README.md", "# Test Repository", 10 * DAY)
    if local_repo.active_branch.name != "main":
        local_repo.active_branch.rename("main")
    main_branch = local_repo.heads.main

    def create_branch(name: str, seconds_ago: int) -> None:
        """Create a branch off main with one commit."""
        main_branch.checkout()
        local_repo.create_head(name).checkout()
        commit(f"{name.replace('/', '_')}.txt", f"{name} content", seconds_ago)

    create_branch("feature/old", 40 * DAY)
    create_branch("feature/week", 8 * DAY)
    create_branch("feature/recent", HOUR)

    # Tracking config is managed by git and never shown as a property
    local_repo.git.config("branch.main.remote", "origin")
    local_repo.git.config("branch.main.merge", "refs/heads/main")
    local_repo.git.config("branch.feature/recent.status", "in review")
    local_repo.git.config("branch.feature/week.status", "blocked")
    local_repo.git.config("branch.feature/week.reviewer", "sam")

    yield local_path

    # Cleanup is handled by pytest's tmp_path fixture
