"""Shared pytest fixtures for gitquest tests."""

from datetime import datetime, timedelta, timezone

import pytest
import structlog

from gitquest.commands.context import RemoteHost
from gitquest.commands.engine import Engine
from gitquest.core.state import RepositoryState


class TickingClock:
    """Deterministic clock that advances one minute per reading."""

    def __init__(self, start=None):
        self.current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.current += timedelta(minutes=1)
        return self.current


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop any logging configuration a CLI test installed."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def engine(clock):
    """Engine with a deterministic clock and no remote repositories."""
    return Engine(clock=clock)


@pytest.fixture
def run(engine):
    """
    Run commands in order and return the final state.

    Every command must succeed; the failing command and its error are
    reported otherwise.
    """
    def _run(state, *commands):
        for command in commands:
            result = engine.execute(state, command)
            assert result.success, f"{command!r} failed: {result.error}"
            state = result.new_state
        return state
    return _run


@pytest.fixture
def empty_state():
    return RepositoryState.empty('quest-repo')


@pytest.fixture
def repo(run, empty_state):
    """Initialized repository on an unborn main branch."""
    return run(empty_state, 'git init')


@pytest.fixture
def repo_with_commits(run, repo):
    """Repository with two commits on main and a clean working tree."""
    state = repo.write_file('story.txt', 'Once upon a time\n')
    state = run(state, 'git add story.txt', 'git commit -m "First chapter"')

    state = state.write_file('story.txt', 'Once upon a time\nThe end\n')
    state = state.write_file('notes.txt', 'draft\n')
    return run(state, 'git add .', 'git commit -m "Second chapter"')


@pytest.fixture
def remote_url():
    return 'https://quest.example/lost-project.git'


@pytest.fixture
def remote_source(run, empty_state):
    """A repository published on the remote host."""
    state = run(empty_state, 'git init')
    state = state.write_file('README.md', '# The Lost Project\n')
    return run(state, 'git add README.md', 'git commit -m "Found the project"')


@pytest.fixture
def remote_engine(clock, remote_url, remote_source):
    """Engine whose remote host serves ``remote_source`` at ``remote_url``."""
    return Engine(clock=clock, remote_host=RemoteHost({remote_url: remote_source}))
