"""Tests for the gitquest command line."""

import json

import pytest
from click.testing import CliRunner

from gitquest.cli.main import cli
from gitquest.core.config import Config
from gitquest.core.state import RepositoryState

REMOTE_URL = 'https://quest.example/lost.git'


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    monkeypatch.setattr(Config, 'GLOBAL_CONFIG_PATH', tmp_path / 'gitquestconfig')
    for name in ('GITQUEST_ENGINE_AUTHOR', 'GITQUEST_ENGINE_DEFAULT_BRANCH', 'GITQUEST_LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner):
    def _invoke(*args, **kwargs):
        return runner.invoke(cli, [str(arg) for arg in args], **kwargs)
    return _invoke


@pytest.fixture
def state_file(invoke, tmp_path):
    path = tmp_path / 'quest.json'
    assert invoke('new', path).exit_code == 0
    return path


@pytest.fixture
def initialized(invoke, state_file):
    assert invoke('run', state_file, 'git', 'init').exit_code == 0
    return state_file


def load(path):
    return RepositoryState.from_dict(json.loads(path.read_text()))


def test_new_creates_uninitialized_state(invoke, tmp_path):
    path = tmp_path / 'fresh.json'
    result = invoke('new', path)

    assert result.exit_code == 0
    assert 'Created empty repository state' in result.output
    assert not load(path).is_initialized()


def test_new_refuses_to_overwrite(invoke, state_file):
    result = invoke('new', state_file)
    assert result.exit_code == 1
    assert 'already exists' in result.output

    assert invoke('new', state_file, '--force').exit_code == 0


def test_first_commit_session(invoke, initialized):
    result = invoke('write', initialized, 'spell.txt', '-c', 'Lumos\n')
    assert result.exit_code == 0
    assert 'Wrote spell.txt' in result.output

    assert invoke('run', initialized, 'git', 'add', 'spell.txt').exit_code == 0
    result = invoke('run', initialized, 'git', 'commit', '-m', 'First spell')
    assert result.exit_code == 0
    assert '[main (root-commit) ' in result.output
    assert '] First spell' in result.output

    state = load(initialized)
    assert state.head_commit().message == 'First spell'
    assert state.head_commit().files() == {'spell.txt': 'Lumos\n'}


def test_run_without_git_word(invoke, initialized):
    result = invoke('run', initialized, 'status')
    assert result.exit_code == 0
    assert 'On branch main' in result.output


def test_failed_command_keeps_state(invoke, initialized):
    before = initialized.read_text()
    result = invoke('run', initialized, 'git', 'log')

    assert result.exit_code == 1
    assert "does not have any commits yet" in result.output
    assert initialized.read_text() == before


def test_run_requires_init(invoke, state_file):
    result = invoke('run', state_file, 'git', 'status')
    assert result.exit_code == 1
    assert 'not a git repository' in result.output


def test_author_from_config(invoke, initialized):
    assert invoke('config', 'set', 'engine.author', 'Ada').exit_code == 0
    assert invoke('config', 'get', 'engine.author').output.strip() == 'Ada'

    invoke('write', initialized, 'a.txt', '-c', 'a')
    invoke('run', initialized, 'git', 'add', '.')
    invoke('run', initialized, 'git', 'commit', '-m', 'Signed')
    assert load(initialized).head_commit().author == 'Ada'


def test_write_from_stdin(invoke, initialized):
    result = invoke('write', initialized, 'story.txt', input='chapter one\n')
    assert result.exit_code == 0
    assert load(initialized).working_directory['story.txt'].content == 'chapter one\n'


def test_write_delete(invoke, initialized):
    invoke('write', initialized, 'story.txt', '-c', 'x')
    result = invoke('write', initialized, 'story.txt', '--delete')

    assert result.exit_code == 0
    assert 'Deleted story.txt' in result.output
    assert 'story.txt' not in load(initialized).working_directory

    result = invoke('write', initialized, 'story.txt', '--delete')
    assert result.exit_code == 1
    assert "pathspec 'story.txt' did not match any files" in result.output


def test_validate(invoke, state_file, initialized, tmp_path):
    criteria = tmp_path / 'criteria.json'
    criteria.write_text(json.dumps({
        'type': 'custom',
        'parameters': {'validator': 'repository_initialized'},
    }))

    result = invoke('validate', initialized, criteria, '--bonus-xp', '50')
    assert result.exit_code == 0
    assert 'Repository initialized successfully!' in result.output
    assert 'Bonus XP: 50' in result.output

    result = invoke('validate', initialized, criteria, '--json')
    assert json.loads(result.output) == {
        'success': True,
        'feedback': 'Repository initialized successfully!',
    }


def test_validate_failure(invoke, state_file, tmp_path):
    criteria = tmp_path / 'criteria.json'
    criteria.write_text(json.dumps({'type': 'branch_exists', 'parameters': {'branchName': 'main'}}))

    result = invoke('validate', state_file, criteria)
    assert result.exit_code == 1


def test_validate_bad_criteria(invoke, initialized, tmp_path):
    criteria = tmp_path / 'criteria.json'
    criteria.write_text(json.dumps({'type': 'teleport', 'parameters': {}}))

    result = invoke('validate', initialized, criteria)
    assert result.exit_code == 1
    assert 'Invalid criteria' in result.output


def test_clone_from_remote_state_file(invoke, tmp_path):
    source = tmp_path / 'lost.json'
    invoke('new', source)
    invoke('run', source, 'git', 'init')
    invoke('write', source, 'README.md', '-c', '# The Lost Project\n')
    invoke('run', source, 'git', 'add', 'README.md')
    invoke('run', source, 'git', 'commit', '-m', 'Found the project')

    learner = tmp_path / 'learner.json'
    invoke('new', learner)
    result = invoke('run', learner, '--remote', f"{REMOTE_URL}={source}", 'git', 'clone', REMOTE_URL)

    assert result.exit_code == 0
    assert "Cloning into 'lost'...\ndone." in result.output
    state = load(learner)
    assert state.working_files() == {'README.md': '# The Lost Project\n'}
    assert state.get_remote('origin').url == REMOTE_URL


def test_invalid_remote_value(invoke, initialized):
    result = invoke('run', initialized, '--remote', 'no-separator', 'git', 'fetch')
    assert result.exit_code == 1
    assert 'expected URL=STATE_FILE' in result.output
