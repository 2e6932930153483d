"""Integration tests for the corrupted timeline boss battle."""

import pytest

from gitquest.validation import validate


@pytest.fixture
def corrupted(run, repo):
    """A project whose last two commits corrupted it."""
    state = run(repo.write_file('project.txt', 'pristine\n'), 'git add .', 'git commit -m "Golden age"')
    state = state.write_file('project.txt', 'corrupted\n').write_file('virus.txt', 'spreading')
    state = run(state, 'git add .', 'git commit -m "Corruption begins"')
    state = state.write_file('project.txt', 'very corrupted\n')
    return run(state, 'git commit -a -m "Corruption spreads"')


@pytest.fixture
def golden(corrupted):
    return corrupted.commits[0].hash


@pytest.fixture
def criteria(golden):
    return {
        'type': 'custom',
        'parameters': {
            'validator': 'corrupted_timeline',
            'requiredCommitHashes': [golden[:7]],
        },
    }


def test_battle_starts_failed(criteria, corrupted):
    result = validate(criteria, corrupted)
    assert not result.success
    assert result.details['issue'] == 'wrong_commit'


def test_log_reveals_golden_commit(engine, corrupted, golden):
    output = engine.execute(corrupted, 'git log --oneline').output
    assert output.splitlines()[-1] == f"{golden[:7]} Golden age"


def test_hard_reset_wins(engine, criteria, corrupted, golden):
    result = engine.execute(corrupted, f"git reset --hard {golden[:7]}")
    assert result.output == f"HEAD is now at {golden[:7]} Golden age"

    state = result.new_state
    assert state.working_files() == {'project.txt': 'pristine\n'}

    outcome = validate(criteria, state, bonus_xp=150)
    assert outcome.success
    assert outcome.details == {'restoredCommit': golden}
    assert outcome.bonus_xp == 150
    assert f"(commit {golden[:7]})" in outcome.feedback


def test_checkout_of_golden_commit_wins(run, criteria, corrupted, golden):
    state = run(corrupted, f"git checkout {golden[:7]}")
    assert state.is_detached()
    assert 'virus.txt' not in state.working_directory
    assert validate(criteria, state).success


def test_mixed_reset_leaves_corruption(run, criteria, corrupted, golden):
    state = run(corrupted, f"git reset {golden}")
    result = validate(criteria, state)
    assert not result.success
    assert result.details == {'issue': 'working_directory_mismatch', 'file': 'project.txt'}


def test_new_files_after_restore_fail(run, criteria, corrupted, golden):
    state = run(corrupted, f"git reset --hard {golden}").write_file('relic.txt', 'x')
    result = validate(criteria, state)
    assert result.details == {'issue': 'working_directory_mismatch', 'file': 'relic.txt'}
