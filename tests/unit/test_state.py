"""Unit tests for the repository state model."""

import dataclasses
from datetime import datetime, timezone

import pytest

from gitquest.commands.context import RemoteHost
from gitquest.commands.engine import Engine
from gitquest.core.errors import (
    BranchExistsError,
    InvariantViolationError,
    NothingToCommitError,
    PathspecError,
    PreconditionError,
    UnknownRevisionError,
)
from gitquest.core.hash import hash_text
from gitquest.core.objects import tree_from_files
from gitquest.core.state import Branch, Commit, FileEntry, RepositoryState, validate_branch_name

STAMP = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestCommit:
    """Tests for commit creation and formatting."""

    def test_hash_covers_tree_parents_author_date_and_message(self):
        tree = {'story.txt': FileEntry('Once upon a time\n')}
        commit = Commit.create('First chapter', 'Chrono-Coder', tree, timestamp=STAMP)

        expected = hash_text(
            'commit\n'
            f"tree {tree_from_files(tree).hash}\n"
            'parent root\n'
            'author Chrono-Coder\n'
            f"date {STAMP.isoformat()}\n"
            '\n'
            'First chapter'
        )
        assert commit.hash == expected
        assert commit.parent is None
        assert commit.parents == ()

    def test_hash_is_deterministic(self):
        tree = {'a.txt': FileEntry('one')}
        first = Commit.create('msg', 'A', tree, timestamp=STAMP)
        second = Commit.create('msg', 'A', tree, timestamp=STAMP)
        assert first.hash == second.hash

    def test_parents_change_hash(self):
        tree = {'a.txt': FileEntry('one')}
        root = Commit.create('msg', 'A', tree, timestamp=STAMP)
        child = Commit.create('msg', 'A', tree, parents=[root.hash], timestamp=STAMP)
        assert child.hash != root.hash
        assert child.parent == root.hash

    def test_merge_commit_has_two_parents(self):
        commit = Commit.create('merge', 'A', {}, parents=['a' * 40, 'b' * 40], timestamp=STAMP)
        assert commit.is_merge_commit
        assert commit.parent == 'a' * 40
        assert commit.to_dict()['parents'] == ['a' * 40, 'b' * 40]

    def test_tree_is_snapshot_without_flags(self):
        commit = Commit.create('msg', 'A', {'a.txt': FileEntry('x', modified=True)}, timestamp=STAMP)
        assert commit.tree['a.txt'] == FileEntry('x')
        assert commit.files() == {'a.txt': 'x'}

    def test_format_oneline_with_decoration(self):
        commit = Commit.create('Subject line\n\nBody', 'A', {}, timestamp=STAMP)
        assert commit.format(oneline=True, decoration='HEAD -> main') == (
            f"{commit.short_hash} (HEAD -> main) Subject line"
        )

    def test_format_full(self):
        commit = Commit.create('Subject line', 'Chrono-Coder', {}, timestamp=STAMP)
        text = commit.format()
        assert text.startswith(f"commit {commit.hash}\n")
        assert 'Author: Chrono-Coder' in text
        assert 'Date:   Fri, 01 Mar 2024 12:00:00 GMT' in text
        assert text.endswith('    Subject line\n')

    def test_timestamp_accepts_zulu_strings(self):
        commit = Commit.from_dict({
            'hash': 'f' * 40,
            'message': 'm',
            'timestamp': '2024-03-01T12:00:00Z',
            'parent': None,
            'tree': {},
        })
        assert commit.timestamp == STAMP


class TestImmutability:
    """States are values: mutators return new states."""

    def test_write_file_returns_new_state(self, repo):
        updated = repo.write_file('story.txt', 'text')
        assert 'story.txt' in updated.working_directory
        assert 'story.txt' not in repo.working_directory

    def test_file_maps_are_read_only(self, repo):
        with pytest.raises(TypeError):
            repo.working_directory['story.txt'] = FileEntry('text')

    def test_fields_are_frozen(self, repo):
        with pytest.raises(dataclasses.FrozenInstanceError):
            repo.head = 'other'

    def test_modified_flag_tracks_index(self, repo_with_commits):
        assert not repo_with_commits.working_directory['story.txt'].modified

        edited = repo_with_commits.write_file('story.txt', 'rewritten\n')
        assert edited.working_directory['story.txt'].modified

        staged = edited.stage_file('story.txt')
        assert not staged.working_directory['story.txt'].modified

    def test_write_file_rejects_bad_paths(self, repo):
        with pytest.raises(PathspecError):
            repo.write_file('/etc/passwd', 'x')

    def test_write_file_under_existing_file(self, repo):
        state = repo.write_file('a', 'x\n')
        with pytest.raises(PathspecError, match="'a/b' conflicts with existing path 'a'"):
            state.write_file('a/b', 'y\n')

    def test_write_file_over_existing_directory(self, repo):
        state = repo.write_file('maps/north.txt', 'x\n')
        with pytest.raises(PathspecError, match="conflicts with existing path 'maps/north.txt'"):
            state.write_file('maps', 'y\n')
        assert state.write_file('maps.txt', 'y\n').working_files()['maps.txt'] == 'y\n'


class TestStaging:
    """Tests for the staging area."""

    def test_stage_new_file(self, repo):
        state = repo.write_file('story.txt', 'text').stage_file('story.txt')
        assert state.staging_area['story.txt'] == FileEntry('text')
        assert state.index_tree() == {'story.txt': 'text'}

    def test_stage_deletion(self, repo_with_commits):
        state = repo_with_commits.remove_file('notes.txt').stage_file('notes.txt')
        assert state.staging_area['notes.txt'].deleted
        assert 'notes.txt' not in state.index_tree()

    def test_stage_unknown_path(self, repo):
        with pytest.raises(PathspecError, match="pathspec 'ghost.txt' did not match any files"):
            repo.stage_file('ghost.txt')

    def test_staging_unchanged_file_clears_entry(self, repo_with_commits):
        edited = repo_with_commits.write_file('story.txt', 'draft').stage_file('story.txt')
        reverted = edited.write_file('story.txt', 'Once upon a time\nThe end\n').stage_file('story.txt')
        assert reverted.staging_area == {}

    def test_unstage_file(self, repo):
        state = repo.write_file('story.txt', 'text').stage_file('story.txt')
        state = state.unstage_file('story.txt')
        assert state.staging_area == {}
        assert 'story.txt' in state.working_directory

    def test_discard_working_changes(self, repo_with_commits):
        state = repo_with_commits.write_file('story.txt', 'ruined')
        state = state.discard_working_changes('story.txt')
        assert state.working_directory['story.txt'].content == 'Once upon a time\nThe end\n'


class TestCommitting:
    """Tests for RepositoryState.commit."""

    def test_commit_advances_branch(self, repo):
        state = repo.write_file('a.txt', 'one').stage_file('a.txt')
        state = state.commit('First', timestamp=STAMP)

        head = state.head_commit()
        assert state.get_branch('main').commit_hash == head.hash
        assert head.files() == {'a.txt': 'one'}
        assert state.staging_area == {}

    def test_commit_with_nothing_staged(self, repo_with_commits):
        with pytest.raises(NothingToCommitError, match='nothing to commit, working tree clean'):
            repo_with_commits.commit('empty')

    def test_commit_with_only_unstaged_changes(self, repo_with_commits):
        state = repo_with_commits.write_file('story.txt', 'changed')
        with pytest.raises(NothingToCommitError, match='no changes added to commit'):
            state.commit('nope')

    def test_commit_requires_message(self, repo):
        state = repo.write_file('a.txt', 'one').stage_file('a.txt')
        with pytest.raises(PreconditionError):
            state.commit('   ')

    def test_commit_in_detached_head_moves_head(self, repo_with_commits):
        first = repo_with_commits.resolve_ref('HEAD~1')
        state = repo_with_commits.set_head(first)
        state = state.write_file('a.txt', 'x').stage_file('a.txt').commit('detached work')

        assert state.is_detached()
        assert state.head == state.head_commit().hash
        assert state.head_commit().parent == first


class TestRevisions:
    """Tests for resolve_ref."""

    def test_head_and_branch(self, repo_with_commits):
        head = repo_with_commits.head_hash()
        assert repo_with_commits.resolve_ref('HEAD') == head
        assert repo_with_commits.resolve_ref('main') == head

    def test_ancestry_suffixes(self, repo_with_commits):
        parent = repo_with_commits.head_commit().parent
        assert repo_with_commits.resolve_ref('HEAD~1') == parent
        assert repo_with_commits.resolve_ref('main^') == parent
        assert repo_with_commits.resolve_ref('HEAD~2') is None

    def test_abbreviated_hash(self, repo_with_commits):
        head = repo_with_commits.head_hash()
        assert repo_with_commits.resolve_ref(head[:7]) == head
        assert repo_with_commits.resolve_ref(head[:3]) is None

    def test_unknown(self, repo_with_commits):
        assert repo_with_commits.resolve_ref('nowhere') is None

    def test_unborn_head(self, repo):
        assert repo.resolve_ref('HEAD') is None

    def test_ancestors(self, repo_with_commits):
        head = repo_with_commits.head_hash()
        assert repo_with_commits.ancestors(head) == {c.hash for c in repo_with_commits.commits}


class TestBranches:
    """Tests for branch mutators."""

    def test_create_branch_at_head(self, repo_with_commits):
        state = repo_with_commits.create_branch('feature')
        assert state.get_branch('feature').commit_hash == repo_with_commits.head_hash()
        assert state.head == 'main'

    def test_create_duplicate_branch(self, repo_with_commits):
        with pytest.raises(BranchExistsError, match="A branch named 'main' already exists"):
            repo_with_commits.create_branch('main')

    def test_create_branch_on_unborn_head(self, repo):
        with pytest.raises(UnknownRevisionError, match="Not a valid object name: 'main'"):
            repo.create_branch('feature')

    def test_delete_checked_out_branch(self, repo_with_commits):
        with pytest.raises(PreconditionError, match="Cannot delete branch 'main' checked out"):
            repo_with_commits.delete_branch('main')

    def test_delete_unmerged_branch_needs_force(self, run, repo_with_commits):
        state = repo_with_commits.write_file('side.txt', 'side')
        state = run(state, 'git checkout -b side', 'git add side.txt', 'git commit -m "Side"', 'git checkout main')

        with pytest.raises(PreconditionError, match='not fully merged'):
            state.delete_branch('side')
        assert state.delete_branch('side', force=True).get_branch('side') is None

    @pytest.mark.parametrize('name', ['bad..name', '-dash', 'trailing/', 'HEAD', 'with space', ''])
    def test_invalid_branch_names(self, name):
        with pytest.raises(PreconditionError):
            validate_branch_name(name)


class TestInvariants:
    """Tests for check_invariants."""

    def test_valid_state_passes(self, repo_with_commits):
        repo_with_commits.check_invariants()

    def test_missing_parent(self):
        orphan = Commit.create('x', 'A', {'a.txt': FileEntry('1')}, parents=['f' * 40], timestamp=STAMP)
        state = RepositoryState(commits=(orphan,), branches=(Branch('main', orphan.hash),))
        with pytest.raises(InvariantViolationError, match='missing parent'):
            state.check_invariants()

    def test_branch_to_missing_commit(self):
        state = RepositoryState(branches=(Branch('main', 'e' * 40),))
        with pytest.raises(InvariantViolationError, match="branch 'main' points at missing commit"):
            state.check_invariants()

    def test_conflicts_without_merge(self, repo):
        broken = dataclasses.replace(repo, conflicts=('a.txt',))
        with pytest.raises(InvariantViolationError):
            broken.check_invariants()


class TestSerialization:
    """Tests for the persisted camelCase format."""

    def test_round_trip(self, repo_with_commits):
        state = repo_with_commits.write_file('draft.txt', 'wip').create_branch('feature')
        data = state.to_dict()

        assert data['head'] == 'main'
        assert 'workingDirectory' in data and 'stagingArea' in data
        assert {'name': 'feature', 'commitHash': state.head_hash()} in data['branches']
        assert 'mergeHead' not in data
        assert RepositoryState.from_dict(data).to_dict() == data

    def test_from_dict_fills_defaults(self):
        state = RepositoryState.from_dict({'branches': [{'name': 'main', 'commitHash': ''}]})
        assert state.head == 'main'
        assert state.is_initialized()
        assert state.id

    def test_empty_state_is_uninitialized(self):
        assert not RepositoryState.empty('x').is_initialized()


def assert_history_kept(before, after):
    """Existing commits are untouched and new ones only ever follow them."""
    by_hash = {commit.hash: commit for commit in after.commits}
    for commit in before.commits:
        kept = by_hash[commit.hash]
        assert dict(kept.tree) == dict(commit.tree)
        assert kept.parent == commit.parent
        assert kept.parents == commit.parents
    assert [c.hash for c in after.commits[:len(before.commits)]] == [c.hash for c in before.commits]


class TestHistoryIsAppendOnly:
    """Commands add commits but never rewrite or drop recorded ones."""

    @pytest.fixture
    def history(self, run, repo_with_commits):
        state = run(repo_with_commits, 'git checkout -b feature')
        state = run(state.write_file('feature.txt', 'new power\n'), 'git add .', 'git commit -m "Feature"')
        state = run(state, 'git checkout main')
        return run(state.write_file('map.txt', 'north\n'), 'git add .', 'git commit -m "Map"')

    def test_reset_hard(self, run, history):
        after = run(history, 'git reset --hard HEAD~2')
        assert len(after.commits) == len(history.commits)
        assert_history_kept(history, after)

    def test_revert(self, run, history):
        after = run(history, 'git revert HEAD')
        assert len(after.commits) == len(history.commits) + 1
        assert_history_kept(history, after)

    def test_three_way_merge(self, run, history):
        after = run(history, 'git merge feature')
        assert after.head_commit().is_merge_commit
        assert len(after.commits) == len(history.commits) + 1
        assert_history_kept(history, after)

    def test_commit(self, run, history):
        after = run(history.write_file('map.txt', 'north\nsouth\n'), 'git commit -a -m "Extend map"')
        assert len(after.commits) == len(history.commits) + 1
        assert_history_kept(history, after)

    def test_fetch(self, clock, run, remote_engine, remote_url, remote_source, empty_state):
        cloned = remote_engine.execute(empty_state, f"git clone {remote_url}").new_state
        before = run(cloned.write_file('notes.txt', 'mine\n'), 'git add .', 'git commit -m "Local"')

        published = run(remote_source.write_file('README.md', 'moved\n'), 'git commit -a -m "Move"')
        fetcher = Engine(clock=clock, remote_host=RemoteHost({remote_url: published}))
        result = fetcher.execute(before, 'git fetch')

        assert result.success
        assert len(result.new_state.commits) == len(before.commits) + 1
        assert_history_kept(before, result.new_state)
