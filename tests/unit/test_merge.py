"""Unit tests for merge operations."""

from gitquest.core.state import Branch
from gitquest.operations.merge import MergeEngine, MergeResult, merge_text, merge_trees


class TestMergeBase:
    """Tests for MergeEngine.find_merge_base."""

    def test_same_commit(self, repo_with_commits):
        head = repo_with_commits.head_hash()
        assert MergeEngine(repo_with_commits).find_merge_base(head, head) == head

    def test_direct_ancestor(self, repo_with_commits):
        head = repo_with_commits.head_hash()
        parent = repo_with_commits.head_commit().parent
        assert MergeEngine(repo_with_commits).find_merge_base(parent, head) == parent

    def test_diverged_branches(self, run, repo_with_commits):
        """Test finding merge base with diverged branches."""
        fork = repo_with_commits.head_hash()
        state = run(repo_with_commits, 'git checkout -b feature')
        state = run(state.write_file('feature.txt', 'f'), 'git add feature.txt', 'git commit -m "Feature"')
        feature_tip = state.head_hash()
        state = run(state, 'git checkout main')
        state = run(state.write_file('main.txt', 'm'), 'git add main.txt', 'git commit -m "Main"')

        engine = MergeEngine(state)
        assert engine.find_merge_base(state.head_hash(), feature_tip) == fork
        assert engine.find_merge_base(feature_tip, state.head_hash()) == fork

    def test_unrelated_histories(self, run, repo):
        first = run(repo.write_file('a.txt', 'a'), 'git add a.txt', 'git commit -m "A"')
        # An orphan root made by committing on a fresh unborn branch
        orphan = first.evolve(
            branches=first.branches + (Branch('orphan', ''),),
            head='orphan',
            working_directory={},
        )
        orphan = run(orphan.write_file('b.txt', 'b'), 'git add b.txt', 'git commit -m "B"')

        engine = MergeEngine(orphan)
        assert engine.find_merge_base(orphan.head_hash(), orphan.get_branch('main').commit_hash) is None


class TestMergeClassification:
    """Tests for up-to-date and fast-forward detection."""

    def test_up_to_date(self, repo_with_commits):
        head = repo_with_commits.head_hash()
        parent = repo_with_commits.head_commit().parent
        result = MergeEngine(repo_with_commits).merge(head, parent, 'old')
        assert result.up_to_date

    def test_fast_forward(self, repo_with_commits):
        head = repo_with_commits.head_hash()
        parent = repo_with_commits.head_commit().parent
        result = MergeEngine(repo_with_commits).merge(parent, head, 'main')
        assert result.is_fast_forward
        assert result.merged_files == repo_with_commits.head_tree()

    def test_unborn_can_fast_forward(self, repo_with_commits):
        assert MergeEngine(repo_with_commits).can_fast_forward(None, repo_with_commits.head_hash())


class TestMergeTrees:
    """Tests for file-level three-way merging."""

    def test_one_sided_changes(self):
        result = merge_trees(
            {'a.txt': 'a', 'b.txt': 'b', 'gone.txt': 'x'},
            {'a.txt': 'A', 'b.txt': 'b', 'gone.txt': 'x'},
            {'a.txt': 'a', 'b.txt': 'B', 'new.txt': 'n'},
            'feature',
        )
        assert result.success
        assert result.merged_files == {'a.txt': 'A', 'b.txt': 'B', 'new.txt': 'n'}

    def test_identical_changes(self):
        result = merge_trees({'a.txt': 'a'}, {'a.txt': 'same'}, {'a.txt': 'same'}, 'feature')
        assert result.success
        assert result.merged_files == {'a.txt': 'same'}

    def test_content_conflict(self):
        result = merge_trees(
            {'story.txt': 'The hero waited.\n'},
            {'story.txt': 'The hero turned right.\n'},
            {'story.txt': 'The hero turned left.\n'},
            'feature-alternate-story',
        )
        assert not result.success
        assert result.conflicted_paths == ['story.txt']
        assert result.conflicts[0].kind == 'content'
        assert result.merged_files['story.txt'] == (
            '<<<<<<< HEAD\n'
            'The hero turned right.\n'
            '=======\n'
            'The hero turned left.\n'
            '>>>>>>> feature-alternate-story\n'
        )

    def test_add_add_conflict(self):
        result = merge_trees({}, {'a.txt': 'ours\n'}, {'a.txt': 'theirs\n'}, 'feature')
        assert result.conflicts[0].kind == 'add/add'

    def test_modify_delete_conflict(self):
        result = merge_trees({'a.txt': 'base\n'}, {'a.txt': 'edited\n'}, {}, 'feature')
        conflict = result.conflicts[0]
        assert conflict.kind == 'modify/delete'
        assert conflict.theirs_content is None
        assert result.merged_files['a.txt'] == '<<<<<<< HEAD\nedited\n=======\n>>>>>>> feature\n'

    def test_repr(self):
        assert repr(MergeResult(is_fast_forward=True)) == 'MergeResult(fast-forward, conflicts=0)'


class TestMergeText:
    """Tests for line-level merging."""

    def test_non_overlapping_edits_merge_cleanly(self):
        content, conflicted = merge_text('a\nb\nc\n', 'A\nb\nc\n', 'a\nb\nC\n', 'feature')
        assert not conflicted
        assert content == 'A\nb\nC\n'

    def test_overlapping_edits_conflict(self):
        content, conflicted = merge_text(
            'line1\nline2\nline3\n',
            'line1\nours\nline3\n',
            'line1\ntheirs\nline3\n',
            'feature',
        )
        assert conflicted
        assert content == (
            'line1\n'
            '<<<<<<< HEAD\nours\n=======\ntheirs\n>>>>>>> feature\n'
            'line3\n'
        )

    def test_insertions_at_same_point_conflict(self):
        content, conflicted = merge_text('a\n', 'a\nours\n', 'a\ntheirs\n', 'feature')
        assert conflicted
        assert content.startswith('a\n<<<<<<< HEAD\nours\n')

    def test_missing_trailing_newline(self):
        content, conflicted = merge_text('Once', 'Ours', 'Theirs', 'feature')
        assert conflicted
        assert content == '<<<<<<< HEAD\nOurs\n=======\nTheirs\n>>>>>>> feature\n'
