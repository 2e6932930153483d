"""Integration tests for clone, remote, push, fetch and pull."""

import pytest

from gitquest.commands.context import RemoteHost
from gitquest.commands.engine import Engine


@pytest.fixture
def cloned(remote_engine, remote_url, empty_state):
    result = remote_engine.execute(empty_state, f"git clone {remote_url}")
    assert result.success
    return result.new_state


@pytest.fixture
def updated_source(run, remote_source):
    """The published repository after someone else pushed to it."""
    state = remote_source.write_file('README.md', '# The Lost Project\nNow with a map.\n')
    return run(state, 'git commit -a -m "Add the map"')


@pytest.fixture
def updated_engine(clock, remote_url, updated_source):
    return Engine(clock=clock, remote_host=RemoteHost({remote_url: updated_source}))


class TestClone:
    """git clone."""

    def test_clone(self, remote_engine, remote_url, remote_source, empty_state):
        result = remote_engine.execute(empty_state, f"git clone {remote_url}")
        state = result.new_state

        assert result.output == "Cloning into 'lost-project'...\ndone."
        assert state.id == empty_state.id
        assert state.head == 'main'
        assert state.head_hash() == remote_source.head_hash()
        assert state.working_files() == {'README.md': '# The Lost Project\n'}
        assert state.get_remote('origin').url == remote_url
        assert state.get_remote('origin').get_branch('main').commit_hash == remote_source.head_hash()

    def test_clone_into_directory(self, remote_engine, remote_url, empty_state):
        result = remote_engine.execute(empty_state, f"git clone {remote_url} quest")
        assert result.output == "Cloning into 'quest'...\ndone."

    def test_log_shows_remote_refs(self, engine, cloned):
        head = cloned.head_commit()
        assert engine.execute(cloned, 'git log --oneline').output == (
            f"{head.short_hash} (HEAD -> main, origin/main) Found the project"
        )

    def test_remote_listing(self, engine, cloned, remote_url):
        assert engine.execute(cloned, 'git remote').output == 'origin'
        assert engine.execute(cloned, 'git remote -v').output == (
            f"origin\t{remote_url} (fetch)\norigin\t{remote_url} (push)"
        )
        assert engine.execute(cloned, 'git branch -a').output == '* main\n  remotes/origin/main'

    def test_clone_unknown_url(self, engine, empty_state):
        result = engine.execute(empty_state, 'git clone https://nowhere.example/void.git')
        state = result.new_state

        assert result.output == (
            "Cloning into 'void'...\nwarning: You appear to have cloned an empty repository."
        )
        assert state.is_initialized()
        assert state.head_hash() is None
        assert state.get_remote('origin').url == 'https://nowhere.example/void.git'

    def test_clone_into_existing_repository(self, remote_engine, remote_url, repo):
        result = remote_engine.execute(repo, f"git clone {remote_url}")
        assert result.error == (
            "fatal: destination path 'lost-project' already exists and is not an empty directory."
        )

    def test_clone_missing_branch(self, remote_engine, remote_url, empty_state):
        result = remote_engine.execute(empty_state, f"git clone -b nope {remote_url}")
        assert result.error == 'fatal: Remote branch nope not found in upstream origin'

    def test_checkout_tracks_remote_branch(self, clock, run, remote_url, remote_source, empty_state):
        source = run(remote_source, 'git branch dev')
        host_engine = Engine(clock=clock, remote_host=RemoteHost({remote_url: source}))
        state = host_engine.execute(empty_state, f"git clone {remote_url}").new_state

        result = host_engine.execute(state, 'git checkout dev')
        assert result.output == (
            "branch 'dev' set up to track 'origin/dev'.\nSwitched to a new branch 'dev'"
        )
        assert result.new_state.get_branch('dev').commit_hash == source.head_hash()


class TestRemoteCommand:
    """git remote add / remove."""

    def test_add_and_remove(self, run, engine, repo_with_commits):
        state = run(repo_with_commits, 'git remote add upstream https://quest.example/up.git')
        assert engine.execute(state, 'git remote get-url upstream').output == 'https://quest.example/up.git'

        state = run(state, 'git remote remove upstream')
        assert state.remotes == ()

    def test_add_existing(self, engine, cloned):
        result = engine.execute(cloned, 'git remote add origin https://quest.example/other.git')
        assert result.error == 'error: remote origin already exists.'

    def test_remove_unknown(self, engine, repo_with_commits):
        result = engine.execute(repo_with_commits, 'git remote remove upstream')
        assert result.error == "error: No such remote: 'upstream'"


class TestPush:
    """git push only moves the remote-tracking pointer."""

    def test_fast_forward(self, engine, run, cloned, remote_url, remote_source):
        old = remote_source.head_hash()
        state = run(cloned.write_file('map.txt', 'X marks the spot\n'), 'git add map.txt', 'git commit -m "Map"')
        new = state.head_hash()

        result = engine.execute(state, 'git push')
        assert result.output == f"To {remote_url}\n   {old[:7]}..{new[:7]}  main -> main"
        assert result.new_state.get_remote('origin').get_branch('main').commit_hash == new

    def test_up_to_date(self, engine, cloned):
        assert engine.execute(cloned, 'git push origin main').output == 'Everything up-to-date'

    def test_rejected_then_forced(self, engine, run, cloned, remote_url):
        state = run(cloned.write_file('a.txt', 'a'), 'git add a.txt', 'git commit -m "A"', 'git push')
        pushed = state.head_hash()
        state = run(state, 'git reset --hard HEAD~1')
        state = run(state.write_file('b.txt', 'b'), 'git add b.txt', 'git commit -m "B"')

        result = engine.execute(state, 'git push')
        assert ' ! [rejected]        main -> main (non-fast-forward)' in result.error
        assert result.new_state.get_remote('origin').get_branch('main').commit_hash == pushed

        result = engine.execute(state, 'git push -f')
        new = state.head_hash()
        assert result.output == (
            f"To {remote_url}\n + {pushed[:7]}...{new[:7]} main -> main (forced update)"
        )

    def test_new_branch_with_upstream(self, engine, run, cloned, remote_url):
        state = run(cloned, 'git checkout -b quest')
        result = engine.execute(state, 'git push -u origin quest')

        assert result.output == (
            f"To {remote_url}\n"
            ' * [new branch]      quest -> quest\n'
            "branch 'quest' set up to track 'origin/quest'."
        )
        assert result.new_state.get_remote('origin').get_branch('quest').commit_hash == state.head_hash()

    def test_unknown_local_branch(self, engine, cloned):
        result = engine.execute(cloned, 'git push origin ghost')
        assert result.error == 'error: src refspec ghost does not match any'

    def test_without_remote(self, engine, repo_with_commits):
        result = engine.execute(repo_with_commits, 'git push')
        assert result.error.startswith("fatal: 'origin' does not appear to be a git repository")


class TestFetchAndPull:
    """Fetching from the host and integrating the result."""

    def test_fetch(self, updated_engine, cloned, remote_url, remote_source, updated_source):
        old, new = remote_source.head_hash(), updated_source.head_hash()
        result = updated_engine.execute(cloned, 'git fetch')
        state = result.new_state

        assert result.output == (
            f"From {remote_url}\n   {old[:7]}..{new[:7]}  main       -> origin/main"
        )
        assert state.get_remote('origin').get_branch('main').commit_hash == new
        assert state.get_commit(new) is not None
        # Fetch never touches the local branch
        assert state.head_hash() == old
        assert state.working_files() == cloned.working_files()

        assert updated_engine.execute(state, 'git fetch').output == ''

    def test_pull_fast_forwards(self, updated_engine, cloned, remote_source, updated_source):
        old, new = remote_source.head_hash(), updated_source.head_hash()
        result = updated_engine.execute(cloned, 'git pull')

        assert result.output.endswith(f"Updating {old[:7]}..{new[:7]}\nFast-forward\n 1 file changed")
        assert result.new_state.head_hash() == new
        assert result.new_state.working_directory['README.md'].content.endswith('Now with a map.\n')

    def test_pull_creates_merge_commit(self, updated_engine, run, cloned, updated_source):
        state = run(cloned.write_file('log.txt', 'day one\n'), 'git add log.txt', 'git commit -m "Journal"')
        result = updated_engine.execute(state, 'git pull')
        merge = result.new_state.head_commit()

        assert "Merge made by the 'recursive' strategy." in result.output
        assert merge.parents == (state.head_hash(), updated_source.head_hash())
        assert merge.message == "Merge branch 'origin/main' into main"
        assert set(merge.files()) == {'README.md', 'log.txt'}

    def test_fetch_from_unreachable_host(self, engine, run, repo_with_commits):
        state = run(repo_with_commits, 'git remote add origin https://nowhere.example/x.git')
        result = engine.execute(state, 'git fetch')
        assert result.success
        assert result.output == ''
        assert result.new_state.get_remote('origin').branches == ()
