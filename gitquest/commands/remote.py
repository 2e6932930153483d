"""Remote commands - remote, fetch, push, pull and clone.

Remote repositories live in a read-only ``RemoteHost``. Fetch and clone
copy commits out of it; push only moves the local remote-tracking
pointer, so the host is never written.
"""

from typing import List, Optional, Tuple

import structlog

from gitquest.commands.context import CommandContext
from gitquest.commands.merge import merge_into
from gitquest.commands.parser import parse_arguments
from gitquest.core.errors import CommandParseError, PreconditionError, RemoteError
from gitquest.core.state import Branch, FileEntry, Remote, RepositoryState

logger = structlog.get_logger()

DEFAULT_REMOTE = 'origin'


def remote_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """
    Manage the set of tracked remotes.

    Examples:
        git remote                       # List remote names
        git remote -v                    # List with URLs
        git remote add origin <url>      # Add a remote
        git remote remove origin         # Remove a remote
    """
    args = parse_arguments(tokens, switches={'-v', '--verbose'})
    state = ctx.state

    if not args.positionals:
        if args.has('-v', '--verbose'):
            lines = []
            for remote in state.remotes:
                lines.append(f"{remote.name}\t{remote.url} (fetch)")
                lines.append(f"{remote.name}\t{remote.url} (push)")
            return state, '\n'.join(lines)
        return state, '\n'.join(remote.name for remote in state.remotes)

    subcommand, rest = args.positionals[0], args.positionals[1:]

    if subcommand == 'add':
        if len(rest) != 2:
            raise CommandParseError('usage: git remote add <name> <url>')
        name, url = rest
        return state.add_remote(name, url), ''

    if subcommand in ('remove', 'rm'):
        if len(rest) != 1:
            raise CommandParseError('usage: git remote remove <name>')
        return state.remove_remote(rest[0]), ''

    if subcommand == 'get-url':
        if len(rest) != 1:
            raise CommandParseError('usage: git remote get-url <name>')
        return state, _require_remote(state, rest[0]).url

    raise CommandParseError(f"error: Unknown subcommand: {subcommand}")


def fetch_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """Download commits and update remote-tracking branches."""
    args = parse_arguments(tokens, switches={'--all', '-q', '--quiet'})
    state = ctx.state

    if args.has('--all'):
        names = [remote.name for remote in state.remotes]
    else:
        names = [args.positionals[0] if args.positionals else DEFAULT_REMOTE]
    branch = args.positionals[1] if len(args.positionals) > 1 else None

    outputs = []
    for name in names:
        state, output = fetch(ctx, state, name, branch)
        if output:
            outputs.append(output)
    return state, '\n'.join(outputs)


def fetch(
    ctx: CommandContext,
    state: RepositoryState,
    remote_name: str,
    branch: Optional[str] = None,
) -> Tuple[RepositoryState, str]:
    """
    Copy commits from the host and move ``remote/branch`` pointers.

    Returns:
        Tuple of (new state, ``From <url>`` report, empty when nothing changed)
    """
    remote = _require_remote(state, remote_name)
    source = ctx.remote_host.get(remote.url)
    if source is None:
        logger.warning('remote_unreachable', remote=remote_name, url=remote.url)
        return state, ''

    branches = [b for b in source.branches if b.commit_hash]
    if branch is not None:
        branches = [b for b in branches if b.name == branch]
        if not branches:
            raise RemoteError(f"fatal: couldn't find remote ref {branch}")

    state = state.with_commits(source.commits)
    lines = []
    for source_branch in branches:
        tracking = remote.get_branch(source_branch.name)
        old = tracking.commit_hash if tracking else ''
        if old == source_branch.commit_hash:
            continue
        state = state.set_remote_branch(remote_name, source_branch.name, source_branch.commit_hash)
        ref = f"{remote_name}/{source_branch.name}"
        if old:
            lines.append(f"   {old[:7]}..{source_branch.commit_hash[:7]}  {source_branch.name:<10} -> {ref}")
        else:
            lines.append(f" * [new branch]      {source_branch.name:<10} -> {ref}")

    if not lines:
        return state, ''
    return state, f"From {remote.url}\n" + '\n'.join(lines)


def push_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """
    Publish a local branch to a remote-tracking pointer.

    Only fast-forward updates are accepted unless ``--force`` is given.
    """
    args = parse_arguments(tokens, switches={'-u', '--set-upstream', '-f', '--force'})
    state = ctx.state

    remote_name = args.positionals[0] if args.positionals else DEFAULT_REMOTE
    if len(args.positionals) > 1:
        branch_name = args.positionals[1]
    else:
        current = state.current_branch()
        if current is None:
            raise PreconditionError(
                'fatal: You are not currently on a branch.\n'
                'To push the history leading to the current (detached HEAD)\n'
                'state now, use\n\n    git push origin HEAD:<name-of-remote-branch>'
            )
        branch_name = current.name

    remote = _require_remote(state, remote_name)
    local_name, _, remote_branch = branch_name.partition(':')
    remote_branch = remote_branch or local_name

    local_hash = state.resolve_ref(local_name)
    if local_hash is None:
        raise RemoteError(f"error: src refspec {local_name} does not match any")

    tracking = remote.get_branch(remote_branch)
    old = tracking.commit_hash if tracking else ''
    if old == local_hash:
        return state, 'Everything up-to-date'

    forced = False
    if old and old not in state.ancestors(local_hash):
        if not args.has('-f', '--force'):
            raise RemoteError(
                f"To {remote.url}\n"
                f" ! [rejected]        {local_name} -> {remote_branch} (non-fast-forward)\n"
                f"error: failed to push some refs to '{remote.url}'\n"
                'hint: Updates were rejected because the tip of your current branch is behind\n'
                "hint: its remote counterpart. Integrate the remote changes (e.g.\n"
                "hint: 'git pull ...') before pushing again."
            )
        forced = True

    new_state = state.set_remote_branch(remote_name, remote_branch, local_hash)
    logger.info('push', remote=remote_name, branch=remote_branch, forced=forced)

    if not old:
        line = f" * [new branch]      {local_name} -> {remote_branch}"
    elif forced:
        line = f" + {old[:7]}...{local_hash[:7]} {local_name} -> {remote_branch} (forced update)"
    else:
        line = f"   {old[:7]}..{local_hash[:7]}  {local_name} -> {remote_branch}"
    output = f"To {remote.url}\n{line}"
    if args.has('-u', '--set-upstream'):
        output += f"\nbranch '{local_name}' set up to track '{remote_name}/{remote_branch}'."
    return new_state, output


def pull_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """Fetch from a remote and merge its branch into the current branch."""
    args = parse_arguments(tokens, switches={'--ff-only', '--no-ff', '--no-rebase'})
    state = ctx.state

    remote_name = args.positionals[0] if args.positionals else DEFAULT_REMOTE
    current = state.current_branch()
    if len(args.positionals) > 1:
        branch_name = args.positionals[1]
    elif current is not None:
        branch_name = current.name
    else:
        raise PreconditionError('fatal: You are not currently on a branch.')

    state, fetched = fetch(ctx, state, remote_name, None)
    tracking = state.get_remote(remote_name).get_branch(branch_name)
    if tracking is None or not tracking.commit_hash:
        raise RemoteError(f"fatal: couldn't find remote ref {branch_name}")

    state, merged = merge_into(
        ctx,
        state,
        tracking.commit_hash,
        f"{remote_name}/{branch_name}",
        no_ff=args.has('--no-ff'),
        ff_only=args.has('--ff-only'),
    )
    return state, '\n'.join(part for part in (fetched, merged) if part)


def clone_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """
    Clone a repository from the remote host into an empty state.

    The clone gets copies of all commits, an ``origin`` remote with one
    tracking pointer per host branch, and a local branch for the host's
    checked-out branch. An unknown URL yields an empty repository.
    """
    args = parse_arguments(tokens, switches={'-q', '--quiet'}, options={'-b', '--branch'})
    state = ctx.state

    if not args.positionals or len(args.positionals) > 2:
        raise CommandParseError(
            'You must specify a repository to clone.\nUsage: git clone <url> [<directory>]'
        )
    url = args.positionals[0]
    directory = args.positionals[1] if len(args.positionals) > 1 else _directory_name(url)

    if state.is_initialized():
        raise PreconditionError(
            f"fatal: destination path '{directory}' already exists and is not an empty directory."
        )

    source = ctx.remote_host.get(url)
    header = f"Cloning into '{directory}'..."

    if source is None or not source.commits:
        logger.warning('clone_empty', url=url)
        branch = args.value('-b', '--branch') or ctx.default_branch
        new_state = RepositoryState(
            id=state.id,
            branches=(Branch(branch, ''),),
            head=branch,
            remotes=(Remote(DEFAULT_REMOTE, url),),
        )
        return new_state, f"{header}\nwarning: You appear to have cloned an empty repository."

    tracking = tuple(
        sorted((Branch(b.name, b.commit_hash) for b in source.branches if b.commit_hash),
               key=lambda b: b.name)
    )
    branch = args.value('-b', '--branch') or _default_branch(source) or ctx.default_branch
    start = next((b.commit_hash for b in tracking if b.name == branch), None)
    if start is None:
        if args.value('-b', '--branch'):
            raise RemoteError(f"fatal: Remote branch {branch} not found in upstream {DEFAULT_REMOTE}")
        start = source.head_hash() or source.commits[-1].hash
    commit = source.get_commit(start)

    new_state = RepositoryState(
        id=state.id,
        working_directory={path: FileEntry(content) for path, content in commit.files().items()},
        commits=source.commits,
        branches=(Branch(branch, start),),
        head=branch,
        remotes=(Remote(DEFAULT_REMOTE, url, tracking),),
    )
    logger.info('clone', url=url, commits=len(source.commits), branch=branch)
    return new_state, f"{header}\ndone."


def _require_remote(state: RepositoryState, name: str) -> Remote:
    remote = state.get_remote(name)
    if remote is None:
        raise RemoteError(
            f"fatal: '{name}' does not appear to be a git repository\n"
            'fatal: Could not read from remote repository.\n\n'
            'Please make sure you have the correct access rights\n'
            'and the repository exists.'
        )
    return remote


def _default_branch(source: RepositoryState) -> Optional[str]:
    current = source.current_branch()
    if current is not None and current.commit_hash:
        return current.name
    for branch in source.branches:
        if branch.commit_hash:
            return branch.name
    return None


def _directory_name(url: str) -> str:
    name = url.rstrip('/').rsplit('/', 1)[-1].rsplit(':', 1)[-1]
    if name.endswith('.git'):
        name = name[:-4]
    return name or 'repository'
