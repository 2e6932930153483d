"""Hand-written validators for ``custom`` criteria, including boss battles."""

from typing import Callable, Dict

from gitquest.core.state import RepositoryState
from gitquest.operations.conflicts import has_conflict_markers
from gitquest.validation.criteria import Custom, CustomValidator, ValidationResult


def manual_completion(criteria: Custom, state: RepositoryState) -> ValidationResult:
    return ValidationResult(True, 'Quest completed! Continue to the next challenge.')


def repository_initialized(criteria: Custom, state: RepositoryState) -> ValidationResult:
    if not state.branches:
        return ValidationResult(
            False, 'Repository not initialized. Use git init to create a new repository.'
        )
    return ValidationResult(True, 'Repository initialized successfully!')


def staging_area(criteria: Custom, state: RepositoryState) -> ValidationResult:
    staged = len(state.staging_area)
    if criteria.minimum_files is not None and staged < criteria.minimum_files:
        return ValidationResult(
            False,
            f"You need to stage at least {criteria.minimum_files} file(s). Currently staged: {staged}",
            details={'expected': criteria.minimum_files, 'actual': staged},
        )
    if staged == 0:
        return ValidationResult(False, 'No files staged. Use git add to stage your changes.')
    return ValidationResult(True, 'Files staged successfully!')


def corrupted_timeline(criteria: Custom, state: RepositoryState) -> ValidationResult:
    """
    HEAD must be restored to one of the whitelisted commits, and the
    working directory must match that commit's tree exactly.
    """
    current = state.head_hash()
    if current is None:
        return ValidationResult(
            False,
            'Your spell fizzled! The timeline is unstable. Make sure you are on a valid branch.',
            details={'issue': 'no_valid_branch'},
        )

    if not any(_same_commit(current, required) for required in criteria.required_commit_hashes):
        return ValidationResult(
            False,
            f"The corruption persists! You are currently at commit {current[:7]}, but you need "
            'to restore to one of the commits from before the corruption. Use \'git log\' to '
            "find the Golden Age commits, then use 'git reset --hard <commit>' or "
            "'git checkout <commit>' to restore the timeline.",
            details={
                'issue': 'wrong_commit',
                'currentCommit': current,
                'requiredCommits': list(criteria.required_commit_hashes),
            },
        )

    commit = state.get_commit(current)
    tree = commit.files()
    working = state.working_files()
    for path in sorted(set(tree) | set(working)):
        if working.get(path) != tree.get(path):
            return ValidationResult(
                False,
                f"Almost there! The timeline has been partially restored, but {path} still "
                'contains corrupted data. Make sure your working directory is clean and matches '
                'the restored commit.',
                details={'issue': 'working_directory_mismatch', 'file': path},
            )

    return ValidationResult(
        True,
        f"Victory! You have successfully restored the timeline to the Golden Age (commit "
        f"{current[:7]}). The corruption has been purged, and the Lost Project shines once more!",
        details={'restoredCommit': current},
    )


def convergence_conflict(criteria: Custom, state: RepositoryState) -> ValidationResult:
    """
    The parallel branch must be merged into the required branch with
    every conflict resolved and the merge committed.
    """
    required = criteria.required_branch
    if state.head != required:
        return ValidationResult(
            False,
            f"You must be on the {required} branch to complete this challenge. "
            f"Use 'git checkout {required}' to switch branches.",
            details={'issue': 'wrong_branch', 'currentBranch': state.head, 'requiredBranch': required},
        )

    branch = state.get_branch(required)
    if branch is None:
        return ValidationResult(
            False,
            f"The {required} branch does not exist!",
            details={'issue': 'branch_not_found'},
        )

    commit = state.get_commit(branch.commit_hash)
    if commit is None:
        return ValidationResult(
            False,
            'The timeline is fractured! The commit data is missing.',
            details={'issue': 'commit_not_found'},
        )

    if criteria.must_have_merge_commit and len(commit.get_parents()) != 2:
        return ValidationResult(
            False,
            'The timelines have not been unified! You need to merge the '
            f"{criteria.source_branch} branch into {required}. Use "
            f"\"git merge {criteria.source_branch}\" to begin the merge, then resolve any conflicts.",
            details={'issue': 'no_merge_commit', 'currentCommitParents': len(commit.get_parents())},
        )

    path = criteria.file_must_not_have_conflict_markers
    if path:
        entry = state.working_directory.get(path)
        if entry is None:
            return ValidationResult(
                False,
                f"The file {path} is missing from the working directory!",
                details={'issue': 'file_missing', 'file': path},
            )
        if has_conflict_markers(entry.content):
            return ValidationResult(
                False,
                f"The conflict in {path} has not been fully resolved! You must edit the file to "
                'remove the conflict markers (<<<<<<<, =======, >>>>>>>) and choose the content '
                f"you want to keep. Then stage the file with 'git add {path}' and complete the "
                "merge with 'git commit'.",
                details={'issue': 'conflict_markers_present', 'file': path},
            )

    if state.staging_area or state.is_merging():
        return ValidationResult(
            False,
            'The merge is not yet complete! You have staged changes but have not committed them. '
            'Use "git commit" to finalize the merge.',
            details={'issue': 'uncommitted_changes'},
        )

    return ValidationResult(
        True,
        'Victory! You have successfully unified the parallel timelines! The conflict has been '
        'resolved, and both versions of the story now exist in harmony. The Convergence is complete!',
        details={'mergeCommit': commit.hash},
    )


def branch_deleted(criteria: Custom, state: RepositoryState) -> ValidationResult:
    name = criteria.branch_name
    if state.get_branch(name) is not None:
        return ValidationResult(
            False,
            f"Branch \"{name}\" still exists. Use 'git branch -d {name}' to delete it.",
            details={'issue': 'branch_still_exists', 'branch': name},
        )
    return ValidationResult(True, f"Branch \"{name}\" has been deleted. Well done!")


CUSTOM_VALIDATORS: Dict[CustomValidator, Callable[[Custom, RepositoryState], ValidationResult]] = {
    CustomValidator.MANUAL_COMPLETION: manual_completion,
    CustomValidator.REPOSITORY_INITIALIZED: repository_initialized,
    CustomValidator.STAGING_AREA: staging_area,
    CustomValidator.CORRUPTED_TIMELINE: corrupted_timeline,
    CustomValidator.CONVERGENCE_CONFLICT: convergence_conflict,
    CustomValidator.BRANCH_DELETED: branch_deleted,
}


def _same_commit(actual: str, required: str) -> bool:
    # Quest data may list abbreviated hashes
    if len(required) >= 4 and actual.startswith(required.lower()):
        return True
    return actual == required
