"""Evaluates validation criteria against a repository state."""

import dataclasses
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

import structlog

from gitquest.core.state import RepositoryState
from gitquest.operations.conflicts import has_conflict_markers
from gitquest.validation.criteria import (
    BranchExists,
    CommitExists,
    Criteria,
    Custom,
    FileContent,
    MergeCompleted,
    ValidationResult,
    parse_criteria,
)
from gitquest.validation.custom import CUSTOM_VALIDATORS

logger = structlog.get_logger()

CriteriaInput = Union[Criteria, Mapping[str, Any], Iterable[Union[Criteria, Mapping[str, Any]]]]


def evaluate(criteria: Criteria, state: RepositoryState) -> ValidationResult:
    """
    Evaluate a single criterion.

    Args:
        criteria: Parsed criterion
        state: Repository state to inspect; never modified

    Returns:
        ValidationResult with learner-facing feedback
    """
    evaluator = _EVALUATORS[type(criteria)]
    return evaluator(criteria, state)


def validate(
    criteria: CriteriaInput,
    state: RepositoryState,
    bonus_xp: Optional[int] = None,
) -> ValidationResult:
    """
    Validate a quest criterion or an ordered boss-battle condition list.

    A list is evaluated in order and the first failure is returned as-is.
    On success the last result is returned, carrying ``bonus_xp`` if given.

    Args:
        criteria: A criterion, a persisted criterion record, or a list of either
        state: Repository state to inspect
        bonus_xp: Bonus experience reported on success

    Raises:
        CriteriaError: A persisted record is malformed
    """
    items = [criteria] if _is_single(criteria) else list(criteria)
    parsed = [parse_criteria(c) if isinstance(c, Mapping) else c for c in items]

    result = None
    for criterion in parsed:
        result = evaluate(criterion, state)
        if not result.success:
            logger.debug('validation_failed', repo=state.id, criteria=criterion.type.value)
            return result

    if result is None:
        result = ValidationResult(True, 'Victory! You have successfully completed the boss battle!')
    if bonus_xp is not None:
        result = dataclasses.replace(result, bonus_xp=bonus_xp)
    logger.debug('validation_passed', repo=state.id, conditions=len(parsed))
    return result


def _is_single(criteria: CriteriaInput) -> bool:
    return isinstance(criteria, Mapping) or isinstance(
        criteria, (CommitExists, BranchExists, FileContent, MergeCompleted, Custom)
    )


def _commit_exists(criteria: CommitExists, state: RepositoryState) -> ValidationResult:
    commits = state.commits
    if criteria.branch_name is not None:
        branch = state.get_branch(criteria.branch_name)
        if branch is None:
            return _branch_missing(criteria.branch_name, state)
        reachable = state.ancestors(branch.commit_hash)
        commits = tuple(c for c in state.commits if c.hash in reachable)

    if criteria.minimum_commits is not None and len(commits) < criteria.minimum_commits:
        return ValidationResult(
            False,
            f"You need at least {criteria.minimum_commits} commit(s). "
            f"You currently have {len(commits)}.",
            details={'expected': criteria.minimum_commits, 'actual': len(commits)},
        )

    if criteria.commit_message is not None:
        if not any(criteria.commit_message in c.message for c in commits):
            return ValidationResult(
                False,
                f"No commit found with message containing \"{criteria.commit_message}\".",
                details={'expectedMessage': criteria.commit_message},
            )

    if criteria.commit_hash is not None:
        if not any(c.hash == criteria.commit_hash for c in commits):
            return ValidationResult(
                False,
                f"Commit with hash \"{criteria.commit_hash}\" not found.",
                details={'expectedHash': criteria.commit_hash},
            )

    return ValidationResult(True, 'Great work! Your commits look perfect.')


def _branch_exists(criteria: BranchExists, state: RepositoryState) -> ValidationResult:
    count = len(state.branches)
    if criteria.minimum_branches is not None and count < criteria.minimum_branches:
        return ValidationResult(
            False,
            f"You need at least {criteria.minimum_branches} branch(es). You currently have {count}.",
            details={'expected': criteria.minimum_branches, 'actual': count},
        )

    if criteria.branch_name is not None and state.get_branch(criteria.branch_name) is None:
        return _branch_missing(criteria.branch_name, state)

    return ValidationResult(True, 'Excellent! Your branches are set up correctly.')


def _branch_missing(name: str, state: RepositoryState) -> ValidationResult:
    available = [b.name for b in state.branches]
    return ValidationResult(
        False,
        f"Branch \"{name}\" not found. Available branches: {', '.join(available)}",
        details={'expectedBranch': name, 'availableBranches': available},
    )


def _file_content(criteria: FileContent, state: RepositoryState) -> ValidationResult:
    path = criteria.file_path
    entry = state.working_directory.get(path)

    if criteria.file_exists is True and entry is None:
        return ValidationResult(
            False,
            f"File \"{path}\" does not exist in the working directory.",
            details={'expectedFile': path},
        )
    if criteria.file_exists is False and entry is not None:
        return ValidationResult(
            False, f"File \"{path}\" should not exist.", details={'unexpectedFile': path}
        )

    if criteria.expected_content is not None or criteria.contains_text is not None:
        if entry is None:
            return ValidationResult(False, f"File \"{path}\" not found.")

    if criteria.expected_content is not None and entry.content != criteria.expected_content:
        return ValidationResult(
            False,
            f"File \"{path}\" content doesn't match expected content.",
            details={'expected': criteria.expected_content, 'actual': entry.content},
        )

    if criteria.contains_text is not None and criteria.contains_text not in entry.content:
        return ValidationResult(
            False,
            f"File \"{path}\" should contain \"{criteria.contains_text}\".",
            details={'expectedText': criteria.contains_text},
        )

    return ValidationResult(True, 'Perfect! Your file content is correct.')


def _merge_completed(criteria: MergeCompleted, state: RepositoryState) -> ValidationResult:
    candidates = state.commits
    if criteria.branch_name is not None:
        branch = state.get_branch(criteria.branch_name)
        if branch is None:
            return _branch_missing(criteria.branch_name, state)
        reachable = state.ancestors(branch.commit_hash)
        candidates = tuple(c for c in state.commits if c.hash in reachable)

    merged = any(c.is_merge_commit for c in candidates)
    if criteria.source_branch is not None:
        source = state.get_branch(criteria.source_branch)
        source_hash = source.commit_hash if source else None
        merged = any(c.is_merge_commit and source_hash in c.parents for c in candidates) or (
            merged and source is None
        )
        if not merged and criteria.allow_fast_forward and source_hash:
            merged = source_hash in {c.hash for c in candidates}

    if not merged:
        return ValidationResult(False, "No merge commit found. Make sure you've completed the merge.")

    if criteria.no_conflicts:
        if state.conflicts or any(has_conflict_markers(e.content) for e in state.working_directory.values()):
            return ValidationResult(
                False,
                'There are still unresolved conflicts in your files. '
                'Please resolve them before completing the merge.',
            )

    return ValidationResult(True, "Excellent merge! You've successfully combined the branches.")


def _custom(criteria: Custom, state: RepositoryState) -> ValidationResult:
    return CUSTOM_VALIDATORS[criteria.validator](criteria, state)


_EVALUATORS: Dict[type, Callable[[Any, RepositoryState], ValidationResult]] = {
    CommitExists: _commit_exists,
    BranchExists: _branch_exists,
    FileContent: _file_content,
    MergeCompleted: _merge_completed,
    Custom: _custom,
}
