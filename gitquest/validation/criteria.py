"""Validation criteria for quests and boss battles.

Criteria are persisted as ``{"type": ..., "parameters": {...}}`` records
with camelCase parameter names; ``parse_criteria`` turns them into the
frozen dataclasses below and rejects anything it does not know.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Union

from gitquest.core.errors import CriteriaError


class CriteriaType(str, Enum):
    """Persisted ``type`` tag of a criterion."""

    COMMIT_EXISTS = 'commit_exists'
    BRANCH_EXISTS = 'branch_exists'
    FILE_CONTENT = 'file_content'
    MERGE_COMPLETED = 'merge_completed'
    CUSTOM = 'custom'


class CustomValidator(str, Enum):
    """Hand-written validators selectable by ``custom`` criteria."""

    MANUAL_COMPLETION = 'manual_completion'
    REPOSITORY_INITIALIZED = 'repository_initialized'
    STAGING_AREA = 'staging_area'
    CORRUPTED_TIMELINE = 'corrupted_timeline'
    CONVERGENCE_CONFLICT = 'convergence_conflict'
    BRANCH_DELETED = 'branch_deleted'


# Boolean parameters used by older quest data instead of ``validator``
LEGACY_FLAGS = {
    'requiresManualCompletion': CustomValidator.MANUAL_COMPLETION,
    'checkRepositoryInitialized': CustomValidator.REPOSITORY_INITIALIZED,
    'checkStagingArea': CustomValidator.STAGING_AREA,
}


@dataclass
class ValidationResult:
    """Outcome of evaluating criteria against a repository state."""
    success: bool
    feedback: str
    bonus_xp: Optional[int] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'success': self.success, 'feedback': self.feedback}
        if self.bonus_xp is not None:
            data['bonusXp'] = self.bonus_xp
        if self.details is not None:
            data['details'] = self.details
        return data


@dataclass(frozen=True)
class CommitExists:
    """At least N commits, optionally on a branch, with a message or hash."""
    type: ClassVar[CriteriaType] = CriteriaType.COMMIT_EXISTS
    minimum_commits: Optional[int] = None
    commit_message: Optional[str] = None
    commit_hash: Optional[str] = None
    branch_name: Optional[str] = None


@dataclass(frozen=True)
class BranchExists:
    type: ClassVar[CriteriaType] = CriteriaType.BRANCH_EXISTS
    branch_name: Optional[str] = None
    minimum_branches: Optional[int] = None


@dataclass(frozen=True)
class FileContent:
    """Checks on one working-directory file."""
    type: ClassVar[CriteriaType] = CriteriaType.FILE_CONTENT
    file_path: str = ''
    expected_content: Optional[str] = None
    contains_text: Optional[str] = None
    file_exists: Optional[bool] = None


@dataclass(frozen=True)
class MergeCompleted:
    """
    A merge has been recorded.

    With ``branch_name`` the merge commit must be in that branch's
    history; with ``allow_fast_forward`` a fast-forward of
    ``source_branch`` into it also counts.
    """
    type: ClassVar[CriteriaType] = CriteriaType.MERGE_COMPLETED
    branch_name: Optional[str] = None
    source_branch: Optional[str] = None
    allow_fast_forward: bool = False
    no_conflicts: bool = False


@dataclass(frozen=True)
class Custom:
    type: ClassVar[CriteriaType] = CriteriaType.CUSTOM
    validator: CustomValidator = CustomValidator.MANUAL_COMPLETION
    description: str = ''
    minimum_files: Optional[int] = None
    required_commit_hashes: Tuple[str, ...] = ()
    required_branch: str = 'main'
    source_branch: str = 'feature-alternate-story'
    must_have_merge_commit: bool = False
    file_must_not_have_conflict_markers: Optional[str] = None
    branch_name: Optional[str] = None


Criteria = Union[CommitExists, BranchExists, FileContent, MergeCompleted, Custom]


def parse_criteria(data: Mapping[str, Any]) -> Criteria:
    """
    Build a criterion from its persisted record.

    Args:
        data: Mapping with ``type`` and optional ``parameters``

    Returns:
        Criteria dataclass instance

    Raises:
        CriteriaError: Unknown type, unknown validator or bad parameter
    """
    if not isinstance(data, Mapping):
        raise CriteriaError(f"criteria must be an object, got {type(data).__name__}")

    try:
        kind = CriteriaType(data.get('type'))
    except ValueError:
        raise CriteriaError(f"Unknown validation type: {data.get('type')}") from None

    params = data.get('parameters') or {}
    if not isinstance(params, Mapping):
        raise CriteriaError('criteria parameters must be an object')

    if kind is CriteriaType.COMMIT_EXISTS:
        return CommitExists(
            minimum_commits=_int(params, 'minimumCommits'),
            commit_message=params.get('commitMessage'),
            commit_hash=params.get('commitHash'),
            branch_name=params.get('branchName'),
        )
    if kind is CriteriaType.BRANCH_EXISTS:
        return BranchExists(
            branch_name=params.get('branchName'),
            minimum_branches=_int(params, 'minimumBranches'),
        )
    if kind is CriteriaType.FILE_CONTENT:
        if not params.get('filePath'):
            raise CriteriaError('file_content criteria require a filePath')
        file_exists = params.get('fileExists')
        return FileContent(
            file_path=params['filePath'],
            expected_content=params.get('expectedContent'),
            contains_text=params.get('containsText'),
            file_exists=None if file_exists is None else bool(file_exists),
        )
    if kind is CriteriaType.MERGE_COMPLETED:
        return MergeCompleted(
            branch_name=params.get('branchName') or params.get('targetBranch'),
            source_branch=params.get('sourceBranch'),
            allow_fast_forward=bool(params.get('allowFastForward', False)),
            no_conflicts=bool(params.get('noConflicts', False)),
        )
    return _parse_custom(params)


def _parse_custom(params: Mapping[str, Any]) -> Custom:
    name = params.get('validator')
    if name is not None:
        try:
            validator = CustomValidator(name)
        except ValueError:
            raise CriteriaError(f"Unknown validator: {name}") from None
    else:
        flags = [v for flag, v in LEGACY_FLAGS.items() if params.get(flag)]
        if not flags:
            raise CriteriaError('custom criteria need a validator')
        validator = flags[0]

    hashes = params.get('requiredCommitHashes') or ()
    if isinstance(hashes, str) or not all(isinstance(h, str) for h in hashes):
        raise CriteriaError('requiredCommitHashes must be a list of commit hashes')
    if validator is CustomValidator.CORRUPTED_TIMELINE and not hashes:
        raise CriteriaError('corrupted_timeline requires requiredCommitHashes')
    if validator is CustomValidator.BRANCH_DELETED and not params.get('branchName'):
        raise CriteriaError('branch_deleted requires a branchName')

    return Custom(
        validator=validator,
        description=params.get('description', ''),
        minimum_files=_int(params, 'minimumFiles'),
        required_commit_hashes=tuple(hashes),
        required_branch=params.get('requiredBranch') or 'main',
        source_branch=params.get('sourceBranch') or 'feature-alternate-story',
        must_have_merge_commit=bool(params.get('mustHaveMergeCommit', False)),
        file_must_not_have_conflict_markers=params.get('fileMustNotHaveConflictMarkers'),
        branch_name=params.get('branchName'),
    )


def parse_criteria_list(data: Any) -> List[Criteria]:
    """Parse a single record or an ordered list of records."""
    if isinstance(data, Mapping):
        return [parse_criteria(data)]
    if isinstance(data, (list, tuple)):
        return [parse_criteria(item) for item in data]
    raise CriteriaError('criteria must be an object or a list of objects')


def _int(params: Mapping[str, Any], key: str) -> Optional[int]:
    value = params.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise CriteriaError(f"{key} must be an integer")
    return value
