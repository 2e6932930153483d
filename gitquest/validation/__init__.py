"""Quest and boss-battle validation.

Checks a finished repository state against declared criteria and returns
learner-facing feedback.
"""

from gitquest.validation.criteria import (
    BranchExists,
    CommitExists,
    Criteria,
    CriteriaType,
    Custom,
    CustomValidator,
    FileContent,
    MergeCompleted,
    ValidationResult,
    parse_criteria,
    parse_criteria_list,
)
from gitquest.validation.evaluator import evaluate, validate

__all__ = [
    'Criteria', 'CriteriaType', 'CustomValidator',
    'CommitExists', 'BranchExists', 'FileContent', 'MergeCompleted', 'Custom',
    'ValidationResult', 'parse_criteria', 'parse_criteria_list',
    'evaluate', 'validate',
]
