"""Structured output models for generated fixes.

The field descriptions double as the JSON schema handed to the LLM when a fix
is requested, so they are written as instructions to the model.
"""

from pydantic import BaseModel, Field


class FileChange(BaseModel):
    """A single complete-file write."""

    path: str = Field(..., description="File path relative to the repository root")
    content: str = Field(..., description="Complete updated file content (not a diff)")
    commit_message: str = Field(..., description="Commit message for this change")


class FixPlan(BaseModel):
    """A code fix for a GitHub issue.

    An empty ``changes`` list parses fine but is never applied; the fix
    pipeline rejects it and asks the model again.
    """

    summary: str = Field(..., description="What the fix does")
    branch_name: str = Field(..., description="Branch name, e.g. fix/issue-42-null-check")
    changes: list[FileChange] = Field(..., description="File changes to apply")


class FileSelection(BaseModel):
    """Validated shape of the file-selection reply."""

    paths: list[str] = Field(default_factory=list)
