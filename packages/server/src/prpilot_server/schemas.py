"""Request bodies for the PRPilot HTTP API.

Fields are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChangedFileIn(CamelModel):
    filename: str
    additions: int = 0
    deletions: int = 0


class CustomRuleIn(CamelModel):
    name: str
    description: str = ""
    severity: Optional[str] = None
    pattern: Optional[str] = None


class ReviewCreate(CamelModel):
    user_id: str = Field(min_length=1)
    diff: str = Field(min_length=1)
    repo_id: Optional[str] = None
    pr_number: Optional[int] = None
    pr_title: Optional[str] = None
    pr_description: Optional[str] = None
    pr_url: Optional[str] = None
    base_branch: Optional[str] = None
    head_branch: Optional[str] = None
    files: List[ChangedFileIn] = []
    custom_rules: Optional[List[CustomRuleIn]] = None


class ReviewAnnotate(CamelModel):
    user_id: str = Field(min_length=1)
    notes: Optional[str] = None
    resolved: Optional[bool] = None


class RepositoryCreate(CamelModel):
    user_id: str = Field(min_length=1)
    repo_owner: str = Field(min_length=1)
    repo_name: str = Field(min_length=1)
    github_token: Optional[str] = None
    auto_review: bool = True
    review_on_push: bool = False
    default_branch: str = "main"


class RepositoryUpdate(CamelModel):
    repo_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    auto_review: Optional[bool] = None
    review_on_push: Optional[bool] = None
    default_branch: Optional[str] = None
    github_token: Optional[str] = None
    status: Optional[str] = Field(default=None, pattern="^(active|inactive)$")


class RuleCreate(CamelModel):
    user_id: str = Field(min_length=1)
    repo_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    severity: Optional[str] = None
    pattern: Optional[str] = None
    template_id: Optional[str] = None
    enabled: bool = True


class RuleUpdate(CamelModel):
    rule_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    severity: Optional[str] = None
    pattern: Optional[str] = None
    enabled: Optional[bool] = None


class RulesToggle(CamelModel):
    user_id: str = Field(min_length=1)
    rule_ids: List[str] = Field(min_length=1)
    enabled: bool
