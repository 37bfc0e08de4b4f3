"""
Value objects for the JSON documents stored on a Submission.

The frontend sends camelCase keys (``criteriaCode``, ``evidenceLinkFileKey``);
both that and snake_case are accepted.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PartAItem(_Document):
    code: str
    title: Optional[str] = None
    file_key: Optional[str] = None


class PartA(_Document):
    items: List[PartAItem] = Field(default_factory=list)
    remark: Optional[str] = None
    summary_file_key: Optional[str] = None


class IndicatorEntry(_Document):
    indicator_code: str
    title: Optional[str] = None
    file_key: Optional[str] = None
    evidence_link_file_key: Optional[str] = None
    self_assessed_score: Optional[float] = None
    review_score: Optional[float] = None
    review_remark: Optional[str] = None
    final_score: Optional[float] = None
    superuser_remark: Optional[str] = None


class SubCriterionEntry(_Document):
    sub_criteria_code: str
    title: Optional[str] = None
    self_assessed_score: Optional[float] = None
    review_score: Optional[float] = None
    final_score: Optional[float] = None
    remark: Optional[str] = None
    superuser_remark: Optional[str] = None
    indicators: List[IndicatorEntry] = Field(default_factory=list)


class CriterionEntry(_Document):
    criteria_code: str
    title: Optional[str] = None
    self_assessed_score: Optional[float] = None
    review_score: Optional[float] = None
    final_score: Optional[float] = None
    sub_criteria: List[SubCriterionEntry] = Field(default_factory=list)


class PartB(_Document):
    criteria: List[CriterionEntry] = Field(default_factory=list)

    def total_final_score(self) -> float:
        """Sum of indicator final scores; unscored indicators count as 0"""
        return sum(
            indicator.final_score or 0
            for criterion in self.criteria
            for sub in criterion.sub_criteria
            for indicator in sub.indicators
        )


class AppealIndicator(_Document):
    indicator_code: str
    department_comment: Optional[str] = None
    superuser_decision_comment: Optional[str] = None


class Appeal(_Document):
    status: str = "Not Appealed"  # Not Appealed | Submitted | Closed
    requested_on: Optional[datetime] = None
    closed_on: Optional[datetime] = None
    indicators: List[AppealIndicator] = Field(default_factory=list)


def parse_part_a(data: Optional[dict]) -> Optional[PartA]:
    return PartA.model_validate(data) if data else None


def parse_part_b(data: Optional[dict]) -> PartB:
    return PartB.model_validate(data or {})
