from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict


class RubricLevel(BaseModel):
    score: int
    description: str


class Guidelines(BaseModel):
    text: List[str] = Field(default_factory=list)
    formula: Optional[str] = None
    remarks: Optional[str] = None


class IndicatorResponse(BaseModel):
    indicator_code: str
    title: str
    criterion_code: str
    sub_criterion_code: str
    requires_evidence_link: bool
    template_file_key: Optional[str] = None
    rubric: Dict[str, RubricLevel]
    guidelines: Optional[Guidelines] = None

    model_config = ConfigDict(from_attributes=True)


class CriterionConfigResponse(BaseModel):
    code: str
    name: str
    weightage: int
    max_marks: int
