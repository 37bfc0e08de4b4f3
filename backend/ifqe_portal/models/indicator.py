from sqlalchemy import Column, String, Boolean, DateTime, Text, JSON
from datetime import datetime

from ifqe_portal.core.database import Base
from ifqe_portal.core.types import GUID, generate_uuid


# Rubric levels in descending order with their scores
RUBRIC_LEVELS = {
    "excellent": 4,
    "veryGood": 3,
    "satisfactory": 2,
    "needsImprovement": 1,
    "notSatisfactory": 0,
}

# Criteria weightage (%) and maximum marks
CRITERIA_CONFIG = {
    "C1": {
        "code": "C1",
        "name": "Criteria 1: Academic Excellence & Pedagogy",
        "weightage": 25,
        "max_marks": 84,
    },
    "C2": {
        "code": "C2",
        "name": "Criteria 2: Research, Innovation & Impact",
        "weightage": 25,
        "max_marks": 128,
    },
    "C3": {
        "code": "C3",
        "name": "Criteria 3: Student Lifecycle & Engagement",
        "weightage": 20,
        "max_marks": 124,
    },
    "C4": {
        "code": "C4",
        "name": "Criteria 4: Faculty Development & Diversity",
        "weightage": 10,
        "max_marks": 64,
    },
    "C5": {
        "code": "C5",
        "name": "Criteria 5: Institutional Governance & Strategic Vision",
        "weightage": 5,
        "max_marks": 40,
    },
    "C6": {
        "code": "C6",
        "name": "Criteria 6: Global Engagement & Collaborations",
        "weightage": 5,
        "max_marks": 48,
    },
    "C7": {
        "code": "C7",
        "name": "Criteria 7: Stakeholder Insights & Continuous Improvement",
        "weightage": 10,
        "max_marks": 12,
    },
}


class Indicator(Base):
    """Static catalog entry for a scored indicator"""
    __tablename__ = "indicators"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    indicator_code = Column(String(20), unique=True, index=True, nullable=False)  # e.g. "1.1.1"
    title = Column(Text, nullable=False)
    criterion_code = Column(String(10), nullable=False, index=True)
    sub_criterion_code = Column(String(10), nullable=False, index=True)
    requires_evidence_link = Column(Boolean, default=False, nullable=False)
    template_file_key = Column(String(1024), nullable=True)

    # {"excellent": {"score": 4, "description": ...}, ...}
    rubric = Column(JSON, nullable=False)
    # {"text": [...], "formula": ..., "remarks": ...}
    guidelines = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Indicator {self.indicator_code}>"
