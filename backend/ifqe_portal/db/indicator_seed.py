"""
Indicator Catalog Seed

Criterion 1 indicators with their rubrics and guidelines.
Run with: python -m ifqe_portal.db.indicator_seed
"""
import asyncio
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ifqe_portal.core.database import AsyncSessionLocal, init_db
from ifqe_portal.core.logging_config import logger
from ifqe_portal.models.indicator import Indicator, RUBRIC_LEVELS


def _rubric(*descriptions: str) -> Dict[str, Dict]:
    """Pair level descriptions, best first, with their scores"""
    return {
        level: {"score": score, "description": description}
        for (level, score), description in zip(RUBRIC_LEVELS.items(), descriptions)
    }


# ==================== Catalog ====================

INDICATOR_SEED: List[Dict] = [
    {
        "indicator_code": "1.1.1",
        "title": "Curriculum mapping with vision & mission of the University, School & Department "
                 "and core values of the University",
        "criterion_code": "1",
        "sub_criterion_code": "1.1",
        "template_file_key": "templates/1.1.1_Template.xlsx",
        "requires_evidence_link": True,
        "rubric": _rubric(
            "The curriculum is fully aligned with the vision, all mission & core values with the coverage of 100%.",
            "The curriculum is mostly aligned with vision, all mission & core values with the coverage >=80%.",
            "The curriculum is partially aligned with vision, all mission & core values with the coverage >=60%.",
            "The curriculum is rarely aligned with vision, all mission & core values with the coverage >=50%.",
            "The curriculum does not exhibit any alignment with the vision, all mission and core values "
            "with coverage<50%.",
        ),
        "guidelines": {
            "text": [
                "1. Documents pertaining vision & mission and core values of the University, School & Department.",
                "2. Dissemination of vision, mission and core values statements",
                "3. Justification table with all supporting proofs",
            ],
            "formula": "% alignment = (no. of elements mapped / total elements(=7)) * 100",
            "remarks": "Total elements = 7: Vision and mission of the University, School & Department and core "
                       "values of university. For Schools with more than one department, average score of the "
                       "percentage alignment will be considered.",
        },
    },
    {
        "indicator_code": "1.1.2",
        "title": "Curriculum alignment with SDGs",
        "criterion_code": "1",
        "sub_criterion_code": "1.1",
        "template_file_key": "templates/1.1.2_Template.xlsx",
        "requires_evidence_link": True,
        "rubric": _rubric(
            "Curriculum covering >=8 SDGs",
            "Curriculum covering >=6 SDGs",
            "Curriculum covering >=4 SDGs",
            "Curriculum covering >=1 SDGs",
            "No mapping",
        ),
        "guidelines": {
            "text": ["Justification table with all supporting proofs"],
            "formula": "No. of SDGs Mapped",
            "remarks": "Unique SDG mapped with course content is 30% or above will be considered. "
                       "Average score of all program will be the final score.",
        },
    },
    {
        "indicator_code": "1.1.3",
        "title": "Global and National Curriculum Alignment & Standardization",
        "criterion_code": "1",
        "sub_criterion_code": "1.1",
        "template_file_key": "templates/1.1.3_Template.xlsx",
        "requires_evidence_link": True,
        "rubric": _rubric(
            "Benchmarked with both national & international standards",
            "Benchmarked with international standards",
            "Benchmarked with national standards",
            "Initiated the process of benchmarking",
            "No mapping",
        ),
        "guidelines": {
            "text": [
                "1. Curriculum benchmarked with National and international Universities with Action Taken.",
                "a. List of Referred National/International University.",
                "b. Key features of mapping Credit Structure, Course Content, Assessment Methods, Skill-Based "
                "Learning, Research & Innovation Focus, Lab equipment, Global Best Practices.",
                "2. NEP 2020 benchmarking of Curriculum - Program Structure.",
            ],
        },
    },
    {
        "indicator_code": "1.1.4",
        "title": "Percentage of Program Revision",
        "criterion_code": "1",
        "sub_criterion_code": "1.1",
        "template_file_key": "templates/1.1.4_Template.xlsx",
        "requires_evidence_link": True,
        "rubric": _rubric(">=70%", ">=50%", ">=30%", ">=10%", "< 10%"),
        "guidelines": {
            "text": [
                "1. Curriculum benchmarked with National and international Universities with Action Taken.",
                "2. NEP 2020 benchmarking of Curriculum - Program Structure.",
            ],
            "formula": "(No. of programs revised / Total no. of programs offered in that AY) * 100",
            "remarks": "Only program revision of more than 20% of the curriculum will be counted. "
                       "SSS survey to be included for student feedback.",
        },
    },
    {
        "indicator_code": "1.1.5",
        "title": "Percentage of courses having focus on employability, entrepreneurship and skill development",
        "criterion_code": "1",
        "sub_criterion_code": "1.1",
        "template_file_key": "templates/1.1.5_Template.xlsx",
        "requires_evidence_link": True,
        "rubric": _rubric(">=75%", ">=60%", ">=40%", ">=20%", "< 20%"),
        "guidelines": {
            "text": [
                "1. List of courses having focus on employability, entrepreneurship and skill development.",
                "2. Program Booklet highlighting the course content having focus on employability, "
                "entrepreneurship and skill development",
            ],
            "formula": "(No. of courses having focus on employability, skill development and entrepreneurship "
                       "in an AY / Total no. of courses in that AY) * 100",
        },
    },
    {
        "indicator_code": "1.1.6",
        "title": "Percentage of new courses added",
        "criterion_code": "1",
        "sub_criterion_code": "1.1",
        "template_file_key": "templates/1.1.6_Template.xlsx",
        "requires_evidence_link": True,
        "rubric": _rubric(">=20%", ">=15%", ">=10%", "<10%", "No new course added"),
        "guidelines": {
            "text": [
                "1. List of new added courses.",
                "2. Board of Studies and Academic council approved MOMs.",
                "3. Program Booklets highlighting the new added courses.",
            ],
            "formula": "(No. of new courses added in an AY / Total no. of courses in that AY) * 100",
        },
    },
    {
        "indicator_code": "1.1.7",
        "title": "Value added courses (CAY)",
        "criterion_code": "1",
        "sub_criterion_code": "1.1",
        "template_file_key": "templates/1.1.7_Template.xlsx",
        "requires_evidence_link": True,
        "rubric": _rubric(">=5", ">=4", ">=3", "1-2", "0"),
        "guidelines": {
            "text": [
                "1. List of VACs added.",
                "2. Notification pertaining to addition of VACs.",
                "3. List of students opting VACs.",
            ],
            "formula": "Count of VACs as mentioned in rubrics",
        },
    },
    {
        "indicator_code": "1.1.8",
        "title": "No. of knowledge partners associated with School offering academic programs",
        "criterion_code": "1",
        "sub_criterion_code": "1.1",
        "template_file_key": "templates/1.1.8_Template.xlsx",
        "requires_evidence_link": True,
        "rubric": _rubric(">3", "3", "2", "1", "0"),
        "guidelines": {
            "text": [
                "1. List of Programs offered through knowledge partners.",
                "2. Proofs of active MOUs highlighting the scope of the deliverables in the respective program.",
            ],
        },
    },
]


async def seed_indicator_catalog(db: AsyncSession) -> int:
    """Insert catalog entries whose code is not present yet. Returns rows added."""
    result = await db.execute(select(Indicator.indicator_code))
    existing = set(result.scalars().all())

    added = 0
    for entry in INDICATOR_SEED:
        if entry["indicator_code"] in existing:
            continue
        db.add(Indicator(**entry))
        added += 1

    if added:
        await db.commit()
        logger.info(f"[Seed] Added {added} indicators to the catalog")
    return added


async def main():
    await init_db()
    async with AsyncSessionLocal() as session:
        await seed_indicator_catalog(session)


if __name__ == "__main__":
    asyncio.run(main())
