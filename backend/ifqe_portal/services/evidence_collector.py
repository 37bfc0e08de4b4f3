"""
Evidence collection for submission archives.

Walks Part A and Part B of a submission and yields the storage keys of
every uploaded evidence file together with the entry name it gets inside
the archive.
"""
import re
from dataclasses import dataclass
from typing import List, Optional

from ifqe_portal.schemas.submission import PartA, PartB

_WHITESPACE = re.compile(r"\s")


@dataclass(frozen=True)
class EvidenceFile:
    key: str
    label: str


def file_name_from_key(key: str) -> str:
    """Last path segment of a storage key"""
    return key.rsplit("/", 1)[-1]


def collect_evidence_files(part_a: Optional[PartA], part_b: Optional[PartB]) -> List[EvidenceFile]:
    """
    Ordered (key, label) pairs for all evidence in a submission.

    Order: Part A executive summary, then criteria -> sub-criteria ->
    indicators as stored, primary file before its evidence-link file.
    """
    files: List[EvidenceFile] = []

    if part_a is not None and part_a.summary_file_key:
        key = part_a.summary_file_key
        files.append(EvidenceFile(key, f"Part A - Executive Summary - {file_name_from_key(key)}"))

    if part_b is None:
        return files

    for criterion in part_b.criteria:
        for sub in criterion.sub_criteria:
            for indicator in sub.indicators:
                prefix = (
                    f"Part B/Criterion {criterion.criteria_code}/"
                    f"{sub.sub_criteria_code}/{indicator.indicator_code}"
                )
                if indicator.file_key:
                    files.append(EvidenceFile(
                        indicator.file_key,
                        f"{prefix} - {file_name_from_key(indicator.file_key)}",
                    ))
                if indicator.evidence_link_file_key:
                    files.append(EvidenceFile(
                        indicator.evidence_link_file_key,
                        f"{prefix} - Evidence - {file_name_from_key(indicator.evidence_link_file_key)}",
                    ))

    return files


def _normalize_segment(value: str) -> str:
    return _WHITESPACE.sub("_", value)


def build_archive_key(
    academic_year: str,
    school_name: str,
    department_name: str,
    title: str,
    prefix: str = "archives",
) -> str:
    """
    Destination key of a submission archive.

    >>> build_archive_key("2024-25", "School X", "Dept Y", "Annual Report")
    'archives/2024-25/School_X/Dept_Y/Annual_Report.zip'
    """
    segments = [academic_year, school_name, department_name]
    path = "/".join(_normalize_segment(segment) for segment in segments)
    return f"{prefix}/{path}/{_normalize_segment(title)}.zip"


def placeholder_entry_name(evidence: EvidenceFile) -> str:
    return f"MISSING_FILE_{evidence.label.replace('/', '_')}.txt"


def placeholder_entry_text(evidence: EvidenceFile) -> str:
    return f"File not found in storage: {evidence.label}\nStorage key: {evidence.key}\n"
