"""Syllabus hierarchy: classes, subjects and chapters that scope a question."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ai_solver.utils.logger import logger


@dataclass(frozen=True)
class SyllabusChapter:
    id: str
    title: str
    sequence: int = 0
    title_bn: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "SyllabusChapter":
        return cls(
            id=str(data["id"]),
            title=data["title"],
            sequence=int(data.get("sequence", 0)),
            title_bn=data.get("titleBn"),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "titleBn": self.title_bn, "sequence": self.sequence}


@dataclass(frozen=True)
class SyllabusSubject:
    id: str
    name: str
    display_name: str
    code: str = ""
    display_order: int = 0
    chapters: List[SyllabusChapter] = field(default_factory=list)
    sample_prompts: List[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "SyllabusSubject":
        chapters = [SyllabusChapter.from_payload(item) for item in data.get("chapters", [])]
        return cls(
            id=str(data["id"]),
            name=data["name"],
            display_name=data.get("displayName") or data["name"],
            code=data.get("code", ""),
            display_order=int(data.get("displayOrder", 0)),
            chapters=sorted(chapters, key=lambda chapter: chapter.sequence),
            sample_prompts=list(data.get("samplePrompts", [])),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "displayName": self.display_name,
            "code": self.code,
            "displayOrder": self.display_order,
            "samplePrompts": list(self.sample_prompts),
            "chapters": [chapter.to_payload() for chapter in self.chapters],
        }


@dataclass(frozen=True)
class SyllabusClass:
    id: str
    name: str
    display_name: str
    level: str = ""
    display_order: int = 0
    subjects: List[SyllabusSubject] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "SyllabusClass":
        subjects = [SyllabusSubject.from_payload(item) for item in data.get("subjects", [])]
        return cls(
            id=str(data["id"]),
            name=data["name"],
            display_name=data.get("displayName") or data["name"],
            level=data.get("level", ""),
            display_order=int(data.get("displayOrder", 0)),
            subjects=sorted(subjects, key=lambda subject: subject.display_order),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "displayName": self.display_name,
            "level": self.level,
            "displayOrder": self.display_order,
            "subjects": [subject.to_payload() for subject in self.subjects],
        }


class SyllabusCatalog:
    """Read-only lookup over the syllabus hierarchy."""

    def __init__(self, classes: List[SyllabusClass]):
        self.classes = sorted(classes, key=lambda cls: cls.display_order)

    @classmethod
    def from_payload(cls, payload: List[Dict[str, Any]]) -> "SyllabusCatalog":
        """Build a catalog from the hierarchy endpoint's JSON."""
        if not isinstance(payload, list):
            raise ValueError("Syllabus hierarchy must be a list of classes")
        return cls([SyllabusClass.from_payload(item) for item in payload])

    def to_payload(self) -> List[Dict[str, Any]]:
        return [syllabus_class.to_payload() for syllabus_class in self.classes]

    def find_class(self, class_id: Optional[str]) -> Optional[SyllabusClass]:
        return next((c for c in self.classes if c.id == class_id), None)

    def find_subject(self, class_id: Optional[str], subject_id: Optional[str]) -> Optional[SyllabusSubject]:
        syllabus_class = self.find_class(class_id)
        if syllabus_class is None:
            return None
        return next((s for s in syllabus_class.subjects if s.id == subject_id), None)

    def find_chapter(
        self, class_id: Optional[str], subject_id: Optional[str], chapter_id: Optional[str]
    ) -> Optional[SyllabusChapter]:
        subject = self.find_subject(class_id, subject_id)
        if subject is None:
            return None
        return next((ch for ch in subject.chapters if ch.id == chapter_id), None)


def load_catalog(path: str | Path) -> SyllabusCatalog:
    """
    Load the syllabus hierarchy from a JSON file.

    Args:
        path: JSON file in the hierarchy endpoint's format

    Returns:
        SyllabusCatalog
    """
    catalog_path = Path(path)
    logger.info(f"Loading syllabus from {catalog_path}")
    with catalog_path.open(encoding="utf-8") as f:
        catalog = SyllabusCatalog.from_payload(json.load(f))
    logger.debug(f"Syllabus loaded: {len(catalog.classes)} classes")
    return catalog
