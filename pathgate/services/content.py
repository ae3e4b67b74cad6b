"""Learning path structure and learner progress, as written by the content service."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from pathgate.errors import LearningPathStructureError
from pathgate.models import ChapterProgress, LearningPathRecord


@dataclass(frozen=True)
class PathModule:
    module_id: str
    title: str | None
    chapters: tuple[str, ...]


@dataclass(frozen=True)
class LearningPath:
    path_id: str
    modules: tuple[PathModule, ...]


@dataclass(frozen=True)
class ChapterFact:
    completed: bool
    score: float | None = None


def _chapter_id(raw: Any, where: str) -> str:
    if isinstance(raw, dict):
        raw = raw.get("id") or raw.get("chapter_id")
    if not isinstance(raw, str) or not raw.strip():
        raise LearningPathStructureError(f"{where}: chapter needs a non-empty id")
    return raw.strip()


def parse_structure(path_id: str, structure: Any) -> LearningPath:
    """Validate the stored structure JSON into an ordered ``LearningPath``."""
    if not isinstance(structure, dict):
        raise LearningPathStructureError(f"path {path_id}: structure must be an object")
    raw_modules = structure.get("modules", [])
    if not isinstance(raw_modules, list):
        raise LearningPathStructureError(f"path {path_id}: modules must be a list")

    modules: list[PathModule] = []
    seen: set[str] = set()
    for index, raw_module in enumerate(raw_modules):
        where = f"path {path_id} module {index}"
        if not isinstance(raw_module, dict):
            raise LearningPathStructureError(f"{where}: module must be an object")
        raw_chapters = raw_module.get("chapters", [])
        if not isinstance(raw_chapters, list):
            raise LearningPathStructureError(f"{where}: chapters must be a list")
        chapters = tuple(_chapter_id(raw, where) for raw in raw_chapters)
        for chapter_id in chapters:
            if chapter_id in seen:
                raise LearningPathStructureError(
                    f"{where}: duplicate chapter id {chapter_id!r}"
                )
            seen.add(chapter_id)
        module_id = raw_module.get("id") or raw_module.get("module_id") or str(index)
        modules.append(
            PathModule(
                module_id=str(module_id),
                title=raw_module.get("title"),
                chapters=chapters,
            )
        )
    return LearningPath(path_id=path_id, modules=tuple(modules))


def load_learning_path(db: Session, path_id: str) -> LearningPath | None:
    record = db.get(LearningPathRecord, path_id)
    if record is None:
        return None
    return parse_structure(record.id, record.structure)


def load_progress(db: Session, *, user_id: str, path_id: str) -> dict[str, ChapterFact]:
    rows = (
        db.query(ChapterProgress)
        .filter(
            ChapterProgress.user_id == user_id,
            ChapterProgress.learning_path_id == path_id,
        )
        .all()
    )
    return {
        row.chapter_id: ChapterFact(
            completed=row.completed_at is not None,
            score=row.score,
        )
        for row in rows
    }


__all__ = [
    "PathModule",
    "LearningPath",
    "ChapterFact",
    "parse_structure",
    "load_learning_path",
    "load_progress",
]
