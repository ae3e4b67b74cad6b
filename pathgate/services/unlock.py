"""Prefix unlock over a learning path's modules and chapters.

Module ``i`` is reachable when every module before it is complete; chapter
``j`` of a reachable module is reachable when every chapter before it in that
module is complete. Nothing is persisted: the lock state is recomputed from
progress facts on every call, so unlocking is always contiguous from the
start of the path.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, NamedTuple, Sequence, TypeVar

from sqlalchemy.orm import Session

from pathgate.config import Settings
from pathgate.services.content import (
    ChapterFact,
    LearningPath,
    PathModule,
    load_learning_path,
    load_progress,
)
from pathgate.services.subscriptions import resolve_effective_limits

settings = Settings()

REASON_NO_SUBSCRIPTION = "no active subscription"
REASON_PATH_NOT_FOUND = "learning path not found"
REASON_NO_MODULES = "learning path has no modules"
REASON_OUT_OF_RANGE = "index out of range"
REASON_PREVIOUS_MODULE = "previous module incomplete"
REASON_MODULE_LOCKED = "module locked"
REASON_PREVIOUS_CHAPTER = "previous chapter incomplete"
REASON_CHAPTER_NOT_FOUND = "chapter not found in learning path"

T = TypeVar("T")


@dataclass(frozen=True)
class CompletionRule:
    """When a chapter, and therefore a module, counts as complete.

    A chapter is complete once the content service recorded it as completed
    and, if it recorded a score, that score reaches ``passing_score``. A module
    is complete when all of its chapters are; a module without chapters is
    complete.
    """

    passing_score: float

    def chapter_complete(self, chapter_id: str, progress: dict[str, ChapterFact]) -> bool:
        fact = progress.get(chapter_id)
        if fact is None or not fact.completed:
            return False
        return fact.score is None or fact.score >= self.passing_score

    def module_complete(self, module: PathModule, progress: dict[str, ChapterFact]) -> bool:
        return all(self.chapter_complete(c, progress) for c in module.chapters)


def default_rule() -> CompletionRule:
    return CompletionRule(passing_score=settings.passing_score)


class ModuleAccess(NamedTuple):
    has_access: bool
    is_locked: bool
    unlocked_count: int
    reason: str | None = None


class ChapterAccess(NamedTuple):
    has_access: bool
    is_locked: bool
    unlocked_count: int
    reason: str | None = None


def unlocked_prefix(items: Sequence[T], is_complete: Callable[[T], bool]) -> int:
    """Number of items reachable under the prefix rule (the first always is)."""
    if not items:
        return 0
    count = 1
    for item in items[:-1]:
        if not is_complete(item):
            break
        count += 1
    return count


def resolve_module_access(
    path: LearningPath,
    progress: dict[str, ChapterFact],
    module_index: int,
    rule: CompletionRule | None = None,
) -> ModuleAccess:
    rule = rule or default_rule()
    if not path.modules:
        return ModuleAccess(False, True, 0, REASON_NO_MODULES)
    unlocked = unlocked_prefix(path.modules, lambda m: rule.module_complete(m, progress))
    if module_index < 0 or module_index >= len(path.modules):
        return ModuleAccess(False, True, unlocked, REASON_OUT_OF_RANGE)
    if module_index < unlocked:
        return ModuleAccess(True, False, unlocked)
    return ModuleAccess(False, True, unlocked, REASON_PREVIOUS_MODULE)


def resolve_chapter_access(
    path: LearningPath,
    progress: dict[str, ChapterFact],
    module_index: int,
    chapter_index: int,
    rule: CompletionRule | None = None,
) -> ChapterAccess:
    rule = rule or default_rule()
    module = resolve_module_access(path, progress, module_index, rule)
    if not module.has_access:
        reason = module.reason
        if reason == REASON_PREVIOUS_MODULE:
            reason = REASON_MODULE_LOCKED
        return ChapterAccess(False, True, 0, reason)
    chapters = path.modules[module_index].chapters
    unlocked = unlocked_prefix(chapters, lambda c: rule.chapter_complete(c, progress))
    if chapter_index < 0 or chapter_index >= len(chapters):
        return ChapterAccess(False, True, unlocked, REASON_OUT_OF_RANGE)
    if chapter_index < unlocked:
        return ChapterAccess(True, False, unlocked)
    return ChapterAccess(False, True, unlocked, REASON_PREVIOUS_CHAPTER)


def locate_chapter(path: LearningPath, chapter_id: str) -> tuple[int, int] | None:
    for module_index, module in enumerate(path.modules):
        for chapter_index, candidate in enumerate(module.chapters):
            if candidate == chapter_id:
                return module_index, chapter_index
    return None


def module_access(
    db: Session,
    *,
    user_id: str,
    path_id: str,
    module_index: int,
    now: datetime | None = None,
    rule: CompletionRule | None = None,
) -> ModuleAccess:
    """Lock state of one module for navigation and listing."""
    if resolve_effective_limits(db, user_id=user_id, path_id=path_id, now=now) is None:
        return ModuleAccess(False, True, 0, REASON_NO_SUBSCRIPTION)
    path = load_learning_path(db, path_id)
    if path is None:
        return ModuleAccess(False, True, 0, REASON_PATH_NOT_FOUND)
    progress = load_progress(db, user_id=user_id, path_id=path_id)
    return resolve_module_access(path, progress, module_index, rule)


def chapter_access(
    db: Session,
    *,
    user_id: str,
    path_id: str,
    module_index: int,
    chapter_index: int,
    now: datetime | None = None,
    rule: CompletionRule | None = None,
) -> ChapterAccess:
    """Lock state of one chapter for navigation and listing."""
    if resolve_effective_limits(db, user_id=user_id, path_id=path_id, now=now) is None:
        return ChapterAccess(False, True, 0, REASON_NO_SUBSCRIPTION)
    path = load_learning_path(db, path_id)
    if path is None:
        return ChapterAccess(False, True, 0, REASON_PATH_NOT_FOUND)
    progress = load_progress(db, user_id=user_id, path_id=path_id)
    return resolve_chapter_access(path, progress, module_index, chapter_index, rule)


__all__ = [
    "CompletionRule",
    "default_rule",
    "ModuleAccess",
    "ChapterAccess",
    "unlocked_prefix",
    "resolve_module_access",
    "resolve_chapter_access",
    "locate_chapter",
    "module_access",
    "chapter_access",
]
