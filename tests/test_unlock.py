import pytest

from pathgate.errors import LearningPathStructureError
from pathgate.services.content import ChapterFact, LearningPath, PathModule, parse_structure
from pathgate.services.unlock import (
    CompletionRule,
    ModuleAccess,
    chapter_access,
    locate_chapter,
    module_access,
    resolve_chapter_access,
    resolve_module_access,
    unlocked_prefix,
)
from tests.utils.factories import NOW, add_path, add_subscription, complete, new_id

RULE = CompletionRule(passing_score=60)
DONE = ChapterFact(completed=True)

PATH = LearningPath(
    path_id="lp",
    modules=(
        PathModule("m0", None, ("a1", "a2")),
        PathModule("m1", None, ("b1", "b2")),
        PathModule("m2", None, ("c1",)),
    ),
)


def test_first_module_and_chapter_always_open():
    assert resolve_module_access(PATH, {}, 0, RULE) == ModuleAccess(True, False, 1)
    access = resolve_chapter_access(PATH, {}, 0, 0, RULE)
    assert access.has_access and not access.is_locked


def test_module_unlock_is_monotone():
    # M0 done, M1 incomplete, M2 done: M2 stays locked
    progress = {"a1": DONE, "a2": DONE, "b1": DONE, "c1": DONE}
    m1 = resolve_module_access(PATH, progress, 1, RULE)
    m2 = resolve_module_access(PATH, progress, 2, RULE)
    assert m1.has_access
    assert m2 == ModuleAccess(False, True, 2, "previous module incomplete")


def test_all_modules_open_once_prefix_complete():
    progress = {c: DONE for c in ("a1", "a2", "b1", "b2")}
    access = resolve_module_access(PATH, progress, 2, RULE)
    assert access.has_access
    assert access.unlocked_count == 3


def test_chapter_prefix_within_module():
    progress = {"a1": DONE, "a2": DONE}
    assert resolve_chapter_access(PATH, progress, 1, 0, RULE).has_access
    second = resolve_chapter_access(PATH, progress, 1, 1, RULE)
    assert second.is_locked
    assert second.reason == "previous chapter incomplete"
    assert second.unlocked_count == 1


def test_chapter_in_locked_module():
    access = resolve_chapter_access(PATH, {}, 1, 0, RULE)
    assert access == (False, True, 0, "module locked")


@pytest.mark.parametrize("index", [-1, 3, 99])
def test_module_index_out_of_range(index):
    access = resolve_module_access(PATH, {}, index, RULE)
    assert not access.has_access
    assert access.reason == "index out of range"


def test_chapter_index_out_of_range():
    access = resolve_chapter_access(PATH, {}, 0, 5, RULE)
    assert access.reason == "index out of range"
    assert access.is_locked


def test_path_without_modules_denies_everything():
    empty = LearningPath(path_id="empty", modules=())
    assert resolve_module_access(empty, {}, 0, RULE).reason == "learning path has no modules"
    assert resolve_chapter_access(empty, {}, 0, 0, RULE).reason == "learning path has no modules"


def test_failing_score_is_not_completion():
    progress = {"a1": ChapterFact(True, 59.5), "a2": DONE}
    assert not resolve_chapter_access(PATH, progress, 0, 1, RULE).has_access
    progress["a1"] = ChapterFact(True, 60)
    assert resolve_chapter_access(PATH, progress, 0, 1, RULE).has_access


def test_progress_without_completion_is_not_completion():
    progress = {"a1": ChapterFact(completed=False, score=100)}
    assert not resolve_chapter_access(PATH, progress, 0, 1, RULE).has_access


def test_empty_module_is_complete():
    path = LearningPath(
        path_id="lp",
        modules=(PathModule("m0", None, ()), PathModule("m1", None, ("x",))),
    )
    assert resolve_module_access(path, {}, 1, RULE).has_access


def test_unlocked_prefix():
    assert unlocked_prefix([], bool) == 0
    assert unlocked_prefix([0, 1, 1], bool) == 1
    assert unlocked_prefix([1, 1, 0, 1], bool) == 3
    assert unlocked_prefix([1, 1, 1], bool) == 3


def test_locate_chapter():
    assert locate_chapter(PATH, "b2") == (1, 1)
    assert locate_chapter(PATH, "zz") is None


def test_parse_structure_accepts_string_chapters():
    path = parse_structure(
        "lp",
        {"modules": [{"module_id": "intro", "chapters": ["c1", {"chapter_id": "c2"}]}]},
    )
    assert path.modules[0].module_id == "intro"
    assert path.modules[0].chapters == ("c1", "c2")


@pytest.mark.parametrize(
    "structure",
    [
        [],
        {"modules": {}},
        {"modules": ["m0"]},
        {"modules": [{"chapters": [{"title": "no id"}]}]},
        {"modules": [{"chapters": ["c1"]}, {"chapters": ["c1"]}]},
    ],
)
def test_parse_structure_rejects_malformed(structure):
    with pytest.raises(LearningPathStructureError):
        parse_structure("lp", structure)


def test_module_access_requires_subscription(db):
    user = new_id()
    path_id = add_path(db, [["c1"], ["c2"]])
    access = module_access(db, user_id=user, path_id=path_id, module_index=0, now=NOW)
    assert access == (False, True, 0, "no active subscription")


def test_module_access_unknown_path(db):
    user = new_id()
    add_subscription(db, user)
    access = module_access(db, user_id=user, path_id=new_id("lp"), module_index=0, now=NOW)
    assert access.reason == "learning path not found"


def test_access_follows_stored_progress(db):
    user = new_id()
    add_subscription(db, user)
    c = [new_id("ch") for _ in range(3)]
    path_id = add_path(db, [[c[0]], [c[1], c[2]]])

    assert not module_access(db, user_id=user, path_id=path_id, module_index=1, now=NOW).has_access
    complete(db, user, path_id, c[0], score=80)
    assert module_access(db, user_id=user, path_id=path_id, module_index=1, now=NOW).has_access
    locked = chapter_access(
        db, user_id=user, path_id=path_id, module_index=1, chapter_index=1, now=NOW
    )
    assert locked.reason == "previous chapter incomplete"
    complete(db, user, path_id, c[1])
    assert chapter_access(
        db, user_id=user, path_id=path_id, module_index=1, chapter_index=1, now=NOW
    ).has_access
