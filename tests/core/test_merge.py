from course_batch_toolkit.core.merge import (
    CREDITS_POSITION,
    INTRO_POSITION,
    VIDEO_POSITION,
    merge_video_neighbors,
)
from course_batch_toolkit.core.models import ActivityKind
from course_batch_toolkit.core.pruning import prune_course
from course_batch_toolkit.core.sectioning import SECTION_PER_TE, regroup_sections

NOW = "2024-06-01T00:00:00.000Z"


def _video_course(builder, leaves=None):
    builder.page_with_leaves(1, leaves or [
        {"id": 10, "type": "INVISIBLE_CONTAINER", "elements": [(100, "HTML")]},
        {"id": 11, "type": "INVISIBLE_CONTAINER", "elements": [(110, "CDA_VIDEO")]},
        {"id": 12, "type": "EXPAND_CONTAINER", "elements": [(120, "HTML")]},
    ])
    return builder.store()


def test_intro_and_credits_merge_into_video_section(builder):
    store = _video_course(builder)
    result = merge_video_neighbors(store, video_intro=True, video_credits=True, now=NOW)

    assert (result.videos, result.intros, result.credits) == (1, 1, 1)
    video_section = 102
    leaves = sorted(store.children_of(video_section), key=lambda a: a.position)
    assert [(leaf.id, leaf.position) for leaf in leaves] == [
        (10, INTRO_POSITION), (11, VIDEO_POSITION), (12, CREDITS_POSITION),
    ]
    assert sum(len(store.elements_of(leaf.id)) for leaf in leaves) == 3
    # Donor sections are left empty for the pruner
    assert store.children_of(101) == []
    assert store.children_of(103) == []
    assert store.get(10).updated_at == NOW


def test_intro_only(builder):
    store = _video_course(builder)
    result = merge_video_neighbors(store, video_intro=True, video_credits=False, now=NOW)
    assert (result.intros, result.credits) == (1, 0)
    assert [a.id for a in store.children_of(103)] == [12]


def test_nothing_requested_is_a_noop(builder):
    store = _video_course(builder)
    result = merge_video_neighbors(store, video_intro=False, video_credits=False)
    assert result.videos == 0
    assert store.get(10).parent_id == 101


def test_intro_must_be_invisible_html(builder):
    store = _video_course(builder, [
        {"id": 10, "type": "EXPAND_CONTAINER", "elements": [(100, "HTML")]},
        {"id": 11, "elements": [(110, "CDA_VIDEO")]},
    ])
    result = merge_video_neighbors(store, video_intro=True, video_credits=True, now=NOW)
    assert result.intros == 0
    assert store.get(10).parent_id == 101


def test_credits_must_be_expandable(builder):
    store = _video_course(builder, [
        {"id": 11, "elements": [(110, "CDA_VIDEO")]},
        {"id": 12, "type": "INVISIBLE_CONTAINER", "elements": [(120, "HTML")]},
    ])
    result = merge_video_neighbors(store, video_intro=True, video_credits=True, now=NOW)
    assert result.credits == 0
    assert store.get(12).parent_id == 102


def test_donor_with_two_elements_is_skipped(builder):
    store = _video_course(builder, [
        {"id": 10, "elements": [(100, "HTML"), (101, "HTML")]},
        {"id": 11, "elements": [(110, "CDA_VIDEO")]},
    ])
    result = merge_video_neighbors(store, video_intro=True, video_credits=False, now=NOW)
    assert result.intros == 0


def test_video_with_extra_element_is_not_a_video_section(builder):
    store = _video_course(builder, [
        {"id": 10, "elements": [(100, "HTML")]},
        {"id": 11, "elements": [(110, "CDA_VIDEO"), (111, "HTML")]},
    ])
    result = merge_video_neighbors(store, video_intro=True, video_credits=True, now=NOW)
    assert result.videos == 0
    assert store.get(10).parent_id == 101


def test_never_crosses_page_boundary(builder):
    builder.page_with_leaves(1, [{"id": 10, "elements": [(100, "HTML")]}])
    builder.page_with_leaves(2, [{"id": 20, "elements": [(200, "CDA_VIDEO")]}])
    store = builder.store()
    result = merge_video_neighbors(store, video_intro=True, video_credits=True, now=NOW)
    assert result.videos == 1
    assert result.intros == 0
    assert store.get(10).parent_id == 101


def test_detached_sections_are_ignored(builder):
    builder.page_with_leaves(1, [
        {"id": 10, "elements": [(100, "HTML")]},
        {"id": 11, "elements": [(110, "CDA_VIDEO")]},
    ])
    builder.activities[2]["detached"] = True  # section 101
    store = builder.store()
    result = merge_video_neighbors(store, video_intro=True, video_credits=False, now=NOW)
    assert result.intros == 0
    assert store.get(10).parent_id == 101


def test_videos_get_middle_position(builder):
    store = _video_course(builder, [{"id": 11, "elements": [(110, "CDA_VIDEO")]}])
    merge_video_neighbors(store, video_intro=True, video_credits=True, now=NOW)
    assert store.get(11).position == VIDEO_POSITION
    assert next(store.iter_kind(ActivityKind.SECTION)).id == 101


def test_regroup_merge_prune_leaves_one_video_section(builder):
    # Old layout: intro and video share a section, credits sit in another
    builder.activity(1, "LONG_HLXP_SCHEMA/PAGE", data={"title": "Watch"})
    builder.activity(2, "SECTION_CONTAINER", 1)
    builder.activity(3, "SECTION", 2, position=1)
    builder.activity(4, "SECTION", 2, position=2)
    builder.activity(10, "INVISIBLE_CONTAINER", 3, position=1)
    builder.activity(11, "INVISIBLE_CONTAINER", 3, position=2)
    builder.activity(12, "EXPAND_CONTAINER", 4, position=3)
    builder.element(100, 10, "HTML")
    builder.element(110, 11, "CDA_VIDEO")
    builder.element(120, 12, "HTML")
    store = builder.store()

    regroup_sections(store, SECTION_PER_TE, now=NOW)
    result = merge_video_neighbors(store, video_intro=True, video_credits=True, now=NOW)
    report = prune_course(store)

    assert (result.videos, result.intros, result.credits) == (1, 1, 1)
    assert sorted(report.detached_activities) == [2, 3, 4]
    assert len(report.empty_sections) == 2
    sections = list(store.iter_kind(ActivityKind.SECTION))
    assert len(sections) == 1
    leaves = sorted(store.children_of(sections[0].id), key=lambda a: a.position)
    assert [(leaf.id, leaf.position) for leaf in leaves] == [(10, 1), (11, 2), (12, 3)]
    assert sorted(e.id for leaf in leaves for e in store.elements_of(leaf.id)) == [100, 110, 120]
    assert 2 not in store and 3 not in store and 4 not in store
