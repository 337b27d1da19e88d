"""
Tests for Rebalancer — codes reassigned to follow timestamps

These tests validate:
- Plan ordering (newest timestamp gets the starting code)
- Headroom and space limits
- Archive and untagged files left alone
- Collision-free apply, including rename cycles
- Partial failure reporting and recovery by re-planning
"""

import random

import pytest

from grainmirror.core.filesystem import LocalFilesystem
from grainmirror.core.grainorder import ARCHIVE_CODE, LAST_CODE, START_CODE, code_at, sort_key
from grainmirror.core.naming import parse_tagged_name
from grainmirror.errors import InvalidGrainorder, PlanExhausted, RenamePartialFailure
from tests.factories import tagged_filename


def codes_in(listing):
    return [parse_tagged_name(name).code for name in listing if parse_tagged_name(name)]


class CheckingFilesystem(LocalFilesystem):
    """Asserts after every rename that no two files share a code."""

    def __init__(self):
        self.renames = []

    def rename(self, old, new):
        super().rename(old, new)
        self.renames.append((old, new))
        directory = new.rsplit("/", 1)[0]
        codes = codes_in(self.list(directory))
        assert len(codes) == len(set(codes)), f"duplicate code after {old} -> {new}"


class FailingFilesystem(LocalFilesystem):
    """Fails the nth rename (1-based)."""

    def __init__(self, fail_on):
        self.fail_on = fail_on
        self.calls = 0

    def rename(self, old, new):
        self.calls += 1
        if self.calls == self.fail_on:
            raise PermissionError(13, "Permission denied", new)
        super().rename(old, new)


class TestScan:

    def test_skips_untagged(self, mirror_factory):
        tagged = tagged_filename("xbdghj", 2025, 1, 1, remainder="a.md")
        directory = mirror_factory.make_tagged_dir([tagged, "README.md", "xxbdgh-12025-01-01--0000-utc--bad.md"])
        found = mirror_factory.create_rebalancer().scan(directory)
        assert [f.name for f in found] == [tagged]
        assert found[0].code == "xbdghj"


class TestPlan:

    def test_newest_gets_start(self, mirror_factory):
        old = tagged_filename("xbdghj", 2024, 5, 1, remainder="old.md")
        new = tagged_filename("xbdghk", 2025, 5, 1, remainder="new.md")
        directory = mirror_factory.make_tagged_dir([old, new])

        plan = mirror_factory.create_rebalancer().plan(directory)

        assert [(m.old_name, m.new_code) for m in plan.moves] == [(new, "xbdghj"), (old, "xbdghk")]
        assert len(plan.changes) == 2
        assert plan.moves[0].new_name == tagged_filename("xbdghj", 2025, 5, 1, remainder="new.md")

    def test_plan_touches_nothing(self, mirror_factory):
        names = [tagged_filename("xbdghj", 2024, 5, 1, remainder="old.md"),
                 tagged_filename("xbdghk", 2025, 5, 1, remainder="new.md")]
        directory = mirror_factory.make_tagged_dir(names)
        mirror_factory.create_rebalancer().plan(directory)
        assert mirror_factory.listing(directory) == sorted(names)

    def test_already_ordered_is_noop(self, mirror_factory):
        directory = mirror_factory.make_tagged_dir([
            tagged_filename("xbdghj", 2025, 5, 2, remainder="b.md"),
            tagged_filename("xbdghk", 2025, 5, 1, remainder="a.md"),
        ])
        plan = mirror_factory.create_rebalancer().plan(directory)
        assert plan.is_noop
        assert len(plan.moves) == 2

    def test_ties_are_deterministic(self, mirror_factory):
        """Same timestamp: current code decides, then the remainder."""
        directory = mirror_factory.make_tagged_dir([
            tagged_filename("xbdghm", 2025, 5, 1, 9, 30, remainder="a.md"),
            tagged_filename("xbdghl", 2025, 5, 1, 9, 30, remainder="b.md"),
        ])
        plan = mirror_factory.create_rebalancer().plan(directory)
        assert [m.old_code for m in plan.moves] == ["xbdghl", "xbdghm"]

    def test_timezone_ignored(self, mirror_factory):
        directory = mirror_factory.make_tagged_dir([
            tagged_filename("xbdghj", 2025, 5, 1, 9, 0, tz="utc", remainder="early.md"),
            tagged_filename("xbdghk", 2025, 5, 1, 10, 0, tz="pdt", remainder="late.md"),
        ])
        plan = mirror_factory.create_rebalancer().plan(directory)
        assert plan.moves[0].old_name.endswith("late.md")

    def test_headroom(self, mirror_factory):
        directory = mirror_factory.make_tagged_dir([tagged_filename("xbdghj", 2025, 1, 1)])
        plan = mirror_factory.create_rebalancer().plan(directory, headroom=5)
        assert plan.moves[0].new_code == code_at(5)
        assert plan.headroom == 5

    def test_custom_start(self, mirror_factory):
        directory = mirror_factory.make_tagged_dir([tagged_filename("xbdghj", 2025, 1, 1)])
        plan = mirror_factory.create_rebalancer().plan(directory, start="xbdghz")
        assert plan.moves[0].new_code == "xbdghz"

    def test_exhausted_near_archive(self, mirror_factory):
        directory = mirror_factory.make_tagged_dir([
            tagged_filename("xbdghj", 2025, 1, 1, remainder="a.md"),
            tagged_filename("xbdghk", 2025, 1, 2, remainder="b.md"),
        ])
        rebalancer = mirror_factory.create_rebalancer()
        with pytest.raises(PlanExhausted):
            rebalancer.plan(directory, start=LAST_CODE)

    def test_single_file_fits_at_last_code(self, mirror_factory):
        directory = mirror_factory.make_tagged_dir([tagged_filename("xbdghj", 2025, 1, 1)])
        plan = mirror_factory.create_rebalancer().plan(directory, start=LAST_CODE)
        assert plan.moves[0].new_code == LAST_CODE

    def test_archive_files_excluded(self, mirror_factory):
        archived = tagged_filename(ARCHIVE_CODE, 2026, 1, 1, remainder="archive.md")
        directory = mirror_factory.make_tagged_dir([archived, tagged_filename("xbdghk", 2025, 1, 1)])
        plan = mirror_factory.create_rebalancer().plan(directory)
        assert archived not in [m.old_name for m in plan.moves]
        assert plan.moves[0].new_code == START_CODE

    @pytest.mark.parametrize("start", ["bogus", ARCHIVE_CODE])
    def test_bad_start(self, mirror_factory, start):
        directory = mirror_factory.make_tagged_dir([])
        with pytest.raises(InvalidGrainorder):
            mirror_factory.create_rebalancer().plan(directory, start=start)

    def test_negative_headroom(self, mirror_factory):
        directory = mirror_factory.make_tagged_dir([])
        with pytest.raises(ValueError):
            mirror_factory.create_rebalancer().plan(directory, headroom=-1)

    def test_empty_directory(self, mirror_factory):
        plan = mirror_factory.create_rebalancer().plan(mirror_factory.make_tagged_dir([]))
        assert plan.moves == []
        assert plan.is_noop

    def test_to_dict(self, mirror_factory):
        directory = mirror_factory.make_tagged_dir([tagged_filename("xbdghk", 2025, 1, 1)])
        data = mirror_factory.create_rebalancer().plan(directory).to_dict()
        assert data["file_count"] == 1
        assert data["change_count"] == 1
        assert data["moves"][0]["new_code"] == "xbdghj"


class TestApply:

    def test_swap_cycle_parks_one_file(self, mirror_factory):
        old = tagged_filename("xbdghj", 2024, 5, 1, remainder="old.md")
        new = tagged_filename("xbdghk", 2025, 5, 1, remainder="new.md")
        directory = mirror_factory.make_tagged_dir([old, new])
        fs = CheckingFilesystem()
        rebalancer = mirror_factory.create_rebalancer(fs)

        result = rebalancer.apply(rebalancer.plan(directory))

        new_final = tagged_filename("xbdghj", 2025, 5, 1, remainder="new.md")
        old_final = tagged_filename("xbdghk", 2024, 5, 1, remainder="old.md")
        assert mirror_factory.listing(directory) == sorted([new_final, old_final])
        assert result.parked == [(new, tagged_filename("xbdghl", 2025, 5, 1, remainder="new.md"))]
        assert result.completed == [(old, old_final), (new, new_final)]
        assert len(fs.renames) == 3

    def test_chain_needs_no_parking(self, mirror_factory):
        directory = mirror_factory.make_tagged_dir([
            tagged_filename("xbdghk", 2025, 5, 2, remainder="a.md"),
            tagged_filename("xbdghl", 2025, 5, 1, remainder="b.md"),
        ])
        rebalancer = mirror_factory.create_rebalancer(CheckingFilesystem())

        result = rebalancer.apply(rebalancer.plan(directory))

        assert result.parked == []
        assert result.renamed_count == 2
        assert codes_in(mirror_factory.listing(directory)) == ["xbdghj", "xbdghk"]

    def test_content_follows_file(self, mirror_factory):
        old = tagged_filename("xbdghj", 2024, 5, 1, remainder="old.md")
        new = tagged_filename("xbdghk", 2025, 5, 1, remainder="new.md")
        directory = mirror_factory.make_tagged_dir([old, new])
        rebalancer = mirror_factory.create_rebalancer()
        rebalancer.apply(rebalancer.plan(directory))
        assert (directory / tagged_filename("xbdghj", 2025, 5, 1, remainder="new.md")).read_text() == new

    def test_noop_renames_nothing(self, mirror_factory):
        directory = mirror_factory.make_tagged_dir([tagged_filename("xbdghj", 2025, 1, 1)])
        fs = CheckingFilesystem()
        rebalancer = mirror_factory.create_rebalancer(fs)
        result = rebalancer.apply(rebalancer.plan(directory))
        assert result.completed == []
        assert fs.renames == []

    def test_untagged_and_archive_untouched(self, mirror_factory):
        archived = tagged_filename(ARCHIVE_CODE, 2026, 1, 1, remainder="archive.md")
        directory = mirror_factory.make_tagged_dir([
            archived, "notes.txt", tagged_filename("xbdghz", 2025, 1, 1),
        ])
        rebalancer = mirror_factory.create_rebalancer()
        rebalancer.apply(rebalancer.plan(directory))
        listing = mirror_factory.listing(directory)
        assert archived in listing
        assert "notes.txt" in listing

    def test_shuffled_directory_ends_in_timestamp_order(self, mirror_factory):
        rng = random.Random(20261016)
        codes = [code_at(i) for i in range(8)]
        rng.shuffle(codes)
        names = [tagged_filename(code, 2025, 3, day + 1, remainder=f"f{day}.md")
                 for day, code in enumerate(codes)]
        directory = mirror_factory.make_tagged_dir(names)
        rebalancer = mirror_factory.create_rebalancer(CheckingFilesystem())

        rebalancer.apply(rebalancer.plan(directory))

        tagged = [parse_tagged_name(name) for name in mirror_factory.listing(directory)]
        by_code = sorted(tagged, key=lambda t: sort_key(t.code))
        assert [t.code for t in by_code] == [code_at(i) for i in range(8)]
        assert [t.day for t in by_code] == list(range(8, 0, -1))
        assert rebalancer.plan(directory).is_noop

    def test_partial_failure_then_replan(self, mirror_factory):
        a = tagged_filename("xbdghk", 2025, 5, 3, remainder="a.md")
        b = tagged_filename("xbdghl", 2025, 5, 2, remainder="b.md")
        c = tagged_filename("xbdghm", 2025, 5, 1, remainder="c.md")
        directory = mirror_factory.make_tagged_dir([a, b, c])
        failing = mirror_factory.create_rebalancer(FailingFilesystem(fail_on=2))

        with pytest.raises(RenamePartialFailure) as exc_info:
            failing.apply(failing.plan(directory))

        error = exc_info.value
        assert error.code == "GM_E103"
        assert error.completed == [(a, tagged_filename("xbdghj", 2025, 5, 3, remainder="a.md"))]
        assert [old for old, _ in error.pending] == [b, c]
        assert "Permission denied" in error.reason

        # Directory is coherent: a re-plan finishes the job
        rebalancer = mirror_factory.create_rebalancer()
        plan = rebalancer.plan(directory)
        assert len(plan.changes) == 2
        rebalancer.apply(plan)
        assert codes_in(mirror_factory.listing(directory)) == ["xbdghj", "xbdghk", "xbdghl"]
