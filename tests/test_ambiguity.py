"""Tests for the ambiguity engine."""

import io

import pytest

from pybedload import (
    Action,
    AmbiguityEngine,
    BedError,
    Case,
    Decision,
    Info,
    Region,
    StreamSink,
    apply_action,
    default_actions,
)


def _engine(kind="feature", info="stat", alarm=False, **kwargs):
    stream = io.StringIO()
    engine = AmbiguityEngine(kind, info=info, alarm=alarm, sink=StreamSink(stream), **kwargs)
    return engine, stream


class TestDefaults:
    """Test default actions per item kind."""

    def test_feature_defaults(self):
        actions = default_actions("feature")
        assert actions[Case.DUPLICATE] == Action.OMIT
        assert actions[Case.CROSSED] == Action.HANDLE
        assert actions[Case.ADJACENT] == Action.HANDLE
        assert actions[Case.DIFFERENT_SIZE] == Action.ACCEPT
        assert actions[Case.COVERED] == Action.OMIT
        assert actions[Case.NEGLIGIBLE_CHROM] == Action.OMIT

    def test_read_defaults(self):
        actions = default_actions("read")
        assert actions[Case.DUPLICATE] == Action.ACCEPT
        assert actions[Case.CROSSED] == Action.ACCEPT
        assert actions[Case.ADJACENT] == Action.ACCEPT
        assert actions[Case.DIFFERENT_SIZE] == Action.OMIT
        assert actions[Case.FILTERED_BY_SCORE] == Action.OMIT

    def test_read_duplicates_omitted_silently(self):
        actions = default_actions("read", accept_duplicates=False)
        assert actions[Case.DUPLICATE] == Action.OMIT_SILENT

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown item kind"):
            default_actions("gene")

    def test_overrides(self):
        engine = AmbiguityEngine.for_features(actions={Case.CROSSED: Action.ACCEPT})
        assert engine.actions[Case.CROSSED] == Action.ACCEPT
        assert engine.actions[Case.ADJACENT] == Action.HANDLE


class TestApplyAction:
    """Test action to decision mapping."""

    @pytest.mark.parametrize("action,decision", [
        (Action.ACCEPT, Decision.ACCEPT),
        (Action.HANDLE, Decision.MERGE),
        (Action.OMIT, Decision.REJECT),
        (Action.OMIT_SILENT, Decision.REJECT),
    ])
    def test_mapping(self, action, decision):
        assert apply_action(action) == decision

    def test_abort_has_no_decision(self):
        with pytest.raises(ValueError):
            apply_action(Action.ABORT)


class TestInfo:
    """Test info level parsing."""

    def test_aliases(self):
        assert Info.parse("ext") == Info.EXTENDED
        assert Info.parse("NM") == Info.NAME
        assert Info.parse("lac") == Info.LACONIC
        assert Info.parse("stat") == Info.STAT
        assert Info.parse(0) == Info.NONE

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown info level"):
            Info.parse("loud")


# ----------------------------------------------------------------------
# treat_case and alarms
# ----------------------------------------------------------------------


class TestTreatCase:
    """Test case counting, decisions and line alarms."""

    def test_counts_and_decisions(self):
        engine, _ = _engine()
        assert engine.treat_case(Case.DUPLICATE) == Decision.REJECT
        assert engine.treat_case(Case.DUPLICATE) == Decision.REJECT
        assert engine.treat_case(Case.CROSSED) == Decision.MERGE
        assert engine.treat_case(Case.DIFFERENT_SIZE) == Decision.ACCEPT
        assert engine.count(Case.DUPLICATE) == 2
        assert engine.count(Case.CROSSED) == 1
        assert engine.total_count() == 4

    def test_abort_raises(self):
        engine, _ = _engine(actions={Case.COVERED: Action.ABORT})
        with pytest.raises(BedError, match="is fully covered by previous feature"):
            engine.treat_case(Case.COVERED)
        assert engine.count(Case.COVERED) == 1

    def test_alarm_lines(self):
        engine, stream = _engine(alarm=True)
        engine.treat_case(Case.DUPLICATE)
        engine.treat_case(Case.CROSSED)
        assert stream.getvalue() == (
            "\n"
            "warning: duplicated feature: omitted\n"
            "warning: is intersected with previous feature: joined\n"
        )

    def test_no_alarm_for_accept_and_silent(self):
        engine, stream = _engine("read", alarm=True, accept_duplicates=False)
        engine.treat_case(Case.DUPLICATE)
        engine.treat_case(Case.CROSSED)
        assert stream.getvalue() == ""

    def test_no_leading_newline_when_laconic(self):
        engine, stream = _engine(info="laconic", alarm=True)
        engine.treat_case(Case.DUPLICATE)
        assert stream.getvalue() == "warning: duplicated feature: omitted\n"

    def test_alarms_disabled(self):
        engine, stream = _engine(alarm=False)
        engine.treat_case(Case.DUPLICATE)
        assert stream.getvalue() == ""


class TestInitRegion:
    """Test raw position validation."""

    def test_valid(self):
        engine, _ = _engine()
        assert engine.init_region(10, 20) == Region(10, 20)

    def test_negative_position(self):
        engine, _ = _engine()
        with pytest.raises(BedError, match="negative position"):
            engine.init_region(-1, 20)

    @pytest.mark.parametrize("start,end", [(20, 20), (30, 20)])
    def test_end_not_greater_than_start(self, start, end):
        engine, _ = _engine()
        with pytest.raises(BedError, match="end position is not greater than start"):
            engine.init_region(start, end)

    def test_exceeding_chromosome_is_omitted(self):
        engine, _ = _engine()
        assert engine.init_region(90, 110, chrom_len=100) is None
        assert engine.count(Case.EXCEEDS_LENGTH) == 1

    def test_exceeding_chromosome_kept_when_handled(self):
        engine, _ = _engine(actions={Case.EXCEEDS_LENGTH: Action.HANDLE})
        assert engine.init_region(90, 110, chrom_len=100) == Region(90, 110)

    def test_unknown_length_is_not_checked(self):
        engine, _ = _engine()
        assert engine.init_region(90, 110) == Region(90, 110)
        assert engine.total_count() == 0


# ----------------------------------------------------------------------
# Statistics and report
# ----------------------------------------------------------------------


class TestStats:
    """Test statistics frames and negligible reconciliation."""

    def test_negligible_is_reconciled(self):
        engine, _ = _engine()
        engine.treat_case(Case.DUPLICATE)
        engine.treat_case(Case.DUPLICATE)
        stats = engine.stats(10, 5)
        assert list(stats["case"]) == ["duplicate", "negligible_chrom"]
        assert list(stats["count"]) == [2, 3]
        assert list(stats["percent"]) == [20.0, 30.0]
        assert list(stats["action"]) == ["omit", "omit"]

    def test_accepted_cases_are_not_negligible(self):
        engine, _ = _engine("read")
        engine.treat_case(Case.DUPLICATE)
        stats = engine.stats(4, 4)
        assert engine.count(Case.NEGLIGIBLE_CHROM) == 0
        assert list(stats["case"]) == ["duplicate"]

    def test_single_chromosome_skips_reconciliation(self):
        engine, _ = _engine()
        stats = engine.stats(10, 5, all_chroms=False)
        assert len(stats) == 0


class TestReport:
    """Test the printed ingestion summary."""

    def test_stat_report(self):
        engine, stream = _engine()
        engine.treat_case(Case.DUPLICATE)
        engine.treat_case(Case.DUPLICATE)
        assert engine.report(10, 8, name="a.bed")
        assert stream.getvalue() == (
            "a.bed: 10 features total, 8 accepted, from which\n"
            "\t2 (20.0%) duplicated features; omitted\n"
            "\ttotal accepted: 8 (80.0%) features\n"
        )

    def test_report_without_ambiguities(self):
        engine, stream = _engine()
        engine.report(3, 3, name="a.bed")
        assert stream.getvalue() == "a.bed: 3 features\n"

    def test_report_per_chromosome(self):
        engine, stream = _engine(info="ext")
        engine.report(3, 2, chrom="chr2", name="a.bed")
        assert stream.getvalue() == "a.bed: 3 features total, 2 accepted per chr2\n"

    def test_report_name_only(self):
        engine, stream = _engine(info="name")
        engine.report(3, 2, name="a.bed")
        assert stream.getvalue() == "a.bed\n"

    def test_laconic_prints_nothing(self):
        engine, stream = _engine(info="laconic")
        assert not engine.report(3, 2, name="a.bed")
        assert stream.getvalue() == ""

    def test_resorted_marks_cases(self):
        engine, stream = _engine()
        engine.resorted = True
        engine.treat_case(Case.COVERED)
        engine.report(2, 1, name="a.bed")
        assert "\t1 (50.0%) covered feature arisen after sorting; omitted\n" in stream.getvalue()

    def test_title_report(self):
        engine, stream = _engine(info="ext")
        assert engine.report(2, 1, title="after extension")
        assert stream.getvalue() == "    after extension: 1 accepted feature\n"

    def test_title_report_skipped_without_ambiguities(self):
        engine, stream = _engine(info="stat")
        assert not engine.report(2, 2, title="after extension")
        assert stream.getvalue() == ""

    def test_title_report_needs_extended_info(self):
        engine, stream = _engine(info="name")
        assert not engine.report(2, 1, title="after extension")
