"""
Ambiguity cases between neighbouring items and their configured resolution.

Every ingestion owns one :class:`AmbiguityEngine`. Detecting code calls
:meth:`AmbiguityEngine.treat_case` with the case it found; the engine counts
it, optionally prints a line alarm and returns a :class:`Decision` telling
the caller whether to keep, merge or drop the candidate item.
"""

import logging as _logging
import sys as _sys
from enum import IntEnum
from typing import NamedTuple

from ._errors import BedError
from ._region import Region
from ._shared import _config_value, _pandas, _percent

_logger = _logging.getLogger(__name__)


class Case(IntEnum):
    DUPLICATE = 0
    CROSSED = 1
    ADJACENT = 2
    COVERED = 3
    TOO_SHORT = 4
    DIFFERENT_SIZE = 5
    FILTERED_BY_SCORE = 6
    EXCEEDS_LENGTH = 7
    NEGLIGIBLE_CHROM = 8


class Action(IntEnum):
    ACCEPT = 0          # keep the item as is
    HANDLE = 1          # merge/join the item, with alarm
    OMIT = 2            # drop the item, with alarm
    OMIT_SILENT = 3     # drop the item quietly
    ABORT = 4           # fail the whole ingestion


class Decision(IntEnum):
    REJECT = -1
    MERGE = 0
    ACCEPT = 1


class Info(IntEnum):
    """How much :meth:`AmbiguityEngine.report` prints."""

    NONE = 0
    LACONIC = 1
    NAME = 2
    EXTENDED = 3
    STAT = 4

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        aliases = {'ext': cls.EXTENDED, 'nm': cls.NAME, 'lac': cls.LACONIC}
        key = str(value).strip().lower()
        if key in aliases:
            return aliases[key]
        try:
            return cls[key.upper()]
        except KeyError:
            raise ValueError(f"Unknown info level: {value!r}") from None


class _CaseText(NamedTuple):
    stat: str       # used in statistics
    alarm: str      # used in line alarms


_CASE_TEXTS = {
    Case.DUPLICATE: _CaseText("duplicated", "duplicated"),
    Case.CROSSED: _CaseText("crossed", "is intersected with previous"),
    Case.ADJACENT: _CaseText("adjacent", "is adjacent with previous"),
    Case.COVERED: _CaseText("covered", "is fully covered by previous"),
    Case.TOO_SHORT: _CaseText("too short", "too short"),
    Case.DIFFERENT_SIZE: _CaseText("different size of", "different size of"),
    Case.FILTERED_BY_SCORE: _CaseText("filtered by low score", "filtered by score"),
    Case.EXCEEDS_LENGTH: _CaseText("chrom exceeding", "position exceeds chromosome length"),
    Case.NEGLIGIBLE_CHROM: _CaseText("negligible", "negligible chromosome"),
}

_ACTION_TEXTS = {
    Action.ACCEPT: "accepted",
    Action.HANDLE: "joined",
    Action.OMIT: "omitted",
    Action.OMIT_SILENT: "omitted",
    Action.ABORT: "execution aborted",
}

_DECISIONS = {
    Action.ACCEPT: Decision.ACCEPT,
    Action.HANDLE: Decision.MERGE,
    Action.OMIT: Decision.REJECT,
    Action.OMIT_SILENT: Decision.REJECT,
}


def apply_action(action):
    """Decision taken by a non-aborting *action*."""
    try:
        return _DECISIONS[Action(action)]
    except KeyError:
        raise ValueError(f"{Action(action).name} has no decision") from None


def default_actions(kind="feature", accept_duplicates=True):
    """
    Default per-case actions for an item kind.

    Features omit duplicates and join crossed and adjacent neighbours.
    Reads accept crossing and adjacency, omit reads of a different size and
    accept (or silently omit) duplicates. Every other case is omitted.
    """
    actions = dict.fromkeys(Case, Action.OMIT)
    if kind == "feature":
        actions[Case.DUPLICATE] = Action.OMIT
        actions[Case.CROSSED] = actions[Case.ADJACENT] = Action.HANDLE
        actions[Case.DIFFERENT_SIZE] = Action.ACCEPT
    elif kind == "read":
        actions[Case.DUPLICATE] = Action.ACCEPT if accept_duplicates else Action.OMIT_SILENT
        actions[Case.CROSSED] = actions[Case.ADJACENT] = Action.ACCEPT
        actions[Case.DIFFERENT_SIZE] = Action.OMIT
    else:
        raise ValueError(f"Unknown item kind: {kind!r}")
    return actions


class StreamSink:
    """Alarm and statistics sink writing to a text stream.

    Every write is flushed so alarms stay ordered with other output.
    The stream defaults to ``sys.stdout`` looked up at write time.
    """

    def __init__(self, stream=None):
        self._stream = stream

    @property
    def stream(self):
        return self._stream if self._stream is not None else _sys.stdout

    def write(self, text):
        stream = self.stream
        stream.write(text)
        stream.flush()


class AmbiguityEngine:
    """
    Per-case actions and counters for one ingestion.

    Parameters
    ----------
    kind : {"feature", "read"}
        Item kind; selects the default actions and the item title.
    actions : Mapping[Case, Action], optional
        Per-case overrides of the defaults.
    alarm : bool, optional
        Print a line alarm for handled and omitted items. Defaults to
        ``CONFIG['alarm']``.
    info : Info or str, optional
        Report verbosity. Defaults to ``CONFIG['info']``.
    sink : StreamSink, optional
        Destination of alarms and statistics.
    accept_duplicates : bool, default True
        Read default for the duplicate case.
    """

    def __init__(self, kind="feature", actions=None, alarm=None, info=None,
                 sink=None, accept_duplicates=True):
        self.kind = kind
        self.actions = default_actions(kind, accept_duplicates)
        for case, action in (actions or {}).items():
            self.actions[Case(case)] = Action(action)
        self.alarm = bool(_config_value('alarm', alarm))
        self.info = Info.parse(_config_value('info', info))
        self.sink = sink or StreamSink()
        self.source = None
        self.counts = [0] * len(Case)
        self.alarm_printed = self.info <= Info.LACONIC
        self.resorted = False

    @classmethod
    def for_features(cls, **kwargs):
        return cls("feature", **kwargs)

    @classmethod
    def for_reads(cls, accept_duplicates=True, **kwargs):
        return cls("read", accept_duplicates=accept_duplicates, **kwargs)

    def entity(self, cnt=1):
        return self.kind if cnt == 1 else self.kind + "s"

    def count(self, case):
        return self.counts[Case(case)]

    def total_count(self):
        return sum(self.counts)

    def _fatal(self, message):
        if self.source is not None:
            self.source.fatal(message)
        raise BedError(message)

    def _line_alarm(self, case):
        if not self.alarm:
            return
        if not self.alarm_printed:
            self.sink.write("\n")
            self.alarm_printed = True
        context = self.source.line_context() if self.source is not None else "warning"
        self.sink.write(
            f"{context}: {_CASE_TEXTS[case].alarm} {self.entity()}: "
            f"{_ACTION_TEXTS[self.actions[case]]}\n"
        )

    def treat_case(self, case):
        """Count *case* and resolve it with its configured action."""
        case = Case(case)
        self.counts[case] += 1
        action = self.actions[case]
        if action == Action.ABORT:
            self._fatal(f"{_CASE_TEXTS[case].alarm} {self.entity()}")
        if action in (Action.HANDLE, Action.OMIT):
            self._line_alarm(case)
        return apply_action(action)

    def init_region(self, start, end, chrom_len=0):
        """
        Validate raw positions and build a region.

        Returns ``None`` when the region exceeds *chrom_len* and the
        exceeding case is rejected.

        Raises
        ------
        BedError
            On a negative position or ``start >= end``.
        """
        if start < 0 or end < 0:
            self._fatal("negative position")
        if start >= end:
            self._fatal("end position is not greater than start")
        if chrom_len > 0 and end > chrom_len \
                and self.treat_case(Case.EXCEEDS_LENGTH) == Decision.REJECT:
            return None
        return Region(start, end)

    def _reconcile_negligible(self, total, accepted):
        # Lines of unrecognized chromosomes are never counted one by one:
        # they are what is left after accepted items and counted cases.
        # Accept-configured cases were counted and accepted, so add them back.
        negl = total - accepted - sum(
            self.counts[c] for c in Case if c != Case.NEGLIGIBLE_CHROM
        )
        negl += sum(
            self.counts[c] for c in Case
            if c != Case.NEGLIGIBLE_CHROM and self.actions[c] == Action.ACCEPT
        )
        self.counts[Case.NEGLIGIBLE_CHROM] = max(negl, 0)

    def stats(self, total, accepted, all_chroms=True):
        """
        Per-case statistics.

        Parameters
        ----------
        total : int
            Count of input records.
        accepted : int
            Count of accepted items.
        all_chroms : bool, default True
            Reconcile the negligible-chromosome count (only meaningful when
            every chromosome was read).

        Returns
        -------
        DataFrame
            Columns ``case``, ``count``, ``percent``, ``action`` for every
            case with a nonzero count.
        """
        if all_chroms:
            self._reconcile_negligible(total, accepted)
        rows = [
            (case.name.lower(), self.counts[case], _percent(self.counts[case], total),
             self.actions[case].name.lower())
            for case in Case if self.counts[case]
        ]
        return _pandas.DataFrame(rows, columns=['case', 'count', 'percent', 'action'])

    def _case_line(self, case, total):
        cnt = self.counts[case]
        line = f"\t{cnt} ({_percent(cnt, total)}%) {_CASE_TEXTS[case].stat} {self.entity(cnt)}"
        if self.resorted:
            line += " arisen after sorting"
        return line + f"; {_ACTION_TEXTS[self.actions[case]]}\n"

    def report(self, total, accepted, chrom=None, title=None, name=None):
        """
        Print the ingestion summary and per-case statistics.

        Parameters
        ----------
        total, accepted : int
            Input record and accepted item counts.
        chrom : str, optional
            Name of the single chromosome read, ``None`` if all were read.
        title : str, optional
            Secondary title (e.g. ``"after extension"``); when omitted the
            report is the primary one following the file name.
        name : str, optional
            File name printed first in the primary report.

        Returns
        -------
        bool
            True if anything was printed.
        """
        _logger.info("%s: %d records, %d %s accepted",
                     name or title or "bed", total, accepted, self.entity(accepted))
        if self.info <= Info.LACONIC or not total:
            return False
        no_ambigs = total == accepted
        per_chrom = f" per {chrom}" if chrom else ""
        out = []
        if title:
            if self.info < Info.EXTENDED or no_ambigs:
                return False
            out.append(f"    {title}: {accepted} accepted {self.entity(accepted)}{per_chrom}")
        else:
            out.append(name or "")
            if self.info > Info.NAME:
                out.append(f": {total} {self.entity(total)}")
                if not no_ambigs:
                    out.append(f" total, {accepted} accepted")
                out.append(per_chrom)
        if chrom is None and title is None:
            self._reconcile_negligible(total, accepted)
        if self.info == Info.STAT and self.total_count():
            out.append(", from which\n" if not title else "\n")
            for case in Case:
                if self.counts[case]:
                    out.append(self._case_line(case, total))
            out.append(
                f"\ttotal accepted: {accepted} ({_percent(accepted, total)}%) "
                f"{self.entity(accepted)}"
            )
        out.append("\n")
        self.sink.write("".join(out))
        return True
