"""
Item kinds stored in a :class:`~pybedload.bed.Bed`.

Two kinds share one capability set: ``region_of``, ``start_of``, ``check``
(kind-specific ambiguity check against the previous item), ``make_item``
(the append step, which may reject a record) and ``summarize`` (statistics
of the stored items, refreshed after every step that changes them).
"""

from dataclasses import dataclass

from ._region import Region
from .ambiguity import AmbiguityEngine, Case, Decision

# Features whose lengths differ by no more than this are "the same length"
SAME_LENGTH_TOLERANCE = 10


@dataclass
class Feature:
    start: int
    end: int
    score: float = 1.0

    @property
    def length(self):
        return self.end - self.start


@dataclass
class Read:
    pos: int
    score: float = None


def _join(prev, rgn, decision):
    """Apply a crossed/adjacent decision; True keeps the candidate."""
    if decision == Decision.ACCEPT:
        return True
    if decision == Decision.MERGE:
        prev.start = min(prev.start, rgn.start)
        prev.end = max(prev.end, rgn.end)
    return False


class FeatureKind:
    """
    Interval items with explicit start/end and an optional score.

    Parameters
    ----------
    min_length : int, default 0
        Features shorter than this fall into the too-short case during
        ingestion. 0 disables the check.
    """

    name = "feature"
    min_fields = 3

    def __init__(self, min_length=0):
        self.min_length = min_length
        self.max_score = None
        self.same_length = True

    def make_engine(self, **kwargs):
        return AmbiguityEngine.for_features(**kwargs)

    @staticmethod
    def region_of(item):
        return Region(item.start, item.end)

    @staticmethod
    def start_of(item):
        return item.start

    def check(self, prev, rgn, engine, recheck=False):
        """
        Check candidate region *rgn* against the previous feature *prev*.

        A merge decision folds the candidate into *prev* and rejects the
        candidate. *prev* is None for the first feature of a chromosome.
        """
        if prev is None:
            if not recheck and self.min_length and rgn.length < self.min_length:
                return engine.treat_case(Case.TOO_SHORT) != Decision.REJECT
            return True
        prev_rgn = Region(prev.start, prev.end)
        if rgn == prev_rgn:
            return engine.treat_case(Case.DUPLICATE) != Decision.REJECT
        if not recheck and self.min_length and rgn.length < self.min_length:
            return engine.treat_case(Case.TOO_SHORT) != Decision.REJECT
        if prev_rgn.adjoins(rgn):
            return _join(prev, rgn, engine.treat_case(Case.ADJACENT))
        if prev_rgn.covers(rgn):
            return engine.treat_case(Case.COVERED) != Decision.REJECT
        if prev_rgn.crosses(rgn):
            return _join(prev, rgn, engine.treat_case(Case.CROSSED))
        return True

    def make_item(self, rgn, source=None):
        score = source.float_field(4, 1.0) if source is not None else 1.0
        return Feature(rgn.start, rgn.end, score)

    def summarize(self, items):
        """Recompute ``max_score`` and ``same_length`` from the stored features."""
        self.max_score = max((f.score for f in items), default=None)
        lengths = [f.length for f in items]
        self.same_length = not lengths or max(lengths) - min(lengths) <= SAME_LENGTH_TOLERANCE


class ReadKind:
    """
    Point items: a start position plus the canonical read length.

    The length of the first read becomes canonical; reads of another length
    fall into the different-size case. Crossing, adjacency and coverage are
    not checked for reads.

    Parameters
    ----------
    min_score : float, optional
        Reads with a score not above this threshold are filtered out.
    """

    name = "read"
    min_fields = 3

    def __init__(self, min_score=None):
        self.min_score = min_score
        self.read_len = 0
        self.max_score = None

    def make_engine(self, accept_duplicates=True, **kwargs):
        return AmbiguityEngine.for_reads(accept_duplicates=accept_duplicates, **kwargs)

    def region_of(self, item):
        return Region(item.pos, item.pos + self.read_len)

    @staticmethod
    def start_of(item):
        return item.pos

    def check(self, prev, rgn, engine, recheck=False):
        if not self.read_len:
            self.read_len = rgn.length
        elif rgn.length != self.read_len \
                and engine.treat_case(Case.DIFFERENT_SIZE) == Decision.REJECT:
            return False
        if prev is not None and rgn.start == prev.pos \
                and engine.treat_case(Case.DUPLICATE) == Decision.REJECT:
            return False
        return True

    def make_item(self, rgn, source=None):
        score = source.float_field(4) if source is not None else None
        if score is not None and self.min_score is not None and score <= self.min_score:
            return None
        return Read(rgn.start, score)

    def summarize(self, items):
        """Recompute ``max_score`` from the stored reads."""
        self.max_score = max((r.score for r in items if r.score is not None), default=None)
