"""
Ingestion of BED features and reads into a per-chromosome indexed buffer.

All items of a file live in one list; each chromosome owns a contiguous
slice of it described by a :class:`~pybedload.chroms.ChromRange`. Ranges are
plain offsets, so every step that compacts the list recomputes them.
"""

import logging as _logging
import warnings
from dataclasses import dataclass

from ._errors import BedError, EmptyBedError
from ._shared import CONFIG, _config_value, _empty_frame, _numpy, _pandas, _progress_context
from .ambiguity import Case
from .chroms import ChromIndex, ChromRange, ChromResolver, bed_chrom_sizes
from .extend import bed_extend
from .items import FeatureKind, ReadKind
from .reader import TabReader

_logger = _logging.getLogger(__name__)


@dataclass
class _IngestSession:
    """Mutable state of one ingestion pass."""

    all_chroms: bool
    cur_name: str = None        # chromosome name of the previous record
    cur_id: int = None          # its id (may be the negligible sentinel)
    open_id: int = None         # chromosome whose range is being filled
    last_id: int = None         # last recognized chromosome block
    first_ind: int = 0          # first buffer index of the open range
    chrom_len: int = 0
    prev_start: int = 0
    total: int = 0
    target_done: bool = False
    unsorted_items: bool = False
    need_global_sort: bool = False


class Bed:
    """
    Features or reads of one BED file, grouped by chromosome.

    Parameters
    ----------
    kind : FeatureKind or ReadKind
        Item kind; defines the ambiguity checks and the stored item type.
    resolver : ChromResolver, optional
        Chromosome name resolver; its ``stated_id`` restricts loading to a
        single chromosome.
    engine : AmbiguityEngine, optional
        Ambiguity policy. Defaults to the kind's default engine.

    Attributes
    ----------
    chroms : ChromIndex
        Chromosome id to item range.
    stats : DataFrame or None
        Per-case statistics of the last load.
    is_bad : bool
        True if the last load failed without aborting.
    treated_chrom : int or None
        Id of the only chromosome loaded, ``None`` if several were.
    """

    def __init__(self, kind, resolver=None, engine=None):
        self.kind = kind
        self.resolver = resolver or ChromResolver()
        self.engine = engine or kind.make_engine()
        self.chroms = ChromIndex()
        self._items = []
        self.name = None
        self.total = 0
        self.stats = None
        self.is_bad = False
        self.treated_chrom = None

    def __len__(self):
        return len(self._items)

    def __repr__(self):
        return (f"Bed({self.kind.name}s={len(self._items)}, chroms={len(self.chroms)}"
                f"{', bad' if self.is_bad else ''})")

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def load(self, source, chrom_sizes=None, abort_invalid=None, progress=None):
        """
        Read all records of *source* into this instance.

        Parameters
        ----------
        source : TabReader
            Record source positioned before its first record.
        chrom_sizes : ChromSizes, Mapping, DataFrame or path, optional
            Chromosome lengths; positions beyond them fall into the
            exceeding case. ``None`` disables the check.
        abort_invalid : bool, optional
            Raise on a fatal error (default ``CONFIG['abort_invalid']``);
            otherwise warn and mark the instance bad.
        progress : bool, str or callable, optional
            Progress reporting, see ``CONFIG['progress']``.

        Returns
        -------
        tuple of int
            ``(records, accepted items)``.

        Raises
        ------
        BedError
            On malformed geometry, an aborting ambiguity, unsorted
            chromosomes in single-chromosome mode, or a split chromosome.
        EmptyBedError
            If no item was accepted.
        """
        abort_invalid = _config_value('abort_invalid', abort_invalid)
        if chrom_sizes is not None:
            chrom_sizes = bed_chrom_sizes(chrom_sizes, self.resolver)
        self.name = source.name
        self.engine.source = source
        try:
            total, accepted = self._ingest(source, chrom_sizes, progress)
            if not accepted:
                what = f"{self.kind.name}s"
                if not self.resolver.stated_all:
                    what += f" per {self.resolver.name_of(self.resolver.stated_id)}"
                raise EmptyBedError(f"no {what}", source.name)
        except BedError as err:
            self.is_bad = True
            self._items = []
            self.chroms.clear()
            if abort_invalid:
                raise
            warnings.warn(str(err), stacklevel=2)
            return self.total, 0
        finally:
            self.engine.source = None

        ids = list(self.chroms)
        self.treated_chrom = ids[0] if len(ids) == 1 else None
        chrom = None
        if not self.resolver.stated_all:
            chrom = self.resolver.name_of(self.resolver.stated_id)
        self.stats = self.engine.stats(total, accepted, all_chroms=chrom is None)
        self.engine.report(total, accepted, chrom=chrom, name=source.name)
        return total, accepted

    def _ingest(self, source, chrom_sizes, progress):
        sess = _IngestSession(all_chroms=self.resolver.stated_all)
        estimate = source.first_line()
        if not estimate:
            return 0, 0
        step = max(int(CONFIG.get('progress_step') or 1), 1)

        with _progress_context(progress, total=estimate, desc=source.name) as cb:
            has_line = True
            while has_line:
                if not self._take(source, sess, chrom_sizes):
                    break
                if cb and sess.total % step == 0:
                    total = max(estimate, sess.total)
                    cb(sess.total, total, int(100 * sess.total / total))
                has_line = source.next_line()
            if cb:
                cb(sess.total, sess.total, 100)

        self.total = sess.total
        self._close_range(sess)
        if sess.need_global_sort:
            _logger.debug("%s: chromosomes are unsorted, sorting index", source.name)
            self.chroms.sort()
        if sess.unsorted_items and self._items:
            self._sort_items()
        self.kind.summarize(self._items)
        return sess.total, len(self._items)

    def _close_range(self, sess):
        end = len(self._items)
        if sess.open_id is None or end == sess.first_ind:
            return
        self.chroms.insert(sess.open_id, ChromRange.from_bounds(sess.first_ind, end))
        _logger.debug("%s: %d %ss at [%d, %d)", self.resolver.name_of(sess.open_id),
                      end - sess.first_ind, self.kind.name, sess.first_ind, end)

    def _take(self, source, sess, chrom_sizes):
        """Process the current record; False stops reading the source."""
        resolver, engine, kind = self.resolver, self.engine, self.kind
        sess.total += 1
        name = source.chrom_name
        new_chrom = False

        if name != sess.cur_name:
            sess.cur_name = name
            next_id = resolver.id_of(name)
            if next_id == resolver.unid:
                sess.cur_id = next_id
                return True
            if next_id != sess.open_id:
                # the mitochondrial block may stand anywhere
                is_mito = next_id == resolver.mito_id
                unordered = not is_mito and sess.last_id is not None and next_id < sess.last_id
                if not is_mito:
                    sess.last_id = next_id
                if sess.all_chroms:
                    self._close_range(sess)
                    if unordered:
                        sess.need_global_sort = True
                else:
                    if sess.target_done:
                        sess.total -= 1
                        return False
                    if unordered:
                        sess.need_global_sort = True
                        source.fatal(
                            "is unsorted: loading the single chromosome "
                            f"{resolver.name_of(resolver.stated_id)} is forbidden"
                        )
                    if next_id != resolver.stated_id:
                        sess.cur_id = next_id
                        return True
                    sess.target_done = True
                if next_id in self.chroms:
                    source.fatal(f"{resolver.name_of(next_id)} is split into separate blocks")
                sess.cur_id = sess.open_id = next_id
                sess.first_ind = len(self._items)
                sess.prev_start = 0
                sess.chrom_len = chrom_sizes.length_of(next_id) if chrom_sizes is not None else 0
                new_chrom = True
            else:
                sess.cur_id = next_id

        if not new_chrom and (
            sess.cur_id == resolver.unid
            or (not sess.all_chroms and sess.cur_id != resolver.stated_id)
        ):
            return True

        rgn = engine.init_region(source.start, source.end, sess.chrom_len)
        if rgn is None:
            return True

        prev = None
        if not new_chrom:
            if rgn.start < sess.prev_start and not sess.unsorted_items:
                sess.unsorted_items = True
                source.warn(f"unsorted {kind.name}s. Sorting may take time")
            if len(self._items) > sess.first_ind:
                prev = self._items[-1]
                # out-of-order candidates are checked pairwise after sorting
                if rgn.start < kind.start_of(prev):
                    prev = None
        if not kind.check(prev, rgn, engine):
            return True

        item = kind.make_item(rgn, source)
        if item is None:
            engine.treat_case(Case.FILTERED_BY_SCORE)
        else:
            self._items.append(item)
        sess.prev_start = rgn.start
        return True

    def _sort_items(self):
        """Sort every chromosome's items by start and recheck neighbours."""
        kind, engine = self.kind, self.engine
        engine.resorted = True
        removed = 0
        items = []
        for cid, rng in self.chroms.by_offset():
            chunk = self._items[rng.first:rng.end]
            starts = _numpy.fromiter((kind.start_of(it) for it in chunk),
                                     dtype=_numpy.int64, count=len(chunk))
            order = _numpy.argsort(starts, kind="stable")
            kept = [chunk[order[0]]]
            for i in order[1:]:
                item = chunk[i]
                if kind.check(kept[-1], kind.region_of(item), engine, recheck=True):
                    kept.append(item)
            rng.first -= removed
            rng.last = rng.first + len(kept) - 1
            removed += len(chunk) - len(kept)
            items.extend(kept)
            _logger.debug("%s: %d %ss removed after sorting",
                          self.resolver.name_of(cid), len(chunk) - len(kept), kind.name)
        self._items = items

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def chrom_ids(self):
        return list(self.chroms)

    def items_count(self, cid=None):
        """Count of items of chromosome *cid*, or of all items by default."""
        if cid is None:
            return len(self._items)
        rng = self.chroms.find(cid)
        return rng.count if rng is not None else 0

    def items(self, cid=None):
        """Items of chromosome *cid*, or of all chromosomes in id order."""
        if cid is not None:
            rng = self.chroms.find(cid)
            return [] if rng is None else self._items[rng.first:rng.end]
        out = []
        for _, rng in self.chroms.items():
            out.extend(self._items[rng.first:rng.end])
        return out

    def item(self, cid, index):
        rng = self.chroms.find(cid)
        if rng is None or not 0 <= index < rng.count:
            raise IndexError(f"No item {index} on chromosome {cid}")
        return self._items[rng.first + index]

    def regions(self, cid):
        return [self.kind.region_of(it) for it in self.items(cid)]

    def to_dataframe(self):
        """
        Items as a DataFrame.

        Returns
        -------
        DataFrame
            Columns ``chrom``, ``start``, ``end``, ``score``, chromosomes in
            id order and items in buffer order within each chromosome.
        """
        columns = ['chrom', 'start', 'end', 'score']
        if not self._items:
            return _empty_frame(columns)
        chroms, starts, ends, scores = [], [], [], []
        for cid, rng in self.chroms.items():
            name = self.resolver.name_of(cid)
            for item in self._items[rng.first:rng.end]:
                rgn = self.kind.region_of(item)
                chroms.append(name)
                starts.append(rgn.start)
                ends.append(rgn.end)
                scores.append(_numpy.nan if item.score is None else item.score)
        return _pandas.DataFrame({
            'chrom': chroms,
            'start': _numpy.asarray(starts, dtype=_numpy.int64),
            'end': _numpy.asarray(ends, dtype=_numpy.int64),
            'score': _numpy.asarray(scores, dtype=float),
        })

    def common_chroms(self, other, warn=False):
        """Mark chromosomes shared with *other* as treated in both; return their count."""
        return self.chroms.cross_reference(other.chroms, warn=warn, name_of=self.resolver.name_of)

    @property
    def max_score(self):
        return self.kind.max_score

    @property
    def read_len(self):
        return getattr(self.kind, 'read_len', None)

    @property
    def same_features_length(self):
        return getattr(self.kind, 'same_length', None)

    # ------------------------------------------------------------------
    # Features only
    # ------------------------------------------------------------------

    def _require_features(self, what):
        if not isinstance(self.kind, FeatureKind):
            raise TypeError(f"{what} applies to features only")

    def features_length(self, cid):
        """Total length of chromosome *cid*'s features."""
        return self.features_treat_length(cid)

    def features_treat_length(self, cid, multiplier=0, frag_len=0.0):
        """
        Treated length of chromosome *cid*'s features.

        Each feature is counted with ``2 * frag_len`` added, and the sum is
        doubled *multiplier* times (1 for numeric chromosomes counted on both
        strands, 0 otherwise).
        """
        self._require_features("features_treat_length")
        ext = int(2 * frag_len)
        return sum(f.length + ext for f in self.items(cid)) << multiplier

    def check_features_length(self, length, definition="length", sender=None):
        """Raise ValueError if any feature is shorter than *length*."""
        self._require_features("check_features_length")
        for feature in self._items:
            if feature.length < length:
                msg = f"Feature size {feature.length} is less than stated {definition} {length}"
                raise ValueError(f"{sender}: {msg}" if sender else msg)

    def scale_scores(self):
        """Scale feature scores to the part of the maximal score."""
        self._require_features("scale_scores")
        top = self.kind.max_score
        if not top:
            return
        for feature in self._items:
            feature.score /= top
        self.kind.summarize(self._items)

    def extend(self, ext_len, chrom_sizes=None, info=None):
        """Extend every feature and merge the resulting overlaps; see :func:`bed_extend`."""
        return bed_extend(self, ext_len, chrom_sizes=chrom_sizes, info=info)


# ----------------------------------------------------------------------
# Loaders
# ----------------------------------------------------------------------

def _resolver_for(chrom, resolver):
    if resolver is None:
        return ChromResolver(stated=chrom)
    if chrom is None:
        return resolver
    return resolver.with_stated(chrom)


def _load(kind, engine, source, chrom_sizes, chrom, resolver, abort_invalid, progress):
    bed = Bed(kind, _resolver_for(chrom, resolver), engine)
    if isinstance(source, TabReader):
        bed.load(source, chrom_sizes, abort_invalid, progress)
        return bed
    with TabReader.open(source, min_fields=kind.min_fields) as reader:
        bed.load(reader, chrom_sizes, abort_invalid, progress)
    return bed


def bed_features(source, chrom_sizes=None, chrom=None, min_length=0, actions=None,
                 alarm=None, info=None, abort_invalid=None, progress=None, resolver=None):
    """
    Load BED features.

    Features are kept per chromosome; duplicates are omitted and crossed or
    adjacent features are joined unless *actions* says otherwise.

    Parameters
    ----------
    source : str, Path or TabReader
        BED file (optionally gzip-compressed) or an open record source.
    chrom_sizes : ChromSizes, Mapping, DataFrame or path, optional
        Chromosome lengths used to detect positions beyond a chromosome.
    chrom : str, optional
        Load this chromosome only.
    min_length : int, default 0
        Shorter features fall into the too-short case.
    actions : Mapping[Case, Action], optional
        Per-case overrides of the default ambiguity actions.
    alarm : bool, optional
        Print a line alarm for each handled or omitted feature.
    info : Info or str, optional
        Verbosity of the printed summary.
    abort_invalid : bool, optional
        Raise on invalid files (default) or warn and return a bad instance.
    progress : bool, str or callable, optional
        Progress reporting.
    resolver : ChromResolver, optional
        Custom chromosome resolver.

    Returns
    -------
    Bed

    Raises
    ------
    FileNotFoundError
        If *source* is a missing path.
    BedError
        On invalid content (with file name and line number).

    See Also
    --------
    bed_reads : Load reads.
    bed_extend : Extend features and merge the overlaps.

    Examples
    --------
    >>> bed = bed_features_from_tuples(
    ...     [("chr1", 100, 200), ("chr1", 200, 300)], info="none")
    >>> [(f.start, f.end) for f in bed.items()]
    [(100, 300)]
    """
    kind = FeatureKind(min_length=min_length)
    engine = kind.make_engine(actions=actions, alarm=alarm, info=info)
    return _load(kind, engine, source, chrom_sizes, chrom, resolver, abort_invalid, progress)


def bed_reads(source, chrom_sizes=None, chrom=None, accept_duplicates=True, min_score=None,
              actions=None, alarm=None, info=None, abort_invalid=None, progress=None,
              resolver=None):
    """
    Load BED reads.

    Each read keeps its start position and score; the first read's length
    becomes the canonical read length and reads of another length are
    omitted.

    Parameters
    ----------
    source : str, Path or TabReader
        BED file of aligned reads or an open record source.
    chrom_sizes : ChromSizes, Mapping, DataFrame or path, optional
        Chromosome lengths used to detect positions beyond a chromosome.
    chrom : str, optional
        Load this chromosome only.
    accept_duplicates : bool, default True
        Keep duplicated reads; otherwise omit them silently.
    min_score : float, optional
        Reads with score not above this threshold are filtered out.
    actions, alarm, info, abort_invalid, progress, resolver
        As in :func:`bed_features`.

    Returns
    -------
    Bed

    See Also
    --------
    bed_features : Load features.
    """
    kind = ReadKind(min_score=min_score)
    engine = kind.make_engine(accept_duplicates=accept_duplicates, actions=actions,
                              alarm=alarm, info=info)
    return _load(kind, engine, source, chrom_sizes, chrom, resolver, abort_invalid, progress)


def bed_features_from_tuples(rows, **kwargs):
    """Load features from ``(chrom, start, end[, name, score])`` tuples."""
    return bed_features(TabReader.from_rows(rows), **kwargs)


def bed_reads_from_tuples(rows, **kwargs):
    """Load reads from ``(chrom, start, end[, name, score])`` tuples."""
    return bed_reads(TabReader.from_rows(rows), **kwargs)
