"""Extension of loaded features with merging of the resulting overlaps."""

import logging as _logging

from ._region import Region
from .ambiguity import Case, Decision
from .chroms import bed_chrom_sizes
from .items import FeatureKind

_logger = _logging.getLogger(__name__)


def _split_ext(ext_len):
    if isinstance(ext_len, (tuple, list)):
        if len(ext_len) != 2:
            raise ValueError("ext_len must be an int or a (left, right) pair")
        return int(ext_len[0]), int(ext_len[1])
    return int(ext_len), int(ext_len)


def _absorb(prev, feature, engine):
    """Resolve *feature* against the last retained *prev*; True drops *feature*."""
    if feature.start > prev.end:
        return False
    case = Case.CROSSED if feature.start < prev.end else Case.ADJACENT
    decision = engine.treat_case(case)
    if decision == Decision.MERGE:
        prev.end = max(prev.end, feature.end)
        return True
    return decision == Decision.REJECT


def bed_extend(bed, ext_len, chrom_sizes=None, info=None):
    """
    Extend every feature and resolve the overlaps this creates.

    Each feature is widened by *ext_len* on both sides (or by ``left`` and
    ``right`` when a pair is given), clamped to 0 and to the chromosome
    length when known. Features that now cross or touch their predecessor
    are resolved with the default feature actions (joined). Features lying
    wholly past the chromosome end are dropped as exceeding.

    Parameters
    ----------
    bed : Bed
        Loaded features; modified in place.
    ext_len : int or tuple of int
        Symmetric extension, or a ``(left, right)`` pair. Negative values
        shrink the features.
    chrom_sizes : ChromSizes, Mapping, DataFrame or path, optional
        Chromosome lengths used to clamp the feature ends.
    info : Info or str, optional
        Verbosity of the "after extension" statistics.

    Returns
    -------
    bool
        False if the extension is zero and nothing was done.

    Raises
    ------
    TypeError
        If *bed* holds reads.
    ValueError
        If a negative extension would shrink some feature to nothing.

    Examples
    --------
    >>> from pybedload import bed_features_from_tuples
    >>> bed = bed_features_from_tuples(
    ...     [("chr1", 100, 200), ("chr1", 210, 300)], info="none")
    >>> bed_extend(bed, 10, info="none")
    True
    >>> [(f.start, f.end) for f in bed.items()]
    [(90, 310)]
    """
    if not isinstance(bed.kind, FeatureKind):
        raise TypeError("only features can be extended")
    left, right = _split_ext(ext_len)
    if not left and not right:
        return False
    shrink = -(min(left, 0) + min(right, 0))
    if shrink:
        bed.check_features_length(shrink + 1, "length for extension")
    sizes = bed_chrom_sizes(chrom_sizes, bed.resolver) if chrom_sizes is not None else None
    engine = bed.kind.make_engine(alarm=False, info=info)

    before = len(bed._items)
    items = []
    for cid, rng in bed.chroms.by_offset():
        chrom_len = sizes.length_of(cid) if sizes is not None else 0
        chunk = bed._items[rng.first:rng.end]
        kept = []
        for feature in chunk:
            rgn = Region(feature.start, feature.end)
            rgn.extend(left, right, chrom_len)
            if rgn.start >= rgn.end:
                # lies wholly past the chromosome end
                engine.treat_case(Case.EXCEEDS_LENGTH)
                continue
            feature.start, feature.end = rgn.start, rgn.end
            if kept and _absorb(kept[-1], feature, engine):
                continue
            kept.append(feature)
        if not kept:
            bed.chroms.remove(cid)
            continue
        rng.first = len(items)
        rng.last = rng.first + len(kept) - 1
        items.extend(kept)
    bed._items = items
    bed.kind.summarize(items)

    after = len(items)
    _logger.debug("extended by (%d, %d): %d of %d features left", left, right, after, before)
    engine.report(before, after, title="after extension")
    return True
