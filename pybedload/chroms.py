"""Chromosome identifiers, per-chromosome item ranges and chromosome sizes."""

import copy
import re
import warnings
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from ._errors import NoCommonChromosomesError
from ._shared import _config_value, _pandas

_CHR_PREFIX_RE = re.compile(r"^chr", re.IGNORECASE)

DEFAULT_NAMED_CHROMS = ("X", "Y", "M")


def _short_chrom_name(name):
    return _CHR_PREFIX_RE.sub("", str(name).strip(), count=1)


class ChromResolver:
    """
    Map chromosome names to ordered integer identifiers.

    Numeric chromosomes come first in ascending order, then the named
    chromosomes in the order given by *named*. Any other name (``chr1_random``,
    ``chrUn_xxx``, scaffolds) maps to the sentinel :attr:`unid`, which is the
    largest identifier.

    Parameters
    ----------
    stated : str or int, optional
        The single chromosome requested by the caller. ``None`` means all
        chromosomes.
    named : sequence of str, default ("X", "Y", "M")
        Non-numeric chromosomes recognized after the numeric ones.
    max_numeric : int, optional
        Largest numeric chromosome recognized. Defaults to
        ``CONFIG['max_numeric_chrom']``.

    Examples
    --------
    >>> resolver = ChromResolver()
    >>> resolver.id_of("chr2"), resolver.name_of(1)
    (1, 'chr2')
    >>> resolver.id_of("chr2_random") == resolver.unid
    True
    """

    def __init__(self, stated=None, named=DEFAULT_NAMED_CHROMS, max_numeric=None):
        self.max_numeric = int(_config_value('max_numeric_chrom', max_numeric))
        if self.max_numeric < 0:
            raise ValueError("max_numeric must be non-negative")
        self.named = tuple(str(n).upper() for n in named)
        self.unid = self.max_numeric + len(self.named)
        self.mito_id = self.id_of("M") if "M" in self.named else None
        self.stated_id = None if stated is None else self._known_id(stated)

    def _known_id(self, chrom):
        cid = chrom if isinstance(chrom, int) else self.id_of(chrom)
        if not 0 <= cid < self.unid:
            raise ValueError(f"Unknown chromosome: {chrom!r}")
        return cid

    def with_stated(self, stated):
        """Copy of this resolver restricted to the single chromosome *stated*."""
        clone = copy.copy(self)
        clone.stated_id = self._known_id(stated)
        return clone

    @property
    def stated_all(self):
        return self.stated_id is None

    def id_of(self, name):
        short = _short_chrom_name(name)
        if short.isascii() and short.isdigit():
            num = int(short)
            if 1 <= num <= self.max_numeric:
                return num - 1
            return self.unid
        upper = short.upper()
        if upper == "MT":
            upper = "M"
        if upper in self.named:
            return self.max_numeric + self.named.index(upper)
        return self.unid

    def short_name(self, cid):
        if 0 <= cid < self.max_numeric:
            return str(cid + 1)
        if self.max_numeric <= cid < self.unid:
            return self.named[cid - self.max_numeric]
        raise ValueError(f"Invalid chromosome id: {cid}")

    def name_of(self, cid):
        return "chr" + self.short_name(cid)


@dataclass
class ChromRange:
    """Range of one chromosome's items in the shared item buffer.

    ``last`` is inclusive. ``treated`` is only meaningful after
    :meth:`ChromIndex.cross_reference`.
    """

    first: int
    last: int
    treated: bool = True

    @classmethod
    def from_bounds(cls, first, end):
        """Build a range from the half-open buffer slice ``[first, end)``."""
        return cls(first, end - 1)

    @property
    def count(self):
        return self.last - self.first + 1

    @property
    def end(self):
        return self.last + 1


class ChromIndex:
    """Chromosome id to :class:`ChromRange` mapping.

    Iteration is always in ascending id order, computed from a sorted
    snapshot. Steps that compact the item buffer must walk
    :meth:`by_offset` instead, since ranges may be stored out of id order.
    """

    def __init__(self):
        self._chroms = {}

    def __len__(self):
        return len(self._chroms)

    def __contains__(self, cid):
        return cid in self._chroms

    def __iter__(self):
        return iter(sorted(self._chroms))

    def __repr__(self):
        body = ", ".join(f"{cid}: [{r.first}, {r.last}]" for cid, r in self.items())
        return f"ChromIndex({{{body}}})"

    def insert(self, cid, rng):
        self._chroms[cid] = rng

    def find(self, cid):
        return self._chroms.get(cid)

    def remove(self, cid):
        del self._chroms[cid]

    def items(self):
        return sorted(self._chroms.items())

    def by_offset(self):
        return sorted(self._chroms.items(), key=lambda kv: kv[1].first)

    def sort(self):
        """Store the records in ascending id order."""
        self._chroms = dict(sorted(self._chroms.items()))

    def clear(self):
        self._chroms.clear()

    def cross_reference(self, other, warn=False, name_of=str):
        """
        Mark chromosomes common to this index and *other* as treated.

        Every record here gets ``treated = other contains it``; every record
        of *other* missing here gets ``treated = False``.

        Parameters
        ----------
        other : ChromIndex
            Independently built index over the same id space.
        warn : bool, default False
            Emit a warning for each chromosome present in one index only.
        name_of : callable, default str
            Formats a chromosome id for the warnings.

        Returns
        -------
        int
            Number of common chromosomes.

        Raises
        ------
        NoCommonChromosomesError
            If the indices share no chromosome.
        """
        common = 0
        for cid, rng in self._chroms.items():
            rng.treated = cid in other
            if rng.treated:
                common += 1
            elif warn:
                warnings.warn(f"{name_of(cid)} is absent in second file", stacklevel=2)
        for cid, rng in other._chroms.items():
            if cid not in self:
                rng.treated = False
                if warn:
                    warnings.warn(f"{name_of(cid)} is absent in first file", stacklevel=2)
        if not common:
            raise NoCommonChromosomesError("no common chromosomes")
        return common


class ChromSizes:
    """Chromosome length lookup keyed by chromosome id."""

    def __init__(self, sizes=None, resolver=None):
        self.resolver = resolver or ChromResolver()
        self._sizes = dict(sizes or {})

    def __len__(self):
        return len(self._sizes)

    def __contains__(self, cid):
        return cid in self._sizes

    def __repr__(self):
        return f"ChromSizes({len(self)} chromosomes, {self.genome_size()} bp)"

    @classmethod
    def from_dict(cls, mapping, resolver=None):
        resolver = resolver or ChromResolver()
        sizes = {}
        for name, size in mapping.items():
            size = int(size)
            if size < 0:
                raise ValueError(f"Size of chromosome {name} must be non-negative")
            cid = resolver.id_of(name)
            if cid != resolver.unid:
                sizes[cid] = size
        return cls(sizes, resolver)

    @classmethod
    def from_file(cls, path, resolver=None):
        """Read a two-column ``name<TAB>length`` chromosome sizes file.

        Rows naming unrecognized chromosomes are skipped.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(path)
        rows = {}
        with open(path, encoding="utf-8") as fh:
            for line_num, line in enumerate(fh, start=1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                parts = line.split()
                if len(parts) != 2:
                    raise ValueError(
                        f"Invalid chrom sizes format at line {line_num}: expected 2 columns"
                    )
                try:
                    size = int(parts[1])
                except ValueError as exc:
                    raise ValueError(
                        f"Invalid chrom sizes format at line {line_num}: invalid size"
                    ) from exc
                if size < 0:
                    raise ValueError(
                        f"Invalid chrom sizes format at line {line_num}: size must be non-negative"
                    )
                rows[parts[0]] = size
        if not rows:
            raise ValueError(f"{path} is empty")
        return cls.from_dict(rows, resolver)

    def length_of(self, cid):
        """Length of chromosome *cid*, or 0 when unknown."""
        return self._sizes.get(cid, 0)

    def genome_size(self):
        return sum(self._sizes.values())

    def to_dataframe(self):
        ids = sorted(self._sizes)
        return _pandas.DataFrame({
            'chrom': [self.resolver.name_of(cid) for cid in ids],
            'start': [0] * len(ids),
            'end': [self._sizes[cid] for cid in ids],
        })


def bed_chrom_sizes(source, resolver=None):
    """
    Build a chromosome length table.

    Parameters
    ----------
    source : str, Path, Mapping, DataFrame or ChromSizes
        A chrom sizes file, a ``{name: length}`` mapping, or a DataFrame with
        ``chrom`` and ``end`` columns (whole-chromosome intervals).
    resolver : ChromResolver, optional
        Resolver used to map names to ids.

    Returns
    -------
    ChromSizes

    Examples
    --------
    >>> sizes = bed_chrom_sizes({"chr1": 1000, "chr2": 500})
    >>> sizes.genome_size()
    1500
    """
    if isinstance(source, ChromSizes):
        return source
    if isinstance(source, _pandas.DataFrame):
        if "chrom" not in source.columns or "end" not in source.columns:
            raise ValueError("chrom sizes DataFrame must have 'chrom' and 'end' columns")
        mapping = dict(zip(source["chrom"].astype(str), source["end"].astype(int), strict=False))
        return ChromSizes.from_dict(mapping, resolver)
    if isinstance(source, Mapping):
        return ChromSizes.from_dict(source, resolver)
    if isinstance(source, (str, Path)):
        return ChromSizes.from_file(source, resolver)
    raise TypeError(f"Unsupported chrom sizes source: {type(source).__name__}")
