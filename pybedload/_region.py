"""Half-open genomic region."""

from dataclasses import dataclass


@dataclass
class Region:
    """Half-open ``[start, end)`` span on one chromosome."""

    start: int
    end: int

    @property
    def length(self):
        return self.end - self.start

    def adjoins(self, other):
        """True if *other* starts exactly where this region ends."""
        return self.end == other.start

    def covers(self, other):
        """True if either region fully contains the other."""
        return (
            (self.start <= other.start and other.end <= self.end)
            or (other.start <= self.start and self.end <= other.end)
        )

    def crosses(self, other):
        return self.start < other.end and other.start < self.end

    def extend(self, left, right, chrom_len=0):
        """Widen by *left*/*right* (negative values shrink), clamped to the chromosome."""
        self.start = max(self.start - left, 0)
        self.end += right
        if chrom_len > 0 and self.end > chrom_len:
            self.end = chrom_len
