"""Line-oriented reader of tab-separated BED records."""

import gzip
import warnings
from pathlib import Path

from ._errors import BedError

_HEADER_PREFIXES = ("#", "track", "browser")


class TabReader:
    """
    Record source over BED-like lines.

    Blank lines, ``#`` comments and ``track``/``browser`` header lines are
    skipped. Fields are split on tabs, or on any whitespace when a line has
    no tab. The reader keeps the physical line number of the current record
    for error messages.

    Parameters
    ----------
    lines : iterable of str
        Raw text lines.
    name : str, default "<records>"
        Source name used in messages.
    min_fields : int, default 3
        Minimum number of fields per record.

    Examples
    --------
    >>> reader = TabReader(["chr1\\t10\\t20\\n", "chr1\\t30\\t40\\n"])
    >>> reader.first_line(), reader.chrom_name, reader.start, reader.end
    (1, 'chr1', 10, 20)
    """

    def __init__(self, lines, name="<records>", min_fields=3):
        self._lines = iter(lines)
        self._fh = None
        self._size = 0
        self._last_len = 1
        self.name = name
        self.min_fields = min_fields
        self.line_num = 0
        self.fields = None

    @classmethod
    def open(cls, path, min_fields=3):
        """Open a plain or gzip-compressed file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(path)
        if path.suffix == ".gz":
            fh = gzip.open(path, "rt", encoding="utf-8")
        else:
            fh = open(path, encoding="utf-8")
        reader = cls(fh, name=str(path), min_fields=min_fields)
        reader._fh = fh
        reader._size = path.stat().st_size
        return reader

    @classmethod
    def from_rows(cls, rows, name="<rows>", min_fields=3):
        """Reader over in-memory tuples ``(chrom, start, end, *extra)``."""
        return cls(("\t".join(str(v) for v in row) for row in rows),
                   name=name, min_fields=min_fields)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def _advance(self):
        for raw in self._lines:
            self.line_num += 1
            line = raw.rstrip("\r\n")
            if not line.strip() or line.startswith(_HEADER_PREFIXES):
                continue
            fields = line.split("\t") if "\t" in line else line.split()
            if len(fields) < self.min_fields:
                self.fields = fields
                self.fatal(
                    f"wrong number of fields: {len(fields)} instead of at least {self.min_fields}"
                )
            self.fields = fields
            self._last_len = len(raw) + (0 if raw.endswith("\n") else 1)
            return True
        self.fields = None
        return False

    def first_line(self):
        """
        Read the first record.

        Returns
        -------
        int
            Estimated number of records (for progress), 0 if there are none.
        """
        if not self._advance():
            return 0
        if self._size:
            return max(self._size // self._last_len, 1)
        return 1

    def next_line(self):
        """Read the next record; False at end of input."""
        return self._advance()

    @property
    def chrom_name(self):
        return self.fields[0]

    @property
    def start(self):
        return self.int_field(1)

    @property
    def end(self):
        return self.int_field(2)

    def field(self, index, default=None):
        if index >= len(self.fields):
            return default
        return self.fields[index]

    def int_field(self, index):
        value = self.field(index)
        try:
            return int(value)
        except (TypeError, ValueError):
            self.fatal(f"invalid position {value!r}")

    def float_field(self, index, default=None):
        value = self.field(index)
        if value is None or value in (".", ""):
            return default
        try:
            return float(value)
        except ValueError:
            self.fatal(f"invalid number {value!r} in field {index + 1}")

    def line_context(self):
        return f"{self.name}: line {self.line_num}"

    def fatal(self, message):
        raise BedError(message, self.name, self.line_num)

    def warn(self, message):
        warnings.warn(f"{self.line_context()}: {message}", stacklevel=3)
