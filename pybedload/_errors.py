"""Exceptions raised while reading and validating BED files."""


class BedError(ValueError):
    """Fatal condition that aborts the ingestion of a whole file.

    Attributes
    ----------
    source : str or None
        Name of the file (or record source) being read.
    line : int or None
        1-based physical line number of the offending record.
    """

    def __init__(self, message, source=None, line=None):
        self.message = message
        self.source = source
        self.line = line
        super().__init__(self._format())

    def _format(self):
        if self.source is None:
            return self.message
        if self.line is None:
            return f"{self.source}: {self.message}"
        return f"{self.source}: line {self.line}: {self.message}"


class EmptyBedError(BedError):
    """Raised when a successful ingestion accepted no items."""


class NoCommonChromosomesError(BedError):
    """Raised when two chromosome indices share no chromosome."""
