"""Tests for the tab-separated record reader."""

import pytest

from pybedload import BedError, TabReader


def _records(reader):
    out = []
    has_line = reader.first_line() > 0
    while has_line:
        out.append((reader.line_num, reader.chrom_name, reader.start, reader.end))
        has_line = reader.next_line()
    return out


class TestTabReader:
    """Test record iteration and field parsing."""

    def test_skips_headers_comments_and_blank_lines(self):
        reader = TabReader([
            "track name=peaks\n",
            "browser position chr1:1-100\n",
            "# comment\n",
            "\n",
            "chr1\t10\t20\n",
            "chr1\t30\t40\n",
        ])
        assert _records(reader) == [(5, "chr1", 10, 20), (6, "chr1", 30, 40)]

    def test_whitespace_separated(self):
        reader = TabReader(["chr2 5  15 name 3.5\n"])
        assert reader.first_line() == 1
        assert reader.chrom_name == "chr2"
        assert (reader.start, reader.end) == (5, 15)
        assert reader.float_field(4) == 3.5

    def test_empty_input(self):
        assert TabReader(["# only a comment\n"]).first_line() == 0

    def test_too_few_fields(self):
        reader = TabReader(["chr1\t1\t2\n", "chr1\t5\n"], name="x.bed")
        reader.first_line()
        with pytest.raises(BedError, match="x.bed: line 2: wrong number of fields") as exc:
            reader.next_line()
        assert exc.value.line == 2
        assert exc.value.source == "x.bed"

    def test_invalid_position(self):
        reader = TabReader(["chr1\tten\t20\n"])
        reader.first_line()
        with pytest.raises(BedError, match="invalid position 'ten'"):
            reader.start

    def test_float_field_defaults(self):
        reader = TabReader(["chr1\t1\t2\tname\t.\n"])
        reader.first_line()
        assert reader.float_field(4, 1.0) == 1.0
        assert reader.float_field(5, 2.0) == 2.0
        assert reader.field(3) == "name"

    def test_invalid_score(self):
        reader = TabReader(["chr1\t1\t2\tname\thigh\n"])
        reader.first_line()
        with pytest.raises(BedError, match="invalid number 'high' in field 5"):
            reader.float_field(4)

    def test_from_rows(self):
        reader = TabReader.from_rows([("chr1", 1, 2), ("chrX", 3, 4, "n", 7)])
        assert _records(reader) == [(1, "chr1", 1, 2), (2, "chrX", 3, 4)]
        assert reader.name == "<rows>"

    def test_line_context(self):
        reader = TabReader(["chr1\t1\t2\n"], name="a.bed")
        reader.first_line()
        assert reader.line_context() == "a.bed: line 1"

    def test_warn_carries_context(self):
        reader = TabReader(["chr1\t1\t2\n"], name="a.bed")
        reader.first_line()
        with pytest.warns(UserWarning, match="a.bed: line 1: odd"):
            reader.warn("odd")


class TestTabReaderFiles:
    """Test reading plain and compressed files."""

    def test_open_plain(self, write_bed):
        path = write_bed(["chr1\t10\t20", "chr1\t30\t40"])
        with TabReader.open(path) as reader:
            assert reader.name == str(path)
            assert _records(reader) == [(1, "chr1", 10, 20), (2, "chr1", 30, 40)]

    def test_open_gzip(self, write_bed):
        path = write_bed(["chr1\t10\t20"], name="test.bed.gz")
        with TabReader.open(path) as reader:
            reader.first_line()
            assert (reader.chrom_name, reader.start, reader.end) == ("chr1", 10, 20)

    def test_open_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TabReader.open(tmp_path / "missing.bed")
