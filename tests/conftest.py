import gzip

import pytest

from pybedload import CONFIG


@pytest.fixture(autouse=True)
def _quiet_config():
    saved = dict(CONFIG)
    CONFIG['info'] = 'none'
    CONFIG['alarm'] = False
    yield
    CONFIG.clear()
    CONFIG.update(saved)


@pytest.fixture
def write_bed(tmp_path):
    """Write BED lines to a file under tmp_path and return its path."""

    def _write(lines, name="test.bed"):
        path = tmp_path / name
        text = "".join(line + "\n" for line in lines)
        if name.endswith(".gz"):
            with gzip.open(path, "wt", encoding="utf-8") as fh:
                fh.write(text)
        else:
            path.write_text(text, encoding="utf-8")
        return path

    return _write


def spans(bed, cid=None):
    return [(f.start, f.end) for f in bed.items(cid)]
