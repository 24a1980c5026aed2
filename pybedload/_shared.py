"""
Shared configuration and utilities for pybedload modules.

Thread-safety note:
`CONFIG` is process-global and not synchronized for concurrent mutation.
Ingestion sessions themselves share no mutable state, so independent files
may be loaded from different threads as long as CONFIG is left alone.
"""

import sys as _sys
from contextlib import contextmanager

import numpy as _numpy
import pandas as _pandas

# Configuration dictionary (per-call keyword arguments take precedence)
CONFIG = {
    'alarm': False,             # Print a line alarm for handled/omitted items
    'info': 'stat',             # 'none', 'laconic', 'name', 'ext' or 'stat'
    'abort_invalid': True,      # Raise on invalid files instead of warning
    'progress': False,          # False, True, 'tqdm', 'text', or callable
    'progress_style': 'text',   # Default when progress=True
    'progress_step': 100000,    # Lines between progress callbacks
    'max_numeric_chrom': 99,    # Largest numeric chromosome recognized
}


def _config_value(name, value=None):
    """Return *value* unless it is None, otherwise the CONFIG default."""
    if value is None:
        return CONFIG.get(name)
    return value


def _make_progress_callback(progress, total=None, desc=None):
    if progress is None:
        progress = CONFIG.get('progress', False)
    if not progress:
        return None, None

    if callable(progress):
        return progress, None

    style = progress
    if style is True:
        style = CONFIG.get('progress_style', 'text')

    if style == 'tqdm':
        from tqdm.auto import tqdm
        pbar = tqdm(total=total, desc=desc)

        def cb(done, total, pct):
            if total is not None and pbar.total != total:
                pbar.total = total
            pbar.n = int(done)
            pbar.refresh()

        return cb, pbar.close

    if style == 'text':
        last = {'pct': -1}
        label = desc or "progress"

        def cb(done, total, pct):
            if pct != last['pct']:
                _sys.stderr.write(f"\r{label}: {pct}%")
                if pct >= 100:
                    _sys.stderr.write("\n")
                _sys.stderr.flush()
                last['pct'] = pct

        return cb, None

    raise ValueError(f"Unknown progress style: {style!r}")


@contextmanager
def _progress_context(progress=None, total=None, desc=None):
    cb, close = _make_progress_callback(progress, total=total, desc=desc)
    try:
        yield cb
    finally:
        if close:
            close()


def _percent(part, total):
    """Percentage of *part* in *total*, 0 when *total* is empty."""
    if not total:
        return 0.0
    return float(_numpy.round(100.0 * part / total, 2))


def _empty_frame(columns):
    return _pandas.DataFrame({col: [] for col in columns})
