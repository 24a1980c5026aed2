"""
pybedload - loading of genomic BED features and reads with ambiguity resolution
"""

__version__ = '0.1.0'

from ._errors import BedError, EmptyBedError, NoCommonChromosomesError
from ._region import Region
from ._shared import CONFIG
from .ambiguity import (
    Action,
    AmbiguityEngine,
    Case,
    Decision,
    Info,
    StreamSink,
    apply_action,
    default_actions,
)
from .bed import (
    Bed,
    bed_features,
    bed_features_from_tuples,
    bed_reads,
    bed_reads_from_tuples,
)
from .chroms import ChromIndex, ChromRange, ChromResolver, ChromSizes, bed_chrom_sizes
from .extend import bed_extend
from .items import Feature, FeatureKind, Read, ReadKind
from .reader import TabReader

__all__ = [
    # Configuration
    'CONFIG',

    # Loading
    'bed_features',
    'bed_features_from_tuples',
    'bed_reads',
    'bed_reads_from_tuples',
    'bed_extend',
    'bed_chrom_sizes',
    'Bed',
    'TabReader',

    # Chromosomes
    'ChromIndex',
    'ChromRange',
    'ChromResolver',
    'ChromSizes',

    # Items
    'Region',
    'Feature',
    'FeatureKind',
    'Read',
    'ReadKind',

    # Ambiguities
    'Action',
    'AmbiguityEngine',
    'Case',
    'Decision',
    'Info',
    'StreamSink',
    'apply_action',
    'default_actions',

    # Errors
    'BedError',
    'EmptyBedError',
    'NoCommonChromosomesError',
]
