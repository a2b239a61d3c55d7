#!/usr/bin/env python
# coding: utf-8

"""
Sorted Site Merge
Pairs sites of two chromosome-sorted collections sharing chrom and start
"""

from typing import Iterable, Iterator, Sequence, Tuple

from methdiff_engine.core.sites import Site, same_position, site_precedes


def merge_sites(
    sites_a: Iterable[Site], sites_b: Sequence[Site]
) -> Iterator[Tuple[Site, Site]]:
    """
    Lazily yield ``(a, b)`` for each site of A with a counterpart in B.

    Both inputs must be sorted by (chrom, start); this is not checked. A
    single cursor into B only moves forward, so the merge is one pass over
    each side. For each ``a`` only the first B site not preceding it is
    considered, so duplicate positions further along B are never matched.

    Parameters
    ----------
    sites_a : Iterable[Site]
        Primary collection, drives output order
    sites_b : Sequence[Site]
        Lookup collection (random access)

    Yields
    ------
    Tuple[Site, Site]
        Matched pair with identical chromosome and start
    """
    n_b = len(sites_b)
    j = 0
    for a in sites_a:
        while j < n_b and site_precedes(sites_b[j], a):
            j += 1
        if j < n_b and same_position(a, sites_b[j]):
            yield a, sites_b[j]
