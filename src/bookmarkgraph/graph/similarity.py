"""Pairwise content similarity over bookmark tag sets.

Candidate pairs are enumerated up front, cut into fixed-size batches and
scored batch by batch. Batches only read the shared tag-set list and return
their own hits, so they can be mapped over a thread pool without locking;
results are concatenated in batch order, which keeps the output identical to
the sequential path.
"""

from __future__ import annotations

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from itertools import combinations, islice
from typing import Iterable, Iterator, Sequence

from .extract import jaccard_similarity


Pair = tuple[int, int]
Hit = tuple[int, int, float]


def candidate_pairs(
    tag_sets: Sequence[frozenset[str]],
    *,
    groups: Iterable[Sequence[int]] | None = None,
    threshold: float = 0.0,
) -> list[Pair]:
    """Return sorted (i, j) index pairs with i < j worth scoring.

    `groups` restricts pairing to indices sharing a group (e.g. a domain).
    With a positive threshold, only pairs sharing at least one tag are
    returned: a pair with no common tag scores 0.
    """
    if groups is None:
        groups = [range(len(tag_sets))]

    pairs: set[Pair] = set()
    for group in groups:
        members = sorted(set(group))
        if threshold <= 0.0:
            pairs.update(combinations(members, 2))
            continue

        by_tag: dict[str, list[int]] = defaultdict(list)
        for idx in members:
            for tag in tag_sets[idx]:
                by_tag[tag].append(idx)
        for holders in by_tag.values():
            pairs.update(combinations(holders, 2))

    return sorted(pairs)


def batched(pairs: Iterable[Pair], size: int) -> Iterator[list[Pair]]:
    it = iter(pairs)
    while True:
        batch = list(islice(it, size))
        if not batch:
            return
        yield batch


def score_batch(tag_sets: Sequence[frozenset[str]], batch: Sequence[Pair], *, threshold: float) -> list[Hit]:
    hits: list[Hit] = []
    for i, j in batch:
        score = jaccard_similarity(tag_sets[i], tag_sets[j])
        if score >= threshold:
            hits.append((i, j, score))
    return hits


def similar_pairs(
    tag_sets: Sequence[frozenset[str]],
    *,
    threshold: float,
    groups: Iterable[Sequence[int]] | None = None,
    workers: int = 1,
    batch_size: int = 2048,
) -> list[Hit]:
    """Score all candidate pairs and return those at or above `threshold`."""
    pairs = candidate_pairs(tag_sets, groups=groups, threshold=threshold)
    if not pairs:
        return []

    score = partial(score_batch, tag_sets, threshold=threshold)
    batches = batched(pairs, batch_size)

    if workers <= 1 or len(pairs) <= batch_size:
        results = map(score, batches)
        return [hit for chunk in results for hit in chunk]

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(score, batches))
    return [hit for chunk in results for hit in chunk]
