"""Nearest-neighbour identity matching over a gallery of embeddings."""
from typing import List, Optional, Sequence

import numpy as np

from gymkiosk.core.config import settings
from gymkiosk.core.exceptions import InvalidEmbeddingError
from gymkiosk.core.logging import get_logger
from gymkiosk.domain.value_objects.recognition import GalleryEntry, MatchResult

logger = get_logger(__name__)


def euclidean_distance(a: np.ndarray, b: np.ndarray) -> float:
    """L2 distance between two embeddings of the same length."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise InvalidEmbeddingError(
            "Embedding shapes differ",
            details={"left": a.shape, "right": b.shape}
        )
    return float(np.linalg.norm(a - b))


def confidence_for(distance: float, threshold: float) -> float:
    """Map a distance onto [0, 1]: 1.0 at distance 0, 0.0 at the threshold."""
    if threshold <= 0:
        raise ValueError("threshold must be positive")
    return max(0.0, 1.0 - distance / threshold)


def _comparable_entries(
    query: np.ndarray,
    gallery: Sequence[GalleryEntry],
    strict: bool,
) -> List[GalleryEntry]:
    """Drop entries that cannot be compared with the query."""
    entries = []
    for entry in gallery:
        if entry.embedding is None or entry.status != "active":
            continue
        if entry.embedding.shape != query.shape:
            problem = "Gallery embedding length does not match query"
        elif not np.all(np.isfinite(entry.embedding)):
            problem = "Gallery embedding has non-finite values"
        else:
            entries.append(entry)
            continue

        if strict:
            raise InvalidEmbeddingError(
                problem,
                details={
                    "identity": entry.identity,
                    "expected": query.shape[0],
                    "actual": entry.embedding.shape,
                }
            )
        logger.warning(
            "Skipping malformed gallery embedding",
            identity=entry.identity,
            reason=problem,
        )
    return entries


def match_identity(
    query: np.ndarray,
    gallery: Sequence[GalleryEntry],
    threshold: Optional[float] = None,
    strict: Optional[bool] = None,
) -> Optional[MatchResult]:
    """Find the enrolled identity closest to ``query``.

    Distances are computed to every comparable gallery entry. The closest
    one is accepted only when its distance is strictly below ``threshold``.
    When several identities share the minimum distance, the lowest identity
    key wins.

    Args:
        query: Embedding to look up
        gallery: Snapshot of enrolled identities
        threshold: Maximum accepted L2 distance (defaults to MATCH_THRESHOLD)
        strict: Raise on malformed embeddings instead of skipping them
            (defaults to STRICT_EMBEDDING_CHECKS)

    Returns:
        MatchResult, or None when nothing is close enough

    Raises:
        ValueError: If threshold is not positive
        InvalidEmbeddingError: If strict and an embedding is malformed
    """
    threshold = settings.MATCH_THRESHOLD if threshold is None else threshold
    strict = settings.STRICT_EMBEDDING_CHECKS if strict is None else strict
    if threshold <= 0:
        raise ValueError("threshold must be positive")

    query = np.asarray(query, dtype=np.float64)
    if query.ndim != 1 or query.size == 0 or not np.all(np.isfinite(query)):
        if strict:
            raise InvalidEmbeddingError("Query embedding must be a finite, non-empty 1-D vector")
        logger.warning("Ignoring malformed query embedding", shape=query.shape)
        return None

    entries = _comparable_entries(query, gallery, strict)
    if not entries:
        return None

    matrix = np.stack([entry.embedding for entry in entries]).astype(np.float64)
    distances = np.linalg.norm(matrix - query, axis=1)

    best_distance = float(distances.min())
    tied = [entries[i].identity for i in np.flatnonzero(distances == best_distance)]
    best_identity = min(tied)

    if not best_distance < threshold:
        logger.debug("Closest identity beyond threshold", identity=best_identity,
                     distance=best_distance, threshold=threshold)
        return None

    return MatchResult(
        identity=best_identity,
        distance=best_distance,
        confidence=confidence_for(best_distance, threshold),
    )
