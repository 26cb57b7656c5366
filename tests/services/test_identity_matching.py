"""Tests for identity matching and gallery building."""
import numpy as np
import pytest

from gymkiosk.core.exceptions import InvalidEmbeddingError
from gymkiosk.domain.entities.member import Member
from gymkiosk.domain.value_objects.recognition import GalleryEntry
from gymkiosk.services.gallery import build_gallery
from gymkiosk.services.identity_matching import confidence_for, euclidean_distance, match_identity
from tests.fakes import offset, unit


def entry(identity: str, embedding, status: str = "active") -> GalleryEntry:
    return GalleryEntry(identity=identity, embedding=embedding, status=status)


class TestDistance:
    """Distance and confidence helpers."""

    def test_distance_to_self_is_zero(self):
        """Should report zero distance between an embedding and itself."""
        rng = np.random.default_rng(7)
        for _ in range(5):
            e = rng.normal(size=128).astype(np.float32)
            assert euclidean_distance(e, e) == 0.0

    def test_distance_shape_mismatch(self):
        """Should refuse to compare embeddings of different length."""
        with pytest.raises(InvalidEmbeddingError):
            euclidean_distance(np.zeros(4), np.zeros(5))

    def test_confidence_scale(self):
        """Should map distance 0 to 1.0 and the threshold to 0.0, clamped below."""
        assert confidence_for(0.0, 0.5) == 1.0
        assert confidence_for(0.5, 0.5) == 0.0
        assert confidence_for(0.75, 0.5) == 0.0
        assert confidence_for(0.3, 0.5) == pytest.approx(0.4)


class TestMatchIdentity:
    """Nearest-neighbour matching against a gallery."""

    def test_exact_match_has_full_confidence(self):
        """Should return the identity with confidence 1.0 for an exact match."""
        e = unit(0)
        for threshold in (0.01, 0.5, 2.0):
            result = match_identity(e, [entry("A", e)], threshold)
            assert result is not None
            assert result.identity == "A"
            assert result.distance == 0.0
            assert result.confidence == 1.0

    def test_empty_gallery(self):
        """Should never match against an empty gallery."""
        for threshold in (0.1, 0.5, 10.0):
            assert match_identity(unit(0), [], threshold) is None

    def test_within_threshold(self):
        """Should accept a distance of 0.3 at threshold 0.5 with confidence 0.4."""
        e = unit(0)
        result = match_identity(offset(e, 0.3), [entry("A", e)], 0.5)
        assert result is not None
        assert result.identity == "A"
        assert result.distance == pytest.approx(0.3, abs=1e-6)
        assert result.confidence == pytest.approx(0.4, abs=1e-5)

    def test_beyond_threshold(self):
        """Should reject a distance of 0.6 at threshold 0.5."""
        e = unit(0)
        assert match_identity(offset(e, 0.6), [entry("A", e)], 0.5) is None

    def test_threshold_is_exclusive(self):
        """Should reject a distance equal to the threshold."""
        e = np.zeros(4, dtype=np.float32)
        query = np.array([0.0, 0.0, 0.0, 0.5], dtype=np.float32)
        assert match_identity(query, [entry("A", e)], 0.5) is None

    def test_picks_closest_identity(self):
        """Should return the nearest of several enrolled identities."""
        gallery = [entry("A", unit(0)), entry("B", unit(1)), entry("C", unit(2))]
        result = match_identity(offset(unit(1), 0.1), gallery, 0.5)
        assert result is not None
        assert result.identity == "B"

    def test_threshold_monotonicity(self):
        """Should accept at a higher threshold everything accepted at a lower one."""
        rng = np.random.default_rng(42)
        gallery = [entry(f"m{i}", rng.normal(size=16)) for i in range(20)]
        queries = [rng.normal(size=16) for _ in range(30)]
        thresholds = [0.5, 1.0, 2.0, 4.0, 6.0, 8.0]

        for query in queries:
            accepted = [match_identity(query, gallery, t) is not None for t in thresholds]
            # Once accepted, every larger threshold accepts too
            first = accepted.index(True) if True in accepted else len(accepted)
            assert all(accepted[first:])
            results = [match_identity(query, gallery, t) for t in thresholds[first:]]
            assert len({r.identity for r in results}) <= 1

    def test_suspended_member_never_matches(self):
        """Should not match a suspended member even on an exact embedding."""
        members = [
            Member(id="A", name="Active", face_embedding=unit(0).tolist()),
            Member(id="B", name="Suspended", status="suspended", face_embedding=unit(1).tolist()),
        ]
        assert match_identity(unit(1), build_gallery(members), 0.5) is None
        # The matcher also guards against unfiltered entries
        assert match_identity(unit(1), [entry("B", unit(1), status="suspended")], 0.5) is None

    def test_entries_without_embedding_are_skipped(self):
        """Should ignore gallery entries that have no embedding."""
        gallery = [entry("A", None), entry("B", unit(0))]
        result = match_identity(unit(0), gallery, 0.5)
        assert result is not None
        assert result.identity == "B"

    def test_malformed_embedding_skipped(self):
        """Should skip entries of the wrong length outside strict mode."""
        gallery = [entry("bad", np.ones(3)), entry("good", unit(0))]
        result = match_identity(unit(0), gallery, 0.5, strict=False)
        assert result is not None
        assert result.identity == "good"

    def test_malformed_embedding_strict(self):
        """Should fail loudly on entries of the wrong length in strict mode."""
        gallery = [entry("bad", np.ones(3)), entry("good", unit(0))]
        with pytest.raises(InvalidEmbeddingError):
            match_identity(unit(0), gallery, 0.5, strict=True)

    def test_non_finite_embedding_skipped(self):
        """Should skip NaN gallery entries and still match the others."""
        gallery = [entry("bad", np.full(8, np.nan)), entry("good", unit(0))]
        result = match_identity(unit(0), gallery, 0.5, strict=False)
        assert result is not None
        assert result.identity == "good"

    def test_non_finite_embedding_strict(self):
        """Should fail loudly on NaN gallery entries in strict mode."""
        gallery = [entry("bad", np.full(8, np.nan)), entry("good", unit(0))]
        with pytest.raises(InvalidEmbeddingError):
            match_identity(unit(0), gallery, 0.5, strict=True)

    def test_non_finite_query(self):
        """Should treat a query containing NaN or inf as matching nobody."""
        query = np.array(unit(0))
        query[1] = np.inf
        assert match_identity(query, [entry("A", unit(0))], 0.5, strict=False) is None
        with pytest.raises(InvalidEmbeddingError):
            match_identity(query, [entry("A", unit(0))], 0.5, strict=True)

    def test_tie_prefers_lowest_identity(self):
        """Should break ties between equidistant identities by lowest key."""
        query = np.array([0.0, 0.0], dtype=np.float32)
        gallery = [
            entry("zed", np.array([0.1, 0.0])),
            entry("amy", np.array([0.0, 0.1])),
        ]
        result = match_identity(query, gallery, 0.5)
        assert result is not None
        assert result.identity == "amy"

    def test_invalid_threshold(self):
        """Should reject non-positive thresholds."""
        with pytest.raises(ValueError):
            match_identity(unit(0), [entry("A", unit(0))], 0.0)


class TestBuildGallery:
    """Gallery snapshots from ledger members."""

    def test_only_active_enrolled_members(self):
        """Should keep active members with an embedding, in ledger order."""
        members = [
            Member(id="1", name="a", face_embedding=unit(0).tolist()),
            Member(id="2", name="b"),
            Member(id="3", name="c", status="expired", face_embedding=unit(1).tolist()),
            Member(id="4", name="d", face_embedding=unit(2).tolist()),
        ]
        gallery = build_gallery(members)
        assert [e.identity for e in gallery] == ["1", "4"]
        assert gallery[1].embedding.dtype == np.float32
