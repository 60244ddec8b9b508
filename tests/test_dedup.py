"""Tests for listing de-duplication."""

from homefinder.collectors.dedup import dedupe, identity_key, is_more_complete


class TestIdentityKey:
    """Test the identity key."""

    def test_url_key(self, make_listing):
        listing = make_listing("a", source="zoopla", url="https://z.test/1")
        assert identity_key(listing) == "zoopla-https://z.test/1"

    def test_composite_key_without_url(self, make_listing):
        listing = make_listing("a", source="openrent", url="", title="Flat", price=1200, location="Bow")
        assert identity_key(listing) == "openrent-Flat-1200-Bow"

    def test_same_url_different_source(self, make_listing):
        a = make_listing("a", source="rightmove", url="https://x.test/1")
        b = make_listing("b", source="zoopla", url="https://x.test/1")
        assert identity_key(a) != identity_key(b)


class TestCompleteness:
    """Test the completeness rule."""

    def test_description_wins(self, make_listing):
        bare = make_listing("a")
        described = make_listing("a", description="Lovely")
        assert is_more_complete(described, bare)
        assert not is_more_complete(bare, described)

    def test_more_images_wins(self, make_listing):
        assert is_more_complete(
            make_listing("a", images=["1.jpg", "2.jpg"]),
            make_listing("a", images=["1.jpg"]),
        )

    def test_more_features_wins(self, make_listing):
        assert is_more_complete(
            make_listing("a", features=["Garden"]),
            make_listing("a"),
        )

    def test_any_single_condition_is_enough(self, make_listing):
        """More images wins even when the existing one has the description."""
        existing = make_listing("a", description="Lovely", images=["1.jpg"])
        candidate = make_listing("a", images=["1.jpg", "2.jpg"])
        assert is_more_complete(candidate, existing)

    def test_equal_is_not_more_complete(self, make_listing):
        assert not is_more_complete(make_listing("a"), make_listing("a"))


class TestDedupe:
    """Test dedupe over merged listings."""

    def test_keeps_first_of_equals(self, make_listing):
        first = make_listing("a", title="First")
        second = make_listing("a", title="Second")

        result = dedupe([first, second])

        assert len(result) == 1
        assert result[0].title == "First"

    def test_prefers_more_complete_either_order(self, make_listing):
        """[A, B] and [B, A] both yield B when only B has a description."""
        a = make_listing("a")
        b = make_listing("a", description="Has details")

        assert dedupe([a, b]) == [b]
        assert dedupe([b, a]) == [b]

    def test_replacement_keeps_first_position(self, make_listing):
        a1 = make_listing("a")
        other = make_listing("b")
        a2 = make_listing("a", features=["Parking"])

        result = dedupe([a1, other, a2])

        assert [l.id for l in result] == ["a", "b"]
        assert result[0].features == ["Parking"]

    def test_idempotent(self, make_listing):
        listings = [
            make_listing("a"),
            make_listing("b"),
            make_listing("a", description="More"),
            make_listing("c", url=""),
            make_listing("c", url=""),
        ]

        once = dedupe(listings)
        assert dedupe(once) == once
        assert len(once) == 3

    def test_empty(self):
        assert dedupe([]) == []
