"""Test containment sets"""

from spot_remote.state.containment import ContainmentSet, Membership


class TestContainmentSet:
    """Test ContainmentSet"""

    def test_unknown_until_queried(self):
        liked = ContainmentSet("liked tracks")

        assert liked.contains("track_1") is False
        assert liked.lookup("track_1") is Membership.UNKNOWN

    def test_apply_records_answers(self):
        liked = ContainmentSet("liked tracks")

        liked.apply(["a", "b"], [True, False])

        assert liked.contains("a")
        assert not liked.contains("b")
        assert liked.lookup("a") is Membership.CONTAINED
        assert liked.lookup("b") is Membership.NOT_CONTAINED
        assert len(liked) == 1

    def test_later_false_answer_flips_membership(self):
        liked = ContainmentSet("liked tracks")

        liked.apply(["a"], [True])
        liked.apply(["a"], [False])

        assert not liked.contains("a")
        assert liked.lookup("a") is Membership.NOT_CONTAINED

    def test_later_true_answer_flips_back(self):
        liked = ContainmentSet("liked tracks")

        liked.apply(["a"], [False])
        liked.apply(["a"], [True])

        assert liked.lookup("a") is Membership.CONTAINED

    def test_ids_without_answer_are_unchanged(self):
        liked = ContainmentSet("liked tracks")
        liked.add("b")

        liked.apply(["a", "b"], [True])

        assert liked.contains("a")
        assert liked.contains("b")

    def test_update_marks_all_contained(self):
        saved = ContainmentSet("saved albums")
        saved.discard("x")

        saved.update(["x", "y"])

        assert saved.lookup("x") is Membership.CONTAINED
        assert saved.lookup("y") is Membership.CONTAINED
