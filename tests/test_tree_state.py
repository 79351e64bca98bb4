import unittest

from comppicker.models import Component, TriState
from comppicker.tree_state import compute_tree_states, component_view

from fakes import cat, catalogue_of, comp


class TestTreeState(unittest.TestCase):
    """Category states derived bottom-up from component selection."""

    def setUp(self):
        self.catalogue = catalogue_of(
            cat("root", [comp("r1")], [
                cat("left", [comp("l1"), comp("l2")]),
                cat("right", [], [cat("deep", [comp("d1")])]),
            ]),
            cat("empty"),
            cat("hollow", [], [cat("inner")]),
        )

    def states(self, selected=(), required=()):
        return compute_tree_states(self.catalogue.categories, set(selected), set(required))

    def test_nothing_selected(self):
        s = self.states()
        for cid in ("root", "left", "right", "deep", "empty", "hollow", "inner"):
            self.assertIs(s[cid], TriState.UNCHECKED, cid)

    def test_everything_selected(self):
        s = self.states({"r1", "l1", "l2", "d1"})
        self.assertIs(s["root"], TriState.CHECKED)
        self.assertIs(s["left"], TriState.CHECKED)
        self.assertIs(s["right"], TriState.CHECKED)
        self.assertIs(s["deep"], TriState.CHECKED)

    def test_partial_leaf_propagates_up(self):
        s = self.states({"l1"})
        self.assertIs(s["left"], TriState.INDETERMINATE)
        self.assertIs(s["root"], TriState.INDETERMINATE)
        self.assertIs(s["right"], TriState.UNCHECKED)

    def test_deep_selection_makes_ancestors_contribute(self):
        s = self.states({"d1"})
        self.assertIs(s["deep"], TriState.CHECKED)
        self.assertIs(s["right"], TriState.CHECKED)
        self.assertIs(s["root"], TriState.INDETERMINATE)

    def test_required_counts_as_selected(self):
        s = self.states({"r1", "l1"}, {"l2", "d1"})
        self.assertIs(s["root"], TriState.CHECKED)

    def test_empty_category_is_never_checked(self):
        s = self.states({"r1", "l1", "l2", "d1"})
        self.assertIs(s["empty"], TriState.UNCHECKED)
        self.assertIs(s["inner"], TriState.UNCHECKED)
        self.assertIs(s["hollow"], TriState.UNCHECKED)

    def test_empty_subcategory_keeps_parent_from_checked(self):
        catalogue = catalogue_of(cat("p", [comp("a")], [cat("nothing")]))
        s = compute_tree_states(catalogue.categories, {"a"})
        self.assertIs(s["p"], TriState.INDETERMINATE)

    def test_recompute_is_pure(self):
        selected = {"l1", "d1"}
        required = {"r1"}
        first = self.states(selected, required)
        second = self.states(selected, required)
        self.assertEqual(first, second)
        self.assertEqual(selected, {"l1", "d1"})
        self.assertEqual(required, {"r1"})

    def test_every_category_has_a_state(self):
        s = self.states()
        self.assertEqual(set(s), {"root", "left", "right", "deep", "empty", "hollow", "inner"})


class TestComponentView(unittest.TestCase):
    def test_required_is_checked_and_disabled_regardless_of_selected(self):
        c = Component(id="a", name="a")
        self.assertEqual(component_view(c, set(), {"a"}), (True, True))
        self.assertEqual(component_view(c, {"a"}, {"a"}), (True, True))

    def test_plain_component(self):
        c = Component(id="a", name="a")
        self.assertEqual(component_view(c, {"a"}, set()), (True, False))
        self.assertEqual(component_view(c, set(), set()), (False, False))

    def test_required_flag_only_blocks_unselect(self):
        c = Component(id="a", name="a", required=True)
        self.assertEqual(component_view(c, set(), set()), (False, False))
        self.assertEqual(component_view(c, {"a"}, set()), (True, True))


if __name__ == "__main__":
    unittest.main()
