import unittest

from comppicker.catalogue import (
    collect_components,
    components_by_id,
    find_category,
    known_ids,
    parse_catalogue,
    qualify_catalogue,
    readable_byte_size,
    selection_totals,
)


RAW = {
    "url": "https://example.org/c/",
    "categories": [
        {
            "id": "tools",
            "name": "Tools",
            "components": [
                "plain",
                {"id": "editor", "name": "Editor", "download_size": "2048", "install_size": 4096,
                 "depends": "runtime  plain", "installed": True},
                {"name": "no id, skipped"},
                42,
            ],
            "subcategories": [
                {"id": "tools-extra", "components": [{"id": "runtime", "depends": ["plain", " "], "required": True}]},
                {"name": "nameless category without id"},
            ],
        },
        {"name": "missing id"},
        "not a dict",
    ],
}


class TestParseCatalogue(unittest.TestCase):
    def setUp(self):
        self.catalogue = parse_catalogue(RAW)
        self.comps = components_by_id(self.catalogue)

    def test_tree_shape(self):
        self.assertEqual(self.catalogue.url, "https://example.org/c/")
        self.assertEqual([c.id for c in self.catalogue.categories], ["tools"])
        tools = self.catalogue.categories[0]
        self.assertEqual([c.id for c in tools.components], ["plain", "editor"])
        self.assertEqual([c.id for c in tools.subcategories], ["tools-extra"])

    def test_component_fields(self):
        editor = self.comps["editor"]
        self.assertEqual(editor.name, "Editor")
        self.assertEqual(editor.download_size, 2048)
        self.assertEqual(editor.depends_on, ("runtime", "plain"))
        self.assertTrue(editor.installed)
        self.assertFalse(editor.required)

        runtime = self.comps["runtime"]
        self.assertEqual(runtime.depends_on, ("plain",))
        self.assertTrue(runtime.required)
        self.assertEqual(runtime.name, "runtime")

        plain = self.comps["plain"]
        self.assertEqual(plain.name, "plain")
        self.assertEqual(plain.depends_on, ())

    def test_lookup_helpers(self):
        self.assertEqual(known_ids(self.catalogue), {"plain", "editor", "runtime"})
        self.assertIsNotNone(find_category(self.catalogue, "tools-extra"))
        self.assertIsNone(find_category(self.catalogue, "editor"))
        self.assertNotIn("tools", self.comps)
        tools = find_category(self.catalogue, "tools")
        self.assertEqual([c.id for c in collect_components(tools)], ["plain", "editor", "runtime"])

    def test_empty_config(self):
        self.assertEqual(parse_catalogue({}).categories, [])
        self.assertEqual(parse_catalogue({"categories": None}).categories, [])


class TestQualifiedIds(unittest.TestCase):
    """Ids are prefixed with their category path so equal ids never collide."""

    def test_ids_take_category_path(self):
        catalogue = qualify_catalogue(parse_catalogue(RAW))
        comps = components_by_id(catalogue)
        self.assertEqual(set(comps), {"tools-plain", "tools-editor", "tools-extra-runtime"})
        self.assertIsNotNone(find_category(catalogue, "tools-extra"))
        self.assertEqual(comps["tools-editor"].name, "Editor")

    def test_depends_are_rewritten(self):
        comps = components_by_id(qualify_catalogue(parse_catalogue(RAW)))
        self.assertEqual(comps["tools-editor"].depends_on, ("tools-extra-runtime", "tools-plain"))
        self.assertEqual(comps["tools-extra-runtime"].depends_on, ("tools-plain",))

    def test_same_id_in_two_categories(self):
        catalogue = qualify_catalogue(parse_catalogue({"categories": [
            {"id": "C1", "components": [{"id": "docs"}, {"id": "app", "depends": "docs"}]},
            {"id": "C2", "components": [{"id": "docs"}]},
            {"id": "C3", "components": [{"id": "tool", "depends": "docs C2-docs"}]},
        ]}))
        comps = components_by_id(catalogue)
        self.assertIn("C1-docs", comps)
        self.assertIn("C2-docs", comps)
        self.assertEqual(comps["C1-app"].depends_on, ("C1-docs",))
        # ambiguous outside its category, so left as written
        self.assertEqual(comps["C3-tool"].depends_on, ("docs", "C2-docs"))

    def test_qualifying_twice_changes_nothing(self):
        once = qualify_catalogue(parse_catalogue(RAW))
        self.assertEqual(qualify_catalogue(once), once)

    def test_category_required_flag(self):
        catalogue = parse_catalogue({"categories": [{"id": "core", "required": True}, {"id": "misc"}]})
        self.assertEqual([c.required for c in catalogue.categories], [True, False])


class TestSizes(unittest.TestCase):
    def test_readable_byte_size(self):
        self.assertEqual(readable_byte_size(0), "0 B")
        self.assertEqual(readable_byte_size(1023), "1023 B")
        self.assertEqual(readable_byte_size(1024), "1.0 KB")
        self.assertEqual(readable_byte_size(1536), "1.5 KB")
        self.assertEqual(readable_byte_size(5 * 1024 ** 2), "5.0 MB")
        self.assertEqual(readable_byte_size(1024 ** 2 - 1), "1.0 MB")
        self.assertEqual(readable_byte_size(3 * 1024 ** 3), "3.0 GB")

    def test_selection_totals_ignores_unknown_and_duplicates(self):
        catalogue = parse_catalogue(RAW)
        self.assertEqual(selection_totals(catalogue, ["editor", "editor", "ghost"]), (2048, 4096))
        self.assertEqual(selection_totals(catalogue, []), (0, 0))


if __name__ == "__main__":
    unittest.main()
