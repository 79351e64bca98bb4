import json
import os
import shutil
import tempfile
import unittest

from comppicker.config import DEFAULT_CONFIG, AppPaths, load_config
from comppicker.history import log_history, parse_history
from comppicker.models import Selection
from comppicker.storage import export_selection, load_json_safe, save_json

from fakes import cat, catalogue_of, comp


class TempDirTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp(prefix="comppicker-test-")

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def write(self, name, text):
        path = os.path.join(self.tmp, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path


class TestLoadConfig(TempDirTestCase):
    def test_missing_file_gives_defaults(self):
        cfg = load_config(os.path.join(self.tmp, "absent.json"))
        self.assertEqual(cfg, DEFAULT_CONFIG)
        self.assertIsNot(cfg["ui"], DEFAULT_CONFIG["ui"])

    def test_malformed_json_gives_defaults(self):
        cfg = load_config(self.write("bad.json", "{not json"))
        self.assertEqual(cfg["categories"], [])

    def test_non_object_json_gives_defaults(self):
        cfg = load_config(self.write("list.json", "[1, 2]"))
        self.assertEqual(cfg, DEFAULT_CONFIG)

    def test_partial_config_is_completed(self):
        cfg = load_config(self.write("part.json", json.dumps({"url": "u", "ui": "nonsense"})))
        self.assertEqual(cfg["url"], "u")
        self.assertEqual(cfg["selected"], [])
        self.assertEqual(cfg["ui"]["title"], DEFAULT_CONFIG["ui"]["title"])

    def test_no_path(self):
        self.assertEqual(load_config(None), DEFAULT_CONFIG)


class TestStorage(TempDirTestCase):
    def test_load_json_safe_empty_file(self):
        self.assertEqual(load_json_safe(self.write("empty.json", "  \n"), {"d": 1}), {"d": 1})

    def test_save_json_creates_directories(self):
        path = os.path.join(self.tmp, "a", "b", "out.json")
        save_json(path, {"k": "ä"})
        self.assertEqual(load_json_safe(path, None), {"k": "ä"})

    def test_export_selection(self):
        catalogue = catalogue_of(
            cat("c", [comp("a", download_size=1024, install_size=2048), comp("b", download_size=1, install_size=1)]),
            url="https://example.org/",
        )
        path = export_selection(os.path.join(self.tmp, "exports"), catalogue, Selection.of({"a"}, {"b"}))
        self.assertTrue(path.endswith(".json"))
        data = load_json_safe(path, None)
        self.assertEqual(data["selected"], ["a"])
        self.assertEqual(data["required"], ["b"])
        self.assertEqual(data["download_size"], 1025)
        self.assertEqual(data["install_size"], 2049)
        self.assertEqual(data["url"], "https://example.org/")


class TestHistory(TempDirTestCase):
    def test_entries_newest_first(self):
        log = os.path.join(self.tmp, "sub", "history.log")
        log_history(log, "select", "C1", "done", [])
        log_history(log, "unselect", "A", "aborted", ["dependant: Beta"])

        entries = parse_history(log)
        self.assertEqual([e["action"] for e in entries], ["unselect", "select"])
        self.assertEqual(entries[0]["target"], "A")
        self.assertEqual(entries[0]["stage"], "aborted")
        self.assertEqual(entries[0]["details"], ["dependant: Beta"])
        self.assertEqual(entries[1]["details"], [])

    def test_missing_log(self):
        self.assertEqual(parse_history(os.path.join(self.tmp, "none.log")), [])


class TestAppPaths(TempDirTestCase):
    def test_layout(self):
        paths = AppPaths(os.path.join(self.tmp, "cache"))
        paths.ensure()
        self.assertTrue(os.path.isdir(paths.exports_dir))
        self.assertEqual(os.path.dirname(paths.history_log), paths.cache_dir)
        self.assertTrue(paths.log_file.endswith("comppicker.log"))


if __name__ == "__main__":
    unittest.main()
