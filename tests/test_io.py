import tempfile
import unittest
from pathlib import Path

import pandas as pd

import run
from grouping.config import GroupingConfig, load_config
from grouping.confirm import TableSink, confirm
from grouping.data_loader import (
    load_relationship_table,
    load_settings,
    resolve_class_table,
    roster_rows_from_table,
)
from grouping.model import DataIntegrityError
from grouping.optimizer import optimize
from grouping.relationships import build_relationships
from grouping.result import (
    GROUP_NAMES_KEY,
    GROUP_POSITIONS_KEY,
    GroupingResult,
    ResultCache,
    format_notification,
)

TABLE_CSV = """,Ana,Bruno,Carla,Diego
Ana,,2,0,1
Bruno,,,1,0
Carla,,,,4
Diego,,,,
"""


class TempDirCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, name, text):
        path = self.tmp / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path


class ConfigTests(TempDirCase):
    def test_defaults_when_file_missing(self):
        cfg = load_config(str(self.tmp / "nope.yaml"))
        self.assertEqual(cfg.num_groups, 5)
        self.assertEqual(cfg.attempted_depth, 1000)
        self.assertIsNone(cfg.seed)

    def test_yaml_overrides_and_unknown_keys(self):
        path = self.write("config.yaml", "num_groups: 3\nattempted_depth: 50\nseed: 7\nfoo: bar\n")
        cfg = load_config(str(path))
        self.assertEqual((cfg.num_groups, cfg.attempted_depth, cfg.seed), (3, 50, 7))

    def test_non_mapping_rejected(self):
        path = self.write("config.yaml", "- 1\n- 2\n")
        with self.assertRaises(ValueError):
            load_config(str(path))

    def test_quoted_numbers_are_coerced(self):
        path = self.write("config.yaml", "num_groups: \"3\"\nattempted_depth: \"20\"\nseed: \"4\"\n")
        cfg = load_config(str(path)).validate()
        self.assertEqual((cfg.num_groups, cfg.attempted_depth, cfg.seed), (3, 20, 4))
        rows = roster_rows_from_table(load_relationship_table(self.write("t.csv", TABLE_CSV)))
        result = optimize(rows, cfg)
        self.assertEqual(len(result.groups), 3)


class DataLoaderTests(TempDirCase):
    def test_table_to_relationships(self):
        path = self.write("t.csv", TABLE_CSV)
        rows = roster_rows_from_table(load_relationship_table(path))
        registry, matrix = build_relationships(rows)
        self.assertEqual(registry.names(), ["Ana", "Bruno", "Carla", "Diego"])
        self.assertEqual(matrix.score(0, 1), 2)
        self.assertEqual(matrix.score(2, 3), 4)
        self.assertEqual(matrix.score(3, 0), 1)

    def test_blank_upper_cell_is_missing(self):
        path = self.write("t.csv", TABLE_CSV.replace("Bruno,,,1,0", "Bruno,,,,0"))
        with self.assertRaises(DataIntegrityError):
            build_relationships(roster_rows_from_table(load_relationship_table(path)))

    def test_resolve_class_table(self):
        settings_path = self.write("settings.csv", "Class,Spreadsheet,Sheet Name\nPeriod 1,data,p1\nPeriod 2,data,\n")
        settings = load_settings(str(settings_path))
        cfg = GroupingConfig(class_name="Period 1", settings_path=str(settings_path))
        self.assertEqual(resolve_class_table(settings, cfg), Path("data") / "p1.csv")

        cfg.class_name = "Period 2"
        with self.assertRaises(DataIntegrityError) as ctx:
            resolve_class_table(settings, cfg)
        self.assertIn("Sheet Name", str(ctx.exception))

        cfg.class_name = "Period 9"
        with self.assertRaises(DataIntegrityError):
            resolve_class_table(settings, cfg)

    def test_missing_files(self):
        with self.assertRaises(DataIntegrityError):
            load_settings(str(self.tmp / "missing.csv"))
        with self.assertRaises(DataIntegrityError):
            load_relationship_table(self.tmp / "missing.csv")


class CacheTests(TempDirCase):
    def test_result_is_consumed_once(self):
        cache = ResultCache(str(self.tmp / "cache" / "pending.json"))
        result = GroupingResult(score=3, groups=[["a", "b"], ["c"]], positions=[[0, 1], [2]])
        cache.store_result(result, extra={"tablePath": "x.csv"})
        self.assertEqual(cache.get(GROUP_NAMES_KEY), [["a", "b"], ["c"]])
        self.assertEqual(cache.get(GROUP_POSITIONS_KEY), [[0, 1], [2]])

        taken = cache.take_result()
        self.assertEqual(taken.groups, result.groups)
        self.assertEqual(taken.positions, result.positions)
        self.assertEqual(taken.score, 3)
        self.assertEqual(cache.get("tablePath"), "x.csv")
        with self.assertRaises(DataIntegrityError):
            cache.take_result()

    def test_second_store_overwrites(self):
        cache = ResultCache(str(self.tmp / "pending.json"))
        cache.store_result(GroupingResult(1, [["a"]], [[0]]))
        cache.store_result(GroupingResult(0, [["b"]], [[1]]))
        self.assertEqual(cache.take_result().groups, [["b"]])

    def test_non_parallel_result_rejected(self):
        with self.assertRaises(DataIntegrityError):
            GroupingResult.from_dict({GROUP_NAMES_KEY: [["a", "b"]], GROUP_POSITIONS_KEY: [[0]]})


class RecordingSink:
    def __init__(self):
        self.calls = []

    def increment(self, first, second):
        self.calls.append((first, second))


class ConfirmTests(TempDirCase):
    def test_increments_every_pair_once(self):
        result = GroupingResult(score=0, groups=[["c", "a", "b"], ["d"]], positions=[[2, 0, 1], [3]])
        sink = RecordingSink()
        sent = []
        body = confirm(result, sink, notifier=lambda s, b: sent.append((s, b)), class_name="Bio")
        self.assertEqual(sorted(sink.calls), [(0, 1), (0, 2), (1, 2)])
        self.assertEqual(sent, [("Bio Groups", body)])
        self.assertEqual(body, "Next Bio groups:\nGroup #1\n\tc\n\ta\n\tb\n\nGroup #2\n\td\n\n")

    def test_double_confirm_double_counts(self):
        table = load_relationship_table(self.write("t.csv", TABLE_CSV))
        labels = {0: "Ana", 1: "Bruno", 2: "Carla", 3: "Diego"}
        result = GroupingResult(score=2, groups=[["Bruno", "Ana"], ["Carla", "Diego"]], positions=[[1, 0], [2, 3]])
        sink = TableSink(table, labels)
        confirm(result, sink)
        self.assertEqual(int(table.at["Ana", "Bruno"]), 3)
        self.assertEqual(int(table.at["Carla", "Diego"]), 5)
        confirm(result, sink)
        self.assertEqual(int(table.at["Ana", "Bruno"]), 4)
        self.assertEqual(int(table.at["Ana", "Carla"]), 0)

    def test_decline_is_a_fresh_run(self):
        rows = roster_rows_from_table(load_relationship_table(self.write("t.csv", TABLE_CSV)))
        cfg = GroupingConfig(num_groups=2, attempted_depth=100)
        first = optimize(rows, cfg)
        second = optimize(rows, cfg)
        self.assertEqual(second.trials, 100)
        self.assertEqual(sorted(n for g in second.groups for n in g), sorted(n for g in first.groups for n in g))


class CliTests(TempDirCase):
    def setUp(self):
        super().setUp()
        self.table_path = self.write("tables/p1.csv", TABLE_CSV)
        settings_path = self.write(
            "settings.csv", f"Class,Spreadsheet,Sheet Name\nPeriod 1,{self.table_path.parent},p1\n"
        )
        self.cache_path = self.tmp / "pending.json"
        self.config_path = self.write(
            "config.yaml",
            f"num_groups: 2\nattempted_depth: 200\nclass_name: Period 1\n"
            f"settings_path: {settings_path}\ncache_path: {self.cache_path}\n",
        )
        self.out_dir = self.tmp / "out"

    def cli(self, command):
        return run.main([command, "--config", str(self.config_path), "--out_dir", str(self.out_dir)])

    def pending(self):
        return ResultCache(str(self.cache_path)).get(GROUP_NAMES_KEY)

    def test_calculate_then_accept(self):
        self.assertEqual(self.cli("calculate"), 0)
        self.assertTrue(self.cache_path.exists())
        groups = pd.read_csv(self.out_dir / "groups.csv")
        self.assertEqual(sorted(groups["estudiante"]), ["Ana", "Bruno", "Carla", "Diego"])

        pending = ResultCache(str(self.cache_path)).get(GROUP_POSITIONS_KEY)
        before = load_relationship_table(self.table_path)
        self.assertEqual(self.cli("accept"), 0)
        after = load_relationship_table(self.table_path)
        names = ["Ana", "Bruno", "Carla", "Diego"]
        for group in pending:
            i, j = sorted(group)
            self.assertEqual(int(after.at[names[i], names[j]]), int(before.at[names[i], names[j]]) + 1)

        # el resultado ya fue consumido
        self.assertIsNone(self.pending())
        self.assertEqual(self.cli("accept"), 1)

    def test_failed_accept_keeps_pending_result(self):
        self.assertEqual(self.cli("calculate"), 0)
        proposed = self.pending()
        moved = self.table_path.with_name("moved.csv")
        self.table_path.rename(moved)

        self.assertEqual(self.cli("accept"), 1)
        self.assertEqual(self.pending(), proposed)

        moved.rename(self.table_path)
        self.assertEqual(self.cli("accept"), 0)
        self.assertIsNone(self.pending())

    def test_decline_replaces_pending_result(self):
        self.assertEqual(self.cli("calculate"), 0)
        self.assertEqual(self.cli("decline"), 0)
        groups = self.pending()
        self.assertEqual(sorted(n for g in groups for n in g), ["Ana", "Bruno", "Carla", "Diego"])

    def test_decline_discards_even_if_recompute_fails(self):
        self.assertEqual(self.cli("calculate"), 0)
        self.assertIsNotNone(self.pending())
        self.table_path.write_text(TABLE_CSV.replace("Bruno,,,1,0", "Bruno,,,,0"), encoding="utf-8")

        self.assertEqual(self.cli("decline"), 1)
        self.assertIsNone(self.pending())
        self.assertEqual(self.cli("accept"), 1)

    def test_accept_keeps_table_integer(self):
        self.assertEqual(self.cli("calculate"), 0)
        self.assertEqual(self.cli("accept"), 0)
        text = self.table_path.read_text(encoding="utf-8")
        self.assertNotIn(".0", text)
        self.assertEqual(text.splitlines()[0], ",Ana,Bruno,Carla,Diego")

    def test_unknown_class_exits_with_error(self):
        settings_path = self.write("settings.csv", "Class,Spreadsheet,Sheet Name\n")
        config_path = self.write("config.yaml", f"class_name: Nope\nsettings_path: {settings_path}\n")
        self.assertEqual(run.main(["calculate", "--config", str(config_path)]), 1)


class NotificationTests(unittest.TestCase):
    def test_format(self):
        result = GroupingResult(score=0, groups=[["x"]], positions=[[0]])
        self.assertEqual(format_notification("Art", result), "Next Art groups:\nGroup #1\n\tx\n\n")


if __name__ == "__main__":
    unittest.main()
