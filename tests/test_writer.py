"""Tests for evtx_timeline/writer.py"""

import csv
import os
import threading

import pytest

from evtx_timeline.config import Config
from evtx_timeline.errors import SerializationFailureError
from evtx_timeline.writer import assign_output_paths, output_path_for, write_csv


class TestOutputPath:
    def test_prefix_and_base_name(self, tmp_path):
        config = Config(output_dir=str(tmp_path), output_prefix="timeline_")
        path = output_path_for("/logs/Security.evtx", config)
        assert path == os.path.join(str(tmp_path), "timeline_Security.csv")

    def test_only_last_extension_replaced(self):
        config = Config(output_dir="out", output_prefix="t_")
        assert output_path_for("Microsoft-Windows-Sysmon%4Operational.evtx", config) == \
            os.path.join("out", "t_Microsoft-Windows-Sysmon%4Operational.csv")


class TestAssignOutputPaths:
    def test_distinct_names_unchanged(self):
        config = Config(output_dir="out")
        assert assign_output_paths(["a/Security.evtx", "a/System.evtx"], config) == [
            os.path.join("out", "timeline_Security.csv"),
            os.path.join("out", "timeline_System.csv"),
        ]

    def test_same_base_name_gets_suffix(self, caplog):
        config = Config(output_dir="out")
        paths = assign_output_paths(
            ["host1/Security.evtx", "host2/Security.xml", "host3/Security.evtx"], config
        )
        assert paths == [
            os.path.join("out", "timeline_Security.csv"),
            os.path.join("out", "timeline_Security_2.csv"),
            os.path.join("out", "timeline_Security_3.csv"),
        ]
        assert "collides" in caplog.text

    def test_suffix_skips_names_already_taken(self):
        config = Config(output_dir="out")
        paths = assign_output_paths(["Security_2.evtx", "a/Security.evtx", "b/Security.evtx"], config)
        assert len(set(paths)) == 3
        assert paths[2] == os.path.join("out", "timeline_Security_3.csv")


class TestWriteCsv:
    def test_writes_header_and_rows(self, tmp_path):
        path = str(tmp_path / "out.csv")
        write_csv(path, ["EpochTime", "Message"], [["1", "hello, world"], ["2", ""]])

        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows == [["EpochTime", "Message"], ["1", "hello, world"], ["2", ""]]

    def test_one_line_per_row_with_escaped_values(self, tmp_path):
        path = str(tmp_path / "out.csv")
        write_csv(path, ["A"], [["a\\nb"]])
        with open(path, encoding="utf-8") as f:
            assert f.read().splitlines() == ["A", "a\\nb"]

    def test_creates_output_directory(self, tmp_path):
        path = str(tmp_path / "nested" / "dir" / "out.csv")
        write_csv(path, ["A"], [])
        assert os.path.isfile(path)

    def test_no_temp_file_left(self, tmp_path):
        path = str(tmp_path / "out.csv")
        write_csv(path, ["A"], [["1"]])
        assert os.listdir(tmp_path) == ["out.csv"]

    def test_unwritable_target_raises(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(SerializationFailureError):
            write_csv(str(blocker / "out.csv"), ["A"], [["1"]])

    def test_unencodable_value_raises(self, tmp_path):
        path = str(tmp_path / "out.csv")
        with pytest.raises(SerializationFailureError):
            write_csv(path, ["A"], [["☃"]], encoding="ascii")
        assert os.listdir(tmp_path) == []

    def test_concurrent_writers_use_separate_temp_files(self, tmp_path):
        path = str(tmp_path / "out.csv")
        results = []

        def _write(value):
            results.append(write_csv(path, ["A"], [[value]] * 500))

        threads = [threading.Thread(target=_write, args=(str(i),)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert results == [path] * 4
        assert os.listdir(tmp_path) == ["out.csv"]
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert len(rows) == 501
        assert len({r[0] for r in rows[1:]}) == 1
