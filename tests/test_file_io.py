"""
Tests for configuration loading and result saving.

Run with: pytest tests/test_file_io.py -v
"""

import json

import pytest
import yaml

from perio_landmarks.utils import get_image_files, load_config, save_results


class TestLoadConfig:

    def test_yaml_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("edge_detection:\n  strong_threshold: 30\n", encoding="utf-8")

        assert load_config(path) == {'edge_detection': {'strong_threshold': 30}}

    def test_json_config(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'validation': {'min_gap_cap': 10}}), encoding="utf-8")

        assert load_config(path)['validation']['min_gap_cap'] == 10

    def test_empty_file_means_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "config.txt"
        path.write_text("a: 1", encoding="utf-8")

        with pytest.raises(ValueError):
            load_config(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")

        with pytest.raises(ValueError):
            load_config(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("edge_detection: [1, 2\n", encoding="utf-8")

        with pytest.raises(ValueError):
            load_config(path)

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{\"input\": ", encoding="utf-8")

        with pytest.raises(ValueError):
            load_config(path)


class TestSaveResults:

    def test_json_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "result.json"
        data = {'success': True, 'landmarks': {'cej': {'x': 1, 'y': 2}}}

        written = save_results(data, path, 'json')

        assert written == path

        assert json.loads(path.read_text(encoding="utf-8")) == data

    def test_yaml_output(self, tmp_path):
        path = tmp_path / "result.yaml"

        save_results({'warnings': ['manual']}, path, 'yaml')

        assert yaml.safe_load(path.read_text(encoding="utf-8")) == {'warnings': ['manual']}

    def test_unknown_format(self, tmp_path):
        with pytest.raises(ValueError):
            save_results({}, tmp_path / "result.bin", 'pickle')


def test_get_image_files_filters_and_sorts(tmp_path):
    for name in ["b.PNG", "a.jpg", "notes.txt"]:
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "subdir.png").mkdir()

    files = get_image_files(tmp_path)

    assert [f.name for f in files] == ["a.jpg", "b.PNG"]


def test_get_image_files_missing_directory(tmp_path):
    assert get_image_files(tmp_path / "missing") == []
