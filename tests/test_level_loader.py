"""Tests for amazeing.services.level_loader"""

import json

import pytest
from pydantic import ValidationError

from amazeing.services import level_loader
from amazeing.services.generator import LevelGenerator, SeededRandom, validate_level
from amazeing.services.level_loader import (
    build_sample_packs,
    level_from_dict,
    load_pack_from_file,
    load_packs,
    normalize_level,
    parse_pack,
    save_pack,
)

from conftest import make_pack


RAW_PACK = {
    "packId": "pack1",
    "packName": "Easy",
    "gridSize": 3,
    "levels": [
        {
            "id": "pack-3-level-1",
            "name": "Level 1",
            "size": 3,
            "points": [{"number": 1, "row": 0, "col": 0}, [2, 2, 2]],
            "obstacles": [],
            "solution": [
                {
                    "from": 1,
                    "to": 2,
                    "path": [[0, 0], [0, 1], [0, 2], {"row": 1, "col": 2}, [1, 1], [1, 0], [2, 0], [2, 1], [2, 2]],
                }
            ],
        },
        {
            "id": "broken",
            "points": [{"number": 1, "row": 0, "col": 0}],
        },
        "not a level",
    ],
}


def write_pack(directory, name, data):
    path = directory / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestNormalize:

    def test_normalize_level_accepts_lists_and_dicts(self):
        normalized = normalize_level(RAW_PACK["levels"][0])

        assert normalized["points"] == [
            {"number": 1, "row": 0, "col": 0},
            {"number": 2, "row": 2, "col": 2},
        ]
        assert normalized["solution"][0]["cells"][3] == {"row": 1, "col": 2}
        assert len(normalized["solution"][0]["cells"]) == 9

    def test_normalize_level_when_size_missing_then_fallback(self):
        normalized = normalize_level({"id": "x", "points": []}, fallback_size=8)

        assert normalized["size"] == 8
        assert normalized["obstacles"] == []

    def test_level_from_dict_when_inconsistent_then_validation_error(self):
        with pytest.raises(ValidationError):
            level_from_dict({"id": "bad", "size": 3, "points": [[1, 0, 0], [3, 1, 1]]})


class TestParsePack:

    def test_parse_pack_skips_broken_levels(self):
        pack = parse_pack(RAW_PACK)

        assert pack.pack_id == "pack1"
        assert pack.grid_size == 3
        assert [level.id for level in pack.levels] == ["pack-3-level-1"]

    def test_parse_pack_names_levels_without_id(self):
        raw = {"packId": "p", "gridSize": 3, "levels": [{"points": [[1, 0, 0], [2, 2, 2]]}]}

        pack = parse_pack(raw)

        assert pack.levels[0].id == "p-level-1"
        assert pack.levels[0].size == 3


class TestPackFiles:

    def test_load_pack_from_file(self, tmp_path):
        write_pack(tmp_path, "pack1.json", RAW_PACK)

        pack = load_pack_from_file("pack1.json", tmp_path)

        assert pack.pack_name == "Easy"
        assert validate_level(pack.levels[0])["valid"]

    def test_load_pack_from_file_when_missing_then_none(self, tmp_path):
        assert load_pack_from_file("nope.json", tmp_path) is None

    @pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
    def test_load_pack_from_file_when_unreadable_then_none(self, tmp_path, content):
        (tmp_path / "pack1.json").write_text(content, encoding="utf-8")

        assert load_pack_from_file("pack1.json", tmp_path) is None

    def test_save_pack_writes_aliased_json(self, tmp_path):
        pack = parse_pack(RAW_PACK)

        path = save_pack(pack, tmp_path / "out" / "pack1.json")

        raw = json.loads(path.read_text(encoding="utf-8"))
        assert raw["packId"] == "pack1"
        assert raw["gridSize"] == 3
        assert raw["levels"][0]["solution"][0]["from"] == 1
        reloaded = load_pack_from_file("pack1.json", tmp_path / "out")
        assert reloaded.levels == pack.levels

    def test_load_packs_keeps_files_that_load(self, tmp_path):
        write_pack(tmp_path, "pack1.json", RAW_PACK)

        packs = load_packs(["pack1.json", "pack2.json"], tmp_path)

        assert [p.pack_id for p in packs] == ["pack1"]

    def test_load_packs_when_no_files_then_sample_packs(self, tmp_path, monkeypatch):
        calls = []
        samples = [make_pack("pack1", count=2)]

        def fake_build(generator=None):
            calls.append(generator)
            return samples

        monkeypatch.setattr(level_loader, "build_sample_packs", fake_build)

        packs = load_packs(["pack1.json"], tmp_path)

        assert packs is samples
        assert len(calls) == 1


class TestSamplePacks:

    def test_build_sample_packs_names_levels_by_size(self):
        generator = LevelGenerator(SeededRandom(31))

        packs = build_sample_packs(generator, levels_per_pack=2, sizes=(6,))

        assert len(packs) == 1
        pack = packs[0]
        assert (pack.pack_id, pack.pack_name, pack.grid_size) == ("pack1", "Easy", 6)
        assert [level.id for level in pack.levels] == ["pack-6-level-1", "pack-6-level-2"]
        assert all(validate_level(level)["valid"] for level in pack.levels)
