import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..config import settings
from ..schemas import Level, LevelPack
from .generator import GRID_SIZES, LevelGenerator, preset_for_size

logger = logging.getLogger(__name__)

PACK_NAMES = {
    6: "Easy",
    8: "Medium",
    10: "Hard",
    12: "Expert",
}


def _to_int_pair(coord: Any) -> Optional[Tuple[int, int]]:
    """[row, col] list or {"row", "col"} dict -> (row, col)."""
    if isinstance(coord, dict):
        coord = [coord.get("row"), coord.get("col")]
    if not isinstance(coord, (list, tuple)) or len(coord) != 2:
        return None
    try:
        return int(coord[0]), int(coord[1])
    except (TypeError, ValueError):
        return None


def _normalize_point(raw: Any) -> Optional[Dict[str, int]]:
    # dict {number, row, col} or list [number, row, col]
    if isinstance(raw, dict):
        values = [raw.get("number"), raw.get("row"), raw.get("col")]
    elif isinstance(raw, (list, tuple)) and len(raw) == 3:
        values = list(raw)
    else:
        return None
    try:
        number, row, col = (int(v) for v in values)
    except (TypeError, ValueError):
        return None
    return {"number": number, "row": row, "col": col}


def _normalize_cells(raw_cells: Any) -> List[Dict[str, int]]:
    cells = []
    if not isinstance(raw_cells, list):
        return cells
    for raw in raw_cells:
        pair = _to_int_pair(raw)
        if pair is not None:
            cells.append({"row": pair[0], "col": pair[1]})
    return cells


def _normalize_segment(raw: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(raw, dict):
        return None
    try:
        start = int(raw.get("from"))
        end = int(raw.get("to"))
    except (TypeError, ValueError):
        return None
    cells = raw.get("cells", raw.get("path", []))
    return {"from": start, "to": end, "cells": _normalize_cells(cells)}


def normalize_level(raw_level: Dict[str, Any], fallback_size: int = 6) -> Dict[str, Any]:
    """Coerces hand-written level JSON into the Level schema shape."""
    size = raw_level.get("size", fallback_size)
    try:
        size = int(size)
    except (TypeError, ValueError):
        size = fallback_size

    points = [p for p in map(_normalize_point, raw_level.get("points", []) or []) if p is not None]
    segments = [s for s in map(_normalize_segment, raw_level.get("solution", []) or []) if s is not None]

    return {
        "id": str(raw_level.get("id", "")),
        "name": str(raw_level.get("name", "")),
        "size": size,
        "difficulty": raw_level.get("difficulty", 1),
        "points": points,
        "obstacles": _normalize_cells(raw_level.get("obstacles", [])),
        "solution": segments,
    }


def parse_pack(raw_data: Dict[str, Any]) -> LevelPack:
    """
    Raises:
        ValidationError: pack header is inconsistent (broken levels are skipped)
    """
    grid_size = int(raw_data.get("gridSize", raw_data.get("grid_size", 6)))
    raw_levels = raw_data.get("levels", [])
    if not isinstance(raw_levels, list):
        raw_levels = []

    pack_id = str(raw_data.get("packId", raw_data.get("pack_id", "")))

    levels: List[Level] = []
    for idx, raw_level in enumerate(raw_levels):
        if not isinstance(raw_level, dict):
            continue
        normalized = normalize_level(raw_level, grid_size)
        if not normalized["id"]:
            normalized["id"] = f"{pack_id or 'pack'}-level-{idx + 1}"
        try:
            levels.append(Level.model_validate(normalized))
        except ValidationError as e:
            logger.warning("Skipping level %s of pack %s: %s", normalized["id"], pack_id, e)

    return LevelPack.model_validate({
        "packId": pack_id,
        "packName": str(raw_data.get("packName", raw_data.get("pack_name", ""))),
        "gridSize": grid_size,
        "levels": levels,
    })


def load_pack_from_file(name: str, levels_dir: Optional[Path] = None) -> Optional[LevelPack]:
    """Load and validate one pack file. Missing or broken files give None."""
    levels_dir = Path(levels_dir) if levels_dir else settings.levels_path
    file_path = levels_dir / name

    if not file_path.exists():
        logger.warning("Level pack not found: %s", file_path)
        return None

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            raw_data = json.load(f)
        if not isinstance(raw_data, dict):
            logger.warning("Level pack %s is not a JSON object", file_path)
            return None
        pack = parse_pack(raw_data)
    except (OSError, ValueError, ValidationError) as e:
        logger.warning("Error parsing level pack %s: %s", file_path, e)
        return None

    logger.info("Loaded pack %s (%s levels) from %s", pack.pack_id, len(pack.levels), file_path)
    return pack


def build_sample_packs(
    generator: Optional[LevelGenerator] = None,
    levels_per_pack: Optional[int] = None,
    sizes=GRID_SIZES,
) -> List[LevelPack]:
    """Generated packs used when no pack file can be loaded."""
    generator = generator or LevelGenerator()
    count = settings.SAMPLE_LEVELS_PER_PACK if levels_per_pack is None else levels_per_pack

    packs = []
    for pack_idx, size in enumerate(sizes):
        preset = preset_for_size(size)
        levels = []
        for i in range(count):
            level = generator.generate(preset.size, preset.num_points, preset.obstacle_percent)
            level = level.model_copy(update={"id": f"pack-{size}-level-{i + 1}", "name": f"Level {i + 1}"})
            levels.append(level)

        packs.append(LevelPack(
            pack_id=f"pack{pack_idx + 1}",
            pack_name=PACK_NAMES.get(size, f"{size}x{size}"),
            grid_size=size,
            levels=levels,
        ))
    return packs


def load_packs(
    pack_files: Optional[List[str]] = None,
    levels_dir: Optional[Path] = None,
    generator: Optional[LevelGenerator] = None,
) -> List[LevelPack]:
    """Configured pack files, or generated sample packs if none load."""
    pack_files = settings.pack_files_list if pack_files is None else pack_files

    packs = [pack for pack in (load_pack_from_file(name, levels_dir) for name in pack_files) if pack is not None]
    if packs:
        return packs

    logger.info("No level packs available, generating sample packs")
    return build_sample_packs(generator)


def save_pack(pack: LevelPack, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(pack.model_dump(mode="json", by_alias=True), f, ensure_ascii=False, indent=2)
    logger.info("Saved pack %s (%s levels) to %s", pack.pack_id, len(pack.levels), path)
    return path


def level_from_dict(raw_level: Dict[str, Any]) -> Level:
    """Single level from loose JSON; raises ValidationError when inconsistent."""
    return Level.model_validate(normalize_level(raw_level))
