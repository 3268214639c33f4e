#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from amazeing.config import settings  # noqa: E402
from amazeing.logging_config import configure_logging  # noqa: E402
from amazeing.schemas import LevelPack  # noqa: E402
from amazeing.services.generator import (  # noqa: E402
    GRID_SIZES,
    GenerationError,
    LevelGenerator,
    SeededRandom,
    preset_for_size,
    validate_level,
)
from amazeing.services.level_loader import PACK_NAMES, load_pack_from_file, save_pack  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate level packs (one JSON file per grid size) or validate existing ones."
    )
    parser.add_argument(
        "--sizes",
        type=int,
        nargs="+",
        default=list(GRID_SIZES),
        help="Grid sizes to generate, one pack per size.",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=settings.SAMPLE_LEVELS_PER_PACK,
        help="Levels per pack.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for reproducible packs. Random when omitted.",
    )
    parser.add_argument(
        "--out",
        type=Path,
        default=settings.levels_path,
        help="Directory the pack files are written to.",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only validate the pack files already in --out; nothing is written.",
    )
    return parser.parse_args()


def generate_pack(generator: LevelGenerator, pack_index: int, size: int, count: int) -> LevelPack:
    preset = preset_for_size(size)
    levels = []
    for i in range(count):
        started = time.monotonic()
        level = generator.generate(preset.size, preset.num_points, preset.obstacle_percent)
        elapsed_ms = (time.monotonic() - started) * 1000
        level = level.model_copy(update={"id": f"pack-{size}-level-{i + 1}", "name": f"Level {i + 1}"})

        validation = validate_level(level)
        status = "ok" if validation["valid"] else "INVALID"
        print(
            f"  {level.id}: {status} points={len(level.points)} "
            f"obstacles={len(level.obstacles)} time_ms={elapsed_ms:.1f}"
        )
        for err in validation["errors"][:5]:
            print(f"     - {err}")
        levels.append(level)

    return LevelPack(
        pack_id=f"pack{pack_index + 1}",
        pack_name=PACK_NAMES.get(size, f"{size}x{size}"),
        grid_size=size,
        levels=levels,
    )


def check_packs(out_dir: Path) -> int:
    files = sorted(out_dir.glob("*.json"))
    if not files:
        raise SystemExit(f"No pack files in {out_dir}")

    invalid = 0
    for path in files:
        pack = load_pack_from_file(path.name, out_dir)
        if pack is None:
            print(f"{path.name}: unreadable")
            invalid += 1
            continue
        for level in pack.levels:
            validation = validate_level(level)
            if not validation["valid"]:
                invalid += 1
                print(f"{path.name} {level.id}: {'; '.join(validation['errors'][:3])}")
        print(f"{path.name}: {len(pack.levels)} levels checked")

    return 1 if invalid else 0


def main() -> int:
    args = parse_args()
    configure_logging()

    if args.check:
        return check_packs(args.out)

    generator = LevelGenerator(SeededRandom(args.seed))
    print(f"Generating packs with seed {generator.rng.seed}")

    for pack_index, size in enumerate(args.sizes):
        print(f"Pack {pack_index + 1}: {size}x{size}")
        try:
            pack = generate_pack(generator, pack_index, size, args.count)
        except GenerationError as e:
            print(f"  failed: {e}")
            return 1
        path = save_pack(pack, args.out / f"pack{pack_index + 1}.json")
        print(f"  wrote {path}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
