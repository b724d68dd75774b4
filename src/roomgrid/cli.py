from __future__ import annotations

import json
import logging
import sys

from .config import build_settings, parse_args
from .debug import dump_floor
from .floor.map import generate_floor_map
from .game import generate_floor
from .rng import SeededRandom
from .session import daily_seed


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    settings = build_settings(args)
    if args.daily:
        settings = settings.replace(seed=daily_seed(args.daily))

    if args.ascii:
        rng = SeededRandom(settings.seed) if settings.seed is not None else None
        print(dump_floor(generate_floor_map(settings.floor, rng, settings=settings)))
        return 0

    data = generate_floor(settings)
    # JSON so runs can be diffed across peers
    print(json.dumps(data, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
