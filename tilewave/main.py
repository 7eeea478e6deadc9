"""tilewave - generate images from a sample with Wave Function Collapse."""

import argparse
import logging
import os
import random
import sys
from pathlib import Path

from dotenv import load_dotenv
from tqdm import tqdm

from tilewave import __version__
from tilewave.adapters.images import load_png, save_png
from tilewave.config import CONFIG_ENV_VAR, GenerationConfig, load_config
from tilewave.core.errors import GenerationFailedError, InvalidInputError
from tilewave.generation import SuperpositionField, composite, learn, synthesize
from tilewave.logging_config import get_logger, setup_logging

logger = get_logger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tilewave",
        description="tilewave - overlapping Wave Function Collapse for pixel images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tilewave sample.png                       # 64x64 output with 3x3 tiles
  tilewave sample.png -n 2 --seed 7         # 2x2 tiles, reproducible
  tilewave sample.png --frames frames/      # Save every step as a PNG
        """,
    )
    parser.add_argument("input", type=Path, help="Sample image to learn from")
    parser.add_argument(
        "-n", "--tile-size",
        type=int,
        help="Tile edge length in pixels (default: 3)",
    )
    parser.add_argument("--width", type=int, help="Output width in cells (default: 64)")
    parser.add_argument("--height", type=int, help="Output height in cells (default: 64)")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible output")
    restarts = parser.add_mutually_exclusive_group()
    restarts.add_argument(
        "--max-restarts",
        type=int,
        help="Give up after this many contradictions (default: 100)",
    )
    restarts.add_argument(
        "--no-restart-limit",
        action="store_true",
        help="Restart after every contradiction until generation succeeds",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help=f"YAML settings file (default: ${CONFIG_ENV_VAR} if set)",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Output PNG (default: <input>_wfc.png next to the input)",
    )
    parser.add_argument("--scale", type=int, help="Output pixels per cell (default: 8)")
    parser.add_argument(
        "--frames",
        type=Path,
        metavar="DIR",
        help="Write intermediate renders into DIR",
    )
    parser.add_argument(
        "--frame-every",
        type=int,
        metavar="K",
        help="Steps between intermediate renders (default: 1)",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=Path("logs"),
        help="Log directory (default: logs/)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to console",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> GenerationConfig:
    """File settings (from --config or the environment) overridden by flags."""
    config_path = args.config
    if config_path is None and os.environ.get(CONFIG_ENV_VAR):
        config_path = Path(os.environ[CONFIG_ENV_VAR])

    config = load_config(config_path).with_overrides(
        tile_size=args.tile_size,
        width=args.width,
        height=args.height,
        seed=args.seed,
        max_restarts=args.max_restarts,
        scale=args.scale,
        frame_every=args.frame_every,
    )
    if args.no_restart_limit:
        config = config.model_copy(update={"max_restarts": None})
    return config


def run(args: argparse.Namespace) -> int:
    """Learn from the input image, synthesize, and write the result.

    Returns:
        Exit code
    """
    config = resolve_config(args)
    output = args.output or args.input.with_name(f"{args.input.stem}_wfc.png")

    source = load_png(args.input)
    print(f"Sample: {args.input} ({source.width}x{source.height})")

    library, rules = learn(source, config.tile_size)
    print(f"Learned {library.tile_count} tiles ({config.tile_size}x{config.tile_size}), "
          f"{rules.rule_count()} adjacency rules")

    rng = random.Random(config.seed)
    total = config.width * config.height
    pbar = tqdm(total=total, desc="  Collapsing", unit="cells")

    def update_progress(current: int, total_cells: int) -> None:
        # Restarts move progress backwards, so set rather than increment
        pbar.n = current
        pbar.refresh()

    frame_callback = None
    if args.frames is not None:
        frames_dir = args.frames

        def frame_callback(step: int, field: SuperpositionField) -> None:
            if step % config.frame_every == 0:
                save_png(
                    composite(field, library),
                    frames_dir / f"frame_{step:06d}.png",
                    scale=config.scale,
                )

    try:
        result = synthesize(
            library,
            rules,
            config.width,
            config.height,
            rng,
            max_restarts=config.max_restarts,
            progress_callback=update_progress,
            frame_callback=frame_callback,
        )
    finally:
        pbar.close()

    save_png(result.pixels, output, scale=config.scale)
    print(f"Generated {config.width}x{config.height} in {result.steps} steps "
          f"({result.restarts} restarts)")
    print(f"Output: {output}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for tilewave."""
    # Load environment variables first
    load_dotenv()

    args = build_parser().parse_args(argv)

    console_level = logging.DEBUG if args.debug else logging.WARNING
    log_path = setup_logging(args.log_dir, console_level=console_level)

    print(f"tilewave v{__version__}")
    print(f"Log file: {log_path}")
    print()

    try:
        return run(args)
    except (InvalidInputError, GenerationFailedError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        logger.error(f"I/O failure: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
