#!/usr/bin/env python3
"""
pixelate.py
Turn images into pixel-art tile grids, optionally recoloured to a palette.

Usage:
  python pixelate.py INPUT --block-size B --mapper [classic|perceptual] --palette palette.json --tier [all|free|premium] --debug

Mappers:
  classic    : nearest palette colour by RGB distance.
  perceptual : CIEDE2000 shortlist refined with lightness, chroma, hue and
               neutral-tone penalties.

Input:
  Any Pillow-readable image, or a folder of them. Alpha is preserved; fully
  transparent tiles are never recoloured.

Output:
  PNG at tile resolution (one pixel per tile). Writes <stem>_pixel.png next
  to INPUT unless --outdir is given.

Notes:
  Rendering runs on a background worker; the CLI talks to it with the same
  process / export messages an interactive front end would use.
"""

from __future__ import annotations

import argparse
import itertools
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional

from pixelate_map.constants import (
    DEFAULT_BLOCK_SIZE,
    DEFAULT_MAPPER,
    MAPPERS,
    MAX_BLOCK_SIZE,
    MAX_DIMENSION,
    MIN_BLOCK_SIZE,
)
from pixelate_map.core_types import PaletteEntry, rgba_to_hex
from pixelate_map.errors import ImageDecodeError
from pixelate_map.image_io import decode_image, is_image_file
from pixelate_map.messages import (
    ErrorMessage,
    ExportFileMessage,
    ExportRequest,
    OutgoingMessage,
    ProcessRequest,
    ResultMessage,
)
from pixelate_map.palette_data import (
    TIERS,
    default_palette_entries,
    flatten_palette,
    load_palette_file,
    select_palette,
)
from pixelate_map.utils import (
    RESAMPLE_FILTERS,
    colour_usage_report,
    debug_log,
    enable_line_buffered_stdout,
    error,
    format_seconds_compact,
    key_value_pairs_to_string,
    log,
    print_banner,
    print_config_line,
    warn,
)
from pixelate_map.worker import PixelateWorker

IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".webp", ".bmp", ".gif"}
OUTPUT_SUFFIX = "_pixel"


def _block_size(text: str) -> int:
    value = int(text)
    if not MIN_BLOCK_SIZE <= value <= MAX_BLOCK_SIZE:
        raise argparse.ArgumentTypeError(
            f"block size must be in [{MIN_BLOCK_SIZE}, {MAX_BLOCK_SIZE}]"
        )
    return value


def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse CLI arguments.

    Returns:
      argparse.Namespace with:
        src: Path to image or folder
        outdir: optional Path for outputs
        block_size: tile edge in source pixels
        mapper: "classic" | "perceptual"
        no_colorize: bool, skip palette mapping
        palette: optional Path to a palette JSON file
        tier: "all" | "free" | "premium"
        max_dimension: decode cap
        resample: filter for the decode cap
        debug: bool for verbose details
    """
    parser = argparse.ArgumentParser(
        prog="pixelate",
        description="Pixelate image(s) into tile grids with optional palette mapping.",
    )
    parser.add_argument("src", type=Path, help="Input image or folder")
    parser.add_argument(
        "--outdir", type=Path, default=None, help="Output directory (optional)"
    )
    parser.add_argument(
        "--block-size",
        type=_block_size,
        default=DEFAULT_BLOCK_SIZE,
        help=f"Tile edge in source pixels ({MIN_BLOCK_SIZE}-{MAX_BLOCK_SIZE}).",
    )
    parser.add_argument(
        "--mapper", choices=list(MAPPERS), default=DEFAULT_MAPPER, help="Colour mapper."
    )
    parser.add_argument(
        "--no-colorize", action="store_true", help="Keep averaged tile colours."
    )
    parser.add_argument(
        "--palette",
        type=Path,
        default=None,
        help="Palette JSON {key: {color, is_premium}}. Omit for the built-in palette.",
    )
    parser.add_argument(
        "--tier", choices=list(TIERS), default="all", help="Palette tier to allow."
    )
    parser.add_argument(
        "--max-dimension",
        type=int,
        default=MAX_DIMENSION,
        help="Scale sources down so neither side exceeds this.",
    )
    parser.add_argument(
        "--resample",
        choices=list(RESAMPLE_FILTERS),
        default="bicubic",
        help="Filter used when a source exceeds --max-dimension.",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose details")
    return parser.parse_args(argv)


def _load_entries(palette_path: Optional[Path], tier: str) -> List[PaletteEntry]:
    entries = (
        load_palette_file(palette_path)
        if palette_path is not None
        else default_palette_entries()
    )
    return select_palette(entries, tier=tier)


def _await(worker: PixelateWorker, job_id: int) -> OutgoingMessage:
    """Next message for job_id. The CLI only ever has one job in flight."""
    while True:
        message = worker.get()
        if message.job_id == job_id:
            return message


def _process_single_image(
    worker: PixelateWorker,
    job_id: int,
    src_path: Path,
    out_path: Path,
    args: argparse.Namespace,
    flat_palette: List[int],
    name_of_hex: Dict[str, str],
) -> bool:
    """
    Process one image end-to-end:
      decode -> process job -> export job -> save -> report.
    Returns False when the image could not be produced.
    """
    t_start = time.perf_counter()
    print_banner(src_path.name)

    try:
        source = decode_image(src_path, args.max_dimension, args.resample)
    except ImageDecodeError as exc:
        error(f"{src_path.name}: {exc}")
        return False
    height, width = source.shape[0], source.shape[1]
    if args.debug:
        debug_log(key_value_pairs_to_string([("Loaded", f"{width}x{height}")]))

    colorize = not args.no_colorize and len(flat_palette) >= 4
    worker.post(
        ProcessRequest(
            job_id=job_id,
            block_size=args.block_size,
            source=source,
            colorize=colorize,
            palette=flat_palette,
            mapper=args.mapper,
        )
    )
    del source
    reply = _await(worker, job_id)
    if not isinstance(reply, ResultMessage):
        reason = reply.reason if isinstance(reply, ErrorMessage) else "no result"
        error(f"{src_path.name}: {reason}")
        return False
    t_result = time.perf_counter()

    worker.post(ExportRequest(job_id=job_id))
    exported = _await(worker, job_id)
    if not isinstance(exported, ExportFileMessage):
        reason = exported.reason if isinstance(exported, ErrorMessage) else "no file"
        error(f"{src_path.name}: {reason}")
        return False
    out_path.write_bytes(exported.data)
    t_saved = time.perf_counter()
    if args.debug:
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Export", exported.suggested_name),
                    ("Type", exported.media_type),
                    ("Bytes", len(exported.data)),
                ]
            )
        )

    meta = reply.meta
    log(
        f"Wrote {out_path.name} | tiles={meta.tiles_x}x{meta.tiles_y} | "
        f"block={meta.block_size} | mapper={args.mapper if colorize else '-'}"
    )
    if colorize:
        log("Colours used:")
        for hex_code, name, count in colour_usage_report(reply.pixels, name_of_hex):
            log(f"  {hex_code}  {name}: {count:,}")
    log(f"Total tiles: {meta.total_pixels:,}")

    if args.debug:
        debug_log(
            f"Total {format_seconds_compact(t_saved - t_start)}  "
            f"(render={format_seconds_compact(t_result - t_start)}, "
            f"export={format_seconds_compact(t_saved - t_result)})"
        )
    else:
        log(f"Total time {format_seconds_compact(t_saved - t_start)}")
    return True


def _output_path(src: Path, outdir: Optional[Path]) -> Path:
    name = f"{src.stem}{OUTPUT_SUFFIX}.png"
    return (outdir / name) if outdir else src.with_name(name)


# Entry point


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point. Handles a single file or a folder of images.
    Returns the process exit status.
    """
    enable_line_buffered_stdout()
    args = parse_cli_args(argv)

    src = args.src
    if not src.exists():
        error(f"not found: {src}")
        return 2
    if args.palette is not None and not args.palette.exists():
        error(f"palette not found: {args.palette}")
        return 2

    try:
        entries = _load_entries(args.palette, args.tier)
    except ValueError as exc:
        error(f"palette: {exc}")
        return 2
    flat_palette = flatten_palette(entries)
    name_of_hex = {rgba_to_hex(e.rgba): e.key for e in entries if e.rgba[3] > 0}
    if not args.no_colorize and not flat_palette:
        warn("palette has no usable colours; colour mapping disabled")

    print_config_line(
        "run",
        [
            ("Block size", args.block_size),
            ("Mapper", args.mapper),
            ("Colorize", not args.no_colorize and bool(flat_palette)),
            ("Palette", len(entries)),
            ("Tier", args.tier),
        ],
        debug=False,
    )

    if src.is_dir():
        files = sorted(
            (
                p
                for p in src.iterdir()
                if p.is_file()
                and p.suffix.lower() in IMAGE_EXTS
                and not p.stem.endswith(OUTPUT_SUFFIX)
                and is_image_file(p)
            ),
            key=lambda p: p.name.lower(),
        )
        if args.debug:
            debug_log(key_value_pairs_to_string([("Images", len(files))]))
    else:
        files = [src]

    if args.outdir is not None:
        args.outdir.mkdir(parents=True, exist_ok=True)

    failures = 0
    job_ids = itertools.count(1)
    with PixelateWorker(debug=args.debug) as worker:
        for path in files:
            ok = _process_single_image(
                worker,
                next(job_ids),
                path,
                _output_path(path, args.outdir),
                args,
                flat_palette,
                name_of_hex,
            )
            failures += 0 if ok else 1
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
