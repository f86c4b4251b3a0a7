"""
CLI entry point for the Aesthetic Atoms sketch.

Usage:
    aesthetic-atoms render [options]      # mp4 via ffmpeg, or PNG frames
    aesthetic-atoms view [options]        # live pygame window
    aesthetic-atoms info [options]        # element name and geometry
    python -m aesthetic_atoms <command> [options]
"""

import argparse
import logging
import math
import sys
import time
from dataclasses import asdict
from pathlib import Path

from aesthetic_atoms.atom import VERSIONS, Atom, AtomConfig, AtomConfigError, load_config, preset
from aesthetic_atoms.controls import CONTROLS
from aesthetic_atoms.encoder import encode_video, save_frames
from aesthetic_atoms.sketch import Sketch, SketchConfig

# Map profile to defaults
PROFILES = {
    "low": {"width": 640, "height": 320, "fps": 30, "quality": "fast"},
    "medium": {"width": 1280, "height": 640, "fps": 60, "quality": "medium"},
    "high": {"width": 1920, "height": 960, "fps": 60, "quality": "high"},
}


def _progress_bar(current: int, total: int, width: int = 35):
    """Print a progress bar to stdout."""
    pct = current / max(total, 1) * 100
    filled = int(width * current / max(total, 1))
    bar = "#" * filled + "-" * (width - filled)
    if sys.stdout.isatty():
        sys.stdout.write(f"\r[{bar}] {pct:5.1f}%  frame {current}/{total}")
        sys.stdout.flush()
        if current >= total:
            sys.stdout.write("\n")
    else:
        if current % max(1, total // 20) == 0 or current >= total:
            print(f"{pct:5.1f}%  frame {current}/{total}", flush=True)


def _add_atom_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("--config", type=Path, default=None, help="JSON file with atom settings")
    parser.add_argument(
        "--version-preset", type=str, default="v3", choices=sorted(VERSIONS),
        help="Feature set (v1: basic, v2: + smoothing/noise, v3: + colour cycling)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")

    # Canvas
    parser.add_argument(
        "-p", "--profile", type=str, default="medium",
        choices=sorted(PROFILES),
        help="Target profile (low: 640x320 30fps, medium: 1280x640 60fps, high: 1920x960 60fps)",
    )
    parser.add_argument("--width", type=int, default=None, help="Canvas width (overrides profile)")
    parser.add_argument("--height", type=int, default=None, help="Canvas height (overrides profile)")
    parser.add_argument("-f", "--fps", type=int, default=None, help="Frames per second (overrides profile)")

    # Atom
    parser.add_argument("--nucleus-radius", type=float, default=None, help="Nucleus radius in pixels")
    parser.add_argument("-e", "--electrons", type=int, default=None, help="Number of electrons")
    parser.add_argument("--speed", type=float, default=None, help="Rotations per second")
    parser.add_argument("--tail-spheres", type=int, default=None, help="Spheres per electron trail")
    parser.add_argument("--nucleus-color", type=str, default=None, help="Nucleus colour (#rrggbb)")
    parser.add_argument("--electron-color", type=str, default=None, help="Electron colour (#rrggbb)")
    parser.add_argument("--nucleus-vibrate", action="store_true", help="Jitter the nucleus")
    parser.add_argument("--electron-vibrate", action="store_true", help="Jitter the electron trails")
    parser.add_argument("--noise", action="store_true", help="Draw noise lines inside the nucleus")
    parser.add_argument("--no-orbits", action="store_true", help="Hide the orbit rings")
    parser.add_argument(
        "--spin", type=str, nargs="+", default=None, choices=["x", "y", "z"],
        help="Spin the whole scene about these axes",
    )
    parser.add_argument("--smoothing", action="store_true", help="Enable antialiasing")
    parser.add_argument("--cycle-nucleus", action="store_true", help="Cycle the nucleus hue")
    parser.add_argument("--cycle-electrons", action="store_true", help="Cycle the electron hue")
    parser.add_argument("--cycle-rate", type=float, default=None, help="Hue degrees per frame")

    # Post-processing
    parser.add_argument("--glow", action="store_true", help="Enable glow")
    parser.add_argument("--vignette", type=float, default=0.0, help="Vignette strength (0 disables)")


def build_sketch_config(args: argparse.Namespace) -> SketchConfig:
    """Merge preset, config file and command-line overrides."""
    p_cfg = PROFILES[args.profile]
    atom_cfg = preset(args.version_preset, nucleus_radius=20.0, rots_per_sec=0.75)
    if args.config is not None:
        atom_cfg = load_config(args.config, base=atom_cfg)

    overrides = {
        "nucleus_radius": args.nucleus_radius,
        "electron_count": args.electrons,
        "rots_per_sec": args.speed,
        "tail_spheres": args.tail_spheres,
        "nucleus_color": args.nucleus_color,
        "electron_color": args.electron_color,
        "nucleus_color_cycle_rate": args.cycle_rate,
        "electron_color_cycle_rate": args.cycle_rate,
    }
    flags = {
        "nucleus_vibrate": args.nucleus_vibrate,
        "electron_vibrate": args.electron_vibrate,
        "nucleus_noise": args.noise,
        "smoothing": args.smoothing,
        "nucleus_color_cycle": args.cycle_nucleus,
        "electron_color_cycle": args.cycle_electrons,
    }
    values = {k: v for k, v in overrides.items() if v is not None}
    values.update({k: True for k, v in flags.items() if v})
    for control in CONTROLS.values():
        if control.feature is None or control.attribute not in values:
            continue
        if not getattr(atom_cfg.features, control.feature):
            raise AtomConfigError(
                f"{control.attribute} needs the {control.feature!r} feature, "
                f"which this configuration leaves off"
            )
    if args.no_orbits:
        values["enable_orbits"] = False
    for axis in args.spin or ():
        values[f"spin_{axis}"] = True

    atom_cfg = AtomConfig.from_dict({**atom_cfg.to_dict(), **values})

    return SketchConfig(
        width=args.width or p_cfg["width"],
        height=args.height or p_cfg["height"],
        fps=args.fps or p_cfg["fps"],
        glow_enabled=args.glow,
        vignette_strength=args.vignette,
        atom=atom_cfg,
    )


def _cmd_info(args: argparse.Namespace) -> int:
    cfg = build_sketch_config(args)
    atom = Atom(cfg.atom, seed=args.seed)
    features = [name for name, on in asdict(atom.features).items() if on] or ["none"]
    print(f"Element:         {atom.display_name}")
    print(f"Electrons:       {atom.electron_count} (max {atom.maximum_number_of_electrons})")
    print(f"Nucleus radius:  {atom.nucleus_radius:g}px")
    print(f"Orbit radius:    {atom.radius:g}px")
    print(f"Delta angle:     {math.degrees(atom.delta_angle):.1f} deg")
    print(f"Speed:           {atom.electron_speed:g} rotations/s")
    print(f"Features:        {', '.join(features)}")
    return 0


def _cmd_view(args: argparse.Namespace) -> int:
    from aesthetic_atoms.viewer import run_viewer

    cfg = build_sketch_config(args)
    run_viewer(cfg, seed=args.seed, max_frames=args.max_frames)
    return 0


def _cmd_render(args: argparse.Namespace) -> int:
    cfg = build_sketch_config(args)
    quality = args.quality or PROFILES[args.profile]["quality"]
    total_frames = max(1, int(round(args.duration * cfg.fps)))

    sketch = Sketch(cfg, seed=args.seed)
    sketch.setup()

    print(f"Rendering {total_frames} frames of {sketch.atom.display_name} at {cfg.width}x{cfg.height} @ {cfg.fps}fps")
    t0 = time.time()

    if args.frames_dir is not None:
        frames = sketch.render_frames(total_frames, progress_callback=_progress_bar)
        written = save_frames(frames, args.frames_dir)
        print(f"\nDone! {written} frames in {args.frames_dir}")
    else:
        output = args.output or Path(f"{sketch.atom.display_name.lower().replace(' ', '_')}.mp4")
        frames = sketch.render_frames(total_frames)
        encode_video(
            frame_iterator=frames,
            output_path=output,
            width=cfg.width,
            height=cfg.height,
            fps=cfg.fps,
            quality=quality,
            total_frames=total_frames,
            progress_callback=_progress_bar,
        )
        file_size_mb = output.stat().st_size / 1024 / 1024
        print(f"\nDone! {file_size_mb:.1f} MB")
        print(f"  Output: {output}")

    elapsed = time.time() - t0
    print(f"  Render took {elapsed:.1f}s ({total_frames / max(elapsed, 0.01):.1f} fps)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aesthetic-atoms",
        description="Animated decorative atom: render to video or view live",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Render the animation to mp4 or PNG frames")
    _add_atom_arguments(render)
    render.add_argument("-o", "--output", type=Path, default=None, help="Output MP4 path (default: <element>.mp4)")
    render.add_argument("--frames-dir", type=Path, default=None, help="Write PNG frames here instead of a video")
    render.add_argument("-d", "--duration", type=float, default=5.0, help="Length in seconds (default: 5)")
    render.add_argument(
        "-q", "--quality", type=str, default=None,
        choices=["high", "medium", "fast"],
        help="Encoding quality (defaults to profile quality)",
    )
    render.set_defaults(func=_cmd_render)

    view = sub.add_parser("view", help="Open a live window")
    _add_atom_arguments(view)
    view.add_argument("--max-frames", type=int, default=None, help="Close after N frames")
    view.set_defaults(func=_cmd_view)

    info = sub.add_parser("info", help="Describe the configured atom")
    _add_atom_arguments(info)
    info.set_defaults(func=_cmd_info)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if args.config is not None and not args.config.exists():
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    try:
        code = args.func(args)
    except (ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
