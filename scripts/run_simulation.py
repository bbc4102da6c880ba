#!/usr/bin/env python
"""
Run Pneumatic Simulator: profile-driven run or interactive console

Usage:
    python scripts/run_simulation.py model.json executionProfile.json [--output-dir output]
    python scripts/run_simulation.py model.json --interactive

Output (profile mode):
    <output-dir>/<model name>/simulation_result.csv  - logged element values
    <output-dir>/<model name>/simulation_result.h5   - same data, HDF5
    <output-dir>/<model name>/<model name>_chart.png - pressure / valve chart
"""

import sys
import argparse
import logging
import re
import shutil
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pneumosim.errors import ModelConfigError, NumericalError, ProfileError
from pneumosim.interactive import InteractiveSession
from pneumosim.io import ResultRecorder, load_model, load_profile
from pneumosim.network import SimulationModel
from pneumosim.runner import run_profile

_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]+')


def sanitize_filename(name: str) -> str:
    cleaned = _INVALID_CHARS.sub("_", name or "").strip("_ ")
    return cleaned or "untitled_model"


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Simulate a pneumatic network until steady state",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Profile mode
  python scripts/run_simulation.py model.json executionProfile.json

  # Interactive console (valves / EPU set by hand, dt = 1 ms)
  python scripts/run_simulation.py model.json --interactive
        """,
    )

    parser.add_argument("model", nargs="?", default="model.json", help="Model description JSON (default: model.json)")
    parser.add_argument(
        "profile",
        nargs="?",
        default="executionProfile.json",
        help="Execution profile JSON (default: executionProfile.json)",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default="output",
        help="Root output directory (default: output)",
    )
    parser.add_argument("--interactive", action="store_true", help="Interactive console mode")
    parser.add_argument("--no-chart", action="store_true", help="Do not render the PNG chart")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    return parser.parse_args()


def run_interactive(args) -> int:
    print("--- Pneumatic Simulator Interactive Mode ---")
    print(f"Loading model '{args.model}'...")
    model = SimulationModel.from_spec(load_model(args.model))
    InteractiveSession(model).loop()
    return 0


def run_profile_mode(args) -> int:
    print("Loading configuration...")
    spec = load_model(args.model)
    profile = load_profile(args.profile)
    model = SimulationModel.from_spec(spec, physics=profile.physics)

    out_dir = Path(args.output_dir) / sanitize_filename(spec.model_name)
    out_dir.mkdir(parents=True, exist_ok=True)
    for src in (args.model, args.profile):
        shutil.copy(src, out_dir / Path(src).name)

    print(f"\n{'='*70}")
    print(f"Model: {spec.model_name or '(unnamed)'}")
    print(f"Output directory: {out_dir}")
    print(f"Timestep: {profile.time_step*1000:.1f} ms, hard limit: {profile.hard_time_limit:g} s")
    print(f"{'='*70}\n")

    recorder = ResultRecorder(model.elements)
    result = run_profile(model, profile, recorder=recorder)

    csv_path = recorder.write_csv(out_dir / "simulation_result.csv")
    h5_path = recorder.write_h5(
        out_dir / "simulation_result.h5",
        attrs={
            "model_name": spec.model_name,
            "time_step": profile.time_step,
            "end_time": result.end_time,
            "steady": result.steady,
        },
    )
    print(f"\nSimulation finished at T={result.end_time:.4f}s ({result.steps} steps, steady={result.steady})")
    print(f"Output files:")
    print(f"  - {csv_path}")
    print(f"  - {h5_path}")

    if not args.no_chart:
        from pneumosim.io.charts import plot_results

        chart = plot_results(recorder.to_frame(), spec, out_dir / f"{sanitize_filename(spec.model_name)}_chart.png")
        print(f"  - {chart}")
    return 0


def main():
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        code = run_interactive(args) if args.interactive else run_profile_mode(args)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(1)
    except FileNotFoundError as e:
        print(f"Error: file not found: {e}")
        sys.exit(1)
    except (ModelConfigError, ProfileError) as e:
        print(f"Configuration error: {e}")
        sys.exit(1)
    except NumericalError as e:
        print(f"\nFATAL: {e}")
        sys.exit(2)
    sys.exit(code)


if __name__ == "__main__":
    main()
