import sys
import os
import json
import argparse
import logging
from calc.scenario_runner import run_scenario
from render.renderers import RENDERER_REGISTRY, renderer_for

INPUT_DIR = os.path.normpath(os.path.join(os.path.dirname(__file__), '..', 'input-parameters'))

EXIT_MISSING_SCENARIO = 1
EXIT_VALIDATION_ERRORS = 2


def scenario_path(scenario_name: str) -> str:
    return os.path.join(INPUT_DIR, scenario_name, 'spec.json')


def list_scenarios() -> list:
    """Names of folders in input-parameters that hold a spec.json."""
    if not os.path.isdir(INPUT_DIR):
        return []
    return sorted(name for name in os.listdir(INPUT_DIR) if os.path.exists(scenario_path(name)))


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Pillar Two (GloBE) calculators',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Modes (default depends on the scenario's tool):
  GloBE        Single-jurisdiction GloBE top-up tax derivation
  GloBESteps   Guided ETR / SBIE / top-up tax steps
  SafeHarbour  Transitional CbCR Safe Harbour tests
  Deadline     GIR filing deadline and milestones
  GIR          GIR practice form summary and cross-checks
  DFE          Designated Filing Entity ranking
  Audit        GIR audit file checklist progress and gaps
  Json         Full result as JSON

Examples:
  python src/Program.py ireland-2024
  python src/Program.py ireland-2024 --mode Json
  python src/Program.py --list
        """
    )
    parser.add_argument('scenario_name', nargs='?', help='Name of the scenario (folder in input-parameters)')
    parser.add_argument('--mode', '-m',
                        choices=list(RENDERER_REGISTRY.keys()),
                        default=None,
                        help="Output mode (defaults to the scenario tool's renderer)")
    parser.add_argument('--list', '-l',
                        action='store_true',
                        help='List available scenarios')
    parser.add_argument('--verbose', '-v',
                        action='store_true',
                        help='Log calculator activity to stderr')

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
                        stream=sys.stderr)

    if args.list:
        for name in list_scenarios():
            print(name)
        return 0

    if not args.scenario_name:
        parser.error("scenario_name is required (or use --list to see available scenarios)")

    spec_path = scenario_path(args.scenario_name)
    if not os.path.exists(spec_path):
        print(f"Scenario file not found: {spec_path}")
        sys.exit(EXIT_MISSING_SCENARIO)
    with open(spec_path, 'r', encoding='utf-8') as f:
        spec = json.load(f)

    try:
        scenario = run_scenario(spec, name=args.scenario_name)
        renderer = renderer_for(scenario, args.mode)
    except ValueError as e:
        print(f"Invalid scenario '{args.scenario_name}': {e}")
        sys.exit(EXIT_VALIDATION_ERRORS)

    renderer.render(scenario)

    if scenario.errors:
        sys.exit(EXIT_VALIDATION_ERRORS)
    return 0


if __name__ == "__main__":
    main()
