"""
B+ Tree Workbench
=================
Entry point for the B+ Tree demo and experiments.

Usage:
    python main.py [options]

Options:
    --help              Show help
    --demo              Run only the order-3 example
    --experiment        Run only the randomized experiments
    --seed N            Seed for the experiment RNG
    --records N         Number of random records (default 10000)
    --pairs             Print leaves as (key, value) pairs
    --quiet             Do not print trees during experiments
    --verbose           Enable debug logging of splits and merges

Default:
    Runs the example, then the experiments.
"""

import logging
import sys

from cli.renderer import TreeRenderer


def print_help():
    print("""
B+ Tree Workbench

Usage:
    python main.py                      Example, then experiments
    python main.py --demo               Order-3 example only
    python main.py --experiment         Randomized experiments only

Options:
    --help          Show this help
    --seed N        Seed for the experiment RNG
    --records N     Number of random records (default 10000)
    --pairs         Print leaves as (key, value) pairs
    --quiet         Do not print trees during experiments
    --verbose       Debug logging of splits, borrows and merges
""")


def run_demo(renderer: TreeRenderer):
    """Build and print the order-3 example tree."""
    from experiments.workload import run_simple_example

    renderer.render_message("SIMPLE EXP: ")
    tree = run_simple_example(renderer)
    values = list(tree.range_search(9, 29))
    renderer.render_message(f"range_search(9, 29) -> {values}")
    renderer.render_message("")
    renderer.render_message("SIMPLE EXP DONE!")
    renderer.render_message("---------------------------")
    renderer.render_message("")
    return tree


def run_experiments(renderer: TreeRenderer, seed=None, records=None, quiet=False):
    """Run the randomized experiments, printing trees unless quiet."""
    from experiments.workload import ExperimentConfig, perform_experiments

    config = ExperimentConfig(seed=seed)
    if records is not None:
        config.num_records = records

    trees = perform_experiments(config, None if quiet else renderer)
    for name, tree in trees.items():
        renderer.render_message(
            f"{name}: {tree.entry_count} entries, height {tree.tree_height}")
    return trees


def _parse_int(args, i: int, option: str) -> int:
    if i + 1 >= len(args):
        raise ValueError(f"{option} requires a value")
    try:
        return int(args[i + 1])
    except ValueError:
        raise ValueError(f"{option} expects an integer, got {args[i + 1]!r}")


def main(argv=None) -> int:
    """Parse CLI arguments and dispatch. Returns the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)

    if "--help" in args or "-h" in args:
        print_help()
        return 0

    renderer = TreeRenderer()
    demo = False
    experiment = False
    seed = None
    records = None
    quiet = False

    i = 0
    try:
        while i < len(args):
            if args[i] == "--demo":
                demo = True
                i += 1
            elif args[i] == "--experiment":
                experiment = True
                i += 1
            elif args[i] == "--seed":
                seed = _parse_int(args, i, "--seed")
                i += 2
            elif args[i] == "--records":
                records = _parse_int(args, i, "--records")
                i += 2
            elif args[i] == "--pairs":
                renderer.mode = "pairs"
                i += 1
            elif args[i] == "--quiet":
                quiet = True
                i += 1
            elif args[i] == "--verbose":
                logging.basicConfig(level=logging.DEBUG)
                i += 1
            else:
                print(f"Unknown option: {args[i]}", file=sys.stderr)
                print_help()
                return 1
    except ValueError as e:
        renderer.render_error(e)
        return 1

    if not demo and not experiment:
        demo = experiment = True

    try:
        if demo:
            run_demo(renderer)
        if experiment:
            run_experiments(renderer, seed=seed, records=records, quiet=quiet)
    except Exception as e:
        renderer.render_error(e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
