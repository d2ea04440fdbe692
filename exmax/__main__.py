# exmax/__main__.py
"""Command line entry point: fit mixture models to samples read from a text file.

    python -m exmax data/sample1.txt data/output.txt
    python -m exmax data/sample1.txt data/output.txt --search --seed 7
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from ._io import load_samples
from ._optimizer import DEFAULT_DELTA_RATIO, DEFAULT_MAX_ITER, EMOptimizer, OptimizerConfig
from ._report import format_models, trajectory_frame

logger = logging.getLogger("exmax")

DEFAULT_MAX_COMPONENTS = 5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="exmax",
        description="Fit univariate Gaussian mixtures with expectation maximization.",
    )
    parser.add_argument("input", type=str, help="Text file of whitespace-delimited samples")
    parser.add_argument("output", type=str, help="File the model reports are written to")
    parser.add_argument("--max-components", type=int, default=None,
                        help="Largest component count to fit (default: 5; the BIC search is "
                             "unbounded unless this is given)")
    parser.add_argument("--search", action="store_true",
                        help="Pick the component count by BIC instead of fitting 2..max-components")
    parser.add_argument("--delta-ratio", type=float, default=DEFAULT_DELTA_RATIO,
                        help="Minimum fractional log-likelihood gain per iteration")
    parser.add_argument("--max-iter", type=int, default=DEFAULT_MAX_ITER,
                        help="Iteration cap per EM run")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the initial component jitter")
    parser.add_argument("--history-csv", type=str, default=None,
                        help="Also write every iteration of every model as CSV")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every EM iteration")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = OptimizerConfig(delta_ratio=args.delta_ratio, max_iter=args.max_iter)
        optimizer = EMOptimizer(config, seed=args.seed)

        samples = load_samples(args.input)
        if args.search:
            models = [optimizer.create_maximized_model(samples, max_component_count=args.max_components)]
        else:
            max_components = DEFAULT_MAX_COMPONENTS if args.max_components is None else args.max_components
            models = optimizer.create_maximized_models(samples, max_components)

        report = format_models(models)
        print(report, end="")
        Path(args.output).write_text(report, encoding="utf-8")

        if args.history_csv:
            frames = [trajectory_frame(m).assign(components=m.component_count) for m in models]
            pd.concat(frames, ignore_index=True).to_csv(args.history_csv, index=False)
            logger.info("Wrote iteration history to %s", args.history_csv)

    except (ValueError, OSError) as exc:
        print(f"exmax: error: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
