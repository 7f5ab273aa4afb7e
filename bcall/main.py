#!/usr/bin/env python3
"""
B-Call Voting Blocs - Main Analysis Script

Scores legislators on ideological position (d1) and voting dispersion (d2),
splitting them into two voting blocs anchored on a pivot legislator.

Usage:
    python -m bcall.main --rollcall-csv data/CHL-DIP-2022.csv
    python -m bcall.main --votes data/votes.xlsx --legislators data/legislators.xlsx
    python -m bcall.main --congress 117 --chamber House
    python -m bcall.main --rollcall-csv data/rollcall.csv --pivot Becker_Alvear_Gonzalo
    python -m bcall.main --rollcall-csv data/rollcall.csv --sensitivity 0.1 0.3 0.5 0.7
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from bcall.src.analysis import (
    AnalysisConfig,
    BCallAnalysis,
    DEFAULT_THRESHOLD,
    compare_blocs_to_parties,
    export_results,
    generate_report,
    run_sensitivity,
)
from bcall.src.data_acquisition import VoteviewDataLoader, load_rollcall_csv, load_vote_files
from bcall.src.errors import BCallError
from bcall.src.rollcall import RollcallMatrix

logger = logging.getLogger(__name__)

PARTY_COLUMNS = ('partido_alias', 'partido', 'party', 'party_name', 'party_code')


def load_matrix(args: argparse.Namespace) -> Tuple[RollcallMatrix, Optional[pd.DataFrame]]:
    """
    Load the roll-call matrix from the source selected on the command line.

    Returns:
        Tuple of (matrix, legislator info or None).
    """
    if args.rollcall_csv:
        return load_rollcall_csv(args.rollcall_csv), None

    if args.votes:
        return load_vote_files(args.votes, args.legislators)

    loader = VoteviewDataLoader(args.data_dir)
    matrix, _ = loader.load_congress(args.congress, chamber=args.chamber)
    return matrix, None


def party_labels(info: Optional[pd.DataFrame]) -> Optional[pd.Series]:
    """First party-like column of the legislator info, if any."""
    if info is None:
        return None
    for column in PARTY_COLUMNS:
        if column in info.columns:
            return info[column].dropna().astype(str)
    return None


def analyze(args: argparse.Namespace) -> int:
    """Run the analysis described by the parsed arguments."""
    config = AnalysisConfig(
        metric=args.metric,
        pivot=args.pivot,
        threshold=args.threshold,
        auto_pivot=not args.no_auto_pivot,
        normalize=args.normalize,
    )

    matrix, info = load_matrix(args)
    result = BCallAnalysis(config).run(matrix)

    report = generate_report(result)
    parties = party_labels(info)
    if parties is not None:
        parties = parties[[leg in result.clustering for leg in parties.index]]
    if parties is not None and len(parties) < 2:
        logger.warning("Fewer than two analyzed legislators have a party label; skipping party comparison")
    elif parties is not None:
        comparison = compare_blocs_to_parties(result, parties)
        report += (
            "\n\n## Blocs vs Parties"
            f"\n  Legislators Compared: {comparison['n_compared']}"
            f"\n  NMI: {comparison['nmi']:.4f}"
            f"\n  Adjusted Rand Index: {comparison['ari']:.4f}"
        )

    output_dir = Path(args.output)
    paths = export_results(result, output_dir, prefix=args.prefix)
    report_path = output_dir / f"{args.prefix}_report.txt"
    with open(report_path, 'w') as f:
        f.write(report)
    logger.info(f"Saved report to {report_path}")

    if args.sensitivity:
        summary, _ = run_sensitivity(matrix, args.sensitivity, config)
        sensitivity_path = output_dir / f"{args.prefix}_sensitivity.csv"
        summary.to_csv(sensitivity_path, index=False)
        logger.info(f"Saved sensitivity analysis to {sensitivity_path}")
        paths['sensitivity'] = sensitivity_path

    print(report)
    print(f"\nFiles written: {', '.join(str(p) for p in paths.values())}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="B-Call analysis: ideological position and cohesion scores with voting blocs"
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        '--rollcall-csv', type=str, default=None,
        help='Wide roll-call CSV (legislators as rows, votes as columns)'
    )
    source.add_argument(
        '--votes', type=str, default=None,
        help='Long-format votes file (CSV or Excel)'
    )
    source.add_argument(
        '--congress', type=int, default=None,
        help='Voteview Congress number to download and analyze'
    )
    parser.add_argument(
        '--legislators', type=str, default=None,
        help='Legislator metadata file (CSV or Excel), used with --votes'
    )
    parser.add_argument(
        '--chamber', type=str, choices=['House', 'Senate'], default=None,
        help='Chamber filter, used with --congress'
    )
    parser.add_argument(
        '--data-dir', type=str, default='data/raw',
        help='Download directory for Voteview data (default: data/raw)'
    )
    parser.add_argument(
        '--metric', type=str, choices=['manhattan', 'euclidean'], default='manhattan',
        help='Distance metric for bloc partitioning (default: manhattan)'
    )
    parser.add_argument(
        '--pivot', type=str, default=None,
        help='Pivot legislator (default: selected automatically)'
    )
    parser.add_argument(
        '--no-auto-pivot', action='store_true',
        help='Disable automatic pivot selection (requires --pivot)'
    )
    parser.add_argument(
        '--threshold', type=float, default=DEFAULT_THRESHOLD,
        help=f'Minimum participation to be scored (default: {DEFAULT_THRESHOLD})'
    )
    parser.add_argument(
        '--normalize', action='store_true',
        help='Divide distances by the number of shared votes'
    )
    parser.add_argument(
        '--sensitivity', type=float, nargs='+', default=None,
        metavar='THRESHOLD',
        help='Also run a sensitivity analysis over these thresholds'
    )
    parser.add_argument(
        '--output', type=str, default='output',
        help='Output directory (default: output)'
    )
    parser.add_argument(
        '--prefix', type=str, default='bcall',
        help='Output file prefix (default: bcall)'
    )
    parser.add_argument(
        '--verbose', action='store_true',
        help='Enable debug logging'
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        return analyze(args)
    except BCallError as e:
        logger.error(f"Analysis failed at stage '{e.stage}': {e.message}")
        return 1
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Analysis failed while loading data: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
