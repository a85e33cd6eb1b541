"""Entry point for points computation"""
import argparse
import json
import logging
import sys
import traceback
from typing import List, Optional

from visibility_points.config import settings
from visibility_points.db import db
from visibility_points.merkle import verify_merkle_proof
from visibility_points.models.response import ProofVerificationResponse
from visibility_points.points import PointsComputer
from visibility_points.services.storage import StorageService

logging.basicConfig(level=logging.INFO, format='%(message)s')
logger = logging.getLogger(__name__)

def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2))

def compute(args: argparse.Namespace) -> None:
    """Compute, commit and store points for each day of the range."""
    # Log config (excluding sensitive data)
    safe_config = settings.model_dump(mode='json', exclude={'DB_PASSWORD', 'DATABASE_URL', 'SUBGRAPH_API_KEY'})
    logger.info("Using configuration:")
    logger.info(json.dumps(safe_config, indent=2))

    if args.dry_run:
        results = PointsComputer(settings).compute(args.from_, args.to)
    else:
        db.connect()
        with db.session() as session:
            storage = StorageService(session, chunk_size=settings.INSERT_CHUNK_SIZE)
            results = PointsComputer(settings, storage=storage).compute(args.from_, args.to)

    _print_json([result.model_dump(mode='json') for result in results])
    logger.info(f"Points computation complete for {len(results)} day(s)")

def show(args: argparse.Namespace) -> None:
    """Print stored points of an address."""
    db.connect()
    with db.session() as session:
        rows = StorageService(session).get_claimable_points_for_user(args.address, args.from_, args.to)
    _print_json([row.model_dump(mode='json') for row in rows])

def verify(args: argparse.Namespace) -> None:
    """Check a claim against a merkle root."""
    valid = verify_merkle_proof(args.address, args.points, args.decimals, args.root, args.proof)
    response = ProofVerificationResponse(
        user_address=args.address.lower(),
        points=args.points,
        decimals=args.decimals,
        merkle_root=args.root,
        valid=valid
    )
    _print_json(response.model_dump(mode='json'))
    if not valid:
        sys.exit(2)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='visibility_points', description="Daily points and merkle proofs")
    subparsers = parser.add_subparsers(dest='command', required=True)

    compute_parser = subparsers.add_parser('compute', help="Compute points for a range of days (default: yesterday)")
    compute_parser.add_argument('--from', dest='from_', help="First day, YYYY-MM-DD")
    compute_parser.add_argument('--to', help="Last day, YYYY-MM-DD")
    compute_parser.add_argument('--dry-run', action='store_true', help="Do not write to the database")
    compute_parser.set_defaults(handler=compute)

    show_parser = subparsers.add_parser('show', help="Show stored points of an address (default: previous week)")
    show_parser.add_argument('address')
    show_parser.add_argument('--from', dest='from_', help="First day, YYYY-MM-DD")
    show_parser.add_argument('--to', help="Last day, YYYY-MM-DD")
    show_parser.set_defaults(handler=show)

    verify_parser = subparsers.add_parser('verify', help="Verify a merkle proof")
    verify_parser.add_argument('address')
    verify_parser.add_argument('points', help="Points as a decimal string")
    verify_parser.add_argument('root', help="Merkle root, 0x-prefixed")
    verify_parser.add_argument('proof', nargs='*', help="Proof hashes, leaf to root")
    verify_parser.add_argument('--decimals', type=int, default=settings.POINTS_DECIMALS)
    verify_parser.set_defaults(handler=verify)

    return parser

def run(argv: Optional[List[str]] = None) -> None:
    """Parse arguments and run the selected command."""
    args = build_parser().parse_args(argv)
    try:
        args.handler(args)
    except Exception as e:
        logger.error(f"Error during {args.command}: {e}")
        traceback.print_exc()
        sys.exit(1)
    finally:
        db.close()

if __name__ == "__main__":
    run()
