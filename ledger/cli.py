"""
Command-line interface for the match ledger.
"""

import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from project root
load_dotenv(Path(__file__).parent.parent / '.env')

from ledger.constants import BACKEND_NAMES
from ledger.elo import leaderboard
from ledger.models import describe_match
from ledger.service import LedgerService, ValidationError
from ledger.store import StorageError, select_store

RESULT_CHOICES = {
    'a': 'AWins',
    'b': 'BWins',
    'draw': 'Draw',
}


def print_matches(matches):
    """Print the match history, oldest first."""
    if not matches:
        print("No matches recorded.")
        return
    print(f"\n{'Recorded at':<26} Match")
    print("-" * 70)
    for match in matches:
        print(f"{match.recorded_at:<26} {describe_match(match)}")
    print()


def print_ratings(ratings: dict):
    """Print the current ratings table, highest first."""
    if not ratings:
        print("No matches recorded yet.")
        return
    print(f"\n{'#':>3}  {'Participant':<30} {'Elo':>6}")
    print("-" * 42)
    for rank, (participant, rating) in enumerate(leaderboard(ratings), 1):
        print(f"{rank:>3}  {participant:<30} {rating:>6}")
    print()


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Match ledger with Elo ratings",
        epilog="Storage is chosen from the environment: KV_REST_API_URL/KV_REST_API_TOKEN, "
               "else LEDGER_FILE_PATH (default data/matches.json), else memory"
    )
    parser.add_argument("--list", action="store_true",
                        help="List all recorded matches")
    parser.add_argument("--ratings", action="store_true",
                        help="Show current Elo ratings")
    parser.add_argument("--add", type=str, nargs=2, metavar=("A", "B"),
                        help="Record a match between participants A and B")
    parser.add_argument("--result", "-r", type=str, default="draw", choices=sorted(RESULT_CHOICES),
                        help="With --add: 'a' if A won, 'b' if B won, 'draw' (default: draw)")
    parser.add_argument("--delete", type=str, default=None, metavar="RECORDED_AT",
                        help="Delete the match recorded at this timestamp")
    parser.add_argument("--backend", type=str, default=None, choices=BACKEND_NAMES,
                        help="Force a storage backend instead of detecting one")
    parser.add_argument("--serve", action="store_true",
                        help="Run the web API")
    parser.add_argument("--port", type=int, default=None,
                        help="With --serve: port to listen on (default: $PORT or 5000)")

    args = parser.parse_args(argv)

    if args.backend:
        os.environ['LEDGER_BACKEND'] = args.backend

    if args.serve:
        from web.app import create_app
        app = create_app()
        port = args.port or int(os.environ.get('PORT', 5000))
        app.run(host='0.0.0.0', port=port)
        return

    if not (args.list or args.ratings or args.add or args.delete):
        parser.print_help()
        sys.exit(0)

    try:
        service = LedgerService(select_store())
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    try:
        if args.add:
            participant_a, participant_b = args.add
            matches = service.record_match({
                'participantA': participant_a,
                'participantB': participant_b,
                'outcome': RESULT_CHOICES[args.result],
            })
            added = matches[-1]
            print(f"Recorded: {describe_match(added)} ({added.recorded_at})")

        if args.delete:
            before = len(service.list_matches())
            matches = service.delete_match(args.delete)
            if len(matches) < before:
                print(f"Deleted match recorded at {args.delete}")
            else:
                print(f"No match recorded at {args.delete}")
    except ValidationError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except StorageError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.list:
        print_matches(service.list_matches())

    if args.ratings:
        print_ratings(service.ratings())
