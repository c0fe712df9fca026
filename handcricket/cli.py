#!/usr/bin/env python3
"""
handcricket/cli.py - Command line interface for the hand cricket Blink

Usage:
    handcricket serve [--port 8000] [--config path/to/config.toml]
    handcricket addresses <account> [--program <program_id>]
    handcricket onchain [<account>] [--config path/to/config.toml]
"""

import argparse
import logging
import sys
from pathlib import Path

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def cmd_serve(args):
    """Start the Blink server."""
    try:
        import uvicorn
    except ImportError:
        logger.error("Serving requires uvicorn: pip install uvicorn")
        return 1

    from blink.server import app

    # Set config path on app state so lifespan picks it up
    if args.config:
        if not Path(args.config).exists():
            logger.error(f"Config file not found: {args.config}")
            return 1
        app.state.config_path = args.config
    logger.info(f"Starting hand cricket Blink on port {args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")
    return 0


def cmd_addresses(args):
    """Print the PDAs a player's transactions will touch."""
    from handcricket.chain import MalformedIdentifier, parse_pubkey, player_addresses, program_id
    from handcricket.config import load_config

    try:
        account = parse_pubkey(args.account)
    except MalformedIdentifier as e:
        logger.error(str(e))
        return 1

    program_str = args.program or load_config().chain.program_id
    try:
        program = program_id(program_str)
    except ValueError:
        logger.error(f"Invalid program id: {program_str}")
        return 1

    addrs = player_addresses(account, program)
    print(f"\n🏏 Accounts for {addrs.player}")
    print(f"   Program:      {program}")
    print(f"   Tournament:   {addrs.tournament}")
    print(f"   Player stats: {addrs.player_stats}")
    print(f"   Game account: {addrs.game_account}")
    print()
    return 0


def cmd_onchain(args):
    """Show the program's tournament account (and a player's stats, if given)."""
    from handcricket.chain import (
        ChainUnavailable,
        MalformedIdentifier,
        fetch_player_stats,
        fetch_tournament,
        parse_pubkey,
        program_id,
    )
    from handcricket.config import LAMPORTS_PER_SOL, load_config

    config = load_config(Path(args.config) if args.config else None)
    program = program_id(config.chain.program_id)
    rpc_url = config.chain.rpc_url

    try:
        tournament = fetch_tournament(rpc_url, program)
        if tournament is None:
            logger.error(f"No tournament account for program {program}")
            return 1
        print(f"\n🏆 Tournament ({program})")
        print(f"   Admin:    {tournament.admin}")
        print(f"   Players:  {tournament.players_registered}/{tournament.max_players}")
        print(f"   Pot:      {tournament.total_pot / LAMPORTS_PER_SOL} SOL")
        print(f"   Active:   {'yes' if tournament.is_active else 'no'}")

        if args.account:
            player = parse_pubkey(args.account)
            stats = fetch_player_stats(player, rpc_url, program)
            if stats is None:
                print(f"\n   {player} has not registered on-chain")
            else:
                print(f"\n   {stats.player}")
                print(f"   Best score:   {stats.best_score}")
                print(f"   Games played: {stats.games_played}")
        print()
    except (ChainUnavailable, MalformedIdentifier) as e:
        logger.error(str(e))
        return 1
    return 0


def main():
    parser = argparse.ArgumentParser(
        prog="handcricket",
        description="Hand cricket tournament Blink",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start the Blink server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    serve_parser.add_argument("--port", "-p", type=int, default=8000, help="Server port (default: 8000)")
    serve_parser.add_argument("--config", "-c", default=None, help="Path to config.toml")
    serve_parser.set_defaults(func=cmd_serve)

    # addresses command
    addr_parser = subparsers.add_parser("addresses", help="Show a player's program accounts")
    addr_parser.add_argument("account", help="Player wallet address (base58)")
    addr_parser.add_argument("--program", default=None, help="Program id (default: from config)")
    addr_parser.set_defaults(func=cmd_addresses)

    # onchain command
    onchain_parser = subparsers.add_parser("onchain", help="Read the tournament account from the chain")
    onchain_parser.add_argument("account", nargs="?", default=None, help="Also show this player's stats")
    onchain_parser.add_argument("--config", "-c", default=None, help="Path to config.toml")
    onchain_parser.set_defaults(func=cmd_onchain)

    args = parser.parse_args()
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
