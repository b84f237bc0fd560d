#!/usr/bin/env python3

import sys
from argparse import ArgumentParser, ArgumentTypeError
from dataclasses import replace

from dotenv import find_dotenv, load_dotenv

from isc_token.chain import connect
from isc_token.config import NETWORK_VARIABLES, ORIGIN_TESTNET, TARGET_TESTNET, load_config
from isc_token.deployer import DeploymentSummary, NativeTokenDeployer
from isc_token.utils import load_contract


def positive_float(value: str) -> float:
    try:
        result = float(value)
    except ValueError:
        raise ArgumentTypeError(f"{value!r} is not a number") from None
    if result <= 0:
        raise ArgumentTypeError(f"{value!r} is not positive")
    return result


def parse_args(argv=None):
    parser = ArgumentParser(
        description="Deploy a NativeTokenController and bridge its token to the target chain"
    )
    parser.add_argument(
        "--network",
        type=str,
        choices=list(NETWORK_VARIABLES),
        default=ORIGIN_TESTNET,
        help="The network the controller is deployed on.",
    )
    parser.add_argument(
        "--target_network",
        type=str,
        choices=list(NETWORK_VARIABLES),
        default=TARGET_TESTNET,
        help="The network the wrapped ERC20 is registered on.",
    )
    parser.add_argument(
        "--artifact",
        type=str,
        help="Compiled NativeTokenController json. Overrides CONTROLLER_ARTIFACT.",
    )
    parser.add_argument("--env_file", type=str, help="Read environment variables from this file.")
    parser.add_argument("--rpc_timeout", type=positive_float, help="Seconds per RPC request.")
    parser.add_argument(
        "--receipt_timeout", type=positive_float, help="Seconds to wait for a transaction."
    )
    parser.add_argument(
        "--settle_interval",
        type=positive_float,
        help="Seconds between polls of the target chain for the wrapped ERC20.",
    )
    parser.add_argument(
        "--settle_timeout",
        type=positive_float,
        help="Seconds to wait for the wrapped ERC20 to show up on the target chain.",
    )
    return parser.parse_args(argv)


def run(args) -> DeploymentSummary:
    config = load_config(deploy_network=args.network, target_network=args.target_network)
    overrides = {
        "controller_artifact": args.artifact,
        "rpc_timeout": args.rpc_timeout,
        "receipt_timeout": args.receipt_timeout,
        "settle_interval": args.settle_interval,
        "settle_timeout": args.settle_timeout,
    }
    config = replace(config, **{key: val for key, val in overrides.items() if val is not None})

    compiled_controller = load_contract(config.controller_artifact)
    origin = connect(
        config.deploying, rpc_timeout=config.rpc_timeout, receipt_timeout=config.receipt_timeout
    )
    target = connect(
        config.target, rpc_timeout=config.rpc_timeout, receipt_timeout=config.receipt_timeout
    )
    deployer = NativeTokenDeployer(
        config=config, origin=origin, target=target, compiled_controller=compiled_controller
    )
    return deployer.run()


def main(argv=None) -> int:
    try:
        args = parse_args(argv)
    except SystemExit as err:
        # argparse has already printed the usage error, or the help for --help.
        return 0 if err.code in (0, None) else 1
    # Variables already set in the process environment win over the file.
    load_dotenv(args.env_file or find_dotenv(usecwd=True))
    try:
        run(args)
    except Exception as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
