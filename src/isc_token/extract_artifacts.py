#!/usr/bin/env python3

import json
import os
from argparse import ArgumentParser
from typing import Dict, Iterable, Optional


def split_combined_json(
    combined_json: dict, contract_names: Optional[Iterable[str]] = None
) -> Dict[str, dict]:
    """
    Turns the output of `solc --combined-json abi,bin` into one artifact per contract, in the
    {"contractName", "abi", "bytecode"} shape load_contract reads.
    """
    wanted = None if contract_names is None else set(contract_names)
    artifacts = {}
    for path_and_name, val in combined_json["contracts"].items():
        contract_name = path_and_name.split(":")[-1]
        if wanted is not None and contract_name not in wanted:
            continue

        # Interfaces and abstract contracts have an empty bin. Keep it None so that deploying
        # them fails instead of creating an empty contract.
        bytecode = None
        if len(val["bin"]) > 0:
            bytecode = "0x" + val["bin"]

        # solc-0.6 emits the abi as a json string, solc-0.8 as plain json.
        try:
            abi = json.loads(val["abi"])
        except TypeError:
            abi = val["abi"]

        artifacts[contract_name] = {
            "contractName": contract_name,
            "abi": abi,
            "bytecode": bytecode,
        }
    return artifacts


def main(argv=None):
    parser = ArgumentParser(description="Split a solc combined.json into contract artifacts")
    parser.add_argument(
        "--input_json",
        type=str,
        help="The path to the combined.json file.",
        required=False,
        default="artifacts/combined.json",
    )
    parser.add_argument(
        "--output_dir",
        type=str,
        help="Directory the artifacts are written to.",
        required=False,
        default="artifacts",
    )
    parser.add_argument(
        "--contracts",
        nargs="+",
        help="Only extract these contracts (e.g. NativeTokenController).",
    )
    args = parser.parse_args(argv)

    with open(args.input_json) as combined_file:
        combined_json = json.load(combined_file)

    os.makedirs(args.output_dir, exist_ok=True)
    for contract_name, artifact in split_combined_json(combined_json, args.contracts).items():
        with open(os.path.join(args.output_dir, f"{contract_name}.json"), "w") as artifact_file:
            json.dump(artifact, artifact_file, indent=4)
        print("Extracted", contract_name)


if __name__ == "__main__":
    main()
