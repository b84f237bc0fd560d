import json
import os
from pathlib import Path
from typing import Union

from eth_utils import add_0x_prefix, to_hex

from isc_token.errors import ConfigurationError

# Interface ABIs of the ISC precompiles and the native token ERC20 wrapper.
ABI_DIR = os.path.join(os.path.dirname(__file__), "abi")


def load_abi(name: str) -> list:
    """
    Loads a packaged interface ABI by name (e.g. "ISCSandbox").
    """
    return json.loads(Path(ABI_DIR, f"{name}.json").read_text())


def load_contract(path: Union[str, Path]) -> dict:
    """
    Loads a compiled contract artifact. Hardhat, brownie and extract_artifacts all produce a json
    object with "abi" and "bytecode" keys.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Contract artifact not found: {path}")
    try:
        artifact = json.loads(path.read_text())
    except json.JSONDecodeError as err:
        raise ConfigurationError(f"Contract artifact {path} is not valid json: {err}") from err

    abi = artifact.get("abi")
    bytecode = artifact.get("bytecode")
    # Foundry artifacts nest the bytecode as {"object": ...}.
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object")
    if abi is None:
        raise ConfigurationError(f"Contract artifact {path} has no abi")
    if not bytecode or bytecode == "0x":
        raise ConfigurationError(f"Contract artifact {path} has no bytecode")

    return {
        "contractName": artifact.get("contractName", path.stem),
        "abi": abi,
        "bytecode": add_0x_prefix(bytecode),
    }


def hex_str(value: Union[bytes, str, int]) -> str:
    """
    Renders bytes (or HexBytes) as a 0x prefixed lowercase hex string, strings are passed through.
    """
    if isinstance(value, str):
        return add_0x_prefix(value).lower()
    return to_hex(value)
