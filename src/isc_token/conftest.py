import itertools
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
from eth_abi import encode
from eth_utils import event_abi_to_log_topic, keccak, to_checksum_address
from eth_utils.abi import collapse_if_tuple

from isc_token.config import (
    ORIGIN_TESTNET,
    TARGET_TESTNET,
    DeploymentConfig,
    NetworkConfig,
)

# Well known development account (hardhat / anvil account #0).
DEPLOYER_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
DEPLOYER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
TARGET_ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"

ORIGIN_CHAIN_ID = 1074
TARGET_CHAIN_ID = 1075
ORIGIN_ISC_CHAIN_ID = bytes.fromhex("aa" * 32)
TARGET_ISC_CHAIN_ID = bytes.fromhex("e7" + "00" * 30 + "01")
NATIVE_TOKEN_ID = bytes.fromhex("08" + "aa" * 32 + "00000003" + "00")

TOKEN_NAME = "Test"
TOKEN_SYMBOL = "TST"
TOKEN_DECIMALS = 6
TOKEN_SUPPLY = 1000
SERIAL_NUM = 3
ERC20_ADDRESS = to_checksum_address("0x" + "aa" * 20)
WRAPPED_ERC20_ADDRESS = to_checksum_address("0x" + "bb" * 20)

ENVIRON = {
    "TOKEN_NAME": TOKEN_NAME,
    "TOKEN_SYMBOL": TOKEN_SYMBOL,
    "TOKEN_DECIMALS": str(TOKEN_DECIMALS),
    "TOKEN_SUPPLY": str(TOKEN_SUPPLY),
    "TARGET_ADDRESS": TARGET_ADDRESS.lower(),
    "ORIGIN_NODE_URL": "http://origin.local:8545",
    "ORIGIN_NETWORK_ID": str(ORIGIN_CHAIN_ID),
    "TARGET_NODE_URL": "http://target.local:8545",
    "TARGET_NETWORK_ID": str(TARGET_CHAIN_ID),
    "DEPLOYER_PRIVATE_KEY": DEPLOYER_PRIVATE_KEY,
}


def _event(name: str, *inputs: Tuple[str, str, bool]) -> dict:
    return {
        "anonymous": False,
        "inputs": [
            {"indexed": indexed, "internalType": arg_type, "name": arg_name, "type": arg_type}
            for arg_name, arg_type, indexed in inputs
        ],
        "name": name,
        "type": "event",
    }


def _function(name: str, *inputs: Tuple[str, str], payable: bool = False) -> dict:
    return {
        "inputs": [
            {"internalType": arg_type, "name": arg_name, "type": arg_type}
            for arg_name, arg_type in inputs
        ],
        "name": name,
        "outputs": [],
        "stateMutability": "payable" if payable else "nonpayable",
        "type": "function" if name != "constructor" else "constructor",
    }


NATIVE_TOKEN_CONTROLLER_ABI = [
    {
        "inputs": [
            {"internalType": "string", "name": "_tokenName", "type": "string"},
            {"internalType": "string", "name": "_tokenSymbol", "type": "string"},
            {"internalType": "uint8", "name": "_tokenDecimals", "type": "uint8"},
            {"internalType": "uint256", "name": "_maximumSupply", "type": "uint256"},
            {"internalType": "uint64", "name": "_storageDeposit", "type": "uint64"},
        ],
        "stateMutability": "payable",
        "type": "constructor",
    },
    _event("FoundryCreated", ("serialNum", "uint32", False)),
    _event("ERC20NativeTokenRegistered", ("erc20Token", "address", False)),
    _event("NativeTokensMinted", ("foundrySN", "uint32", True), ("amount", "uint256", False)),
    _function(
        "registerERC20NativeTokenOnRemoteChain",
        ("_name", "string"),
        ("_symbol", "string"),
        ("_decimals", "uint8"),
        ("_targetChain", "bytes"),
        ("_storageDeposit", "uint64"),
    ),
    _function("mintTokens", ("_amount", "uint256"), ("_storageDeposit", "uint64")),
    _function("transfer", ("_amount", "uint256"), ("_destination", "address")),
    _function(
        "sendCrossChain",
        ("_targetChainAddress", "bytes"),
        ("_destination", "address"),
        ("_chainID", "bytes32"),
        ("_amount", "uint256"),
        ("_storageDeposit", "uint64"),
    ),
]

NATIVE_TOKEN_CONTROLLER = {
    "contractName": "NativeTokenController",
    "abi": NATIVE_TOKEN_CONTROLLER_ABI,
    "bytecode": "0x6080604052",
}


def make_log(abi: list, name: str, address: str, **values) -> dict:
    """
    Builds a raw log the way a node returns it, for the named event of the abi.
    """
    (event_abi,) = [entry for entry in abi if entry.get("type") == "event" and entry["name"] == name]
    topics = [event_abi_to_log_topic(event_abi)]
    data_types, data_values = [], []
    for arg in event_abi["inputs"]:
        arg_type = collapse_if_tuple(arg)
        if arg["indexed"]:
            topics.append(encode([arg_type], [values[arg["name"]]]))
        else:
            data_types.append(arg_type)
            data_values.append(values[arg["name"]])
    return {
        "address": address,
        "topics": topics,
        "data": encode(data_types, data_values),
        "logIndex": 0,
    }


def make_receipt(*logs: dict, tx_hash: bytes = b"\x11" * 32, **fields) -> dict:
    for index, log in enumerate(logs):
        log["logIndex"] = index
    receipt = {"transactionHash": tx_hash, "status": 1, "logs": list(logs)}
    receipt.update(fields)
    return receipt


class FakeFunction:
    def __init__(self, contract: "FakeContract", name: str):
        self.contract = contract
        self.name = name

    def call(self, *args, call_args: Optional[dict] = None) -> Any:
        chain = self.contract.chain
        chain.journal.append(("call", chain.name, self.contract.address, self.name, args))
        value = chain.views[self.name]
        return value(*args) if callable(value) else value

    def transact(self, *args, transact_args: Optional[dict] = None):
        chain = self.contract.chain
        chain.journal.append(("transact", chain.name, self.contract.address, self.name, args))
        receipt = chain.receipts.get(self.name)
        if callable(receipt):
            return receipt(self.contract, *args)
        return receipt if receipt is not None else make_receipt()


class FakeContract:
    def __init__(self, chain: "FakeChain", address: str, abi: list):
        self.chain = chain
        self.address = to_checksum_address(address)
        self.abi = abi

    def __getattr__(self, name: str) -> FakeFunction:
        if name.startswith("_"):
            raise AttributeError(name)
        return FakeFunction(self, name)


class FakeChain:
    """
    Stands in for a ChainHandle. Views and transaction receipts are scripted per method name, and
    every call is recorded into a journal that can be shared between chains.
    """

    _addresses = itertools.count(1)

    def __init__(self, name: str, journal: Optional[list] = None):
        self.name = name
        self.address = DEPLOYER_ADDRESS
        self.journal: List[tuple] = [] if journal is None else journal
        self.views: Dict[str, Any] = {}
        self.receipts: Dict[str, Any] = {}
        self.deploy_logs: Callable[[str], List[dict]] = lambda address: []

    def contract(self, address: str, abi: list) -> FakeContract:
        return FakeContract(self, address, abi)

    def deploy(self, compiled_contract: dict, *args, transact_args: Optional[dict] = None):
        # Every deployment gets a fresh address, like a real chain with an increasing nonce.
        address = to_checksum_address(keccak(text=f"deployment {next(self._addresses)}")[-20:])
        self.journal.append(
            ("deploy", self.name, compiled_contract["contractName"], args, transact_args)
        )
        receipt = make_receipt(*self.deploy_logs(address), contractAddress=address)
        return FakeContract(self, address, compiled_contract["abi"]), receipt


def controller_deploy_logs(serial_num: int = SERIAL_NUM, erc20_token: str = ERC20_ADDRESS):
    def logs(address: str) -> List[dict]:
        return [
            make_log(NATIVE_TOKEN_CONTROLLER_ABI, "FoundryCreated", address, serialNum=serial_num),
            make_log(
                NATIVE_TOKEN_CONTROLLER_ABI,
                "ERC20NativeTokenRegistered",
                address,
                erc20Token=erc20_token,
            ),
        ]

    return logs


def mint_receipt(contract: FakeContract, amount: int, storage_deposit: int) -> dict:
    return make_receipt(
        make_log(
            NATIVE_TOKEN_CONTROLLER_ABI,
            "NativeTokensMinted",
            contract.address,
            foundrySN=SERIAL_NUM,
            amount=amount,
        )
    )


@pytest.fixture
def journal() -> list:
    return []


@pytest.fixture
def origin_chain(journal) -> FakeChain:
    chain = FakeChain(ORIGIN_TESTNET, journal)
    chain.deploy_logs = controller_deploy_logs()
    chain.views["getNativeTokenID"] = lambda foundry_sn: (NATIVE_TOKEN_ID,)
    chain.views["getChainID"] = ORIGIN_ISC_CHAIN_ID
    chain.receipts["mintTokens"] = mint_receipt
    return chain


@pytest.fixture
def target_chain(journal) -> FakeChain:
    chain = FakeChain(TARGET_TESTNET, journal)
    chain.views["getChainID"] = TARGET_ISC_CHAIN_ID
    chain.views["hn"] = lambda name: int.from_bytes(keccak(text=name)[:4], "big")
    chain.views["callView"] = lambda contract, entry_point, params: (
        [(b"", bytes.fromhex(WRAPPED_ERC20_ADDRESS[2:]))],
    )
    return chain


@pytest.fixture
def network_configs() -> Dict[str, NetworkConfig]:
    return {
        ORIGIN_TESTNET: NetworkConfig(
            name=ORIGIN_TESTNET,
            url=ENVIRON["ORIGIN_NODE_URL"],
            chain_id=ORIGIN_CHAIN_ID,
            private_key=DEPLOYER_PRIVATE_KEY,
        ),
        TARGET_TESTNET: NetworkConfig(
            name=TARGET_TESTNET,
            url=ENVIRON["TARGET_NODE_URL"],
            chain_id=TARGET_CHAIN_ID,
            private_key=DEPLOYER_PRIVATE_KEY,
        ),
    }


@pytest.fixture
def deployment_config(network_configs) -> DeploymentConfig:
    return DeploymentConfig(
        token_name=TOKEN_NAME,
        token_symbol=TOKEN_SYMBOL,
        token_decimals=TOKEN_DECIMALS,
        token_max_supply=TOKEN_SUPPLY,
        target_address=TARGET_ADDRESS,
        networks=network_configs,
        settle_interval=1.0,
        settle_timeout=5.0,
    )
