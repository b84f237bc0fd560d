from typing import Any, Optional, Tuple

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_keys.exceptions import ValidationError
from eth_utils import to_checksum_address
from web3 import HTTPProvider, Web3
from web3.exceptions import ContractLogicError, TimeExhausted
from web3.middleware import ExtraDataToPOAMiddleware

from isc_token.config import DEFAULT_RECEIPT_TIMEOUT, DEFAULT_RPC_TIMEOUT, NetworkConfig
from isc_token.errors import (
    ChainConnectionError,
    ConfigurationError,
    TransactionRevertedError,
    TransactionTimeoutError,
)
from isc_token.utils import hex_str


class ChainContractFunction:
    """
    A contract method bound to its contract, called as method.call(*args) for reads and
    method.transact(*args, transact_args={...}) for signed state changing transactions.
    """

    def __init__(self, contract: "ChainContract", name: str):
        self.contract = contract
        self.name = name

    def _bind(self, *args):
        return getattr(self.contract.w3_contract.functions, self.name)(*args)

    def call(self, *args, call_args: Optional[dict] = None) -> Any:
        return self._bind(*args).call(call_args or {})

    def transact(self, *args, transact_args: Optional[dict] = None):
        return self.contract.chain.send(self._bind(*args), transact_args=transact_args)


class ChainContract:
    def __init__(self, chain: "ChainHandle", address: str, abi: list):
        self.chain = chain
        self.address = to_checksum_address(address)
        self.abi = abi
        self.w3_contract = chain.w3.eth.contract(address=self.address, abi=abi)

    def __getattr__(self, name: str) -> ChainContractFunction:
        if name.startswith("_"):
            raise AttributeError(name)
        return ChainContractFunction(contract=self, name=name)

    def __repr__(self):
        return f"ChainContract({self.chain.name}, {self.address})"


class ChainHandle:
    """
    A connection to one network together with the account signing its transactions.
    """

    def __init__(
        self,
        name: str,
        w3: Web3,
        account: Optional[LocalAccount] = None,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT,
    ):
        self.name = name
        self.w3 = w3
        self.account = account
        self.receipt_timeout = receipt_timeout

    @property
    def address(self) -> str:
        if self.account is None:
            raise ConfigurationError(f"No signing account configured for {self.name}")
        return self.account.address

    def contract(self, address: str, abi: list) -> ChainContract:
        return ChainContract(chain=self, address=address, abi=abi)

    def deploy(
        self, compiled_contract: dict, *args, transact_args: Optional[dict] = None
    ) -> Tuple[ChainContract, Any]:
        """
        Sends a contract creation transaction and blocks until it is mined.
        Returns the deployed contract and the deployment receipt.
        """
        factory = self.w3.eth.contract(
            abi=compiled_contract["abi"], bytecode=compiled_contract["bytecode"]
        )
        receipt = self.send(factory.constructor(*args), transact_args=transact_args)
        if receipt["contractAddress"] is None:
            raise TransactionRevertedError(
                "Deployment receipt has no contract address",
                tx_hash=hex_str(receipt["transactionHash"]),
            )
        return self.contract(receipt["contractAddress"], compiled_contract["abi"]), receipt

    def send(self, function, transact_args: Optional[dict] = None):
        """
        Builds, signs and sends a transaction for a bound contract function (or constructor),
        then waits for its receipt.
        """
        tx_params = {
            "from": self.address,
            "nonce": self.w3.eth.get_transaction_count(self.address, "pending"),
        }
        tx_params.update(transact_args or {})
        try:
            tx = function.build_transaction(tx_params)
        except ContractLogicError as err:
            # Gas estimation executes the call, so reverts surface here first.
            raise TransactionRevertedError(f"Transaction reverted: {err}") from err

        signed_tx = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        return self.wait_for_receipt(tx_hash)

    def wait_for_receipt(self, tx_hash):
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except TimeExhausted as err:
            raise TransactionTimeoutError(hex_str(tx_hash), self.receipt_timeout) from err
        if receipt["status"] == 0:
            raise TransactionRevertedError("Transaction reverted", tx_hash=hex_str(tx_hash))
        return receipt


def connect(
    network: NetworkConfig,
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT,
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT,
) -> ChainHandle:
    """
    Connects to a network and checks that the endpoint actually serves the configured chain.
    """
    try:
        account = Account.from_key(network.private_key)
    except (ValueError, ValidationError) as err:
        raise ConfigurationError(f"Invalid private key for {network.name}: {err}") from err

    w3 = Web3(HTTPProvider(network.url, request_kwargs={"timeout": rpc_timeout}))
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    if not w3.is_connected():
        raise ChainConnectionError(f"Cannot reach {network.name} at {network.url}")

    try:
        chain_id = w3.eth.chain_id
    except OSError as err:
        raise ChainConnectionError(
            f"Cannot read the chain id of {network.name} at {network.url}: {err}"
        ) from err
    if chain_id != network.chain_id:
        raise ChainConnectionError(
            f"{network.name} at {network.url} serves chain {chain_id}, "
            f"expected {network.chain_id}"
        )

    return ChainHandle(
        name=network.name, w3=w3, account=account, receipt_timeout=receipt_timeout
    )
