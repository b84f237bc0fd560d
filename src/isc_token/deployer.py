import time
from typing import Any, Callable, List, NamedTuple

from isc_token import isc
from isc_token.chain import ChainContract, ChainHandle
from isc_token.config import DeploymentConfig
from isc_token.errors import RegistrationTimeoutError
from isc_token.events import (
    ERC20NativeTokenRegistered,
    FoundryCreated,
    NativeTokensMinted,
    find_event,
)
from isc_token.utils import hex_str

# Base tokens handed to every controller call to cover the storage deposit of the outputs
# the chain creates on L1.
STORAGE_DEPOSIT = 1_000_000
INITIAL_FUNDING = 10 * 10**18  # 10 base tokens, in wei.
LOCAL_TRANSFER_AMOUNT = 10
CROSS_CHAIN_AMOUNT = 1

WRAPPED_NAME_PREFIX = "Wrapped"
WRAPPED_SYMBOL_PREFIX = "w"
SECTION_LINE = "=" * 42


class DeployResult(NamedTuple):
    controller: ChainContract
    serial_num: int
    native_token_id: bytes
    erc20_address: str


class RegistrationResult(NamedTuple):
    target_chain_id: bytes
    target_chain_address: bytes
    wrapped_erc20_address: str


class MintResult(NamedTuple):
    foundry_sn: int
    amount: int


class DeploymentSummary(NamedTuple):
    deployment: DeployResult
    registration: RegistrationResult
    mint: MintResult
    local_transfer_receipt: Any
    cross_chain_receipt: Any

    def lines(self) -> List[str]:
        return [
            f"Foundry serial number: {self.deployment.serial_num}",
            f"ERC20 address on origin chain: {self.deployment.erc20_address}",
            f"Wrapped ERC20 address on target chain: {self.registration.wrapped_erc20_address}",
            f"Minted amount: {self.mint.amount}",
        ]


def print_section(title: str):
    print(f"\n{title}\n{SECTION_LINE}")


class NativeTokenDeployer:
    """
    Deploys a NativeTokenController on the deploying chain, registers its token as a wrapped
    ERC20 on the target chain, mints the whole supply and moves some of it around.
    Every step consumes the results of the previous ones, so any failure aborts the run. Nothing
    is resumable: running again deploys a new controller and a new foundry.
    """

    def __init__(
        self,
        config: DeploymentConfig,
        origin: ChainHandle,
        target: ChainHandle,
        compiled_controller: dict,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.origin = origin
        self.target = target
        self.compiled_controller = compiled_controller
        self.sleep = sleep
        self.clock = clock
        self.origin_sandbox = isc.sandbox(origin)
        self.target_sandbox = isc.sandbox(target)
        self.target_util = isc.util(target)

    def deploy(self) -> DeployResult:
        config = self.config
        print(f"Deploying with account: {self.origin.address} on network: {self.origin.name}")
        controller, receipt = self.origin.deploy(
            self.compiled_controller,
            config.token_name,
            config.token_symbol,
            config.token_decimals,
            config.token_max_supply,
            STORAGE_DEPOSIT,
            transact_args={"value": INITIAL_FUNDING},
        )
        print(f"Contract deployed at address: {controller.address}")
        print(
            f"Foundry created for {config.token_name} ({config.token_symbol}) "
            f"with max supply of {config.token_max_supply} tokens"
        )

        # Both events are required before touching the chain again.
        foundry = find_event(receipt, controller.abi, FoundryCreated)
        registered = find_event(receipt, controller.abi, ERC20NativeTokenRegistered)
        print(f"Token serial number: {foundry.serial_num}")

        native_token_id = isc.get_native_token_id(self.origin_sandbox, foundry.serial_num)
        print(f"Native Token ID: {hex_str(native_token_id)}")
        print(f"ERC20 Address on Origin chain: {registered.erc20_token}")

        return DeployResult(
            controller=controller,
            serial_num=foundry.serial_num,
            native_token_id=native_token_id,
            erc20_address=registered.erc20_token,
        )

    def register_remote(self, deployment: DeployResult) -> RegistrationResult:
        config = self.config
        print_section("1) Register L1 token foundry as ERC20 on Target chain:")
        target_chain_id = isc.get_chain_id(self.target_sandbox)
        print(f"ISC Target Chain ID: {hex_str(target_chain_id)}")
        target_chain_address = isc.target_chain_address(target_chain_id)

        wrapped_name = WRAPPED_NAME_PREFIX + config.token_name
        wrapped_symbol = WRAPPED_SYMBOL_PREFIX + config.token_symbol
        deployment.controller.registerERC20NativeTokenOnRemoteChain.transact(
            wrapped_name,
            wrapped_symbol,
            config.token_decimals,
            target_chain_address,
            STORAGE_DEPOSIT,
        )
        print(f"Registered new ERC20 token under the name {wrapped_name} ({wrapped_symbol})")

        wrapped_erc20_address = self.wait_for_wrapped_token(deployment.native_token_id)
        print(f"ERC20 Address on Target chain: {wrapped_erc20_address}")
        return RegistrationResult(
            target_chain_id=target_chain_id,
            target_chain_address=target_chain_address,
            wrapped_erc20_address=wrapped_erc20_address,
        )

    def wait_for_wrapped_token(self, native_token_id: bytes) -> str:
        """
        Polls the target chain until it reports the wrapped ERC20 of the native token. The
        registration request travels through L1, so it is only visible after some delay.
        """
        deadline = self.clock() + self.config.settle_timeout
        while True:
            self.sleep(self.config.settle_interval)
            address = isc.get_erc20_external_native_token_address(
                self.target_sandbox, self.target_util, native_token_id
            )
            if address is not None:
                return address
            if self.clock() >= deadline:
                raise RegistrationTimeoutError(
                    hex_str(native_token_id), self.config.settle_timeout
                )

    def mint(self, deployment: DeployResult) -> MintResult:
        config = self.config
        print_section("2) Mint tokens in foundry:")
        controller = deployment.controller
        receipt = controller.mintTokens.transact(config.token_max_supply, STORAGE_DEPOSIT)
        minted = find_event(receipt, controller.abi, NativeTokensMinted)
        print(f"Minted {minted.amount} for foundry {minted.foundry_sn}")
        return MintResult(foundry_sn=minted.foundry_sn, amount=minted.amount)

    def transfer_local(self, deployment: DeployResult):
        config = self.config
        print_section("3) Transfer within origin chain:")
        origin_chain_id = isc.get_chain_id(self.origin_sandbox)
        receipt = deployment.controller.transfer.transact(
            LOCAL_TRANSFER_AMOUNT, config.target_address
        )
        print(f"Target address: {config.target_address}")
        print(
            f"Transferred {LOCAL_TRANSFER_AMOUNT} {config.token_symbol} "
            f"within origin chain {hex_str(origin_chain_id)}"
        )
        return receipt

    def transfer_cross_chain(self, deployment: DeployResult, registration: RegistrationResult):
        config = self.config
        print_section("4) Cross chain transfer from origin to target chain:")
        erc20 = self.origin.contract(deployment.erc20_address, isc.ERC20NativeTokens)
        # The controller pulls exactly the approved amount.
        erc20.approve.transact(deployment.controller.address, CROSS_CHAIN_AMOUNT)
        receipt = deployment.controller.sendCrossChain.transact(
            registration.target_chain_address,
            config.target_address,
            registration.target_chain_id,
            CROSS_CHAIN_AMOUNT,
            STORAGE_DEPOSIT,
        )
        print(
            f"Transferred {CROSS_CHAIN_AMOUNT} {config.token_symbol} to {config.target_address} "
            f"on target chain {hex_str(registration.target_chain_id)}"
        )
        return receipt

    def run(self) -> DeploymentSummary:
        deployment = self.deploy()
        registration = self.register_remote(deployment)
        mint = self.mint(deployment)
        local_transfer_receipt = self.transfer_local(deployment)
        cross_chain_receipt = self.transfer_cross_chain(deployment, registration)

        summary = DeploymentSummary(
            deployment=deployment,
            registration=registration,
            mint=mint,
            local_transfer_receipt=local_transfer_receipt,
            cross_chain_receipt=cross_chain_receipt,
        )
        print_section("Summary:")
        for line in summary.lines():
            print(line)
        return summary
