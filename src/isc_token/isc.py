from typing import Dict, Mapping, Optional, Union

from eth_utils import to_checksum_address

from isc_token.chain import ChainContract, ChainHandle
from isc_token.utils import load_abi

# Both the sandbox and the util precompiles live at the ISC magic address.
ISC_MAGIC_ADDRESS = "0x1074000000000000000000000000000000000000"
ALIAS_ADDRESS_TYPE = 8

EVM_CORE_CONTRACT = "evm"
GET_ERC20_EXTERNAL_NATIVE_TOKEN_ADDRESS = "getERC20ExternalNativeTokenAddress"
NATIVE_TOKEN_ID_PARAM = "N"

ISCSandbox = load_abi("ISCSandbox")
ISCUtil = load_abi("ISCUtil")
ERC20NativeTokens = load_abi("ERC20NativeTokens")


def sandbox(chain: ChainHandle) -> ChainContract:
    return chain.contract(ISC_MAGIC_ADDRESS, ISCSandbox)


def util(chain: ChainHandle) -> ChainContract:
    return chain.contract(ISC_MAGIC_ADDRESS, ISCUtil)


def target_chain_address(chain_id: bytes) -> bytes:
    """
    The L1 alias address of an ISC chain: the alias address type byte followed by the 32 bytes
    chain id. In hex this is chain_id_hex[:2] + "08" + chain_id_hex[2:].
    """
    return bytes([ALIAS_ADDRESS_TYPE]) + bytes(chain_id)


def get_chain_id(isc_sandbox: ChainContract) -> bytes:
    return bytes(isc_sandbox.getChainID.call())


def get_native_token_id(isc_sandbox: ChainContract, foundry_sn: int) -> bytes:
    (data,) = isc_sandbox.getNativeTokenID.call(foundry_sn)
    return bytes(data)


def _to_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def to_isc_dict(params: Mapping[Union[str, bytes], bytes]) -> tuple:
    return ([(_to_bytes(key), bytes(value)) for key, value in params.items()],)


def from_isc_dict(isc_dict) -> Dict[bytes, bytes]:
    (items,) = isc_dict
    return {bytes(key): bytes(value) for key, value in items}


def call_view(
    isc_sandbox: ChainContract,
    isc_util: ChainContract,
    contract_name: str,
    entry_point: str,
    params: Mapping[Union[str, bytes], bytes],
) -> Dict[bytes, bytes]:
    """
    Calls a view entry point of an ISC core contract. Names are resolved to hnames through
    the util precompile of the same chain.
    """
    contract_hname = isc_util.hn.call(contract_name)
    entry_point_hname = isc_util.hn.call(entry_point)
    result = isc_sandbox.callView.call(contract_hname, entry_point_hname, to_isc_dict(params))
    return from_isc_dict(result)


def get_erc20_external_native_token_address(
    isc_sandbox: ChainContract, isc_util: ChainContract, native_token_id: bytes
) -> Optional[str]:
    """
    Returns the address of the ERC20 wrapping a foreign native token, or None while the chain
    does not know about it yet.
    """
    result = call_view(
        isc_sandbox,
        isc_util,
        EVM_CORE_CONTRACT,
        GET_ERC20_EXTERNAL_NATIVE_TOKEN_ADDRESS,
        {NATIVE_TOKEN_ID_PARAM: native_token_id},
    )
    values = [value for value in result.values() if len(value) > 0]
    # An all zero address means the chain has not registered the token yet.
    if len(values) == 0 or not any(values[0]):
        return None
    return to_checksum_address(values[0])
