from typing import Any, Dict, List, NamedTuple, Optional, Type, TypeVar

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import event_abi_to_log_topic, to_checksum_address
from eth_utils.abi import collapse_if_tuple
from hexbytes import HexBytes

from isc_token.errors import EventNotFoundError
from isc_token.utils import hex_str


class DecodedEvent(NamedTuple):
    name: str
    address: str
    args: Dict[str, Any]
    log_index: Optional[int]


class FoundryCreated(NamedTuple):
    serial_num: int

    event_name = "FoundryCreated"

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "FoundryCreated":
        return cls(serial_num=args["serialNum"])


class ERC20NativeTokenRegistered(NamedTuple):
    erc20_token: str

    event_name = "ERC20NativeTokenRegistered"

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "ERC20NativeTokenRegistered":
        return cls(erc20_token=args["erc20Token"])


class NativeTokensMinted(NamedTuple):
    foundry_sn: int
    amount: int

    event_name = "NativeTokensMinted"

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "NativeTokensMinted":
        return cls(foundry_sn=args["foundrySN"], amount=args["amount"])


Record = TypeVar("Record", FoundryCreated, ERC20NativeTokenRegistered, NativeTokensMinted)


def _event_topics(abi: list) -> Dict[bytes, dict]:
    return {
        event_abi_to_log_topic(entry): entry
        for entry in abi
        if entry.get("type") == "event" and not entry.get("anonymous", False)
    }


def _normalize(arg_type: str, value):
    if arg_type == "address":
        return to_checksum_address(value)
    return value


def decode_log(event_abi: dict, log) -> DecodedEvent:
    """
    Decodes one log with the given event abi. Addresses come out in checksum form. Raises
    DecodingError if the log does not have the layout of the event.
    """
    topics = [HexBytes(topic) for topic in log["topics"]]
    indexed_inputs = [arg for arg in event_abi["inputs"] if arg.get("indexed", False)]
    data_inputs = [arg for arg in event_abi["inputs"] if not arg.get("indexed", False)]
    if len(topics) != len(indexed_inputs) + 1:
        raise DecodingError(
            f"{event_abi['name']} has {len(indexed_inputs)} indexed inputs, "
            f"the log has {len(topics) - 1}"
        )

    args = {}
    for arg, topic in zip(indexed_inputs, topics[1:]):
        arg_type = collapse_if_tuple(arg)
        if arg_type in ("string", "bytes") or arg_type.endswith("]") or arg_type.startswith("("):
            # Indexed dynamic values are stored as their keccak hash.
            args[arg["name"]] = bytes(topic)
        else:
            (value,) = decode([arg_type], bytes(topic))
            args[arg["name"]] = _normalize(arg_type, value)
    data_types = [collapse_if_tuple(arg) for arg in data_inputs]
    values = decode(data_types, bytes(HexBytes(log["data"])))
    for arg, arg_type, value in zip(data_inputs, data_types, values):
        args[arg["name"]] = _normalize(arg_type, value)

    return DecodedEvent(
        name=event_abi["name"],
        address=to_checksum_address(log["address"]),
        args=args,
        log_index=log.get("logIndex"),
    )


def decode_logs(receipt, abi: list, address: Optional[str] = None) -> List[DecodedEvent]:
    """
    Decodes all the logs of a receipt that match an event of the given abi, in log order.
    If address is given, logs emitted by other contracts are ignored.
    """
    topics = _event_topics(abi)
    events = []
    for log in receipt["logs"]:
        if address is not None and to_checksum_address(log["address"]) != to_checksum_address(
            address
        ):
            continue
        if len(log["topics"]) == 0:
            continue
        event_abi = topics.get(bytes(HexBytes(log["topics"][0])))
        if event_abi is None:
            continue
        try:
            events.append(decode_log(event_abi, log))
        except DecodingError:
            # Same signature, different indexing: emitted by some other contract.
            continue
    return events


def find_event(
    receipt, abi: list, record_type: Type[Record], address: Optional[str] = None
) -> Record:
    """
    Returns the first event of the requested type in the receipt, as a typed record.
    """
    for event in decode_logs(receipt, abi, address=address):
        if event.name == record_type.event_name:
            return record_type.from_args(event.args)
    tx_hash = receipt.get("transactionHash")
    raise EventNotFoundError(
        record_type.event_name, tx_hash=None if tx_hash is None else hex_str(tx_hash)
    )
