from typing import Optional


class DeploymentError(Exception):
    """
    Base class for every failure that aborts a deployment run.
    """


class ConfigurationError(DeploymentError):
    pass


class ChainConnectionError(DeploymentError, ConnectionError):
    """
    The RPC endpoint is unreachable or serves a different chain than configured.
    """


class TransactionRevertedError(DeploymentError):
    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message if tx_hash is None else f"{message} (tx {tx_hash})")
        self.tx_hash = tx_hash


class TransactionTimeoutError(DeploymentError):
    def __init__(self, tx_hash: str, timeout: float):
        super().__init__(f"Transaction {tx_hash} was not mined within {timeout} seconds")
        self.tx_hash = tx_hash
        self.timeout = timeout


class EventNotFoundError(DeploymentError):
    """
    An expected event is missing from a receipt. Usually means the contract did not behave as
    expected without reverting.
    """

    def __init__(self, event_name: str, tx_hash: Optional[str] = None):
        location = "receipt" if tx_hash is None else f"receipt of {tx_hash}"
        super().__init__(f"Event {event_name} not found in {location}")
        self.event_name = event_name
        self.tx_hash = tx_hash


class RegistrationTimeoutError(DeploymentError):
    def __init__(self, native_token_id: str, timeout: float):
        super().__init__(
            f"Wrapped ERC20 for native token {native_token_id} was not visible on the target "
            f"chain after {timeout} seconds"
        )
        self.native_token_id = native_token_id
        self.timeout = timeout
