"""In-process ledger host.

Plays the role of the chain the marketplace runs on:

- accounts with native balances and a settable block timestamp
- deployed contract objects addressed like EVM contracts
- call frames: every ``Ledger.call`` snapshots contract storage, native
  balances and the event log, and restores all three if the call raises
- a re-entrant lock so calls are serialized across threads while nested
  contract-to-contract calls (including reentrant hooks) still proceed
"""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Type, TypeVar

import structlog
from eth_abi import encode
from eth_utils import keccak, to_checksum_address

logger = structlog.get_logger("permit_market.ledger.chain")

C = TypeVar("C", bound="Contract")


class Revert(Exception):
    """Raised by collaborator contracts to abort the current call frame."""

    def __init__(self, reason: Optional[str] = None):
        super().__init__(reason or "execution reverted")
        self.reason = reason


@dataclass(frozen=True)
class CallContext:
    """What a contract method sees about the call it is serving."""

    sender: str
    """Immediate caller (EOA or calling contract)."""

    value: int
    """Native value sent along with the call."""

    timestamp: int
    """Block timestamp of the call."""


@dataclass(frozen=True)
class LogEntry:
    """An event emitted by a contract."""

    address: str
    event: Any


class Contract:
    """Base class for ledger-resident contracts.

    All mutable state lives in ``self.storage`` so the ledger can snapshot
    and restore it per call frame. Attributes set in ``__init__`` outside
    ``storage`` are immutable for the contract's lifetime.
    """

    def __init__(self, ledger: Ledger, address: str, deployer: str):
        self.ledger = ledger
        self.address = address
        self.deployer = deployer
        self.storage: Dict[str, Any] = {}

    def emit(self, event: Any) -> None:
        self.ledger.emit(self.address, event)


class Ledger:
    """Serialized, all-or-nothing execution host."""

    def __init__(self, chain_id: int = 1, timestamp: int = 1_700_000_000):
        self.chain_id = chain_id
        self.timestamp = timestamp
        self._contracts: Dict[str, Contract] = {}
        self._native: Dict[str, int] = {}
        self._events: List[LogEntry] = []
        self._deploy_nonce = 0
        self._lock = threading.RLock()
        self._depth = 0

    def advance(self, seconds: int) -> int:
        """Move block time forward and return the new timestamp."""
        with self._lock:
            self.timestamp += seconds
            return self.timestamp

    def is_contract(self, address: str) -> bool:
        return to_checksum_address(address) in self._contracts

    def contract_at(self, address: str) -> Contract:
        return self._contracts[to_checksum_address(address)]

    def native_balance(self, address: str) -> int:
        return self._native.get(to_checksum_address(address), 0)

    def fund(self, address: str, amount: int) -> None:
        """Credit native value to an account (genesis allocation)."""
        with self._lock:
            address = to_checksum_address(address)
            self._native[address] = self._native.get(address, 0) + amount

    def transfer_native(self, sender: str, recipient: str, amount: int) -> None:
        """Move native value; only valid inside a call frame."""
        if amount < 0:
            raise Revert("negative native amount")
        sender = to_checksum_address(sender)
        recipient = to_checksum_address(recipient)
        balance = self._native.get(sender, 0)
        if balance < amount:
            raise Revert("insufficient native balance")
        self._native[sender] = balance - amount
        self._native[recipient] = self._native.get(recipient, 0) + amount

    def emit(self, address: str, event: Any) -> None:
        self._events.append(LogEntry(address=address, event=event))

    def events(self, event_type: Optional[Type[Any]] = None) -> List[Any]:
        """Return committed events, optionally filtered by type."""
        return [
            entry.event
            for entry in self._events
            if event_type is None or isinstance(entry.event, event_type)
        ]

    def _next_address(self, deployer: str) -> str:
        self._deploy_nonce += 1
        digest = keccak(encode(["address", "uint256"], [deployer, self._deploy_nonce]))
        return to_checksum_address(digest[-20:])

    def deploy(self, contract_cls: Type[C], deployer: str, *args: Any, **kwargs: Any) -> C:
        """Construct a contract at a fresh address.

        The constructor runs inside a call frame; if it raises, nothing is
        registered.
        """
        with self._lock:
            deployer = to_checksum_address(deployer)
            address = self._next_address(deployer)
            with self._frame():
                contract = contract_cls(self, address, deployer, *args, **kwargs)
                self._contracts[address] = contract
            logger.debug(
                "ledger.deployed",
                contract=contract_cls.__name__,
                address=address,
                deployer=deployer,
            )
            return contract

    def call(
        self,
        sender: str,
        method: Callable[..., Any],
        *args: Any,
        value: int = 0,
        **kwargs: Any,
    ) -> Any:
        """Invoke a bound contract method as ``sender``.

        ``value`` is moved to the callee before the method runs. Any
        exception rolls back every effect of this call, including nested
        calls, and is re-raised to the caller.
        """
        if value < 0:
            raise Revert("negative native value")
        target: Contract = method.__self__  # type: ignore[attr-defined]
        with self._lock, self._frame():
            ctx = CallContext(
                sender=to_checksum_address(sender),
                value=value,
                timestamp=self.timestamp,
            )
            if value:
                self.transfer_native(ctx.sender, target.address, value)
            return method(ctx, *args, **kwargs)

    @contextmanager
    def _frame(self) -> Iterator[None]:
        snapshot = (
            {addr: copy.deepcopy(c.storage) for addr, c in self._contracts.items()},
            dict(self._native),
            len(self._events),
            dict(self._contracts),
        )
        self._depth += 1
        try:
            yield
        except BaseException as exc:
            storages, native, event_count, contracts = snapshot
            self._contracts = contracts
            for addr, storage in storages.items():
                self._contracts[addr].storage = storage
            self._native = native
            del self._events[event_count:]
            logger.debug(
                "ledger.call_reverted",
                depth=self._depth,
                error=type(exc).__name__,
                reason=str(exc),
            )
            raise
        finally:
            self._depth -= 1
