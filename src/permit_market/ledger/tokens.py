"""Reference asset contracts the marketplace settles against.

- ``FungibleToken``: ERC-20 subset (balances, allowances, transfer_from)
- ``PermitToken``: adds EIP-2612 ``permit`` with per-owner nonces
- ``UniqueAsset``: ERC-721 subset with ``safe_transfer_from`` receiver hooks

Mutating methods take a ``CallContext`` first and are invoked through
``Ledger.call``. Failures raise ``Revert`` with an OpenZeppelin-style reason.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog
from eth_utils import to_checksum_address

from ..errors import MarketError
from ..signing.codec import signature_from_vrs
from ..signing.hashing import TOKEN_PERMIT_SCHEMA, domain_separator
from ..signing.recovery import recover_typed_signer
from ..signing.types import TokenPermitMessage
from ..signing.utils import DEFAULT_DECIMALS, ZERO_ADDRESS
from .chain import CallContext, Contract, Ledger, Revert

logger = structlog.get_logger("permit_market.ledger.tokens")

# bytes4(keccak256("onERC721Received(address,address,uint256,bytes)"))
ERC721_RECEIVED = bytes.fromhex("150b7a02")


@dataclass(frozen=True)
class Transfer:
    """Fungible tokens moved between accounts."""

    sender: str
    recipient: str
    value: int


@dataclass(frozen=True)
class Approval:
    """Spending allowance set for a spender."""

    owner: str
    spender: str
    value: int


@dataclass(frozen=True)
class AssetTransfer:
    """Unique asset changed owner."""

    sender: str
    recipient: str
    asset_id: int


@dataclass(frozen=True)
class AssetApproval:
    """Single-asset transfer approval granted."""

    owner: str
    approved: str
    asset_id: int


@dataclass(frozen=True)
class ApprovalForAll:
    """Operator approval over all of an owner's assets changed."""

    owner: str
    operator: str
    approved: bool


def _require_unsigned(amount: int) -> None:
    if amount < 0:
        raise Revert("ERC20: negative amount")


class FungibleToken(Contract):
    """Minimal ERC-20 with a single minter (the deployer)."""

    def __init__(
        self,
        ledger: Ledger,
        address: str,
        deployer: str,
        name: str,
        symbol: str,
        decimals: int = DEFAULT_DECIMALS,
    ):
        super().__init__(ledger, address, deployer)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.storage.update(balances={}, allowances={}, total_supply=0)

    def balance_of(self, owner: str) -> int:
        return self.storage["balances"].get(to_checksum_address(owner), 0)

    def allowance(self, owner: str, spender: str) -> int:
        key = (to_checksum_address(owner), to_checksum_address(spender))
        return self.storage["allowances"].get(key, 0)

    @property
    def total_supply(self) -> int:
        return self.storage["total_supply"]

    def mint(self, ctx: CallContext, to: str, amount: int) -> None:
        if ctx.sender != self.deployer:
            raise Revert("ERC20: caller is not the minter")
        _require_unsigned(amount)
        to = to_checksum_address(to)
        if to == ZERO_ADDRESS:
            raise Revert("ERC20: mint to the zero address")
        self.storage["balances"][to] = self.balance_of(to) + amount
        self.storage["total_supply"] += amount
        self.emit(Transfer(ZERO_ADDRESS, to, amount))

    def transfer(self, ctx: CallContext, to: str, amount: int) -> bool:
        self._transfer(ctx.sender, to_checksum_address(to), amount)
        return True

    def approve(self, ctx: CallContext, spender: str, amount: int) -> bool:
        self._approve(ctx.sender, to_checksum_address(spender), amount)
        return True

    def transfer_from(self, ctx: CallContext, owner: str, to: str, amount: int) -> bool:
        owner = to_checksum_address(owner)
        _require_unsigned(amount)
        current = self.allowance(owner, ctx.sender)
        if current < amount:
            raise Revert("ERC20: insufficient allowance")
        self._approve(owner, ctx.sender, current - amount, emit=False)
        self._transfer(owner, to_checksum_address(to), amount)
        return True

    def _transfer(self, owner: str, to: str, amount: int) -> None:
        _require_unsigned(amount)
        if to == ZERO_ADDRESS:
            raise Revert("ERC20: transfer to the zero address")
        balance = self.balance_of(owner)
        if balance < amount:
            raise Revert("ERC20: transfer amount exceeds balance")
        balances = self.storage["balances"]
        balances[owner] = balance - amount
        balances[to] = balances.get(to, 0) + amount
        self.emit(Transfer(owner, to, amount))

    def _approve(self, owner: str, spender: str, amount: int, emit: bool = True) -> None:
        _require_unsigned(amount)
        if spender == ZERO_ADDRESS:
            raise Revert("ERC20: approve to the zero address")
        self.storage["allowances"][(owner, spender)] = amount
        if emit:
            self.emit(Approval(owner, spender, amount))


class PermitToken(FungibleToken):
    """ERC-20 with EIP-2612 gasless approvals.

    The permit domain is ``{name, "1", chainId, address}``, fixed at
    construction.
    """

    version = "1"

    def __init__(
        self,
        ledger: Ledger,
        address: str,
        deployer: str,
        name: str,
        symbol: str,
        decimals: int = DEFAULT_DECIMALS,
    ):
        super().__init__(ledger, address, deployer, name, symbol, decimals)
        self.storage["nonces"] = {}
        self._domain_separator = domain_separator(
            name, self.version, ledger.chain_id, address
        )

    @property
    def domain_separator(self) -> bytes:
        return self._domain_separator

    def nonces(self, owner: str) -> int:
        return self.storage["nonces"].get(to_checksum_address(owner), 0)

    def permit(
        self,
        ctx: CallContext,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        v: int,
        r: int,
        s: int,
    ) -> None:
        if ctx.timestamp > deadline:
            raise Revert("ERC20Permit: expired deadline")

        owner = to_checksum_address(owner)
        spender = to_checksum_address(spender)
        nonce = self.nonces(owner)
        message = TokenPermitMessage(
            owner=owner, spender=spender, value=value, nonce=nonce, deadline=deadline
        )
        try:
            signer = recover_typed_signer(
                self._domain_separator,
                TOKEN_PERMIT_SCHEMA,
                message.struct_values(),
                signature_from_vrs(v, r, s),
            )
        except MarketError as exc:
            raise Revert("ERC20Permit: invalid signature") from exc
        if signer != owner:
            raise Revert("ERC20Permit: invalid signature")

        self.storage["nonces"][owner] = nonce + 1
        self._approve(owner, spender, value)


class UniqueAsset(Contract):
    """Minimal ERC-721 with a single minter (the deployer)."""

    def __init__(self, ledger: Ledger, address: str, deployer: str, name: str, symbol: str):
        super().__init__(ledger, address, deployer)
        self.name = name
        self.symbol = symbol
        self.storage.update(owners={}, balances={}, approvals={}, operators={})

    def owner_of(self, asset_id: int) -> str:
        owner = self.storage["owners"].get(asset_id)
        if owner is None:
            raise Revert("ERC721: invalid token ID")
        return owner

    def balance_of(self, owner: str) -> int:
        return self.storage["balances"].get(to_checksum_address(owner), 0)

    def get_approved(self, asset_id: int) -> str:
        self.owner_of(asset_id)
        return self.storage["approvals"].get(asset_id, ZERO_ADDRESS)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        key = (to_checksum_address(owner), to_checksum_address(operator))
        return self.storage["operators"].get(key, False)

    def mint(self, ctx: CallContext, to: str, asset_id: int) -> None:
        if ctx.sender != self.deployer:
            raise Revert("ERC721: caller is not the minter")
        to = to_checksum_address(to)
        if to == ZERO_ADDRESS:
            raise Revert("ERC721: mint to the zero address")
        if asset_id in self.storage["owners"]:
            raise Revert("ERC721: token already minted")
        self.storage["owners"][asset_id] = to
        self.storage["balances"][to] = self.balance_of(to) + 1
        self.emit(AssetTransfer(ZERO_ADDRESS, to, asset_id))

    def approve(self, ctx: CallContext, to: str, asset_id: int) -> None:
        owner = self.owner_of(asset_id)
        if ctx.sender != owner and not self.is_approved_for_all(owner, ctx.sender):
            raise Revert("ERC721: approve caller is not token owner or approved for all")
        to = to_checksum_address(to)
        self.storage["approvals"][asset_id] = to
        self.emit(AssetApproval(owner, to, asset_id))

    def set_approval_for_all(self, ctx: CallContext, operator: str, approved: bool) -> None:
        operator = to_checksum_address(operator)
        if operator == ctx.sender:
            raise Revert("ERC721: approve to caller")
        self.storage["operators"][(ctx.sender, operator)] = approved
        self.emit(ApprovalForAll(ctx.sender, operator, approved))

    def transfer_from(self, ctx: CallContext, sender: str, to: str, asset_id: int) -> None:
        self._transfer(ctx.sender, to_checksum_address(sender), to_checksum_address(to), asset_id)

    def safe_transfer_from(
        self,
        ctx: CallContext,
        sender: str,
        to: str,
        asset_id: int,
        data: Optional[bytes] = b"",
    ) -> None:
        """Transfer, then require contract recipients to acknowledge it.

        The recipient hook runs after ownership has moved, as a nested call
        whose sender is this contract.
        """
        sender = to_checksum_address(sender)
        to = to_checksum_address(to)
        self._transfer(ctx.sender, sender, to, asset_id)

        if self.ledger.is_contract(to):
            receiver = self.ledger.contract_at(to)
            hook = getattr(receiver, "on_erc721_received", None)
            if hook is None:
                raise Revert("ERC721: transfer to non ERC721Receiver implementer")
            result = self.ledger.call(self.address, hook, ctx.sender, sender, asset_id, data)
            if result != ERC721_RECEIVED:
                raise Revert("ERC721: transfer to non ERC721Receiver implementer")

    def _is_approved_or_owner(self, spender: str, asset_id: int) -> bool:
        owner = self.owner_of(asset_id)
        return (
            spender == owner
            or self.is_approved_for_all(owner, spender)
            or self.storage["approvals"].get(asset_id) == spender
        )

    def _transfer(self, operator: str, sender: str, to: str, asset_id: int) -> None:
        if not self._is_approved_or_owner(operator, asset_id):
            raise Revert("ERC721: caller is not token owner or approved")
        if self.owner_of(asset_id) != sender:
            raise Revert("ERC721: transfer from incorrect owner")
        if to == ZERO_ADDRESS:
            raise Revert("ERC721: transfer to the zero address")

        self.storage["approvals"].pop(asset_id, None)
        balances = self.storage["balances"]
        balances[sender] -= 1
        balances[to] = balances.get(to, 0) + 1
        self.storage["owners"][asset_id] = to
        self.emit(AssetTransfer(sender, to, asset_id))
        logger.debug("asset.transferred", asset=self.address, asset_id=asset_id, to=to)
