"""Allocation engine for levy billing.

Two money-splitting strategies:
- FIFO: apply one payment to outstanding levy items, oldest due first
- Entitlement split: distribute a period's levy across lots by unit entitlement

Both are pure: no database access, no mutation of inputs.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_DOWN, Decimal
from typing import Dict, Protocol, Sequence

from strata.services.money import CENT, ZERO, money_sub, to_money


class HasBalance(Protocol):
    """Anything with an id and an outstanding balance (e.g. a LevyItem)."""

    id: int

    @property
    def balance(self) -> Decimal: ...


@dataclass(frozen=True)
class OutstandingItem:
    """Snapshot of a levy item's outstanding balance."""

    id: int
    balance: Decimal
    due_date: date | None = None


@dataclass(frozen=True)
class Allocation:
    """Portion of a payment applied to one levy item."""

    levy_item_id: int
    amount: Decimal


@dataclass(frozen=True)
class AllocationResult:
    """FIFO outcome: allocations in application order plus leftover money."""

    allocations: list[Allocation] = field(default_factory=list)
    unallocated: Decimal = ZERO

    @property
    def allocated(self) -> Decimal:
        total = ZERO
        for allocation in self.allocations:
            total = to_money(total + allocation.amount)
        return total


class AllocationService:
    """Levy allocation engine."""

    def allocate_fifo(
        self,
        payment_amount: Decimal,
        outstanding_items: Sequence[HasBalance],
    ) -> AllocationResult:
        """Apply a payment to items in the order given.

        The caller supplies items oldest-due-first; no sorting happens here.
        Items with a zero or negative balance are skipped. Amounts are rounded
        to cents at every step, so the allocations plus the unallocated
        remainder always equal the payment exactly.

        Args:
            payment_amount: Amount received (> 0)
            outstanding_items: Items exposing ``id`` and ``balance``

        Returns:
            AllocationResult with per-item allocations and the unallocated rest
        """
        remaining = to_money(payment_amount)
        allocations: list[Allocation] = []

        for item in outstanding_items:
            if remaining <= ZERO:
                break
            balance = to_money(item.balance)
            if balance <= ZERO:
                continue

            amount = to_money(min(remaining, balance))
            allocations.append(Allocation(levy_item_id=item.id, amount=amount))
            remaining = money_sub(remaining, amount)

        return AllocationResult(allocations=allocations, unallocated=max(remaining, ZERO))

    def distribute_with_remainder(
        self,
        total_amount: Decimal,
        shares: Dict[int, Decimal],
    ) -> Dict[int, Decimal]:
        """Distribute amount by shares, giving leftover cents to the largest shares.

        Ensures: sum(result) == total_amount (no money lost or created)

        Algorithm:
        1. amount per key = total * share / sum(shares), rounded down to cents
        2. remainder = total - sum(amounts), always less than one cent per key
        3. add one cent to keys in descending share order until remainder is spent

        Args:
            total_amount: Total to distribute
            shares: Mapping of key (e.g. lot_id) to share weight (e.g. unit entitlement)

        Returns:
            Mapping of key to allocated amount
        """
        if not shares:
            return {}

        total = to_money(total_amount)
        share_dict = {k: Decimal(str(v)) for k, v in shares.items()}

        total_shares = sum(share_dict.values())
        if total_shares == 0:
            return {k: ZERO for k in share_dict}

        allocations = {}
        allocated_total = ZERO
        for key, weight in share_dict.items():
            amount = (total * weight / total_shares).quantize(CENT, rounding=ROUND_DOWN)
            allocations[key] = amount
            allocated_total = to_money(allocated_total + amount)

        remainder_cents = int((total - allocated_total) / CENT)
        if remainder_cents > 0:
            # Stable sort keeps insertion order between equal shares
            by_share = sorted(share_dict.items(), key=lambda x: x[1], reverse=True)
            for i in range(remainder_cents):
                key = by_share[i % len(by_share)][0]
                allocations[key] = to_money(allocations[key] + CENT)

        return allocations


__all__ = [
    "Allocation",
    "AllocationResult",
    "AllocationService",
    "OutstandingItem",
]
