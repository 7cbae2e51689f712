"""
Heirlock — Dead-Man's-Switch Custody, reference model
======================================================
The same state machine as contracts/heirlock.py, in plain Python.

Used for off-chain simulation and as the executable reference for the
on-chain program. Caller identity and the current time are explicit
arguments of every call, and every call returns the events it emitted,
in order.

Rules:
  - Owner withdraws at will; any withdrawal (even of 0) resets the clock
  - Owner may replace the heir; this does NOT reset the clock
  - Heir may claim ownership once TIME_LOCK_SECONDS passed since the
    last withdrawal; the claim does NOT reset the clock either
  - Heir / owner are never the zero address
  - Every call either commits fully or raises before touching state
"""

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import (
    ClockWentBackwards,
    HeirCannotBeZeroAddress,
    NotEnoughBalance,
    NotEnoughTimePassed,
    OnlyHeirCanCall,
    OnlyOwnerCanCall,
)
from .events import (
    ZERO_ADDRESS,
    Event,
    HeirUpdated,
    OwnershipTransferred,
    Withdrawal,
    is_zero_address,
)

logger = logging.getLogger(__name__)

TIME_LOCK_SECONDS = 30 * 24 * 60 * 60

STATUS_ALIVE = "ALIVE"
STATUS_CLAIMABLE = "CLAIMABLE"


@dataclass(frozen=True)
class HeirlockState:
    owner: str
    heir: str
    last_withdrawal: int
    balance: int


class Heirlock:
    """One pool, one owner, one heir, one time-lock clock."""

    def __init__(self, owner: str, heir: str, last_withdrawal: int, balance: int = 0):
        if is_zero_address(owner):
            raise ValueError("owner cannot be the zero address")
        if is_zero_address(heir):
            raise HeirCannotBeZeroAddress()
        if balance < 0:
            raise ValueError("balance cannot be negative")
        self._owner = owner
        self._heir = heir
        self._last_withdrawal = last_withdrawal
        self._balance = balance
        self._lock = threading.Lock()

    @classmethod
    def deploy(
        cls, caller: str, initial_heir: str, now: int, initial_deposit: int = 0
    ) -> Tuple["Heirlock", List[Event]]:
        """Construct the custody pool. The caller becomes the owner."""
        if is_zero_address(initial_heir):
            logger.warning("deploy rejected: heir is the zero address")
            raise HeirCannotBeZeroAddress()
        if initial_deposit < 0:
            raise ValueError("initial deposit cannot be negative")
        contract = cls(caller, initial_heir, now, initial_deposit)
        logger.info(
            "deployed owner=%s heir=%s deposit=%d at %d",
            caller, initial_heir, initial_deposit, now,
        )
        return contract, [
            OwnershipTransferred(ZERO_ADDRESS, caller),
            HeirUpdated(ZERO_ADDRESS, initial_heir),
        ]

    # ── Read-only ─────────────────────────────────────────────────────────────
    @property
    def owner(self) -> str:
        return self._owner

    @property
    def heir(self) -> str:
        return self._heir

    @property
    def last_withdrawal(self) -> int:
        return self._last_withdrawal

    @property
    def balance(self) -> int:
        return self._balance

    @property
    def claimable_at(self) -> int:
        return self._last_withdrawal + TIME_LOCK_SECONDS

    def time_remaining(self, now: int) -> int:
        """Seconds until the heir may claim. 0 once the window has elapsed."""
        return max(0, self.claimable_at - now)

    def status(self, now: int) -> str:
        return STATUS_CLAIMABLE if now >= self.claimable_at else STATUS_ALIVE

    def snapshot(self) -> HeirlockState:
        with self._lock:
            return HeirlockState(
                owner=self._owner,
                heir=self._heir,
                last_withdrawal=self._last_withdrawal,
                balance=self._balance,
            )

    # ── Mutations ─────────────────────────────────────────────────────────────
    def deposit(self, amount: int) -> List[Event]:
        """External payment into the pool. Always accepted, emits nothing."""
        if amount < 0:
            raise ValueError("deposit amount cannot be negative")
        with self._lock:
            self._balance += amount
        logger.debug("deposit of %d accepted", amount)
        return []

    def withdraw(self, caller: str, amount: int, now: int) -> List[Event]:
        """Pay ``amount`` to the owner and reset the inactivity clock."""
        with self._lock:
            if caller != self._owner:
                logger.warning("withdraw rejected: %s is not the owner", caller)
                raise OnlyOwnerCanCall()
            if amount < 0:
                raise ValueError("withdrawal amount cannot be negative")
            if amount > self._balance:
                logger.warning(
                    "withdraw rejected: %d requested, %d available", amount, self._balance
                )
                raise NotEnoughBalance()
            self._check_clock(now)

            self._balance -= amount
            self._last_withdrawal = now
            logger.info("owner withdrew %d, clock reset to %d", amount, now)
            return [Withdrawal(caller, amount)]

    def update_heir(self, caller: str, new_heir: Optional[str]) -> List[Event]:
        """Replace the heir. Not a qualifying activity: the clock is untouched."""
        with self._lock:
            if caller != self._owner:
                logger.warning("update_heir rejected: %s is not the owner", caller)
                raise OnlyOwnerCanCall()
            if is_zero_address(new_heir):
                logger.warning("update_heir rejected: heir is the zero address")
                raise HeirCannotBeZeroAddress()

            previous_heir = self._heir
            self._heir = new_heir
            logger.info("heir updated %s -> %s", previous_heir, new_heir)
            return [HeirUpdated(previous_heir, new_heir)]

    def claim_ownership(self, caller: str, new_heir: Optional[str], now: int) -> List[Event]:
        """Heir takes over after the time-lock expired and names the next heir."""
        with self._lock:
            if caller != self._heir:
                logger.warning("claim rejected: %s is not the heir", caller)
                raise OnlyHeirCanCall()
            if now < self._last_withdrawal + TIME_LOCK_SECONDS:
                logger.warning(
                    "claim rejected: %d seconds left on the time-lock",
                    self._last_withdrawal + TIME_LOCK_SECONDS - now,
                )
                raise NotEnoughTimePassed()
            if is_zero_address(new_heir):
                logger.warning("claim rejected: new heir is the zero address")
                raise HeirCannotBeZeroAddress()

            previous_owner = self._owner
            previous_heir = self._heir
            self._owner = previous_heir
            self._heir = new_heir
            logger.info(
                "ownership claimed %s -> %s, new heir %s",
                previous_owner, self._owner, new_heir,
            )
            return [
                OwnershipTransferred(previous_owner, self._owner),
                HeirUpdated(previous_heir, new_heir),
            ]

    def _check_clock(self, now: int) -> None:
        if now < self._last_withdrawal:
            raise ClockWentBackwards(
                f"time {now} is before the last withdrawal at {self._last_withdrawal}"
            )
