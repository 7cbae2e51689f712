"""
Heirlock — Dead-Man's-Switch Custody Smart Contract
====================================================
Built with Beaker 1.x + PyTEAL for Algorand Testnet

Architecture:
  - Creator becomes the owner and names an heir
  - Anyone may fund the pool with a plain payment to the app address
  - Owner withdraws at will; each withdrawal (even of 0) is proof of life
  - After 30 days without a withdrawal the heir may claim ownership
    and names the next heir

Security:
  - Only owner can withdraw / update heir
  - Only heir can claim, and only once the time-lock has expired
  - Heir can never be the zero address
  - Claiming does NOT reset the clock: the new owner must withdraw
    (0 is enough) before the next heir is locked out again
  - No update / delete handlers: the program is immutable

Every assert comment is the rejection name callers match on; every event
is an ARC-28 log line built from contracts/events.py.
"""

from beaker import Application, GlobalStateValue
from pyteal import (
    Assert,
    Balance,
    Bytes,
    Concat,
    Expr,
    Global,
    If,
    InnerTxnBuilder,
    Int,
    Itob,
    Log,
    MinBalance,
    Seq,
    Subroutine,
    TealType,
    Txn,
    TxnField,
    TxnType,
    abi,
)

from .events import HeirUpdated, OwnershipTransferred, Withdrawal
from .heirlock_model import TIME_LOCK_SECONDS


class HeirlockState:
    owner = GlobalStateValue(
        TealType.bytes, key="owner", descr="Address allowed to withdraw and update the heir"
    )
    heir = GlobalStateValue(
        TealType.bytes, key="heir", descr="Address that may claim ownership after the time-lock"
    )
    last_withdrawal = GlobalStateValue(
        TealType.uint64, key="last_withdrawal", descr="Timestamp of the last owner withdrawal"
    )


app = Application("Heirlock", state=HeirlockState())


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────
@Subroutine(TealType.uint64)
def pool_balance() -> Expr:
    """Spendable microALGO: account balance above the minimum balance."""
    account = Global.current_application_address()
    return If(
        Balance(account) > MinBalance(account),
        Balance(account) - MinBalance(account),
        Int(0),
    )


def claimable_at() -> Expr:
    return app.state.last_withdrawal.get() + Int(TIME_LOCK_SECONDS)


def log_ownership_transferred(previous_owner: Expr, new_owner: Expr) -> Expr:
    return Log(Concat(Bytes(OwnershipTransferred.selector()), previous_owner, new_owner))


def log_heir_updated(previous_heir: Expr, new_heir: Expr) -> Expr:
    return Log(Concat(Bytes(HeirUpdated.selector()), previous_heir, new_heir))


# ─────────────────────────────────────────────────────────────────────────────
# 1. CREATE
# ─────────────────────────────────────────────────────────────────────────────
@app.create
def create(initial_heir: abi.Address) -> Expr:
    """Caller becomes the owner. Fund the app address afterwards to deposit."""
    return Seq(
        Assert(initial_heir.get() != Global.zero_address(), comment="HeirCannotBeZeroAddress"),
        app.state.owner.set(Txn.sender()),
        app.state.heir.set(initial_heir.get()),
        app.state.last_withdrawal.set(Global.latest_timestamp()),
        log_ownership_transferred(Global.zero_address(), Txn.sender()),
        log_heir_updated(Global.zero_address(), initial_heir.get()),
    )


# ─────────────────────────────────────────────────────────────────────────────
# 2. WITHDRAW (Proof of Life)
# ─────────────────────────────────────────────────────────────────────────────
@app.external
def withdraw(amount: abi.Uint64) -> Expr:
    """Owner takes `amount` out of the pool and resets the inactivity clock.
    The caller must cover the inner payment fee (fee pooling)."""
    return Seq(
        Assert(Txn.sender() == app.state.owner.get(), comment="OnlyOwnerCanCall"),
        Assert(amount.get() <= pool_balance(),        comment="NotEnoughBalance"),
        If(
            amount.get() > Int(0),
            InnerTxnBuilder.Execute({
                TxnField.type_enum: TxnType.Payment,
                TxnField.receiver:  app.state.owner.get(),
                TxnField.amount:    amount.get(),
                TxnField.fee:       Int(0),
            }),
        ),
        app.state.last_withdrawal.set(Global.latest_timestamp()),
        Log(Concat(Bytes(Withdrawal.selector()), Txn.sender(), Itob(amount.get()))),
    )


# ─────────────────────────────────────────────────────────────────────────────
# 3. UPDATE HEIR
# ─────────────────────────────────────────────────────────────────────────────
@app.external
def update_heir(new_heir: abi.Address) -> Expr:
    """Owner replaces the heir. Does not count as activity."""
    return Seq(
        Assert(Txn.sender() == app.state.owner.get(),      comment="OnlyOwnerCanCall"),
        Assert(new_heir.get() != Global.zero_address(),    comment="HeirCannotBeZeroAddress"),
        log_heir_updated(app.state.heir.get(), new_heir.get()),
        app.state.heir.set(new_heir.get()),
    )


# ─────────────────────────────────────────────────────────────────────────────
# 4. CLAIM OWNERSHIP
# ─────────────────────────────────────────────────────────────────────────────
@app.external
def claim_ownership(new_heir: abi.Address) -> Expr:
    """Heir becomes the owner once the time-lock expired, and names a new heir."""
    return Seq(
        Assert(Txn.sender() == app.state.heir.get(),       comment="OnlyHeirCanCall"),
        Assert(Global.latest_timestamp() >= claimable_at(), comment="NotEnoughTimePassed"),
        Assert(new_heir.get() != Global.zero_address(),    comment="HeirCannotBeZeroAddress"),
        log_ownership_transferred(app.state.owner.get(), Txn.sender()),
        log_heir_updated(Txn.sender(), new_heir.get()),
        app.state.owner.set(Txn.sender()),
        app.state.heir.set(new_heir.get()),
    )


# ─────────────────────────────────────────────────────────────────────────────
# 5. READ-ONLY HELPERS
# ─────────────────────────────────────────────────────────────────────────────
@app.external(read_only=True)
def get_owner(*, output: abi.Address) -> Expr:
    return output.set(app.state.owner.get())


@app.external(read_only=True)
def get_heir(*, output: abi.Address) -> Expr:
    return output.set(app.state.heir.get())


@app.external(read_only=True)
def get_last_withdrawal(*, output: abi.Uint64) -> Expr:
    return output.set(app.state.last_withdrawal.get())


@app.external(read_only=True)
def get_balance(*, output: abi.Uint64) -> Expr:
    """Spendable microALGO in the pool."""
    return output.set(pool_balance())


@app.external(read_only=True)
def get_time_remaining(*, output: abi.Uint64) -> Expr:
    """Seconds until the heir may claim. Returns 0 once claimable."""
    now = Global.latest_timestamp()
    return If(
        now >= claimable_at(),
        output.set(Int(0)),
        output.set(claimable_at() - now),
    )
