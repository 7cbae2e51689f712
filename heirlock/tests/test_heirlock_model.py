"""
Heirlock — Reference Model Test Suite
=====================================
Exercises every rule of the custody state machine without a node.

Run:
    pytest heirlock/tests/test_heirlock_model.py -v
"""

import threading

import pytest
from algosdk import account

from contracts.errors import (
    AuthorizationError,
    ClockWentBackwards,
    HeirCannotBeZeroAddress,
    HeirlockError,
    NotEnoughBalance,
    NotEnoughTimePassed,
    OnlyHeirCanCall,
    OnlyOwnerCanCall,
)
from contracts.events import ZERO_ADDRESS, HeirUpdated, OwnershipTransferred, Withdrawal
from contracts.heirlock_model import (
    STATUS_ALIVE,
    STATUS_CLAIMABLE,
    TIME_LOCK_SECONDS,
    Heirlock,
    HeirlockState,
)

T0 = 1_700_000_000


def _address() -> str:
    return account.generate_account()[1]


@pytest.fixture
def owner():
    return _address()


@pytest.fixture
def heir():
    return _address()


@pytest.fixture
def new_heir():
    return _address()


@pytest.fixture
def stranger():
    return _address()


@pytest.fixture
def deployed(owner, heir):
    contract, _ = Heirlock.deploy(owner, heir, now=T0, initial_deposit=100)
    return contract


class TestDeploy:
    def test_sets_initial_state(self, owner, heir):
        contract, _ = Heirlock.deploy(owner, heir, now=T0, initial_deposit=100)
        assert contract.owner == owner
        assert contract.heir == heir
        assert contract.balance == 100
        assert contract.last_withdrawal == T0

    def test_emits_ownership_then_heir_events(self, owner, heir):
        _, events = Heirlock.deploy(owner, heir, now=T0, initial_deposit=100)
        assert events == [
            OwnershipTransferred(ZERO_ADDRESS, owner),
            HeirUpdated(ZERO_ADDRESS, heir),
        ]

    @pytest.mark.parametrize("null_heir", [ZERO_ADDRESS, "", None])
    def test_zero_heir_rejected(self, owner, null_heir):
        with pytest.raises(HeirCannotBeZeroAddress):
            Heirlock.deploy(owner, null_heir, now=T0, initial_deposit=100)

    @pytest.mark.parametrize("null_owner", [ZERO_ADDRESS, "", None])
    def test_zero_owner_rejected(self, heir, null_owner):
        with pytest.raises(ValueError, match="owner cannot be the zero address"):
            Heirlock.deploy(null_owner, heir, now=T0, initial_deposit=100)

    def test_default_deposit_is_zero(self, owner, heir):
        contract, _ = Heirlock.deploy(owner, heir, now=T0)
        assert contract.balance == 0

    def test_negative_deposit_rejected(self, owner, heir):
        with pytest.raises(ValueError):
            Heirlock.deploy(owner, heir, now=T0, initial_deposit=-1)


class TestDeposit:
    def test_anyone_can_deposit(self, deployed):
        assert deployed.deposit(50) == []
        assert deployed.balance == 150

    def test_deposit_does_not_reset_clock(self, deployed):
        deployed.deposit(50)
        assert deployed.last_withdrawal == T0

    def test_negative_deposit_rejected(self, deployed):
        with pytest.raises(ValueError):
            deployed.deposit(-5)
        assert deployed.balance == 100


class TestWithdraw:
    def test_full_withdrawal(self, deployed, owner):
        events = deployed.withdraw(owner, 100, now=T0)
        assert deployed.balance == 0
        assert events == [Withdrawal(owner, 100)]

    def test_partial_withdrawal_resets_clock(self, deployed, owner):
        events = deployed.withdraw(owner, 40, now=T0 + 10)
        assert deployed.balance == 60
        assert deployed.last_withdrawal == T0 + 10
        assert events == [Withdrawal(owner, 40)]

    def test_zero_withdrawal_is_a_heartbeat(self, owner, heir):
        contract, _ = Heirlock.deploy(owner, heir, now=T0, initial_deposit=0)
        events = contract.withdraw(owner, 0, now=T0 + 3600)
        assert contract.balance == 0
        assert contract.last_withdrawal == T0 + 3600
        assert events == [Withdrawal(owner, 0)]

    def test_non_owner_rejected(self, deployed, heir, stranger):
        before = deployed.snapshot()
        for caller in (heir, stranger):
            with pytest.raises(OnlyOwnerCanCall):
                deployed.withdraw(caller, 1, now=T0 + 1)
        assert deployed.snapshot() == before

    def test_owner_check_comes_before_balance_check(self, deployed, heir):
        with pytest.raises(OnlyOwnerCanCall):
            deployed.withdraw(heir, 10_000, now=T0)

    def test_more_than_balance_rejected(self, deployed, owner):
        before = deployed.snapshot()
        with pytest.raises(NotEnoughBalance):
            deployed.withdraw(owner, 101, now=T0 + 1)
        assert deployed.snapshot() == before

    def test_negative_amount_rejected(self, deployed, owner):
        before = deployed.snapshot()
        with pytest.raises(ValueError, match="cannot be negative"):
            deployed.withdraw(owner, -1, now=T0 + 1)
        assert deployed.snapshot() == before

    def test_clock_cannot_go_backwards(self, deployed, owner):
        with pytest.raises(ClockWentBackwards):
            deployed.withdraw(owner, 1, now=T0 - 1)
        assert deployed.balance == 100
        assert deployed.last_withdrawal == T0


class TestUpdateHeir:
    def test_owner_updates_heir(self, deployed, owner, heir, new_heir):
        events = deployed.update_heir(owner, new_heir)
        assert deployed.heir == new_heir
        assert events == [HeirUpdated(heir, new_heir)]

    def test_update_does_not_reset_clock(self, deployed, owner, new_heir):
        deployed.update_heir(owner, new_heir)
        assert deployed.last_withdrawal == T0

    def test_non_owner_rejected(self, deployed, heir, new_heir):
        with pytest.raises(OnlyOwnerCanCall):
            deployed.update_heir(heir, new_heir)
        assert deployed.heir == heir

    def test_zero_heir_rejected(self, deployed, owner, heir):
        with pytest.raises(HeirCannotBeZeroAddress):
            deployed.update_heir(owner, ZERO_ADDRESS)
        assert deployed.heir == heir


class TestClaimOwnership:
    def test_non_heir_rejected_regardless_of_time(self, deployed, owner, stranger, new_heir):
        for now in (T0, T0 + TIME_LOCK_SECONDS, T0 + 10 * TIME_LOCK_SECONDS):
            for caller in (owner, stranger):
                with pytest.raises(OnlyHeirCanCall):
                    deployed.claim_ownership(caller, new_heir, now=now)

    def test_before_deadline_rejected(self, deployed, heir, new_heir):
        with pytest.raises(NotEnoughTimePassed):
            deployed.claim_ownership(heir, new_heir, now=T0 + TIME_LOCK_SECONDS - 1)

    def test_zero_new_heir_rejected(self, deployed, heir):
        with pytest.raises(HeirCannotBeZeroAddress):
            deployed.claim_ownership(heir, ZERO_ADDRESS, now=T0 + TIME_LOCK_SECONDS)

    def test_time_checked_before_new_heir(self, deployed, heir):
        with pytest.raises(NotEnoughTimePassed):
            deployed.claim_ownership(heir, ZERO_ADDRESS, now=T0)

    def test_claim_at_boundary(self, deployed, owner, heir, new_heir):
        events = deployed.claim_ownership(heir, new_heir, now=T0 + TIME_LOCK_SECONDS)
        assert deployed.owner == heir
        assert deployed.heir == new_heir
        assert deployed.last_withdrawal == T0
        assert deployed.balance == 100
        assert events == [
            OwnershipTransferred(owner, heir),
            HeirUpdated(heir, new_heir),
        ]

    def test_withdrawal_pushes_deadline(self, deployed, owner, heir, new_heir):
        deployed.withdraw(owner, 0, now=T0 + TIME_LOCK_SECONDS - 1)
        with pytest.raises(NotEnoughTimePassed):
            deployed.claim_ownership(heir, new_heir, now=T0 + TIME_LOCK_SECONDS)

    def test_heir_update_does_not_push_deadline(self, deployed, owner, heir, new_heir):
        deployed.update_heir(owner, new_heir)
        events = deployed.claim_ownership(new_heir, heir, now=T0 + TIME_LOCK_SECONDS)
        assert deployed.owner == new_heir
        assert events[0] == OwnershipTransferred(owner, new_heir)

    def test_rejections_are_heirlock_errors(self, deployed, stranger, new_heir):
        with pytest.raises(HeirlockError) as exc_info:
            deployed.claim_ownership(stranger, new_heir, now=T0)
        assert isinstance(exc_info.value, AuthorizationError)
        assert exc_info.value.code == "OnlyHeirCanCall"
        assert str(exc_info.value) == "OnlyHeirCanCall"


class TestScenarios:
    def test_deploy_then_withdraw_everything(self, owner, heir):
        contract, _ = Heirlock.deploy(owner, heir, now=T0, initial_deposit=100)
        events = contract.withdraw(owner, 100, now=T0)
        assert contract.balance == 0
        assert events == [Withdrawal(owner, 100)]

    def test_succession_after_window(self, owner, heir, new_heir):
        contract, _ = Heirlock.deploy(owner, heir, now=T0, initial_deposit=100)
        now = T0 + TIME_LOCK_SECONDS

        contract.claim_ownership(heir, new_heir, now=now)
        assert (contract.owner, contract.heir) == (heir, new_heir)

        # former heir is now the owner, not the heir
        with pytest.raises(OnlyHeirCanCall):
            contract.claim_ownership(heir, new_heir, now=now)

        # claiming leaves the clock where it was
        assert contract.last_withdrawal == T0
        assert contract.status(now) == STATUS_CLAIMABLE

    def test_new_owner_must_withdraw_to_rearm_clock(self, owner, heir, new_heir):
        contract, _ = Heirlock.deploy(owner, heir, now=T0, initial_deposit=100)
        now = T0 + TIME_LOCK_SECONDS
        contract.claim_ownership(heir, new_heir, now=now)

        contract.withdraw(heir, 0, now=now)
        with pytest.raises(NotEnoughTimePassed):
            contract.claim_ownership(new_heir, owner, now=now)
        assert contract.owner == heir

    def test_new_heir_can_reclaim_immediately_without_withdrawal(self, owner, heir, new_heir):
        contract, _ = Heirlock.deploy(owner, heir, now=T0, initial_deposit=100)
        now = T0 + TIME_LOCK_SECONDS
        contract.claim_ownership(heir, new_heir, now=now)

        events = contract.claim_ownership(new_heir, owner, now=now)
        assert contract.owner == new_heir
        assert events == [
            OwnershipTransferred(heir, new_heir),
            HeirUpdated(new_heir, owner),
        ]

    def test_new_heir_blocked_inside_window(self, owner, heir, new_heir):
        """A claim made just after a heartbeat leaves the new heir locked out."""
        contract, _ = Heirlock.deploy(owner, heir, now=T0, initial_deposit=100)
        contract.withdraw(owner, 0, now=T0 + 5)
        with pytest.raises(NotEnoughTimePassed):
            contract.claim_ownership(heir, new_heir, now=T0 + TIME_LOCK_SECONDS)
        with pytest.raises(OnlyHeirCanCall):
            contract.claim_ownership(new_heir, heir, now=T0 + TIME_LOCK_SECONDS + 5)


class TestReadHelpers:
    def test_time_remaining(self, deployed):
        assert deployed.claimable_at == T0 + TIME_LOCK_SECONDS
        assert deployed.time_remaining(T0) == TIME_LOCK_SECONDS
        assert deployed.time_remaining(T0 + TIME_LOCK_SECONDS) == 0
        assert deployed.time_remaining(T0 + 2 * TIME_LOCK_SECONDS) == 0

    def test_status(self, deployed):
        assert deployed.status(T0) == STATUS_ALIVE
        assert deployed.status(T0 + TIME_LOCK_SECONDS - 1) == STATUS_ALIVE
        assert deployed.status(T0 + TIME_LOCK_SECONDS) == STATUS_CLAIMABLE

    def test_snapshot(self, deployed, owner, heir):
        assert deployed.snapshot() == HeirlockState(
            owner=owner, heir=heir, last_withdrawal=T0, balance=100
        )

    def test_time_lock_is_thirty_days(self):
        assert TIME_LOCK_SECONDS == 2_592_000


class TestConcurrency:
    def test_parallel_withdrawals_never_overdraw(self, owner, heir):
        contract, _ = Heirlock.deploy(owner, heir, now=T0, initial_deposit=50)
        results = []

        def worker():
            try:
                contract.withdraw(owner, 1, now=T0 + 1)
                results.append("ok")
            except NotEnoughBalance:
                results.append("rejected")

        threads = [threading.Thread(target=worker) for _ in range(80)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("ok") == 50
        assert results.count("rejected") == 30
        assert contract.balance == 0
