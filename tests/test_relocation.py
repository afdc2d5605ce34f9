"""
Tests for database copy relocation away from and back to a node.
"""

import pytest

from xmaint.exceptions import ConvergenceTimeoutError
from xmaint.maintenance.relocation import (
    DatabaseRelocationCoordinator, belongs_mounted_here, relocation_progress,
)
from xmaint.models import ActivationPolicy, CopyStatus, DatabaseCopy, ReplicationKind


@pytest.fixture
def coordinator(fleet, no_sleep):
    return DatabaseRelocationCoordinator(fleet.copies, interval=5.0, max_retries=3, sleep=no_sleep)


def test_relocation_progress():
    assert relocation_progress(4, 1) == 75.0
    assert relocation_progress(3, 0) == 100.0
    assert relocation_progress(0, 0) == 100.0


def test_belongs_mounted_here():
    preferred = DatabaseCopy('DB01', 'n1', CopyStatus.HEALTHY, activation_preference=1)
    secondary = DatabaseCopy('DB02', 'n1', CopyStatus.HEALTHY, activation_preference=2)
    standalone = DatabaseCopy('DB03', 'n1', CopyStatus.DISMOUNTED, replication=ReplicationKind.NONE,
                              activation_preference=3)

    assert belongs_mounted_here(preferred)
    assert not belongs_mounted_here(secondary)
    assert belongs_mounted_here(standalone)


class TestRelocateAway:

    def test_moves_all_mounted_copies(self, fleet, coordinator):
        assert coordinator.mounted_count('n1') == 3

        result = coordinator.relocate_away('n1')

        assert result.value == 0
        assert coordinator.mounted_count('n1') == 0
        assert coordinator.is_relocated_away('n1')
        assert fleet.calls('copies.set_activation_policy') == [('copies.set_activation_policy', 'n1', 'Blocked')]
        assert fleet.calls('copies.trigger_move') == [('copies.trigger_move', 'n1')]

    def test_nothing_mounted_skips_polling(self, fleet, coordinator, no_sleep):
        fleet.add_copy('n4', 'DB10', mounted=False)

        result = coordinator.relocate_away('n4')

        assert result.attempts == 0
        assert result.elapsed == 0.0
        assert no_sleep.calls == []
        assert fleet.calls('copies.trigger_move') == []
        # Activation is still blocked so nothing gets activated here meanwhile
        assert fleet.held_copies['n4'][0].activation_policy == ActivationPolicy.BLOCKED

    def test_dismounted_unreplicated_copy_loses_mount_at_startup(self, fleet, coordinator, no_sleep):
        fleet.add_copy('n4', 'DB50', mounted=False, replicated=False)
        fleet.held_copies['n4'][0].status = CopyStatus.DISMOUNTED

        result = coordinator.relocate_away('n4')

        assert result.attempts == 0
        assert no_sleep.calls == []
        assert fleet.held_copies['n4'][0].mount_at_startup is False
        assert fleet.calls('copies.set_mount_at_startup') == [('copies.set_mount_at_startup', 'DB50\\n4', False)]
        assert fleet.calls('copies.dismount') == []
        assert coordinator.is_relocated_away('n4')

    def test_is_relocated_away_requires_mount_at_startup_off(self, fleet, coordinator):
        copy = fleet.add_copy('n4', 'DB50', mounted=False, replicated=False)
        copy.activation_policy = ActivationPolicy.BLOCKED
        copy.activation_disabled_and_move_now = True

        assert not coordinator.is_relocated_away('n4')

        copy.mount_at_startup = False
        assert coordinator.is_relocated_away('n4')

    def test_unreplicated_copies_are_dismounted(self, fleet, coordinator):
        fleet.add_copy('n1', 'DB99', replicated=False)

        coordinator.relocate_away('n1')

        assert fleet.calls('copies.dismount') == [('copies.dismount', 'DB99\\n1')]
        assert fleet.calls('copies.set_mount_at_startup') == [('copies.set_mount_at_startup', 'DB99\\n1', False)]

    def test_times_out_with_copies_still_mounted(self, fleet, coordinator):
        fleet.stuck_copies = True

        with pytest.raises(ConvergenceTimeoutError) as exc_info:
            coordinator.relocate_away('n1')

        assert exc_info.value.last_observed == 3
        assert exc_info.value.attempts == 4

    def test_is_relocated_away_requires_blocked_activation(self, fleet, coordinator):
        for copy in fleet.held_copies['n1']:
            copy.status = CopyStatus.HEALTHY

        assert not coordinator.is_relocated_away('n1')


class TestRelocateBack:

    def test_restores_preferred_and_unreplicated_copies(self, fleet, coordinator):
        fleet.add_copy('n1', 'DB99', replicated=False)
        fleet.add_copy('n1', 'DB20', preference=2)
        coordinator.relocate_away('n1')
        fleet.mutations.clear()

        result = coordinator.relocate_back('n1')

        assert result.value == 0
        assert coordinator.is_activation_enabled('n1')
        assert coordinator.is_restored('n1')
        # Three preferred replicated copies plus the unreplicated one; DB20 stays passive
        assert coordinator.mounted_count('n1') == 4
        assert fleet.calls('copies.rebalance') == [('copies.rebalance', 'n1')]
        assert fleet.calls('copies.mount') == [('copies.mount', 'DB99\\n1')]

    def test_pending_restore(self, fleet, coordinator):
        coordinator.relocate_away('n1')

        assert coordinator.pending_restore('n1') == 3

    def test_restore_times_out_when_rebalance_does_nothing(self, fleet, coordinator):
        coordinator.relocate_away('n1')
        fleet.stuck_copies = True

        with pytest.raises(ConvergenceTimeoutError):
            coordinator.restore_copies('n1')
