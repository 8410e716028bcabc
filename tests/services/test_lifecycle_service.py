"""LifecycleService: load -> transition -> compare-and-swap save."""

import pytest

from clinic_kernel.domain.statuses import ContractStatus, EntityKind, TransactionStatus
from clinic_kernel.exceptions import EntityNotFoundError, StorageConflictError
from clinic_kernel.services.lifecycle_service import LifecycleService
from clinic_kernel.services.repository import InMemoryRepository
from clinic_kernel.services.retry import run_with_conflict_retry


class TestCreateAndTransition:
    def test_create_persists_version_one(self, lifecycle_service):
        contract = lifecycle_service.create("contract", "C-1", actor="clerk")
        stored = lifecycle_service.get("contract", "C-1")
        assert contract.version == 1
        assert stored.current_status == ContractStatus.NEW.value
        assert stored.history[0].actor == "clerk"

    def test_generated_id(self, lifecycle_service):
        entity = lifecycle_service.create("transaction")
        assert lifecycle_service.get("transaction", entity.id).id == entity.id

    def test_successful_transition_is_saved(self, lifecycle_service, deterministic_clock):
        lifecycle_service.create("contract", "C-1")
        deterministic_clock.advance_days(1)

        result = lifecycle_service.transition(
            "contract", "C-1", ContractStatus.APPROVED.value, "ok", "manager",
        )

        stored = lifecycle_service.get("contract", "C-1")
        assert result.is_valid
        assert stored.current_status == ContractStatus.APPROVED.value
        assert stored.version == 2
        assert stored.history[-1].timestamp == deterministic_clock.now()

    def test_refused_transition_is_not_saved(self, lifecycle_service):
        lifecycle_service.create("contract", "C-1")
        lifecycle_service.transition("contract", "C-1", ContractStatus.DELIVERED.value)

        result = lifecycle_service.transition("contract", "C-1", ContractStatus.NEW.value)

        stored = lifecycle_service.get("contract", "C-1")
        assert not result
        assert stored.version == 2
        assert stored.current_status == ContractStatus.DELIVERED.value

    def test_allowed_next_states(self, lifecycle_service):
        lifecycle_service.create("contract", "C-1")
        lifecycle_service.transition("contract", "C-1", ContractStatus.REJECTED.value)
        assert lifecycle_service.allowed_next_states("contract", "C-1") == (
            ContractStatus.REJECTED.value,
        )

    def test_missing_entity(self, lifecycle_service):
        with pytest.raises(EntityNotFoundError) as exc_info:
            lifecycle_service.transition("contract", "nope", ContractStatus.APPROVED.value)
        assert exc_info.value.code == "ENTITY_NOT_FOUND"

    def test_kind_is_part_of_the_key(self, lifecycle_service):
        lifecycle_service.create("contract", "SHARED")
        with pytest.raises(EntityNotFoundError):
            lifecycle_service.get("purchase_order", "SHARED")

    def test_delete(self, lifecycle_service):
        lifecycle_service.create("report", "R-1")
        lifecycle_service.delete("report", "R-1")
        with pytest.raises(EntityNotFoundError):
            lifecycle_service.get("report", "R-1")

    def test_enum_members_address_the_same_records(self, lifecycle_service):
        lifecycle_service.create(EntityKind.CONTRACT, "C-1")
        result = lifecycle_service.transition(
            EntityKind.CONTRACT, "C-1", ContractStatus.APPROVED,
        )

        assert result.is_valid
        stored = lifecycle_service.get("contract", "C-1")
        assert stored.current_status == ContractStatus.APPROVED.value
        assert lifecycle_service.get(EntityKind.CONTRACT, "C-1").version == 2
        assert [e.id for e in lifecycle_service.list(
            EntityKind.CONTRACT, ContractStatus.APPROVED,
        )] == ["C-1"]
        lifecycle_service.delete(EntityKind.CONTRACT, "C-1")
        assert lifecycle_service.list("contract") == []

    def test_transition_log_carries_context(self, lifecycle_service, captured_logs):
        lifecycle_service.create("contract", "C-1")
        lifecycle_service.transition(
            "contract", "C-1", ContractStatus.APPROVED.value, actor="manager",
        )
        moved = [r for r in captured_logs() if r["message"] == "status_transitioned"]
        assert moved[0]["entity_id"] == "C-1"
        assert moved[0]["actor_id"] == "manager"


class TestQueries:
    def test_list_by_status(self, lifecycle_service):
        lifecycle_service.create("transaction", "T-1")
        lifecycle_service.create("transaction", "T-2")
        lifecycle_service.transition("transaction", "T-2", TransactionStatus.COMPLETED.value)

        open_ids = [e.id for e in lifecycle_service.list(
            "transaction", TransactionStatus.OPEN.value,
        )]
        assert open_ids == ["T-1"]
        assert len(lifecycle_service.list("transaction")) == 2

    def test_overdue_report(self, lifecycle_service, deterministic_clock):
        lifecycle_service.create("transaction", "T-old")
        deterministic_clock.advance_days(10)
        lifecycle_service.create("transaction", "T-new")
        lifecycle_service.create("transaction", "T-done")
        lifecycle_service.transition("transaction", "T-done", TransactionStatus.COMPLETED.value)
        deterministic_clock.advance_days(25)

        overdue = lifecycle_service.overdue("transaction")

        assert [(e.id, days) for e, days in overdue] == [("T-old", 14), ("T-new", 4)]

    def test_view(self, lifecycle_service):
        lifecycle_service.create("contract", "C-1", note="first note")
        view = lifecycle_service.view("contract", "C-1")
        assert view["named_audit_fields"]["creation_date_note"] == "first note"
        assert view["version"] == 1


class TestConflicts:
    def test_stale_save_conflicts(
        self, memory_repository, status_machine, deterministic_clock,
    ):
        service = LifecycleService(memory_repository, status_machine, deterministic_clock)
        service.create("contract", "C-1")

        stale = memory_repository.load("contract", "C-1")
        service.transition("contract", "C-1", ContractStatus.APPROVED.value)
        status_machine.transition(
            stale, ContractStatus.REJECTED.value, now=deterministic_clock.tick(),
        )

        with pytest.raises(StorageConflictError) as exc_info:
            memory_repository.save(stale)
        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2

    def test_retry_rereads_and_succeeds(self, status_machine, deterministic_clock):
        repository = InterleavingRepository()
        service = LifecycleService(repository, status_machine, deterministic_clock)
        service.create("contract", "C-1")
        repository.interfere_next_load = True

        with pytest.raises(StorageConflictError):
            service.transition("contract", "C-1", ContractStatus.APPROVED.value)

        repository.interfere_next_load = True
        result = run_with_conflict_retry(
            lambda: service.transition("contract", "C-1", ContractStatus.APPROVED.value),
        )
        assert result.is_valid
        assert service.get("contract", "C-1").current_status == ContractStatus.APPROVED.value


class InterleavingRepository(InMemoryRepository):
    """Lets a competing writer bump the version right after a locked read."""

    def __init__(self):
        super().__init__()
        self.interfere_next_load = False

    def load(self, kind, key, *, for_update=False):
        record = super().load(kind, key, for_update=for_update)
        if for_update and self.interfere_next_load:
            self.interfere_next_load = False
            super().save(super().load(kind, key))
        return record
