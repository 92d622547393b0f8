"""Unit tests for resource-group rollback after a failed run."""

from __future__ import annotations

from aca_deployer.errors import CommandError, ProvisionError
from aca_deployer.provisioning.base import ResourceKind, ResourceRecord, RunOutcome
from aca_deployer.provisioning.rollback import RollbackHandler


def _error() -> ProvisionError:
    return ProvisionError(
        ResourceKind.DATABASE_SERVER, "n8ndb", CommandError(["az"], 1, "quota")
    )


def _group(*, created: bool) -> ResourceRecord:
    return ResourceRecord(
        kind=ResourceKind.RESOURCE_GROUP,
        name="n8n-rg",
        existed_before_run=not created,
        created_by_this_run=created,
    )


class TestRollbackHandler:
    def test_deletes_group_created_by_run(self, make_store):
        store = make_store()
        outcome = RollbackHandler(store).handle(_error(), [_group(created=True)])
        assert outcome is RunOutcome.FAILED_WITH_ROLLBACK
        assert store.calls == [("delete", ResourceKind.RESOURCE_GROUP, "n8n-rg")]
        assert store.waits[(ResourceKind.RESOURCE_GROUP, "n8n-rg")] is False

    def test_preexisting_group_untouched(self, make_store):
        store = make_store()
        outcome = RollbackHandler(store).handle(_error(), [_group(created=False)])
        assert outcome is RunOutcome.FAILED_WITHOUT_ROLLBACK
        assert store.verbs("delete") == []

    def test_no_group_record(self, make_store):
        store = make_store()
        outcome = RollbackHandler(store).handle(_error(), [])
        assert outcome is RunOutcome.FAILED_WITHOUT_ROLLBACK
        assert store.calls == []

    def test_disabled(self, make_store):
        store = make_store()
        outcome = RollbackHandler(store, enabled=False).handle(
            _error(), [_group(created=True)]
        )
        assert outcome is RunOutcome.FAILED_WITHOUT_ROLLBACK
        assert store.calls == []

    def test_delete_failure_swallowed(self, make_store):
        store = make_store(fail_on_delete=[ResourceKind.RESOURCE_GROUP])
        outcome = RollbackHandler(store).handle(_error(), [_group(created=True)])
        assert outcome is RunOutcome.FAILED_WITHOUT_ROLLBACK

    def test_only_group_deleted(self, make_store):
        store = make_store()
        records = [
            _group(created=True),
            ResourceRecord(
                kind=ResourceKind.LOG_WORKSPACE, name="ws", created_by_this_run=True
            ),
        ]
        RollbackHandler(store).handle(_error(), records)
        assert store.verbs("delete") == [ResourceKind.RESOURCE_GROUP]


class TestRunOutcome:
    def test_exit_codes(self):
        assert RunOutcome.SUCCEEDED.exit_code == 0
        assert RunOutcome.FAILED_WITH_ROLLBACK.exit_code == 1
        assert RunOutcome.FAILED_WITHOUT_ROLLBACK.exit_code == 1
