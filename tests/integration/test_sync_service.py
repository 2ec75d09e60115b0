"""
Integration tests for DiagramSyncService on an in-memory database.

Tests cover:
- Push create / update / restore
- Sync in-place overwrite
- Snapshots and retention
- Version deletion guards
- Reads (pull, pull-all) and owner isolation
- Transaction rollback
"""

import json

import pytest
import pytest_asyncio
from sqlalchemy import Text
from sqlalchemy.exc import OperationalError

from diagram_sync.core.errors import NotFoundError, StorageError, ValidationError
from diagram_sync.db.models.diagram import Diagram as DiagramModel, DiagramVersion as DiagramVersionModel
from diagram_sync.db.repositories.user_repository import UserRepository
from diagram_sync.domains.diagrams.services import (
    CREATED, RESTORED, SYNCED, UPDATED, DiagramSyncService
)
from diagram_sync.domains.identity.entities import User


def document(diagram_id="diagram-1", name="Shop", **extra):
    body = {"id": diagram_id, "name": name, "databaseType": "postgresql", "tables": []}
    body.update(extra)
    return json.dumps(body)


async def make_user(session, email):
    user = await UserRepository(session).create(User.create_user(email, "secret123", "User"))
    await session.commit()
    return user


@pytest_asyncio.fixture
async def owner(db_session):
    return await make_user(db_session, "owner@example.com")


@pytest.fixture
def service(db_session):
    return DiagramSyncService(db_session)


class TestPush:
    """Tests for the explicit save protocol."""

    @pytest.mark.asyncio
    async def test_first_push_creates_version_one(self, service, owner):
        outcome = await service.push(owner.id, document(description="initial"))

        assert outcome.status == CREATED
        assert outcome.is_new
        assert outcome.version == 1

        versions = await service.list_versions(owner.id, "diagram-1")
        assert [v.version for v in versions] == [1]
        assert versions[0].description == "initial"

    @pytest.mark.asyncio
    async def test_second_push_increments_version(self, service, owner):
        await service.push(owner.id, document())
        outcome = await service.push(owner.id, document(name="Shop v2"))

        assert outcome.status == UPDATED
        assert outcome.version == 2

        diagram = await service.get_diagram(owner.id, "diagram-1")
        assert diagram.version == 2
        assert diagram.name == "Shop v2"

    @pytest.mark.asyncio
    async def test_long_metadata_is_stored_whole(self, service, owner):
        name = "n" * 400
        database_type = "t" * 80
        edition = "e" * 80
        description = "d" * 600

        await service.push(owner.id, document(
            name=name, databaseType=database_type, databaseEdition=edition, description=description
        ))

        diagram = await service.get_diagram(owner.id, "diagram-1")
        assert diagram.name == name
        assert diagram.database_type == database_type
        assert diagram.database_edition == edition
        versions = await service.list_versions(owner.id, "diagram-1")
        assert versions[0].description == description

    def test_metadata_columns_are_unbounded_text(self):
        """Payload metadata has no length limit, so the columns must not have one either."""
        columns = DiagramModel.__table__.c
        for column in (columns.name, columns.database_type, columns.database_edition):
            assert isinstance(column.type, Text)
        assert isinstance(DiagramVersionModel.__table__.c.description.type, Text)

    @pytest.mark.asyncio
    async def test_overlong_external_id_is_rejected(self, service, owner):
        with pytest.raises(ValidationError):
            await service.push(owner.id, document("x" * 256))

        assert await service.list_diagrams(owner.id) == []

    @pytest.mark.asyncio
    async def test_invalid_payload_writes_nothing(self, service, owner):
        with pytest.raises(ValidationError):
            await service.push(owner.id, '{"name": "no id"}')

        assert await service.list_diagrams(owner.id) == []

    @pytest.mark.asyncio
    async def test_pull_is_byte_identical_to_push(self, service, owner, db_session):
        raw = '{"id":"diagram-1","name":"Shop",  "tables":[{"id":"t1"}],"z":1}'
        await service.push(owner.id, raw.encode())

        diagram = await service.get_diagram(owner.id, "diagram-1")
        stored = await service.version_repository.get_by_number(diagram.id, 1)
        assert stored.data == raw

        pulled = await service.pull(owner.id, "diagram-1", 1)
        assert pulled.pop("version") == 1
        assert pulled == json.loads(raw)

    @pytest.mark.asyncio
    async def test_retention_keeps_ten_newest(self, service, owner):
        for i in range(12):
            await service.push(owner.id, document(name=f"rev {i}"))

        versions = await service.list_versions(owner.id, "diagram-1")
        assert [v.version for v in versions] == list(range(12, 2, -1))

    @pytest.mark.asyncio
    async def test_push_restores_archived_diagram(self, service, owner):
        first = await service.push(owner.id, document())
        await service.push(owner.id, document())
        await service.archive_diagram(owner.id, "diagram-1")

        with pytest.raises(NotFoundError):
            await service.get_diagram(owner.id, "diagram-1")

        outcome = await service.push(owner.id, document(name="Back"))

        assert outcome.status == RESTORED
        assert outcome.version == 1
        assert outcome.diagram.id == first.diagram.id

        versions = await service.list_versions(owner.id, "diagram-1")
        assert [v.version for v in versions] == [1]


class TestSync:
    """Tests for the background save protocol."""

    @pytest.mark.asyncio
    async def test_sync_creates_with_initial_description(self, service, owner):
        outcome = await service.sync(owner.id, document(description="ignored"))

        assert outcome.is_new
        assert outcome.version == 1

        versions = await service.list_versions(owner.id, "diagram-1")
        assert versions[0].description == "Initial sync"

    @pytest.mark.asyncio
    async def test_sync_never_changes_counter(self, service, owner):
        await service.push(owner.id, document())
        await service.push(owner.id, document())

        for i in range(3):
            outcome = await service.sync(owner.id, document(name=f"draft {i}", tables=[{"id": i}]))
            assert outcome.status == SYNCED
            assert outcome.version == 2

        versions = await service.list_versions(owner.id, "diagram-1")
        assert [v.version for v in versions] == [2, 1]

        pulled = await service.pull(owner.id, "diagram-1")
        assert pulled["tables"] == [{"id": 2}]
        assert pulled["version"] == 2
        assert (await service.get_diagram(owner.id, "diagram-1")).name == "draft 2"

    @pytest.mark.asyncio
    async def test_sync_recreates_missing_latest_row(self, service, owner):
        await service.push(owner.id, document())
        await service.push(owner.id, document())
        diagram = await service.get_diagram(owner.id, "diagram-1")
        latest = await service.version_repository.get_by_number(diagram.id, 2)
        await service.version_repository.delete(latest)
        await service.session.commit()

        outcome = await service.sync(owner.id, document(tables=[{"id": "new"}]))

        assert outcome.version == 2
        pulled = await service.pull(owner.id, "diagram-1", 2)
        assert pulled["tables"] == [{"id": "new"}]

    @pytest.mark.asyncio
    async def test_sync_does_not_restore_archived(self, service, owner):
        first = await service.push(owner.id, document())
        await service.archive_diagram(owner.id, "diagram-1")

        outcome = await service.sync(owner.id, document())

        assert outcome.is_new
        assert outcome.diagram.id != first.diagram.id

        # push now prefers the live row
        pushed = await service.push(owner.id, document())
        assert pushed.status == UPDATED
        assert pushed.diagram.id == outcome.diagram.id


class TestSnapshot:
    """Tests for manual snapshots."""

    @pytest.mark.asyncio
    async def test_snapshot_copies_latest_data(self, service, owner):
        await service.push(owner.id, document(tables=[{"id": "t1"}]))

        outcome = await service.snapshot(owner.id, "diagram-1")

        assert outcome.version == 2
        versions = await service.list_versions(owner.id, "diagram-1")
        assert versions[0].description == "Manual snapshot"
        assert versions[0].data == versions[1].data

    @pytest.mark.asyncio
    async def test_snapshot_with_description(self, service, owner):
        await service.push(owner.id, document())
        await service.snapshot(owner.id, "diagram-1", "before refactor")

        versions = await service.list_versions(owner.id, "diagram-1")
        assert versions[0].description == "before refactor"

    @pytest.mark.asyncio
    async def test_snapshot_unknown_diagram(self, service, owner):
        with pytest.raises(NotFoundError):
            await service.snapshot(owner.id, "missing")

    @pytest.mark.asyncio
    async def test_snapshot_applies_retention(self, service, owner):
        await service.push(owner.id, document())
        for _ in range(10):
            await service.snapshot(owner.id, "diagram-1")

        versions = await service.list_versions(owner.id, "diagram-1")
        assert len(versions) == 10
        assert versions[-1].version == 2


class TestDeleteVersion:
    """Tests for deleting historical versions."""

    @pytest.mark.asyncio
    async def test_cannot_delete_only_version(self, service, owner):
        await service.push(owner.id, document())

        with pytest.raises(ValidationError):
            await service.delete_version(owner.id, "diagram-1", 1)

    @pytest.mark.asyncio
    async def test_cannot_delete_latest_version(self, service, owner):
        await service.push(owner.id, document())
        await service.push(owner.id, document())

        with pytest.raises(ValidationError):
            await service.delete_version(owner.id, "diagram-1", 2)

    @pytest.mark.asyncio
    async def test_delete_historical_version(self, service, owner):
        for _ in range(3):
            await service.push(owner.id, document())

        deleted = await service.delete_version(owner.id, "diagram-1", 2)

        assert deleted == 2
        versions = await service.list_versions(owner.id, "diagram-1")
        assert [v.version for v in versions] == [3, 1]

    @pytest.mark.asyncio
    async def test_delete_missing_version(self, service, owner):
        await service.push(owner.id, document())
        await service.push(owner.id, document())

        with pytest.raises(NotFoundError):
            await service.delete_version(owner.id, "diagram-1", 9)


class TestReads:
    """Tests for pull, pull-all, listing and owner isolation."""

    @pytest.mark.asyncio
    async def test_pull_missing_version(self, service, owner):
        await service.push(owner.id, document())

        with pytest.raises(NotFoundError):
            await service.pull(owner.id, "diagram-1", 5)

    @pytest.mark.asyncio
    async def test_pull_all_adds_counter_and_server_id(self, service, owner):
        first = await service.push(owner.id, document("a"))
        await service.push(owner.id, document("b"))
        await service.push(owner.id, document("b"))

        documents = {doc["id"]: doc for doc in await service.pull_all(owner.id)}

        assert set(documents) == {"a", "b"}
        assert documents["a"]["version"] == 1
        assert documents["a"]["server_id"] == first.diagram.id
        assert documents["b"]["version"] == 2

    @pytest.mark.asyncio
    async def test_pull_all_skips_corrupt_documents(self, service, owner):
        await service.push(owner.id, document("good"))
        bad = await service.push(owner.id, document("bad"))
        stored = await service.version_repository.get_latest(bad.diagram.id)
        await service.version_repository.overwrite_data(stored, "{not json")
        await service.session.commit()

        documents = await service.pull_all(owner.id)
        assert [doc["id"] for doc in documents] == ["good"]

        with pytest.raises(StorageError):
            await service.pull(owner.id, "bad")

    @pytest.mark.asyncio
    async def test_pull_all_skips_diagrams_without_versions(self, service, owner):
        await service.push(owner.id, document("kept"))
        emptied = await service.push(owner.id, document("emptied"))
        await service.push(owner.id, document("emptied"))
        await service.version_repository.delete_for_diagram(emptied.diagram.id)
        await service.session.commit()

        documents = await service.pull_all(owner.id)

        assert [doc["id"] for doc in documents] == ["kept"]
        with pytest.raises(NotFoundError):
            await service.pull(owner.id, "emptied")

    @pytest.mark.asyncio
    async def test_other_owner_sees_nothing(self, service, owner, db_session):
        stranger = await make_user(db_session, "stranger@example.com")
        await service.push(owner.id, document())

        with pytest.raises(NotFoundError):
            await service.pull(stranger.id, "diagram-1")
        with pytest.raises(NotFoundError):
            await service.delete_diagram(stranger.id, "diagram-1")
        assert await service.list_diagrams(stranger.id) == []

        # same external id is independent per owner
        outcome = await service.push(stranger.id, document())
        assert outcome.status == CREATED

    @pytest.mark.asyncio
    async def test_delete_diagram_removes_history(self, service, owner):
        pushed = await service.push(owner.id, document())
        await service.push(owner.id, document())

        await service.delete_diagram(owner.id, "diagram-1")

        assert await service.list_diagrams(owner.id) == []
        assert await service.version_repository.count_for_diagram(pushed.diagram.id) == 0

        outcome = await service.push(owner.id, document())
        assert outcome.status == CREATED


class TestTransactions:
    """A failure inside a protocol rolls back the whole call."""

    @pytest.mark.asyncio
    async def test_failed_version_write_rolls_back_diagram(self, service, owner):
        async def failing_create(version):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        service.version_repository.create = failing_create

        with pytest.raises(StorageError) as exc_info:
            await service.push(owner.id, document())

        assert "disk" not in str(exc_info.value)
        assert await service.list_diagrams(owner.id) == []
