"""
Record API Tests
"""

import asyncio
from datetime import datetime, timedelta

import fitz
import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.crud.folder import FolderCRUD
from app.crud.record import RecordCRUD
from app.models.record import Record, RecordCategory
from app.services import record_service


async def _own_folder(client: AsyncClient, headers, name="Work Notes") -> int:
    response = await client.post("/folders", json={"name": name}, headers=headers)
    return response.json()["id"]


async def _seed_records(session, folder_id: int, count: int, title="Memo") -> list[Record]:
    start = datetime(2025, 1, 1, 9, 0)
    records = [
        Record(
            folder_id=folder_id,
            title=f"{title} {i}",
            recorded_at=start + timedelta(minutes=i),
            category=RecordCategory.WORK,
            audio_url=f"http://s3.test/records/audio/{i}.m4a",
            duration=60,
        )
        for i in range(count)
    ]
    session.add_all(records)
    await session.commit()
    return records


class TestCreateRecord:
    """Multipart upload"""

    @pytest.mark.asyncio
    async def test_create(self, client: AsyncClient, auth_headers, upload_record, blob_store, dispatcher):
        headers = auth_headers()
        folder_id = await _own_folder(client, headers)

        response = await upload_record(headers, folder_id, place="52.52, 13.405")

        assert response.status_code == 201
        record = response.json()
        assert record["title"] == "Standup"
        assert record["category"] == "Work"
        assert record["datetime"] == "2025-01-01T10:00:00"
        assert record["duration"] == 0
        assert record["description"] is None
        assert record["folder_id"] == folder_id
        assert record["latitude"] == pytest.approx(52.52)
        assert record["longitude"] == pytest.approx(13.405)
        assert blob_store.objects[record["audio_url"]] == b"fake-m4a-bytes"
        assert dispatcher.published == [record["id"]]

    @pytest.mark.asyncio
    async def test_category_is_case_insensitive(self, client: AsyncClient, auth_headers, upload_record):
        headers = auth_headers()
        folder_id = await _own_folder(client, headers)
        response = await upload_record(headers, folder_id, category="study")
        assert response.status_code == 201
        assert response.json()["category"] == "Study"

    @pytest.mark.asyncio
    async def test_malformed_place_is_ignored(self, client: AsyncClient, auth_headers, upload_record):
        headers = auth_headers()
        folder_id = await _own_folder(client, headers)
        response = await upload_record(headers, folder_id, place="somewhere")
        assert response.status_code == 201
        assert response.json()["latitude"] is None
        assert response.json()["longitude"] is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"title": None},
            {"title": "  "},
            {"category": "Hobby"},
            {"recorded_at": None},
            {"recorded_at": "yesterday"},
            {"audio": None},
        ],
    )
    async def test_missing_fields(self, client: AsyncClient, auth_headers, upload_record, blob_store, overrides):
        headers = auth_headers()
        folder_id = await _own_folder(client, headers)
        response = await upload_record(headers, folder_id, **overrides)
        assert response.status_code == 400
        assert response.json()["message"] == "Missing required fields"
        assert blob_store.objects == {}

    @pytest.mark.asyncio
    async def test_folder_id_required(self, client: AsyncClient, auth_headers, upload_record):
        response = await upload_record(auth_headers(), None)
        assert response.status_code == 400
        assert response.json()["message"] == "folderId is required"

    @pytest.mark.asyncio
    async def test_unknown_folder(self, client: AsyncClient, auth_headers, upload_record):
        response = await upload_record(auth_headers(), 999)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_foreign_folder(self, client: AsyncClient, auth_headers, upload_record, blob_store):
        folder_id = await _own_folder(client, auth_headers("user-a"))
        response = await upload_record(auth_headers("user-b"), folder_id)
        assert response.status_code == 403
        assert blob_store.objects == {}

    @pytest.mark.asyncio
    async def test_upload_failure_creates_nothing(
        self, client: AsyncClient, auth_headers, upload_record, blob_store, session_factory
    ):
        headers = auth_headers()
        folder_id = await _own_folder(client, headers)
        blob_store.fail_uploads = True

        response = await upload_record(headers, folder_id)
        assert response.status_code == 500

        async with session_factory() as session:
            result = await session.execute(select(Record))
            assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_insert_failure_removes_uploaded_audio(
        self, client: AsyncClient, auth_headers, upload_record, blob_store, dispatcher, monkeypatch
    ):
        headers = auth_headers()
        folder_id = await _own_folder(client, headers)

        async def fail_insert(db, **fields):
            raise OperationalError("INSERT", {}, Exception("database went away"))

        monkeypatch.setattr(RecordCRUD, "create", staticmethod(fail_insert))

        response = await upload_record(headers, folder_id)
        assert response.status_code == 500
        assert response.json()["message"] == "Failed to save record"
        assert len(blob_store.deleted) == 1
        assert blob_store.objects == {}
        assert dispatcher.published == []

    @pytest.mark.asyncio
    async def test_dispatch_failure_is_tolerated(
        self, client: AsyncClient, auth_headers, upload_record, dispatcher
    ):
        headers = auth_headers()
        folder_id = await _own_folder(client, headers)
        dispatcher.fail = True

        response = await upload_record(headers, folder_id)
        assert response.status_code == 201


class TestListRecords:
    """Search and pagination"""

    @pytest.mark.asyncio
    async def test_pagination(self, client: AsyncClient, auth_headers, test_session):
        folder = await FolderCRUD.create(test_session, "user-a", "Bulk")
        await _seed_records(test_session, folder.id, 25)
        headers = auth_headers("user-a")

        first = (await client.get("/records", params={"page": 0, "size": 10}, headers=headers)).json()
        assert len(first["content"]) == 10
        assert first["total_elements"] == 25
        assert first["total_pages"] == 3
        # Newest first
        assert first["content"][0]["title"] == "Memo 24"

        last = (await client.get("/records", params={"page": 2, "size": 10}, headers=headers)).json()
        assert len(last["content"]) == 5
        assert last["content"][-1]["title"] == "Memo 0"

    @pytest.mark.asyncio
    async def test_defaults_and_bounds(self, client: AsyncClient, auth_headers, test_session):
        folder = await FolderCRUD.create(test_session, "user-a", "Bulk")
        await _seed_records(test_session, folder.id, 25)
        headers = auth_headers("user-a")

        body = (await client.get("/records", headers=headers)).json()
        assert len(body["content"]) == 20
        assert body["total_pages"] == 2

        assert (await client.get("/records", params={"size": 0}, headers=headers)).status_code == 400
        assert (await client.get("/records", params={"page": -1}, headers=headers)).status_code == 400

    @pytest.mark.asyncio
    async def test_search_title_and_description(self, client: AsyncClient, auth_headers, test_session):
        folder = await FolderCRUD.create(test_session, "user-a", "Mixed")
        records = await _seed_records(test_session, folder.id, 3)
        records[0].title = "Quarterly PLANNING"
        records[1].description = "we discussed the planning board"
        records[2].title = "100% done"
        await test_session.commit()
        headers = auth_headers("user-a")

        body = (await client.get("/records", params={"search": "planning"}, headers=headers)).json()
        assert body["total_elements"] == 2
        assert {r["id"] for r in body["content"]} == {records[0].id, records[1].id}

        body = (await client.get("/records", params={"search": "%"}, headers=headers)).json()
        assert [r["id"] for r in body["content"]] == [records[2].id]

    @pytest.mark.asyncio
    async def test_folder_filter_and_owner_scope(self, client: AsyncClient, auth_headers, test_session):
        mine = await FolderCRUD.create(test_session, "user-a", "Mine")
        other = await FolderCRUD.create(test_session, "user-a", "Other")
        foreign = await FolderCRUD.create(test_session, "user-b", "Foreign")
        await _seed_records(test_session, mine.id, 2)
        await _seed_records(test_session, other.id, 3)
        await _seed_records(test_session, foreign.id, 4)
        headers = auth_headers("user-a")

        body = (await client.get("/records", headers=headers)).json()
        assert body["total_elements"] == 5

        body = (await client.get("/records", params={"folderId": mine.id}, headers=headers)).json()
        assert body["total_elements"] == 2
        assert all(r["folder_id"] == mine.id for r in body["content"])

        body = (await client.get("/records", params={"folderId": foreign.id}, headers=headers)).json()
        assert body["total_elements"] == 0

    @pytest.mark.asyncio
    async def test_empty_listing(self, client: AsyncClient, auth_headers):
        body = (await client.get("/records", headers=auth_headers())).json()
        assert body == {"content": [], "total_elements": 0, "total_pages": 0}


class TestRecordAccess:
    """Ownership checks on single-record endpoints"""

    @pytest.mark.asyncio
    async def test_get_record(self, client: AsyncClient, auth_headers, upload_record):
        headers = auth_headers("user-a")
        record = (await upload_record(headers, await _own_folder(client, headers))).json()

        response = await client.get(f"/records/{record['id']}", headers=headers)
        assert response.status_code == 200
        assert response.json()["id"] == record["id"]

        assert (await client.get(f"/records/{record['id']}", headers=auth_headers("user-b"))).status_code == 403
        assert (await client.get("/records/999", headers=headers)).status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("suffix", ["", "/audio", "/pdf"])
    async def test_record_without_folder_is_forbidden(
        self, client: AsyncClient, auth_headers, test_session, suffix
    ):
        orphan = Record(
            folder_id=None,
            title="Orphan",
            recorded_at=datetime(2025, 1, 1),
            category=RecordCategory.PERSONAL,
            audio_url="http://s3.test/records/orphan.m4a",
        )
        test_session.add(orphan)
        await test_session.commit()

        for user in ("user-a", "user-b"):
            response = await client.get(f"/records/{orphan.id}{suffix}", headers=auth_headers(user))
            assert response.status_code == 403
        response = await client.delete(f"/records/{orphan.id}", headers=auth_headers())
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_audio(self, client: AsyncClient, auth_headers, upload_record, blob_store):
        headers = auth_headers()
        record = (await upload_record(headers, await _own_folder(client, headers))).json()

        response = await client.get(f"/records/{record['id']}/audio", headers=headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/mp4"
        assert response.content == b"fake-m4a-bytes"

        forbidden = await client.get(f"/records/{record['id']}/audio", headers=auth_headers("user-b"))
        assert forbidden.status_code == 403

        blob_store.objects.clear()
        missing = await client.get(f"/records/{record['id']}/audio", headers=headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_pdf(self, client: AsyncClient, auth_headers, upload_record, transcribe):
        headers = auth_headers()
        record = (await upload_record(headers, await _own_folder(client, headers))).json()

        no_transcript = await client.get(f"/records/{record['id']}/pdf", headers=headers)
        assert no_transcript.status_code == 404

        await transcribe(
            record["id"],
            [{"start": 65, "end": 70, "text": "second"}, {"start": 0, "end": 5, "text": "first"}],
        )
        response = await client.get(f"/records/{record['id']}/pdf", headers=headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "Standup.pdf" in response.headers["content-disposition"]
        assert response.headers["content-disposition"].startswith("attachment")

        document = fitz.open(stream=response.content, filetype="pdf")
        text = document[0].get_text()
        assert "Standup" in text
        assert text.index("[00:00]") < text.index("[01:05]")

    @pytest.mark.asyncio
    async def test_pdf_renders_off_the_event_loop(
        self, client: AsyncClient, auth_headers, upload_record, transcribe, monkeypatch
    ):
        headers = auth_headers()
        record = (await upload_record(headers, await _own_folder(client, headers))).json()
        await transcribe(record["id"], [{"start": 0, "end": 5, "text": "hello"}])

        offloaded = []
        real_to_thread = asyncio.to_thread

        async def spy_to_thread(func, *args, **kwargs):
            offloaded.append(func)
            return await real_to_thread(func, *args, **kwargs)

        monkeypatch.setattr(record_service.asyncio, "to_thread", spy_to_thread)

        response = await client.get(f"/records/{record['id']}/pdf", headers=headers)
        assert response.status_code == 200
        assert "render_transcript" in [func.__name__ for func in offloaded]

    @pytest.mark.asyncio
    async def test_delete_record(
        self, client: AsyncClient, auth_headers, upload_record, transcribe, blob_store
    ):
        headers = auth_headers()
        record = (await upload_record(headers, await _own_folder(client, headers))).json()
        await transcribe(record["id"], [{"start": 0, "end": 1, "text": "bye"}])

        assert (await client.delete(f"/records/{record['id']}", headers=auth_headers("user-b"))).status_code == 403

        response = await client.delete(f"/records/{record['id']}", headers=headers)
        assert response.status_code == 204
        assert blob_store.deleted == [record["audio_url"]]
        assert (await client.get(f"/records/{record['id']}", headers=headers)).status_code == 404


class TestRecordLifecycle:
    @pytest.mark.asyncio
    async def test_upload_transcribe_export_and_delete(
        self, client: AsyncClient, auth_headers, upload_record, transcribe
    ):
        headers = auth_headers()
        folder_id = await _own_folder(client, headers, name="Work Notes")

        created = await upload_record(headers, folder_id, title="Standup", category="Work")
        assert created.status_code == 201
        record = created.json()
        assert record["duration"] == 0
        assert record["description"] is None

        acked = await transcribe(
            record["id"],
            [{"start": 1.2, "end": 2.5, "text": "b"}, {"start": 0, "end": 1.2, "text": "a"}],
        )
        assert acked.status_code == 200

        fetched = (await client.get(f"/records/{record['id']}", headers=headers)).json()
        assert fetched["description"] == "a b"

        pdf = await client.get(f"/records/{record['id']}/pdf", headers=headers)
        assert pdf.status_code == 200
        assert pdf.headers["content-type"] == "application/pdf"

        assert (await client.delete(f"/folders/{folder_id}", headers=headers)).status_code == 204
        assert (await client.get(f"/records/{record['id']}/audio", headers=headers)).status_code == 404
