"""
Integration tests for the full export pipeline against a fake Zendesk API
"""

import json

import httpx
import pytest

from core.exceptions import APIExtractionError
from exporter.loaders.archive_store import ArchiveStore, ExportSession
from exporter.runner import ZendeskExporter, format_results
from exporter.transformers.text_extraction import MarkdownifyTextExtractor


@pytest.fixture
def make_exporter(make_client, text_extractor):
    def factory(api, session, **client_kwargs):
        client = make_client(api, **client_kwargs)
        return ZendeskExporter(client, ArchiveStore(session), text_extractor)

    return factory


async def _run(exporter):
    async with exporter.client:
        return await exporter.run()


class TestArchiveStoreScenario:

    def test_minimal_export(self, tmp_path, read_archive):
        session = ExportSession.create("tacotown", tmp_path)
        store = ArchiveStore(session)

        store.add_user({"email": "a@x.com", "state": "user"})
        category = store.add_category({"name": "Tacos"})
        store.add_discussion(category, {
            "title": "t",
            "author_email": "a@x.com",
            "comments": [{"author_email": "a@x.com", "body": "hi"}],
        })
        archive = store.write_archive()

        assert archive == tmp_path / "export_tacotown.tgz"
        assert sorted(read_archive(archive)) == [
            "categories/tacos.json",
            "categories/tacos/1.json",
            "users/a_x_com.json",
        ]
        assert store.report == []
        assert not session.work_dir.exists()


class TestZendeskExport:

    @pytest.mark.asyncio
    async def test_full_export(self, tmp_path, zendesk_api, make_exporter, mock_zendesk_data, read_archive):
        api = zendesk_api(mock_zendesk_data)
        session = ExportSession.create("tacotown", tmp_path)
        exporter = make_exporter(api, session)

        archive = await _run(exporter)

        contents = {name: json.loads(data) for name, data in read_archive(archive).items()}
        assert sorted(contents) == [
            "categories/tacos.json",
            "categories/tacos/1.json",
            "categories/tickets.json",
            "categories/tickets/1.json",
            "users/bob_bobfoo_com.json",
            "users/frank_tacotown_com.json",
        ]
        assert contents["users/frank_tacotown_com.json"]["state"] == "support"
        assert contents["users/bob_bobfoo_com.json"]["state"] == "user"
        assert contents["categories/tacos.json"] == {"name": "Tacos", "summary": "All about tacos"}
        assert contents["categories/tickets.json"] == {"name": "Tickets", "summary": "Imported from ZenDesk."}

        discussion = contents["categories/tacos/1.json"]
        assert discussion["title"] == "your tacos"
        assert discussion["author_email"] == "bob@bobfoo.com"
        assert [c["author_email"] for c in discussion["comments"]] == ["bob@bobfoo.com", "frank@tacotown.com"]
        assert discussion["comments"][1]["body"] == "<p>You have terrible taste in tacos.</p>"

        ticket = contents["categories/tickets/1.json"]
        assert ticket["title"] == "Where is my order?"
        assert ticket["state"] == "open"
        assert ticket["private"] is True
        assert [c["body"] for c in ticket["comments"]] == ["It has been three weeks.", "On its way."]

        assert exporter.stats == {"user": 2, "category": 2, "discussion": 2}
        assert exporter.report == []
        assert not session.work_dir.exists()

    @pytest.mark.asyncio
    async def test_known_authors_are_not_fetched(self, tmp_path, zendesk_api, make_exporter, mock_zendesk_data):
        api = zendesk_api(mock_zendesk_data)
        exporter = make_exporter(api, ExportSession.create("tacotown", tmp_path))

        await _run(exporter)

        assert not any(path.startswith("/users/") for path in api.paths())

    @pytest.mark.asyncio
    async def test_bodies_are_converted_to_text(self, tmp_path, zendesk_api, make_client, mock_zendesk_data, read_archive):
        api = zendesk_api(mock_zendesk_data)
        session = ExportSession.create("tacotown", tmp_path)
        exporter = ZendeskExporter(make_client(api), ArchiveStore(session), MarkdownifyTextExtractor())

        archive = await _run(exporter)

        discussion = json.loads(read_archive(archive)["categories/tacos/1.json"])
        assert [c["body"] for c in discussion["comments"]] == [
            "They are not so good.",
            "You have terrible taste in tacos.",
        ]

    @pytest.mark.asyncio
    async def test_unknown_author_is_fetched(self, tmp_path, zendesk_api, make_exporter, mock_zendesk_data, read_archive):
        mock_zendesk_data["/forums/10/entries.json?page=1"][0]["submitter_id"] = 3
        mock_zendesk_data["/users/3.json"] = {"id": 3, "email": "gone@tacotown.com"}
        api = zendesk_api(mock_zendesk_data)
        exporter = make_exporter(api, ExportSession.create("tacotown", tmp_path))

        archive = await _run(exporter)

        discussion = json.loads(read_archive(archive)["categories/tacos/1.json"])
        assert discussion["author_email"] == "gone@tacotown.com"
        assert api.paths().count("/users/3.json") == 1

    @pytest.mark.asyncio
    async def test_unresolvable_author_rejects_discussion(
        self, tmp_path, zendesk_api, make_exporter, mock_zendesk_data, read_archive
    ):
        mock_zendesk_data["/forums/10/entries.json?page=1"][0]["submitter_id"] = 404
        api = zendesk_api(mock_zendesk_data)
        exporter = make_exporter(api, ExportSession.create("tacotown", tmp_path))

        archive = await _run(exporter)

        assert "categories/tacos/1.json" not in read_archive(archive)
        assert "categories/tickets/1.json" in read_archive(archive)
        assert exporter.stats["invalid:discussion"] == 1
        assert exporter.report[0].startswith("Missing author_email in discussion data:")

    @pytest.mark.asyncio
    async def test_buffered_export_matches_write_through(
        self, tmp_path, zendesk_api, make_exporter, mock_zendesk_data, read_archive
    ):
        write_through = make_exporter(
            zendesk_api(mock_zendesk_data),
            ExportSession.create("tacotown", tmp_path / "direct"),
        )
        buffered = make_exporter(
            zendesk_api(mock_zendesk_data),
            ExportSession.create("tacotown", tmp_path / "buffered", buffered=True),
        )

        assert read_archive(await _run(write_through)) == read_archive(await _run(buffered))
        assert write_through.stats == buffered.stats

    @pytest.mark.asyncio
    async def test_fatal_error_aborts_without_archive(self, tmp_path, zendesk_api, make_exporter, mock_zendesk_data):
        mock_zendesk_data["/forums.json"] = httpx.Response(500, text="Internal Server Error")
        api = zendesk_api(mock_zendesk_data)
        session = ExportSession.create("tacotown", tmp_path)
        exporter = make_exporter(api, session)

        with pytest.raises(APIExtractionError):
            await _run(exporter)

        assert not (tmp_path / "export_tacotown.tgz").exists()
        assert not session.work_dir.exists()
        assert exporter.stats == {"user": 2}

    @pytest.mark.asyncio
    async def test_throttle_is_waited_out(self, tmp_path, zendesk_api, make_exporter, mock_zendesk_data):
        users = mock_zendesk_data["/users.json?page=1"]
        calls = []

        def throttled_users(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503)
            return httpx.Response(200, json=users)

        mock_zendesk_data["/users.json?page=1"] = throttled_users
        api = zendesk_api(mock_zendesk_data)
        exporter = make_exporter(api, ExportSession.create("tacotown", tmp_path))

        archive = await _run(exporter)

        assert archive.is_file()
        assert exporter.stats["user"] == 2
        exporter.client._sleep.assert_awaited_once_with(30.0)

    @pytest.mark.asyncio
    async def test_no_open_tickets(self, tmp_path, zendesk_api, make_exporter, mock_zendesk_data, read_archive):
        del mock_zendesk_data["/search.json?page=1"]
        exporter = make_exporter(zendesk_api(mock_zendesk_data), ExportSession.create("tacotown", tmp_path))

        archive = await _run(exporter)

        assert "categories/tickets.json" not in read_archive(archive)


class TestFormatResults:

    def test_results_block(self):
        text = format_results({"user": 2, "invalid:user": 1}, ["Missing email in user data: {}."])

        assert text.splitlines() == [
            "RESULTS",
            '{"invalid:user": 1, "user": 2}',
            "Missing email in user data: {}.",
        ]
