import asyncio
import json

import pytest
from telegram.constants import ParseMode

from guide_bot import messages
from guide_bot.admin_flow import (
    Actor,
    AdminFlowCoordinator,
    FlowMode,
    FlowStep,
    IncomingDocument,
)
from guide_bot.services.admin import AdminService
from guide_bot.services.guides import GuideService
from guide_bot.sessions import InMemorySessionStore, MenuMediaFlow, SubscriptionAudit
from guide_bot.storage import StorageError, list_store

ADMIN = Actor(id=1, username="boss")
DEPUTY = Actor(id=2, username="deputy")
STRANGER = Actor(id=3, username="visitor")
CHAT = 100


class RecordingBot:
    def __init__(self, failing=()):
        self.sent = []
        self.failing = set(failing)

    async def send_message(self, chat_id, text, parse_mode=None):
        if chat_id in self.failing:
            raise RuntimeError("chat not found")
        self.sent.append((chat_id, text))


class FlakyGuideService(GuideService):
    """Fails the first ``create`` call the way a locked file would."""

    def __init__(self, store):
        super().__init__(store)
        self.failures_left = 1

    async def create(self, title, file_id):
        if self.failures_left:
            self.failures_left -= 1
            raise StorageError("disk is busy")
        return await super().create(title, file_id)


def make_coordinator(tmp_path, records=None, guide_service_cls=GuideService, bot=None):
    path = tmp_path / "guides.json"
    if records is not None:
        path.write_text(json.dumps(records), encoding="utf-8")
    guide_service = guide_service_cls(list_store(path))
    admin_service = AdminService([ADMIN.id, DEPUTY.id])
    admin_service.attach_bot(bot or RecordingBot())
    return AdminFlowCoordinator(
        guide_service=guide_service,
        admin_service=admin_service,
        sessions=InMemorySessionStore(),
    )


def pdf(file_id="doc123", file_name="roof.pdf", mime_type="application/pdf"):
    return IncomingDocument(file_id=file_id, file_name=file_name, mime_type=mime_type)


def texts(replies):
    return [reply.text for reply in replies]


LAND = [{"id": "g1", "title": "Land", "fileId": "file-land", "createdAt": "2024-01-01T10:00:00+00:00"}]


def test_add_flow_creates_guide_after_confirmation(tmp_path):
    coordinator = make_coordinator(tmp_path)

    async def scenario():
        assert texts(await coordinator.start_add_flow(CHAT, ADMIN)) == [messages.ADD_TITLE_PROMPT]

        outcome = await coordinator.handle_text(CHAT, ADMIN, "Roof Guide")
        assert outcome.consumed
        assert texts(outcome.replies) == [messages.ADD_DOCUMENT_PROMPT]

        outcome = await coordinator.handle_document(CHAT, ADMIN, pdf())
        assert outcome.consumed
        assert "Roof Guide" in outcome.replies[0].text
        assert outcome.replies[0].parse_mode == ParseMode.HTML

        assert texts(await coordinator.confirm(CHAT, ADMIN)) == [messages.GUIDE_ADDED]
        guides = await coordinator.guide_service.list_all()
        second_confirm = await coordinator.confirm(CHAT, ADMIN)
        return guides, second_confirm

    guides, second_confirm = asyncio.run(scenario())

    assert [(guide.title, guide.file_id) for guide in guides] == [("Roof Guide", "doc123")]
    assert guides[0].guide_id.startswith("guide-")
    assert coordinator.get_flow(CHAT, ADMIN) is None
    assert texts(second_confirm) == [messages.NOTHING_TO_CONFIRM]


def test_blank_title_keeps_waiting_for_title(tmp_path):
    coordinator = make_coordinator(tmp_path)

    async def scenario():
        await coordinator.start_add_flow(CHAT, ADMIN)
        return await coordinator.handle_text(CHAT, ADMIN, "   ")

    outcome = asyncio.run(scenario())

    assert outcome.consumed
    assert texts(outcome.replies) == [messages.ADD_TITLE_EMPTY]
    flow = coordinator.get_flow(CHAT, ADMIN)
    assert flow.step is FlowStep.AWAITING_TITLE
    assert flow.payload.title is None


def test_title_is_trimmed(tmp_path):
    coordinator = make_coordinator(tmp_path)

    async def scenario():
        await coordinator.start_add_flow(CHAT, ADMIN)
        await coordinator.handle_text(CHAT, ADMIN, "  Foundations  ")

    asyncio.run(scenario())

    assert coordinator.get_flow(CHAT, ADMIN).payload.title == "Foundations"


def test_non_pdf_document_is_rejected(tmp_path):
    coordinator = make_coordinator(tmp_path)

    async def scenario():
        await coordinator.start_add_flow(CHAT, ADMIN)
        await coordinator.handle_text(CHAT, ADMIN, "Roof Guide")
        wrong = await coordinator.handle_document(
            CHAT, ADMIN, pdf(file_name="roof.png", mime_type="image/png")
        )
        missing = await coordinator.handle_document(CHAT, ADMIN, None)
        return wrong, missing

    wrong, missing = asyncio.run(scenario())

    assert texts(wrong.replies) == [messages.ADD_DOCUMENT_WRONG_TYPE]
    assert texts(missing.replies) == [messages.ADD_DOCUMENT_WRONG_TYPE]
    assert coordinator.get_flow(CHAT, ADMIN).step is FlowStep.AWAITING_DOCUMENT


def test_pdf_is_recognised_by_extension_without_mime_type():
    assert pdf(file_name="Guide.PDF", mime_type=None).is_pdf
    assert pdf(file_name=None, mime_type="application/pdf").is_pdf
    assert not pdf(file_name="guide.docx", mime_type=None).is_pdf


def test_text_while_waiting_for_document_repeats_prompt(tmp_path):
    coordinator = make_coordinator(tmp_path)

    async def scenario():
        await coordinator.start_add_flow(CHAT, ADMIN)
        await coordinator.handle_text(CHAT, ADMIN, "Roof Guide")
        return await coordinator.handle_text(CHAT, ADMIN, "where do I send it?")

    outcome = asyncio.run(scenario())

    assert outcome.consumed
    assert texts(outcome.replies) == [messages.ADD_DOCUMENT_PROMPT]
    assert coordinator.get_flow(CHAT, ADMIN).payload.title == "Roof Guide"


def test_slash_commands_pass_through_an_active_flow(tmp_path):
    coordinator = make_coordinator(tmp_path)

    async def scenario():
        await coordinator.start_add_flow(CHAT, ADMIN)
        return await coordinator.handle_text(CHAT, ADMIN, "/get")

    outcome = asyncio.run(scenario())

    assert not outcome.consumed
    assert coordinator.get_flow(CHAT, ADMIN).step is FlowStep.AWAITING_TITLE


def test_document_outside_document_step_passes_through(tmp_path):
    coordinator = make_coordinator(tmp_path, records=LAND)

    async def scenario():
        await coordinator.start_delete_flow(CHAT, ADMIN)
        return await coordinator.handle_document(CHAT, ADMIN, pdf())

    outcome = asyncio.run(scenario())

    assert not outcome.consumed
    assert coordinator.get_flow(CHAT, ADMIN).step is FlowStep.AWAITING_ID


def test_delete_flow_cancelled_keeps_guide(tmp_path):
    coordinator = make_coordinator(tmp_path, records=LAND)

    async def scenario():
        listing = await coordinator.start_delete_flow(CHAT, ADMIN)
        selection = await coordinator.handle_text(CHAT, ADMIN, "g1")
        cancelled = await coordinator.cancel(CHAT, ADMIN)
        guides = await coordinator.guide_service.list_all()
        return listing, selection, cancelled, guides

    listing, selection, cancelled, guides = asyncio.run(scenario())

    assert "g1 | Land" in listing[0].text
    assert listing[0].parse_mode == ParseMode.HTML
    assert selection.consumed
    assert "Land" in selection.replies[0].text
    assert texts(cancelled) == [messages.FLOW_CANCELLED]
    assert [guide.guide_id for guide in guides] == ["g1"]
    assert coordinator.get_flow(CHAT, ADMIN) is None


def test_delete_flow_unknown_id_reprompts(tmp_path):
    coordinator = make_coordinator(tmp_path, records=LAND)

    async def scenario():
        await coordinator.start_delete_flow(CHAT, ADMIN)
        return await coordinator.handle_text(CHAT, ADMIN, "g404")

    outcome = asyncio.run(scenario())

    assert texts(outcome.replies) == [messages.DELETE_NOT_FOUND]
    assert coordinator.get_flow(CHAT, ADMIN).step is FlowStep.AWAITING_ID


def test_delete_flow_confirm_removes_guide_and_notifies_admins(tmp_path):
    bot = RecordingBot()
    coordinator = make_coordinator(tmp_path, records=LAND, bot=bot)

    async def scenario():
        await coordinator.start_delete_flow(CHAT, ADMIN)
        await coordinator.handle_text(CHAT, ADMIN, "g1")
        replies = await coordinator.confirm(CHAT, ADMIN)
        remaining = await coordinator.guide_service.get_by_id("g1")
        return replies, remaining

    replies, remaining = asyncio.run(scenario())

    assert texts(replies) == [messages.GUIDE_DELETED]
    assert remaining is None
    assert sorted(chat_id for chat_id, _ in bot.sent) == [ADMIN.id, DEPUTY.id]
    assert all("@boss" in text and "Land" in text for _, text in bot.sent)
    assert coordinator.get_flow(CHAT, ADMIN) is None


def test_failed_notification_does_not_block_deletion(tmp_path):
    bot = RecordingBot(failing={DEPUTY.id})
    coordinator = make_coordinator(tmp_path, records=LAND, bot=bot)

    async def scenario():
        await coordinator.start_delete_flow(CHAT, ADMIN)
        await coordinator.handle_text(CHAT, ADMIN, "g1")
        replies = await coordinator.confirm(CHAT, ADMIN)
        return replies, await coordinator.guide_service.list_all()

    replies, guides = asyncio.run(scenario())

    assert texts(replies) == [messages.GUIDE_DELETED]
    assert guides == []
    assert [chat_id for chat_id, _ in bot.sent] == [ADMIN.id]


def test_delete_listing_escapes_markup(tmp_path):
    records = [{"id": "g2", "title": "Tips & <Tricks>", "fileId": ""}]
    coordinator = make_coordinator(tmp_path, records=records)

    replies = asyncio.run(coordinator.start_delete_flow(CHAT, ADMIN))

    assert "g2 | Tips &amp; &lt;Tricks&gt;" in replies[0].text
    assert "<Tricks>" not in replies[0].text


def test_delete_flow_with_empty_catalog_never_starts(tmp_path):
    coordinator = make_coordinator(tmp_path)

    replies = asyncio.run(coordinator.start_delete_flow(CHAT, ADMIN))

    assert texts(replies) == [messages.NO_GUIDES]
    assert coordinator.sessions.get(CHAT).admin_flow is None


def test_delete_of_guide_removed_meanwhile_clears_flow(tmp_path):
    coordinator = make_coordinator(tmp_path, records=LAND)

    async def scenario():
        await coordinator.start_delete_flow(CHAT, ADMIN)
        await coordinator.handle_text(CHAT, ADMIN, "g1")
        await coordinator.guide_service.delete_by_id("g1")
        return await coordinator.confirm(CHAT, ADMIN)

    replies = asyncio.run(scenario())

    assert texts(replies) == [messages.DELETE_ALREADY_REMOVED]
    assert coordinator.get_flow(CHAT, ADMIN) is None


def test_confirm_without_flow_changes_nothing(tmp_path):
    coordinator = make_coordinator(tmp_path)

    replies = asyncio.run(coordinator.confirm(CHAT, ADMIN))

    assert texts(replies) == [messages.NOTHING_TO_CONFIRM]
    assert not (tmp_path / "guides.json").exists()


def test_confirm_before_last_step_leaves_flow_alone(tmp_path):
    coordinator = make_coordinator(tmp_path)

    async def scenario():
        await coordinator.start_add_flow(CHAT, ADMIN)
        return await coordinator.confirm(CHAT, ADMIN)

    replies = asyncio.run(scenario())

    assert texts(replies) == [messages.NOTHING_TO_CONFIRM]
    assert coordinator.get_flow(CHAT, ADMIN).step is FlowStep.AWAITING_TITLE
    assert not (tmp_path / "guides.json").exists()


async def _add_until_title(coordinator):
    await coordinator.start_add_flow(CHAT, ADMIN)


async def _add_until_document(coordinator):
    await _add_until_title(coordinator)
    await coordinator.handle_text(CHAT, ADMIN, "Roof Guide")


async def _add_until_confirmation(coordinator):
    await _add_until_document(coordinator)
    await coordinator.handle_document(CHAT, ADMIN, pdf())


async def _delete_until_id(coordinator):
    await coordinator.start_delete_flow(CHAT, ADMIN)


async def _delete_until_confirmation(coordinator):
    await _delete_until_id(coordinator)
    await coordinator.handle_text(CHAT, ADMIN, "g1")


@pytest.mark.parametrize(
    "advance",
    [
        _add_until_title,
        _add_until_document,
        _add_until_confirmation,
        _delete_until_id,
        _delete_until_confirmation,
    ],
)
def test_cancel_at_any_step_discards_flow(tmp_path, advance):
    coordinator = make_coordinator(tmp_path, records=LAND)

    async def scenario():
        await advance(coordinator)
        assert coordinator.get_flow(CHAT, ADMIN) is not None
        replies = await coordinator.cancel(CHAT, ADMIN)
        return replies, await coordinator.guide_service.list_all()

    replies, guides = asyncio.run(scenario())

    assert texts(replies) == [messages.FLOW_CANCELLED]
    assert coordinator.get_flow(CHAT, ADMIN) is None
    assert [guide.guide_id for guide in guides] == ["g1"]


def test_cancel_without_flow_reports_nothing_pending(tmp_path):
    coordinator = make_coordinator(tmp_path)

    replies = asyncio.run(coordinator.cancel(CHAT, ADMIN))

    assert texts(replies) == [messages.NOTHING_TO_CONFIRM]


def test_cancel_also_drops_menu_media_and_audit_requests(tmp_path):
    coordinator = make_coordinator(tmp_path)
    session = coordinator.sessions.get(CHAT)
    session.menu_media_flow = MenuMediaFlow(initiator_id=ADMIN.id)
    session.subscription_audit = SubscriptionAudit(initiator_id=ADMIN.id, requested_at="now")
    coordinator.sessions.set(CHAT, session)

    first = asyncio.run(coordinator.cancel(CHAT, ADMIN))
    second = asyncio.run(coordinator.cancel(CHAT, ADMIN))

    assert texts(first) == texts(second) == [messages.FLOW_CANCELLED]
    session = coordinator.sessions.get(CHAT)
    assert session.menu_media_flow is None
    assert session.subscription_audit is None


def test_flow_is_invisible_to_other_admins(tmp_path):
    coordinator = make_coordinator(tmp_path)

    async def scenario():
        await coordinator.start_add_flow(CHAT, ADMIN)
        await coordinator.handle_text(CHAT, ADMIN, "Roof Guide")
        text = await coordinator.handle_text(CHAT, DEPUTY, "Hijacked")
        document = await coordinator.handle_document(CHAT, DEPUTY, pdf("evil"))
        confirmed = await coordinator.confirm(CHAT, DEPUTY)
        cancelled = await coordinator.cancel(CHAT, DEPUTY)
        return text, document, confirmed, cancelled

    text, document, confirmed, cancelled = asyncio.run(scenario())

    assert not text.consumed
    assert not document.consumed
    assert texts(confirmed) == [messages.NOTHING_TO_CONFIRM]
    assert texts(cancelled) == [messages.NOTHING_TO_CONFIRM]
    flow = coordinator.get_flow(CHAT, ADMIN)
    assert flow.step is FlowStep.AWAITING_DOCUMENT
    assert flow.payload.title == "Roof Guide"
    assert flow.payload.file_id is None
    assert coordinator.get_flow(CHAT, DEPUTY) is None


def test_flows_in_different_conversations_do_not_interact(tmp_path):
    coordinator = make_coordinator(tmp_path, records=LAND)

    async def scenario():
        await coordinator.start_add_flow(100, ADMIN)
        await coordinator.start_delete_flow(200, DEPUTY)
        await coordinator.handle_text(100, ADMIN, "Roof Guide")
        await coordinator.handle_text(200, DEPUTY, "g1")

    asyncio.run(scenario())

    add_flow = coordinator.get_flow(100, ADMIN)
    delete_flow = coordinator.get_flow(200, DEPUTY)
    assert add_flow.mode is FlowMode.ADD
    assert add_flow.step is FlowStep.AWAITING_DOCUMENT
    assert delete_flow.mode is FlowMode.DELETE
    assert delete_flow.payload.guide_title == "Land"


def test_non_admin_cannot_start_or_confirm(tmp_path):
    coordinator = make_coordinator(tmp_path, records=LAND)

    async def scenario():
        return [
            await coordinator.start_add_flow(CHAT, STRANGER),
            await coordinator.start_delete_flow(CHAT, STRANGER),
            await coordinator.confirm(CHAT, STRANGER),
            await coordinator.cancel(CHAT, STRANGER),
        ]

    results = asyncio.run(scenario())

    assert all(texts(replies) == [messages.ADMIN_ONLY] for replies in results)
    assert coordinator.sessions.get(CHAT).admin_flow is None


def test_revoked_admin_cannot_advance_own_flow(tmp_path):
    coordinator = make_coordinator(tmp_path)

    async def scenario():
        await coordinator.start_add_flow(CHAT, ADMIN)
        coordinator.admin_service.admin_ids = (DEPUTY.id,)
        return await coordinator.handle_text(CHAT, ADMIN, "Roof Guide")

    outcome = asyncio.run(scenario())

    assert outcome.consumed
    assert texts(outcome.replies) == [messages.ADMIN_ONLY]
    flow = coordinator.sessions.get(CHAT).admin_flow
    assert flow.step is FlowStep.AWAITING_TITLE
    assert flow.payload.title is None


def test_storage_failure_on_commit_keeps_flow_for_retry(tmp_path):
    coordinator = make_coordinator(tmp_path, guide_service_cls=FlakyGuideService)

    async def scenario():
        await _add_until_confirmation(coordinator)
        failed = await coordinator.confirm(CHAT, ADMIN)
        pending = coordinator.get_flow(CHAT, ADMIN)
        retried = await coordinator.confirm(CHAT, ADMIN)
        return failed, pending, retried, await coordinator.guide_service.list_all()

    failed, pending, retried, guides = asyncio.run(scenario())

    assert texts(failed) == [messages.COMMIT_FAILED]
    assert pending.step is FlowStep.AWAITING_CONFIRMATION
    assert texts(retried) == [messages.GUIDE_ADDED]
    assert [guide.title for guide in guides] == ["Roof Guide"]


def test_starting_a_new_flow_replaces_the_old_one(tmp_path):
    coordinator = make_coordinator(tmp_path, records=LAND)

    async def scenario():
        await _add_until_document(coordinator)
        await coordinator.start_delete_flow(CHAT, ADMIN)

    asyncio.run(scenario())

    flow = coordinator.get_flow(CHAT, ADMIN)
    assert flow.mode is FlowMode.DELETE
    assert flow.step is FlowStep.AWAITING_ID


class UnwritableDeleteGuideService(GuideService):
    async def delete_by_id(self, guide_id):
        raise StorageError("disk is read-only")


def test_storage_failure_on_delete_keeps_flow_and_skips_notification(tmp_path):
    bot = RecordingBot()
    coordinator = make_coordinator(
        tmp_path, records=LAND, guide_service_cls=UnwritableDeleteGuideService, bot=bot
    )

    async def scenario():
        await _delete_until_confirmation(coordinator)
        replies = await coordinator.confirm(CHAT, ADMIN)
        return replies, await coordinator.guide_service.list_all()

    replies, guides = asyncio.run(scenario())

    assert texts(replies) == [messages.COMMIT_FAILED]
    flow = coordinator.get_flow(CHAT, ADMIN)
    assert flow.step is FlowStep.AWAITING_CONFIRMATION
    assert flow.payload.guide_id == "g1"
    assert bot.sent == []
    assert [guide.guide_id for guide in guides] == ["g1"]
