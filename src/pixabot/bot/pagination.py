import logging
from dataclasses import replace
from typing import List, Protocol

from ..models import InlineButton, NavAction, SearchResult, Session, count_pages
from ..services.pixabay import SearchError
from ..services.session_store import ConversationGate, SessionStore
from ..services.telegram import TelegramError, TelegramGateway
from . import messages

logger = logging.getLogger(__name__)


class SearchClient(Protocol):
    async def search(self, query: str, page: int) -> SearchResult: ...


class PaginationController:
    """Runs new searches and page flips for each conversation.

    Every operation holds the conversation's gate for its whole duration, so
    two tasks never interleave on one session. A page is always fetched
    before anything is deleted or stored: when the search fails, the user
    keeps seeing the previous page and the session stays as it was.
    """

    def __init__(
        self,
        search_client: SearchClient,
        gateway: TelegramGateway,
        store: SessionStore,
        gate: ConversationGate,
        page_size: int = 5,
    ) -> None:
        self._search = search_client
        self._gateway = gateway
        self._store = store
        self._gate = gate
        self._page_size = page_size

    async def new_query(self, chat_id: int, text: str) -> None:
        """Start a search for text and show its first page."""
        async with self._gate.claim(chat_id) as acquired:
            if not acquired:
                logger.info("Chat %s: query rejected, request in progress", chat_id)
                await self._notify(chat_id, messages.REQUEST_IN_PROGRESS)
                return

            query = text.strip().lower()
            try:
                result = await self._search.search(query, 1)
            except SearchError as e:
                logger.error("Chat %s: search %r failed: %s", chat_id, query, e)
                await self._notify(chat_id, messages.SEARCH_FAILED)
                return

            if result.total_hits == 0:
                logger.info("Chat %s: nothing found for %r", chat_id, query)
                await self._notify(chat_id, messages.NOTHING_FOUND)
                return

            previous = self._store.get(chat_id)
            if previous is not None:
                await self._retract(chat_id, previous)

            session = self._store.put(
                chat_id,
                Session(
                    query=query,
                    current_page=1,
                    total_pages=count_pages(result.total_hits, self._page_size),
                ),
            )
            logger.info(
                "Chat %s: %r -> %s hits, %s pages",
                chat_id,
                query,
                result.total_hits,
                session.total_pages,
            )
            sent = await self._render(chat_id, session, result)
            self._store.put(chat_id, replace(session, pending_message_ids=tuple(sent)))

    async def navigate(self, chat_id: int, action: NavAction) -> bool:
        """Move the conversation one page back or forward and re-render.

        Returns:
            bool: False if the conversation is busy and nothing was done.
        """
        async with self._gate.claim(chat_id) as acquired:
            if not acquired:
                logger.info("Chat %s: %s rejected, request in progress", chat_id, action.name)
                return False

            session = self._store.get(chat_id)
            if session is None:
                logger.info("Chat %s: %s without a session", chat_id, action.name)
                await self._notify(chat_id, messages.SESSION_EXPIRED)
                return True

            page = next_page(session.current_page, action)
            try:
                result = await self._search.search(session.query, page)
            except SearchError as e:
                logger.error(
                    "Chat %s: fetching page %s of %r failed: %s",
                    chat_id,
                    page,
                    session.query,
                    e,
                )
                await self._notify(chat_id, messages.SEARCH_FAILED)
                return True

            await self._retract(chat_id, session)
            session = self._store.put(
                chat_id, replace(session, current_page=page, pending_message_ids=())
            )
            sent = await self._render(chat_id, session, result)
            self._store.put(chat_id, replace(session, pending_message_ids=tuple(sent)))
            return True

    async def _retract(self, chat_id: int, session: Session) -> None:
        """Delete the messages of the visible page and forget them."""
        for message_id in session.pending_message_ids:
            try:
                await self._gateway.delete_message(chat_id, message_id)
            except TelegramError as e:
                logger.warning("Chat %s: could not delete message %s: %s", chat_id, message_id, e)
        self._store.update(chat_id, pending_message_ids=())

    async def _render(self, chat_id: int, session: Session, result: SearchResult) -> List[int]:
        """Send the page's images and the navigation prompt.

        Returns the ids of every message that made it out, even when a later
        send fails.
        """
        urls = [item.url for item in result.items[: self._page_size] if item.url]
        if not urls:
            logger.info("Chat %s: page %s is empty", chat_id, session.current_page)
            return []

        sent: List[int] = []
        try:
            sent.extend(await self._gateway.send_photos(chat_id, urls))
            buttons = navigation_buttons(session.current_page, session.total_pages)
            if buttons:
                sent.append(
                    await self._gateway.send_message(
                        chat_id, messages.NAVIGATION_PROMPT, buttons=buttons
                    )
                )
        except TelegramError as e:
            logger.warning("Chat %s: rendering page %s failed: %s", chat_id, session.current_page, e)
        return sent

    async def _notify(self, chat_id: int, text: str) -> None:
        try:
            await self._gateway.send_message(chat_id, text)
        except TelegramError as e:
            logger.warning("Chat %s: could not send notice: %s", chat_id, e)


def next_page(current_page: int, action: NavAction) -> int:
    # Forward moves are not clamped to total_pages; only the buttons are.
    if action is NavAction.NEXT:
        return current_page + 1
    return max(current_page - 1, 1)


def navigation_buttons(page: int, total_pages: int) -> List[InlineButton]:
    buttons = []
    if page > 1:
        buttons.append(InlineButton(messages.PREV_LABEL, NavAction.PREV.value))
    if page < total_pages:
        buttons.append(InlineButton(messages.NEXT_LABEL, NavAction.NEXT.value))
    return buttons
