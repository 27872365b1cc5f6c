#!/usr/bin/env python3
"""
Browser Session Manager

One Playwright chromium process, one BrowserContext + Page per session key.
A session key scopes browser state to a single store/job (and optional
variant), so concurrent jobs never share cookies or pages while the steps of
one job reuse the same logged-in page.

Example:
    manager = BrowserSessionManager(login_url, username, password)
    await manager.init()

    async with manager.session(SessionKey("my-store", "job-1")) as page:
        console = WingConsole(page)
        await console.open_delivery_management()

    await manager.close_all()
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from browser.wing_console import DEFAULT_BASE_URL, WingConsole
from core.errors import SessionAcquisitionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionKey:
    """(store, job id, optional variant) scoping one context/page pair."""
    store: str
    job_id: str
    variant: Optional[str] = None

    @property
    def _suffix(self) -> str:
        suffix = f"{self.store}-{self.job_id}"
        return f"{suffix}-{self.variant}" if self.variant else suffix

    @property
    def context_id(self) -> str:
        return f"context-{self._suffix}"

    @property
    def page_id(self) -> str:
        return f"page-{self._suffix}"


@dataclass
class BrowserSession:
    """Represents an active, logged-in console session."""
    key: SessionKey
    context: BrowserContext
    page: Page
    created_at: datetime = field(default_factory=datetime.now)


class BrowserSessionManager:
    """
    Owns the browser and the per-key sessions built on it.

    Args:
        login_url: Console sign-in page
        username / password: Console credentials
        base_url: Console origin, used to detect a completed login
        headless: Launch chromium headless
        timeout_ms: Default navigation/selector timeout for new pages
        browser: Pre-launched browser (tests, shared process); ``init`` then
            does not start Playwright
        authenticate: ``async (page) -> None`` replacing the console login
    """

    def __init__(
        self,
        login_url: str,
        username: str,
        password: str,
        base_url: str = DEFAULT_BASE_URL,
        headless: bool = True,
        timeout_ms: int = 60000,
        browser: Optional[Browser] = None,
        authenticate: Optional[Callable[[Page], Awaitable[None]]] = None,
    ):
        self.login_url = login_url
        self.username = username
        self.password = password
        self.base_url = base_url
        self.headless = headless
        self.timeout_ms = timeout_ms
        self._browser = browser
        self._playwright = None
        self._authenticate = authenticate or self._console_login
        self._sessions: Dict[SessionKey, BrowserSession] = {}

    async def init(self):
        """Start Playwright and launch chromium once."""
        if self._browser is not None:
            return self
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.headless)
        logger.info(f"Browser session manager initialized (headless={self.headless})")
        return self

    async def _console_login(self, page: Page):
        console = WingConsole(page, self.base_url)
        await console.login(self.login_url, self.username, self.password, timeout_ms=self.timeout_ms)

    async def acquire(self, key: SessionKey) -> Page:
        """
        Page for ``key``, logging in on first use.

        Raises:
            SessionAcquisitionError: context creation or login failed; the
                half-built context is closed and nothing is registered
        """
        existing = self._sessions.get(key)
        if existing is not None:
            return existing.page

        if self._browser is None:
            await self.init()

        context = await self._browser.new_context()
        try:
            page = await context.new_page()
            page.set_default_timeout(self.timeout_ms)
            await self._authenticate(page)
        except Exception as e:
            logger.error(f"Login failed for {key.context_id}: {e}")
            try:
                await context.close()
            except Exception as close_error:
                logger.warning(f"Error closing context {key.context_id}: {close_error}")
            raise SessionAcquisitionError(f"console login failed for {key.context_id}: {e}") from e

        self._sessions[key] = BrowserSession(key=key, context=context, page=page)
        logger.info(f"Created browser session: {key.context_id} / {key.page_id}")
        return page

    async def release(self, key: SessionKey) -> bool:
        """Close the session's context. Unknown keys are a logged no-op."""
        session = self._sessions.pop(key, None)
        if session is None:
            logger.debug(f"Release of unknown session {key.context_id} ignored")
            return False
        try:
            await session.context.close()
            logger.info(f"Closed browser session: {key.context_id}")
        except Exception as e:
            logger.error(f"Error closing session {key.context_id}: {e}")
        return True

    @asynccontextmanager
    async def session(self, key: SessionKey) -> AsyncIterator[Page]:
        """Acquire ``key`` and release it on every exit path."""
        page = await self.acquire(key)
        try:
            yield page
        finally:
            await self.release(key)

    def is_active(self, key: SessionKey) -> bool:
        return key in self._sessions

    async def close_all(self):
        """Close all sessions, then the browser if this manager launched it."""
        for key in list(self._sessions.keys()):
            await self.release(key)
        if self._playwright is not None:
            try:
                await self._browser.close()
                await self._playwright.stop()
            except Exception as e:
                logger.error(f"Error stopping browser: {e}")
            finally:
                self._playwright = None
                self._browser = None
        logger.info("All browser sessions closed")

    def get_stats(self) -> Dict[str, Any]:
        return {
            "active_sessions": len(self._sessions),
            "session_ids": [key.context_id for key in self._sessions],
            "headless": self.headless,
            "browser_running": self._browser is not None,
        }

    async def __aenter__(self):
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close_all()
