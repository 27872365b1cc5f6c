"""
Browser Automation Module - Playwright sessions against the seller console

Environment Variables Used:
    WING_USERNAME - Console login
    WING_PASSWORD - Console password
    WING_BASE_URL - Console origin
    WING_LOGIN_URL - Console sign-in page
"""

from browser.session_manager import BrowserSession, BrowserSessionManager, SessionKey
from browser.wing_console import WingConsole

__all__ = [
    "BrowserSession",
    "BrowserSessionManager",
    "SessionKey",
    "WingConsole",
]
