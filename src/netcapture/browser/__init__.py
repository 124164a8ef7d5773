"""Browser session management for netcapture."""

from netcapture.browser.manager import BrowserSession

__all__ = ["BrowserSession"]
