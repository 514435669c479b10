"""Foreground application context classification.

Maps the frontmost application (and, for browsers, the active tab or window
title) onto a small AppContext enum that tells the attention estimator how
strict to be and whether looking away from the screen is fine.
"""

import logging
from enum import Enum
from typing import Iterable, Sequence

logger = logging.getLogger(__name__)


class AppContext(Enum):
    """What the user is currently doing."""

    WORKING = "working"  # IDE, editor, terminal
    MEETING = "meeting"  # Zoom, Meet, Teams
    BROWSING = "browsing"
    ENTERTAINMENT = "entertainment"  # YouTube, Netflix
    DISTRACTING = "distracting"  # Instagram, TikTok, ...
    UNKNOWN = "unknown"

    @property
    def allowed_look_away(self) -> bool:
        """Looking away is expected in calls and while watching something."""
        return self in (AppContext.MEETING, AppContext.ENTERTAINMENT)

    @property
    def strictness(self) -> float:
        return _STRICTNESS[self]

    @property
    def is_distracting(self) -> bool:
        return self is AppContext.DISTRACTING


_STRICTNESS = {
    AppContext.WORKING: 1.0,
    AppContext.BROWSING: 0.8,
    AppContext.MEETING: 0.3,
    AppContext.ENTERTAINMENT: 0.2,
    AppContext.DISTRACTING: 1.5,
    AppContext.UNKNOWN: 0.7,
}

DISTRACTING_APPS = (
    "instagram", "tiktok", "twitter",
    "facebook", "messenger", "telegram",
    "whatsapp", "discord", "slack",
    "vk", "reddit",
)

MEETING_APPS = ("zoom", "meet", "teams", "facetime")

DEVELOPMENT_APPS = (
    "xcode", "code", "sublime", "idea", "vim", "terminal",
    "iterm", "phpstorm", "webstorm", "cursor",
)

ENTERTAINMENT_APPS = ("youtube", "netflix", "twitch", "spotify")

BROWSER_APPS = ("safari", "chrome", "firefox", "arc")

DISTRACTING_SITES = (
    "instagram", "tiktok", "twitter", "x.com",
    "facebook", "vk.com", "vk ", "reddit",
    "tinder", "bumble", "hinge",
    "9gag", "pikabu", "telegram",
    "youtube", "netflix", "twitch",
)


def _matches(text: str, patterns: Iterable[str]) -> bool:
    return any(p and p in text for p in patterns)


def detect(
    app_id: str,
    title: str = "",
    whitelist: Iterable[str] = (),
) -> AppContext:
    """Classify the foreground application.

    Evaluation order, first match wins: whitelist, distracting apps,
    meeting apps, development tools, entertainment apps, browsers (tab
    title checked against the whitelist, then distracting sites), unknown.

    Args:
        app_id: Application name and/or bundle identifier
        title: Active window or tab title
        whitelist: Substrings the user has marked as work

    Returns:
        AppContext for this tick
    """
    return ContextClassifier(whitelist).classify(app_id, title)


class ContextClassifier:
    """Stateless classifier with configurable pattern lists.

    Usage:
        classifier = ContextClassifier(whitelist=["notion"])
        context = classifier.classify("Google Chrome", "Reddit - front page")
    """

    def __init__(
        self,
        whitelist: Iterable[str] = (),
        distracting_apps: Sequence[str] = DISTRACTING_APPS,
        meeting_apps: Sequence[str] = MEETING_APPS,
        development_apps: Sequence[str] = DEVELOPMENT_APPS,
        entertainment_apps: Sequence[str] = ENTERTAINMENT_APPS,
        browser_apps: Sequence[str] = BROWSER_APPS,
        distracting_sites: Sequence[str] = DISTRACTING_SITES,
    ):
        self.whitelist = tuple(w.lower() for w in whitelist if w)
        self.distracting_apps = tuple(distracting_apps)
        self.meeting_apps = tuple(meeting_apps)
        self.development_apps = tuple(development_apps)
        self.entertainment_apps = tuple(entertainment_apps)
        self.browser_apps = tuple(browser_apps)
        self.distracting_sites = tuple(distracting_sites)

    @classmethod
    def from_config(cls, config: dict, whitelist: Iterable[str] = ()) -> "ContextClassifier":
        """Build from the `context` config section; extra patterns extend the defaults."""
        return cls(
            whitelist=whitelist,
            distracting_apps=DISTRACTING_APPS + tuple(config.get("extra_distracting_apps", ())),
            meeting_apps=MEETING_APPS + tuple(config.get("extra_meeting_apps", ())),
            development_apps=DEVELOPMENT_APPS + tuple(config.get("extra_development_apps", ())),
            entertainment_apps=ENTERTAINMENT_APPS + tuple(config.get("extra_entertainment_apps", ())),
            distracting_sites=DISTRACTING_SITES + tuple(config.get("extra_distracting_sites", ())),
        )

    def classify(
        self,
        app_id: str,
        title: str = "",
        whitelist: Iterable[str] | None = None,
    ) -> AppContext:
        """Classify, optionally overriding the configured whitelist for this call."""
        allowed = self.whitelist if whitelist is None else tuple(w.lower() for w in whitelist if w)
        app = (app_id or "").lower()
        tab = (title or "").lower()

        if _matches(app, allowed) or _matches(tab, allowed):
            return AppContext.WORKING

        if _matches(app, self.distracting_apps):
            return AppContext.DISTRACTING

        if _matches(app, self.meeting_apps):
            return AppContext.MEETING

        if _matches(app, self.development_apps):
            return AppContext.WORKING

        if _matches(app, self.entertainment_apps):
            return AppContext.ENTERTAINMENT

        if _matches(app, self.browser_apps):
            if tab:
                if _matches(tab, allowed):
                    return AppContext.WORKING
                if _matches(tab, self.distracting_sites):
                    return AppContext.DISTRACTING
            return AppContext.BROWSING

        return AppContext.UNKNOWN
