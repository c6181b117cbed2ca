"""Utilities for launching Playwright browsers for the regression checks.

The launch configuration is resolved from the process environment so the
same suite runs unchanged on a developer machine (visible Chrome or Edge when
``HEADLESS=false``) and on CI runners (headless Chromium with a hardened
argument list). ``launch_browser`` hands back the driver together with the
browser, and ``shutdown`` takes that same pair when the run is over.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from playwright.sync_api import Browser, Error as PWError, Playwright, sync_playwright

VIEWPORT = {"width": 1920, "height": 1080}

TRUTHY = {"1", "true", "yes", "on"}
FALSY = {"0", "false", "no", "off"}

# BROWSER env value -> playwright chromium channel (None = bundled chromium)
BROWSER_CHANNELS: Dict[str, Optional[str]] = {
    "chromium": None,
    "chrome": "chrome",
    "edge": "msedge",
    "msedge": "msedge",
}

CI_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-renderer-backgrounding",
    "--disable-backgrounding-occluded-windows",
    "--disable-client-side-phishing-detection",
    "--disable-crash-reporter",
    "--no-crash-upload",
    "--disable-popup-blocking",
    "--disable-prompt-on-repost",
    "--hide-scrollbars",
    "--metrics-recording-only",
    "--mute-audio",
    "--no-default-browser-check",
    "--no-pings",
    "--password-store=basic",
    "--use-mock-keychain",
]


def read_flag(environ: Mapping[str, str], name: str, default: bool) -> bool:
    """Parse a boolean toggle, falling back to ``default`` for unknown values."""

    raw = environ.get(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in TRUTHY:
        return True
    if normalized in FALSY:
        return False
    print(f"  • Unrecognized {name} value '{raw}', using default ({default}).")
    return default


def is_ci_environment(environ: Mapping[str, str]) -> bool:
    return read_flag(environ, "GITHUB_ACTIONS", False) or read_flag(environ, "CI", False)


@dataclass
class BrowserLaunchConfig:
    headless: bool = True
    browser_name: str = "chromium"
    channel: Optional[str] = None
    args: List[str] = field(default_factory=list)
    ci: bool = False

    def launch_kwargs(self) -> dict:
        kwargs: dict = {"headless": self.headless, "args": list(self.args)}
        if self.channel:
            kwargs["channel"] = self.channel
        return kwargs

    def describe(self) -> str:
        mode = "headless" if self.headless else "headed"
        where = "CI" if self.ci else "Local"
        return f"{where} | {self.browser_name} ({self.channel or 'bundled'}) | {mode}"


def resolve_launch_config(environ: Optional[Mapping[str, str]] = None) -> BrowserLaunchConfig:
    """Build the launch configuration from ``HEADLESS``, ``BROWSER`` and CI markers.

    Parameters
    ----------
    environ:
        Mapping to read from. Defaults to ``os.environ``.
    """

    env = os.environ if environ is None else environ
    ci = is_ci_environment(env)

    browser_name = (env.get("BROWSER") or "chromium").strip().lower()
    if browser_name not in BROWSER_CHANNELS:
        print(f"  • Unknown BROWSER '{browser_name}', falling back to chromium.")
        browser_name = "chromium"

    window_arg = f"--window-size={VIEWPORT['width']},{VIEWPORT['height']}"
    if ci:
        # CI runners have no display and no branded browsers installed.
        return BrowserLaunchConfig(
            headless=True,
            browser_name="chromium",
            channel=None,
            args=CI_ARGS + [window_arg],
            ci=True,
        )

    return BrowserLaunchConfig(
        headless=read_flag(env, "HEADLESS", True),
        browser_name=browser_name,
        channel=BROWSER_CHANNELS[browser_name],
        args=["--no-sandbox", "--disable-setuid-sandbox", window_arg],
        ci=False,
    )


def launch_browser(config: BrowserLaunchConfig) -> Tuple[Playwright, Browser]:
    """Start Playwright and launch a Chromium-family browser for ``config``."""

    playwright = sync_playwright().start()
    try:
        browser = playwright.chromium.launch(**config.launch_kwargs())
    except Exception:
        playwright.stop()
        raise
    print(f"🚀 Browser launched ({config.describe()})")
    return playwright, browser


def shutdown(playwright: Optional[Playwright], browser: Optional[Browser]) -> None:
    """Close the browser (if it is still connected) and stop the driver. Either may be None."""

    if browser is not None and browser.is_connected():
        try:
            browser.close()
        except PWError as exc:
            print(f"  • Browser close failed: {exc}")
    if playwright is not None:
        playwright.stop()
        print("🛑 Browser shut down")
