# settings.py
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from bots._browser_launch import BrowserLaunchConfig, resolve_launch_config
from comparator import RANK_PREFIX_LIMIT

DEFAULT_INPUT_PATH = Path("filesToCheckPersonalizer.xlsx")
PERSONALIZER_SECTION = "PersonalizerItems"
CONSOLE_SECTION = "consoleError"
REPORT_DIR = Path("report")
SCREENSHOT_DIR = Path("screenshots")

BATCH_SIZE = 5
MAX_RETRIES = 2

RANK_ENDPOINT = "/personalizerwrapperapi/v01/rank"
REWARD_ENDPOINT = "/reward"
PRIMARY_ID_ATTRIBUTE = "data-offerid"
SECONDARY_ID_ATTRIBUTE = "data-offerkey"

MODAL_SELECTORS = (".modal-backdrop", ".modal", "#modalsRenderedAfterPageLoad")


@dataclass
class Settings:
    input_path: Path = DEFAULT_INPUT_PATH
    personalizer_section: str = PERSONALIZER_SECTION
    console_section: str = CONSOLE_SECTION
    report_dir: Path = REPORT_DIR
    screenshot_dir: Path = SCREENSHOT_DIR

    batch_size: int = BATCH_SIZE
    max_retries: int = MAX_RETRIES
    rank_prefix_limit: int = RANK_PREFIX_LIMIT

    # timeouts in milliseconds
    navigation_timeout_ms: int = 40000
    selector_timeout_ms: int = 40000
    click_navigation_timeout_ms: int = 90000
    settle_delay_ms: int = 10000
    console_navigation_timeout_ms: int = 20000
    console_settle_delay_ms: int = 5000

    rank_endpoint: str = RANK_ENDPOINT
    reward_endpoint: str = REWARD_ENDPOINT
    primary_id_attribute: str = PRIMARY_ID_ATTRIBUTE
    secondary_id_attribute: str = SECONDARY_ID_ATTRIBUTE
    modal_selectors: Tuple[str, ...] = MODAL_SELECTORS

    launch: BrowserLaunchConfig = field(default_factory=BrowserLaunchConfig)


def _read_int(environ: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        print(f"  • Ignoring non-numeric {name}='{raw}', using {default}.")
        return default
    if value < minimum:
        print(f"  • {name}={value} is below {minimum}, using {default}.")
        return default
    return value


def _read_path(environ: Mapping[str, str], name: str, default: Path) -> Path:
    raw = (environ.get(name) or "").strip()
    return Path(raw).expanduser() if raw else default


def load_settings(environ: Optional[Mapping[str, str]] = None, *, dotenv: bool = True) -> Settings:
    """
    Resolve settings from the environment. A ``.env`` file in the working
    directory is loaded first when ``environ`` is not given explicitly.
    """
    if environ is None:
        if dotenv:
            load_dotenv()
        environ = os.environ

    return Settings(
        input_path=_read_path(environ, "PERSONALIZER_INPUT", DEFAULT_INPUT_PATH),
        report_dir=_read_path(environ, "PERSONALIZER_REPORT_DIR", REPORT_DIR),
        screenshot_dir=_read_path(environ, "PERSONALIZER_SCREENSHOT_DIR", SCREENSHOT_DIR),
        batch_size=_read_int(environ, "PERSONALIZER_BATCH_SIZE", BATCH_SIZE, minimum=1),
        max_retries=_read_int(environ, "PERSONALIZER_MAX_RETRIES", MAX_RETRIES),
        settle_delay_ms=_read_int(environ, "PERSONALIZER_SETTLE_MS", 10000),
        launch=resolve_launch_config(environ),
    )
