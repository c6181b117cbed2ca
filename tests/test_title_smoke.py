from fakes import FakeBrowser, PageScript
from title_smoke import SEARCH_ENGINE_TARGETS, TitleTarget, check_title, run_title_smoke, title_matches


def test_title_matches_ignores_case():
    assert title_matches("DuckDuckGo - Privacy, simplified.", "duckduckgo")
    assert not title_matches("", "Google")


def test_check_title_reads_page_title():
    browser = FakeBrowser(PageScript(title="Google"))
    result = check_title(browser, TitleTarget("https://www.google.com", "Google"))
    assert result.passed
    assert browser.contexts[0].closed


def test_check_title_records_navigation_errors():
    browser = FakeBrowser(PageScript(goto_error="net::ERR_INTERNET_DISCONNECTED"))
    result = check_title(browser, TitleTarget("https://www.bing.com", "Bing"))
    assert not result.passed
    assert "ERR_INTERNET_DISCONNECTED" in result.error


def test_run_title_smoke_visits_every_target():
    browser = FakeBrowser(PageScript(title="Bing"))
    results = run_title_smoke(browser)
    assert [result.url for result in results] == [target.url for target in SEARCH_ENGINE_TARGETS]
    assert [result.passed for result in results] == [False, True, False]
