"""
Page access used by the harvesters.

``PageQuery`` is the narrow interface the harvesters depend on, so tests can
drive them with a fake page. ``SeleniumPageQuery`` implements it on top of a
Selenium WebDriver.
"""

import os
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import requests
from selenium.common.exceptions import (
    NoSuchElementException,
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from amzscraper.exceptions import NavigationError, PageStructureError

logger = logging.getLogger(__name__)

# document.readyState values that satisfy each wait policy
READY_STATES = {
    "domcontentloaded": ("interactive", "complete"),
    "load": ("complete",),
}


class PageQuery(ABC):
    """
    A single browser tab. ``scope`` arguments are element handles returned
    by ``query_all``; None means the whole page.
    """
    @abstractmethod
    def navigate(self, url: str, wait_policy: str = "domcontentloaded", timeout: float = 30) -> Optional[str]:
        pass

    @abstractmethod
    def wait_for_selector(self, selector: str, timeout: float) -> None:
        """Raise PageStructureError if ``selector`` does not appear in time."""

    @abstractmethod
    def query_text(self, scope: Any, selector: str, timeout: float = 0) -> Optional[str]:
        pass

    @abstractmethod
    def query_attribute(self, scope: Any, selector: str, attribute: str, timeout: float = 0) -> Optional[str]:
        pass

    @abstractmethod
    def query_all(self, scope: Any, selector: str) -> List[Any]:
        pass

    @abstractmethod
    def element_text(self, element: Any) -> str:
        pass

    @abstractmethod
    def page_source(self) -> str:
        pass

    @abstractmethod
    def download_file(self, url: str, destination: str) -> str:
        pass


def text_or_default(page_query: PageQuery, scope: Any, selector: str, default: str = "", timeout: float = 0.5) -> str:
    """
    Read the text of ``selector`` within ``scope``, waiting at most ``timeout``
    seconds. A missing, slow or blank field gives ``default``.
    """
    text = page_query.query_text(scope, selector, timeout)
    if text is None or not text.strip():
        return default
    return text


class SeleniumPageQuery(PageQuery):
    def __init__(self, driver, request_timeout: float = 60):
        self.driver = driver
        self.request_timeout = request_timeout

    def navigate(self, url, wait_policy="domcontentloaded", timeout=30):
        ready_states = READY_STATES.get(wait_policy, READY_STATES["load"])
        try:
            self.driver.set_page_load_timeout(timeout)
            self.driver.get(url)
            WebDriverWait(self.driver, timeout).until(
                lambda d: d.execute_script("return document.readyState") in ready_states
            )
        except TimeoutException as e:
            raise NavigationError(f"Timed out after {timeout}s loading {url}") from e
        except WebDriverException as e:
            raise NavigationError(f"Could not load {url}: {e.msg or e}") from e
        return self.driver.current_url

    def wait_for_selector(self, selector, timeout):
        try:
            WebDriverWait(self.driver, timeout).until(
                EC.presence_of_element_located((By.CSS_SELECTOR, selector))
            )
        except TimeoutException as e:
            raise PageStructureError(
                f"'{selector}' did not appear within {timeout}s on {self.driver.current_url}"
            ) from e

    def _find(self, scope, selector, timeout):
        root = scope if scope is not None else self.driver
        try:
            return WebDriverWait(root, timeout).until(
                lambda r: r.find_element(By.CSS_SELECTOR, selector)
            )
        except (TimeoutException, NoSuchElementException, StaleElementReferenceException):
            return None

    def query_text(self, scope, selector, timeout=0):
        element = self._find(scope, selector, timeout)
        if element is None:
            return None
        try:
            # textContent includes visually hidden text such as ".a-offscreen" prices
            text = element.get_attribute("textContent")
        except StaleElementReferenceException:
            return None
        if text is None:
            return None
        return " ".join(text.split())

    def query_attribute(self, scope, selector, attribute, timeout=0):
        element = self._find(scope, selector, timeout)
        if element is None:
            return None
        try:
            return element.get_attribute(attribute)
        except StaleElementReferenceException:
            return None

    def query_all(self, scope, selector):
        root = scope if scope is not None else self.driver
        return root.find_elements(By.CSS_SELECTOR, selector)

    def element_text(self, element):
        try:
            return " ".join((element.get_attribute("textContent") or "").split())
        except StaleElementReferenceException:
            return ""

    def page_source(self):
        return self.driver.page_source

    def _authenticated_session(self) -> requests.Session:
        """A requests session carrying the browser's cookies and user agent."""
        session = requests.Session()
        for cookie in self.driver.get_cookies():
            session.cookies.set(cookie["name"], cookie["value"], domain=cookie.get("domain"))
        user_agent = self.driver.execute_script("return navigator.userAgent")
        if user_agent:
            session.headers["User-Agent"] = user_agent
        return session

    def download_file(self, url, destination):
        directory = os.path.dirname(destination)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_file = destination + ".part"
        try:
            with self._authenticated_session() as session:
                with session.get(url, stream=True, timeout=self.request_timeout) as response:
                    response.raise_for_status()
                    with open(tmp_file, "wb") as out:
                        for chunk in response.iter_content(chunk_size=64 * 1024):
                            if chunk:
                                out.write(chunk)
        except Exception:
            if os.path.exists(tmp_file):
                os.remove(tmp_file)
            raise
        os.replace(tmp_file, destination)
        logger.info(f"📄 Downloaded {url} -> {destination}")
        return destination
