import os
import re
import shutil
import logging

from selenium.common.exceptions import WebDriverException

from amzscraper.exceptions import LoginError, NavigationError

logger = logging.getLogger(__name__)

ACCOUNT_GREETING_SELECTOR = "#nav-link-accountList-nav-line-1"
SIGN_IN_PATTERN = re.compile(r"anmelden|sign in", re.IGNORECASE)


class SessionManager:
    """
    Checks the storefront login and hands over to the user for a manual
    login (including MFA) when the saved browser profile is not signed in.
    """
    def __init__(self, page_query, base_url="https://www.amazon.de", prompt=input, check_timeout=10):
        self.page_query = page_query
        self.base_url = base_url
        self.prompt = prompt
        self.check_timeout = check_timeout

    def is_authenticated(self) -> bool:
        try:
            self.page_query.navigate(self.base_url, "domcontentloaded", self.check_timeout)
            text = self.page_query.query_text(None, ACCOUNT_GREETING_SELECTOR, self.check_timeout)
        except (NavigationError, WebDriverException) as e:
            logger.warning(f"⚠️ Could not check login on {self.base_url}: {e}")
            return False
        if not text:
            logger.info("Account element has no text content")
            return False
        return not SIGN_IN_PATTERN.search(text)

    def await_manual_authentication(self):
        logger.info("🔒 Please log in to Amazon in the browser window")
        logger.info("   Complete all steps including MFA if required")
        self.prompt("Press Enter here when you're logged in and ready to continue...")
        if not self.is_authenticated():
            raise LoginError("Login verification failed. Please ensure you're logged in and try again.")
        logger.info("✅ Login verified successfully")

    def login(self):
        if self.is_authenticated():
            logger.info("✅ Already logged in to Amazon")
            return
        self.await_manual_authentication()

    @staticmethod
    def clear_session(user_data_dir):
        """Delete the persistent browser profile (forces a new login)."""
        if os.path.exists(user_data_dir):
            shutil.rmtree(user_data_dir)
            logger.info(f"🗑️ Deleted browser profile {user_data_dir}")
        else:
            logger.info(f"No browser profile to delete at {user_data_dir}")
