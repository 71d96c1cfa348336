from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.chrome.options import Options
from webdriver_manager.chrome import ChromeDriverManager
import os
import time
import logging
import psutil

logger = logging.getLogger(__name__)


class BrowserManager:
    """
    Chrome with a persistent profile directory, so the storefront login
    survives between runs. Use as a context manager; the driver is quit on
    every exit path.
    """
    def __init__(self, config, max_retries=3):
        self.config = config
        self.max_retries = max_retries
        self.driver = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.quit()
        return False

    def _build_options(self):
        options = Options()
        options.add_argument(f"--user-data-dir={self.config.user_data_dir}")
        options.add_argument("--disable-blink-features=AutomationControlled")
        options.add_argument("--lang=en-US")
        options.add_argument("--window-size=1280,720")
        options.add_experimental_option("excludeSwitches", ["enable-automation"])
        options.add_experimental_option('useAutomationExtension', False)
        options.add_experimental_option("prefs", {
            "download.default_directory": self.config.download_dir,
            "download.prompt_for_download": False,
            "plugins.always_open_pdf_externally": True,
        })
        if self.config.headless:
            options.add_argument("--headless=new")
            options.add_argument("--no-sandbox")
            options.add_argument("--disable-dev-shm-usage")
            options.add_argument("--disable-gpu")
        return options

    def _kill_profile_processes(self):
        """Terminate Chrome processes still holding our profile directory."""
        marker = f"--user-data-dir={self.config.user_data_dir}"
        for proc in psutil.process_iter(['pid', 'name', 'cmdline']):
            try:
                name = proc.info['name'] or ''
                cmdline = ' '.join(proc.info.get('cmdline') or [])
                if 'chrome' in name.lower() and marker in cmdline and proc.pid != os.getpid():
                    logger.warning(f"🧹 Terminating Chrome process holding the profile (PID: {proc.pid})")
                    proc.terminate()
                    try:
                        proc.wait(timeout=3)
                    except psutil.TimeoutExpired:
                        proc.kill()
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                pass

    def start(self):
        for path, label in ((self.config.download_dir, "download"), (self.config.user_data_dir, "user data")):
            if not os.path.exists(path):
                logger.info(f"Creating browser {label} directory at {path}")
                os.makedirs(path, exist_ok=True)

        last_error = None
        for attempt in range(1, self.max_retries + 1):
            try:
                logger.info("🤖 Launching Chrome with persistent profile (session will be saved)")
                self.driver = webdriver.Chrome(
                    service=Service(ChromeDriverManager().install()),
                    options=self._build_options(),
                )
                # explicit waits only
                self.driver.implicitly_wait(0)
                self.driver.set_page_load_timeout(self.config.page_load_timeout)
                logger.info(f"✅ Chrome started on attempt {attempt}")
                return self.driver
            except WebDriverException as e:
                last_error = e
                logger.warning(f"⚠️ Chrome failed to start on attempt {attempt}/{self.max_retries}: {e.msg or e}")
                if "user data directory is already in use" in str(e) and attempt < self.max_retries:
                    self._kill_profile_processes()
                    time.sleep(2)
                else:
                    break

        logger.error("❌ Failed to launch Chrome with the persistent profile. If it is locked:")
        logger.error(f"   1. Delete the lock file: rm {os.path.join(self.config.user_data_dir, 'SingletonLock')}")
        logger.error(f"   2. If that fails, delete the profile folder: rm -r {self.config.user_data_dir}")
        raise last_error

    def quit(self):
        if self.driver is None:
            return
        logger.info("Closing browser...")
        try:
            self.driver.quit()
        except WebDriverException as e:
            logger.warning(f"⚠️ Error while closing browser: {e}")
        finally:
            self.driver = None
        logger.info("🤖 Browser closed.")
